"""Configuration keys read by the routing core."""


class ConfigKeys:
    """Names of the configuration entries the router understands.

    Example file (YAML)::

        routing_profile: balanced
        routing_weights:
          StripeMock: 60
          AdyenMock: 30
          LocalBankMock: 10
        routing_rules:
          - condition: {country: US, network: AMEX}
            action: {mode: PREFERRED, prefer: [AdyenMock]}
          - condition: {binRange: 411111-411119}
            action: {mode: STRICT, prefer: [LocalBankMock]}
        routing_profiles:
          cheap_but_safe:
            description: Mostly cost, some reliability
            strategies: [cost, reliability]
            weights: {cost: 0.7, reliability: 0.3}
        health_check_config:
          min_success_rate: 0.9
          max_latency_ms: 5000
          min_sample_size: 100
    """

    ROUTING_RULES = "routing_rules"
    """Ordered list of rules; the first match wins."""

    ROUTING_WEIGHTS = "routing_weights"
    """Provider name to load-balancing weight (number or numeric string)."""

    ROUTING_PROFILE = "routing_profile"
    """Active profile name, as a string or ``{"profile": name}``."""

    ROUTING_PROFILES = "routing_profiles"
    """Custom profiles: name to ``{description, strategies, weights}``."""

    HEALTH_CHECK_CONFIG = "health_check_config"
    """Health gate thresholds."""

    ALL = frozenset(
        {
            ROUTING_RULES,
            ROUTING_WEIGHTS,
            ROUTING_PROFILE,
            ROUTING_PROFILES,
            HEALTH_CHECK_CONFIG,
        }
    )
