"""Rules scoring strategy - configurable business rules and provider preferences."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from payrouter.domain.components.scoring_strategies.base import NEUTRAL_SCORE, ScoringStrategy
from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.health_state import HealthSnapshot
from payrouter.domain.models.route_decision import ScoringResult
from payrouter.domain.models.routing_context import RoutingContext
from payrouter.domain.models.routing_profile import StrategyType
from payrouter.domain.models.routing_rule import (
    DEFAULT_ROUTING_RULES,
    RoutingMode,
    RoutingRule,
    parse_rule,
)

ROUTING_RULES_KEY = "routing_rules"

# (listed, not listed) score per mode.
MODE_SCORES: dict[RoutingMode, tuple[float, float]] = {
    RoutingMode.STRICT: (1.0, 0.0),
    RoutingMode.PREFERRED: (0.8, NEUTRAL_SCORE),
    RoutingMode.EXCLUDED: (0.0, NEUTRAL_SCORE),
}


class RulesStrategy(ScoringStrategy):
    """Scores providers by the first configured rule that matches the transaction.

    Rules are an ordered list; evaluation stops at the first match. With no
    match every provider gets the neutral score.
    """

    strategy_type = StrategyType.RULES

    async def load_rules(self, config: ConfigSource | None = None) -> list[RoutingRule]:
        """Parse the configured rules.

        A missing or non-list ``routing_rules`` gives the built-in defaults.
        Malformed entries are skipped; if nothing survives the defaults are
        used. An explicit empty list means no rules.
        """
        raw = self._source(config).get(ROUTING_RULES_KEY)
        if raw is None:
            await self._fallback("No routing rules configured")
            return list(DEFAULT_ROUTING_RULES)
        if not isinstance(raw, list):
            await self._fallback(
                "Routing rules configuration is not a list",
                value_type=type(raw).__name__,
            )
            return list(DEFAULT_ROUTING_RULES)
        if not raw:
            return []

        rules: list[RoutingRule] = []
        for index, entry in enumerate(raw):
            try:
                rules.append(parse_rule(entry))
            except (TypeError, ValueError) as e:
                await self._warn("Skipping malformed routing rule", index=index, error=str(e))

        if not rules:
            await self._fallback("Every configured routing rule is malformed", count=len(raw))
            return list(DEFAULT_ROUTING_RULES)
        return rules

    async def evaluate(
        self,
        context: RoutingContext,
        providers: list[PaymentProviderAdapter],
        health: Mapping[str, HealthSnapshot] | None = None,
        config: ConfigSource | None = None,
    ) -> dict[str, ScoringResult]:
        rules = await self.load_rules(config)
        matched_index, matched = next(
            ((i, rule) for i, rule in enumerate(rules) if rule.matches(context)),
            (None, None),
        )

        results: dict[str, ScoringResult] = {}
        for provider in providers:
            if matched is None:
                results[provider.name] = ScoringResult(
                    score=NEUTRAL_SCORE,
                    details={"matched_rule": None, "rules_evaluated": len(rules)},
                )
                continue

            listed = provider.name in matched.action.providers
            listed_score, unlisted_score = MODE_SCORES[matched.action.mode]
            results[provider.name] = ScoringResult(
                score=listed_score if listed else unlisted_score,
                details={
                    "matched_rule": matched.description,
                    "rule_index": matched_index,
                    "mode": matched.action.mode.value,
                    "listed": listed,
                    "rule_providers": list(matched.action.providers),
                    "rules_evaluated": len(rules),
                },
            )
        return results

    async def _fallback(self, message: str, **context: Any) -> None:
        await self._warn(f"{message}, using default rules", **context)
        await self._observability.emit_event(
            event_type="rules_fallback",
            payload={"reason": message, "default_rules": len(DEFAULT_ROUTING_RULES)},
            metadata={"timestamp": datetime.utcnow().isoformat()},
        )
