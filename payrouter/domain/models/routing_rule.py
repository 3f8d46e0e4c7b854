"""RoutingRule model and the pure condition evaluator used by the rules strategy."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from payrouter.domain.models.routing_context import RoutingContext


class RoutingMode(str, Enum):
    """What a matching rule does with its provider list."""

    STRICT = "STRICT"
    """Listed providers score 1.0, everybody else 0.0."""

    PREFERRED = "PREFERRED"
    """Listed providers score 0.8, everybody else stays neutral."""

    EXCLUDED = "EXCLUDED"
    """Listed providers score 0.0, everybody else stays neutral."""


class ConditionField(str, Enum):
    COUNTRY = "country"
    NETWORK = "network"
    BIN_RANGE = "bin_range"


class ConditionOperator(str, Enum):
    EQ = "eq"
    RANGE = "range"
    PREFIX = "prefix"


_ALLOWED_OPERATORS = {
    ConditionField.COUNTRY: {ConditionOperator.EQ},
    ConditionField.NETWORK: {ConditionOperator.EQ},
    ConditionField.BIN_RANGE: {ConditionOperator.RANGE, ConditionOperator.PREFIX},
}


class RuleCondition(BaseModel):
    """One field predicate of a rule: (field, operator, value).

    BIN ranges are stored as "start-end" with digits on both sides and
    ``start <= end``; prefixes are plain digit strings.
    """

    field: ConditionField
    operator: ConditionOperator
    value: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_operator(self) -> RuleCondition:
        if self.operator not in _ALLOWED_OPERATORS[self.field]:
            raise ValueError(
                f"Operator {self.operator.value!r} is not valid for field {self.field.value!r}"
            )
        if self.operator == ConditionOperator.RANGE:
            start, sep, end = self.value.partition("-")
            if not sep or not start.isdigit() or not end.isdigit():
                raise ValueError(f"Invalid BIN range {self.value!r}, expected 'start-end'")
            if len(start) != len(end) or int(start) > int(end):
                raise ValueError(f"Invalid BIN range bounds {self.value!r}")
        if self.operator == ConditionOperator.PREFIX and not self.value.isdigit():
            raise ValueError(f"Invalid BIN prefix {self.value!r}")
        return self

    def describe(self) -> str:
        label = "binRange" if self.field == ConditionField.BIN_RANGE else self.field.value
        return f"{label}={self.value}"


class RuleAction(BaseModel):
    """Mode plus the providers it applies to."""

    mode: RoutingMode
    providers: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class RoutingRule(BaseModel):
    """Conjunction of conditions and the action taken when all of them hold."""

    description: str = Field(default="")
    conditions: list[RuleCondition] = Field(default_factory=list)
    action: RuleAction

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def fill_description(self) -> RoutingRule:
        if not self.description:
            condition_str = " AND ".join(c.describe() for c in self.conditions) or "always"
            object.__setattr__(
                self,
                "description",
                f"If {condition_str} then {self.action.mode.value} {self.action.providers}",
            )
        return self

    def matches(self, context: RoutingContext) -> bool:
        return rule_matches(self, context)


def condition_holds(condition: RuleCondition, context: RoutingContext) -> bool:
    """Evaluate a single predicate against a context."""
    if condition.field == ConditionField.COUNTRY:
        return context.country == condition.value.upper()

    if condition.field == ConditionField.NETWORK:
        return context.card_network.value == condition.value.upper()

    bin_prefix = context.bin_prefix
    if not bin_prefix:
        return False

    if condition.operator == ConditionOperator.PREFIX:
        return bin_prefix.startswith(condition.value)

    start, _, end = condition.value.partition("-")
    if len(bin_prefix) < len(start):
        return False
    leading = int(bin_prefix[: len(start)])
    return int(start) <= leading <= int(end)


def rule_matches(rule: RoutingRule, context: RoutingContext) -> bool:
    """True when every condition of the rule holds for the context."""
    return all(condition_holds(condition, context) for condition in rule.conditions)


_CONDITION_KEYS = {
    "country": ConditionField.COUNTRY,
    "network": ConditionField.NETWORK,
    "card_network": ConditionField.NETWORK,
    "binrange": ConditionField.BIN_RANGE,
    "bin_range": ConditionField.BIN_RANGE,
}


def parse_rule(rule_data: Any) -> RoutingRule:
    """Build a RoutingRule from its configuration form.

    Accepted shape::

        {
            "condition": {"country": "US", "network": "AMEX", "binRange": "411111-411119"},
            "action": {"mode": "PREFERRED", "prefer": ["AdyenMock"]},
            "description": "optional"
        }

    Raises:
        ValueError: If the entry is malformed.
    """
    if not isinstance(rule_data, dict):
        raise ValueError(f"Rule must be a mapping, got {type(rule_data).__name__}")

    condition_data = rule_data.get("condition", {})
    action_data = rule_data.get("action")
    if not isinstance(condition_data, dict):
        raise ValueError("Rule 'condition' must be a mapping")
    if not isinstance(action_data, dict):
        raise ValueError("Rule 'action' must be a mapping")

    conditions: list[RuleCondition] = []
    for key, value in condition_data.items():
        field = _CONDITION_KEYS.get(str(key).lower())
        if field is None:
            raise ValueError(f"Unknown condition key {key!r}")
        value_str = str(value).strip()
        if field == ConditionField.BIN_RANGE:
            operator = ConditionOperator.RANGE if "-" in value_str else ConditionOperator.PREFIX
        else:
            operator = ConditionOperator.EQ
            value_str = value_str.upper()
        conditions.append(RuleCondition(field=field, operator=operator, value=value_str))

    mode_value = action_data.get("mode")
    if not isinstance(mode_value, str):
        raise ValueError("Rule action 'mode' must be a string")
    mode = RoutingMode(mode_value.strip().upper())

    providers = action_data.get("prefer", action_data.get("providers", []))
    if not isinstance(providers, list):
        raise ValueError("Rule action 'prefer' must be a list of provider names")

    description = rule_data.get("description") or ""
    return RoutingRule(
        description=str(description),
        conditions=conditions,
        action=RuleAction(mode=mode, providers=[str(p) for p in providers]),
    )


DEFAULT_ROUTING_RULES: tuple[RoutingRule, ...] = (
    RoutingRule(
        description="AMEX in US prefers Adyen",
        conditions=[
            RuleCondition(field=ConditionField.COUNTRY, operator=ConditionOperator.EQ, value="US"),
            RuleCondition(
                field=ConditionField.NETWORK, operator=ConditionOperator.EQ, value="AMEX"
            ),
        ],
        action=RuleAction(mode=RoutingMode.PREFERRED, providers=["AdyenMock"]),
    ),
    RoutingRule(
        description="Domestic BIN range uses LocalBank strictly",
        conditions=[
            RuleCondition(
                field=ConditionField.BIN_RANGE,
                operator=ConditionOperator.PREFIX,
                value="411111",
            ),
        ],
        action=RuleAction(mode=RoutingMode.STRICT, providers=["LocalBankMock"]),
    ),
)
