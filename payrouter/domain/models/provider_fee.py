"""ProviderFee model for processing fee quotes."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeeType(str, Enum):
    """How a provider computes its fee."""

    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"
    COMBINED = "COMBINED"


class ProviderFee(BaseModel):
    """Fee a provider would charge to process a transaction.

    Example:
        ```python
        fee = ProviderFee(
            amount=Decimal("2.90"),
            currency="USD",
            fee_type=FeeType.COMBINED,
        )
        ```
    """

    amount: Decimal = Field(
        ...,
        description="Fee amount in major units",
        ge=0,
    )
    currency: str = Field(
        ...,
        description="Currency the fee is charged in",
        min_length=3,
        max_length=3,
    )
    fee_type: FeeType = Field(
        default=FeeType.FIXED,
        description="Fee calculation type",
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Validate currency code."""
        return v.upper()
