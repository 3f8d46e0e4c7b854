"""RoutingContext model describing the transaction being routed."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CardNetwork(str, Enum):
    """Card networks a provider may accept."""

    VISA = "VISA"
    MASTERCARD = "MASTERCARD"
    AMEX = "AMEX"
    DISCOVER = "DISCOVER"


class RoutingContext(BaseModel):
    """Immutable description of one transaction to route.

    Example:
        ```python
        context = RoutingContext(
            amount=Decimal("100.00"),
            currency="USD",
            country="US",
            card_network=CardNetwork.VISA,
            bin_prefix="411111",
            merchant_id="merchant-123",
        )
        ```
    """

    amount: Decimal = Field(
        ...,
        description="Transaction amount in major units",
        gt=0,
    )
    currency: str = Field(
        ...,
        description="ISO-4217 currency code",
        min_length=3,
        max_length=3,
    )
    country: str = Field(
        ...,
        description="ISO-3166 alpha-2 country code",
        min_length=2,
        max_length=2,
    )
    card_network: CardNetwork = Field(
        ...,
        description="Card network of the payment method",
    )
    bin_prefix: str | None = Field(
        default=None,
        description="Leading digits of the card number (BIN)",
    )
    merchant_id: str = Field(
        ...,
        description="Merchant on whose behalf the payment is routed",
        min_length=1,
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form caller metadata, carried but not interpreted",
    )

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("currency", "country")
    @classmethod
    def validate_code(cls, v: str) -> str:
        """Normalize ISO codes to upper case."""
        if not v.isalpha():
            raise ValueError(f"Expected an alphabetic ISO code, got {v!r}")
        return v.upper()

    @field_validator("card_network", mode="before")
    @classmethod
    def validate_card_network(cls, v: Any) -> Any:
        """Accept network names in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("bin_prefix")
    @classmethod
    def validate_bin_prefix(cls, v: str | None) -> str | None:
        """BIN prefixes are digits only."""
        if v is None or v == "":
            return None
        if not v.isdigit():
            raise ValueError(f"BIN prefix must contain digits only, got {v!r}")
        return v
