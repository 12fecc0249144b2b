"""
Base Schema Classes for Pydantic Models

This module provides base classes and field types shared by every schema:

- ``Money``: Decimal rounded half-up to 2 places, emitted as a JSON number
- ``BaseResponseSchema``: response schemas read from ORM rows
- ``BaseCreateSchema``: request schemas, unknown fields ignored
- ``ReportSchema``: generated return payloads (immutable, deterministic)
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, PlainSerializer

from app.core.money import round_money


def _round_quantity(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)


# Rounded on the way in, float on the way out so JSON carries plain numbers
Money = Annotated[
    Decimal,
    AfterValidator(round_money),
    PlainSerializer(float, return_type=float, when_used="json"),
]

Quantity = Annotated[
    Decimal,
    AfterValidator(_round_quantity),
    PlainSerializer(float, return_type=float, when_used="json"),
]

# Tax rate in percent, e.g. 18 or 0.25
Rate = Annotated[
    Decimal,
    AfterValidator(round_money),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class EInvoiceStatusResponse(BaseResponseSchema):
            id: UUID
            status: str
    """
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    Unknown fields are ignored so older clients keep working.
    """
    model_config = ConfigDict(
        extra='ignore',
    )


class ReportSchema(BaseModel):
    """Base class for generated return sections."""
    model_config = ConfigDict(frozen=True)
