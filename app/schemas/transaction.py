"""
Pydantic schemas for transaction rows: validation of raw file rows and the
API responses for accepted and rejected rows.
"""
from decimal import Decimal, InvalidOperation
from typing import Any
from pydantic import BaseModel, field_validator
from pydantic_core import PydanticCustomError

from app.models.transaction import AMOUNT_PRECISION, AMOUNT_SCALE
from app.schemas.import_job import CamelModel

MAX_AMOUNT = Decimal(10) ** (AMOUNT_PRECISION - AMOUNT_SCALE)
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_SCALE)


class TransactionRow(BaseModel):
    """
    One data row of an import file.

    Values arrive as raw strings. ``amount`` must parse as a finite decimal
    that fits the stored column (at most 4 decimal places, magnitude below
    10^14); an empty amount is rejected rather than read as zero.
    ``currency`` must be non-blank, ``description`` defaults to an empty string.
    """
    amount: Decimal
    currency: str
    description: str = ""

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Decimal:
        try:
            amount = Decimal(str(v).strip())
        except (InvalidOperation, ValueError):
            raise PydanticCustomError("amount_invalid", "Amount must be a valid number")
        if not amount.is_finite():
            raise PydanticCustomError("amount_invalid", "Amount must be a valid number")
        if abs(amount) >= MAX_AMOUNT:
            raise PydanticCustomError("amount_range", "Amount is out of range")
        if amount != amount.quantize(AMOUNT_QUANTUM):
            raise PydanticCustomError(
                "amount_scale",
                "Amount must have at most {scale} decimal places",
                {"scale": AMOUNT_SCALE},
            )
        return amount

    @field_validator("currency", mode="before")
    @classmethod
    def parse_currency(cls, v: Any) -> str:
        currency = "" if v is None else str(v).strip()
        if not currency:
            raise PydanticCustomError("currency_required", "Currency is required")
        return currency

    @field_validator("description", mode="before")
    @classmethod
    def parse_description(cls, v: Any) -> str:
        return "" if v is None else str(v)


class TransactionResponse(CamelModel):
    """Schema for an imported transaction."""
    id: str
    amount: Decimal
    currency: str
    description: str
    import_job_id: str
    project_id: str


class ImportRowErrorResponse(CamelModel):
    """Schema for a rejected row."""
    id: str
    line_number: int
    line_text: str
    error_message: str
    import_job_id: str
