from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date
from decimal import Decimal

class FineUpdate(BaseModel):
    """Partial update; only the fields present in the body are merged."""
    amount: Optional[Decimal] = Field(None, ge=0)
    due_date: Optional[date] = None
    payment_date: Optional[date] = None
    fine_reason: Optional[str] = None

    @field_validator("amount", "fine_reason")
    @classmethod
    def not_null(cls, value, info):
        # due_date and payment_date may be cleared, these may not
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value
