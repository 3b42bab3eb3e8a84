from pydantic import BaseModel, Field
from typing import Optional
from datetime import date
from decimal import Decimal

class BorrowRequest(BaseModel):
    book_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)

class ReturnRequest(BaseModel):
    transaction_id: str = Field(..., min_length=1)
    return_date: Optional[date] = None
    fine_amount: Optional[Decimal] = Field(None, ge=0)
    fine_reason: Optional[str] = None
