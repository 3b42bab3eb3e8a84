from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from datetime import date
from library_api.dependencies import get_catalog, get_circulation
from library_api.schemas.records import Transaction
from library_api.schemas.transaction import BorrowRequest, ReturnRequest
from library_api.services.catalog import CatalogService
from library_api.services.circulation import CirculationService

router = APIRouter(prefix="/api", tags=["Library Transactions"])

@router.get("/transactions", response_model=List[Transaction])
async def get_transactions(catalog: CatalogService = Depends(get_catalog)):
    return catalog.rows(Transaction)

@router.post("/transactions/borrow")
async def borrow_book(
    request: BorrowRequest,
    circulation: CirculationService = Depends(get_circulation)
):
    """Lend an available copy of a book to a user."""
    transaction = circulation.borrow(request.book_id, request.user_id)
    copy = circulation.borrowed_copy(transaction)
    return {
        "transaction": transaction.model_dump(mode="json"),
        "copy": copy.model_dump(mode="json") if copy else None,
    }

@router.post("/transactions/return")
async def return_book(
    request: ReturnRequest,
    circulation: CirculationService = Depends(get_circulation)
):
    """Close a transaction, free its copy and optionally add a fine."""
    result = circulation.return_copy(
        request.transaction_id,
        return_date=request.return_date,
        fine_amount=request.fine_amount,
        fine_reason=request.fine_reason,
    )
    return result.model_dump(mode="json")

@router.get("/overdue")
async def get_overdue(
    as_of: Optional[date] = Query(None, description="Cut-off date, defaults to today"),
    circulation: CirculationService = Depends(get_circulation),
    catalog: CatalogService = Depends(get_catalog)
):
    """Open transactions past their due date, with member and book details."""
    entries = circulation.list_overdue(as_of)
    return catalog.overdue_details(entries)
