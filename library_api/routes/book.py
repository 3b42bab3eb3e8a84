from fastapi import APIRouter, Depends
from typing import List
from library_api.dependencies import get_catalog, get_circulation
from library_api.errors import ValidationError
from library_api.schemas.book import BookUpdate, CopyAction
from library_api.schemas.records import Book, BookCopy, Category
from library_api.services.catalog import CatalogService
from library_api.services.circulation import CirculationService

router = APIRouter(prefix="/api", tags=["Library Books"])

@router.get("/books", response_model=List[Book])
async def get_books(catalog: CatalogService = Depends(get_catalog)):
    """Get all books with copy counts derived from their copies."""
    return catalog.list_books()

@router.get("/categories", response_model=List[Category])
async def get_categories(catalog: CatalogService = Depends(get_catalog)):
    return catalog.rows(Category)

@router.get("/bookcopies", response_model=List[BookCopy])
@router.get("/copies", response_model=List[BookCopy], include_in_schema=False)
async def get_book_copies(catalog: CatalogService = Depends(get_catalog)):
    """Get every physical copy."""
    return catalog.rows(BookCopy)

@router.put("/books/{book_id}", response_model=Book)
async def update_book(
    book_id: str,
    book_data: BookUpdate,
    circulation: CirculationService = Depends(get_circulation)
):
    """Edit a book's title, author, category and description."""
    return circulation.update_book(
        book_id,
        title=book_data.title,
        author=book_data.author,
        category_id=book_data.category_id,
        description=book_data.description,
    )

@router.post("/books/copies")
async def manage_copies(
    request: CopyAction,
    circulation: CirculationService = Depends(get_circulation)
):
    """Add a copy to a book, or remove one available copy."""
    if request.action == "add":
        copy = circulation.add_copy(
            request.book_id,
            location=request.location or "main",
            condition=request.condition or "good",
        )
    else:
        if not request.copy_id:
            raise ValidationError("Missing copy_id")
        copy = circulation.remove_copy(request.book_id, request.copy_id)

    book = circulation.book_counts(request.book_id)
    return {
        "success": True,
        "copy": copy.model_dump(mode="json"),
        "total": book.total,
        "available": book.available,
    }
