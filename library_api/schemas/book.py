from pydantic import BaseModel, Field
from typing import Optional

class BookUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    category_id: str = Field(..., min_length=1)
    description: Optional[str] = None

class CopyAction(BaseModel):
    """Body of POST /api/books/copies"""
    book_id: str = Field(..., min_length=1)
    action: str = Field(..., pattern="^(add|remove)$")
    copy_id: Optional[str] = None
    location: Optional[str] = Field("main", max_length=100)
    condition: Optional[str] = Field("good", pattern="^(good|fair|poor|damaged)$")
