from sqlalchemy import Column, String, Integer, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from library_api.database import Base

class Category(Base):
    __tablename__ = "category"
    
    category_id = Column(String(50), primary_key=True)
    category_name = Column(String(255), nullable=False, default="")

class Book(Base):
    __tablename__ = "books"
    
    book_id = Column(String(50), primary_key=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False, default="")
    category_id = Column(String(50), nullable=True, index=True)
    description = Column(Text, nullable=True)
    total = Column(Integer, default=0, nullable=False)
    available = Column(Integer, default=0, nullable=False)
    
    # Relationships
    copies = relationship("BookCopy", back_populates="book", cascade="all, delete-orphan")
    
    __table_args__ = (
        CheckConstraint("available >= 0 AND available <= total", name="chk_book_counts"),
    )

class BookCopy(Base):
    __tablename__ = "bookcopies"
    
    copy_id = Column(String(50), primary_key=True)
    book_id = Column(String(50), ForeignKey("books.book_id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(50), default='available', nullable=False, index=True)
    location = Column(String(100), default='main', nullable=False)
    condition = Column(String(50), default='good', nullable=False)
    
    # Relationships
    book = relationship("Book", back_populates="copies")
    
    __table_args__ = (
        CheckConstraint("status IN ('available', 'borrowed')", name="chk_copy_status"),
    )
