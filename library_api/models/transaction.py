from sqlalchemy import Column, String, Date, Numeric, Text
from library_api.database import Base

class Transaction(Base):
    __tablename__ = "transactions"
    
    transaction_id = Column(String(50), primary_key=True)
    user_id = Column(String(50), nullable=False, index=True)
    # No foreign key: closed transactions outlive the copies they reference
    copy_id = Column(String(50), nullable=False, index=True)
    borrow_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    return_date = Column(Date, nullable=True)

class Fine(Base):
    __tablename__ = "fines"
    
    fine_id = Column(String(50), primary_key=True)
    user_id = Column(String(50), nullable=False, index=True)
    transaction_id = Column(String(50), nullable=True, index=True)
    amount = Column(Numeric(10, 2), default=0.00, nullable=False)
    due_date = Column(Date, nullable=True)
    payment_date = Column(Date, nullable=True)
    fine_reason = Column(Text, nullable=False, default="")
