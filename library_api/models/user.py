from sqlalchemy import Column, String, Date
from library_api.database import Base

class Member(Base):
    __tablename__ = "users"
    
    user_id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, default="", index=True)
    password_hash = Column(String(255), nullable=False, default="")
    role = Column(String(50), default='member', nullable=False)  # member, staff, admin
    membership_date = Column(Date, nullable=True)

class Staff(Base):
    __tablename__ = "staff"
    
    staff_id = Column(String(50), primary_key=True)
    staff_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    role = Column(String(50), nullable=False, default="")
    department = Column(String(100), nullable=False, default="")
