"""
User model (mirror of the account service's user record)
"""

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.utils.clock import utcnow

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(20), nullable=False, default="CUSTOMER")  # CUSTOMER, ORGANIZER
    points_balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    events = relationship("Event", back_populates="organizer")
    transactions = relationship("Transaction", back_populates="user", foreign_keys="Transaction.user_id")

    __table_args__ = (
        CheckConstraint("points_balance >= 0", name="check_points_balance_non_negative"),
    )
