"""SQLAlchemy models for the GalBot credit ledger."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserCredits(Base):
    """Credit balance for a single Discord user."""
    __tablename__ = 'user_credits'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(32), unique=True, nullable=False, index=True)
    credits = Column(Integer, default=0, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint('credits >= 0', name='ck_user_credits_non_negative'),
    )

    def __repr__(self) -> str:
        return f"<UserCredits user_id={self.user_id} credits={self.credits}>"
