from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from charity.database.database import Base

# Label of the audit entry written when a donation is created
INITIATED = "initiated"


class DonationStatus(str, enum.Enum):
    """Status labels the fake gateway reports.

    The column itself is a plain string: the gateway is the source of truth
    for which labels exist, so any reported outcome is stored as-is.
    """
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Donation(Base):
    """Donation, mutated only through the gateway confirmation"""
    __tablename__ = "donations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Weak link: cleared when the registration goes away, the donation survives
    registration_id = Column(Integer, ForeignKey("registrations.id", ondelete="SET NULL"), nullable=True, index=True)
    amount_cents = Column(Integer, nullable=False)
    status = Column(String(50), nullable=False, default=DonationStatus.PENDING.value, index=True)
    gateway_reference = Column(String(64), nullable=False, unique=True, index=True)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="donations")
    attempts = relationship(
        "PaymentAttempt",
        back_populates="donation",
        order_by="PaymentAttempt.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Donation(id={self.id}, amount_cents={self.amount_cents}, status='{self.status}')>"


class PaymentAttempt(Base):
    """Append-only audit entry of what the gateway reported"""
    __tablename__ = "payment_attempts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    donation_id = Column(Integer, ForeignKey("donations.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(50), nullable=False)
    raw_response = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    donation = relationship("Donation", back_populates="attempts")

    def __repr__(self):
        return f"<PaymentAttempt(id={self.id}, donation_id={self.donation_id}, status='{self.status}')>"
