from .user import User
from .registration import Registration
from .donation import Donation, PaymentAttempt, DonationStatus, INITIATED

__all__ = [
    "User",
    "Registration",
    "Donation",
    "PaymentAttempt",
    "DonationStatus",
    "INITIATED",
]
