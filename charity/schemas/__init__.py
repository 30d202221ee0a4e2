from .donation import (
    CreateDonationRequest,
    CreateDonationResponse,
    DonationFilters,
    DonationResponse,
    PaymentAttemptResponse,
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
)
from .registration import (
    CreateRegistrationRequest,
    CreateRegistrationResponse,
    RegistrationResponse,
)
from .stats import StatsResponse

__all__ = [
    "CreateDonationRequest",
    "CreateDonationResponse",
    "DonationFilters",
    "DonationResponse",
    "PaymentAttemptResponse",
    "ConfirmPaymentRequest",
    "ConfirmPaymentResponse",
    "CreateRegistrationRequest",
    "CreateRegistrationResponse",
    "RegistrationResponse",
    "StatsResponse",
]
