"""
Pydantic models for the MongoDB collections.
"""

from .bookings import BookingCreate, BookingUpdate, Review, ReviewCreate, ReviewUpdate
from .providers import ProviderCreate, ProviderUpdate
from .users import UserLogin, UserRegister

__all__ = [
    "BookingCreate",
    "BookingUpdate",
    "ProviderCreate",
    "ProviderUpdate",
    "Review",
    "ReviewCreate",
    "ReviewUpdate",
    "UserLogin",
    "UserRegister",
]
