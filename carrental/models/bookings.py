"""
Pydantic models for MongoDB 'bookings' collection and the review embedded in it.
"""

from datetime import datetime
from typing import Literal

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from carrental.utils.sanitizers import SafeStr

BOOKING_STATUSES = ("active", "completed")

FIELD_TYPES = {
    "_id": ObjectId,
    "bookDate": datetime,
    "user": ObjectId,
    "provider": ObjectId,
    "status": str,
    "review.rating": int,
    "createdAt": datetime,
}


class Review(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str
    createdAt: datetime
    updatedAt: datetime


class ReviewCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    rating: int = Field(..., ge=1, le=5)
    comment: SafeStr = Field(..., min_length=1)


class ReviewUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    rating: int | None = Field(None, ge=1, le=5)
    comment: SafeStr | None = Field(None, min_length=1)


class BookingCreate(BaseModel):
    bookDate: datetime


class BookingUpdate(BaseModel):
    bookDate: datetime | None = None
    status: Literal["active", "completed"] | None = None
