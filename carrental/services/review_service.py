"""Review workflow: reviews are embedded in their booking and gated by moderation."""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError
from pymongo import ReturnDocument

from carrental.db.mongodb_client import mongo_client
from carrental.errors import ErrorKind, failure
from carrental.models.bookings import Review, ReviewCreate, ReviewUpdate
from carrental.services.booking_service import can_access_booking
from carrental.services.moderation_service import REJECTED, ModerationService, moderation_service
from carrental.utils.serializers import serialize_document, to_object_id

logger = logging.getLogger(__name__)

REJECTION_MESSAGE = "Your review was rejected because of the following reason: "


def has_review(booking: dict[str, Any]) -> bool:
    """A booking has a review iff the embedded review carries a rating."""
    return (booking.get("review") or {}).get("rating") is not None


class ReviewService:
    def __init__(self, moderation: ModerationService | None = None):
        self.moderation = moderation or moderation_service

    def _bookings(self):
        return mongo_client.get_collection("bookings")

    def _find_booking(self, booking_id: str) -> dict[str, Any] | None:
        oid = to_object_id(booking_id)
        if oid is None:
            return None
        return self._bookings().find_one({"_id": oid})

    def _rejected(self, comment: str) -> dict[str, Any] | None:
        """Run moderation and return a failure result if the comment is rejected."""
        verdict = self.moderation.moderate(comment)
        if verdict["verdict"] == REJECTED:
            logger.info(f"Review comment rejected by moderation: {verdict['reason']}")
            return failure(ErrorKind.MODERATION_REJECTED, REJECTION_MESSAGE + verdict["reason"])
        return None

    def add_review(self, booking_id: str, user: dict[str, Any], payload: Any) -> dict[str, Any]:
        """
        Submit a review for a completed booking.

        Args:
            booking_id: Booking ID
            user: Authenticated user
            payload: Request body with rating and comment

        Returns:
            Dict with operation result and the updated booking
        """
        try:
            booking = self._find_booking(booking_id)
            if not booking:
                return failure(ErrorKind.NOT_FOUND, f"No booking with the id of {booking_id}")

            if not can_access_booking(booking, user):
                return failure(
                    ErrorKind.UNAUTHORIZED, f"User {user['id']} is not authorized to review this booking"
                )

            if booking.get("status") != "completed":
                return failure(ErrorKind.INVALID_STATE, "You can only review a completed booking")

            if has_review(booking):
                return failure(ErrorKind.CONFLICT, "A review already exists for this booking")

            try:
                review_in = ReviewCreate.model_validate(payload)
            except ValidationError:
                return failure(ErrorKind.VALIDATION, "Please provide both a rating (1-5) and a comment")

            rejected = self._rejected(review_in.comment)
            if rejected:
                return rejected

            now = datetime.now(timezone.utc)
            review = Review(rating=review_in.rating, comment=review_in.comment, createdAt=now, updatedAt=now)

            # Only matches while the booking still has no review
            updated = self._bookings().find_one_and_update(
                {"_id": booking["_id"], "review.rating": None},
                {"$set": {"review": review.model_dump()}},
                return_document=ReturnDocument.AFTER,
            )
            if updated is None:
                return failure(ErrorKind.CONFLICT, "A review already exists for this booking")

            logger.info(f"Review created for booking {booking_id}")
            return {"success": True, "data": serialize_document(updated)}

        except Exception as e:
            logger.error(f"Error submitting review for booking {booking_id}: {e}")
            return failure(ErrorKind.INTERNAL, "Cannot submit review")

    def update_review(self, booking_id: str, user: dict[str, Any], payload: Any) -> dict[str, Any]:
        """
        Update the rating and/or comment of an existing review.

        Only the supplied fields change; updatedAt is always refreshed.
        """
        try:
            booking = self._find_booking(booking_id)
            if not booking:
                return failure(ErrorKind.NOT_FOUND, f"No booking with the id of {booking_id}")

            if not can_access_booking(booking, user):
                return failure(
                    ErrorKind.UNAUTHORIZED, f"User {user['id']} is not authorized to update this review"
                )

            if not has_review(booking):
                return failure(ErrorKind.NOT_FOUND, "No review found for this booking")

            try:
                changes = ReviewUpdate.model_validate(payload or {}).model_dump(exclude_none=True)
            except ValidationError:
                return failure(ErrorKind.VALIDATION, "Rating must be between 1 and 5 and comment cannot be empty")

            if "comment" in changes:
                rejected = self._rejected(changes["comment"])
                if rejected:
                    return rejected

            update = {f"review.{field}": value for field, value in changes.items()}
            update["review.updatedAt"] = datetime.now(timezone.utc)

            updated = self._bookings().find_one_and_update(
                {"_id": booking["_id"], "review.rating": {"$ne": None}},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
            if updated is None:
                return failure(ErrorKind.NOT_FOUND, "No review found for this booking")

            logger.info(f"Review updated for booking {booking_id}")
            return {"success": True, "data": serialize_document(updated)}

        except Exception as e:
            logger.error(f"Error updating review for booking {booking_id}: {e}")
            return failure(ErrorKind.INTERNAL, "Cannot update review")

    def delete_review(self, booking_id: str, user: dict[str, Any]) -> dict[str, Any]:
        """Remove the embedded review from a booking."""
        try:
            booking = self._find_booking(booking_id)
            if not booking:
                return failure(ErrorKind.NOT_FOUND, f"No booking with the id of {booking_id}")

            if not can_access_booking(booking, user):
                return failure(
                    ErrorKind.UNAUTHORIZED, f"User {user['id']} is not authorized to delete this review"
                )

            if not has_review(booking):
                return failure(ErrorKind.NOT_FOUND, "No review found for this booking")

            self._bookings().update_one({"_id": booking["_id"]}, {"$unset": {"review": ""}})

            logger.info(f"Review deleted for booking {booking_id}")
            return {"success": True, "data": {}}

        except Exception as e:
            logger.error(f"Error deleting review for booking {booking_id}: {e}")
            return failure(ErrorKind.INTERNAL, "Cannot delete review")


# Singleton instance
review_service = ReviewService()
