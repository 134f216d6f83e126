"""Booking management service."""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError
from pymongo import ReturnDocument

from carrental.db.mongodb_client import mongo_client
from carrental.errors import ErrorKind, failure, format_validation_error
from carrental.models.bookings import FIELD_TYPES, BookingCreate, BookingUpdate
from carrental.services.query_service import query_service
from carrental.utils.serializers import serialize_document, to_object_id

logger = logging.getLogger(__name__)

PROVIDER_SUMMARY_FIELDS = {"name": 1, "address": 1, "tel": 1}


def can_access_booking(booking: dict[str, Any], user: dict[str, Any]) -> bool:
    """Only the owning user or an admin may act on a booking."""
    return str(booking.get("user")) == str(user.get("id")) or user.get("role") == "admin"


class BookingService:
    def __init__(self):
        self.query_service = query_service

    def _bookings(self):
        return mongo_client.get_collection("bookings")

    def _providers(self):
        return mongo_client.get_collection("providers")

    def _populate_providers(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Replace provider ids with a summary of the provider document."""
        ids = {to_object_id(item["provider"]) for item in items if item.get("provider")}
        ids.discard(None)
        if not ids:
            return items
        providers = {
            str(doc["_id"]): serialize_document(doc)
            for doc in self._providers().find({"_id": {"$in": list(ids)}}, PROVIDER_SUMMARY_FIELDS)
        }
        for item in items:
            if isinstance(item.get("provider"), str) and item["provider"] in providers:
                item["provider"] = providers[item["provider"]]
        return items

    def _find_booking(self, booking_id: str) -> dict[str, Any] | None:
        oid = to_object_id(booking_id)
        if oid is None:
            return None
        return self._bookings().find_one({"_id": oid})

    def list_bookings(
        self, user: dict[str, Any], params: dict[str, Any], provider_id: str | None = None
    ) -> dict[str, Any]:
        """
        List bookings visible to the user.

        Admins see every booking, other users only their own.
        """
        base_filter: dict[str, Any] = {}
        if user.get("role") != "admin":
            base_filter["user"] = to_object_id(user["id"])
        if provider_id is not None:
            provider_oid = to_object_id(provider_id)
            if provider_oid is None:
                return failure(ErrorKind.NOT_FOUND, f"No car provider with the id of {provider_id}")
            base_filter["provider"] = provider_oid

        try:
            result = self.query_service.run_query(
                self._bookings(),
                params,
                field_types=FIELD_TYPES,
                base_filter=base_filter,
                populate=self._populate_providers,
            )
        except Exception as e:
            logger.error(f"Error listing bookings: {e}")
            return failure(ErrorKind.VALIDATION, str(e))

        return {
            "success": True,
            "count": len(result["items"]),
            "pagination": result["pagination"],
            "data": result["items"],
        }

    def get_booking(self, booking_id: str, user: dict[str, Any]) -> dict[str, Any]:
        try:
            booking = self._find_booking(booking_id)
            if not booking:
                return failure(ErrorKind.NOT_FOUND, f"No booking with the id of {booking_id}")
            if not can_access_booking(booking, user):
                return failure(
                    ErrorKind.UNAUTHORIZED, f"User {user['id']} is not authorized to view this booking"
                )
            data = self._populate_providers([serialize_document(booking)])[0]
            return {"success": True, "data": data}

        except Exception as e:
            logger.error(f"Error fetching booking {booking_id}: {e}")
            return failure(ErrorKind.INTERNAL, "Cannot find booking")

    def create_booking(self, provider_id: str, user: dict[str, Any], payload: Any) -> dict[str, Any]:
        """
        Book a provider for the current user.

        Args:
            provider_id: Provider ID
            user: Authenticated user, becomes the booking owner
            payload: Request body with bookDate

        Returns:
            Dict with operation result and the new booking
        """
        try:
            provider_oid = to_object_id(provider_id)
            provider = self._providers().find_one({"_id": provider_oid}) if provider_oid else None
            if not provider:
                return failure(ErrorKind.NOT_FOUND, f"No car provider with the id of {provider_id}")

            try:
                booking_in = BookingCreate.model_validate(payload)
            except ValidationError as e:
                return failure(ErrorKind.VALIDATION, format_validation_error(e))

            doc = {
                "bookDate": booking_in.bookDate,
                "user": to_object_id(user["id"]),
                "provider": provider_oid,
                "status": "active",
                "createdAt": datetime.now(timezone.utc),
            }
            result = self._bookings().insert_one(doc)
            doc["_id"] = result.inserted_id

            logger.info(f"Booking {result.inserted_id} created by user {user['id']}")
            return {"success": True, "data": serialize_document(doc)}

        except Exception as e:
            logger.error(f"Error creating booking: {e}")
            return failure(ErrorKind.INTERNAL, "Cannot create booking")

    def update_booking(self, booking_id: str, user: dict[str, Any], payload: Any) -> dict[str, Any]:
        """Change the booking date or, for admins, the status. The review is not writable here."""
        try:
            booking = self._find_booking(booking_id)
            if not booking:
                return failure(ErrorKind.NOT_FOUND, f"No booking with the id of {booking_id}")
            if not can_access_booking(booking, user):
                return failure(
                    ErrorKind.UNAUTHORIZED, f"User {user['id']} is not authorized to update this booking"
                )

            try:
                changes = BookingUpdate.model_validate(payload or {}).model_dump(exclude_none=True)
            except ValidationError as e:
                return failure(ErrorKind.VALIDATION, format_validation_error(e))

            if "status" in changes and user.get("role") != "admin":
                return failure(
                    ErrorKind.UNAUTHORIZED, f"User {user['id']} is not authorized to change the booking status"
                )

            if not changes:
                return {"success": True, "data": serialize_document(booking)}

            updated = self._bookings().find_one_and_update(
                {"_id": booking["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
            )
            if updated is None:
                return failure(ErrorKind.NOT_FOUND, f"No booking with the id of {booking_id}")

            logger.info(f"Booking {booking_id} updated: {sorted(changes)}")
            return {"success": True, "data": serialize_document(updated)}

        except Exception as e:
            logger.error(f"Error updating booking {booking_id}: {e}")
            return failure(ErrorKind.INTERNAL, "Cannot update booking")

    def delete_booking(self, booking_id: str, user: dict[str, Any]) -> dict[str, Any]:
        try:
            booking = self._find_booking(booking_id)
            if not booking:
                return failure(ErrorKind.NOT_FOUND, f"No booking with the id of {booking_id}")
            if not can_access_booking(booking, user):
                return failure(
                    ErrorKind.UNAUTHORIZED, f"User {user['id']} is not authorized to delete this booking"
                )

            self._bookings().delete_one({"_id": booking["_id"]})

            logger.info(f"Booking {booking_id} deleted")
            return {"success": True, "data": {}}

        except Exception as e:
            logger.error(f"Error deleting booking {booking_id}: {e}")
            return failure(ErrorKind.INTERNAL, "Cannot delete booking")


# Singleton instance
booking_service = BookingService()
