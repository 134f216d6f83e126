"""Car provider management service."""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from carrental.db.mongodb_client import mongo_client
from carrental.errors import ErrorKind, failure, format_validation_error
from carrental.models.providers import FIELD_TYPES, ProviderCreate, ProviderUpdate
from carrental.services.query_service import query_service
from carrental.utils.serializers import serialize_document, to_object_id

logger = logging.getLogger(__name__)


class ProviderService:
    def __init__(self):
        self.query_service = query_service

    def _providers(self):
        return mongo_client.get_collection("providers")

    def _bookings(self):
        return mongo_client.get_collection("bookings")

    def _not_found(self, provider_id: str) -> dict[str, Any]:
        return failure(ErrorKind.NOT_FOUND, f"No car provider with the id of {provider_id}")

    def _populate_bookings(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Attach each provider's bookings (computed on read, never stored)."""
        ids = [oid for oid in (to_object_id(item.get("id")) for item in items) if oid is not None]
        by_provider = defaultdict(list)
        for booking in self._bookings().find({"provider": {"$in": ids}}):
            by_provider[str(booking["provider"])].append(serialize_document(booking))
        for item in items:
            item["bookings"] = by_provider.get(item.get("id"), [])
        return items

    def list_providers(self, params: dict[str, Any]) -> dict[str, Any]:
        """
        List providers with filtering, field selection, sorting and pagination.

        Args:
            params: Query parameters, e.g. {"name[in]": "A,B", "sort": "-name", "page": "2"}

        Returns:
            Dict with count, pagination and the page of providers
        """
        try:
            result = self.query_service.run_query(
                self._providers(), params, field_types=FIELD_TYPES, populate=self._populate_bookings
            )
        except Exception as e:
            logger.error(f"Error listing providers: {e}")
            return failure(ErrorKind.VALIDATION, str(e))

        return {
            "success": True,
            "count": len(result["items"]),
            "pagination": result["pagination"],
            "data": result["items"],
        }

    def get_provider(self, provider_id: str) -> dict[str, Any]:
        oid = to_object_id(provider_id)
        if oid is None:
            return self._not_found(provider_id)
        try:
            provider = self._providers().find_one({"_id": oid})
        except Exception as e:
            logger.error(f"Error fetching provider {provider_id}: {e}")
            return failure(ErrorKind.VALIDATION, str(e))
        if not provider:
            return self._not_found(provider_id)
        return {"success": True, "data": serialize_document(provider)}

    def create_provider(self, payload: Any) -> dict[str, Any]:
        try:
            provider_in = ProviderCreate.model_validate(payload)
        except ValidationError as e:
            return failure(ErrorKind.VALIDATION, format_validation_error(e))

        doc = {**provider_in.model_dump(), "createdAt": datetime.now(timezone.utc)}
        try:
            result = self._providers().insert_one(doc)
        except DuplicateKeyError:
            return failure(ErrorKind.VALIDATION, f"A car provider named '{provider_in.name}' already exists")
        except Exception as e:
            logger.error(f"Error creating provider: {e}")
            return failure(ErrorKind.VALIDATION, str(e))

        doc["_id"] = result.inserted_id
        logger.info(f"Provider created: {result.inserted_id}")
        return {"success": True, "data": serialize_document(doc)}

    def update_provider(self, provider_id: str, payload: Any) -> dict[str, Any]:
        oid = to_object_id(provider_id)
        if oid is None:
            return self._not_found(provider_id)
        try:
            changes = ProviderUpdate.model_validate(payload or {}).model_dump(exclude_none=True)
        except ValidationError as e:
            return failure(ErrorKind.VALIDATION, format_validation_error(e))

        try:
            if changes:
                provider = self._providers().find_one_and_update(
                    {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
                )
            else:
                provider = self._providers().find_one({"_id": oid})
        except DuplicateKeyError:
            return failure(ErrorKind.VALIDATION, f"A car provider named '{changes.get('name')}' already exists")
        except Exception as e:
            logger.error(f"Error updating provider {provider_id}: {e}")
            return failure(ErrorKind.VALIDATION, str(e))

        if not provider:
            return self._not_found(provider_id)
        logger.info(f"Provider updated: {provider_id}")
        return {"success": True, "data": serialize_document(provider)}

    def delete_provider(self, provider_id: str) -> dict[str, Any]:
        """Delete a provider after deleting every booking that references it."""
        oid = to_object_id(provider_id)
        if oid is None:
            return self._not_found(provider_id)
        try:
            provider = self._providers().find_one({"_id": oid})
            if not provider:
                return self._not_found(provider_id)

            # Bookings go first so none is left pointing at a missing provider
            removed = self._bookings().delete_many({"provider": oid})
            self._providers().delete_one({"_id": oid})
        except Exception as e:
            logger.error(f"Error deleting provider {provider_id}: {e}")
            return failure(ErrorKind.VALIDATION, str(e))

        logger.info(f"Provider {provider_id} deleted with {removed.deleted_count} bookings")
        return {"success": True, "data": {}}


# Singleton instance
provider_service = ProviderService()
