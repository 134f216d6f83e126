"""Tests for BookingService."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId

from carrental.errors import ErrorKind
from carrental.services.booking_service import BookingService, can_access_booking


class TestBookingService:
    @pytest.fixture
    def booking_service(self):
        return BookingService()

    @pytest.fixture
    def collections(self):
        with patch("carrental.services.booking_service.mongo_client") as mock_mongo:
            cols = {"providers": MagicMock(name="providers"), "bookings": MagicMock(name="bookings")}
            mock_mongo.get_collection.side_effect = lambda name: cols[name]
            yield cols

    @pytest.fixture
    def user(self):
        return {"id": str(ObjectId()), "role": "user"}

    @pytest.fixture
    def admin(self):
        return {"id": str(ObjectId()), "role": "admin"}

    @pytest.fixture
    def sample_booking(self, user):
        return {
            "_id": ObjectId(),
            "bookDate": datetime(2024, 7, 1, tzinfo=timezone.utc),
            "user": ObjectId(user["id"]),
            "provider": ObjectId(),
            "status": "active",
        }

    def test_can_access_booking(self, user, admin, sample_booking):
        assert can_access_booking(sample_booking, user) is True
        assert can_access_booking(sample_booking, admin) is True
        assert can_access_booking(sample_booking, {"id": str(ObjectId()), "role": "user"}) is False

    def test_list_bookings_scoped_to_user(self, booking_service, collections, user):
        """Test non-admin users only see their own bookings."""
        bookings = collections["bookings"]
        bookings.count_documents.return_value = 0
        bookings.find.return_value.sort.return_value.skip.return_value.limit.return_value = []

        result = booking_service.list_bookings(user, {"status": "active"})

        assert result["success"] is True
        bookings.find.assert_called_once_with({"status": "active", "user": ObjectId(user["id"])}, None)

    def test_list_bookings_admin_sees_all(self, booking_service, collections, admin, sample_booking):
        """Test admins are not scoped and providers are populated."""
        bookings = collections["bookings"]
        bookings.count_documents.return_value = 1
        bookings.find.return_value.sort.return_value.skip.return_value.limit.return_value = [sample_booking]
        collections["providers"].find.return_value = [{"_id": sample_booking["provider"], "name": "Hertz"}]

        result = booking_service.list_bookings(admin, {})

        bookings.find.assert_called_once_with({}, None)
        assert result["data"][0]["provider"] == {"id": str(sample_booking["provider"]), "name": "Hertz"}

    def test_create_booking(self, booking_service, collections, user):
        """Test a new booking belongs to the caller and starts active."""
        provider_id = ObjectId()
        collections["providers"].find_one.return_value = {"_id": provider_id, "name": "Hertz"}
        collections["bookings"].insert_one.return_value = MagicMock(inserted_id=ObjectId())

        result = booking_service.create_booking(str(provider_id), user, {"bookDate": "2024-07-01T09:00:00Z"})

        assert result["success"] is True
        doc = collections["bookings"].insert_one.call_args.args[0]
        assert doc["user"] == ObjectId(user["id"])
        assert doc["provider"] == provider_id
        assert doc["status"] == "active"
        assert "review" not in doc

    def test_create_booking_provider_missing(self, booking_service, collections, user):
        collections["providers"].find_one.return_value = None

        result = booking_service.create_booking(str(ObjectId()), user, {"bookDate": "2024-07-01T09:00:00Z"})

        assert result["error"] == ErrorKind.NOT_FOUND
        collections["bookings"].insert_one.assert_not_called()

    def test_create_booking_invalid_date(self, booking_service, collections, user):
        collections["providers"].find_one.return_value = {"_id": ObjectId()}

        result = booking_service.create_booking(str(ObjectId()), user, {"bookDate": "tomorrow-ish"})

        assert result["error"] == ErrorKind.VALIDATION

    def test_user_cannot_change_status(self, booking_service, collections, user, sample_booking):
        """Test only admins can mark a booking completed."""
        collections["bookings"].find_one.return_value = sample_booking

        result = booking_service.update_booking(str(sample_booking["_id"]), user, {"status": "completed"})

        assert result["error"] == ErrorKind.UNAUTHORIZED
        collections["bookings"].find_one_and_update.assert_not_called()

    def test_admin_completes_booking(self, booking_service, collections, admin, sample_booking):
        collections["bookings"].find_one.return_value = sample_booking
        collections["bookings"].find_one_and_update.return_value = {**sample_booking, "status": "completed"}

        result = booking_service.update_booking(str(sample_booking["_id"]), admin, {"status": "completed"})

        assert result["data"]["status"] == "completed"
        _, update = collections["bookings"].find_one_and_update.call_args.args
        assert update == {"$set": {"status": "completed"}}

    def test_update_ignores_review_field(self, booking_service, collections, user, sample_booking):
        """Test the embedded review cannot be written through a booking update."""
        collections["bookings"].find_one.return_value = sample_booking

        result = booking_service.update_booking(str(sample_booking["_id"]), user, {"review": {"rating": 5}})

        assert result["success"] is True
        collections["bookings"].find_one_and_update.assert_not_called()

    def test_delete_booking_not_owner(self, booking_service, collections, sample_booking):
        collections["bookings"].find_one.return_value = sample_booking

        result = booking_service.delete_booking(str(sample_booking["_id"]), {"id": str(ObjectId()), "role": "user"})

        assert result["error"] == ErrorKind.UNAUTHORIZED
        collections["bookings"].delete_one.assert_not_called()

    def test_delete_booking(self, booking_service, collections, user, sample_booking):
        collections["bookings"].find_one.return_value = sample_booking

        result = booking_service.delete_booking(str(sample_booking["_id"]), user)

        assert result == {"success": True, "data": {}}
        collections["bookings"].delete_one.assert_called_once_with({"_id": sample_booking["_id"]})
