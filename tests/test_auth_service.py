"""Tests for AuthService and the auth dependencies."""

import json
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
import redis
from bson import ObjectId
from fastapi import HTTPException
from jose import JWTError

from carrental.errors import ErrorKind, failure
from carrental.main import respond
from carrental.security.auth import authorize
from carrental.services.auth_service import AuthService, get_password_hash


class TestAuthService:
    @pytest.fixture
    def auth_service(self):
        return AuthService()

    @pytest.fixture
    def mock_users(self):
        with patch("carrental.services.auth_service.mongo_client") as mock_mongo:
            collection = MagicMock()
            mock_mongo.get_collection.return_value = collection
            yield collection

    @pytest.fixture
    def mock_redis(self):
        with patch("carrental.services.auth_service.redis_client") as mock_redis:
            yield mock_redis

    def test_register(self, auth_service, mock_users):
        """Test registration stores a hashed password and returns a token."""
        user_id = ObjectId()
        mock_users.insert_one.return_value = MagicMock(inserted_id=user_id)

        result = auth_service.register(
            {"name": "Jane", "email": "Jane@Example.com", "tel": "0800", "password": "secret123"}
        )

        assert result["success"] is True
        doc = mock_users.insert_one.call_args.args[0]
        assert doc["email"] == "jane@example.com"
        assert doc["password"] != "secret123"
        assert doc["role"] == "user"
        claims = auth_service.decode_token(result["token"])
        assert claims["sub"] == str(user_id)
        assert claims["role"] == "user"

    def test_register_invalid(self, auth_service, mock_users):
        result = auth_service.register({"name": "Jane", "email": "not-an-email", "tel": "0800", "password": "x"})

        assert result["error"] == ErrorKind.VALIDATION
        mock_users.insert_one.assert_not_called()

    @pytest.mark.parametrize("email", ["jane@exa..mple.com", "jane@-bad-.com", "<x>@y.z"])
    def test_register_rejects_malformed_email(self, auth_service, mock_users, email):
        result = auth_service.register({"name": "Jane", "email": email, "tel": "0800", "password": "secret123"})

        assert result["error"] == ErrorKind.VALIDATION
        assert "email" in result["message"]
        mock_users.insert_one.assert_not_called()

    def test_register_escapes_markup(self, auth_service, mock_users):
        mock_users.insert_one.return_value = MagicMock(inserted_id=ObjectId())

        auth_service.register(
            {"name": "<b>Jane</b>", "email": "jane@example.com", "tel": "0800", "password": "secret123"}
        )

        doc = mock_users.insert_one.call_args.args[0]
        assert doc["name"] == "&lt;b&gt;Jane&lt;/b&gt;"

    def test_login(self, auth_service, mock_users):
        mock_users.find_one.return_value = {
            "_id": ObjectId(),
            "email": "jane@example.com",
            "role": "admin",
            "password": get_password_hash("secret123"),
        }

        result = auth_service.login({"email": "jane@example.com", "password": "secret123"})

        assert result["success"] is True
        assert auth_service.decode_token(result["token"])["role"] == "admin"

    def test_login_wrong_password(self, auth_service, mock_users):
        mock_users.find_one.return_value = {
            "_id": ObjectId(),
            "email": "jane@example.com",
            "password": get_password_hash("secret123"),
        }

        result = auth_service.login({"email": "jane@example.com", "password": "wrong"})

        assert result["error"] == ErrorKind.UNAUTHORIZED

    def test_expired_token(self, auth_service):
        token = auth_service.create_access_token({"_id": ObjectId()}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            auth_service.decode_token(token)

    def test_logout_revokes_token(self, auth_service, mock_redis):
        token = auth_service.create_access_token({"_id": ObjectId()})
        claims = auth_service.decode_token(token)

        result = auth_service.logout(claims)

        assert result["success"] is True
        jti, ttl = mock_redis.revoke_token.call_args.args
        assert jti == claims["jti"]
        assert ttl > 0

    def test_is_revoked(self, auth_service, mock_redis):
        mock_redis.is_token_revoked.return_value = False

        assert auth_service.is_revoked({"jti": "abc"}) is False
        mock_redis.is_token_revoked.assert_called_once_with("abc")

    def test_is_revoked_when_redis_unavailable(self, auth_service, mock_redis):
        """Test tokens are rejected while the revocation list cannot be read."""
        mock_redis.is_token_revoked.side_effect = redis.ConnectionError("down")

        assert auth_service.is_revoked({"jti": "abc"}) is True


class TestHttpHelpers:
    def test_authorize_rejects_role(self):
        checker = authorize("admin")

        with pytest.raises(HTTPException) as exc_info:
            checker(current_user={"id": "1", "role": "user"})

        assert exc_info.value.status_code == 403

    def test_authorize_accepts_role(self):
        user = {"id": "1", "role": "user"}

        assert authorize("admin", "user")(current_user=user) is user

    @pytest.mark.parametrize(
        "kind,status_code",
        [
            (ErrorKind.NOT_FOUND, 404),
            (ErrorKind.UNAUTHORIZED, 401),
            (ErrorKind.INVALID_STATE, 400),
            (ErrorKind.CONFLICT, 400),
            (ErrorKind.MODERATION_REJECTED, 400),
            (ErrorKind.INTERNAL, 500),
        ],
    )
    def test_respond_failure(self, kind, status_code):
        """Test service failures become {success, message} bodies with the mapped status."""
        response = respond(failure(kind, "nope"))

        assert response.status_code == status_code
        assert json.loads(response.body) == {"success": False, "message": "nope"}

    def test_respond_success(self):
        response = respond({"success": True, "data": {"id": "1"}}, 201)

        assert response.status_code == 201
        assert json.loads(response.body) == {"success": True, "data": {"id": "1"}}
