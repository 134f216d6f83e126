"""User registration, login and token handling."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import redis
from jose import jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from carrental.config import JWT_ALGORITHM, JWT_EXPIRE_MINUTES, JWT_SECRET
from carrental.db.mongodb_client import mongo_client
from carrental.db.redis_client import redis_client
from carrental.errors import ErrorKind, failure, format_validation_error
from carrental.models.users import UserLogin, UserRegister
from carrental.utils.serializers import serialize_document, to_object_id

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


class AuthService:
    def _users(self):
        return mongo_client.get_collection("users")

    def create_access_token(self, user: dict[str, Any], expires_delta: timedelta | None = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=JWT_EXPIRE_MINUTES))
        to_encode = {
            "sub": str(user["_id"]),
            "role": user.get("role", "user"),
            "exp": expire,
            "jti": str(uuid4()),
            "iat": datetime.now(timezone.utc),
        }
        return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and verify a token. Raises jose.JWTError when invalid or expired."""
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        user = self._users().find_one({"_id": oid})
        return serialize_document(user) if user else None

    def register(self, payload: Any) -> dict[str, Any]:
        try:
            user_in = UserRegister.model_validate(payload)
        except ValidationError as e:
            return failure(ErrorKind.VALIDATION, format_validation_error(e))

        doc = user_in.model_dump()
        doc["email"] = doc["email"].lower()
        doc["password"] = get_password_hash(user_in.password)
        doc["createdAt"] = datetime.now(timezone.utc)
        try:
            result = self._users().insert_one(doc)
        except DuplicateKeyError:
            return failure(ErrorKind.VALIDATION, "Email already registered")
        doc["_id"] = result.inserted_id

        logger.info(f"User registered: {doc['email']}")
        return {"success": True, "token": self.create_access_token(doc)}

    def login(self, payload: Any) -> dict[str, Any]:
        try:
            credentials = UserLogin.model_validate(payload)
        except ValidationError:
            return failure(ErrorKind.VALIDATION, "Please provide an email and password")

        user = self._users().find_one({"email": credentials.email.lower()})
        if not user or not verify_password(credentials.password, user["password"]):
            return failure(ErrorKind.UNAUTHORIZED, "Invalid credentials")

        logger.info(f"User logged in: {user['email']}")
        return {"success": True, "token": self.create_access_token(user)}

    def logout(self, claims: dict[str, Any]) -> dict[str, Any]:
        """Revoke the token until its own expiry."""
        ttl = int(claims["exp"] - datetime.now(timezone.utc).timestamp())
        redis_client.revoke_token(claims["jti"], ttl)
        return {"success": True, "data": {}}

    def is_revoked(self, claims: dict[str, Any]) -> bool:
        """A token counts as revoked while the revocation list cannot be read."""
        try:
            return redis_client.is_token_revoked(claims["jti"])
        except redis.RedisError as e:
            logger.warning(f"Revocation list unavailable, rejecting token: {e}")
            return True


# Singleton instance
auth_service = AuthService()
