"""FastAPI application for the car rental booking backend."""

import logging
from typing import Any

import redis
from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from carrental.config import API_PREFIX, JWT_EXPIRE_MINUTES
from carrental.db.redis_client import redis_client
from carrental.errors import STATUS_CODES
from carrental.security.auth import authorize, get_current_user
from carrental.services.auth_service import auth_service
from carrental.services.booking_service import booking_service
from carrental.services.provider_service import provider_service
from carrental.services.review_service import review_service

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Car Rental API",
    description="Car provider bookings with moderated reviews",
    version="1.0.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

router = APIRouter(prefix=API_PREFIX)


def respond(result: dict[str, Any], success_status: int = 200) -> JSONResponse:
    """Turn a service result into a JSON response."""
    if not result["success"]:
        return JSONResponse(
            status_code=STATUS_CODES[result["error"]],
            content={"success": False, "message": result["message"]},
        )
    return JSONResponse(status_code=success_status, content=jsonable_encoder(result))


def token_response(result: dict[str, Any], success_status: int = 200) -> JSONResponse:
    """Respond with the token in the body and in an httponly `token` cookie."""
    response = respond(result, success_status)
    if result["success"]:
        response.set_cookie("token", result["token"], max_age=JWT_EXPIRE_MINUTES * 60, httponly=True)
    return response


@app.middleware("http")
async def rate_limit(request: Request, call_next):
    """Reject clients that exceeded the request budget for the current window."""
    client_id = request.client.host if request.client else "anonymous"
    try:
        allowed = await run_in_threadpool(redis_client.rate_limit_check, client_id)
    except redis.RedisError as e:
        logger.warning(f"Rate limiter unavailable, letting request through: {e}")
        allowed = True
    if not allowed:
        return JSONResponse(status_code=429, content={"success": False, "message": "Too many requests"})
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    """Add common security headers. Registered last, so it also wraps rate-limited responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "SAMEORIGIN"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"
    response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"success": False, "message": "Server error"})


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "Car Rental API"}


# Auth Endpoints
@router.post("/auth/register")
def register(payload: Any = Body(None)):
    """Register a user and return a token."""
    return token_response(auth_service.register(payload), 201)


@router.post("/auth/login")
def login(payload: Any = Body(None)):
    """Log in and return a token."""
    return token_response(auth_service.login(payload))


@router.get("/auth/me")
def get_me(current_user: dict = Depends(get_current_user)):
    """Get the logged in user."""
    return respond({"success": True, "data": current_user})


@router.get("/auth/logout")
def logout(request: Request, current_user: dict = Depends(get_current_user)):
    """Revoke the current token."""
    response = respond(auth_service.logout(request.state.token_claims))
    response.delete_cookie("token")
    return response


# Provider Endpoints
@router.get("/providers")
def get_providers(request: Request):
    """List providers. Supports field[gt|gte|lt|lte|in]=value, select, sort, page and limit."""
    return respond(provider_service.list_providers(dict(request.query_params)))


@router.get("/providers/{provider_id}")
def get_provider(provider_id: str):
    return respond(provider_service.get_provider(provider_id))


@router.post("/providers")
def create_provider(payload: Any = Body(None), current_user: dict = Depends(authorize("admin"))):
    return respond(provider_service.create_provider(payload), 201)


@router.put("/providers/{provider_id}")
def update_provider(provider_id: str, payload: Any = Body(None), current_user: dict = Depends(authorize("admin"))):
    return respond(provider_service.update_provider(provider_id, payload))


@router.delete("/providers/{provider_id}")
def delete_provider(provider_id: str, current_user: dict = Depends(authorize("admin"))):
    """Delete a provider and every booking referencing it."""
    return respond(provider_service.delete_provider(provider_id))


# Booking Endpoints
@router.get("/bookings")
def get_bookings(request: Request, current_user: dict = Depends(get_current_user)):
    return respond(booking_service.list_bookings(current_user, dict(request.query_params)))


@router.get("/providers/{provider_id}/bookings")
def get_provider_bookings(provider_id: str, request: Request, current_user: dict = Depends(get_current_user)):
    return respond(booking_service.list_bookings(current_user, dict(request.query_params), provider_id))


@router.post("/providers/{provider_id}/bookings")
def create_booking(
    provider_id: str, payload: Any = Body(None), current_user: dict = Depends(authorize("admin", "user"))
):
    return respond(booking_service.create_booking(provider_id, current_user, payload), 201)


@router.get("/bookings/{booking_id}")
def get_booking(booking_id: str, current_user: dict = Depends(get_current_user)):
    return respond(booking_service.get_booking(booking_id, current_user))


@router.put("/bookings/{booking_id}")
def update_booking(
    booking_id: str, payload: Any = Body(None), current_user: dict = Depends(authorize("admin", "user"))
):
    return respond(booking_service.update_booking(booking_id, current_user, payload))


@router.delete("/bookings/{booking_id}")
def delete_booking(booking_id: str, current_user: dict = Depends(authorize("admin", "user"))):
    return respond(booking_service.delete_booking(booking_id, current_user))


# Review Endpoints
@router.post("/bookings/{booking_id}/review")
def add_review(booking_id: str, payload: Any = Body(None), current_user: dict = Depends(authorize("admin", "user"))):
    """Submit a review for a completed booking."""
    return respond(review_service.add_review(booking_id, current_user, payload), 201)


@router.put("/bookings/{booking_id}/review")
def update_review(
    booking_id: str, payload: Any = Body(None), current_user: dict = Depends(authorize("admin", "user"))
):
    """Update the review on a booking."""
    return respond(review_service.update_review(booking_id, current_user, payload))


@router.delete("/bookings/{booking_id}/review")
def delete_review(booking_id: str, current_user: dict = Depends(authorize("admin", "user"))):
    """Delete the review on a booking."""
    return respond(review_service.delete_review(booking_id, current_user))


app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
