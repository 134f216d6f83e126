#!/usr/bin/env python3
"""
Car Rental Backend Startup Script
This script starts the FastAPI server.
"""

import logging

import uvicorn

from carrental.config import API_PREFIX

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info("Starting Car Rental Backend...")
    logger.info("Available endpoints:")
    logger.info("  - Health Check: GET /health")
    logger.info(f"  - Auth: POST {API_PREFIX}/auth/register, POST {API_PREFIX}/auth/login")
    logger.info(f"  - Providers: GET/POST/PUT/DELETE {API_PREFIX}/providers")
    logger.info(f"  - Bookings: GET/POST/PUT/DELETE {API_PREFIX}/bookings")
    logger.info(f"  - Reviews: POST/PUT/DELETE {API_PREFIX}/bookings/{{booking_id}}/review")
    logger.info("  - API Docs: http://localhost:8000/docs")

    uvicorn.run(
        "carrental.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
