"""
Infrastructure Setup Script for the Car Rental Backend
This script checks the database connections and creates indexes.
"""

import logging

from carrental.db.mongodb_client import mongo_client
from carrental.db.redis_client import redis_client

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def check_database_connections():
    """Check if all database connections are working."""
    logger.info("Checking database connections...")

    # Check MongoDB
    try:
        mongo_client.ping()
        logger.info("MongoDB connection: OK")
    except Exception as e:
        logger.error(f"MongoDB connection error: {e}")
        return False

    # Check Redis
    try:
        redis_client.client.ping()
        logger.info("Redis connection: OK")
    except Exception as e:
        logger.error(f"Redis connection error: {e}")
        return False

    return True


def report_collections():
    """Log document counts for each collection."""
    for name in ("providers", "bookings", "users"):
        count = mongo_client.get_collection(name).count_documents({})
        logger.info(f"{name}: {count} documents")


def main():
    """Main setup function."""
    logger.info("Setting up Car Rental Backend...")

    if not check_database_connections():
        logger.error("Database connection check failed!")
        return False

    mongo_client.create_indexes()
    logger.info("Indexes created")
    report_collections()

    logger.info("Setup complete! Ready to start the server.")
    return True


if __name__ == "__main__":
    main()
