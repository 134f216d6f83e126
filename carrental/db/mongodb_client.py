"""MongoDB connection and utilities."""

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from carrental.config import MONGO_CONFIG


class MongoDBClient:
    def __init__(self):
        self.client = MongoClient(MONGO_CONFIG["uri"])
        self.db: Database = self.client[MONGO_CONFIG["database"]]

    def get_collection(self, name: str):
        """Get a MongoDB collection."""
        return self.db[name]

    def create_indexes(self):
        """Create necessary indexes."""
        # Providers indexes
        self.db.get_collection("providers").create_index([("name", ASCENDING)], unique=True)
        # Bookings indexes
        self.db.get_collection("bookings").create_index("provider")
        self.db.get_collection("bookings").create_index("user")
        # Users indexes
        self.db.get_collection("users").create_index("email", unique=True)

    def ping(self) -> bool:
        """Check the server is reachable."""
        self.client.admin.command("ping")
        return True


# Singleton instance
mongo_client = MongoDBClient()
