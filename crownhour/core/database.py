import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from crownhour.core.config import settings

logger = logging.getLogger(__name__)

# Global MongoDB client
_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo(uri: Optional[str] = None, db_name: Optional[str] = None) -> AsyncIOMotorDatabase:
    """Connect to the MongoDB instance backing client state."""
    global _client, _database
    _client = AsyncIOMotorClient(uri or settings.MONGODB_URI)
    _database = _client[db_name or settings.MONGODB_DB_NAME]
    logger.info(f"Connected to MongoDB: {db_name or settings.MONGODB_DB_NAME}")
    return _database


async def close_mongo_connection():
    """Close MongoDB connection."""
    global _client, _database
    if _client:
        _client.close()
        _client = None
        _database = None
        logger.info("Closed MongoDB connection")

