"""
MongoDB Database Configuration and Connection
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from tripsync.core.config import DATABASE_NAME, DB_TIMEOUT_MS, MONGODB_URI

logger = logging.getLogger(__name__)

# Global database client
_client = None
_database = None


def get_database():
    """
    Get MongoDB database instance
    Creates a new connection if one doesn't exist
    """
    global _client, _database

    if _database is None:
        if not MONGODB_URI:
            raise ValueError("MONGODB_URI environment variable is not set")

        _client = AsyncIOMotorClient(
            MONGODB_URI,
            server_api=ServerApi("1"),
            serverSelectionTimeoutMS=DB_TIMEOUT_MS,
            connectTimeoutMS=DB_TIMEOUT_MS,
            socketTimeoutMS=DB_TIMEOUT_MS,
        )
        _database = _client[DATABASE_NAME]

        logger.info("Connected to MongoDB database: %s", DATABASE_NAME)

    return _database


async def init_indexes():
    """
    Initialize database indexes for query performance and uniqueness
    """
    try:
        await get_users_collection().create_index("uid", unique=True)
        await get_users_collection().create_index("email")

        await get_trips_collection().create_index("members.id")
        await get_trips_collection().create_index("organizerId")

        # (day, title) is unique per trip; title_key is the lower-cased title
        await get_activities_collection().create_index(
            [("trip_id", ASCENDING), ("day", ASCENDING), ("title_key", ASCENDING)],
            unique=True,
            name="uniq_trip_day_title",
        )

        await get_expenses_collection().create_index([("trip_id", ASCENDING), ("createdAt", ASCENDING)])
        await get_messages_collection().create_index([("trip_id", ASCENDING), ("timestamp", ASCENDING)])

        await get_invites_collection().create_index([("email", ASCENDING), ("status", ASCENDING)])
        await get_invites_collection().create_index("tripId")

        logger.info("Database indexes created successfully")
    except PyMongoError as e:
        logger.warning("Index creation warning: %s", e)


async def close_database_connection():
    """
    Close the MongoDB connection
    Call this when shutting down the application
    """
    global _client, _database

    if _client:
        _client.close()
        _client = None
        _database = None
        logger.info("Closed MongoDB connection")


async def test_connection():
    """
    Test the MongoDB connection
    """
    try:
        db = get_database()
        await db.command("ping")
        logger.info("MongoDB connection successful")
        return True
    except (PyMongoError, ValueError) as e:
        logger.error("MongoDB connection failed: %s", e)
        return False


def get_users_collection():
    return get_database().users


def get_trips_collection():
    return get_database().trips


def get_activities_collection():
    return get_database().activities


def get_expenses_collection():
    return get_database().expenses


def get_messages_collection():
    return get_database().messages


def get_invites_collection():
    return get_database().invites
