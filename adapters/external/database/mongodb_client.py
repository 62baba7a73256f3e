"""
MongoDB access for api-autopilot: the configured client and the engine database.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from config.settings import settings


def get_mongo_client() -> AsyncIOMotorClient:
    """
    Pool size and timeouts come from settings. Datetimes come back
    timezone-aware (UTC) so stored pilots compare with the engine clock.
    """
    return AsyncIOMotorClient(
        settings.MONGODB_URI,
        appname=settings.APP_NAME,
        uuidRepresentation="standard",
        tz_aware=True,
        maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
        serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        connectTimeoutMS=settings.MONGODB_CONNECT_TIMEOUT_MS,
        socketTimeoutMS=settings.MONGODB_SOCKET_TIMEOUT_MS,
    )


def get_database(client: AsyncIOMotorClient, name: Optional[str] = None) -> AsyncIOMotorDatabase:
    return client[name or settings.MONGODB_DB_NAME]
