# printdesk/db/mongo_client.py
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from printdesk.core.config import settings
from printdesk.core.logging_setup import logger

_mongo_client: AsyncIOMotorClient | None = None
_mongo_db: AsyncIOMotorDatabase | None = None


def _redacted_host(uri: str) -> str:
    return uri.split("@")[-1].split("/")[0] if "@" in uri else uri.split("//")[-1].split("/")[0]


async def connect_to_mongo():
    """Establishes connection to MongoDB using settings."""
    global _mongo_client, _mongo_db
    if _mongo_client is not None and _mongo_db is not None:
        logger.debug("MongoDB connection already established.")
        return
    db_name = settings.MONGO_DB_NAME
    logger.info(f"Connecting to MongoDB: {_redacted_host(settings.MONGODB_URI)} / DB: {db_name}")
    try:
        _mongo_client = AsyncIOMotorClient(
            settings.MONGODB_URI,
            serverSelectionTimeoutMS=settings.MONGO_SERVER_SELECTION_TIMEOUT_MS,
            uuidRepresentation="standard",
            tz_aware=True,
        )
        _mongo_db = _mongo_client[db_name]
        await _mongo_client.admin.command("ping")
        logger.success(f"Connected to MongoDB database '{db_name}' successfully.")
    except Exception as e:
        logger.critical(f"FATAL: Failed to connect to MongoDB: {e}")
        _mongo_client = None
        _mongo_db = None
        raise RuntimeError(f"Failed to connect to MongoDB: {e}") from e


async def close_mongo_connection():
    """Closes the MongoDB client connection."""
    global _mongo_client, _mongo_db
    if _mongo_client is not None:
        logger.info("Closing MongoDB connection...")
        _mongo_client.close()
        _mongo_client = None
        _mongo_db = None
        logger.info("MongoDB connection closed.")


async def ensure_indexes(db: AsyncIOMotorDatabase):
    """Creates the indexes the lifecycle queries rely on."""
    await db.orders.create_index("orderId", unique=True)
    await db.orders.create_index([("status", 1), ("createdAt", -1)])
    await db.orders.create_index([("assignedAgentId", 1), ("status", 1)])
    await db.orders.create_index("delivery.type")
    await db.agents.create_index([("approved", 1), ("account_standing", 1)])
    await db.agents.create_index("status")
    await db.delivery_pricing.create_index([("isActive", 1), ("maxDistanceKm", 1)])
    if settings.AUDIT_LOG_ENABLED:
        audit = db[settings.AUDIT_LOG_MONGO_COLLECTION]
        await audit.create_index("timestamp")
        await audit.create_index([("entity_type", 1), ("entity_id", 1)])
    logger.info("Database indexes checked/created.")


def get_database() -> AsyncIOMotorDatabase:
    """Provides the singleton database instance. Raises RuntimeError if not connected."""
    if _mongo_db is None:
        logger.error("Database instance is not available.")
        raise RuntimeError("Database not connected. Ensure connect_to_mongo() was called successfully.")
    return _mongo_db
