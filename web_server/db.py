import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from config import MONGODB_DB, MONGODB_URL

logger = logging.getLogger(__name__)

client: AsyncIOMotorClient | None = None
db: AsyncIOMotorDatabase | None = None


async def connect_db() -> AsyncIOMotorDatabase:
    global client, db
    client = AsyncIOMotorClient(MONGODB_URL)
    db = client[MONGODB_DB]

    # uid is the public identifier for every document, emails must be unique per role
    await db.students.create_index([("uid", ASCENDING)], unique=True)
    await db.students.create_index([("email", ASCENDING)], unique=True)
    await db.advisors.create_index([("uid", ASCENDING)], unique=True)
    await db.advisors.create_index([("email", ASCENDING)], unique=True)
    await db.matches.create_index([("match_id", ASCENDING)], unique=True)
    await db.matches.create_index([("student_uid", ASCENDING)])
    await db.matches.create_index([("advisor_uid", ASCENDING)])

    logger.info("Connected to MongoDB database %r", MONGODB_DB)
    return db


async def close_db() -> None:
    global client
    if client:
        client.close()


async def ping_db() -> bool:
    """True when the server answers a ping."""
    if db is None:
        return False
    try:
        await db.command("ping")
        return True
    except Exception:
        logger.warning("MongoDB ping failed", exc_info=True)
        return False


def get_db() -> AsyncIOMotorDatabase:
    assert db is not None, "Database not connected. Call connect_db() first."
    return db
