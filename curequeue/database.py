from curequeue.config import get_settings
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

settings = get_settings()

_mongo_client: AsyncIOMotorClient | None = None


def document_models() -> list:
    """Every Beanie document the app registers."""
    from curequeue.models import User, Appointment, QueueCounter, HomeVisit, Review

    return [User, Appointment, QueueCounter, HomeVisit, Review]


async def init_db() -> None:
    """Initialize MongoDB (Beanie) and register document models."""
    global _mongo_client
    _mongo_client = AsyncIOMotorClient(settings.MONGODB_URI)
    # Database name comes from the URI path, "curequeue" when it has none
    database = _mongo_client.get_default_database("curequeue")
    await init_beanie(database=database, document_models=document_models())


async def ping_db() -> bool:
    """Check MongoDB connectivity."""
    if not _mongo_client:
        return False
    try:
        await _mongo_client.admin.command("ping")
        return True
    except Exception:
        return False


def close_db() -> None:
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None
