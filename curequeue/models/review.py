from beanie import Document, Indexed
from beanie import PydanticObjectId as OID
from pydantic import Field
from pymongo import ASCENDING, IndexModel
from datetime import datetime, timezone


class Review(Document):
    """A patient's rating of a completed appointment."""
    user_id: OID
    patient_id: OID
    doctor_id: Indexed(OID)
    appointment_id: OID
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "reviews"
        indexes = [
            # one review per appointment per user
            IndexModel([("appointment_id", ASCENDING), ("user_id", ASCENDING)], unique=True),
        ]
