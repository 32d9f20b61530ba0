from beanie import Document, Indexed
from beanie import PydanticObjectId as OID
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional

from curequeue.constants import HomeVisitStatus


class Location(BaseModel):
    latitude: float | None = None
    longitude: float | None = None


class HomeVisit(Document):
    """A patient's request for a doctor to visit at home."""
    patient_id: Indexed(OID)
    doctor_id: Indexed(OID)
    address: str
    reason: str
    date: datetime
    location: Location = Field(default_factory=Location)
    preferred_time: Optional[datetime] = None
    notes: str | None = None
    eta_minutes: int | None = None
    status: HomeVisitStatus = HomeVisitStatus.PENDING

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "home_visits"
