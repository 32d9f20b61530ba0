from beanie import Document, Indexed
from beanie import PydanticObjectId as OID
from pydantic import Field
from pymongo import ASCENDING, IndexModel
from datetime import datetime, timezone
from typing import Optional

from curequeue.constants import AppointmentStatus


class Appointment(Document):
    """A place in a doctor's daily queue.

    ``date``/``time`` are civil values in the clinic timezone. ``token`` and
    ``waiting_time`` are snapshots taken at booking; later status changes on
    other appointments never renumber them.
    """
    patient_id: Optional[OID] = None  # absent for offline (walk-in) bookings
    doctor_id: Indexed(OID)
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    reason: str | None = None
    token: int
    waiting_time: int = 0  # minutes
    status: str = AppointmentStatus.CONFIRMED.value  # pending|confirmed|completed|cancelled
    cancelled_by: str | None = None  # role of whoever cancelled

    is_offline: bool = False
    patient_name: str | None = None
    phone: str | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "appointments"
        indexes = [
            [("doctor_id", ASCENDING), ("date", ASCENDING), ("status", ASCENDING)],
            [("patient_id", ASCENDING), ("created_at", ASCENDING)],
        ]


class QueueCounter(Document):
    """Last token handed out for one (doctor, date) queue."""
    doctor_id: OID
    date: str
    seq: int = 0

    class Settings:
        name = "queue_counters"
        indexes = [
            IndexModel([("doctor_id", ASCENDING), ("date", ASCENDING)], unique=True),
        ]
