"""Per-(doctor, date) queue bookkeeping: token sequence and active load."""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Tuple

from beanie import PydanticObjectId as OID
from beanie.operators import In
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from curequeue.constants import ACTIVE_STATUSES
from curequeue.models import Appointment, QueueCounter

# key -> [lock, holders]
_locks: Dict[Tuple[str, str], List] = {}


@asynccontextmanager
async def hold(doctor_id: OID, date: str) -> AsyncIterator[None]:
    """Serialize bookings for one queue inside this process.

    Entries are dropped once nobody waits on them, so the map only holds
    queues that are being booked right now.
    """
    key = (str(doctor_id), date)
    entry = _locks.get(key)
    if entry is None:
        entry = _locks[key] = [asyncio.Lock(), 0]
    entry[1] += 1
    try:
        async with entry[0]:
            yield
    finally:
        entry[1] -= 1
        if entry[1] == 0:
            _locks.pop(key, None)


async def count_active(doctor_id: OID, date: str) -> int:
    """Appointments still waiting (confirmed/pending) in this queue."""
    return await Appointment.find(
        Appointment.doctor_id == doctor_id,
        Appointment.date == date,
        In(Appointment.status, ACTIVE_STATUSES),
    ).count()


async def next_token(doctor_id: OID, date: str) -> int:
    """Atomically hand out the next token for (doctor, date).

    The counter document is created on first use. Two processes racing on
    that first upsert can collide on the unique index; the loser retries and
    increments the document the winner created.
    """
    try:
        return await _increment(doctor_id, date)
    except DuplicateKeyError:
        return await _increment(doctor_id, date)


async def _increment(doctor_id: OID, date: str) -> int:
    doc = await QueueCounter.get_motor_collection().find_one_and_update(
        {"doctor_id": doctor_id, "date": date},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(doc["seq"])
