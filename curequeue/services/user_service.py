from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from beanie import PydanticObjectId as OID
from beanie.operators import In

from curequeue.constants import Role
from curequeue.errors import InvalidInput, NotFound
from curequeue.models import User
from curequeue.utils.ids import parse_oid


async def get_doctor(doctor_id: str) -> User:
    """Fetch a doctor account or 404."""
    doctor = await User.get(parse_oid(doctor_id, "doctor id"))
    if not doctor or doctor.role != Role.DOCTOR:
        raise NotFound("Doctor not found")
    return doctor


async def list_doctors() -> List[User]:
    return await User.find(User.role == Role.DOCTOR).sort(+User.name).to_list()


async def users_by_id(ids: Iterable[Optional[OID]]) -> Dict[OID, User]:
    """Load the users behind a set of ids in one query."""
    wanted = list({i for i in ids if i is not None})
    if not wanted:
        return {}
    users = await User.find(In(User.id, wanted)).to_list()
    return {u.id: u for u in users}


async def set_home_visit_fee(doctor: User, fee: Optional[float]) -> User:
    """Set (or clear with None) the doctor's home visit fee."""
    if fee is not None and fee < 0:
        raise InvalidInput("Home visit fee must be a non-negative number")
    doctor.home_visit_fee = fee
    doctor.updated_at = datetime.now(timezone.utc)
    await doctor.save()
    return doctor
