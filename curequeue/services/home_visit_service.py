"""Home visit requests and their status machine.

    Pending  -> Accepted | Rejected | Cancelled
    Accepted -> Completed | Cancelled

Completed, Rejected and Cancelled are final. The assigned doctor drives
accept/reject/complete, the requesting patient cancels; admins may do either.
"""
from datetime import datetime, timezone
from typing import List

from beanie import PydanticObjectId as OID

from curequeue.constants import HomeVisitStatus, Role
from curequeue.errors import Conflict, Forbidden, InvalidInput, NotFound
from curequeue.models import HomeVisit, Location, User
from curequeue.schemas import HomeVisitCreate
from curequeue.services import notification_service
from curequeue.services.user_service import get_doctor
from curequeue.utils.ids import parse_oid
from curequeue.utils.logger import get_logger

logger = get_logger("home_visits")

S = HomeVisitStatus

TRANSITIONS = {
    S.PENDING: {S.ACCEPTED, S.REJECTED, S.CANCELLED},
    S.ACCEPTED: {S.COMPLETED, S.CANCELLED},
}

# which side of the request may move it into each state
DOCTOR_ACTIONS = {S.ACCEPTED, S.REJECTED, S.COMPLETED}
PATIENT_ACTIONS = {S.CANCELLED}


def can_transition(current: HomeVisitStatus, target: HomeVisitStatus) -> bool:
    return target in TRANSITIONS.get(current, set())


async def create_request(*, patient: User, payload: HomeVisitCreate) -> HomeVisit:
    if not payload.doctorId or not (payload.address or "").strip() or not (payload.reason or "").strip() or not payload.date:
        raise InvalidInput("Missing required fields")
    doctor = await get_doctor(payload.doctorId)

    location = Location(**payload.location.model_dump()) if payload.location else Location()
    visit = HomeVisit(
        patient_id=patient.id,
        doctor_id=doctor.id,
        address=payload.address.strip(),
        reason=payload.reason.strip(),
        date=payload.date,
        location=location,
        preferred_time=payload.preferredTime,
        notes=payload.notes,
        status=S.PENDING,
    )
    await visit.insert()
    logger.info(f"Home visit {visit.id} requested by {patient.id} for doctor {doctor.id}")
    return visit


async def get_request(visit_id: str) -> HomeVisit:
    visit = await HomeVisit.get(parse_oid(visit_id, "home visit id"))
    if not visit:
        raise NotFound("Home visit request not found")
    return visit


def _check_actor(visit: HomeVisit, user: User, target: HomeVisitStatus) -> None:
    if user.role == Role.ADMIN:
        return
    if target in DOCTOR_ACTIONS and visit.doctor_id == user.id:
        return
    if target in PATIENT_ACTIONS and visit.patient_id == user.id:
        return
    raise Forbidden()


async def transition(*, visit_id: str, target: HomeVisitStatus, acting_user: User) -> HomeVisit:
    """Move a request to ``target`` if the actor and the current state allow it.

    The patient email for accept/reject/complete is sent in the background;
    a delivery failure leaves the new status in place.
    """
    visit = await get_request(visit_id)
    _check_actor(visit, acting_user, target)

    if target == S.CANCELLED and visit.status == S.COMPLETED:
        raise Conflict("Cannot cancel a completed visit")
    if not can_transition(visit.status, target):
        raise Conflict(f"Cannot change a {visit.status.value} request to {target.value}")

    previous = visit.status
    visit.status = target
    visit.updated_at = datetime.now(timezone.utc)
    await visit.save()
    logger.info(f"Home visit {visit.id}: {previous.value} -> {target.value} by {acting_user.id}")

    notification_service.notify_home_visit_status(visit)
    return visit


async def override_status(*, visit_id: str, status: HomeVisitStatus) -> HomeVisit:
    """Admin correction: set any status, bypassing the transition table."""
    visit = await get_request(visit_id)
    visit.status = status
    visit.updated_at = datetime.now(timezone.utc)
    await visit.save()
    logger.warning(f"Home visit {visit.id} status overridden to {status.value}")
    return visit


async def list_for_doctor(doctor_id: OID) -> List[HomeVisit]:
    return await HomeVisit.find(HomeVisit.doctor_id == doctor_id).sort(+HomeVisit.date).to_list()


async def list_for_patient(patient_id: OID) -> List[HomeVisit]:
    return await HomeVisit.find(HomeVisit.patient_id == patient_id).sort(-HomeVisit.created_at).to_list()


async def list_all() -> List[HomeVisit]:
    return await HomeVisit.find_all().sort(-HomeVisit.created_at).to_list()
