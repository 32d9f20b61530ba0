from fastapi import APIRouter, Depends
from typing import List

from curequeue.constants import HomeVisitStatus, Role
from curequeue.errors import Forbidden
from curequeue.models import HomeVisit, User
from curequeue.schemas import HomeVisitCreate, HomeVisitOut, HomeVisitStatusIn
from curequeue.security import get_current_user, require_roles
from curequeue.services import home_visit_service
from curequeue.services.user_service import users_by_id
from curequeue.utils.ids import parse_oid
from curequeue.utils.presenters import home_visit_out

router = APIRouter(prefix="/home-visits", tags=["home-visits"])


async def _many(visits: List[HomeVisit]) -> List[HomeVisitOut]:
    users = await users_by_id([v.patient_id for v in visits] + [v.doctor_id for v in visits])
    return [home_visit_out(v, users) for v in visits]


async def _envelope(visit: HomeVisit, msg: str) -> dict:
    users = await users_by_id([visit.patient_id, visit.doctor_id])
    return {"request": home_visit_out(visit, users), "msg": msg}


@router.post("", status_code=201)
async def create_home_visit(payload: HomeVisitCreate, current: User = Depends(get_current_user)):
    visit = await home_visit_service.create_request(patient=current, payload=payload)
    return await _envelope(visit, "Home Visit Request Submitted Successfully")


@router.get("")
async def list_home_visits(current: User = Depends(require_roles([Role.ADMIN]))):
    return {"requests": await _many(await home_visit_service.list_all())}


@router.get("/doctor/{doctor_id}")
async def list_doctor_home_visits(doctor_id: str, current: User = Depends(get_current_user)):
    did = parse_oid(doctor_id, "doctor id")
    if current.role != Role.ADMIN and current.id != did:
        raise Forbidden()
    return {"requests": await _many(await home_visit_service.list_for_doctor(did))}


@router.get("/patient/{patient_id}")
async def list_patient_home_visits(patient_id: str, current: User = Depends(get_current_user)):
    pid = parse_oid(patient_id, "patient id")
    if current.role != Role.ADMIN and current.id != pid:
        raise Forbidden()
    return {"requests": await _many(await home_visit_service.list_for_patient(pid))}


_ACTIONS = {
    "accept": (HomeVisitStatus.ACCEPTED, "Home visit request accepted"),
    "reject": (HomeVisitStatus.REJECTED, "Home visit request rejected"),
    "complete": (HomeVisitStatus.COMPLETED, "Home visit marked as completed"),
    "cancel": (HomeVisitStatus.CANCELLED, "Home visit request cancelled"),
}


async def _act(visit_id: str, action: str, current: User) -> dict:
    target, msg = _ACTIONS[action]
    visit = await home_visit_service.transition(visit_id=visit_id, target=target, acting_user=current)
    return await _envelope(visit, msg)


@router.put("/{visit_id}/accept")
async def accept_home_visit(visit_id: str, current: User = Depends(get_current_user)):
    return await _act(visit_id, "accept", current)


@router.put("/{visit_id}/reject")
async def reject_home_visit(visit_id: str, current: User = Depends(get_current_user)):
    return await _act(visit_id, "reject", current)


@router.put("/{visit_id}/complete")
async def complete_home_visit(visit_id: str, current: User = Depends(get_current_user)):
    return await _act(visit_id, "complete", current)


@router.put("/{visit_id}/cancel")
async def cancel_home_visit(visit_id: str, current: User = Depends(get_current_user)):
    return await _act(visit_id, "cancel", current)


@router.post("/{visit_id}/status")
async def override_home_visit_status(
    visit_id: str,
    payload: HomeVisitStatusIn,
    current: User = Depends(require_roles([Role.ADMIN])),
):
    visit = await home_visit_service.override_status(visit_id=visit_id, status=payload.status)
    return await _envelope(visit, "Home visit status updated")
