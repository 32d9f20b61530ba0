from fastapi import APIRouter, Depends, Query
from typing import Optional

from curequeue.constants import Role
from curequeue.errors import InvalidInput
from curequeue.models import User
from curequeue.schemas import DoctorRatingsOut, HomeVisitFeeIn, QueueOut
from curequeue.security import require_roles
from curequeue.services import review_service, scheduler
from curequeue.services.user_service import get_doctor, set_home_visit_fee, users_by_id
from curequeue.utils.clock import ClinicClock, get_clock, parse_civil_date
from curequeue.utils.logger import get_logger
from curequeue.utils.presenters import appointment_out

logger = get_logger("doctor_router")

router = APIRouter(prefix="/doctor", tags=["doctor"])


@router.get("/appointments", response_model=QueueOut)
async def doctor_queue(
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today in the clinic timezone"),
    doctorId: Optional[str] = Query(None, description="Admins only: whose queue to show"),
    current: User = Depends(require_roles([Role.DOCTOR, Role.ADMIN])),
    clock: ClinicClock = Depends(get_clock),
):
    """The doctor's queue for one day in token order."""
    if current.role == Role.ADMIN:
        if not doctorId:
            raise InvalidInput("doctorId is required")
        doctor = await get_doctor(doctorId)
    else:
        doctor = current

    if date:
        try:
            date = parse_civil_date(date)
        except ValueError:
            raise InvalidInput("date must be in YYYY-MM-DD format")
    else:
        date = clock.today()

    appointments = await scheduler.list_doctor_queue(doctor.id, date)
    users = await users_by_id([a.patient_id for a in appointments] + [doctor.id])
    return QueueOut(date=date, appointments=[appointment_out(a, users) for a in appointments])


@router.get("/ratings", response_model=DoctorRatingsOut)
async def doctor_ratings():
    """Public doctor directory with average rating, used when picking a doctor."""
    return DoctorRatingsOut(doctors=await review_service.doctor_ratings())


@router.patch("/home-visit-fee")
async def update_home_visit_fee(
    payload: HomeVisitFeeIn,
    current: User = Depends(require_roles([Role.DOCTOR])),
):
    doctor = await set_home_visit_fee(current, payload.homeVisitFee)
    logger.info(f"Doctor {doctor.id} home visit fee set to {doctor.home_visit_fee}")
    return {"success": True, "homeVisitFee": doctor.home_visit_fee}
