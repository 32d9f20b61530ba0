from fastapi import APIRouter, Depends
from typing import List

from curequeue.constants import Role
from curequeue.models import Appointment, User
from curequeue.schemas import (
    AppointmentCreate,
    AppointmentEnvelope,
    AppointmentOut,
    BookingOut,
    OfflineAppointmentCreate,
    WaitingTimeIn,
)
from curequeue.security import get_current_user, require_roles
from curequeue.services import scheduler
from curequeue.services.user_service import users_by_id
from curequeue.utils.clock import ClinicClock, get_clock
from curequeue.utils.presenters import appointment_out

router = APIRouter(prefix="/appointments", tags=["appointments"])

staff = require_roles([Role.DOCTOR, Role.ADMIN])
patients_only = require_roles([Role.PATIENT])


async def _out(appointment: Appointment) -> AppointmentOut:
    users = await users_by_id([appointment.patient_id, appointment.doctor_id])
    return appointment_out(appointment, users)


@router.post("", response_model=BookingOut, status_code=201)
async def book_appointment(
    payload: AppointmentCreate,
    current: User = Depends(patients_only),
    clock: ClinicClock = Depends(get_clock),
):
    """Join a doctor's queue. The patient is always the caller."""
    result = await scheduler.book_appointment(
        patient=current,
        doctor_id=payload.doctorId,
        date=payload.date,
        reason=payload.reason,
        clock=clock,
    )
    return BookingOut(
        msg="Appointment booked successfully",
        appointment=await _out(result.appointment),
        appointmentTime=result.appointment_time,
        waitingTime=result.waiting_time,
    )


@router.post("/offline", response_model=BookingOut, status_code=201)
async def book_offline_appointment(
    payload: OfflineAppointmentCreate,
    current: User = Depends(staff),
    clock: ClinicClock = Depends(get_clock),
):
    """Add a walk-in patient (no account) to today's queue."""
    result = await scheduler.book_offline_appointment(
        acting_user=current,
        patient_name=payload.patientName,
        phone=payload.phone,
        reason=payload.reason,
        doctor_id=payload.doctorId,
        clock=clock,
    )
    return BookingOut(
        msg="Offline appointment booked successfully",
        appointment=await _out(result.appointment),
        appointmentTime=result.appointment_time,
        waitingTime=result.waiting_time,
    )


@router.get("/me", response_model=List[AppointmentOut])
async def my_appointments(current: User = Depends(get_current_user)):
    appointments = await scheduler.list_patient_appointments(current.id)
    users = await users_by_id([a.doctor_id for a in appointments] + [current.id])
    return [appointment_out(a, users) for a in appointments]


@router.patch("/{appointment_id}/complete", response_model=AppointmentEnvelope)
async def complete_appointment(appointment_id: str, current: User = Depends(staff)):
    appointment = await scheduler.complete_appointment(appointment_id=appointment_id, acting_user=current)
    return AppointmentEnvelope(msg="Appointment marked as completed", appointment=await _out(appointment))


@router.patch("/{appointment_id}/cancel", response_model=AppointmentEnvelope)
async def cancel_appointment(appointment_id: str, current: User = Depends(get_current_user)):
    appointment = await scheduler.cancel_appointment(appointment_id=appointment_id, acting_user=current)
    return AppointmentEnvelope(msg="Appointment cancelled", appointment=await _out(appointment))


@router.post("/{appointment_id}/waiting-time", response_model=AppointmentEnvelope)
async def update_waiting_time(
    appointment_id: str,
    payload: WaitingTimeIn,
    current: User = Depends(staff),
):
    appointment = await scheduler.set_waiting_time(
        appointment_id=appointment_id,
        minutes=payload.waitingTime,
        acting_user=current,
    )
    return AppointmentEnvelope(msg="Waiting time updated", appointment=await _out(appointment))
