"""Appointment scheduler: queue tokens, waiting-time estimates, status rules.

Waiting time is a snapshot: ``active appointments ahead × service minutes``
at the moment of booking. Completing or cancelling an appointment never
renumbers anybody else.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from beanie import PydanticObjectId as OID
from pymongo.errors import PyMongoError

from curequeue.config import get_settings
from curequeue.constants import AppointmentStatus, Role, TERMINAL_STATUSES
from curequeue.errors import Conflict, Forbidden, InvalidInput, NotFound, Unauthenticated, Unexpected
from curequeue.models import Appointment, User
from curequeue.schemas import Booking, OfflinePatient, OnlinePatient
from curequeue.services import notification_service, queue_service
from curequeue.services.user_service import get_doctor
from curequeue.utils.clock import ClinicClock, parse_civil_date
from curequeue.utils.ids import parse_oid
from curequeue.utils.logger import get_logger

logger = get_logger("scheduler")


@dataclass
class BookingResult:
    appointment: Appointment
    appointment_time: str  # HH:MM, clinic timezone
    waiting_time: int


async def get_appointment(appointment_id: str) -> Appointment:
    appointment = await Appointment.get(parse_oid(appointment_id, "appointment id"))
    if not appointment:
        raise NotFound("Appointment not found")
    return appointment


async def _place_in_queue(
    *,
    doctor: User,
    date: str,
    booking: Booking,
    reason: Optional[str],
    clock: ClinicClock,
) -> Appointment:
    """Count the queue, take a token and insert, all under the queue lock."""
    now = clock.now()
    minutes_each = get_settings().SERVICE_MINUTES_PER_PATIENT

    appointment = Appointment(
        doctor_id=doctor.id,
        date=date,
        time=now.time,
        reason=reason,
        token=0,
        status=AppointmentStatus.CONFIRMED.value,
    )
    if isinstance(booking, OnlinePatient):
        appointment.patient_id = booking.patient_id
    else:
        appointment.is_offline = True
        appointment.patient_name = booking.patient_name
        appointment.phone = booking.phone

    try:
        async with queue_service.hold(doctor.id, date):
            active = await queue_service.count_active(doctor.id, date)
            appointment.token = await queue_service.next_token(doctor.id, date)
            appointment.waiting_time = active * minutes_each
            await appointment.insert()
    except PyMongoError as e:
        logger.error(f"Booking failed for doctor={doctor.id} date={date}: {e}", exc_info=True)
        raise Unexpected("Server error while booking appointment")

    logger.info(
        f"Booked token {appointment.token} doctor={doctor.id} date={date} "
        f"time={now.time} wait={appointment.waiting_time}m offline={appointment.is_offline}"
    )
    return appointment


async def book_appointment(
    *,
    patient: Optional[User],
    doctor_id: Optional[str],
    date: Optional[str],
    reason: Optional[str],
    clock: ClinicClock,
) -> BookingResult:
    """Book the authenticated patient into a doctor's queue for ``date``.

    The queue is the appointment's own date, not the clinic's "today".
    """
    if patient is None:
        raise Unauthenticated("Unauthorized: Patient not found from token")
    if not (doctor_id or "").strip() or not (date or "").strip():
        raise InvalidInput("Doctor and appointment date are required")
    try:
        date = parse_civil_date(date)
    except ValueError:
        raise InvalidInput("Appointment date must be in YYYY-MM-DD format")

    doctor = await get_doctor(doctor_id.strip())
    appointment = await _place_in_queue(
        doctor=doctor,
        date=date,
        booking=OnlinePatient(patient_id=patient.id),
        reason=reason,
        clock=clock,
    )
    notification_service.notify_booking_confirmed(appointment, patient, doctor)
    return BookingResult(appointment, appointment.time, appointment.waiting_time)


async def book_offline_appointment(
    *,
    acting_user: User,
    patient_name: Optional[str],
    phone: Optional[str],
    reason: Optional[str],
    clock: ClinicClock,
    doctor_id: Optional[str] = None,
) -> BookingResult:
    """Put a walk-in without an account into today's queue."""
    if acting_user.role == Role.DOCTOR:
        doctor = acting_user
    elif acting_user.role == Role.ADMIN:
        if not doctor_id:
            raise InvalidInput("doctorId is required")
        doctor = await get_doctor(doctor_id)
    else:
        raise Forbidden()

    if not (patient_name or "").strip():
        raise InvalidInput("Patient name is required")

    appointment = await _place_in_queue(
        doctor=doctor,
        date=clock.today(),
        booking=OfflinePatient(patient_name=patient_name.strip(), phone=(phone or "").strip() or None),
        reason=reason,
        clock=clock,
    )
    return BookingResult(appointment, appointment.time, appointment.waiting_time)


def _is_admin(user: User) -> bool:
    return user.role == Role.ADMIN


def _touch(appointment: Appointment) -> None:
    appointment.updated_at = datetime.now(timezone.utc)


async def complete_appointment(*, appointment_id: str, acting_user: User) -> Appointment:
    appointment = await get_appointment(appointment_id)
    if not _is_admin(acting_user) and appointment.doctor_id != acting_user.id:
        raise Forbidden()
    if appointment.status in TERMINAL_STATUSES:
        raise Conflict(f"Cannot complete a {appointment.status} appointment")

    appointment.status = AppointmentStatus.COMPLETED.value
    _touch(appointment)
    await appointment.save()
    logger.info(f"Appointment {appointment.id} completed by {acting_user.id}")
    return appointment


def _cancel_role(appointment: Appointment, user: User) -> Optional[str]:
    """Which side of the appointment ``user`` is on, None if neither."""
    if _is_admin(user):
        return Role.ADMIN.value
    if appointment.doctor_id == user.id:
        return Role.DOCTOR.value
    if appointment.patient_id is not None and appointment.patient_id == user.id:
        return Role.PATIENT.value
    return None


async def cancel_appointment(*, appointment_id: str, acting_user: User) -> Appointment:
    """Cancel on behalf of the assigned doctor, the owning patient or an admin.

    Completed and already-cancelled appointments are left untouched.
    """
    appointment = await get_appointment(appointment_id)
    role = _cancel_role(appointment, acting_user)
    if role is None:
        raise Forbidden()
    if appointment.status == AppointmentStatus.COMPLETED.value:
        raise Conflict("Cannot cancel a completed appointment")
    if appointment.status == AppointmentStatus.CANCELLED.value:
        raise Conflict("Appointment is already cancelled")

    appointment.status = AppointmentStatus.CANCELLED.value
    appointment.cancelled_by = role
    _touch(appointment)
    await appointment.save()
    logger.info(f"Appointment {appointment.id} cancelled by {role} {acting_user.id}")

    notification_service.notify_appointment_cancelled(appointment, role)
    return appointment


async def set_waiting_time(*, appointment_id: str, minutes: Optional[int], acting_user: User) -> Appointment:
    """Manual override of the booking-time estimate (doctor running late, etc.)."""
    if minutes is None or minutes < 0:
        raise InvalidInput("Waiting time must be a non-negative number of minutes")

    appointment = await get_appointment(appointment_id)
    if not _is_admin(acting_user) and appointment.doctor_id != acting_user.id:
        raise Forbidden()
    if appointment.status in TERMINAL_STATUSES:
        raise Conflict(f"Cannot update waiting time of a {appointment.status} appointment")

    appointment.waiting_time = minutes
    _touch(appointment)
    await appointment.save()
    logger.info(f"Appointment {appointment.id} waiting time set to {minutes}m")

    notification_service.notify_waiting_time_updated(appointment)
    return appointment


async def list_doctor_queue(doctor_id: OID, date: str) -> List[Appointment]:
    """All of the doctor's appointments on ``date``, token order."""
    return await Appointment.find(
        Appointment.doctor_id == doctor_id,
        Appointment.date == date,
    ).sort(+Appointment.token).to_list()


async def list_patient_appointments(patient_id: OID) -> List[Appointment]:
    return await Appointment.find(
        Appointment.patient_id == patient_id,
    ).sort(-Appointment.created_at).to_list()

