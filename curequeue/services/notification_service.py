"""Best-effort patient/doctor notifications.

Every public ``notify_*`` function only schedules work: the email goes out
from a detached task, so the caller's request never waits on the provider
and a failed send is logged, never raised.
"""
import asyncio
from html import escape
from typing import Coroutine, Set

from beanie import PydanticObjectId as OID

from curequeue.models import Appointment, HomeVisit, User
from curequeue.utils.logger import get_logger
from curequeue.utils.mailer import send_email

logger = get_logger("notifications")

# Strong references so running tasks are not garbage-collected
_pending: Set[asyncio.Task] = set()


def dispatch(coro: Coroutine, *, label: str) -> asyncio.Task:
    """Run ``coro`` in the background; failures are logged and dropped."""
    task = asyncio.create_task(coro, name=f"notify:{label}")
    _pending.add(task)

    def _done(t: asyncio.Task) -> None:
        _pending.discard(t)
        if t.cancelled():
            logger.warning(f"Notification {label} cancelled")
            return
        exc = t.exception()
        if exc is not None:
            logger.error(f"Notification {label} failed: {exc}", exc_info=exc)

    task.add_done_callback(_done)
    return task


async def drain() -> None:
    """Wait for every in-flight notification (shutdown, tests)."""
    while _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)


async def _user(user_id: OID | None) -> User | None:
    if user_id is None:
        return None
    return await User.get(user_id)


def _footer() -> str:
    return "<p>Thank you for using CureQueue.</p><p>Best regards,<br/>CureQueue Team</p>"


# -------------------- Appointments --------------------


async def _booking_confirmation(appointment: Appointment, patient: User, doctor: User) -> None:
    html = (
        f"<p>Dear {escape(patient.name)},</p>"
        f"<p>Your appointment with Dr. {escape(doctor.name)} has been booked successfully.</p>"
        f"<p><strong>Date:</strong> {appointment.date}</p>"
        f"<p><strong>Time:</strong> {appointment.time}</p>"
        f"<p><strong>Token:</strong> {appointment.token}</p>"
        f"<p><strong>Estimated waiting time:</strong> {appointment.waiting_time} minutes</p>"
        + _footer()
    )
    await send_email(patient.email, "Appointment Confirmation", html)


def notify_booking_confirmed(appointment: Appointment, patient: User, doctor: User) -> None:
    dispatch(_booking_confirmation(appointment, patient, doctor), label=f"booked:{appointment.id}")


async def _cancellation(appointment: Appointment, cancelled_by: str) -> None:
    patient = await _user(appointment.patient_id)
    doctor = await _user(appointment.doctor_id)
    doctor_name = escape(doctor.name) if doctor else "your doctor"
    patient_name = escape(patient.name if patient else (appointment.patient_name or "patient"))
    when = f"{appointment.date} at {appointment.time}"

    if cancelled_by != "patient":
        who = "the doctor" if cancelled_by == "doctor" else "the clinic"
        if patient:
            await send_email(
                patient.email,
                "Your Appointment Has Been Cancelled",
                f"<p>Hello {patient_name},</p>"
                f"<p>We regret to inform you that your appointment with Dr. {doctor_name} on {when} "
                f"has been cancelled by {who}.</p>"
                "<p>If needed, please book a new appointment at your convenience.</p>" + _footer(),
            )
        return

    if patient:
        await send_email(
            patient.email,
            "Your Appointment Has Been Successfully Cancelled",
            f"<p>Hello {patient_name},</p>"
            f"<p>This is to confirm that your appointment with Dr. {doctor_name} on {when} "
            "has been cancelled as per your request.</p>" + _footer(),
        )
    if doctor:
        await send_email(
            doctor.email,
            "Appointment Cancelled by Patient",
            f"<p>Hello Dr. {doctor_name},</p>"
            f"<p>{patient_name} has cancelled the appointment on {when} (token {appointment.token}).</p>"
            + _footer(),
        )


def notify_appointment_cancelled(appointment: Appointment, cancelled_by: str) -> None:
    dispatch(_cancellation(appointment, cancelled_by), label=f"cancelled:{appointment.id}")


async def _waiting_time_update(appointment: Appointment) -> None:
    patient = await _user(appointment.patient_id)
    if not patient:
        return
    doctor = await _user(appointment.doctor_id)
    html = (
        f"<p>Dear {escape(patient.name)},</p>"
        f"<p>Your appointment with Dr. {escape(doctor.name) if doctor else ''} has been updated.</p>"
        f"<p><strong>Status:</strong> {appointment.status}</p>"
        f"<p><strong>Estimated Wait Time:</strong> {appointment.waiting_time} minutes</p>"
        + _footer()
    )
    await send_email(patient.email, "Your Appointment Has Been Updated", html)


def notify_waiting_time_updated(appointment: Appointment) -> None:
    dispatch(_waiting_time_update(appointment), label=f"waiting-time:{appointment.id}")


# -------------------- Home visits --------------------

_HOME_VISIT_COPY = {
    "Accepted": (
        "Your Home Visit Request Has Been Accepted",
        "Great news! Dr. {doctor} has accepted your home visit request.",
    ),
    "Rejected": (
        "Your Home Visit Request Has Been Declined",
        "We regret to inform you that Dr. {doctor} is unavailable and has declined your home visit request.",
    ),
    "Completed": (
        "Your Home Visit Appointment is Completed",
        "Your home visit appointment with Dr. {doctor} has been marked as completed.",
    ),
}


async def _home_visit_update(visit: HomeVisit) -> None:
    subject, line = _HOME_VISIT_COPY[visit.status.value]
    patient = await _user(visit.patient_id)
    if not patient:
        return
    doctor = await _user(visit.doctor_id)
    doctor_name = escape(doctor.name) if doctor else ""
    html = (
        f"<p>Hello <strong>{escape(patient.name)}</strong>,</p>"
        f"<p>{line.format(doctor=doctor_name)}</p>"
        f"<p><strong>Date:</strong> {visit.date.strftime('%Y-%m-%d')}</p>"
        f"<p><strong>Address:</strong> {escape(visit.address)}</p>"
        f"<p><strong>Doctor:</strong> Dr. {doctor_name}</p>"
        + _footer()
    )
    await send_email(patient.email, subject, html)


def notify_home_visit_status(visit: HomeVisit) -> None:
    if visit.status.value not in _HOME_VISIT_COPY:
        return
    dispatch(_home_visit_update(visit), label=f"home-visit:{visit.id}:{visit.status.value}")
