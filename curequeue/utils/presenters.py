from typing import Dict, Optional

from beanie import PydanticObjectId as OID

from curequeue.models import Appointment, HomeVisit, Review, User
from curequeue.schemas import AppointmentOut, HomeVisitOut, LocationIn, ReviewOut, UserOut


def user_out(user: User) -> UserOut:
    return UserOut(
        id=str(user.id),
        name=user.name,
        email=user.email,
        phone=user.phone,
        address=user.address,
        role=user.role,
        home_visit_fee=user.home_visit_fee,
        created_at=user.created_at,
    )


def appointment_out(appt: Appointment, users: Optional[Dict[OID, User]] = None) -> AppointmentOut:
    """Offline bookings carry their own name/phone; online ones borrow the patient's."""
    users = users or {}
    patient = users.get(appt.patient_id) if appt.patient_id else None
    doctor = users.get(appt.doctor_id)
    if appt.is_offline:
        patient_name, phone = appt.patient_name, appt.phone
    else:
        patient_name = patient.name if patient else None
        phone = patient.phone if patient else None
    return AppointmentOut(
        id=str(appt.id),
        patientId=str(appt.patient_id) if appt.patient_id else None,
        doctorId=str(appt.doctor_id),
        doctorName=doctor.name if doctor else None,
        patientName=patient_name,
        phone=phone,
        date=appt.date,
        time=appt.time,
        token=appt.token,
        waitingTime=appt.waiting_time,
        status=appt.status,
        reason=appt.reason,
        isOffline=appt.is_offline,
        cancelledBy=appt.cancelled_by,
    )


def home_visit_out(visit: HomeVisit, users: Optional[Dict[OID, User]] = None) -> HomeVisitOut:
    users = users or {}
    patient = users.get(visit.patient_id)
    doctor = users.get(visit.doctor_id)
    return HomeVisitOut(
        id=str(visit.id),
        patientId=str(visit.patient_id),
        patientName=patient.name if patient else None,
        doctorId=str(visit.doctor_id),
        doctorName=doctor.name if doctor else None,
        address=visit.address,
        reason=visit.reason,
        date=visit.date,
        location=LocationIn(**visit.location.model_dump()) if visit.location else None,
        preferredTime=visit.preferred_time,
        notes=visit.notes,
        etaMinutes=visit.eta_minutes,
        status=visit.status,
        createdAt=visit.created_at,
    )


def review_out(review: Review, users: Optional[Dict[OID, User]] = None) -> ReviewOut:
    patient = (users or {}).get(review.patient_id)
    return ReviewOut(
        id=str(review.id),
        appointmentId=str(review.appointment_id),
        doctorId=str(review.doctor_id),
        patientId=str(review.patient_id),
        patientName=patient.name if patient else None,
        rating=review.rating,
        comment=review.comment,
        createdAt=review.created_at,
    )
