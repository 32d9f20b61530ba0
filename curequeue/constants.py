from enum import Enum


class Role(str, Enum):
    """System roles for RBAC."""
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that still occupy a place in the doctor's queue
ACTIVE_STATUSES = [AppointmentStatus.CONFIRMED.value, AppointmentStatus.PENDING.value]
TERMINAL_STATUSES = {AppointmentStatus.COMPLETED.value, AppointmentStatus.CANCELLED.value}


class HomeVisitStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
