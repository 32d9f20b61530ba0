from datetime import datetime
from pydantic import BaseModel, Field
from typing import Annotated, Optional, List, Literal, Union

from beanie import PydanticObjectId as OID

from curequeue.constants import Role, HomeVisitStatus

# -------------------- Auth / User Schemas --------------------


class RegisterIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Role = Role.PATIENT


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Role
    home_visit_fee: Optional[float] = None
    created_at: Optional[datetime] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class HomeVisitFeeIn(BaseModel):
    homeVisitFee: Optional[float] = None


class ProfileIn(BaseModel):
    """Fields left out (or null) keep their stored value."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

# -------------------- Bookings --------------------


class OnlinePatient(BaseModel):
    """A patient with an account, taken from the session."""
    kind: Literal["online"] = "online"
    patient_id: OID


class OfflinePatient(BaseModel):
    """A walk-in booked by clinic staff."""
    kind: Literal["offline"] = "offline"
    patient_name: str
    phone: Optional[str] = None


Booking = Annotated[Union[OnlinePatient, OfflinePatient], Field(discriminator="kind")]


class AppointmentCreate(BaseModel):
    doctorId: Optional[str] = None
    date: Optional[str] = None  # YYYY-MM-DD
    reason: Optional[str] = None


class OfflineAppointmentCreate(BaseModel):
    patientName: Optional[str] = None
    phone: Optional[str] = None
    reason: Optional[str] = None
    doctorId: Optional[str] = None  # required when an admin books on a doctor's behalf


class WaitingTimeIn(BaseModel):
    waitingTime: Optional[int] = None


class AppointmentOut(BaseModel):
    id: str
    patientId: Optional[str] = None
    doctorId: str
    doctorName: Optional[str] = None
    patientName: Optional[str] = None
    phone: Optional[str] = None
    date: str
    time: str
    token: int
    waitingTime: int
    status: str
    reason: Optional[str] = None
    isOffline: bool = False
    cancelledBy: Optional[str] = None


class BookingOut(BaseModel):
    msg: str
    appointment: AppointmentOut
    appointmentTime: str
    waitingTime: int


class AppointmentEnvelope(BaseModel):
    msg: str
    appointment: AppointmentOut


class QueueOut(BaseModel):
    date: str
    appointments: List[AppointmentOut] = []


class DoctorRatingOut(BaseModel):
    id: str
    name: str
    email: str
    averageRating: Optional[float] = None
    totalReviews: int = 0
    homeVisitFee: Optional[float] = None


class DoctorRatingsOut(BaseModel):
    doctors: List[DoctorRatingOut] = []

# -------------------- Home visits --------------------


class LocationIn(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class HomeVisitCreate(BaseModel):
    doctorId: Optional[str] = None
    address: Optional[str] = None
    reason: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[LocationIn] = None
    preferredTime: Optional[datetime] = None
    notes: Optional[str] = None


class HomeVisitStatusIn(BaseModel):
    status: HomeVisitStatus


class HomeVisitOut(BaseModel):
    id: str
    patientId: str
    patientName: Optional[str] = None
    doctorId: str
    doctorName: Optional[str] = None
    address: str
    reason: str
    date: datetime
    location: Optional[LocationIn] = None
    preferredTime: Optional[datetime] = None
    notes: Optional[str] = None
    etaMinutes: Optional[int] = None
    status: HomeVisitStatus
    createdAt: Optional[datetime] = None

# -------------------- Reviews --------------------


class ReviewCreate(BaseModel):
    appointmentId: Optional[str] = None
    doctorId: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None


class ReviewOut(BaseModel):
    id: str
    appointmentId: str
    doctorId: str
    patientId: str
    patientName: Optional[str] = None
    rating: int
    comment: str = ""
    createdAt: Optional[datetime] = None
