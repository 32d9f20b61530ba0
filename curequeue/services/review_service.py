from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from beanie import PydanticObjectId as OID
from pymongo.errors import DuplicateKeyError

from curequeue.constants import Role
from curequeue.errors import Conflict, Forbidden, InvalidInput, NotFound
from curequeue.models import Appointment, Review, User
from curequeue.schemas import ReviewCreate
from curequeue.services.user_service import list_doctors
from curequeue.utils.ids import parse_oid
from curequeue.utils.logger import get_logger

logger = get_logger("reviews")

DUPLICATE_REVIEW = "You have already reviewed this appointment"


def round_rating(total: float, count: int) -> Optional[float]:
    """Mean rating rounded half-up to one decimal; None when there are no reviews."""
    if not count:
        return None
    mean = Decimal(str(total)) / Decimal(count)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


async def add_review(*, user: User, payload: ReviewCreate) -> Review:
    if not payload.appointmentId or not payload.doctorId or payload.rating is None:
        raise InvalidInput("Appointment ID, doctor ID, and rating are required")
    if payload.rating < 1 or payload.rating > 5:
        raise InvalidInput("Rating must be between 1 and 5")

    appointment_id = parse_oid(payload.appointmentId, "appointment id")
    doctor_id = parse_oid(payload.doctorId, "doctor id")

    appointment = await Appointment.get(appointment_id)
    if not appointment:
        raise NotFound("Appointment not found")
    if user.role != Role.ADMIN and appointment.patient_id != user.id:
        raise Forbidden("You can only review your own appointments")
    if appointment.doctor_id != doctor_id:
        raise InvalidInput("Doctor does not match the appointment")

    existing = await Review.find_one(
        Review.appointment_id == appointment_id,
        Review.user_id == user.id,
    )
    if existing:
        raise Conflict(DUPLICATE_REVIEW)

    review = Review(
        user_id=user.id,
        patient_id=appointment.patient_id or user.id,
        doctor_id=doctor_id,
        appointment_id=appointment_id,
        rating=payload.rating,
        comment=payload.comment or "",
    )
    try:
        await review.insert()
    except DuplicateKeyError:
        # lost a race with a concurrent submit of the same review
        raise Conflict(DUPLICATE_REVIEW)
    logger.info(f"Review {review.id} ({review.rating}/5) for doctor {doctor_id}")
    return review


async def list_doctor_reviews(*, doctor_id: str, acting_user: User) -> List[Review]:
    did = parse_oid(doctor_id, "doctor id")
    if acting_user.role != Role.ADMIN and acting_user.id != did:
        raise Forbidden()
    return await Review.find(Review.doctor_id == did).sort(-Review.created_at).to_list()


async def rating_totals() -> Dict[OID, Tuple[float, int]]:
    """doctor_id -> (sum of ratings, number of reviews)."""
    pipeline = [
        {"$match": {"doctor_id": {"$ne": None}}},
        {"$group": {"_id": "$doctor_id", "total": {"$sum": "$rating"}, "count": {"$sum": 1}}},
    ]
    rows = await Review.aggregate(pipeline).to_list()
    return {row["_id"]: (row["total"], row["count"]) for row in rows}


async def doctor_ratings() -> List[dict]:
    """Every doctor with their average rating and review count."""
    doctors = await list_doctors()
    totals = await rating_totals()
    result = []
    for doctor in doctors:
        total, count = totals.get(doctor.id, (0, 0))
        result.append({
            "id": str(doctor.id),
            "name": doctor.name,
            "email": doctor.email,
            "averageRating": round_rating(total, count),
            "totalReviews": count,
            "homeVisitFee": doctor.home_visit_fee,
        })
    return result
