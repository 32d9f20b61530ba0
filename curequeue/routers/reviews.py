from fastapi import APIRouter, Depends

from curequeue.models import User
from curequeue.schemas import ReviewCreate
from curequeue.security import get_current_user
from curequeue.services import review_service
from curequeue.services.user_service import users_by_id
from curequeue.utils.presenters import review_out

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("/add", status_code=201)
async def add_review(payload: ReviewCreate, current: User = Depends(get_current_user)):
    """Rate an appointment, once per appointment."""
    review = await review_service.add_review(user=current, payload=payload)
    return {"msg": "Review submitted successfully", "review": review_out(review, {current.id: current})}


@router.get("/doctor/{doctor_id}")
async def doctor_reviews(doctor_id: str, current: User = Depends(get_current_user)):
    reviews = await review_service.list_doctor_reviews(doctor_id=doctor_id, acting_user=current)
    users = await users_by_id([r.patient_id for r in reviews])
    return {"reviews": [review_out(r, users) for r in reviews], "count": len(reviews)}
