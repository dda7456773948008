from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.errors import Forbidden
from app.db.models import UserRole
from app.db.session import get_db
from app.schemas import AgencyRating, ReviewCreate, ReviewListResponse, ReviewResponse, ReviewUpdate, SuccessResponse, TourRating
from app.services.auth_service import Actor, AuthService
from app.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
	payload: ReviewCreate,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	return ReviewService.create_review(
		db,
		tour_id=payload.tour_id,
		actor_id=actor.user_id,
		actor_role=actor.role,
		rating=payload.rating,
		comment=payload.comment,
	)


@router.get("/my-reviews", response_model=ReviewListResponse)
def get_my_reviews(actor: Actor = Depends(AuthService.get_current_actor), db: Session = Depends(get_db)):
	return ReviewService.list_reviews_for_tourist(db, actor.user_id)


@router.get("/agency/recent", response_model=List[ReviewResponse])
def get_recent_agency_reviews(
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
	limit: int = Query(10, ge=1, le=100),
):
	if actor.role != UserRole.AGENCY:
		raise Forbidden("Only agencies can access this resource")
	return ReviewService.recent_reviews_by_agency(db, actor.user_id, limit=limit)


@router.get("/agency/{agency_user_id}/rating", response_model=AgencyRating)
def get_agency_rating(agency_user_id: str, db: Session = Depends(get_db)):
	return ReviewService.get_agency_rating(db, agency_user_id)


@router.get("/tour/{tour_id}", response_model=ReviewListResponse)
def get_tour_reviews(
	tour_id: str,
	db: Session = Depends(get_db),
	limit: Optional[int] = Query(None, ge=1, le=100),
	offset: int = Query(0, ge=0),
):
	return ReviewService.list_reviews_for_tour(db, tour_id, limit=limit, offset=offset)


@router.get("/tour/{tour_id}/rating", response_model=TourRating)
def get_tour_rating(tour_id: str, db: Session = Depends(get_db)):
	return ReviewService.get_tour_rating(db, tour_id)


@router.get("/tour/{tour_id}/my-review", response_model=ReviewResponse)
def get_my_review_for_tour(
	tour_id: str,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	return ReviewService.get_my_review_for_tour(db, actor.user_id, tour_id)


@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(review_id: str, db: Session = Depends(get_db)):
	return ReviewService.get_review(db, review_id)


@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(
	review_id: str,
	payload: ReviewUpdate,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	return ReviewService.update_review(db, review_id, actor.user_id, rating=payload.rating, comment=payload.comment)


@router.delete("/{review_id}", response_model=SuccessResponse)
def delete_review(
	review_id: str,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	ReviewService.delete_review(db, review_id, actor.user_id)
	return SuccessResponse(message="Review deleted successfully")
