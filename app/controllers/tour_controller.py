from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas import SuccessResponse, TourCreate, TourDetail, TourFilters, TourListResponse, TourResponse, TourUpdate
from app.services.auth_service import Actor, AuthService
from app.services.tour_service import TourService

router = APIRouter(prefix="/tours", tags=["tours"])


@router.get("", response_model=TourListResponse)
def get_tours(
	db: Session = Depends(get_db),
	page: int = Query(1, ge=1),
	per_page: int = Query(20, ge=1, le=100),
	destination: Optional[str] = None,
	category: Optional[str] = None,
	min_price: Optional[Decimal] = None,
	max_price: Optional[Decimal] = None,
	duration: Optional[str] = None,
):
	"""Active tours with filtering and pagination"""
	filters = TourFilters(
		destination=destination,
		category=category,
		min_price=min_price,
		max_price=max_price,
		duration=duration,
	)
	return TourService.list_tours(db, filters, page=page, per_page=per_page)


@router.get("/popular", response_model=List[TourResponse])
def get_popular_tours(db: Session = Depends(get_db), limit: int = Query(6, ge=1, le=50)):
	return TourService.popular_tours(db, limit=limit)


@router.get("/destinations", response_model=List[str])
def get_destinations(db: Session = Depends(get_db)):
	return TourService.destinations(db)


@router.get("/agency", response_model=List[TourResponse])
def get_agency_tours(actor: Actor = Depends(AuthService.get_current_actor), db: Session = Depends(get_db)):
	return TourService.list_tours_by_agency(db, actor.user_id)


@router.get("/{tour_id}", response_model=TourDetail)
def get_tour(tour_id: str, db: Session = Depends(get_db)):
	return TourService.get_tour(db, tour_id)


@router.post("", response_model=TourDetail, status_code=status.HTTP_201_CREATED)
def create_tour(
	payload: TourCreate,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	return TourService.create_tour(db, payload, actor.user_id, actor.role)


@router.put("/{tour_id}", response_model=TourDetail)
def update_tour(
	tour_id: str,
	payload: TourUpdate,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	return TourService.update_tour(db, tour_id, payload, actor.user_id, actor.role)


@router.delete("/{tour_id}", response_model=SuccessResponse)
def delete_tour(
	tour_id: str,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	TourService.deactivate_tour(db, tour_id, actor.user_id, actor.role)
	return SuccessResponse(message="Tour deleted successfully")
