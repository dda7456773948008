from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.errors import Forbidden
from app.db.models import UserRole
from app.db.session import get_db
from app.schemas import BookingCreate, BookingListResponse, BookingResponse, BookingStats, BookingStatusUpdate
from app.services.auth_service import Actor, AuthService
from app.services.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _require_agency(actor: Actor) -> None:
	if actor.role != UserRole.AGENCY:
		raise Forbidden("Only agencies can access this resource")


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
	payload: BookingCreate,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	return BookingService.create_booking(
		db,
		tour_id=payload.tour_id,
		actor_id=actor.user_id,
		actor_role=actor.role,
		number_of_people=payload.number_of_people,
		start_date=payload.start_date,
		end_date=payload.end_date,
		special_requests=payload.special_requests,
		contact_phone=payload.contact_phone,
		contact_email=payload.contact_email,
	)


@router.get("", response_model=BookingListResponse)
def get_bookings(
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
	limit: Optional[int] = Query(None, ge=1, le=100),
	offset: int = Query(0, ge=0),
):
	"""Tourists see their own bookings, agencies see bookings for their tours"""
	if actor.role == UserRole.AGENCY:
		return BookingService.list_bookings_for_agency(db, actor.user_id, limit=limit, offset=offset)
	return BookingService.list_bookings_for_tourist(db, actor.user_id, limit=limit, offset=offset)


@router.get("/stats", response_model=BookingStats)
def get_booking_stats(actor: Actor = Depends(AuthService.get_current_actor), db: Session = Depends(get_db)):
	_require_agency(actor)
	return BookingService.get_booking_stats(db, actor.user_id)


@router.get("/recent", response_model=List[BookingResponse])
def get_recent_bookings(
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
	limit: int = Query(10, ge=1, le=100),
):
	_require_agency(actor)
	return BookingService.recent_bookings_by_agency(db, actor.user_id, limit=limit)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
	booking_id: str,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	return BookingService.get_booking(db, booking_id, actor.user_id, actor.role)


@router.put("/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
	booking_id: str,
	payload: BookingStatusUpdate,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	return BookingService.update_booking_status(db, booking_id, payload.status, actor.user_id, actor.role)


@router.put("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
	booking_id: str,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	if actor.role != UserRole.TOURIST:
		raise Forbidden("Only tourists can cancel their bookings")
	return BookingService.cancel_booking(db, booking_id, actor.user_id)
