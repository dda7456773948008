"""Booking lifecycle: creation, status transitions and agency statistics.

Status moves along a fixed table::

    pending    -> confirmed | cancelled     (agency)
    confirmed  -> completed | cancelled     (agency)
    completed  -> terminal
    cancelled  -> terminal

Tourists may only cancel their own pending or confirmed bookings. Writing the
current status again is accepted and only refreshes ``updated_at``.

Every transition is a single conditional UPDATE that also matches the status
the caller observed, so a concurrent change makes the later write miss
instead of overwriting a terminal state.
"""
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.errors import CapacityExceeded, Forbidden, NotFound, StorageError, TourInactive, ValidationError
from app.db.models import Booking, BookingStatus, Tour, UserRole
from app.db.session import commit
from app.schemas import BookingListResponse, BookingResponse, BookingStats
from app.services.review_service import ReviewService
from app.services.tour_service import TourService

logger = logging.getLogger(__name__)

AGENCY_TRANSITIONS = {
	BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
	BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
	BookingStatus.COMPLETED: set(),
	BookingStatus.CANCELLED: set(),
}

TOURIST_CANCELLABLE = {BookingStatus.PENDING, BookingStatus.CONFIRMED}


def parse_status(value) -> BookingStatus:
	try:
		return BookingStatus(value)
	except ValueError:
		allowed = ", ".join(s.value for s in BookingStatus)
		raise ValidationError(f"Valid status is required ({allowed})")


def _owned_by_agency(agency_user_id: str):
	return Booking.tour_id.in_(select(Tour.id).where(Tour.agency_user_id == agency_user_id))


class BookingService:
	@staticmethod
	def _query():
		return select(Booking).options(selectinload(Booking.tour), selectinload(Booking.tourist_user))

	@staticmethod
	def _load(db: Session, booking_id: str) -> Booking | None:
		return db.scalar(BookingService._query().where(Booking.id == booking_id))

	@staticmethod
	def create_booking(
		db: Session,
		tour_id: str,
		actor_id: str,
		actor_role: UserRole,
		number_of_people: int,
		start_date: date,
		end_date: Optional[date] = None,
		special_requests: Optional[str] = None,
		contact_phone: Optional[str] = None,
		contact_email: Optional[str] = None,
	) -> BookingResponse:
		if actor_role != UserRole.TOURIST:
			raise Forbidden("Only tourists can book tours")
		if isinstance(number_of_people, bool) or not isinstance(number_of_people, int):
			raise ValidationError("Number of people must be a whole number")
		if number_of_people < 1:
			raise ValidationError("Number of people must be at least 1")
		if isinstance(start_date, datetime):
			start_date = start_date.date()
		if isinstance(end_date, datetime):
			end_date = end_date.date()
		if not isinstance(start_date, date):
			raise ValidationError("Start date is required")
		if end_date is not None and not isinstance(end_date, date):
			raise ValidationError("End date must be a date")

		tour = TourService.get_tour_summary(db, tour_id)
		if tour is None:
			raise NotFound("Tour not found")
		if not tour.is_active:
			raise TourInactive()
		if number_of_people > tour.max_group_size:
			raise CapacityExceeded(f"Maximum group size for this tour is {tour.max_group_size}")

		if end_date is None:
			end_date = start_date + timedelta(days=tour.duration)
		if start_date >= end_date:
			raise ValidationError("End date must be after start date")
		if (end_date - start_date).days != tour.duration:
			raise ValidationError(f"Booking must span exactly {tour.duration} day(s) for this tour")

		booking = Booking(
			tour_id=tour.id,
			tourist_user_id=actor_id,
			number_of_people=number_of_people,
			start_date=start_date,
			end_date=end_date,
			total_amount=Decimal(tour.price) * number_of_people,
			status=BookingStatus.PENDING,
			special_requests=special_requests,
			contact_phone=contact_phone,
			contact_email=contact_email,
		)
		db.add(booking)
		commit(db, "create booking")
		logger.info(f"Tourist {actor_id} booked tour {tour.id} for {number_of_people} people ({booking.id})")
		return BookingResponse.model_validate(BookingService._load(db, booking.id))

	@staticmethod
	def _apply_status(db: Session, booking: Booking, target: BookingStatus, allowed: set, owner_clause) -> BookingResponse:
		current = booking.status
		if target != current and target not in allowed:
			raise Forbidden(f"Cannot change booking status from {current.value} to {target.value}")

		booking_id = booking.id
		try:
			result = db.execute(
				update(Booking)
				.where(Booking.id == booking_id, Booking.status == current, owner_clause)
				.values(status=target, updated_at=datetime.utcnow())
				.execution_options(synchronize_session=False)
			)
		except SQLAlchemyError:
			db.rollback()
			logger.exception(f"Failed to update status of booking {booking_id}")
			raise StorageError("Failed to update booking status")

		if result.rowcount == 0:
			db.rollback()
			logger.warning(f"Booking {booking_id} changed concurrently, rejecting {current.value} -> {target.value}")
			raise Forbidden("Booking status was changed by another request")

		commit(db, "update booking status")
		logger.info(f"Booking {booking_id} status {current.value} -> {target.value}")
		return BookingResponse.model_validate(BookingService._load(db, booking_id))

	@staticmethod
	def update_booking_status(
		db: Session,
		booking_id: str,
		new_status,
		actor_id: str,
		actor_role: UserRole,
	) -> BookingResponse:
		target = parse_status(new_status)

		if actor_role == UserRole.TOURIST:
			if target != BookingStatus.CANCELLED:
				raise Forbidden("Tourists can only cancel bookings")
			return BookingService.cancel_booking(db, booking_id, actor_id)
		if actor_role != UserRole.AGENCY:
			raise Forbidden()

		booking = db.scalar(
			select(Booking).where(Booking.id == booking_id, _owned_by_agency(actor_id))
		)
		if not booking:
			raise NotFound("Booking not found")
		return BookingService._apply_status(
			db, booking, target, AGENCY_TRANSITIONS[booking.status], _owned_by_agency(actor_id)
		)

	@staticmethod
	def cancel_booking(db: Session, booking_id: str, tourist_id: str) -> BookingResponse:
		booking = db.scalar(
			select(Booking).where(Booking.id == booking_id, Booking.tourist_user_id == tourist_id)
		)
		if not booking:
			raise NotFound("Booking not found")
		allowed = {BookingStatus.CANCELLED} if booking.status in TOURIST_CANCELLABLE else set()
		return BookingService._apply_status(
			db, booking, BookingStatus.CANCELLED, allowed, Booking.tourist_user_id == tourist_id
		)

	@staticmethod
	def get_booking(db: Session, booking_id: str, actor_id: str, actor_role: UserRole) -> BookingResponse:
		booking = BookingService._load(db, booking_id)
		if booking is None:
			raise NotFound("Booking not found")
		if actor_role == UserRole.TOURIST:
			visible = booking.tourist_user_id == actor_id
		else:
			visible = booking.tour.agency_user_id == actor_id
		if not visible:
			raise NotFound("Booking not found")
		return BookingResponse.model_validate(booking)

	@staticmethod
	def list_bookings_for_tourist(db: Session, tourist_id: str, limit: Optional[int] = None, offset: int = 0) -> BookingListResponse:
		condition = Booking.tourist_user_id == tourist_id
		return BookingService._list(db, condition, limit, offset)

	@staticmethod
	def list_bookings_for_agency(db: Session, agency_user_id: str, limit: Optional[int] = None, offset: int = 0) -> BookingListResponse:
		return BookingService._list(db, _owned_by_agency(agency_user_id), limit, offset)

	@staticmethod
	def _list(db: Session, condition, limit: Optional[int], offset: int) -> BookingListResponse:
		total = db.scalar(select(func.count(Booking.id)).where(condition))
		query = BookingService._query().where(condition).order_by(Booking.created_at.desc())
		if limit is not None:
			query = query.limit(limit).offset(offset)
		bookings = db.scalars(query).all()
		return BookingListResponse(
			bookings=[BookingResponse.model_validate(b) for b in bookings],
			total=total,
		)

	@staticmethod
	def recent_bookings_by_agency(db: Session, agency_user_id: str, limit: int = 10) -> List[BookingResponse]:
		return BookingService.list_bookings_for_agency(db, agency_user_id, limit=limit).bookings

	@staticmethod
	def get_booking_stats(db: Session, agency_user_id: str) -> BookingStats:
		total, revenue, confirmed, pending = db.execute(
			select(
				func.count(Booking.id),
				func.coalesce(func.sum(Booking.total_amount), 0),
				func.sum(case((Booking.status == BookingStatus.CONFIRMED, 1), else_=0)),
				func.sum(case((Booking.status == BookingStatus.PENDING, 1), else_=0)),
			)
			.join(Tour, Booking.tour_id == Tour.id)
			.where(Tour.agency_user_id == agency_user_id)
		).one()

		active_tours = db.scalar(
			select(func.count(Tour.id)).where(Tour.agency_user_id == agency_user_id, Tour.is_active)
		)
		rating = ReviewService.get_agency_rating(db, agency_user_id)

		return BookingStats(
			total_bookings=total or 0,
			total_revenue=Decimal(str(revenue or 0)),
			confirmed_bookings=confirmed or 0,
			pending_bookings=pending or 0,
			active_tours=active_tours or 0,
			average_rating=rating.average,
		)
