import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.core.errors import Forbidden, NotFound, ValidationError
from app.db.models import Review, Tour, TourLifecycle, User, UserRole
from app.db.session import commit
from app.schemas import TourCreate, TourDetail, TourFilters, TourListResponse, TourResponse, TourUpdate
from app.services.review_service import ReviewService

logger = logging.getLogger(__name__)

DURATION_BUCKETS = {
	"1": (1, 1),
	"2-3": (2, 3),
	"4-7": (4, 7),
	"7+": (8, None),
}


class TourService:
	@staticmethod
	def _with_agency():
		return selectinload(Tour.agency_user).selectinload(User.agency_profile)

	@staticmethod
	def _to_responses(db: Session, tours: List[Tour]) -> List[TourResponse]:
		"""Attach review count and average rating with one grouped query."""
		if not tours:
			return []
		rows = db.execute(
			select(Review.tour_id, func.count(Review.id), func.avg(Review.rating))
			.where(Review.tour_id.in_([t.id for t in tours]))
			.group_by(Review.tour_id)
		).all()
		ratings = {tour_id: (count, float(avg or 0)) for tour_id, count, avg in rows}

		responses = []
		for tour in tours:
			count, average = ratings.get(tour.id, (0, 0.0))
			response = TourResponse.model_validate(tour)
			response.review_count = count
			response.average_rating = average
			responses.append(response)
		return responses

	@staticmethod
	def _get_owned(db: Session, tour_id: str, agency_user_id: str) -> Tour:
		tour = db.scalar(select(Tour).where(Tour.id == tour_id, Tour.agency_user_id == agency_user_id))
		if not tour:
			raise NotFound("Tour not found")
		return tour

	@staticmethod
	def create_tour(db: Session, payload: TourCreate, actor_id: str, actor_role: UserRole) -> TourDetail:
		if actor_role != UserRole.AGENCY:
			raise Forbidden("Only agencies can create tours")

		tour = Tour(agency_user_id=actor_id, lifecycle=TourLifecycle.ACTIVE, **payload.model_dump())
		db.add(tour)
		commit(db, "create tour")
		logger.info(f"Agency {actor_id} created tour {tour.id}")
		return TourService.get_tour(db, tour.id)

	@staticmethod
	def list_tours(db: Session, filters: Optional[TourFilters] = None, page: int = 1, per_page: int = 20) -> TourListResponse:
		query = select(Tour).where(Tour.is_active)

		if filters:
			if filters.destination:
				query = query.where(Tour.destination.icontains(filters.destination, autoescape=True))
			if filters.category:
				query = query.where(Tour.category == filters.category)
			if filters.min_price is not None:
				query = query.where(Tour.price >= filters.min_price)
			if filters.max_price is not None:
				query = query.where(Tour.price <= filters.max_price)
			if filters.duration:
				if filters.duration not in DURATION_BUCKETS:
					raise ValidationError(f"Unknown duration filter: {filters.duration}")
				low, high = DURATION_BUCKETS[filters.duration]
				query = query.where(Tour.duration >= low)
				if high is not None:
					query = query.where(Tour.duration <= high)

		total = db.scalar(select(func.count()).select_from(query.subquery()))

		offset = (page - 1) * per_page
		tours = db.scalars(
			query.options(TourService._with_agency())
			.order_by(Tour.created_at.desc())
			.offset(offset)
			.limit(per_page)
		).all()

		return TourListResponse(
			tours=TourService._to_responses(db, list(tours)),
			total=total,
			page=page,
			per_page=per_page,
		)

	@staticmethod
	def get_tour(db: Session, tour_id: str) -> TourDetail:
		"""Tour detail including deactivated tours, so historical bookings still resolve."""
		tour = db.scalar(select(Tour).options(TourService._with_agency()).where(Tour.id == tour_id))
		if not tour:
			raise NotFound("Tour not found")
		rating = ReviewService.get_tour_rating(db, tour_id)
		detail = TourDetail.model_validate(tour)
		detail.rating = rating
		detail.review_count = rating.count
		detail.average_rating = rating.average
		return detail

	@staticmethod
	def get_tour_summary(db: Session, tour_id: str) -> Tour | None:
		return db.get(Tour, tour_id)

	@staticmethod
	def list_tours_by_agency(db: Session, agency_user_id: str) -> List[TourResponse]:
		tours = db.scalars(
			select(Tour)
			.options(TourService._with_agency())
			.where(Tour.agency_user_id == agency_user_id)
			.order_by(Tour.created_at.desc())
		).all()
		return TourService._to_responses(db, list(tours))

	@staticmethod
	def list_tour_ids(db: Session, agency_user_id: str) -> List[str]:
		return list(db.scalars(select(Tour.id).where(Tour.agency_user_id == agency_user_id)))

	@staticmethod
	def update_tour(db: Session, tour_id: str, payload: TourUpdate, actor_id: str, actor_role: UserRole) -> TourDetail:
		if actor_role != UserRole.AGENCY:
			raise Forbidden("Only agencies can update tours")
		tour = TourService._get_owned(db, tour_id, actor_id)

		changes = payload.model_dump(exclude_unset=True, exclude_none=True)
		is_active = changes.pop("is_active", None)
		for key, value in changes.items():
			setattr(tour, key, value)
		if is_active is not None:
			tour.lifecycle = TourLifecycle.ACTIVE if is_active else TourLifecycle.DEACTIVATED
		tour.updated_at = datetime.utcnow()

		commit(db, "update tour")
		return TourService.get_tour(db, tour_id)

	@staticmethod
	def deactivate_tour(db: Session, tour_id: str, actor_id: str, actor_role: UserRole) -> None:
		if actor_role != UserRole.AGENCY:
			raise Forbidden("Only agencies can delete tours")
		tour = TourService._get_owned(db, tour_id, actor_id)
		tour.lifecycle = TourLifecycle.DEACTIVATED
		tour.updated_at = datetime.utcnow()
		commit(db, "deactivate tour")
		logger.info(f"Agency {actor_id} deactivated tour {tour_id}")

	@staticmethod
	def popular_tours(db: Session, limit: int = 6) -> List[TourResponse]:
		tours = db.scalars(
			select(Tour)
			.options(TourService._with_agency())
			.where(Tour.is_active)
			.order_by(Tour.created_at.desc())
			.limit(limit)
		).all()
		return TourService._to_responses(db, list(tours))

	@staticmethod
	def destinations(db: Session) -> List[str]:
		return list(db.scalars(
			select(Tour.destination).where(Tour.is_active).distinct().order_by(Tour.destination)
		))
