import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.errors import DuplicateReview, Forbidden, NotFound, StorageError, ValidationError
from app.db.models import Review, Tour, UserRole
from app.db.session import commit
from app.schemas import AgencyRating, ReviewListResponse, ReviewResponse, TourRating

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 1000


def _validate_rating(rating) -> int:
	# bool is an int subclass
	if isinstance(rating, bool) or not isinstance(rating, int):
		raise ValidationError("Rating must be a whole number")
	if rating < MIN_RATING or rating > MAX_RATING:
		raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
	return rating


def _validate_comment(comment: Optional[str]) -> Optional[str]:
	if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
		raise ValidationError(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")
	return comment


class ReviewService:
	@staticmethod
	def _query():
		return select(Review).options(selectinload(Review.tourist_user), selectinload(Review.tour))

	@staticmethod
	def _get_owned(db: Session, review_id: str, tourist_id: str) -> Review:
		# missing and not-owned look the same to the caller
		review = db.scalar(select(Review).where(Review.id == review_id, Review.tourist_user_id == tourist_id))
		if not review:
			raise NotFound("Review not found")
		return review

	@staticmethod
	def get_review(db: Session, review_id: str) -> ReviewResponse:
		review = db.scalar(ReviewService._query().where(Review.id == review_id))
		if not review:
			raise NotFound("Review not found")
		return ReviewResponse.model_validate(review)

	@staticmethod
	def create_review(
		db: Session,
		tour_id: str,
		actor_id: str,
		actor_role: UserRole,
		rating: int,
		comment: Optional[str] = None,
	) -> ReviewResponse:
		"""Insert a review, relying on the (tourist, tour) unique constraint.

		There is no existence check before the insert. Two concurrent calls for
		the same pair both reach the database and the loser gets DuplicateReview.
		"""
		if actor_role != UserRole.TOURIST:
			raise Forbidden("Only tourists can write reviews")
		rating = _validate_rating(rating)
		comment = _validate_comment(comment)
		if db.get(Tour, tour_id) is None:
			raise NotFound("Tour not found")

		review = Review(tour_id=tour_id, tourist_user_id=actor_id, rating=rating, comment=comment)
		db.add(review)
		try:
			db.commit()
		except IntegrityError:
			db.rollback()
			exists = db.scalar(
				select(Review.id).where(Review.tour_id == tour_id, Review.tourist_user_id == actor_id)
			)
			if exists:
				logger.warning(f"Duplicate review rejected for tourist {actor_id} on tour {tour_id}")
				raise DuplicateReview()
			logger.exception("Failed to create review")
			raise StorageError("Failed to create review")
		except SQLAlchemyError:
			db.rollback()
			logger.exception("Failed to create review")
			raise StorageError("Failed to create review")

		logger.info(f"Tourist {actor_id} reviewed tour {tour_id} with rating {rating}")
		return ReviewService.get_review(db, review.id)

	@staticmethod
	def update_review(
		db: Session,
		review_id: str,
		tourist_id: str,
		rating: Optional[int] = None,
		comment: Optional[str] = None,
	) -> ReviewResponse:
		review = ReviewService._get_owned(db, review_id, tourist_id)
		if rating is not None:
			review.rating = _validate_rating(rating)
		if comment is not None:
			review.comment = _validate_comment(comment)
		review.updated_at = datetime.utcnow()
		commit(db, "update review")
		return ReviewService.get_review(db, review_id)

	@staticmethod
	def delete_review(db: Session, review_id: str, tourist_id: str) -> None:
		review = ReviewService._get_owned(db, review_id, tourist_id)
		db.delete(review)
		commit(db, "delete review")
		logger.info(f"Tourist {tourist_id} deleted review {review_id}")

	@staticmethod
	def get_tour_rating(db: Session, tour_id: str) -> TourRating:
		rows = db.execute(
			select(Review.rating, func.count(Review.id))
			.where(Review.tour_id == tour_id)
			.group_by(Review.rating)
		).all()

		distribution = {star: 0 for star in range(MAX_RATING, MIN_RATING - 1, -1)}
		for star, count in rows:
			distribution[star] = count
		total = sum(distribution.values())
		average = sum(star * count for star, count in distribution.items()) / total if total else 0.0
		return TourRating(count=total, average=average, distribution=distribution)

	@staticmethod
	def get_agency_rating(db: Session, agency_user_id: str) -> AgencyRating:
		count, average = db.execute(
			select(func.count(Review.id), func.avg(Review.rating))
			.join(Tour, Review.tour_id == Tour.id)
			.where(Tour.agency_user_id == agency_user_id)
		).one()
		return AgencyRating(count=count or 0, average=float(average or 0))

	@staticmethod
	def list_reviews_for_tour(db: Session, tour_id: str, limit: Optional[int] = None, offset: int = 0) -> ReviewListResponse:
		query = ReviewService._query().where(Review.tour_id == tour_id).order_by(Review.created_at.desc())
		if limit is not None:
			query = query.limit(limit).offset(offset)
		reviews = db.scalars(query).all()
		rating = ReviewService.get_tour_rating(db, tour_id)
		return ReviewListResponse(
			reviews=[ReviewResponse.model_validate(r) for r in reviews],
			total=rating.count,
			rating=rating,
		)

	@staticmethod
	def list_reviews_for_tourist(db: Session, tourist_id: str, limit: Optional[int] = None, offset: int = 0) -> ReviewListResponse:
		query = ReviewService._query().where(Review.tourist_user_id == tourist_id).order_by(Review.created_at.desc())
		total = db.scalar(select(func.count(Review.id)).where(Review.tourist_user_id == tourist_id))
		if limit is not None:
			query = query.limit(limit).offset(offset)
		reviews = db.scalars(query).all()
		return ReviewListResponse(reviews=[ReviewResponse.model_validate(r) for r in reviews], total=total)

	@staticmethod
	def get_my_review_for_tour(db: Session, tourist_id: str, tour_id: str) -> ReviewResponse:
		review = db.scalar(
			ReviewService._query().where(Review.tourist_user_id == tourist_id, Review.tour_id == tour_id)
		)
		if not review:
			raise NotFound("Review not found")
		return ReviewResponse.model_validate(review)

	@staticmethod
	def recent_reviews_by_agency(db: Session, agency_user_id: str, limit: int = 10) -> List[ReviewResponse]:
		reviews = db.scalars(
			ReviewService._query()
			.join(Tour, Review.tour_id == Tour.id)
			.where(Tour.agency_user_id == agency_user_id)
			.order_by(Review.created_at.desc())
			.limit(limit)
		).all()
		return [ReviewResponse.model_validate(r) for r in reviews]
