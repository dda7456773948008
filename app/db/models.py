import enum
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Integer, Date, DateTime, ForeignKey, Enum, Numeric, Text, UniqueConstraint, CheckConstraint
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.session import Base


def new_id() -> str:
	return uuid.uuid4().hex


def _enum_values(enum_cls):
	return [member.value for member in enum_cls]


class UserRole(str, enum.Enum):
	TOURIST = "tourist"
	AGENCY = "agency"


class TourLifecycle(str, enum.Enum):
	ACTIVE = "active"
	DEACTIVATED = "deactivated"


class BookingStatus(str, enum.Enum):
	PENDING = "pending"
	CONFIRMED = "confirmed"
	COMPLETED = "completed"
	CANCELLED = "cancelled"


class User(Base):
	__tablename__ = "users"

	id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
	name: Mapped[str] = mapped_column(String(100), nullable=False)
	email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
	password: Mapped[str] = mapped_column(String(255), nullable=False)
	phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
	role: Mapped[UserRole] = mapped_column(
		Enum(UserRole, name="user_role", values_callable=_enum_values), nullable=False
	)
	created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
	updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

	agency_profile: Mapped[Optional["AgencyProfile"]] = relationship("AgencyProfile", back_populates="user", uselist=False)
	tours: Mapped[list["Tour"]] = relationship("Tour", back_populates="agency_user")
	bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="tourist_user")
	reviews: Mapped[list["Review"]] = relationship("Review", back_populates="tourist_user")


class AgencyProfile(Base):
	__tablename__ = "agency_profiles"

	id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
	user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, unique=True)
	agency_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
	description: Mapped[str | None] = mapped_column(Text, nullable=True)
	services: Mapped[str | None] = mapped_column(Text, nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
	updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

	user: Mapped[User] = relationship("User", back_populates="agency_profile")


class Tour(Base):
	__tablename__ = "tours"
	__table_args__ = (
		CheckConstraint("duration >= 1", name="ck_tours_duration"),
		CheckConstraint("max_group_size >= 1", name="ck_tours_max_group_size"),
		CheckConstraint("price > 0", name="ck_tours_price"),
	)

	id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
	agency_user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
	title: Mapped[str] = mapped_column(String(200), nullable=False)
	description: Mapped[str] = mapped_column(String(500), nullable=False)
	destination: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
	category: Mapped[str] = mapped_column(String(50), nullable=False)
	duration: Mapped[int] = mapped_column(Integer, nullable=False)
	max_group_size: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
	price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
	image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
	itinerary: Mapped[str | None] = mapped_column(Text, nullable=True)
	inclusions: Mapped[str | None] = mapped_column(String(500), nullable=True)
	exclusions: Mapped[str | None] = mapped_column(String(500), nullable=True)
	lifecycle: Mapped[TourLifecycle] = mapped_column(
		Enum(TourLifecycle, name="tour_lifecycle", values_callable=_enum_values),
		nullable=False,
		default=TourLifecycle.ACTIVE,
	)
	created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
	updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

	agency_user: Mapped[User] = relationship("User", back_populates="tours")
	bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="tour")
	reviews: Mapped[list["Review"]] = relationship("Review", back_populates="tour")

	@hybrid_property
	def is_active(self) -> bool:
		return self.lifecycle == TourLifecycle.ACTIVE

	@is_active.inplace.expression
	@classmethod
	def _is_active_expression(cls):
		return cls.lifecycle == TourLifecycle.ACTIVE


class Booking(Base):
	__tablename__ = "bookings"
	__table_args__ = (
		CheckConstraint("number_of_people >= 1", name="ck_bookings_number_of_people"),
	)

	id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
	tour_id: Mapped[str] = mapped_column(String(32), ForeignKey("tours.id", ondelete="RESTRICT"), nullable=False, index=True)
	tourist_user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
	number_of_people: Mapped[int] = mapped_column(Integer, nullable=False)
	start_date: Mapped[date] = mapped_column(Date, nullable=False)
	end_date: Mapped[date] = mapped_column(Date, nullable=False)
	# frozen at creation
	total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
	status: Mapped[BookingStatus] = mapped_column(
		Enum(BookingStatus, name="booking_status", values_callable=_enum_values),
		nullable=False,
		default=BookingStatus.PENDING,
	)
	special_requests: Mapped[str | None] = mapped_column(String(500), nullable=True)
	contact_phone: Mapped[str | None] = mapped_column(String(100), nullable=True)
	contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
	updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

	tour: Mapped[Tour] = relationship("Tour", back_populates="bookings")
	tourist_user: Mapped[User] = relationship("User", back_populates="bookings")


class Review(Base):
	__tablename__ = "reviews"
	__table_args__ = (
		UniqueConstraint("tourist_user_id", "tour_id", name="uq_reviews_tourist_tour"),
		CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
	)

	id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
	tour_id: Mapped[str] = mapped_column(String(32), ForeignKey("tours.id", ondelete="RESTRICT"), nullable=False, index=True)
	tourist_user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
	rating: Mapped[int] = mapped_column(Integer, nullable=False)
	comment: Mapped[str | None] = mapped_column(String(1000), nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
	updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

	tour: Mapped[Tour] = relationship("Tour", back_populates="reviews")
	tourist_user: Mapped[User] = relationship("User", back_populates="reviews")
