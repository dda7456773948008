from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict
from datetime import datetime, date
from decimal import Decimal

from app.db.models import UserRole, TourLifecycle, BookingStatus


# ===== USER SCHEMAS =====
class AgencyProfileResponse(BaseModel):
	id: str
	agency_name: str
	description: Optional[str] = None
	services: Optional[str] = None

	class Config:
		from_attributes = True


class UserSummary(BaseModel):
	id: str
	name: str

	class Config:
		from_attributes = True


class UserResponse(UserSummary):
	email: EmailStr
	phone: Optional[str] = None
	role: UserRole
	created_at: Optional[datetime] = None
	agency_profile: Optional[AgencyProfileResponse] = None


class AgencySummary(UserSummary):
	agency_profile: Optional[AgencyProfileResponse] = None


# ===== AUTH SCHEMAS =====
class RegisterRequest(BaseModel):
	name: str = Field(..., min_length=1, max_length=100)
	email: EmailStr
	password: str = Field(..., min_length=6)
	phone: Optional[str] = Field(None, max_length=20)
	role: UserRole
	agency_name: Optional[str] = Field(None, max_length=200)
	agency_description: Optional[str] = Field(None, max_length=1000)
	agency_services: Optional[str] = Field(None, max_length=1000)


class LoginRequest(BaseModel):
	email: EmailStr
	password: str


class TokenResponse(BaseModel):
	access_token: str
	token_type: str = "bearer"
	user: UserResponse


class UpdateProfileRequest(BaseModel):
	name: Optional[str] = Field(None, max_length=100)
	phone: Optional[str] = Field(None, max_length=20)
	agency_name: Optional[str] = Field(None, max_length=200)
	agency_description: Optional[str] = Field(None, max_length=1000)
	agency_services: Optional[str] = Field(None, max_length=1000)


# ===== TOUR SCHEMAS =====
class TourBase(BaseModel):
	title: str = Field(..., min_length=1, max_length=200)
	description: str = Field(..., max_length=500)
	destination: str = Field(..., min_length=1, max_length=100)
	category: str = Field(..., min_length=1, max_length=50)
	duration: int = Field(..., ge=1, le=365)
	max_group_size: int = Field(10, ge=1, le=50)
	price: Decimal = Field(..., gt=0, decimal_places=2)
	image_url: Optional[str] = Field(None, max_length=500)
	itinerary: Optional[str] = Field(None, max_length=1000)
	inclusions: Optional[str] = Field(None, max_length=500)
	exclusions: Optional[str] = Field(None, max_length=500)


class TourCreate(TourBase):
	pass


class TourUpdate(BaseModel):
	title: Optional[str] = Field(None, min_length=1, max_length=200)
	description: Optional[str] = Field(None, max_length=500)
	destination: Optional[str] = Field(None, min_length=1, max_length=100)
	category: Optional[str] = Field(None, min_length=1, max_length=50)
	duration: Optional[int] = Field(None, ge=1, le=365)
	max_group_size: Optional[int] = Field(None, ge=1, le=50)
	price: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
	image_url: Optional[str] = Field(None, max_length=500)
	itinerary: Optional[str] = Field(None, max_length=1000)
	inclusions: Optional[str] = Field(None, max_length=500)
	exclusions: Optional[str] = Field(None, max_length=500)
	is_active: Optional[bool] = None


class TourSummary(BaseModel):
	id: str
	title: str
	destination: str
	duration: int
	price: Decimal
	image_url: Optional[str] = None
	agency_user_id: str

	class Config:
		from_attributes = True


class TourResponse(TourBase):
	id: str
	agency_user_id: str
	lifecycle: TourLifecycle
	is_active: bool
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None
	agency_user: Optional[AgencySummary] = None
	review_count: int = 0
	average_rating: float = 0

	class Config:
		from_attributes = True


class TourRating(BaseModel):
	count: int = 0
	average: float = 0
	distribution: Dict[int, int] = Field(default_factory=lambda: {star: 0 for star in range(5, 0, -1)})


class AgencyRating(BaseModel):
	count: int = 0
	average: float = 0


class TourDetail(TourResponse):
	rating: TourRating = Field(default_factory=TourRating)


class TourFilters(BaseModel):
	destination: Optional[str] = None
	category: Optional[str] = None
	min_price: Optional[Decimal] = None
	max_price: Optional[Decimal] = None
	# "1", "2-3", "4-7", "7+"
	duration: Optional[str] = None


class TourListResponse(BaseModel):
	tours: List[TourResponse]
	total: int
	page: int
	per_page: int


# ===== BOOKING SCHEMAS =====
class BookingCreate(BaseModel):
	tour_id: str
	number_of_people: int
	start_date: date
	end_date: Optional[date] = None
	special_requests: Optional[str] = Field(None, max_length=500)
	contact_phone: Optional[str] = Field(None, max_length=100)
	contact_email: Optional[EmailStr] = None


class BookingStatusUpdate(BaseModel):
	status: str


class BookingResponse(BaseModel):
	id: str
	tour_id: str
	tourist_user_id: str
	number_of_people: int
	start_date: date
	end_date: date
	total_amount: Decimal
	status: BookingStatus
	special_requests: Optional[str] = None
	contact_phone: Optional[str] = None
	contact_email: Optional[str] = None
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None

	# Related data
	tour: Optional[TourSummary] = None
	tourist_user: Optional[UserSummary] = None

	class Config:
		from_attributes = True


class BookingListResponse(BaseModel):
	bookings: List[BookingResponse]
	total: int


class BookingStats(BaseModel):
	total_bookings: int = 0
	total_revenue: Decimal = Decimal("0")
	confirmed_bookings: int = 0
	pending_bookings: int = 0
	active_tours: int = 0
	average_rating: float = 0


# ===== REVIEW SCHEMAS =====
class ReviewCreate(BaseModel):
	tour_id: str
	rating: int = Field(..., ge=1, le=5)
	comment: Optional[str] = Field(None, max_length=1000)


class ReviewUpdate(BaseModel):
	rating: Optional[int] = Field(None, ge=1, le=5)
	comment: Optional[str] = Field(None, max_length=1000)


class ReviewResponse(BaseModel):
	id: str
	tour_id: str
	tourist_user_id: str
	rating: int
	comment: Optional[str] = None
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None

	tourist_user: Optional[UserSummary] = None
	tour: Optional[TourSummary] = None

	class Config:
		from_attributes = True


class ReviewListResponse(BaseModel):
	reviews: List[ReviewResponse]
	total: int
	rating: Optional[TourRating] = None


# ===== RESPONSE WRAPPERS =====
class SuccessResponse(BaseModel):
	success: bool = True
	message: str
	data: Optional[dict] = None


class ErrorResponse(BaseModel):
	success: bool = False
	message: str
	error_code: Optional[str] = None
	details: Optional[dict] = None
