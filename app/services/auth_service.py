import logging
from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.errors import DuplicateEmail, Forbidden, NotFound, StorageError
from app.core.security import hash_password, verify_password, create_access_token, decode_access_token
from app.db.models import AgencyProfile, User, UserRole
from app.db.session import get_db, commit
from app.schemas import RegisterRequest, TokenResponse, UpdateProfileRequest, UserResponse

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
	"""Authenticated caller, passed explicitly into every service call."""
	user_id: str
	role: UserRole


class AuthService:
	@staticmethod
	def _load_user(db: Session, user_id: str) -> User | None:
		return db.scalar(
			select(User).options(selectinload(User.agency_profile)).where(User.id == user_id)
		)

	@staticmethod
	def register(db: Session, payload: RegisterRequest) -> TokenResponse:
		email = payload.email.lower()
		if db.scalar(select(User.id).where(User.email == email)):
			raise DuplicateEmail()

		user = User(
			name=payload.name,
			email=email,
			password=hash_password(payload.password),
			phone=payload.phone,
			role=payload.role,
		)
		db.add(user)
		if payload.role == UserRole.AGENCY and payload.agency_name:
			user.agency_profile = AgencyProfile(
				agency_name=payload.agency_name,
				description=payload.agency_description,
				services=payload.agency_services,
			)
		try:
			db.commit()
		except IntegrityError:
			# concurrent registration with the same email
			db.rollback()
			raise DuplicateEmail()
		except SQLAlchemyError:
			db.rollback()
			logger.exception("Failed to register user")
			raise StorageError("Failed to register user")

		logger.info(f"Registered {user.role.value} user {user.id}")
		user_response = UserResponse.model_validate(AuthService._load_user(db, user.id))
		token = create_access_token(subject=user.id, role=user.role.value)
		return TokenResponse(access_token=token, user=user_response)

	@staticmethod
	def authenticate(db: Session, email: str, password: str) -> Actor:
		user = db.scalar(select(User).where(User.email == email.lower()))
		if not user or not verify_password(password, user.password):
			raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
		return Actor(user_id=user.id, role=user.role)

	@staticmethod
	def login(email: str, password: str, db: Session) -> TokenResponse:
		actor = AuthService.authenticate(db, email, password)
		user = AuthService._load_user(db, actor.user_id)
		token = create_access_token(subject=actor.user_id, role=actor.role.value)
		return TokenResponse(access_token=token, user=UserResponse.model_validate(user))

	@staticmethod
	def get_user(db: Session, user_id: str) -> UserResponse:
		user = AuthService._load_user(db, user_id)
		if not user:
			raise NotFound("User not found")
		return UserResponse.model_validate(user)

	@staticmethod
	def update_profile(db: Session, user_id: str, payload: UpdateProfileRequest) -> UserResponse:
		user = AuthService._load_user(db, user_id)
		if not user:
			raise NotFound("User not found")

		if payload.name:
			user.name = payload.name
		if payload.phone:
			user.phone = payload.phone
		user.updated_at = datetime.utcnow()

		if user.role == UserRole.AGENCY:
			if user.agency_profile is None:
				user.agency_profile = AgencyProfile(agency_name=payload.agency_name or user.name)
			profile = user.agency_profile
			if payload.agency_name:
				profile.agency_name = payload.agency_name
			if payload.agency_description:
				profile.description = payload.agency_description
			if payload.agency_services:
				profile.services = payload.agency_services
		elif payload.agency_name or payload.agency_description or payload.agency_services:
			raise Forbidden("Only agencies have an agency profile")

		commit(db, "update profile")
		return UserResponse.model_validate(AuthService._load_user(db, user_id))

	@staticmethod
	def get_current_actor(
		credentials: HTTPAuthorizationCredentials = Depends(security),
		db: Session = Depends(get_db),
	) -> Actor:
		if not credentials:
			raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
		payload = decode_access_token(credentials.credentials)
		if not payload or "sub" not in payload:
			raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
		user = db.scalar(select(User).where(User.id == payload["sub"]))
		if not user:
			raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
		return Actor(user_id=user.id, role=user.role)
