from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas import LoginRequest, RegisterRequest, TokenResponse, UpdateProfileRequest, UserResponse
from app.services.auth_service import Actor, AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
	return AuthService.register(db, payload)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
	return AuthService.login(email=payload.email, password=payload.password, db=db)


@router.get("/profile", response_model=UserResponse)
def get_profile(actor: Actor = Depends(AuthService.get_current_actor), db: Session = Depends(get_db)):
	return AuthService.get_user(db, actor.user_id)


@router.put("/profile", response_model=UserResponse)
def update_profile(
	payload: UpdateProfileRequest,
	actor: Actor = Depends(AuthService.get_current_actor),
	db: Session = Depends(get_db),
):
	return AuthService.update_profile(db, actor.user_id, payload)
