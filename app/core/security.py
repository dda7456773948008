from datetime import datetime, timedelta
from typing import Optional

import jwt
from passlib.hash import bcrypt

from app.core.config import settings


def hash_password(plain_password: str) -> str:
	return bcrypt.using(rounds=settings.bcrypt_rounds).hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
	try:
		return bcrypt.verify(plain_password, hashed_password)
	except ValueError:
		# malformed or foreign hash
		return False


def create_access_token(subject: str, role: str, expires_minutes: Optional[int] = None) -> str:
	exp_minutes = expires_minutes or settings.access_token_expire_minutes
	expire = datetime.utcnow() + timedelta(minutes=exp_minutes)
	to_encode = {"sub": subject, "role": role, "exp": expire}
	return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[dict]:
	try:
		payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
		return payload
	except jwt.PyJWTError:
		return None
