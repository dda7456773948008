import os

# must be set before the app modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token, hash_password
from app.db.models import AgencyProfile, Tour, TourLifecycle, User, UserRole
from app.db.session import Base, enable_sqlite_foreign_keys, get_db
from app.main import app

# ---------- TEST FIXTURES ----------

@pytest.fixture
def engine():
	"""In-memory SQLite shared by every session of one test."""
	engine = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
	)
	enable_sqlite_foreign_keys(engine)
	Base.metadata.create_all(bind=engine)
	yield engine
	Base.metadata.drop_all(bind=engine)
	engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
	"""File-backed SQLite for tests that need separate connections per thread."""
	engine = create_engine(
		f"sqlite:///{tmp_path / 'race.db'}",
		connect_args={"check_same_thread": False, "timeout": 15},
	)
	enable_sqlite_foreign_keys(engine)
	Base.metadata.create_all(bind=engine)
	yield engine
	engine.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory):
	session = session_factory()
	yield session
	session.close()


@pytest.fixture
def client(session_factory):
	"""Override get_db dependency for FastAPI TestClient."""

	def override_get_db():
		db = session_factory()
		try:
			yield db
		finally:
			db.close()

	app.dependency_overrides[get_db] = override_get_db
	client = TestClient(app)
	yield client
	app.dependency_overrides.clear()

# ---------- TEST DATA HELPERS ----------

def make_user(db, name, email, role, agency_name=None):
	user = User(name=name, email=email, password=hash_password("password123"), role=role)
	if agency_name:
		user.agency_profile = AgencyProfile(agency_name=agency_name)
	db.add(user)
	db.commit()
	return user


def make_tour(db, agency, price="100.00", max_group_size=10, duration=3, destination="Bali", category="Beach", active=True):
	tour = Tour(
		agency_user_id=agency.id,
		title=f"{destination} {category} tour",
		description="A guided tour",
		destination=destination,
		category=category,
		duration=duration,
		max_group_size=max_group_size,
		price=Decimal(price),
		lifecycle=TourLifecycle.ACTIVE if active else TourLifecycle.DEACTIVATED,
	)
	db.add(tour)
	db.commit()
	return tour


def auth_headers(user):
	return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


START = date.today() + timedelta(days=30)


@pytest.fixture
def agency(db_session):
	return make_user(db_session, "Adventure Tours", "agency@example.com", UserRole.AGENCY, agency_name="Adventure Tours")


@pytest.fixture
def other_agency(db_session):
	return make_user(db_session, "Island Hoppers", "island@example.com", UserRole.AGENCY, agency_name="Island Hoppers")


@pytest.fixture
def tourist(db_session):
	return make_user(db_session, "John Tourist", "john@example.com", UserRole.TOURIST)


@pytest.fixture
def other_tourist(db_session):
	return make_user(db_session, "Jane Tourist", "jane@example.com", UserRole.TOURIST)


@pytest.fixture
def tour(db_session, agency):
	return make_tour(db_session, agency)
