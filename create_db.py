#!/usr/bin/env python3
"""
Create the database tables and, optionally, a small demo data set.

    python create_db.py          # tables only
    python create_db.py --seed   # tables + demo agency, tourist and tours
"""

import argparse
import sys
from decimal import Decimal
from pathlib import Path

# Add the app directory to Python path
sys.path.append(str(Path(__file__).parent))

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import engine, Base, SessionLocal
from app.db.models import User, Tour, Booking, Review, UserRole
from app.schemas import RegisterRequest, TourCreate
from app.services.auth_service import AuthService
from app.services.tour_service import TourService

DEMO_TOURS = [
	TourCreate(
		title="Grand Canyon Hiking Adventure",
		description="Three days on the most scenic trails of the Grand Canyon with expert guides.",
		destination="Grand Canyon, Arizona",
		category="Adventure",
		duration=3,
		max_group_size=12,
		price=Decimal("450.00"),
		itinerary="Day 1: Arrival and orientation. Day 2: South Rim hiking. Day 3: Bright Angel Trail descent.",
		inclusions="Professional guide, camping equipment, meals, transportation",
		exclusions="Personal items, travel insurance",
	),
	TourCreate(
		title="Yosemite National Park Explorer",
		description="The natural wonders of Yosemite, for nature lovers and photographers.",
		destination="Yosemite, California",
		category="Nature",
		duration=2,
		max_group_size=15,
		price=Decimal("320.00"),
		itinerary="Day 1: Valley floor exploration. Day 2: Glacier Point and hiking trails.",
	),
]


def seed(db) -> None:
	if db.scalar(select(func.count(User.id))):
		print("Data already seeded, skipping")
		return

	agency = AuthService.register(db, RegisterRequest(
		name="Adventure Tours Agency",
		email="agency@adventuretours.com",
		password="password123",
		phone="+1-555-0123",
		role=UserRole.AGENCY,
		agency_name="Adventure Tours Agency",
		agency_description="Adventure tours and outdoor experiences around the world.",
		agency_services="Hiking, Rock Climbing, Water Sports, Wildlife Tours",
	))
	AuthService.register(db, RegisterRequest(
		name="John Tourist",
		email="john@example.com",
		password="password123",
		phone="+1-555-0456",
		role=UserRole.TOURIST,
	))
	for tour in DEMO_TOURS:
		TourService.create_tour(db, tour, agency.user.id, UserRole.AGENCY)


def create_database(with_seed: bool = False) -> bool:
	"""Create all tables and print row counts"""
	print("Creating database tables...")

	try:
		Base.metadata.create_all(bind=engine)
		print("Tables created")

		db = SessionLocal()
		try:
			if with_seed:
				seed(db)
			print("Row counts:")
			for model in (User, Tour, Booking, Review):
				print(f"   - {model.__tablename__}: {db.scalar(select(func.count()).select_from(model))}")
		finally:
			db.close()

	except SQLAlchemyError as e:
		print(f"Error creating database: {e}")
		return False

	return True

if __name__ == "__main__":
	parser = argparse.ArgumentParser(description=__doc__)
	parser.add_argument("--seed", action="store_true", help="insert demo users and tours")
	args = parser.parse_args()
	sys.exit(0 if create_database(with_seed=args.seed) else 1)
