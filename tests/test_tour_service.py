from decimal import Decimal

import pytest

from app.core.errors import Forbidden, NotFound, ValidationError
from app.db.models import TourLifecycle, UserRole
from app.schemas import TourCreate, TourFilters, TourUpdate
from app.services.tour_service import TourService

from conftest import make_tour


def create_tour_dict(**overrides):
	data = dict(
		title="Yosemite National Park Explorer",
		description="Valley floor and Glacier Point",
		destination="Yosemite, California",
		category="Nature",
		duration=2,
		max_group_size=15,
		price=Decimal("320.00"),
	)
	data.update(overrides)
	return TourCreate(**data)


def test_create_tour_is_owned_by_the_agency(db_session, agency):
	tour = TourService.create_tour(db_session, create_tour_dict(), agency.id, UserRole.AGENCY)
	assert tour.agency_user_id == agency.id
	assert tour.lifecycle == TourLifecycle.ACTIVE
	assert tour.is_active is True
	assert tour.agency_user.agency_profile.agency_name == "Adventure Tours"
	assert tour.rating.count == 0


def test_tourist_cannot_create_tours(db_session, tourist):
	with pytest.raises(Forbidden):
		TourService.create_tour(db_session, create_tour_dict(), tourist.id, UserRole.TOURIST)


def test_update_cannot_move_tour_to_another_agency(db_session, tour, other_agency):
	with pytest.raises(NotFound):
		TourService.update_tour(db_session, tour.id, TourUpdate(title="Stolen"), other_agency.id, UserRole.AGENCY)


def test_deactivate_is_logical(db_session, agency, tour):
	TourService.deactivate_tour(db_session, tour.id, agency.id, UserRole.AGENCY)

	summary = TourService.get_tour_summary(db_session, tour.id)
	assert summary is not None
	assert summary.lifecycle == TourLifecycle.DEACTIVATED
	assert summary.is_active is False
	assert TourService.list_tours(db_session).total == 0
	assert TourService.list_tour_ids(db_session, agency.id) == [tour.id]


def test_list_filters_by_price_range(db_session, agency):
	make_tour(db_session, agency, price="50", destination="Ubud")
	mid = make_tour(db_session, agency, price="150", destination="Bali")
	make_tour(db_session, agency, price="500", destination="Lisbon")

	result = TourService.list_tours(db_session, TourFilters(min_price=Decimal("100"), max_price=Decimal("200")))
	assert [t.id for t in result.tours] == [mid.id]


def test_destination_wildcards_are_matched_literally(db_session, agency):
	make_tour(db_session, agency, destination="Bali")
	make_tour(db_session, agency, destination="Lisbon")
	discount = make_tour(db_session, agency, destination="Sale_100%")

	assert TourService.list_tours(db_session, TourFilters(destination="_")).total == 1
	assert TourService.list_tours(db_session, TourFilters(destination="%")).total == 1
	assert TourService.list_tours(db_session, TourFilters(destination="li")).total == 2
	assert [t.id for t in TourService.list_tours(db_session, TourFilters(destination="e_1")).tours] == [discount.id]


def test_unknown_duration_bucket_is_rejected(db_session):
	with pytest.raises(ValidationError):
		TourService.list_tours(db_session, TourFilters(duration="forever"))


def test_popular_and_destinations_skip_inactive(db_session, agency):
	make_tour(db_session, agency, destination="Ubud")
	make_tour(db_session, agency, destination="Bali")
	make_tour(db_session, agency, destination="Bali", category="Surf")
	make_tour(db_session, agency, destination="Closed", active=False)

	assert TourService.destinations(db_session) == ["Bali", "Ubud"]
	assert len(TourService.popular_tours(db_session, limit=2)) == 2
	assert {t.destination for t in TourService.popular_tours(db_session)} == {"Ubud", "Bali"}
