import threading

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from app.core.errors import DuplicateReview, Forbidden, NotFound, StorageError, ValidationError
from app.db.models import Review, UserRole
from app.services.review_service import ReviewService

from conftest import make_tour, make_user


def review(db, tour, tourist, rating=5, comment="Great trip"):
	return ReviewService.create_review(
		db, tour_id=tour.id, actor_id=tourist.id, actor_role=UserRole.TOURIST, rating=rating, comment=comment,
	)


# ---------- CREATE ----------

def test_rating_out_of_range_then_valid_then_duplicate(db_session, tour, tourist):
	with pytest.raises(ValidationError):
		review(db_session, tour, tourist, rating=6)

	created = review(db_session, tour, tourist, rating=3)
	assert created.rating == 3
	assert created.tourist_user.name == "John Tourist"

	with pytest.raises(DuplicateReview):
		review(db_session, tour, tourist, rating=4)
	assert db_session.scalar(select(func.count(Review.id))) == 1


@pytest.mark.parametrize("rating", [0, -3, 6, True, 4.5])
def test_invalid_ratings_are_not_clamped(db_session, tour, tourist, rating):
	with pytest.raises(ValidationError):
		review(db_session, tour, tourist, rating=rating)


def test_comment_is_optional(db_session, tour, tourist):
	created = review(db_session, tour, tourist, comment=None)
	assert created.comment is None


def test_overlong_comment_is_rejected(db_session, tour, tourist):
	with pytest.raises(ValidationError):
		review(db_session, tour, tourist, comment="x" * 1001)


def test_agency_cannot_review(db_session, tour, agency):
	with pytest.raises(Forbidden):
		ReviewService.create_review(db_session, tour.id, agency.id, UserRole.AGENCY, rating=5)


def test_review_of_unknown_tour_is_not_found(db_session, tourist):
	with pytest.raises(NotFound):
		ReviewService.create_review(db_session, "missing", tourist.id, UserRole.TOURIST, rating=5)


def test_same_tourist_may_review_different_tours(db_session, agency, tour, tourist):
	other = make_tour(db_session, agency, destination="Ubud")
	review(db_session, tour, tourist)
	review(db_session, other, tourist)
	assert ReviewService.list_reviews_for_tourist(db_session, tourist.id).total == 2


def test_integrity_failure_other_than_duplicate_is_storage_error(db_session, tour, tourist):
	with pytest.raises(StorageError):
		ReviewService.create_review(
			db_session, tour_id=tour.id, actor_id="no-such-tourist", actor_role=UserRole.TOURIST, rating=4,
		)

	# rolled back, so the same session can still write
	created = review(db_session, tour, tourist)
	assert db_session.scalar(select(func.count(Review.id))) == 1
	assert created.rating == 5


def test_concurrent_duplicate_reviews_insert_once(file_engine):
	Session = sessionmaker(bind=file_engine, autoflush=False)
	setup = Session()
	agency = make_user(setup, "Agency", "a@example.com", UserRole.AGENCY)
	tourist = make_user(setup, "Tourist", "t@example.com", UserRole.TOURIST)
	tour = make_tour(setup, agency)
	tour_id, tourist_id = tour.id, tourist.id
	setup.close()

	barrier = threading.Barrier(2)
	outcomes = []
	lock = threading.Lock()

	def attempt(rating):
		db = Session()
		try:
			barrier.wait()
			ReviewService.create_review(db, tour_id, tourist_id, UserRole.TOURIST, rating=rating)
			result = "created"
		except DuplicateReview:
			result = "duplicate"
		finally:
			db.close()
		with lock:
			outcomes.append(result)

	threads = [threading.Thread(target=attempt, args=(r,)) for r in (4, 5)]
	for t in threads:
		t.start()
	for t in threads:
		t.join()

	assert sorted(outcomes) == ["created", "duplicate"]
	check = Session()
	assert check.scalar(select(func.count(Review.id))) == 1
	check.close()


# ---------- UPDATE / DELETE ----------

def test_author_updates_review(db_session, tour, tourist):
	created = review(db_session, tour, tourist, rating=2)
	updated = ReviewService.update_review(db_session, created.id, tourist.id, rating=4, comment="Better on reflection")
	assert updated.rating == 4
	assert updated.comment == "Better on reflection"


def test_update_validates_rating(db_session, tour, tourist):
	created = review(db_session, tour, tourist)
	with pytest.raises(ValidationError):
		ReviewService.update_review(db_session, created.id, tourist.id, rating=9)


def test_non_author_sees_not_found(db_session, tour, tourist, other_tourist):
	created = review(db_session, tour, tourist)
	with pytest.raises(NotFound):
		ReviewService.update_review(db_session, created.id, other_tourist.id, rating=1)
	with pytest.raises(NotFound):
		ReviewService.delete_review(db_session, created.id, other_tourist.id)
	with pytest.raises(NotFound):
		ReviewService.delete_review(db_session, "missing", tourist.id)


def test_author_deletes_review_and_may_review_again(db_session, tour, tourist):
	created = review(db_session, tour, tourist)
	ReviewService.delete_review(db_session, created.id, tourist.id)
	with pytest.raises(NotFound):
		ReviewService.get_review(db_session, created.id)
	assert review(db_session, tour, tourist, rating=1).rating == 1


# ---------- RATINGS ----------

def test_tour_without_reviews_has_zero_rating(db_session, tour):
	rating = ReviewService.get_tour_rating(db_session, tour.id)
	assert rating.count == 0
	assert rating.average == 0
	assert rating.distribution == {5: 0, 4: 0, 3: 0, 2: 0, 1: 0}


def test_tour_rating_distribution(db_session, tour, tourist, other_tourist):
	third = make_user(db_session, "Third", "third@example.com", UserRole.TOURIST)
	review(db_session, tour, tourist, rating=5)
	review(db_session, tour, other_tourist, rating=5)
	review(db_session, tour, third, rating=4)

	rating = ReviewService.get_tour_rating(db_session, tour.id)
	assert rating.count == 3
	assert rating.average == pytest.approx(14 / 3)
	assert rating.distribution == {5: 2, 4: 1, 3: 0, 2: 0, 1: 0}


def test_agency_rating_spans_its_tours_only(db_session, agency, other_agency, tourist, other_tourist):
	first = make_tour(db_session, agency)
	second = make_tour(db_session, agency, destination="Ubud")
	foreign = make_tour(db_session, other_agency, destination="Lisbon")
	review(db_session, first, tourist, rating=5)
	review(db_session, second, tourist, rating=2)
	review(db_session, foreign, other_tourist, rating=1)

	rating = ReviewService.get_agency_rating(db_session, agency.id)
	assert rating.count == 2
	assert rating.average == pytest.approx(3.5)

	empty = ReviewService.get_agency_rating(db_session, make_user(db_session, "New", "new@example.com", UserRole.AGENCY).id)
	assert empty.count == 0
	assert empty.average == 0


# ---------- LISTS ----------

def test_lists_for_tour_and_tourist(db_session, agency, tour, tourist, other_tourist):
	other = make_tour(db_session, agency, destination="Ubud")
	review(db_session, tour, tourist, rating=5)
	review(db_session, tour, other_tourist, rating=3)
	review(db_session, other, tourist, rating=4)

	for_tour = ReviewService.list_reviews_for_tour(db_session, tour.id)
	assert for_tour.total == 2
	assert {r.tourist_user_id for r in for_tour.reviews} == {tourist.id, other_tourist.id}
	assert for_tour.rating.average == pytest.approx(4)

	for_tourist = ReviewService.list_reviews_for_tourist(db_session, tourist.id)
	assert for_tourist.total == 2
	assert {r.tour.id for r in for_tourist.reviews} == {tour.id, other.id}

	mine = ReviewService.get_my_review_for_tour(db_session, other_tourist.id, tour.id)
	assert mine.rating == 3
	with pytest.raises(NotFound):
		ReviewService.get_my_review_for_tour(db_session, other_tourist.id, other.id)

	recent = ReviewService.recent_reviews_by_agency(db_session, agency.id, limit=2)
	assert len(recent) == 2
