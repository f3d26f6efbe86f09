import pytest
from sqlalchemy.exc import IntegrityError

from src.news_aggregator.core.preferences import PreferenceRepository
from src.news_aggregator.core.users import UserRepository
from src.news_aggregator.db.tables import UserPreference


@pytest.fixture
def user(db):
    return UserRepository(db).create("Reader@Example.com ", "pw-123456")


def test_create_user_normalizes_email_and_hashes_password(db, user) -> None:
    assert user.email == "reader@example.com"
    assert user.password_hash != "pw-123456"
    assert UserRepository(db).get_by_email("READER@example.com").id == user.id


def test_duplicate_email_violates_uniqueness(db, user) -> None:
    with pytest.raises(IntegrityError):
        UserRepository(db).create("reader@example.com", "other")


def test_authenticate(db, user) -> None:
    users = UserRepository(db)
    assert users.authenticate("reader@example.com", "pw-123456").id == user.id
    assert users.authenticate("reader@example.com", "nope") is None
    assert users.authenticate("missing@example.com", "pw-123456") is None


def test_find_by_user_returns_none_without_preferences(db, user) -> None:
    assert PreferenceRepository(db).find_by_user(user.id) is None


def test_upsert_creates_with_defaults(db, user) -> None:
    prefs = PreferenceRepository(db).upsert(user.id, topics=["technology"])

    assert prefs.topics == ["technology"]
    assert prefs.language == "en"
    assert prefs.country == "us"
    assert prefs.sources == []


def test_upsert_updates_supplied_fields_and_keeps_the_rest(db, user) -> None:
    repo = PreferenceRepository(db)
    repo.upsert(user.id, topics=["technology"], language="fr", country="fr", sources=["bbc"])

    prefs = repo.upsert(user.id, topics=["science", "space"], country="ca")

    assert prefs.topics == ["science", "space"]
    assert prefs.language == "fr"
    assert prefs.country == "ca"
    assert prefs.sources == ["bbc"]
    assert db.query(UserPreference).filter(UserPreference.user_id == user.id).count() == 1


def test_upsert_with_empty_lists_clears_topics_and_sources(db, user) -> None:
    repo = PreferenceRepository(db)
    repo.upsert(user.id, topics=["technology"], language="fr", sources=["bbc"])

    prefs = repo.upsert(user.id, topics=[], language="", sources=[])

    assert prefs.topics == []
    assert prefs.sources == []
    assert prefs.language == "fr"
