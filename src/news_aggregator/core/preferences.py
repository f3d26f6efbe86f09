from typing import List, Optional

from sqlalchemy.orm import Session

from ..db.tables import UserPreference

DEFAULT_LANGUAGE = "en"
DEFAULT_COUNTRY = "us"


class PreferenceRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_by_user(self, user_id: str) -> Optional[UserPreference]:
        return self.db.query(UserPreference).filter(UserPreference.user_id == user_id).first()

    def upsert(
        self,
        user_id: str,
        topics: Optional[List[str]] = None,
        language: Optional[str] = None,
        country: Optional[str] = None,
        sources: Optional[List[str]] = None,
    ) -> UserPreference:
        """Update the user's preferences, creating them with defaults if absent.

        Missing values keep what is already stored. An explicit empty list
        clears topics or sources; an empty language or country is ignored.
        """
        preferences = self.find_by_user(user_id)
        if preferences is None:
            preferences = UserPreference(
                user_id=user_id,
                topics=list(topics or []),
                language=language or DEFAULT_LANGUAGE,
                country=country or DEFAULT_COUNTRY,
                sources=list(sources or []),
            )
            self.db.add(preferences)
        else:
            # Reassign lists so the JSON columns are flagged as changed.
            preferences.topics = list(topics) if topics is not None else preferences.topics
            preferences.language = language or preferences.language
            preferences.country = country or preferences.country
            preferences.sources = list(sources) if sources is not None else preferences.sources

        self.db.commit()
        self.db.refresh(preferences)
        return preferences
