import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ArticleSource(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    url: Optional[str] = None


class Article(BaseModel):
    """A GNews article, passed through as received.

    Every field is optional and unknown fields are kept, so a partial or
    unusual article from the provider reaches the client unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    url: Optional[str] = None
    image: Optional[str] = None
    published_at: Optional[str] = Field(default=None, alias="publishedAt")
    source: Optional[ArticleSource] = None


class NewsResult(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    total_articles: int = Field(default=0, alias="totalArticles")
    articles: List[Article] = []

    def articles_payload(self) -> List[Dict[str, Any]]:
        """Articles as JSON-ready dicts, without fields the provider omitted."""
        return [a.model_dump(by_alias=True, exclude_unset=True) for a in self.articles]


class NewsQuery(BaseModel):
    """A resolved personalized-news request."""

    model_config = ConfigDict(frozen=True)

    topics: List[str] = Field(min_length=1)
    language: str = "en"
    country: str = "us"
    max_results: int = Field(default=10, ge=1, le=100)

    @field_validator("topics")
    @classmethod
    def _dedupe_topics(cls, value: List[str]) -> List[str]:
        seen: Dict[str, None] = {}
        for topic in value:
            topic = topic.strip()
            if topic:
                seen.setdefault(topic, None)
        if not seen:
            raise ValueError("at least one non-blank topic is required")
        return list(seen)

    def cache_key(self) -> str:
        # Field order is declaration order, so the key is stable.
        return "news:" + json.dumps(self.model_dump(), separators=(",", ":"))

    def to_params(self) -> Dict[str, Any]:
        return {
            "q": " OR ".join(self.topics),
            "lang": self.language,
            "country": self.country,
            "max": self.max_results,
        }


def headlines_cache_key(lang: str, country: Optional[str], max_results: int) -> str:
    payload = {"lang": lang, "country": country, "max": max_results}
    return "headlines:" + json.dumps(payload, separators=(",", ":"))
