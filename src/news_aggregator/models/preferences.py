from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class PreferencesIn(BaseModel):
    topics: Optional[List[str]] = None
    language: Optional[str] = None
    country: Optional[str] = None
    sources: Optional[List[str]] = None


class PreferencesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    topics: List[str] = []
    language: str = "en"
    country: str = "us"
    sources: List[str] = []
