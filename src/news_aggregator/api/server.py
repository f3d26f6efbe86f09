from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.responses import JSONResponse, PlainTextResponse

from ..config import settings
from ..core.preferences import PreferenceRepository
from ..core.security import MAX_PASSWORD_BYTES, create_access_token, password_too_long
from ..core.users import UserRepository
from ..db.database import create_tables
from ..db.tables import User
from ..exceptions import NewsFetchError, RateLimitExhausted
from ..logging_config import get_logger
from ..models.auth import AuthResponse, Credentials, UserOut
from ..models.news import NewsQuery, NewsResult
from ..models.preferences import PreferencesIn, PreferencesOut
from ..tools.cache import TTLCache
from ..tools.gnews_tool import GNewsClient, GNewsConfig
from .dependencies import (
    get_current_user,
    get_news_client,
    get_preference_repository,
    get_user_repository,
)


logger = get_logger("api.server")

PERSONALIZED_MAX_RESULTS = 10
RATE_LIMIT_MESSAGE = "GNews API rate limit exceeded. Please try again later."


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables()

    cache: TTLCache[NewsResult] = TTLCache(
        ttl_seconds=settings.news_cache_ttl_seconds,
        check_period_seconds=settings.news_cache_check_period_seconds,
        stale_grace_seconds=settings.news_cache_stale_grace_seconds,
    )
    client = GNewsClient(GNewsConfig.from_settings(settings), cache)
    app.state.news_cache = cache
    app.state.news_client = client
    cache.start_reaper()
    logger.info(
        "app_started",
        cache_ttl_seconds=cache.ttl_seconds,
        gnews_configured=bool(settings.gnews_api_key),
    )
    try:
        yield
    finally:
        cache.stop_reaper()
        client.close()
        logger.info("app_stopped")


app = FastAPI(
    title="News Aggregator API",
    description="Personalized and trending news with per-user preferences",
    version="1.0.0",
    lifespan=lifespan,
)


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, email=user.email)


def _news_error_response(exc: NewsFetchError, message: str) -> JSONResponse:
    if isinstance(exc, RateLimitExhausted):
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"message": RATE_LIMIT_MESSAGE, "error": str(exc)},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": message, "error": str(exc)},
    )


# ============================================================================
# Health and Status Endpoints
# ============================================================================


@app.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "News Aggregator API is running..."


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


# ============================================================================
# Auth Endpoints
# ============================================================================


@app.post("/api/auth/signup", status_code=status.HTTP_201_CREATED, response_model=AuthResponse)
def signup(
    req: Credentials,
    users: UserRepository = Depends(get_user_repository),
) -> AuthResponse:
    if not req.email or not req.password:
        raise HTTPException(status_code=400, detail="Email and password required")

    if password_too_long(req.password):
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at most {MAX_PASSWORD_BYTES} bytes",
        )

    if users.get_by_email(req.email) is not None:
        raise HTTPException(status_code=400, detail="User already exists")

    user = users.create(req.email, req.password)
    logger.info("user_signed_up", user_id=user.id)
    return AuthResponse(token=create_access_token(user.id), user=_user_out(user))


@app.post("/api/auth/login", response_model=AuthResponse)
def login(
    req: Credentials,
    users: UserRepository = Depends(get_user_repository),
) -> AuthResponse:
    user = None
    if req.email and req.password:
        user = users.authenticate(req.email, req.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info("user_logged_in", user_id=user.id)
    return AuthResponse(token=create_access_token(user.id), user=_user_out(user))


@app.get("/api/auth/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)) -> UserOut:
    return _user_out(user)


# ============================================================================
# Preference Endpoints
# ============================================================================


@app.post("/api/preferences")
def save_preferences(
    req: PreferencesIn,
    user: User = Depends(get_current_user),
    preferences: PreferenceRepository = Depends(get_preference_repository),
) -> dict:
    saved = preferences.upsert(
        user.id,
        topics=req.topics,
        language=req.language,
        country=req.country,
        sources=req.sources,
    )
    logger.info("preferences_saved", user_id=user.id, topics=len(saved.topics))
    return {
        "success": True,
        "message": "Preferences saved successfully",
        "preferences": PreferencesOut.model_validate(saved).model_dump(),
    }


@app.get("/api/preferences")
def get_preferences(
    user: User = Depends(get_current_user),
    preferences: PreferenceRepository = Depends(get_preference_repository),
) -> dict:
    saved = preferences.find_by_user(user.id)
    if saved is None:
        raise HTTPException(
            status_code=404,
            detail="No preferences found. Please set your preferences first.",
        )
    return {
        "success": True,
        "preferences": PreferencesOut.model_validate(saved).model_dump(),
    }


# ============================================================================
# News Endpoints
# ============================================================================


@app.get("/api/news")
def personalized_news(
    user: User = Depends(get_current_user),
    preferences: PreferenceRepository = Depends(get_preference_repository),
    news: GNewsClient = Depends(get_news_client),
) -> dict:
    """Search news matching the caller's saved topics, language and country."""
    saved = preferences.find_by_user(user.id)
    if saved is None:
        raise HTTPException(
            status_code=400,
            detail="Please set your preferences first before fetching news.",
        )

    topics = [t for t in (saved.topics or []) if t and t.strip()]
    if not topics:
        raise HTTPException(
            status_code=400,
            detail="Please add at least one topic to your preferences.",
        )

    query = NewsQuery(
        topics=topics,
        language=saved.language,
        country=saved.country,
        max_results=PERSONALIZED_MAX_RESULTS,
    )
    logger.info("personalized_news_request", user_id=user.id, topics=len(query.topics))

    try:
        result = news.search(query)
    except NewsFetchError as exc:
        logger.error("personalized_news_error", user_id=user.id, error=str(exc))
        return _news_error_response(exc, "Failed to fetch news")

    return {
        "success": True,
        "totalArticles": result.total_articles,
        "articles": result.articles_payload(),
        "preferences": {
            "topics": saved.topics,
            "language": saved.language,
            "country": saved.country,
        },
    }


@app.get("/api/news/trending")
def trending_news(
    lang: str = "en",
    country: Optional[str] = None,
    max_results: int = Query(default=10, ge=1, le=100, alias="max"),
    user: User = Depends(get_current_user),
    news: GNewsClient = Depends(get_news_client),
) -> dict:
    logger.info("trending_news_request", user_id=user.id, lang=lang, country=country)
    try:
        result = news.top_headlines(lang, country or None, max_results)
    except NewsFetchError as exc:
        logger.error("trending_news_error", user_id=user.id, error=str(exc))
        return _news_error_response(exc, "Failed to fetch trending news")

    return {
        "success": True,
        "totalArticles": result.total_articles,
        "articles": result.articles_payload(),
    }
