from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..core.preferences import PreferenceRepository
from ..core.security import decode_access_token
from ..core.users import UserRepository
from ..db.database import get_db
from ..db.tables import User
from ..logging_config import get_logger
from ..tools.gnews_tool import GNewsClient


logger = get_logger("api.dependencies")

security = HTTPBearer(auto_error=False)


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_preference_repository(db: Session = Depends(get_db)) -> PreferenceRepository:
    return PreferenceRepository(db)


def get_news_client(request: Request) -> GNewsClient:
    client: Optional[GNewsClient] = getattr(request.app.state, "news_client", None)
    if client is None:
        raise RuntimeError("News client is not initialized")
    return client


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    users: UserRepository = Depends(get_user_repository),
) -> User:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authorized, no token")

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Not authorized, token failed")

    user = users.get_by_id(user_id)
    if user is None:
        logger.info("auth_unknown_user", user_id=user_id)
        raise _unauthorized("User not authenticated")
    return user
