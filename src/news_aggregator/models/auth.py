from typing import Optional

from pydantic import BaseModel


class Credentials(BaseModel):
    # Optional so a missing field is answered with 400, not 422.
    email: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    id: str
    email: str


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserOut
