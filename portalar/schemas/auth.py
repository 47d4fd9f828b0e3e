from pydantic import Field

from portalar.schemas.base import CamelModel


class LoginRequest(CamelModel):
    password: str = Field(..., min_length=1, max_length=256)


class AdminUser(CamelModel):
    username: str
    role: str


class LoginResponse(CamelModel):
    success: bool = True
    token: str
    expires_in: int
    user: AdminUser


class VerifyResponse(CamelModel):
    valid: bool = True
    user: AdminUser
