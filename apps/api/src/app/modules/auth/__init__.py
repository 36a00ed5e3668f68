"""Authentication module."""

from app.modules.auth.jobs import register_auth_jobs
from app.modules.auth.router import router
from app.modules.auth.schemas import LoginRequest, LoginResponse, OtpResponse
from app.modules.auth.service import AuthService, get_auth_service, init_auth_service

__all__ = [
    "router",
    "register_auth_jobs",
    "AuthService",
    "get_auth_service",
    "init_auth_service",
    "LoginRequest",
    "LoginResponse",
    "OtpResponse",
]
