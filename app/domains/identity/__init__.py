from app.domains.identity.entities import User
from app.domains.identity.schemas import RegistrationRequest, LoginRequest, UserResponse, Token

__all__ = [
    "User",
    "RegistrationRequest", "LoginRequest", "UserResponse", "Token"
]
