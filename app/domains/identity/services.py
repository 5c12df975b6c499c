from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import uuid

from app.db.repositories.user_repository import UserRepository
from app.domains.identity.entities import User
from app.domains.identity.schemas import RegistrationRequest, LoginRequest
from app.core.security import create_access_token, verify_token

logger = logging.getLogger(__name__)


class IdentityService:
    """Регистрация, вход и разрешение пользователя по токену"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repository = UserRepository(session)

    async def register_user(self, user_data: RegistrationRequest) -> User:
        if await self.user_repository.email_exists(user_data.email):
            raise ValueError("Email already registered")

        if await self.user_repository.username_exists(user_data.username):
            raise ValueError("Username already taken")

        user = await self.user_repository.create(User.create_user(
            email=user_data.email,
            username=user_data.username,
            password=user_data.password
        ))
        await self.session.commit()
        logger.info(f"User {user.uuid} registered")
        return user

    async def login_user(self, login_data: LoginRequest) -> Optional[str]:
        """Вход пользователя и создание JWT токена"""
        user = await self.user_repository.get_by_email(login_data.email)

        if not user or not user.can_sign_in or not user.authenticate(login_data.password):
            return None

        return issue_token(user)

    async def get_current_user_from_token(self, token: str) -> Optional[User]:
        """Пользователь из JWT токена; None для невалидного токена"""
        payload = verify_token(token)
        if not payload or not payload.get("sub"):
            return None

        try:
            user_uuid = uuid.UUID(payload["sub"])
        except ValueError:
            return None

        return await self.user_repository.get_by_uuid(user_uuid)


def issue_token(user: User) -> str:
    return create_access_token(data={
        "sub": str(user.uuid),
        "username": user.username,
        "email": user.email
    })
