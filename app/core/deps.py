import uuid
from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import Forbidden, Unauthorized
from app.core.security import decode_token
from app.models.user import User
from app.services.media_store import MediaStore, build_media_store

security_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None:
        raise Unauthorized()

    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise Unauthorized("Invalid token")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise Unauthorized("Invalid token")

    user = await db.get(User, user_id)
    if user is None:
        raise Unauthorized("User not found")
    return user


def require_role(*roles: str):
    async def check_role(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise Forbidden(f"{user.role} can not access this resource")
        return user

    return check_role


@lru_cache(maxsize=1)
def get_media_store() -> MediaStore:
    return build_media_store(settings)
