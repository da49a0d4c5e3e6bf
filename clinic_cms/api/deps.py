from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import PyJWTError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_cms.core.config import settings
from clinic_cms.core.security import decode_access_token
from clinic_cms.db.models import User
from clinic_cms.db.session import get_session
from clinic_cms.services.schedule_service import ScheduleService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        user_id = UUID(payload.get("sub"))
    except (PyJWTError, TypeError, ValueError):
        raise credentials_exception

    user = await session.get(User, user_id)
    if user is None:
        raise credentials_exception
    return user

async def require_cms_access(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in settings.CMS_ALLOWED_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return current_user

async def get_schedule_service(
    current_user: User = Depends(require_cms_access),
    session: AsyncSession = Depends(get_session)
) -> ScheduleService:
    return ScheduleService(session, actor=current_user)
