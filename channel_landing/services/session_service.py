import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from channel_landing.core import security
from channel_landing.models.session import UserSession
from channel_landing.models.user import User

logger = logging.getLogger(__name__)


class SessionService:
    """Server-side session store backed by the ``user_sessions`` table."""

    async def create(self, db: AsyncSession, user_id: int) -> UserSession:
        session = UserSession(
            id=security.generate_session_token(),
            user_id=user_id,
            expires_at=security.session_expiry(),
        )
        db.add(session)
        await db.commit()
        return session

    async def get_user(self, db: AsyncSession, token: Optional[str]) -> Optional[User]:
        """Resolve a session token to its user; unknown or expired tokens give None."""
        if not token:
            return None
        result = await db.execute(select(UserSession).filter(UserSession.id == token))
        session = result.scalars().first()
        if not session:
            return None
        if session.is_expired():
            await db.delete(session)
            await db.commit()
            return None

        result = await db.execute(select(User).filter(User.id == session.user_id))
        return result.scalars().first()

    async def delete(self, db: AsyncSession, token: Optional[str]) -> None:
        if not token:
            return
        await db.execute(delete(UserSession).where(UserSession.id == token))
        await db.commit()

    async def purge_expired(self, db: AsyncSession) -> int:
        result = await db.execute(
            delete(UserSession).where(UserSession.expires_at < datetime.now(timezone.utc))
        )
        await db.commit()
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired sessions")
        return result.rowcount or 0


session_service = SessionService()
