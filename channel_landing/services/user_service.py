import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from channel_landing.core import security
from channel_landing.core.errors import NotFound, ValidationFailed
from channel_landing.models.user import ROLE_ADMIN, ROLE_EMPLOYEE, ROLES, User

logger = logging.getLogger(__name__)


class UserService:
    async def get(self, db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(select(User).filter(User.id == user_id))
        return result.scalars().first()

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).filter(User.username == username))
        return result.scalars().first()

    async def list_active(self, db: AsyncSession) -> List[User]:
        result = await db.execute(
            select(User).filter(User.is_active == True).order_by(User.id)  # noqa: E712
        )
        return list(result.scalars().all())

    async def create(self, db: AsyncSession, username: str, password: str, role: str = ROLE_EMPLOYEE) -> User:
        if role not in ROLES:
            raise ValidationFailed("Invalid role", details=[{"field": "role", "message": "Invalid role"}])
        if await self.get_by_username(db, username):
            raise ValidationFailed(
                "Username already exists",
                details=[{"field": "username", "message": "Username already exists"}],
            )

        user = User(
            username=username,
            password_hash=security.get_password_hash(password),
            role=role,
            is_active=True,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(f"Created {role} account {username} (id={user.id})")
        return user

    async def update_role(self, db: AsyncSession, user_id: int, role: str) -> User:
        user = await self.get(db, user_id)
        if not user:
            raise NotFound("User not found")
        user.role = role
        await db.commit()
        await db.refresh(user)
        logger.info(f"User {user.username} (id={user.id}) role set to {role}")
        return user

    async def authenticate(self, db: AsyncSession, username: str, password: str) -> Optional[User]:
        """Return the user when the credentials match an active account."""
        user = await self.get_by_username(db, username)
        if not user:
            logger.info(f"Login failed, unknown user: {username}")
            return None
        if not security.verify_password(password, user.password_hash):
            logger.info(f"Login failed, password mismatch: {username}")
            return None
        if not user.is_active:
            logger.info(f"Login failed, account disabled: {username}")
            return None
        return user

    async def ensure_admin(self, db: AsyncSession, username: str, password: str) -> Optional[User]:
        """
        Create the first admin account when none exists yet.
        Returns the created user, or None when an admin is already present.
        """
        result = await db.execute(select(User).filter(User.role == ROLE_ADMIN))
        if result.scalars().first():
            return None
        existing = await self.get_by_username(db, username)
        if existing:
            existing.role = ROLE_ADMIN
            existing.is_active = True
            await db.commit()
            await db.refresh(existing)
            logger.info(f"Promoted existing account {username} to admin")
            return existing
        return await self.create(db, username, password, role=ROLE_ADMIN)


user_service = UserService()
