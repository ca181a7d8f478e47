"""
Auth Service

PIN-based staff login. The logged-in user is kept on the SessionContext and
persisted through its SessionStore.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..exceptions import AuthError, ServiceError
from ..models import ActivityAction, AuthUser
from ..validation import validate_pin_format
from .base import BaseService

logger = logging.getLogger(__name__)

USERS_TABLE = "users"


class AuthService(BaseService):
    """Service for staff PIN authentication"""

    async def login_with_pin(self, pin: str) -> AuthUser:
        """
        Log a staff member in by PIN

        Args:
            pin: Four digit PIN

        Returns:
            The authenticated user, also stored on the session

        Raises:
            AuthError: "Invalid PIN" for a malformed or unknown PIN,
                "Login failed" when the backend could not be queried
        """
        if not validate_pin_format(pin):
            raise AuthError("Invalid PIN")

        query = (
            self.supabase.table(USERS_TABLE)
            .select('id, email, first_name, last_name, role')
            .eq('pin_code', pin)
            .eq('is_active', True)
            .limit(1)
        )
        try:
            response = await self._execute("look up user", query)
        except ServiceError as e:
            logger.error(f"❌ PIN login error: {e}")
            raise AuthError("Login failed") from e

        rows = self._rows(response)
        if not rows:
            logger.warning("⚠️ PIN login rejected")
            raise AuthError("Invalid PIN")

        now = datetime.now(timezone.utc)
        row = rows[0]
        user = AuthUser(
            id=row['id'],
            email=row['email'],
            first_name=row['first_name'],
            last_name=row['last_name'],
            role=row.get('role') or 'staff',
            last_login=now,
        )

        try:
            await self._execute(
                "record PIN login",
                self.supabase.table(USERS_TABLE).update({'last_pin_login': now.isoformat()}).eq('id', user.id),
            )
        except ServiceError as e:
            logger.warning(f"⚠️ Could not record last PIN login for {user.id}: {e}")

        self.session.login(user)
        await self.log_activity(ActivityAction.LOGIN, 'user', user.id,
                                f"Logged in: {user.full_name}",
                                entity_name=user.full_name, actor=user)
        logger.info(f"✅ Logged in {user.full_name} ({user.role.value})")
        return user

    async def logout(self) -> None:
        user = self.session.user
        if user is not None:
            await self.log_activity(ActivityAction.LOGOUT, 'user', user.id,
                                    f"Logged out: {user.full_name}",
                                    entity_name=user.full_name, actor=user)
        self.session.logout()

    def get_current_user(self) -> Optional[AuthUser]:
        return self.session.user

    def save_user_session(self, user: AuthUser) -> None:
        self.session.login(user)
