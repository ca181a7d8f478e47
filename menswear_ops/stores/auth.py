import logging
from typing import Optional

from ..models import AuthUser
from ..services import AuthService
from .base import BaseStore

logger = logging.getLogger(__name__)


class AuthStore(BaseStore):
    """Current staff login"""

    def __init__(self, service: AuthService):
        super().__init__()
        self.service = service
        self.user: Optional[AuthUser] = service.get_current_user()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def login_with_pin(self, pin: str) -> AuthUser:
        _, user = await self._track("Login failed", self.service.login_with_pin, pin)
        self.user = user
        return user

    async def logout(self) -> None:
        try:
            await self.service.logout()
        except Exception as e:
            logger.error(f"❌ Logout error: {e}")
        finally:
            self.user = None
