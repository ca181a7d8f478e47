"""
Admin Service

PIN lockout administration. Every operation needs an admin session.
"""

import logging
from typing import List

from ..exceptions import AuthError
from ..models import ActivityAction, PinAttempt
from .base import BaseService

logger = logging.getLogger(__name__)


class AdminService(BaseService):
    """Service for admin-only maintenance RPCs"""

    def _require_admin(self) -> None:
        user = self.session.user
        if user is None:
            raise AuthError("Not authenticated")
        if not user.is_admin:
            raise AuthError("Admin access required")

    async def list_pin_attempts(self) -> List[PinAttempt]:
        self._require_admin()
        response = await self._execute("load PIN attempts", self.supabase.rpc('pin_list_attempts', {}))
        return [PinAttempt.model_validate(row) for row in self._rows(response)]

    async def reset_pin_attempts(self, pin_hash: str) -> None:
        self._require_admin()
        await self._execute("reset PIN attempts",
                            self.supabase.rpc('pin_reset_attempts', {'p_pin_hash': pin_hash}))

        await self.log_activity(ActivityAction.UPDATE, 'pin_attempts', None,
                                "Reset PIN attempts", {'pin_hash': pin_hash})
        logger.info("✅ PIN attempts reset")
