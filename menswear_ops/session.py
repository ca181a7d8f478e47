"""
Session handling for the logged-in staff member.

The current user lives on an explicit SessionContext that is handed to the
services and stores that need it. SessionStore persists that user to a JSON
file between runs.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .models import AuthUser

logger = logging.getLogger(__name__)


class SessionStore:
    """Reads and writes the saved session file"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def load(self) -> Optional[AuthUser]:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return AuthUser.model_validate(payload)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            logger.warning(f"⚠️ Ignoring unreadable session file {self.path}: {e}")
            return None

    def save(self, user: AuthUser) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(user.model_dump(mode="json", by_alias=True)),
            encoding="utf-8",
        )

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SessionContext:
    """Holds the current user for one running client"""

    def __init__(self, store: Optional[SessionStore] = None,
                 user: Optional[AuthUser] = None):
        self.store = store
        self.user = user

    @classmethod
    def restore(cls, store: SessionStore) -> "SessionContext":
        """Build a context from whatever the session file holds"""
        return cls(store=store, user=store.load())

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def actor_identifier(self) -> str:
        return self.user.id if self.user else "anonymous"

    @property
    def actor_name(self) -> Optional[str]:
        return self.user.full_name if self.user else None

    def login(self, user: AuthUser) -> None:
        self.user = user
        if self.store is not None:
            self.store.save(user)

    def logout(self) -> None:
        self.user = None
        if self.store is not None:
            self.store.clear()
