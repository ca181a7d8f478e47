"""
Base class for the Supabase-backed entity services.

Every backend round trip goes through _execute(), which runs the blocking
query in a worker thread and turns backend failures into ServiceError.
log_activity() writes the audit trail and never raises.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar, Union

import httpx
from postgrest.exceptions import APIError
from pydantic import BaseModel
from pydantic_core import to_jsonable_python
from supabase import Client

from ..config import get_supabase_client
from ..exceptions import NotFoundError, ServiceError, ValidationError
from ..models import ActivityAction, AuthUser
from ..session import SessionContext

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Characters with meaning inside PostgREST or=(...) expressions
_LOGIC_CHARS = str.maketrans("", "", ",()")


def ilike_pattern(term: str) -> str:
    """Wrap a search term for a substring ILIKE match"""
    return f"%{term.strip().translate(_LOGIC_CHARS)}%"


def or_ilike(columns: Iterable[str], term: str) -> str:
    """Build an OR filter matching the term against several columns"""
    pattern = ilike_pattern(term)
    return ",".join(f"{column}.ilike.{pattern}" for column in columns)


def quote_value(value: Any) -> str:
    """Double-quote a value for an or=(...) expression so commas and parentheses stay literal"""
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def coerce(model: Type[ModelT], data: Union[ModelT, Mapping[str, Any], None]) -> ModelT:
    """Accept either a model instance or a plain mapping"""
    if data is None:
        return model()
    if isinstance(data, model):
        return data
    return model.model_validate(data)


class BaseService:
    """Shared plumbing for Supabase table services"""

    def __init__(self, client: Optional[Client] = None,
                 session: Optional[SessionContext] = None):
        self._client = client
        self.session = session or SessionContext()

    @property
    def supabase(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    async def _execute(self, operation: str, query: Any) -> Any:
        """Run a query builder and translate backend errors

        Args:
            operation: Human readable operation, e.g. "fetch customers"
            query: Any postgrest request builder with an execute() method

        Returns:
            The postgrest API response (``.data`` and ``.count``)

        Raises:
            ServiceError: "Failed to <operation>: <backend message>"
        """
        try:
            return await asyncio.to_thread(query.execute)
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"❌ Error in {operation}: {e}")
            raise ServiceError.from_backend(operation, e) from e

    @staticmethod
    def _rows(response: Any) -> List[Dict[str, Any]]:
        data = getattr(response, "data", None)
        if data is None:
            return []
        return data if isinstance(data, list) else [data]

    def _first_row(self, response: Any, not_found: str, operation: str) -> Dict[str, Any]:
        rows = self._rows(response)
        if not rows:
            raise NotFoundError(not_found, operation=operation)
        return rows[0]

    def _inserted_row(self, response: Any, operation: str) -> Dict[str, Any]:
        rows = self._rows(response)
        if not rows:
            raise ServiceError(f"Failed to {operation}: no data returned", operation=operation)
        return rows[0]

    @staticmethod
    def _create_payload(data: BaseModel) -> Dict[str, Any]:
        return data.model_dump(mode="json", exclude_none=True)

    @staticmethod
    def _update_payload(data: BaseModel) -> Dict[str, Any]:
        payload = data.model_dump(mode="json", exclude_unset=True)
        if not payload:
            raise ValidationError({"update": "No fields to update"})
        return payload

    @staticmethod
    def _paginate(query: Any, page: int, limit: int) -> Any:
        page = max(1, int(page))
        limit = max(1, int(limit))
        start = (page - 1) * limit
        return query.range(start, start + limit - 1)

    async def log_activity(self, action: ActivityAction, entity_type: str,
                           entity_id: Optional[str], description: str,
                           details: Optional[Dict[str, Any]] = None,
                           entity_name: Optional[str] = None,
                           actor: Optional[AuthUser] = None) -> None:
        """Write an audit log entry; failures are logged and swallowed"""
        try:
            user = actor or self.session.user
            params = {
                'p_user_identifier': user.id if user else self.session.actor_identifier,
                'p_user_name': user.full_name if user else None,
                'p_action': ActivityAction(action).value,
                'p_entity_type': entity_type,
                'p_entity_id': entity_id,
                'p_entity_name': entity_name,
                'p_description': description,
                'p_details': to_jsonable_python(details) if details else None,
            }
            await asyncio.to_thread(self.supabase.rpc('log_activity', params).execute)
        except Exception as e:
            logger.warning(f"⚠️ Failed to log activity ({action} {entity_type}): {e}")
