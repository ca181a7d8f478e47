"""
In-memory state holders over the services.

A store keeps the last fetched data plus ``loading``/``error`` for one
screen. Every operation takes a request token from a counter; only the
operation holding the newest token may clear ``loading`` or commit fetched
data, so a slow response that was overtaken by a newer request is dropped.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Generic, List, Mapping, Optional, Tuple, TypeVar, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")


def error_message(error: BaseException, fallback: str) -> str:
    return getattr(error, "message", None) or str(error) or fallback


class BaseStore:
    """loading/error bookkeeping shared by every store"""

    def __init__(self):
        self.loading = False
        self.error: Optional[str] = None
        self._latest_request = 0

    def _begin(self) -> int:
        self._latest_request += 1
        self.loading = True
        self.error = None
        return self._latest_request

    def is_current(self, token: int) -> bool:
        return token == self._latest_request

    async def _track(self, fallback: str, call: Callable[..., Awaitable[T]], *args: Any,
                     reraise: bool = True, **kwargs: Any) -> Tuple[int, Optional[T]]:
        """Run one service call under a fresh request token

        Returns the token and the result (None when the call failed and
        reraise is off). Failures are stored on ``error`` when the call is
        still the newest request.
        """
        token = self._begin()
        try:
            result = await call(*args, **kwargs)
        except Exception as e:
            if self.is_current(token):
                self.error = error_message(e, fallback)
            logger.error(f"❌ {fallback}: {e}")
            if reraise:
                raise
            return token, None
        finally:
            if self.is_current(token):
                self.loading = False
        return token, result

    def clear_error(self) -> None:
        self.error = None


class ListStore(BaseStore, Generic[T]):
    """Paginated, filterable list of one entity type

    Changing the page or filters re-fetches when ``auto_fetch`` is on;
    changing filters always goes back to page 1.
    """

    entity = "items"
    default_limit = 50
    # Re-fetch after update instead of patching (rows with server-computed fields)
    refetch_after_update = False

    def __init__(self, service: Any, page: int = 1, limit: Optional[int] = None,
                 filters: Union[BaseModel, Mapping[str, Any], None] = None,
                 auto_fetch: bool = True):
        super().__init__()
        self.service = service
        self.items: List[T] = []
        self.total = 0
        self.page = page
        self.limit = limit or self.default_limit
        self.filters: Dict[str, Any] = self._filters_dict(filters)
        self.auto_fetch = auto_fetch

    @staticmethod
    def _filters_dict(filters: Union[BaseModel, Mapping[str, Any], None]) -> Dict[str, Any]:
        if filters is None:
            return {}
        if isinstance(filters, BaseModel):
            return filters.model_dump(exclude_none=True)
        return dict(filters)

    async def mount(self) -> None:
        if self.auto_fetch:
            await self.fetch()

    async def fetch(self) -> None:
        """Load the current page; failures are recorded on ``error``, never raised"""
        token, response = await self._track(
            f"Failed to fetch {self.entity}",
            self.service.list, self.page, self.limit, self.filters,
            reraise=False,
        )
        if response is not None and self.is_current(token):
            self.items = list(response.items)
            self.total = response.total

    async def create(self, data: Any) -> Any:
        _, created = await self._track(f"Failed to create {self.entity}", self.service.create, data)
        await self.fetch()
        return created

    async def update(self, item_id: str, data: Any) -> Any:
        _, updated = await self._track(f"Failed to update {self.entity}", self.service.update, item_id, data)
        if self.refetch_after_update:
            await self.fetch()
        else:
            self.items = [self._merge(item, updated) if item.id == item_id else item for item in self.items]
        return updated

    def _merge(self, current: T, updated: T) -> T:
        return updated

    async def delete(self, item_id: str) -> None:
        await self._track(f"Failed to delete {self.entity}", self.service.delete, item_id)
        self.items = [item for item in self.items if item.id != item_id]
        self.total = max(0, self.total - 1)

    async def set_page(self, page: int) -> None:
        self.page = page
        if self.auto_fetch:
            await self.fetch()

    async def set_filters(self, filters: Union[BaseModel, Mapping[str, Any], None]) -> None:
        self.filters = self._filters_dict(filters)
        self.page = 1
        if self.auto_fetch:
            await self.fetch()

    async def set_auto_fetch(self, auto_fetch: bool) -> None:
        self.auto_fetch = auto_fetch
        if auto_fetch:
            await self.fetch()

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0
