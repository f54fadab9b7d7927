"""
Session caches for budgets and expenses.

Each store holds an immutable snapshot (a tuple ordered newest first) of
the records the backend returned, and broadcasts every new snapshot to its
subscribers. The cache only changes after the backend call it mirrors has
succeeded; a failed call leaves readers on the previous snapshot.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import AsyncIterator, Callable, Generic, Iterable, List, Optional, Tuple, TypeVar
from budgetwise.core.exceptions import PersistenceError
from budgetwise.schemas.budget import Budget
from budgetwise.schemas.expense import Expense
from budgetwise.services.backend import BackendClient, BackendError

logger = logging.getLogger(__name__)

T = TypeVar("T", Budget, Expense)

_CLOSED = object()


class RecordStore(ABC, Generic[T]):
    """Observable cache of one kind of backend record."""

    kind = "record"

    def __init__(self, backend: BackendClient):
        self._backend = backend
        self._items: Tuple[T, ...] = ()
        self._queues: List[asyncio.Queue] = []
        self._listeners: List[Callable[[], None]] = []
        self._closed = False

    def bind(self, backend: BackendClient) -> None:
        """Talk to the backend through a different client from now on."""
        self._backend = backend

    # Backend hooks, one set per record kind

    @abstractmethod
    async def _fetch(self, user_id: str) -> List[T]:
        pass

    @abstractmethod
    async def _insert(self, record: T) -> None:
        pass

    @abstractmethod
    async def _remove(self, record_id: str) -> None:
        pass

    # Reads

    def current(self) -> Tuple[T, ...]:
        """Latest committed snapshot."""
        return self._items

    def get(self, record_id: str) -> Optional[T]:
        return next((item for item in self._items if item.id == record_id), None)

    async def subscribe(self) -> AsyncIterator[Tuple[T, ...]]:
        """
        Yield the current snapshot, then every later one in commit order.

        Registration happens on first iteration; each call starts a fresh,
        independent stream. The stream ends when the store is closed.
        """
        queue: asyncio.Queue = asyncio.Queue()
        queue.put_nowait(self._items)
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._queues.append(queue)
        try:
            while True:
                snapshot = await queue.get()
                if snapshot is _CLOSED:
                    return
                yield snapshot
        finally:
            if queue in self._queues:
                self._queues.remove(queue)

    def add_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call ``callback`` synchronously after every change; returns an unsubscribe function."""
        self._listeners.append(callback)

        def remove():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    # Writes

    def replace(self, records: Iterable[T]) -> None:
        """Swap in a new snapshot and notify everyone."""
        items = tuple(sorted(records, key=lambda r: r.created_at, reverse=True))
        self._items = items
        for queue in self._queues:
            queue.put_nowait(items)
        for callback in list(self._listeners):
            callback()

    def clear(self) -> None:
        self.replace(())

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """End every open subscription; listeners get one last call."""
        self._closed = True
        for queue in self._queues:
            queue.put_nowait(_CLOSED)
        self._queues.clear()
        for callback in list(self._listeners):
            callback()
        self._listeners.clear()

    async def _call(self, action: str, operation):
        try:
            return await operation
        except BackendError as e:
            logger.error(f"Could not {action}: {e}")
            raise PersistenceError(f"Could not {action}", cause=e) from e

    async def load(self, user_id: str) -> Tuple[T, ...]:
        """Replace the whole cache with what the backend holds for ``user_id``."""
        records = await self._call(f"load {self.kind}s", self._fetch(user_id))
        self.replace(records)
        logger.debug(f"Loaded {len(self._items)} {self.kind}s for user {user_id}")
        return self._items

    async def create(self, record: T) -> T:
        await self._call(f"create {self.kind}", self._insert(record))
        self.replace((record,) + self._items)
        return record

    async def delete(self, record_id: str, confirm_for: Optional[str] = None) -> None:
        """
        Delete a record at the backend, then drop it from the cache.

        With ``confirm_for`` set to the owner id, the cache is instead
        rebuilt from a fresh fetch, and only if that fetch no longer
        contains the record.
        """
        await self._call(f"delete {self.kind}", self._remove(record_id))
        if confirm_for is None:
            self.replace(item for item in self._items if item.id != record_id)
            return

        latest = await self._call(f"reload {self.kind}s", self._fetch(confirm_for))
        if any(item.id == record_id for item in latest):
            logger.warning(f"Deletion of {self.kind} {record_id} not reflected by the backend")
            raise PersistenceError(f"Deletion of {self.kind} {record_id} was not confirmed by the backend")
        self.replace(latest)


class BudgetStore(RecordStore[Budget]):
    """Budgets of the signed-in user."""

    kind = "budget"

    async def _fetch(self, user_id: str) -> List[Budget]:
        return await self._backend.fetch_budgets(user_id)

    async def _insert(self, record: Budget) -> None:
        await self._backend.insert_budget(record)

    async def _remove(self, record_id: str) -> None:
        await self._backend.delete_budget(record_id)


class ExpenseStore(RecordStore[Expense]):
    """Expenses of the signed-in user."""

    kind = "expense"

    async def _fetch(self, user_id: str) -> List[Expense]:
        return await self._backend.fetch_expenses(user_id)

    async def _insert(self, record: Expense) -> None:
        await self._backend.insert_expense(record)

    async def _remove(self, record_id: str) -> None:
        await self._backend.delete_expense(record_id)

    def spent_for(self, budget_id: str) -> Decimal:
        """Sum of cached expense amounts for one budget."""
        return sum(
            (e.amount for e in self._items if e.budget_id == budget_id),
            Decimal(0),
        )

    def drop_budget(self, budget_id: str) -> None:
        """Remove a deleted budget's expenses from the cache without asking the backend."""
        self.replace(e for e in self._items if e.budget_id != budget_id)
