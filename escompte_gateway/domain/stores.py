"""Storage contracts the lifecycle handlers depend on"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Protocol, TypeVar

from escompte_gateway.domain.events import AuditEvent
from escompte_gateway.domain.models import Configuration, Page

T = TypeVar("T")


@dataclass
class RecordQuery:
    """Filters, sort and page for a collection listing"""

    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    amount_min: Optional[float] = None
    amount_max: Optional[float] = None
    rate_min: Optional[float] = None  # refinancements only
    rate_max: Optional[float] = None
    status: Optional[str] = None
    sort_field: Optional[str] = None  # wire field name, e.g. "montant"
    sort_direction: str = "asc"
    page: int = 1
    limit: Optional[int] = None  # None returns every matching record


@dataclass
class LogQuery:
    """Audit log filters; results are always newest first"""

    search: Optional[str] = None
    category: Optional[str] = None
    action: Optional[str] = None
    severity: Optional[str] = None
    entity_type: Optional[str] = None
    date_start: Optional[date] = None
    date_end: Optional[date] = None  # inclusive, up to the end of that day
    page: int = 1
    limit: int = 50


class RecordStore(Protocol[T]):
    def list_all(self) -> List[T]:
        ...

    def get(self, record_id: str) -> Optional[T]:
        ...

    def add(self, record: T) -> T:
        ...

    def save(self, record: T) -> T:
        ...

    def remove(self, record_id: str) -> bool:
        ...

    def search(self, query: RecordQuery) -> Page:
        ...

    def next_entry_order(self) -> int:
        """Next value of the collection's entry-order sequence; never reused"""
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class ConfigurationStore(Protocol):
    def load(self) -> Optional[Configuration]:
        ...

    def save(self, configuration: Configuration) -> Configuration:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class AuditSink(Protocol):
    def record(self, event: AuditEvent) -> None:
        ...
