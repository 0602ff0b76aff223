"""Audit events emitted by the record lifecycle handlers"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from escompte_gateway.domain.models import EntityType


@dataclass(frozen=True)
class RecordCreated:
    entity_type: EntityType
    entity_id: str
    after: Dict[str, Any]


@dataclass(frozen=True)
class RecordUpdated:
    entity_type: EntityType
    entity_id: str
    before: Dict[str, Any]
    after: Dict[str, Any]


@dataclass(frozen=True)
class RecordDeleted:
    entity_type: EntityType
    entity_id: str
    before: Dict[str, Any]


@dataclass(frozen=True)
class ConfigurationUpdated:
    before: Dict[str, Any]
    after: Dict[str, Any]
    reset: bool = False


@dataclass(frozen=True)
class RecordsExported:
    entity_type: EntityType
    export_format: str
    row_count: int
    filters: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None


AuditEvent = Union[RecordCreated, RecordUpdated, RecordDeleted, ConfigurationUpdated, RecordsExported]
