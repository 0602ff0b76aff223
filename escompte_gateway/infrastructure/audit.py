"""Audit writer - turns lifecycle events into persisted audit log entries"""

import logging
import uuid
from typing import Any, Dict, List

from escompte_gateway.config import settings
from escompte_gateway.domain.events import (
    AuditEvent,
    ConfigurationUpdated,
    RecordCreated,
    RecordDeleted,
    RecordsExported,
    RecordUpdated,
)
from escompte_gateway.domain.models import EntityType, LogAction, LogCategory, LogEntry, LogSeverity
from escompte_gateway.infrastructure.database.repositories import AuditLogRepository
from escompte_gateway.utils.date_utils import utc_now


def _changed_fields(before: Dict[str, Any], after: Dict[str, Any]) -> List[str]:
    ignored = {"dateModification"}
    return sorted(key for key in after if key not in ignored and before.get(key) != after.get(key))


def _describe(entity_type: EntityType, snapshot: Dict[str, Any]) -> str:
    return f"{entity_type.value.capitalize()} '{snapshot.get('libelle', '')}'"


def entry_for(event: AuditEvent) -> LogEntry:
    """Build the log entry for one event; severity grows with how destructive the change is"""
    entry = LogEntry(
        id=str(uuid.uuid4()),
        timestamp=utc_now(),
        action=LogAction.CREATE.value,
        category=LogCategory.DATA.value,
        severity=LogSeverity.LOW.value,
        description="",
    )

    if isinstance(event, RecordCreated):
        entry.description = f"{_describe(event.entity_type, event.after)} created"
        entry.entity_type, entry.entity_id = event.entity_type.value, event.entity_id
        entry.changes = {"before": None, "after": event.after}

    elif isinstance(event, RecordUpdated):
        fields = _changed_fields(event.before, event.after)
        entry.action = LogAction.UPDATE.value
        entry.severity = LogSeverity.MEDIUM.value
        entry.description = f"{_describe(event.entity_type, event.after)} updated"
        entry.entity_type, entry.entity_id = event.entity_type.value, event.entity_id
        entry.changes = {"before": event.before, "after": event.after}
        entry.metadata = {"changedFields": fields}

    elif isinstance(event, RecordDeleted):
        entry.action = LogAction.DELETE.value
        entry.severity = LogSeverity.HIGH.value
        entry.description = f"{_describe(event.entity_type, event.before)} deleted"
        entry.entity_type, entry.entity_id = event.entity_type.value, event.entity_id
        entry.changes = {"before": event.before, "after": None}

    elif isinstance(event, ConfigurationUpdated):
        before = event.before.get("autorisationBancaire")
        after = event.after.get("autorisationBancaire")
        entry.action = LogAction.UPDATE.value
        entry.category = LogCategory.CONFIGURATION.value
        entry.severity = LogSeverity.HIGH.value
        entry.entity_type = EntityType.CONFIGURATION.value
        if event.reset:
            entry.description = f"Bank authorization reset to default ({after:.2f} {settings.currency})"
        else:
            entry.description = f"Bank authorization changed from {before:.2f} to {after:.2f} {settings.currency}"
        entry.changes = {"before": event.before, "after": event.after}
        entry.metadata = {"reset": event.reset}

    elif isinstance(event, RecordsExported):
        entry.action = LogAction.EXPORT.value
        entry.description = f"{event.row_count} {event.entity_type.value.lower()} rows exported as {event.export_format}"
        entry.entity_type = event.entity_type.value
        entry.user_id = event.user_id
        entry.metadata = {"format": event.export_format, "rowCount": event.row_count, "filters": event.filters}

    else:
        raise TypeError(f"Unknown audit event: {type(event).__name__}")

    return entry


class AuditWriter:
    """Audit sink backed by the audit_log table, trimmed to the retention limit"""

    def __init__(self, repository: AuditLogRepository, retention_limit: int = settings.log_retention_limit):
        self.repository = repository
        self.retention_limit = retention_limit

    def record(self, event: AuditEvent) -> None:
        self.append(entry_for(event))

    def append(self, entry: LogEntry) -> LogEntry:
        try:
            self.repository.add(entry)
            dropped = self.repository.enforce_retention(self.retention_limit)
            self.repository.commit()
        except Exception:
            self.repository.rollback()
            raise

        if dropped:
            logging.info("Audit log trimmed", extra={"dropped": dropped, "retention_limit": self.retention_limit})
        return entry
