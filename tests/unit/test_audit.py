"""Unit tests for audit event mapping and retention"""

from datetime import timedelta

import pytest

from escompte_gateway.domain.events import (
    ConfigurationUpdated,
    RecordCreated,
    RecordDeleted,
    RecordsExported,
    RecordUpdated,
)
from escompte_gateway.domain.models import EntityType, LogEntry
from escompte_gateway.domain.stores import LogQuery
from escompte_gateway.infrastructure.audit import AuditWriter, entry_for
from escompte_gateway.infrastructure.database.repositories import AuditLogRepository
from escompte_gateway.utils.date_utils import utc_now

BEFORE = {"id": "e1", "libelle": "Effet EFF001", "montant": 45_000.0, "dateModification": "2025-03-10T09:00:00"}
AFTER = {"id": "e1", "libelle": "Effet EFF001", "montant": 50_000.0, "dateModification": "2025-03-11T09:00:00"}


@pytest.mark.parametrize(
    "event, action, category, severity",
    [
        (RecordCreated(EntityType.ESCOMPTE, "e1", AFTER), "CREATE", "data", "LOW"),
        (RecordUpdated(EntityType.ESCOMPTE, "e1", BEFORE, AFTER), "UPDATE", "data", "MEDIUM"),
        (RecordDeleted(EntityType.ESCOMPTE, "e1", BEFORE), "DELETE", "data", "HIGH"),
        (
            ConfigurationUpdated({"autorisationBancaire": 200_000.0}, {"autorisationBancaire": 250_000.0}),
            "UPDATE",
            "configuration",
            "HIGH",
        ),
        (RecordsExported(EntityType.REFINANCEMENT, "xlsx", 4), "EXPORT", "data", "LOW"),
    ],
)
def test_entry_for_event(event, action, category, severity):
    entry = entry_for(event)

    assert (entry.action, entry.category, entry.severity) == (action, category, severity)
    assert entry.description


def test_update_entry_lists_changed_fields():
    entry = entry_for(RecordUpdated(EntityType.ESCOMPTE, "e1", BEFORE, AFTER))

    assert entry.metadata["changedFields"] == ["montant"]
    assert entry.changes == {"before": BEFORE, "after": AFTER}


def test_configuration_entry_description():
    entry = entry_for(ConfigurationUpdated({"autorisationBancaire": 200_000.0}, {"autorisationBancaire": 250_000.0}))

    assert entry.entity_type == "CONFIGURATION"
    assert "200000.00" in entry.description
    assert "250000.00" in entry.description


def test_unknown_event_is_rejected():
    with pytest.raises(TypeError):
        entry_for(object())


def test_retention_keeps_newest_entries(db):
    repository = AuditLogRepository(db)
    writer = AuditWriter(repository, retention_limit=3)
    start = utc_now() - timedelta(hours=1)

    for minute in range(5):
        writer.append(
            LogEntry(
                id=f"log-{minute}",
                timestamp=start + timedelta(minutes=minute),
                action="LOGIN",
                category="ui",
                severity="LOW",
                description=f"entry {minute}",
            )
        )

    page = repository.search(LogQuery())
    assert page.total == 3
    assert [e.id for e in page.items] == ["log-4", "log-3", "log-2"]


def test_log_stats(db):
    repository = AuditLogRepository(db)
    writer = AuditWriter(repository)
    now = utc_now()
    writer.append(LogEntry(id="a", timestamp=now, action="CREATE", category="data", severity="LOW", description="a"))
    writer.append(
        LogEntry(
            id="b",
            timestamp=now - timedelta(days=3),
            action="DELETE",
            category="data",
            severity="HIGH",
            description="b",
            entity_type="ESCOMPTE",
        )
    )

    stats = repository.stats(now=now)

    assert stats["total"] == 2
    assert stats["byCategory"] == {"data": 2}
    assert stats["byAction"] == {"CREATE": 1, "DELETE": 1}
    assert stats["byEntityType"] == {"ESCOMPTE": 1}
    assert stats["last24Hours"] == 1
    assert stats["lastWeek"] == 2
