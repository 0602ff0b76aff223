"""Data access layer for escomptes, refinancements, configuration and the audit log"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from escompte_gateway.domain import money
from escompte_gateway.domain.models import Configuration, Escompte, LogEntry, Page, Refinancement, RefinancementStatus
from escompte_gateway.domain.stores import LogQuery, RecordQuery
from escompte_gateway.infrastructure.database.models import (
    AuditLogRecord,
    ConfigurationRecord,
    EscompteRecord,
    RefinancementRecord,
    SequenceCounter,
)
from escompte_gateway.utils.date_utils import end_of_day, start_of_day, utc_now

CONFIGURATION_ROW_ID = 1


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo on the way back; all stored timestamps are UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _paginate(query: Query, page: int, limit: Optional[int]):
    total = query.count()
    page = max(page, 1)
    if limit is None:
        return query.all(), total, 1, total
    return query.offset((page - 1) * limit).limit(limit).all(), total, page, limit


class SequenceRepository:
    """Monotonic counters backing entry order numbers"""

    def __init__(self, db: Session):
        self.db = db

    def next_value(self, name: str) -> int:
        """Increment and return the counter; the row stays locked until commit"""
        counter = (
            self.db.query(SequenceCounter)
            .filter(SequenceCounter.name == name)
            .with_for_update()
            .first()
        )
        if counter is None:
            counter = SequenceCounter(name=name, value=0)
            self.db.add(counter)
        counter.value += 1
        self.db.flush()
        return counter.value


class _RecordRepository(ABC):
    """Shared CRUD/search plumbing; subclasses map rows to domain records"""

    model: Any
    sequence_name: str
    date_column: Any
    sort_columns: Dict[str, Any]

    def __init__(self, db: Session):
        self.db = db

    @abstractmethod
    def _to_domain(self, row):
        ...

    @abstractmethod
    def _copy_to_row(self, record, row) -> None:
        ...

    def _extra_filters(self, query: Query, filters: RecordQuery) -> Query:
        return query

    def list_all(self) -> List[Any]:
        rows = self.db.query(self.model).order_by(self.model.entry_order).all()
        return [self._to_domain(r) for r in rows]

    def get(self, record_id: str):
        row = self.db.get(self.model, record_id)
        return self._to_domain(row) if row is not None else None

    def add(self, record):
        row = self.model(id=record.id)
        self._copy_to_row(record, row)
        self.db.add(row)
        self.db.flush()
        return record

    def save(self, record):
        row = self.db.get(self.model, record.id)
        if row is None:
            return self.add(record)
        self._copy_to_row(record, row)
        self.db.flush()
        return record

    def remove(self, record_id: str) -> bool:
        row = self.db.get(self.model, record_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        return True

    def search(self, filters: RecordQuery) -> Page:
        query = self.db.query(self.model)

        if filters.search:
            query = query.filter(self.model.label.ilike(f"%{filters.search.strip()}%"))
        if filters.date_from:
            query = query.filter(self.date_column >= filters.date_from)
        if filters.date_to:
            query = query.filter(self.date_column <= filters.date_to)
        if filters.amount_min is not None:
            query = query.filter(self.model.amount_cents >= money.to_minor_units(filters.amount_min))
        if filters.amount_max is not None:
            query = query.filter(self.model.amount_cents <= money.to_minor_units(filters.amount_max))
        query = self._extra_filters(query, filters)

        column = self.sort_columns.get(filters.sort_field or "", self.model.entry_order)
        ordering = column.desc() if filters.sort_direction.lower() == "desc" else column.asc()
        query = query.order_by(ordering, self.model.entry_order.asc())

        rows, total, page, limit = _paginate(query, filters.page, filters.limit)
        return Page(items=[self._to_domain(r) for r in rows], total=total, page=page, limit=limit)

    def next_entry_order(self) -> int:
        return SequenceRepository(self.db).next_value(self.sequence_name)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


class EscompteRepository(_RecordRepository):
    """Repository for escomptes"""

    model = EscompteRecord
    sequence_name = "escomptes"
    date_column = EscompteRecord.remittance_date
    sort_columns = {
        "dateRemise": EscompteRecord.remittance_date,
        "libelle": EscompteRecord.label,
        "montant": EscompteRecord.amount_cents,
        "ordreSaisie": EscompteRecord.entry_order,
        "dateCreation": EscompteRecord.created_at,
        "dateModification": EscompteRecord.updated_at,
    }

    def _to_domain(self, row: EscompteRecord) -> Escompte:
        return Escompte(
            id=row.id,
            remittance_date=row.remittance_date,
            label=row.label,
            amount=money.from_minor_units(row.amount_cents),
            entry_order=row.entry_order,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )

    def _copy_to_row(self, record: Escompte, row: EscompteRecord) -> None:
        row.remittance_date = record.remittance_date
        row.label = record.label
        row.amount_cents = money.to_minor_units(record.amount)
        row.entry_order = record.entry_order
        row.created_at = record.created_at
        row.updated_at = record.updated_at


class RefinancementRepository(_RecordRepository):
    """Repository for refinancements"""

    model = RefinancementRecord
    sequence_name = "refinancements"
    date_column = RefinancementRecord.refinancing_date
    sort_columns = {
        "dateRefinancement": RefinancementRecord.refinancing_date,
        "libelle": RefinancementRecord.label,
        "montantRefinance": RefinancementRecord.amount_cents,
        "tauxInteret": RefinancementRecord.interest_rate_bps,
        "dureeEnMois": RefinancementRecord.duration_months,
        "encoursRefinance": RefinancementRecord.outstanding_cents,
        "totalInterets": RefinancementRecord.total_interest_cents,
        "statut": RefinancementRecord.status,
        "ordreSaisie": RefinancementRecord.entry_order,
        "dateCreation": RefinancementRecord.created_at,
        "dateModification": RefinancementRecord.updated_at,
    }

    def _extra_filters(self, query: Query, filters: RecordQuery) -> Query:
        # Rates are stored in hundredths of a percent, same scale as cents
        if filters.rate_min is not None:
            query = query.filter(RefinancementRecord.interest_rate_bps >= money.to_minor_units(filters.rate_min))
        if filters.rate_max is not None:
            query = query.filter(RefinancementRecord.interest_rate_bps <= money.to_minor_units(filters.rate_max))
        if filters.status:
            query = query.filter(RefinancementRecord.status == filters.status)
        return query

    def _to_domain(self, row: RefinancementRecord) -> Refinancement:
        return Refinancement(
            id=row.id,
            refinancing_date=row.refinancing_date,
            label=row.label,
            amount=money.from_minor_units(row.amount_cents),
            interest_rate=money.from_minor_units(row.interest_rate_bps),
            duration_months=row.duration_months,
            outstanding_amount=money.from_minor_units(row.outstanding_cents),
            total_interest=money.from_minor_units(row.total_interest_cents),
            entry_order=row.entry_order,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
            filing_fee=money.from_minor_units(row.filing_fee_cents),
            conditions=row.conditions or "",
            status=RefinancementStatus(row.status),
        )

    def _copy_to_row(self, record: Refinancement, row: RefinancementRecord) -> None:
        row.refinancing_date = record.refinancing_date
        row.label = record.label
        row.amount_cents = money.to_minor_units(record.amount)
        row.interest_rate_bps = money.to_minor_units(record.interest_rate)
        row.duration_months = record.duration_months
        row.outstanding_cents = money.to_minor_units(record.outstanding_amount)
        row.filing_fee_cents = money.to_minor_units(record.filing_fee)
        row.total_interest_cents = money.to_minor_units(record.total_interest)
        row.conditions = record.conditions
        row.status = record.status.value
        row.entry_order = record.entry_order
        row.created_at = record.created_at
        row.updated_at = record.updated_at


class ConfigurationRepository:
    """Repository for the single configuration row"""

    def __init__(self, db: Session):
        self.db = db

    def load(self) -> Optional[Configuration]:
        row = self.db.get(ConfigurationRecord, CONFIGURATION_ROW_ID)
        if row is None:
            return None
        return Configuration(
            authorization=money.from_minor_units(row.authorization_cents),
            updated_at=_aware(row.updated_at),
        )

    def save(self, configuration: Configuration) -> Configuration:
        row = self.db.get(ConfigurationRecord, CONFIGURATION_ROW_ID)
        if row is None:
            row = ConfigurationRecord(id=CONFIGURATION_ROW_ID)
            self.db.add(row)
        row.authorization_cents = money.to_minor_units(configuration.authorization)
        row.updated_at = configuration.updated_at
        self.db.flush()
        return configuration

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


class AuditLogRepository:
    """Repository for audit trail entries"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _to_domain(row: AuditLogRecord) -> LogEntry:
        return LogEntry(
            id=row.id,
            timestamp=_aware(row.timestamp),
            action=row.action,
            category=row.category,
            severity=row.severity,
            description=row.description,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            changes=row.changes,
            metadata=row.log_metadata or {},
            user_id=row.user_id,
        )

    def add(self, entry: LogEntry) -> LogEntry:
        self.db.add(
            AuditLogRecord(
                id=entry.id,
                timestamp=entry.timestamp,
                action=entry.action,
                category=entry.category,
                severity=entry.severity,
                description=entry.description,
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                changes=entry.changes,
                log_metadata=entry.metadata,
                user_id=entry.user_id,
            )
        )
        self.db.flush()
        return entry

    def search(self, filters: LogQuery) -> Page:
        query = self.db.query(AuditLogRecord)

        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            query = query.filter(
                or_(
                    AuditLogRecord.description.ilike(pattern),
                    AuditLogRecord.entity_type.ilike(pattern),
                    AuditLogRecord.entity_id.ilike(pattern),
                )
            )
        if filters.category:
            query = query.filter(AuditLogRecord.category == filters.category)
        if filters.action:
            query = query.filter(AuditLogRecord.action == filters.action)
        if filters.severity:
            query = query.filter(AuditLogRecord.severity == filters.severity)
        if filters.entity_type:
            query = query.filter(AuditLogRecord.entity_type == filters.entity_type)
        if filters.date_start:
            query = query.filter(AuditLogRecord.timestamp >= start_of_day(filters.date_start))
        if filters.date_end:
            query = query.filter(AuditLogRecord.timestamp <= end_of_day(filters.date_end))

        query = query.order_by(AuditLogRecord.timestamp.desc(), AuditLogRecord.id.desc())
        rows, total, page, limit = _paginate(query, filters.page, filters.limit)
        return Page(items=[self._to_domain(r) for r in rows], total=total, page=page, limit=limit)

    def delete(self, entry_id: str) -> bool:
        row = self.db.get(AuditLogRecord, entry_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        return True

    def clear(self) -> int:
        deleted = self.db.query(AuditLogRecord).delete(synchronize_session=False)
        self.db.flush()
        return deleted

    def enforce_retention(self, limit: int) -> int:
        """Keep only the newest `limit` entries; returns how many were dropped"""
        stale_ids = [
            row.id
            for row in self.db.query(AuditLogRecord.id)
            .order_by(AuditLogRecord.timestamp.desc(), AuditLogRecord.id.desc())
            .offset(limit)
            .all()
        ]
        if not stale_ids:
            return 0
        self.db.query(AuditLogRecord).filter(AuditLogRecord.id.in_(stale_ids)).delete(synchronize_session=False)
        self.db.flush()
        return len(stale_ids)

    def _count_by(self, column) -> Dict[str, int]:
        rows = self.db.query(column, func.count(AuditLogRecord.id)).group_by(column).all()
        return {value: count for value, count in rows if value is not None}

    def stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utc_now()
        total = self.db.query(func.count(AuditLogRecord.id)).scalar() or 0

        def since(delta: timedelta) -> int:
            query = self.db.query(func.count(AuditLogRecord.id)).filter(AuditLogRecord.timestamp >= now - delta)
            return query.scalar() or 0

        return {
            "total": total,
            "byCategory": self._count_by(AuditLogRecord.category),
            "byAction": self._count_by(AuditLogRecord.action),
            "bySeverity": self._count_by(AuditLogRecord.severity),
            "byEntityType": self._count_by(AuditLogRecord.entity_type),
            "last24Hours": since(timedelta(hours=24)),
            "lastWeek": since(timedelta(days=7)),
        }

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
