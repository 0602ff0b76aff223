"""
Record lifecycle handlers.

Each handler wraps the calculation core (validation, impact, aggregates)
around a store: validate, stamp, persist, then emit an audit event. The
ceiling spans both collections, so every write on escomptes, refinancements
or the configuration runs under one process-wide lock held from the read of
the global cumulative to the commit. Two concurrent writes can never both
pass the ceiling check against the same cumulative.
"""

import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar

from escompte_gateway.config import settings
from escompte_gateway.domain import money
from escompte_gateway.domain.aggregates import (
    amount_statistics,
    compute_aggregate,
    global_cumulative,
    sum_amounts,
    total_interest,
)
from escompte_gateway.domain.events import (
    AuditEvent,
    ConfigurationUpdated,
    RecordCreated,
    RecordDeleted,
    RecordsExported,
    RecordUpdated,
)
from escompte_gateway.domain.exceptions import (
    BusinessRuleViolation,
    RecordNotFoundError,
    StructuralValidationError,
)
from escompte_gateway.domain.impact import compute_ceiling_impact, compute_impact
from escompte_gateway.domain.models import (
    BulkDeleteResult,
    CeilingImpact,
    Configuration,
    DashboardKPI,
    DashboardStats,
    EntityType,
    Escompte,
    Impact,
    Page,
    Refinancement,
    RefinancementStatus,
)
from escompte_gateway.domain.stores import AuditSink, ConfigurationStore, RecordQuery, RecordStore
from escompte_gateway.domain.validation import (
    ValidationPhase,
    ValidationResult,
    validate_ceiling,
    validate_escompte,
    validate_refinancement,
)
from escompte_gateway.infrastructure import export
from escompte_gateway.infrastructure.export import ExportFile
from escompte_gateway.infrastructure.observability.logging import log_lifecycle
from escompte_gateway.infrastructure.observability.metrics import (
    audit_write_failures_counter,
    export_rows_counter,
    record_kpi,
    record_operation,
    validation_rejections_counter,
)
from escompte_gateway.utils.date_utils import parse_record_date, utc_now

T = TypeVar("T")

# Reentrant: ConfigurationService.get() is called while a write holds it
_EXPOSURE_LOCK = threading.RLock()


@dataclass
class WriteResult(Generic[T]):
    """A persisted record plus the non-blocking warnings raised while validating it"""

    record: T
    warnings: Dict[str, List[str]] = field(default_factory=dict)


def _emit(audit: Optional[AuditSink], event: AuditEvent) -> None:
    """Hand an event to the audit sink; a failing sink never fails the write"""
    if audit is None:
        return
    try:
        audit.record(event)
    except Exception:
        audit_write_failures_counter.inc()
        logging.exception("Audit write failed", extra={"event": type(event).__name__})


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


class ConfigurationService:
    """Holds the single global configuration record (the bank ceiling)"""

    def __init__(
        self,
        store: ConfigurationStore,
        escomptes: RecordStore[Escompte],
        refinancements: RecordStore[Refinancement],
        audit: Optional[AuditSink] = None,
        default_authorization: float = settings.default_authorization,
    ):
        self.store = store
        self.escomptes = escomptes
        self.refinancements = refinancements
        self.audit = audit
        self.default_authorization = default_authorization
        self._lock = _EXPOSURE_LOCK

    def get(self) -> Configuration:
        """Current configuration, created from the default ceiling on first read"""
        configuration = self.store.load()
        if configuration is not None:
            return configuration

        with self._lock:
            configuration = self.store.load()
            if configuration is None:
                configuration = self.store.save(
                    Configuration(authorization=self.default_authorization, updated_at=utc_now())
                )
                self.store.commit()
        return configuration

    def ceiling(self) -> float:
        return self.get().authorization

    def global_cumulative(self) -> float:
        return global_cumulative(
            sum_amounts(self.escomptes.list_all()),
            sum_amounts(self.refinancements.list_all()),
        )

    def validate(self, new_ceiling: Any) -> ValidationResult:
        return validate_ceiling(new_ceiling, self.global_cumulative())

    def preview(self, new_ceiling: float) -> CeilingImpact:
        return compute_ceiling_impact(self.ceiling(), new_ceiling, self.global_cumulative())

    def update(self, new_ceiling: Any) -> WriteResult[Configuration]:
        start_time = time.time()
        with self._lock:
            before = self.get()
            result = validate_ceiling(new_ceiling, self.global_cumulative())
            _raise_if_invalid(result, EntityType.CONFIGURATION, "update")

            updated = self._replace(money.from_minor_units(money.to_minor_units(new_ceiling)))
            _emit(self.audit, ConfigurationUpdated(before=before.snapshot(), after=updated.snapshot()))

        record_operation(EntityType.CONFIGURATION.value, "update")
        log_lifecycle(
            EntityType.CONFIGURATION.value,
            "update",
            "success",
            duration_ms=_elapsed_ms(start_time),
            previous_authorization=before.authorization,
            authorization=updated.authorization,
        )
        return WriteResult(record=updated, warnings=result.warnings)

    def reset(self) -> Configuration:
        """Restore the default ceiling without validating it against current exposure"""
        with self._lock:
            before = self.get()
            updated = self._replace(self.default_authorization)
            _emit(self.audit, ConfigurationUpdated(before=before.snapshot(), after=updated.snapshot(), reset=True))

        record_operation(EntityType.CONFIGURATION.value, "reset")
        log_lifecycle(EntityType.CONFIGURATION.value, "reset", "success", authorization=updated.authorization)
        return updated

    def _replace(self, authorization: float) -> Configuration:
        try:
            saved = self.store.save(Configuration(authorization=authorization, updated_at=utc_now()))
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return saved


def _raise_if_invalid(result: ValidationResult, entity_type: EntityType, action: str) -> None:
    if result.valid:
        return
    phase = result.failed_phase or ValidationPhase.STRUCTURAL
    validation_rejections_counter.labels(entity=entity_type.value, phase=phase.value).inc()
    record_operation(entity_type.value, action, "rejected")
    log_lifecycle(entity_type.value, action, "rejected", phase=phase.value, errors=result.errors)

    message = f"{entity_type.value.capitalize()} validation failed"
    if phase == ValidationPhase.BUSINESS:
        raise BusinessRuleViolation(message, result)
    raise StructuralValidationError(message, result)


class RecordService(ABC, Generic[T]):
    """
    Create/update/delete flow shared by escomptes and refinancements.

    Subclasses name their entity, supply their validator and know how to
    build/merge their own record type. Ceiling checks always use the global
    cumulative (escomptes + refinancements).
    """

    entity_type: EntityType

    def __init__(
        self,
        store: RecordStore[T],
        peer_store: RecordStore[Any],
        configuration: ConfigurationService,
        audit: Optional[AuditSink] = None,
    ):
        self.store = store
        self.peer_store = peer_store
        self.configuration = configuration
        self.audit = audit
        self._lock = _EXPOSURE_LOCK

    # --- hooks ----------------------------------------------------------

    @abstractmethod
    def _validate_fields(self, fields: Mapping[str, Any], cumulative: float, ceiling: float) -> ValidationResult:
        ...

    def _with_defaults(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(fields)

    @abstractmethod
    def _build(self, fields: Mapping[str, Any], entry_order: int, now: datetime) -> T:
        ...

    @abstractmethod
    def _fields_of(self, record: T) -> Dict[str, Any]:
        ...

    @abstractmethod
    def _apply(self, record: T, merged: Mapping[str, Any], changes: Mapping[str, Any], now: datetime) -> T:
        ...

    # --- reads ----------------------------------------------------------

    def list(self, query: Optional[RecordQuery] = None) -> Page:
        return self.store.search(query or RecordQuery())

    def get(self, record_id: str) -> T:
        record = self.store.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.entity_type.value, record_id)
        return record

    def _cumulative_excluding(self, exclude_id: Optional[str]) -> float:
        cumulative = global_cumulative(sum_amounts(self.store.list_all()), sum_amounts(self.peer_store.list_all()))
        if exclude_id is not None:
            cumulative = money.subtract(cumulative, self.get(exclude_id).amount)
        return cumulative

    def preview_impact(self, amount: float, exclude_id: Optional[str] = None) -> Impact:
        """Projected aggregate if `amount` were added (or replaced the amount of `exclude_id`)"""
        return compute_impact(amount, self._cumulative_excluding(exclude_id), self.configuration.ceiling())

    def validate(self, fields: Mapping[str, Any], exclude_id: Optional[str] = None) -> ValidationResult:
        cumulative = self._cumulative_excluding(exclude_id)
        return self._validate_fields(self._with_defaults(fields), cumulative, self.configuration.ceiling())

    # --- writes ---------------------------------------------------------

    def create(self, fields: Mapping[str, Any]) -> WriteResult[T]:
        start_time = time.time()
        fields = self._with_defaults(fields)
        with self._lock:
            result = self._validate_fields(fields, self._cumulative_excluding(None), self.configuration.ceiling())
            _raise_if_invalid(result, self.entity_type, "create")

            try:
                record = self._build(fields, self.store.next_entry_order(), utc_now())
                self.store.add(record)
                self.store.commit()
            except Exception:
                self.store.rollback()
                raise
            _emit(self.audit, RecordCreated(self.entity_type, record.id, record.snapshot()))

        record_operation(self.entity_type.value, "create")
        log_lifecycle(self.entity_type.value, "create", "success", record.id, _elapsed_ms(start_time))
        return WriteResult(record=record, warnings=result.warnings)

    def update(self, record_id: str, changes: Mapping[str, Any]) -> WriteResult[T]:
        start_time = time.time()
        with self._lock:
            current = self._locate(record_id, "update")
            before = current.snapshot()

            # null means "leave unchanged"
            changes = {key: value for key, value in changes.items() if value is not None}
            merged = self._fields_of(current)
            merged.update(changes)
            result = self._validate_fields(merged, self._cumulative_excluding(record_id), self.configuration.ceiling())
            _raise_if_invalid(result, self.entity_type, "update")

            try:
                record = self.store.save(self._apply(current, merged, changes, utc_now()))
                self.store.commit()
            except Exception:
                self.store.rollback()
                raise
            _emit(self.audit, RecordUpdated(self.entity_type, record.id, before, record.snapshot()))

        record_operation(self.entity_type.value, "update")
        log_lifecycle(self.entity_type.value, "update", "success", record.id, _elapsed_ms(start_time))
        return WriteResult(record=record, warnings=result.warnings)

    def delete(self, record_id: str) -> T:
        with self._lock:
            record = self._locate(record_id, "delete")
            try:
                self.store.remove(record_id)
                self.store.commit()
            except Exception:
                self.store.rollback()
                raise
            _emit(self.audit, RecordDeleted(self.entity_type, record_id, record.snapshot()))

        record_operation(self.entity_type.value, "delete")
        log_lifecycle(self.entity_type.value, "delete", "success", record_id)
        return record

    def bulk_delete(self, record_ids: List[str]) -> BulkDeleteResult:
        """Delete ids one by one; missing ids are reported, not fatal, and nothing is rolled back"""
        outcome = BulkDeleteResult()
        for record_id in record_ids:
            try:
                self.delete(record_id)
            except RecordNotFoundError:
                outcome.not_found.append(record_id)
            else:
                outcome.deleted.append(record_id)
        return outcome

    def export(self, query: Optional[RecordQuery], export_format: str, user_id: Optional[str] = None) -> ExportFile:
        query = query or RecordQuery()
        query.page, query.limit = 1, None
        records = self.store.search(query).items

        rendered = self._render(records, export_format)
        export_rows_counter.labels(entity=self.entity_type.value, format=rendered.export_format).inc(len(records))
        _emit(
            self.audit,
            RecordsExported(
                entity_type=self.entity_type,
                export_format=rendered.export_format,
                row_count=len(records),
                filters=export.describe_filters(query),
                user_id=user_id,
            ),
        )
        log_lifecycle(self.entity_type.value, "export", "success", rows=len(records), format=rendered.export_format)
        return rendered

    @abstractmethod
    def _render(self, records: List[T], export_format: str) -> ExportFile:
        ...

    def _locate(self, record_id: str, action: str) -> T:
        record = self.store.get(record_id)
        if record is None:
            record_operation(self.entity_type.value, action, "not_found")
            log_lifecycle(self.entity_type.value, action, "not_found", record_id)
            raise RecordNotFoundError(self.entity_type.value, record_id)
        return record


class EscompteService(RecordService[Escompte]):
    entity_type = EntityType.ESCOMPTE

    def _validate_fields(self, fields, cumulative, ceiling):
        return validate_escompte(fields, cumulative, ceiling)

    def _build(self, fields, entry_order, now):
        return Escompte(
            id=str(uuid.uuid4()),
            remittance_date=parse_record_date(fields["remittance_date"]),
            label=fields["label"].strip(),
            amount=money.from_minor_units(money.to_minor_units(fields["amount"])),
            entry_order=entry_order,
            created_at=now,
            updated_at=now,
        )

    def _fields_of(self, record):
        return {
            "remittance_date": record.remittance_date,
            "label": record.label,
            "amount": record.amount,
        }

    def _apply(self, record, merged, changes, now):
        record.remittance_date = parse_record_date(merged["remittance_date"])
        record.label = merged["label"].strip()
        record.amount = money.from_minor_units(money.to_minor_units(merged["amount"]))
        record.updated_at = now
        return record

    def _render(self, records, export_format):
        return export.export_escomptes(records, export_format)


class RefinancementService(RecordService[Refinancement]):
    entity_type = EntityType.REFINANCEMENT

    _INTEREST_INPUTS = ("amount", "interest_rate", "duration_months")

    def _validate_fields(self, fields, cumulative, ceiling):
        return validate_refinancement(fields, cumulative, ceiling)

    def _with_defaults(self, fields):
        merged = {
            "outstanding_amount": 0.0,
            "filing_fee": 0.0,
            "conditions": "",
            "status": RefinancementStatus.ACTIVE.value,
        }
        merged.update({key: value for key, value in fields.items() if value is not None})
        return merged

    def _build(self, fields, entry_order, now):
        amount = money.from_minor_units(money.to_minor_units(fields["amount"]))
        duration = int(fields["duration_months"])
        return Refinancement(
            id=str(uuid.uuid4()),
            refinancing_date=parse_record_date(fields["refinancing_date"]),
            label=fields["label"].strip(),
            amount=amount,
            interest_rate=float(fields["interest_rate"]),
            duration_months=duration,
            outstanding_amount=money.from_minor_units(money.to_minor_units(fields["outstanding_amount"])),
            total_interest=total_interest(amount, fields["interest_rate"], duration),
            entry_order=entry_order,
            created_at=now,
            updated_at=now,
            filing_fee=money.from_minor_units(money.to_minor_units(fields["filing_fee"])),
            conditions=fields["conditions"],
            status=RefinancementStatus(fields["status"]),
        )

    def _fields_of(self, record):
        return {
            "refinancing_date": record.refinancing_date,
            "label": record.label,
            "amount": record.amount,
            "interest_rate": record.interest_rate,
            "duration_months": record.duration_months,
            "outstanding_amount": record.outstanding_amount,
            "filing_fee": record.filing_fee,
            "conditions": record.conditions,
            "status": record.status.value,
        }

    def _apply(self, record, merged, changes, now):
        record.refinancing_date = parse_record_date(merged["refinancing_date"])
        record.label = merged["label"].strip()
        record.amount = money.from_minor_units(money.to_minor_units(merged["amount"]))
        record.interest_rate = float(merged["interest_rate"])
        record.duration_months = int(merged["duration_months"])
        record.outstanding_amount = money.from_minor_units(money.to_minor_units(merged["outstanding_amount"]))
        record.filing_fee = money.from_minor_units(money.to_minor_units(merged["filing_fee"]))
        record.conditions = merged["conditions"]
        record.status = RefinancementStatus(merged["status"])
        if any(key in changes for key in self._INTEREST_INPUTS):
            record.total_interest = total_interest(record.amount, record.interest_rate, record.duration_months)
        record.updated_at = now
        return record

    def _render(self, records, export_format):
        return export.export_refinancements(records, export_format)


class DashboardService:
    """Read-only aggregate views, recomputed from the stores on every call"""

    def __init__(
        self,
        escomptes: RecordStore[Escompte],
        refinancements: RecordStore[Refinancement],
        configuration: ConfigurationService,
    ):
        self.escomptes = escomptes
        self.refinancements = refinancements
        self.configuration = configuration

    def kpi(self) -> DashboardKPI:
        kpi = compute_aggregate(
            self.escomptes.list_all(),
            self.refinancements.list_all(),
            self.configuration.ceiling(),
        )
        record_kpi(kpi)
        return kpi

    def stats(self) -> DashboardStats:
        refinancements = self.refinancements.list_all()
        by_status = {status.value: 0 for status in RefinancementStatus}
        for record in refinancements:
            by_status[record.status.value] += 1

        return DashboardStats(
            escomptes=amount_statistics(self.escomptes.list_all()),
            refinancements=amount_statistics(refinancements),
            total_interest=sum_amounts(refinancements, "total_interest"),
            refinancements_by_status=by_status,
        )
