"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from escompte_gateway.config import settings
from escompte_gateway.infrastructure.audit import AuditWriter
from escompte_gateway.infrastructure.database.repositories import (
    AuditLogRepository,
    ConfigurationRepository,
    EscompteRepository,
    RefinancementRepository,
)
from escompte_gateway.infrastructure.database.session import get_db
from escompte_gateway.services.lifecycle import (
    ConfigurationService,
    DashboardService,
    EscompteService,
    RefinancementService,
)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_audit_writer(db: Session = Depends(get_db)) -> AuditWriter:
    return AuditWriter(AuditLogRepository(db), retention_limit=settings.log_retention_limit)


def get_configuration_service(
    db: Session = Depends(get_db),
    audit: AuditWriter = Depends(get_audit_writer),
) -> ConfigurationService:
    return ConfigurationService(
        ConfigurationRepository(db),
        EscompteRepository(db),
        RefinancementRepository(db),
        audit=audit,
        default_authorization=settings.default_authorization,
    )


def get_escompte_service(
    db: Session = Depends(get_db),
    audit: AuditWriter = Depends(get_audit_writer),
    configuration: ConfigurationService = Depends(get_configuration_service),
) -> EscompteService:
    return EscompteService(EscompteRepository(db), RefinancementRepository(db), configuration, audit)


def get_refinancement_service(
    db: Session = Depends(get_db),
    audit: AuditWriter = Depends(get_audit_writer),
    configuration: ConfigurationService = Depends(get_configuration_service),
) -> RefinancementService:
    return RefinancementService(RefinancementRepository(db), EscompteRepository(db), configuration, audit)


def get_dashboard_service(
    db: Session = Depends(get_db),
    configuration: ConfigurationService = Depends(get_configuration_service),
) -> DashboardService:
    return DashboardService(EscompteRepository(db), RefinancementRepository(db), configuration)
