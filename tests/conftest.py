"""Pytest fixtures for testing"""

import os

# Point the app at the test database before settings are loaded
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date, timedelta
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from escompte_gateway.api.main import create_app
from escompte_gateway.infrastructure.audit import AuditWriter
from escompte_gateway.infrastructure.database.models import Base
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
from escompte_gateway.utils.date_utils import utc_now


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db: Session) -> sessionmaker:
    """Independent sessions on the file-backed test database, one per thread"""
    return TestingSessionLocal


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def recent_weekday() -> date:
    """A business day in the last week: never future, stale or weekend"""
    day = utc_now().date() - timedelta(days=1)
    while day.weekday() >= 5:
        day -= timedelta(days=1)
    return day


@pytest.fixture
def audit(db: Session) -> AuditWriter:
    return AuditWriter(AuditLogRepository(db), retention_limit=10_000)


@pytest.fixture
def configuration_service(db: Session, audit: AuditWriter) -> ConfigurationService:
    return ConfigurationService(
        ConfigurationRepository(db),
        EscompteRepository(db),
        RefinancementRepository(db),
        audit=audit,
        default_authorization=200_000,
    )


@pytest.fixture
def escompte_service(db: Session, audit: AuditWriter, configuration_service: ConfigurationService) -> EscompteService:
    return EscompteService(EscompteRepository(db), RefinancementRepository(db), configuration_service, audit)


@pytest.fixture
def refinancement_service(
    db: Session, audit: AuditWriter, configuration_service: ConfigurationService
) -> RefinancementService:
    return RefinancementService(RefinancementRepository(db), EscompteRepository(db), configuration_service, audit)


@pytest.fixture
def dashboard_service(db: Session, configuration_service: ConfigurationService) -> DashboardService:
    return DashboardService(EscompteRepository(db), RefinancementRepository(db), configuration_service)


@pytest.fixture
def seeded(escompte_service, refinancement_service, recent_weekday):
    """Two escomptes (80000) and two refinancements (100000) under a 200000 ceiling"""
    escomptes = [
        escompte_service.create({"remittance_date": recent_weekday, "label": "Effet EFF001", "amount": 45000}).record,
        escompte_service.create({"remittance_date": recent_weekday, "label": "Effet EFF002", "amount": 35000}).record,
    ]
    refinancements = [
        refinancement_service.create(
            {
                "refinancing_date": recent_weekday,
                "label": "Refinancement Q1",
                "amount": 60000,
                "interest_rate": 10,
                "duration_months": 12,
                "outstanding_amount": 60000,
            }
        ).record,
        refinancement_service.create(
            {
                "refinancing_date": recent_weekday,
                "label": "Refinancement Q2",
                "amount": 40000,
                "interest_rate": 12,
                "duration_months": 24,
                "outstanding_amount": 40000,
            }
        ).record,
    ]
    return {"escomptes": escomptes, "refinancements": refinancements}
