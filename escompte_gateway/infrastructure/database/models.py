"""SQLAlchemy ORM models; every amount is stored as integer cents"""

from sqlalchemy import JSON, BigInteger, Column, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class EscompteRecord(Base):
    """Discounted commercial paper"""

    __tablename__ = "escompte"

    id = Column(String(36), primary_key=True)
    remittance_date = Column(Date, nullable=False, index=True)
    label = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    entry_order = Column(Integer, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class RefinancementRecord(Base):
    """Refinancing instrument"""

    __tablename__ = "refinancement"

    id = Column(String(36), primary_key=True)
    refinancing_date = Column(Date, nullable=False, index=True)
    label = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    interest_rate_bps = Column(Integer, nullable=False)  # 10.5% -> 1050
    duration_months = Column(Integer, nullable=False)
    outstanding_cents = Column(BigInteger, nullable=False, default=0)
    filing_fee_cents = Column(BigInteger, nullable=False, default=0)
    total_interest_cents = Column(BigInteger, nullable=False, default=0)
    conditions = Column(Text, nullable=False, default="")
    status = Column(Text, nullable=False, default="ACTIF", index=True)
    entry_order = Column(Integer, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ConfigurationRecord(Base):
    """Single-row global configuration"""

    __tablename__ = "configuration"

    id = Column(Integer, primary_key=True, default=1)
    authorization_cents = Column(BigInteger, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class SequenceCounter(Base):
    """Per-collection entry-order counter; values are never reused"""

    __tablename__ = "sequence_counters"

    name = Column(String(64), primary_key=True)
    value = Column(BigInteger, nullable=False, default=0)


class AuditLogRecord(Base):
    """Audit trail entry"""

    __tablename__ = "audit_log"

    id = Column(String(64), primary_key=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    action = Column(String(32), nullable=False, index=True)
    category = Column(String(32), nullable=False, index=True)
    severity = Column(String(16), nullable=False)
    description = Column(Text, nullable=False)
    entity_type = Column(String(32), nullable=True, index=True)
    entity_id = Column(String(64), nullable=True)
    changes = Column(JSON, nullable=True)
    log_metadata = Column("metadata", JSON, nullable=True)
    user_id = Column(Text, nullable=True)
