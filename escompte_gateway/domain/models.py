"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class EntityType(str, Enum):
    ESCOMPTE = "ESCOMPTE"
    REFINANCEMENT = "REFINANCEMENT"
    CONFIGURATION = "CONFIGURATION"
    USER = "USER"
    SYSTEM = "SYSTEM"


class RefinancementStatus(str, Enum):
    """Lifecycle status of a refinancing instrument (wire values are French)"""

    ACTIVE = "ACTIF"
    FINISHED = "TERMINE"
    SUSPENDED = "SUSPENDU"


class LogAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"
    SAVE_STATE = "SAVE_STATE"


class LogCategory(str, Enum):
    DATA = "data"
    UI = "ui"
    SYSTEM = "system"
    CONFIGURATION = "configuration"
    ERROR = "error"


class LogSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass
class Escompte:
    """Discounted commercial paper counted against the bank ceiling"""

    id: str
    remittance_date: date
    label: str
    amount: float
    entry_order: int
    created_at: datetime
    updated_at: datetime

    def snapshot(self) -> Dict[str, Any]:
        """Wire-format copy used in audit before/after payloads"""
        return {
            "id": self.id,
            "dateRemise": self.remittance_date.isoformat(),
            "libelle": self.label,
            "montant": self.amount,
            "ordreSaisie": self.entry_order,
            "dateCreation": self.created_at.isoformat(),
            "dateModification": self.updated_at.isoformat(),
        }


@dataclass
class Refinancement:
    """Refinancing instrument, also counted toward the global ceiling"""

    id: str
    refinancing_date: date
    label: str
    amount: float
    interest_rate: float  # percent, 0-100
    duration_months: int
    outstanding_amount: float
    total_interest: float
    entry_order: int
    created_at: datetime
    updated_at: datetime
    filing_fee: float = 0.0
    conditions: str = ""
    status: RefinancementStatus = RefinancementStatus.ACTIVE

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dateRefinancement": self.refinancing_date.isoformat(),
            "libelle": self.label,
            "montantRefinance": self.amount,
            "tauxInteret": self.interest_rate,
            "dureeEnMois": self.duration_months,
            "encoursRefinance": self.outstanding_amount,
            "fraisDossier": self.filing_fee,
            "conditions": self.conditions,
            "statut": self.status.value,
            "totalInterets": self.total_interest,
            "ordreSaisie": self.entry_order,
            "dateCreation": self.created_at.isoformat(),
            "dateModification": self.updated_at.isoformat(),
        }


@dataclass
class Configuration:
    """Global configuration: the bank authorization ceiling"""

    authorization: float
    updated_at: Optional[datetime] = None

    def snapshot(self) -> Dict[str, Any]:
        return {"autorisationBancaire": self.authorization}


@dataclass
class DashboardKPI:
    """Aggregate derived from the current collections and ceiling, never stored"""

    cumul_escomptes: float
    encours_restant: float
    authorization: float
    escompte_count: int
    utilization_percent: float
    cumul_refinancements: float
    refinancement_count: int
    cumul_global: float
    encours_restant_global: float
    utilization_percent_global: float


@dataclass
class Impact:
    """Projected aggregate after adding a proposed amount"""

    new_cumulative: float
    new_remaining: float
    new_utilization_percent: float
    exceeds_ceiling: bool
    overage: float = 0.0


@dataclass
class CeilingImpact:
    """Projected effect of replacing the authorization ceiling"""

    current_ceiling: float
    new_ceiling: float
    current_cumulative: float
    new_remaining: float
    change_percent: float
    new_utilization_percent: float
    below_exposure: bool


@dataclass
class AmountStatistics:
    total: float
    average: float
    minimum: float
    maximum: float
    count: int


@dataclass
class DashboardStats:
    """Amount statistics per collection for the dashboard cards"""

    escomptes: AmountStatistics
    refinancements: AmountStatistics
    total_interest: float
    refinancements_by_status: Dict[str, int] = field(default_factory=dict)


@dataclass
class LogEntry:
    """Audit trail entry"""

    id: str
    timestamp: datetime
    action: str
    category: str
    severity: str
    description: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    changes: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None


@dataclass
class Page:
    """One page of a filtered, sorted record listing"""

    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)


@dataclass
class BulkDeleteResult:
    """Outcome of a best-effort sequential delete"""

    deleted: List[str] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
