"""Pydantic schemas for API request/response validation

Field names follow Python conventions; aliases carry the JSON names used
by the back-office UI (dateRemise, montantRefinance, ...).
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from escompte_gateway.domain.models import RefinancementStatus


class AliasedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# --- escomptes -----------------------------------------------------------


class EscompteCreate(AliasedModel):
    """Request body for POST /api/escomptes

    Fields are optional at this layer so missing values come back as
    per-field validation errors instead of a schema error.
    """

    remittance_date: Optional[str] = Field(None, alias="dateRemise")
    label: Optional[str] = Field(None, alias="libelle")
    amount: Optional[float] = Field(None, alias="montant")


class EscompteUpdate(EscompteCreate):
    """Request body for PUT /api/escomptes/{id}; only supplied fields change"""

    pass


class EscompteSchema(AliasedModel):
    id: str
    remittance_date: date = Field(..., alias="dateRemise")
    label: str = Field(..., alias="libelle")
    amount: float = Field(..., alias="montant")
    entry_order: int = Field(..., alias="ordreSaisie")
    created_at: datetime = Field(..., alias="dateCreation")
    updated_at: datetime = Field(..., alias="dateModification")


class EscompteWriteResponse(EscompteSchema):
    warnings: Dict[str, List[str]] = Field(default_factory=dict)


class EscompteListResponse(AliasedModel):
    escomptes: List[EscompteSchema]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")


class EscompteImpactRequest(AliasedModel):
    amount: float = Field(..., alias="montant")
    exclude_id: Optional[str] = Field(None, alias="excludeId")


# --- refinancements ------------------------------------------------------


class RefinancementCreate(AliasedModel):
    """Request body for POST /api/refinancements"""

    refinancing_date: Optional[str] = Field(None, alias="dateRefinancement")
    label: Optional[str] = Field(None, alias="libelle")
    amount: Optional[float] = Field(None, alias="montantRefinance")
    interest_rate: Optional[float] = Field(None, alias="tauxInteret")
    duration_months: Optional[float] = Field(None, alias="dureeEnMois")
    outstanding_amount: Optional[float] = Field(None, alias="encoursRefinance")
    filing_fee: Optional[float] = Field(None, alias="fraisDossier")
    conditions: Optional[str] = None
    status: Optional[str] = Field(None, alias="statut")


class RefinancementUpdate(RefinancementCreate):
    pass


class RefinancementSchema(AliasedModel):
    id: str
    refinancing_date: date = Field(..., alias="dateRefinancement")
    label: str = Field(..., alias="libelle")
    amount: float = Field(..., alias="montantRefinance")
    interest_rate: float = Field(..., alias="tauxInteret")
    duration_months: int = Field(..., alias="dureeEnMois")
    outstanding_amount: float = Field(..., alias="encoursRefinance")
    filing_fee: float = Field(0.0, alias="fraisDossier")
    conditions: str = ""
    status: RefinancementStatus = Field(RefinancementStatus.ACTIVE, alias="statut")
    total_interest: float = Field(..., alias="totalInterets")
    entry_order: int = Field(..., alias="ordreSaisie")
    created_at: datetime = Field(..., alias="dateCreation")
    updated_at: datetime = Field(..., alias="dateModification")


class RefinancementWriteResponse(RefinancementSchema):
    warnings: Dict[str, List[str]] = Field(default_factory=dict)


class RefinancementListResponse(AliasedModel):
    refinancements: List[RefinancementSchema]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")


class RefinancementImpactRequest(AliasedModel):
    amount: float = Field(..., alias="montantRefinance")
    exclude_id: Optional[str] = Field(None, alias="excludeId")


# --- shared record operations --------------------------------------------


class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)


class BulkDeleteResponse(AliasedModel):
    deleted: List[str]
    not_found: List[str] = Field(..., alias="notFound")


class ValidationResponse(BaseModel):
    valid: bool
    errors: Dict[str, List[str]]
    warnings: Dict[str, List[str]]


class ImpactResponse(AliasedModel):
    new_cumulative: float = Field(..., alias="nouveauCumul")
    new_remaining: float = Field(..., alias="nouvelEncours")
    new_utilization_percent: float = Field(..., alias="nouveauPourcentage")
    exceeds_ceiling: bool = Field(..., alias="depassement")
    overage: float = Field(0.0, alias="depassementMontant")


# --- configuration -------------------------------------------------------


class ConfigurationUpdate(AliasedModel):
    authorization: float = Field(..., alias="autorisationBancaire")


class ConfigurationResponse(AliasedModel):
    authorization: float = Field(..., alias="autorisationBancaire")
    updated_at: Optional[datetime] = Field(None, alias="dateModification")
    warnings: Dict[str, List[str]] = Field(default_factory=dict)


class CeilingImpactRequest(AliasedModel):
    new_ceiling: float = Field(..., alias="nouvelleAutorisation")


class CeilingImpactResponse(AliasedModel):
    current_ceiling: float = Field(..., alias="ancienneAutorisation")
    new_ceiling: float = Field(..., alias="nouvelleAutorisation")
    current_cumulative: float = Field(..., alias="cumulActuel")
    new_remaining: float = Field(..., alias="nouvelEncours")
    change_percent: float = Field(..., alias="impactPourcentage")
    new_utilization_percent: float = Field(..., alias="nouveauPourcentageUtilisation")
    below_exposure: bool = Field(..., alias="depassement")


# --- dashboard -----------------------------------------------------------


class DashboardKPIResponse(AliasedModel):
    cumul_escomptes: float = Field(..., alias="cumulTotal")
    encours_restant: float = Field(..., alias="encoursRestant")
    authorization: float = Field(..., alias="autorisationBancaire")
    escompte_count: int = Field(..., alias="nombreEscomptes")
    utilization_percent: float = Field(..., alias="pourcentageUtilisation")
    cumul_refinancements: float = Field(..., alias="cumulRefinancements")
    refinancement_count: int = Field(..., alias="nombreRefinancements")
    cumul_global: float = Field(..., alias="cumulGlobal")
    encours_restant_global: float = Field(..., alias="encoursRestantGlobal")
    utilization_percent_global: float = Field(..., alias="pourcentageUtilisationGlobal")


class AmountStatisticsSchema(AliasedModel):
    total: float
    average: float = Field(..., alias="moyenne")
    minimum: float
    maximum: float
    count: int = Field(..., alias="nombre")


class DashboardStatsResponse(AliasedModel):
    escomptes: AmountStatisticsSchema
    refinancements: AmountStatisticsSchema
    total_interest: float = Field(..., alias="totalInterets")
    refinancements_by_status: Dict[str, int] = Field(..., alias="refinancementsParStatut")


# --- audit log -----------------------------------------------------------


class LogEntryCreate(AliasedModel):
    """Client-side audit entry; action, category and description are checked by the route"""

    id: Optional[str] = None
    timestamp: Optional[datetime] = None
    action: Optional[str] = None
    category: Optional[str] = None
    severity: Optional[str] = None
    description: Optional[str] = None
    message: Optional[str] = None
    entity_type: Optional[str] = Field(None, alias="entityType")
    entity_id: Optional[str] = Field(None, alias="entityId")
    user_id: Optional[str] = Field(None, alias="userId")
    changes: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


class LogEntrySchema(AliasedModel):
    id: str
    timestamp: datetime
    action: str
    category: str
    severity: str
    description: str
    entity_type: Optional[str] = Field(None, alias="entityType")
    entity_id: Optional[str] = Field(None, alias="entityId")
    changes: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = Field(None, alias="userId")


class LogListResponse(AliasedModel):
    logs: List[LogEntrySchema]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")


class LogStatsResponse(AliasedModel):
    total: int
    by_category: Dict[str, int] = Field(..., alias="byCategory")
    by_action: Dict[str, int] = Field(..., alias="byAction")
    by_severity: Dict[str, int] = Field(..., alias="bySeverity")
    by_entity_type: Dict[str, int] = Field(..., alias="byEntityType")
    last_24_hours: int = Field(..., alias="last24Hours")
    last_week: int = Field(..., alias="lastWeek")
