"""/api/refinancements - refinancing instruments"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from starlette.responses import Response

from escompte_gateway.api.dependencies import get_refinancement_service, get_request_id
from escompte_gateway.api.v1.errors import domain_errors
from escompte_gateway.api.v1.schemas import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    ImpactResponse,
    RefinancementCreate,
    RefinancementImpactRequest,
    RefinancementListResponse,
    RefinancementSchema,
    RefinancementUpdate,
    RefinancementWriteResponse,
    ValidationResponse,
)
from escompte_gateway.config import settings
from escompte_gateway.domain.models import RefinancementStatus
from escompte_gateway.domain.stores import RecordQuery
from escompte_gateway.infrastructure.database.session import get_db
from escompte_gateway.services.lifecycle import RefinancementService

router = APIRouter()


def refinancement_filters(
    recherche: Optional[str] = Query(None),
    date_debut: Optional[date] = Query(None, alias="dateDebut"),
    date_fin: Optional[date] = Query(None, alias="dateFin"),
    montant_min: Optional[float] = Query(None, alias="montantMin"),
    montant_max: Optional[float] = Query(None, alias="montantMax"),
    taux_min: Optional[float] = Query(None, alias="tauxMin"),
    taux_max: Optional[float] = Query(None, alias="tauxMax"),
    statut: Optional[RefinancementStatus] = Query(None),
    sort_field: Optional[str] = Query(None, alias="sortField"),
    sort_direction: str = Query("asc", alias="sortDirection", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> RecordQuery:
    return RecordQuery(
        search=recherche,
        date_from=date_debut,
        date_to=date_fin,
        amount_min=montant_min,
        amount_max=montant_max,
        rate_min=taux_min,
        rate_max=taux_max,
        status=statut.value if statut else None,
        sort_field=sort_field,
        sort_direction=sort_direction,
        page=page,
        limit=limit,
    )


def _write_response(result) -> RefinancementWriteResponse:
    response = RefinancementWriteResponse.model_validate(result.record)
    response.warnings = result.warnings
    return response


@router.get("/refinancements", response_model=RefinancementListResponse)
def list_refinancements(
    query: RecordQuery = Depends(refinancement_filters),
    service: RefinancementService = Depends(get_refinancement_service),
):
    page = service.list(query)
    return RefinancementListResponse(
        refinancements=[RefinancementSchema.model_validate(r) for r in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
        total_pages=page.total_pages,
    )


@router.get("/refinancements/export")
def export_refinancements(
    request: Request,
    export_format: str = Query("excel", alias="format"),
    query: RecordQuery = Depends(refinancement_filters),
    db: Session = Depends(get_db),
    service: RefinancementService = Depends(get_refinancement_service),
):
    with domain_errors(db, get_request_id(request)):
        file = service.export(query, export_format)
    return Response(
        content=file.content,
        media_type=file.media_type,
        headers={"Content-Disposition": f'attachment; filename="{file.filename}"'},
    )


@router.post("/refinancements/validate", response_model=ValidationResponse)
def validate_refinancement(
    body: RefinancementCreate,
    request: Request,
    exclude_id: Optional[str] = Query(None, alias="excludeId"),
    db: Session = Depends(get_db),
    service: RefinancementService = Depends(get_refinancement_service),
):
    with domain_errors(db, get_request_id(request)):
        result = service.validate(body.model_dump(), exclude_id=exclude_id)
    return ValidationResponse(**result.to_dict())


@router.post("/refinancements/calculate-impact", response_model=ImpactResponse)
def calculate_refinancement_impact(
    body: RefinancementImpactRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: RefinancementService = Depends(get_refinancement_service),
):
    with domain_errors(db, get_request_id(request)):
        impact = service.preview_impact(body.amount, exclude_id=body.exclude_id)
    return ImpactResponse.model_validate(impact)


@router.post("/refinancements/bulk-delete", response_model=BulkDeleteResponse)
def bulk_delete_refinancements(
    body: BulkDeleteRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: RefinancementService = Depends(get_refinancement_service),
):
    with domain_errors(db, get_request_id(request)):
        outcome = service.bulk_delete(body.ids)
    return BulkDeleteResponse.model_validate(outcome)


@router.get("/refinancements/{refinancement_id}", response_model=RefinancementSchema)
def get_refinancement(
    refinancement_id: str,
    request: Request,
    db: Session = Depends(get_db),
    service: RefinancementService = Depends(get_refinancement_service),
):
    with domain_errors(db, get_request_id(request)):
        return RefinancementSchema.model_validate(service.get(refinancement_id))


@router.post("/refinancements", response_model=RefinancementWriteResponse, status_code=201)
def create_refinancement(
    body: RefinancementCreate,
    request: Request,
    db: Session = Depends(get_db),
    service: RefinancementService = Depends(get_refinancement_service),
):
    """
    Create a refinancement.

    Total interest is derived (amount x rate/100 x months/12); the amount
    counts toward the same global ceiling as escomptes.
    """
    with domain_errors(db, get_request_id(request)):
        result = service.create(body.model_dump())
    return _write_response(result)


@router.put("/refinancements/{refinancement_id}", response_model=RefinancementWriteResponse)
def update_refinancement(
    refinancement_id: str,
    body: RefinancementUpdate,
    request: Request,
    db: Session = Depends(get_db),
    service: RefinancementService = Depends(get_refinancement_service),
):
    with domain_errors(db, get_request_id(request)):
        result = service.update(refinancement_id, body.model_dump(exclude_unset=True))
    return _write_response(result)


@router.delete("/refinancements/{refinancement_id}", response_model=RefinancementSchema)
def delete_refinancement(
    refinancement_id: str,
    request: Request,
    db: Session = Depends(get_db),
    service: RefinancementService = Depends(get_refinancement_service),
):
    with domain_errors(db, get_request_id(request)):
        return RefinancementSchema.model_validate(service.delete(refinancement_id))
