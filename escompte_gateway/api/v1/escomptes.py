"""/api/escomptes - discounted commercial paper records"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from starlette.responses import Response

from escompte_gateway.api.dependencies import get_escompte_service, get_request_id
from escompte_gateway.api.v1.errors import domain_errors
from escompte_gateway.api.v1.schemas import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    EscompteCreate,
    EscompteImpactRequest,
    EscompteListResponse,
    EscompteSchema,
    EscompteUpdate,
    EscompteWriteResponse,
    ImpactResponse,
    ValidationResponse,
)
from escompte_gateway.config import settings
from escompte_gateway.domain.stores import RecordQuery
from escompte_gateway.infrastructure.database.session import get_db
from escompte_gateway.services.lifecycle import EscompteService

router = APIRouter()


def escompte_filters(
    recherche: Optional[str] = Query(None, description="Label contains (case-insensitive)"),
    date_debut: Optional[date] = Query(None, alias="dateDebut"),
    date_fin: Optional[date] = Query(None, alias="dateFin"),
    montant_min: Optional[float] = Query(None, alias="montantMin"),
    montant_max: Optional[float] = Query(None, alias="montantMax"),
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
        sort_field=sort_field,
        sort_direction=sort_direction,
        page=page,
        limit=limit,
    )


@router.get("/escomptes", response_model=EscompteListResponse)
def list_escomptes(
    query: RecordQuery = Depends(escompte_filters),
    service: EscompteService = Depends(get_escompte_service),
):
    """Filtered, sorted, paginated escomptes"""
    page = service.list(query)
    return EscompteListResponse(
        escomptes=[EscompteSchema.model_validate(e) for e in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
        total_pages=page.total_pages,
    )


@router.get("/escomptes/export")
def export_escomptes(
    request: Request,
    export_format: str = Query("excel", alias="format"),
    query: RecordQuery = Depends(escompte_filters),
    db: Session = Depends(get_db),
    service: EscompteService = Depends(get_escompte_service),
):
    """Download the filtered escomptes as CSV or XLSX"""
    with domain_errors(db, get_request_id(request)):
        file = service.export(query, export_format)
    return Response(
        content=file.content,
        media_type=file.media_type,
        headers={"Content-Disposition": f'attachment; filename="{file.filename}"'},
    )


@router.post("/escomptes/validate", response_model=ValidationResponse)
def validate_escompte(
    body: EscompteCreate,
    request: Request,
    exclude_id: Optional[str] = Query(None, alias="excludeId"),
    db: Session = Depends(get_db),
    service: EscompteService = Depends(get_escompte_service),
):
    """Run every rule without persisting; used by the form for live feedback"""
    with domain_errors(db, get_request_id(request)):
        result = service.validate(body.model_dump(), exclude_id=exclude_id)
    return ValidationResponse(**result.to_dict())


@router.post("/escomptes/calculate-impact", response_model=ImpactResponse)
def calculate_escompte_impact(
    body: EscompteImpactRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: EscompteService = Depends(get_escompte_service),
):
    with domain_errors(db, get_request_id(request)):
        impact = service.preview_impact(body.amount, exclude_id=body.exclude_id)
    return ImpactResponse.model_validate(impact)


@router.post("/escomptes/bulk-delete", response_model=BulkDeleteResponse)
def bulk_delete_escomptes(
    body: BulkDeleteRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: EscompteService = Depends(get_escompte_service),
):
    """Best-effort delete; unknown ids are listed in notFound"""
    with domain_errors(db, get_request_id(request)):
        outcome = service.bulk_delete(body.ids)
    return BulkDeleteResponse.model_validate(outcome)


@router.get("/escomptes/{escompte_id}", response_model=EscompteSchema)
def get_escompte(
    escompte_id: str,
    request: Request,
    db: Session = Depends(get_db),
    service: EscompteService = Depends(get_escompte_service),
):
    with domain_errors(db, get_request_id(request)):
        return EscompteSchema.model_validate(service.get(escompte_id))


@router.post("/escomptes", response_model=EscompteWriteResponse, status_code=201)
def create_escompte(
    body: EscompteCreate,
    request: Request,
    db: Session = Depends(get_db),
    service: EscompteService = Depends(get_escompte_service),
):
    """
    Create an escompte.

    Rejected with 422 when the amount would push the global cumulative over
    the bank authorization; near-ceiling and date remarks come back as
    warnings on the created record.
    """
    with domain_errors(db, get_request_id(request)):
        result = service.create(body.model_dump())

    response = EscompteWriteResponse.model_validate(result.record)
    response.warnings = result.warnings
    return response


@router.put("/escomptes/{escompte_id}", response_model=EscompteWriteResponse)
def update_escompte(
    escompte_id: str,
    body: EscompteUpdate,
    request: Request,
    db: Session = Depends(get_db),
    service: EscompteService = Depends(get_escompte_service),
):
    with domain_errors(db, get_request_id(request)):
        result = service.update(escompte_id, body.model_dump(exclude_unset=True))

    response = EscompteWriteResponse.model_validate(result.record)
    response.warnings = result.warnings
    return response


@router.delete("/escomptes/{escompte_id}", response_model=EscompteSchema)
def delete_escompte(
    escompte_id: str,
    request: Request,
    db: Session = Depends(get_db),
    service: EscompteService = Depends(get_escompte_service),
):
    """Delete and return the removed escompte"""
    with domain_errors(db, get_request_id(request)):
        return EscompteSchema.model_validate(service.delete(escompte_id))
