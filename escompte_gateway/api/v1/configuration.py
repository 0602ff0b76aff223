"""/api/configuration - bank authorization ceiling"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from escompte_gateway.api.dependencies import get_configuration_service, get_request_id
from escompte_gateway.api.v1.errors import domain_errors
from escompte_gateway.api.v1.schemas import (
    CeilingImpactRequest,
    CeilingImpactResponse,
    ConfigurationResponse,
    ConfigurationUpdate,
    ValidationResponse,
)
from escompte_gateway.infrastructure.database.session import get_db
from escompte_gateway.services.lifecycle import ConfigurationService

router = APIRouter()


@router.get("/configuration", response_model=ConfigurationResponse)
def get_configuration(service: ConfigurationService = Depends(get_configuration_service)):
    return ConfigurationResponse.model_validate(service.get())


@router.put("/configuration", response_model=ConfigurationResponse)
def update_configuration(
    body: ConfigurationUpdate,
    request: Request,
    db: Session = Depends(get_db),
    service: ConfigurationService = Depends(get_configuration_service),
):
    """
    Replace the bank authorization.

    Rejected with 422 when the new ceiling is below the current global
    cumulative; unusually low or high ceilings come back as warnings.
    """
    with domain_errors(db, get_request_id(request)):
        result = service.update(body.authorization)

    response = ConfigurationResponse.model_validate(result.record)
    response.warnings = result.warnings
    return response


@router.post("/configuration/validate-autorisation", response_model=ValidationResponse)
def validate_authorization(
    body: ConfigurationUpdate,
    service: ConfigurationService = Depends(get_configuration_service),
):
    return ValidationResponse(**service.validate(body.authorization).to_dict())


@router.post("/configuration/calculate-impact", response_model=CeilingImpactResponse)
def calculate_authorization_impact(
    body: CeilingImpactRequest,
    service: ConfigurationService = Depends(get_configuration_service),
):
    return CeilingImpactResponse.model_validate(service.preview(body.new_ceiling))


@router.post("/configuration/reset", response_model=ConfigurationResponse)
def reset_configuration(
    request: Request,
    db: Session = Depends(get_db),
    service: ConfigurationService = Depends(get_configuration_service),
):
    """Restore the default authorization"""
    with domain_errors(db, get_request_id(request)):
        return ConfigurationResponse.model_validate(service.reset())
