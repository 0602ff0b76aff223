"""/api/dashboard - derived KPI and statistics, recomputed on every request"""

from fastapi import APIRouter, Depends

from escompte_gateway.api.dependencies import get_dashboard_service
from escompte_gateway.api.v1.schemas import DashboardKPIResponse, DashboardStatsResponse
from escompte_gateway.services.lifecycle import DashboardService

router = APIRouter()


@router.get("/dashboard/kpi", response_model=DashboardKPIResponse)
def get_kpi(service: DashboardService = Depends(get_dashboard_service)):
    """
    Ceiling exposure for escomptes alone and globally (escomptes + refinancements).

    Returns:
        cumulTotal, encoursRestant, pourcentageUtilisation and their global variants
    """
    return DashboardKPIResponse.model_validate(service.kpi())


@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
def get_stats(service: DashboardService = Depends(get_dashboard_service)):
    return DashboardStatsResponse.model_validate(service.stats())
