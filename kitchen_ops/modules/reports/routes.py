from datetime import date
from fastapi import APIRouter, Depends
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.reports.schemas import (
    DashboardStats, ProjectStats, KitchenStats, PerformanceReport
)
from kitchen_ops.modules.reports.service import ReportService
from kitchen_ops.core.dependencies import (
    require_permission, get_current_user_id, get_access_cache,
    get_kitchens_with_permission, get_user_kitchen_ids, is_super_user
)
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/reports", tags=["reports"])


def get_report_service(supabase: Client = Depends(get_supabase)) -> ReportService:
    return ReportService(supabase)


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard(
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: ReportService = Depends(get_report_service),
    supabase: Client = Depends(get_supabase)
):
    """Home dashboard counters over the user's kitchens"""
    kitchen_ids = None if is_super_user(user_data) else get_user_kitchen_ids(user_data["id"], supabase, cache)
    return service.get_dashboard(user_data["id"], kitchen_ids)


@router.get("/projects", response_model=List[ProjectStats])
async def get_project_stats(
    kitchen_id: Optional[str] = None,
    data_inicio: Optional[date] = None,
    data_fim: Optional[date] = None,
    user_data: Dict = Depends(require_permission("reports:read")),
    cache: Dict = Depends(get_access_cache),
    service: ReportService = Depends(get_report_service),
    supabase: Client = Depends(get_supabase)
):
    kitchen_ids = get_kitchens_with_permission(user_data, "reports:read", supabase, cache)
    return service.get_project_stats(kitchen_ids, kitchen_id, data_inicio, data_fim)


@router.get("/kitchens", response_model=List[KitchenStats])
async def get_kitchen_stats(
    data_inicio: Optional[date] = None,
    data_fim: Optional[date] = None,
    user_data: Dict = Depends(require_permission("reports:read")),
    cache: Dict = Depends(get_access_cache),
    service: ReportService = Depends(get_report_service),
    supabase: Client = Depends(get_supabase)
):
    kitchen_ids = get_kitchens_with_permission(user_data, "reports:read", supabase, cache)
    return service.get_kitchen_stats(kitchen_ids, data_inicio, data_fim)


@router.get("/performance", response_model=PerformanceReport)
async def get_performance(
    kitchen_id: Optional[str] = None,
    data_inicio: Optional[date] = None,
    data_fim: Optional[date] = None,
    user_data: Dict = Depends(require_permission("reports:read")),
    cache: Dict = Depends(get_access_cache),
    service: ReportService = Depends(get_report_service),
    supabase: Client = Depends(get_supabase)
):
    """Task totals, rates and breakdowns over a creation date range"""
    kitchen_ids = get_kitchens_with_permission(user_data, "reports:read", supabase, cache)
    return service.get_performance(kitchen_ids, kitchen_id, data_inicio, data_fim)
