from fastapi import APIRouter, Depends, HTTPException, status
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.profiles.schemas import (
    ProfileCreate, ProfileUpdate, ProfileResponse, ProfileWithRolesResponse,
    WorkScheduleResponse, WorkScheduleFieldUpdate, WorkScheduleBulkUpdate
)
from kitchen_ops.modules.profiles.service import ProfileService
from kitchen_ops.core.dependencies import (
    require_permission, require_admin, get_current_user_id, get_user_permissions,
    is_super_user, get_access_cache
)
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


def _check_self_or_permission(profile_id: str, user_data: Dict, supabase: Client, cache: Dict):
    """Users may always edit their own profile; others need profiles:update"""
    if user_data["id"] == profile_id or is_super_user(user_data):
        return
    if "profiles:update" not in get_user_permissions(user_data["id"], supabase, cache):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions. Required: profiles:update"
        )


@router.get("", response_model=List[ProfileWithRolesResponse])
async def list_profiles(
    kitchen_id: Optional[str] = None,
    role: Optional[str] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
    user_data: Dict = Depends(require_permission("profiles:read")),
    service: ProfileService = Depends(get_profile_service)
):
    """List profiles with their kitchen roles"""
    return service.list_profiles(kitchen_id=kitchen_id, role=role, search=search, include_inactive=include_inactive)


@router.post("", response_model=ProfileResponse, status_code=201)
async def create_profile(
    profile_data: ProfileCreate,
    user_data: Dict = Depends(require_permission("profiles:create")),
    service: ProfileService = Depends(get_profile_service)
):
    return service.create_profile(profile_data)


@router.get("/schedules", response_model=List[WorkScheduleResponse])
async def list_work_schedules(
    user_data: Dict = Depends(require_permission("profiles:read")),
    service: ProfileService = Depends(get_profile_service)
):
    """Work windows of active users (used for reminder times)"""
    return service.list_work_schedules()


@router.put("/schedules")
async def save_work_schedules(
    bulk: WorkScheduleBulkUpdate,
    user_data: Dict = Depends(require_permission("profiles:update")),
    service: ProfileService = Depends(get_profile_service)
):
    saved = service.save_schedules(bulk)
    return {"message": "Schedules saved", "saved": saved}


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    return service.get_profile(profile_id)


@router.put("/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    profile_id: str,
    profile_data: ProfileUpdate,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: ProfileService = Depends(get_profile_service),
    supabase: Client = Depends(get_supabase)
):
    """Update profile (own profile, or profiles:update)"""
    _check_self_or_permission(profile_id, user_data, supabase, cache)
    return service.update_profile(profile_id, profile_data)


@router.patch("/{profile_id}/schedule", response_model=ProfileResponse)
async def update_schedule_field(
    profile_id: str,
    update: WorkScheduleFieldUpdate,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: ProfileService = Depends(get_profile_service),
    supabase: Client = Depends(get_supabase)
):
    """Update hora_inicio or hora_fim"""
    _check_self_or_permission(profile_id, user_data, supabase, cache)
    return service.update_schedule_field(profile_id, update)


@router.post("/{profile_id}/toggle-active", response_model=ProfileResponse)
async def toggle_profile_active(
    profile_id: str,
    user_data: Dict = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service)
):
    """Activate or deactivate a user (ADMIN)"""
    return service.toggle_active(profile_id)
