from fastapi import APIRouter, Depends
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.projects.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse, ProjectWithTasksResponse, ProjectStatus
)
from kitchen_ops.modules.projects.service import ProjectService
from kitchen_ops.core.dependencies import (
    require_permission, get_current_user_id, get_access_cache,
    get_kitchens_with_permission, check_kitchen_access, check_project_access
)
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/projects", tags=["projects"])


def get_project_service(supabase: Client = Depends(get_supabase)) -> ProjectService:
    return ProjectService(supabase)


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    status: Optional[ProjectStatus] = None,
    kitchen_id: Optional[str] = None,
    search: Optional[str] = None,
    user_data: Dict = Depends(require_permission("projects:read")),
    cache: Dict = Depends(get_access_cache),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase)
):
    """List projects of the kitchens the user can read"""
    kitchen_ids = get_kitchens_with_permission(user_data, "projects:read", supabase, cache)
    return service.list_projects(kitchen_ids, status=status, kitchen_id=kitchen_id, search=search)


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    project_data: ProjectCreate,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase)
):
    check_kitchen_access(project_data.kitchen_id, user_data, supabase, "projects:create", cache)
    return service.create_project(project_data, user_data["id"])


@router.get("/{project_id}", response_model=ProjectWithTasksResponse)
async def get_project(
    project_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase)
):
    """Get project with its tasks"""
    check_project_access(project_id, user_data, supabase, "projects:read", cache)
    return service.get_project(project_id)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase)
):
    check_project_access(project_id, user_data, supabase, "projects:update", cache)
    return service.update_project(project_id, project_data)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase)
):
    check_project_access(project_id, user_data, supabase, "projects:delete", cache)
    service.delete_project(project_id)
    return None
