"""
Core dependencies for route protection and permission checking.

Roles are kitchen-scoped (user_kitchen_roles). A permission is held in a kitchen
when any of the user's roles in that kitchen grants it (see permissions_config).
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from kitchen_ops.config.permissions_config import Role, permissions_for_roles
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.auth.service import AuthService
from supabase import Client
from typing import List, Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (kitchen_roles, permission_names)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def is_super_user(user_data: dict) -> bool:
    """Check if user is a super user from app_metadata (set server-side only)"""
    app_metadata = user_data.get("app_metadata") or {}
    return app_metadata.get("type") == "super_user"


def get_user_kitchen_roles(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> Dict[str, List[str]]:
    """Return {kitchen_id: [role, ...]} from user_kitchen_roles. Uses request-scoped cache when provided."""
    if cache is not None and "kitchen_roles" in cache:
        return cache["kitchen_roles"]
    try:
        result = supabase.table("user_kitchen_roles")\
            .select("kitchen_id, role")\
            .eq("user_id", user_id)\
            .execute()
        kitchen_roles: Dict[str, List[str]] = {}
        for row in result.data or []:
            kitchen_roles.setdefault(row["kitchen_id"], []).append(row["role"])
        if cache is not None:
            cache["kitchen_roles"] = kitchen_roles
        return kitchen_roles
    except Exception as e:
        logger.error(f"Error getting user kitchen roles: {e}")
        return {}


def get_user_kitchen_ids(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> List[str]:
    return list(get_user_kitchen_roles(user_id, supabase, cache).keys())


def get_kitchen_permissions(user_id: str, kitchen_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> set:
    roles = get_user_kitchen_roles(user_id, supabase, cache).get(kitchen_id, [])
    return permissions_for_roles(roles)


def get_user_permissions(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> List[str]:
    """Union of the user's permissions across all kitchens. Populates request-scoped cache when provided."""
    if cache is not None and "permission_names" in cache:
        return cache["permission_names"]
    kitchen_roles = get_user_kitchen_roles(user_id, supabase, cache)
    roles = {role for kitchen_role_list in kitchen_roles.values() for role in kitchen_role_list}
    names = sorted(permissions_for_roles(roles))
    if cache is not None:
        cache["permission_names"] = names
    return names


def get_kitchens_with_permission(user_data: dict, permission: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> Optional[List[str]]:
    """Kitchen ids where the user holds `permission`. None means unrestricted (super user)."""
    if is_super_user(user_data):
        return None
    kitchen_roles = get_user_kitchen_roles(user_data["id"], supabase, cache)
    return [
        kitchen_id for kitchen_id, roles in kitchen_roles.items()
        if permission in permissions_for_roles(roles)
    ]


def is_admin(user_data: dict, supabase: Client, kitchen_id: Optional[str] = None, cache: Optional[Dict[str, Any]] = None) -> bool:
    """ADMIN of the given kitchen, or of any kitchen when kitchen_id is None"""
    if is_super_user(user_data):
        return True
    kitchen_roles = get_user_kitchen_roles(user_data["id"], supabase, cache)
    if kitchen_id is not None:
        return Role.ADMIN.value in kitchen_roles.get(kitchen_id, [])
    return any(Role.ADMIN.value in roles for roles in kitchen_roles.values())


def require_permission(required_permission: str):
    """Factory function to create permission check dependency"""
    def check_permission(
        request: Request,
        user_data: dict = Depends(get_current_user_id),
        supabase: Client = Depends(get_supabase)
    ) -> dict:
        """Dependency to check if user has required permission in at least one kitchen"""
        if is_super_user(user_data):
            return user_data
        cache = _get_request_cache(request)
        user_permissions = get_user_permissions(user_data["id"], supabase, cache)
        if required_permission not in user_permissions:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {required_permission}"
            )
        return user_data
    return check_permission


def require_admin(
    request: Request,
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Dependency: user must be ADMIN in at least one kitchen"""
    if not is_admin(user_data, supabase, cache=_get_request_cache(request)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required"
        )
    return user_data


def get_access_cache(request: Request) -> Dict[str, Any]:
    """Dependency that returns request-scoped access cache (populated by require_permission when used)."""
    return _get_request_cache(request)


def check_kitchen_access(
    kitchen_id: str,
    user_data: dict,
    supabase: Client,
    permission: Optional[str] = None,
    cache: Optional[Dict[str, Any]] = None
) -> dict:
    """Allow if super_user, or member of the kitchen (holding `permission` when given)"""
    if is_super_user(user_data):
        return user_data
    kitchen_roles = get_user_kitchen_roles(user_data["id"], supabase, cache)
    roles = kitchen_roles.get(kitchen_id)
    if not roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be a member of this kitchen to access it"
        )
    if permission and permission not in permissions_for_roles(roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required: {permission}"
        )
    return user_data


def check_project_access(
    project_id: str,
    user_data: dict,
    supabase: Client,
    permission: Optional[str] = None,
    cache: Optional[Dict[str, Any]] = None,
    project: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Check access through the project's kitchen. Returns the project row. Optional project dict avoids duplicate fetch."""
    if project is None:
        project_result = supabase.table("projects")\
            .select("id, kitchen_id")\
            .eq("id", project_id)\
            .maybe_single()\
            .execute()
        if not project_result or not project_result.data:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Project not found"
            )
        project = project_result.data
    check_kitchen_access(project["kitchen_id"], user_data, supabase, permission, cache)
    return project


def check_task_access(
    task_id: str,
    user_data: dict,
    supabase: Client,
    permission: Optional[str] = None,
    cache: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Check access through the task's project kitchen. Returns the task row."""
    task_result = supabase.table("tasks")\
        .select("id, project_id, responsavel_id")\
        .eq("id", task_id)\
        .maybe_single()\
        .execute()
    if not task_result or not task_result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    task = task_result.data
    check_project_access(task["project_id"], user_data, supabase, permission, cache)
    return task
