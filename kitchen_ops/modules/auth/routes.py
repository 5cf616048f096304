from fastapi import APIRouter, Depends, Security
from fastapi.security import HTTPAuthorizationCredentials
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse, MeResponse
)
from kitchen_ops.modules.auth.service import AuthService
from kitchen_ops.core.dependencies import (
    security, get_auth_service, get_current_user_id, get_access_cache, is_super_user,
    is_admin, get_user_kitchen_roles, get_user_permissions
)
from kitchen_ops.config.permissions_config import get_permission_matrix
from supabase import Client
from typing import Dict, List

router = APIRouter(prefix="/auth", tags=["auth"])


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user (the profile row is created by a database trigger)"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
async def get_current_user(
    current_user: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    supabase: Client = Depends(get_supabase),
):
    """Current user, profile, kitchen roles and permissions (for frontend UI)."""
    profile = supabase.table("profiles")\
        .select("*")\
        .eq("id", current_user["id"])\
        .maybe_single()\
        .execute()
    kitchen_roles = get_user_kitchen_roles(current_user["id"], supabase, cache)
    if is_super_user(current_user):
        permissions: List[str] = [p["name"] for p in get_permission_matrix()["permissions"]]
    else:
        permissions = get_user_permissions(current_user["id"], supabase, cache)
    return MeResponse(
        id=current_user["id"],
        email=current_user.get("email"),
        profile=profile.data if profile else None,
        kitchen_roles=[
            {"kitchen_id": kitchen_id, "roles": roles}
            for kitchen_id, roles in kitchen_roles.items()
        ],
        permissions=permissions,
        is_admin=is_admin(current_user, supabase, cache=cache),
    )
