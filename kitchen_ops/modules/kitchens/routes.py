from fastapi import APIRouter, Depends
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.kitchens.schemas import (
    KitchenCreate, KitchenUpdate, KitchenResponse, MemberAdd, MemberResponse, GeneratedCode
)
from kitchen_ops.modules.kitchens.service import KitchenService, generate_code
from kitchen_ops.config.permissions_config import ROLE_LABELS, PERMISSION_MATRIX
from kitchen_ops.core.dependencies import (
    require_permission, get_current_user_id, get_access_cache, get_user_kitchen_roles,
    check_kitchen_access, is_super_user
)
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/kitchens", tags=["kitchens"])


def get_kitchen_service(supabase: Client = Depends(get_supabase)) -> KitchenService:
    return KitchenService(supabase)


@router.get("", response_model=List[KitchenResponse])
async def list_kitchens(
    active_only: bool = False,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: KitchenService = Depends(get_kitchen_service),
    supabase: Client = Depends(get_supabase)
):
    """Kitchens the current user belongs to (all kitchens for super users)"""
    if is_super_user(user_data):
        return service.list_kitchens(None, active_only=active_only)
    kitchen_roles = get_user_kitchen_roles(user_data["id"], supabase, cache)
    return service.list_kitchens(kitchen_roles, active_only=active_only)


@router.get("/roles")
async def list_roles(user_data: Dict = Depends(get_current_user_id)):
    """Kitchen roles with labels and granted permissions"""
    return [
        {"role": role.value, "label": label, "permissions": PERMISSION_MATRIX["roles"][role.value]}
        for role, label in ROLE_LABELS.items()
    ]


@router.get("/generate-code", response_model=GeneratedCode)
async def generate_kitchen_code(nome: str, user_data: Dict = Depends(get_current_user_id)):
    """Suggest a kitchen code from its name"""
    return GeneratedCode(nome=nome, codigo=generate_code(nome))


@router.post("", response_model=KitchenResponse, status_code=201)
async def create_kitchen(
    kitchen_data: KitchenCreate,
    user_data: Dict = Depends(require_permission("kitchens:create")),
    service: KitchenService = Depends(get_kitchen_service)
):
    """Create a kitchen; the creator becomes its ADMIN"""
    return service.create_kitchen(kitchen_data, user_data["id"])


@router.get("/{kitchen_id}", response_model=KitchenResponse)
async def get_kitchen(
    kitchen_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: KitchenService = Depends(get_kitchen_service),
    supabase: Client = Depends(get_supabase)
):
    check_kitchen_access(kitchen_id, user_data, supabase, "kitchens:read", cache)
    roles = get_user_kitchen_roles(user_data["id"], supabase, cache).get(kitchen_id, [])
    return service.get_kitchen(kitchen_id, roles)


@router.put("/{kitchen_id}", response_model=KitchenResponse)
async def update_kitchen(
    kitchen_id: str,
    kitchen_data: KitchenUpdate,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: KitchenService = Depends(get_kitchen_service),
    supabase: Client = Depends(get_supabase)
):
    check_kitchen_access(kitchen_id, user_data, supabase, "kitchens:update", cache)
    return service.update_kitchen(kitchen_id, kitchen_data)


@router.delete("/{kitchen_id}", status_code=204)
async def delete_kitchen(
    kitchen_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: KitchenService = Depends(get_kitchen_service),
    supabase: Client = Depends(get_supabase)
):
    check_kitchen_access(kitchen_id, user_data, supabase, "kitchens:delete", cache)
    service.delete_kitchen(kitchen_id)
    return None


@router.get("/{kitchen_id}/members", response_model=List[MemberResponse])
async def list_members(
    kitchen_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: KitchenService = Depends(get_kitchen_service),
    supabase: Client = Depends(get_supabase)
):
    check_kitchen_access(kitchen_id, user_data, supabase, "kitchens:read", cache)
    return service.list_members(kitchen_id)


@router.post("/{kitchen_id}/members", response_model=MemberResponse, status_code=201)
async def add_member(
    kitchen_id: str,
    member: MemberAdd,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: KitchenService = Depends(get_kitchen_service),
    supabase: Client = Depends(get_supabase)
):
    """Add a user (by email) to the kitchen with a role"""
    check_kitchen_access(kitchen_id, user_data, supabase, "kitchens:manage_members", cache)
    return service.add_member(kitchen_id, member)


@router.delete("/{kitchen_id}/members/{membership_id}", status_code=204)
async def remove_member(
    kitchen_id: str,
    membership_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: KitchenService = Depends(get_kitchen_service),
    supabase: Client = Depends(get_supabase)
):
    check_kitchen_access(kitchen_id, user_data, supabase, "kitchens:manage_members", cache)
    service.remove_member(kitchen_id, membership_id)
    return None
