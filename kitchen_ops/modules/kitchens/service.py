import re
from datetime import datetime, timezone
from supabase import Client
from kitchen_ops.config.permissions_config import Role
from kitchen_ops.modules.kitchens.schemas import (
    KitchenCreate, KitchenUpdate, KitchenResponse, MemberAdd, MemberResponse
)
from kitchen_ops.modules.profiles.utils import get_role_label
from typing import List, Optional, Dict
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def generate_code(nome: str) -> str:
    """Upper-case, keep only A-Z and 0-9, first 6 characters"""
    return re.sub(r"[^A-Z0-9]", "", (nome or "").upper())[:6]


class KitchenService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _code_taken(self, codigo: str, exclude_id: Optional[str] = None) -> bool:
        query = self.supabase.table("kitchens").select("id").eq("codigo", codigo)
        if exclude_id:
            query = query.neq("id", exclude_id)
        return bool(query.execute().data)

    def list_kitchens(
        self,
        kitchen_roles: Optional[Dict[str, List[str]]],
        active_only: bool = False
    ) -> List[KitchenResponse]:
        """Kitchens the user belongs to. kitchen_roles None means every kitchen (super user)."""
        try:
            query = self.supabase.table("kitchens").select("*")
            if kitchen_roles is not None:
                if not kitchen_roles:
                    return []
                query = query.in_("id", list(kitchen_roles.keys()))
            if active_only:
                query = query.eq("ativo", True)
            result = query.order("nome").execute()
            roles = kitchen_roles or {}
            return [KitchenResponse(**k, roles=roles.get(k["id"], [])) for k in result.data or []]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_kitchen(self, kitchen_id: str, roles: Optional[List[str]] = None) -> KitchenResponse:
        try:
            result = self.supabase.table("kitchens")\
                .select("*")\
                .eq("id", kitchen_id)\
                .maybe_single()\
                .execute()
            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Kitchen not found")
            return KitchenResponse(**result.data, roles=roles or [])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_kitchen(self, data: KitchenCreate, user_id: str) -> KitchenResponse:
        """Create kitchen; the creator becomes its ADMIN"""
        try:
            if self._code_taken(data.codigo):
                raise HTTPException(status_code=400, detail="A kitchen with this code already exists")

            result = self.supabase.table("kitchens").insert({
                "nome": data.nome.strip(),
                "codigo": data.codigo,
                "endereco": data.endereco,
                "ativo": data.ativo,
                "criado_por": user_id,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create kitchen")
            kitchen = result.data[0]

            self.supabase.table("user_kitchen_roles").insert({
                "user_id": user_id,
                "kitchen_id": kitchen["id"],
                "role": Role.ADMIN.value,
            }).execute()
            logger.info(f"Kitchen {kitchen['id']} ({kitchen['codigo']}) created by {user_id}")
            return KitchenResponse(**kitchen, roles=[Role.ADMIN.value])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_kitchen(self, kitchen_id: str, data: KitchenUpdate) -> KitchenResponse:
        try:
            current = self.get_kitchen(kitchen_id)
            update_data = data.model_dump(exclude_none=True)
            if "codigo" in update_data and update_data["codigo"] != current.codigo:
                if self._code_taken(update_data["codigo"], exclude_id=kitchen_id):
                    raise HTTPException(status_code=400, detail="A kitchen with this code already exists")
            if not update_data:
                return current
            update_data["atualizado_em"] = datetime.now(timezone.utc).isoformat()
            result = self.supabase.table("kitchens")\
                .update(update_data)\
                .eq("id", kitchen_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Kitchen not found")
            return KitchenResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_kitchen(self, kitchen_id: str) -> bool:
        try:
            self.get_kitchen(kitchen_id)
            self.supabase.table("kitchens")\
                .delete()\
                .eq("id", kitchen_id)\
                .execute()
            logger.info(f"Kitchen {kitchen_id} deleted")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Members

    def list_members(self, kitchen_id: str) -> List[MemberResponse]:
        try:
            result = self.supabase.table("user_kitchen_roles")\
                .select("*, profiles(id, nome, email, telefone, ativo)")\
                .eq("kitchen_id", kitchen_id)\
                .order("criado_em")\
                .execute()
            return [
                MemberResponse(**row, role_label=get_role_label(row["role"]), profile=row.get("profiles"))
                for row in result.data or []
            ]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_member(self, kitchen_id: str, member: MemberAdd) -> MemberResponse:
        """Give the user with this email a role in the kitchen"""
        try:
            self.get_kitchen(kitchen_id)
            profile_result = self.supabase.table("profiles")\
                .select("id, nome, email")\
                .eq("email", member.email.strip().lower())\
                .execute()
            if not profile_result.data:
                raise HTTPException(status_code=404, detail="No user found with this email")
            profile = profile_result.data[0]
            role = member.role.value

            existing = self.supabase.table("user_kitchen_roles")\
                .select("id")\
                .eq("user_id", profile["id"])\
                .eq("kitchen_id", kitchen_id)\
                .eq("role", role)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=400, detail="User already has this role in this kitchen")

            result = self.supabase.table("user_kitchen_roles").insert({
                "user_id": profile["id"],
                "kitchen_id": kitchen_id,
                "role": role,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add member")
            return MemberResponse(**result.data[0], role_label=get_role_label(role), profile=profile)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def remove_member(self, kitchen_id: str, membership_id: str) -> bool:
        try:
            result = self.supabase.table("user_kitchen_roles")\
                .delete()\
                .eq("id", membership_id)\
                .eq("kitchen_id", kitchen_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Membership not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
