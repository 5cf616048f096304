from datetime import datetime, timezone
from supabase import Client
from kitchen_ops.config import settings
from kitchen_ops.modules.profiles.schemas import (
    ProfileCreate, ProfileUpdate, ProfileResponse, ProfileWithRolesResponse,
    WorkScheduleResponse, WorkScheduleFieldUpdate, WorkScheduleBulkUpdate
)
from kitchen_ops.modules.profiles.utils import format_phone, format_work_schedule, get_kitchen_access
from kitchen_ops.modules.reminders.calculator import parse_time
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_row(self, profile_id: str) -> Dict[str, Any]:
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("id", profile_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        return result.data

    def get_profile(self, profile_id: str) -> ProfileResponse:
        try:
            return ProfileResponse(**self._get_row(profile_id))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_kitchen_roles(self, user_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
        """{user_id: [user_kitchen_roles row with kitchens(id, nome, codigo)]}"""
        if not user_ids:
            return {}
        result = self.supabase.table("user_kitchen_roles")\
            .select("*, kitchens(id, nome, codigo)")\
            .in_("user_id", user_ids)\
            .execute()
        roles: Dict[str, List[Dict[str, Any]]] = {}
        for row in result.data or []:
            roles.setdefault(row["user_id"], []).append(row)
        return roles

    def list_profiles(
        self,
        kitchen_id: Optional[str] = None,
        role: Optional[str] = None,
        search: Optional[str] = None,
        include_inactive: bool = False
    ) -> List[ProfileWithRolesResponse]:
        """List profiles with their kitchen roles, filtered by kitchen, role and search term"""
        try:
            query = self.supabase.table("profiles").select("*")
            if not include_inactive:
                query = query.eq("ativo", True)
            result = query.order("nome").execute()
            profiles = result.data or []
            roles_by_user = self.get_kitchen_roles([p["id"] for p in profiles])

            term = search.strip().lower() if search else None
            responses = []
            for profile in profiles:
                roles = roles_by_user.get(profile["id"], [])
                if kitchen_id and not any(r["kitchen_id"] == kitchen_id for r in roles):
                    continue
                if role and not any(r["role"] == role for r in roles):
                    continue
                if term and not (
                    term in (profile.get("nome") or "").lower()
                    or term in (profile.get("email") or "").lower()
                    or term in (profile.get("telefone") or "").lower()
                ):
                    continue
                responses.append(ProfileWithRolesResponse(
                    **profile,
                    user_kitchen_roles=roles,
                    telefone_formatado=format_phone(profile.get("telefone")),
                    kitchen_access=get_kitchen_access(roles),
                ))
            return responses
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_profile(self, data: ProfileCreate) -> ProfileResponse:
        """Create profile; email and phone must be unique"""
        try:
            email = data.email.strip().lower()
            telefone = data.telefone.strip()
            existing_email = self.supabase.table("profiles")\
                .select("id")\
                .eq("email", email)\
                .execute()
            if existing_email.data:
                raise HTTPException(status_code=400, detail="A user with this email already exists")

            existing_phone = self.supabase.table("profiles")\
                .select("id, nome")\
                .eq("telefone", telefone)\
                .execute()
            if existing_phone.data:
                raise HTTPException(
                    status_code=400,
                    detail=f"This WhatsApp number is already registered to: {existing_phone.data[0]['nome']}"
                )

            result = self.supabase.table("profiles").insert({
                "nome": data.nome,
                "email": email,
                "telefone": telefone,
                "hora_inicio": data.hora_inicio,
                "hora_fim": data.hora_fim,
                "ativo": data.ativo,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create profile")
            logger.info(f"Created profile {result.data[0]['id']}")
            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_profile(self, profile_id: str, data: ProfileUpdate) -> ProfileResponse:
        try:
            current = self._get_row(profile_id)
            update_data = data.model_dump(exclude_none=True)

            hora_inicio = update_data.get("hora_inicio", current.get("hora_inicio"))
            hora_fim = update_data.get("hora_fim", current.get("hora_fim"))
            if ("hora_inicio" in update_data or "hora_fim" in update_data) and hora_inicio and hora_fim:
                try:
                    ends_before_start = parse_time(hora_fim) <= parse_time(hora_inicio)
                except ValueError as e:
                    raise HTTPException(status_code=400, detail=str(e))
                if ends_before_start:
                    raise HTTPException(status_code=400, detail="hora_fim must be after hora_inicio")

            if update_data.get("telefone") and update_data["telefone"] != current.get("telefone"):
                existing_phone = self.supabase.table("profiles")\
                    .select("id, nome")\
                    .eq("telefone", update_data["telefone"])\
                    .neq("id", profile_id)\
                    .execute()
                if existing_phone.data:
                    raise HTTPException(
                        status_code=400,
                        detail=f"This WhatsApp number is already registered to: {existing_phone.data[0]['nome']}"
                    )

            if not update_data:
                return ProfileResponse(**current)
            update_data["atualizado_em"] = _now()
            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", profile_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")
            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def toggle_active(self, profile_id: str) -> ProfileResponse:
        """Flip the ativo flag"""
        try:
            current = self._get_row(profile_id)
            result = self.supabase.table("profiles")\
                .update({"ativo": not current.get("ativo", True), "atualizado_em": _now()})\
                .eq("id", profile_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")
            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Work schedules

    def list_work_schedules(self) -> List[WorkScheduleResponse]:
        """Active users with their work window; unset bounds get the defaults"""
        try:
            result = self.supabase.table("profiles")\
                .select("id, nome, email, telefone, hora_inicio, hora_fim, ativo")\
                .eq("ativo", True)\
                .order("nome")\
                .execute()
            schedules = []
            for profile in result.data or []:
                hora_inicio = profile.get("hora_inicio") or settings.default_work_start
                hora_fim = profile.get("hora_fim") or settings.default_work_end
                summary = format_work_schedule(hora_inicio, hora_fim)
                schedules.append(WorkScheduleResponse(
                    **{**profile, "hora_inicio": hora_inicio, "hora_fim": hora_fim},
                    display=summary["display"],
                    hours=summary["hours"],
                ))
            return schedules
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_schedule_field(self, profile_id: str, update: WorkScheduleFieldUpdate) -> ProfileResponse:
        return self.update_profile(profile_id, ProfileUpdate(**{update.field: update.value}))

    def save_schedules(self, bulk: WorkScheduleBulkUpdate) -> int:
        """Save every schedule; stops at the first failure"""
        try:
            saved = 0
            for entry in bulk.schedules:
                self.supabase.table("profiles")\
                    .update({"hora_inicio": entry.hora_inicio, "hora_fim": entry.hora_fim, "atualizado_em": _now()})\
                    .eq("id", entry.id)\
                    .execute()
                saved += 1
            return saved
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
