from datetime import date, datetime, timezone
from supabase import Client
from kitchen_ops.modules.projects.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse, ProjectWithTasksResponse, ProjectStatus
)
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _to_response(row: Dict[str, Any], cls=ProjectResponse, **extra) -> ProjectResponse:
    kitchen = row.get("kitchens") or {}
    return cls(**{**row, "kitchen_nome": kitchen.get("nome"), **extra})


class ProjectService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_row(self, project_id: str) -> Dict[str, Any]:
        result = self.supabase.table("projects")\
            .select("*, kitchens(nome)")\
            .eq("id", project_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Project not found")
        return result.data

    def list_projects(
        self,
        kitchen_ids: Optional[List[str]],
        status: Optional[ProjectStatus] = None,
        kitchen_id: Optional[str] = None,
        search: Optional[str] = None
    ) -> List[ProjectResponse]:
        """Projects in the given kitchens (None means all), newest first"""
        try:
            if kitchen_ids is not None and not kitchen_ids:
                return []
            query = self.supabase.table("projects").select("*, kitchens(nome)")
            if kitchen_ids is not None:
                query = query.in_("kitchen_id", kitchen_ids)
            if kitchen_id:
                query = query.eq("kitchen_id", kitchen_id)
            if status:
                query = query.eq("status", status.value)
            if search:
                query = query.ilike("nome", f"%{search}%")
            result = query.order("criado_em", desc=True).execute()
            return [_to_response(row) for row in result.data or []]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_project(self, project_id: str) -> ProjectWithTasksResponse:
        """Project with its tasks"""
        try:
            row = self._get_row(project_id)
            tasks = self.supabase.table("tasks")\
                .select("*")\
                .eq("project_id", project_id)\
                .order("criado_em", desc=True)\
                .execute()
            task_rows = tasks.data or []
            return _to_response(row, ProjectWithTasksResponse, tasks=task_rows, task_count=len(task_rows))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_project(self, data: ProjectCreate, user_id: str) -> ProjectResponse:
        try:
            payload = data.model_dump(mode="json")
            payload["criado_por"] = user_id
            result = self.supabase.table("projects").insert(payload).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create project")
            logger.info(f"Project {result.data[0]['id']} created in kitchen {data.kitchen_id}")
            return _to_response(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_project(self, project_id: str, data: ProjectUpdate) -> ProjectResponse:
        try:
            current = self._get_row(project_id)
            update_data = data.model_dump(mode="json", exclude_none=True)
            if not update_data:
                return _to_response(current)

            inicio = update_data.get("inicio_previsto", current.get("inicio_previsto"))
            fim = update_data.get("fim_previsto", current.get("fim_previsto"))
            if inicio and fim and date.fromisoformat(str(inicio)[:10]) > date.fromisoformat(str(fim)[:10]):
                raise HTTPException(status_code=400, detail="fim_previsto must be on or after inicio_previsto")

            update_data["atualizado_em"] = datetime.now(timezone.utc).isoformat()
            result = self.supabase.table("projects")\
                .update(update_data)\
                .eq("id", project_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Project not found")
            return _to_response(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_project(self, project_id: str) -> bool:
        try:
            self._get_row(project_id)
            self.supabase.table("projects")\
                .delete()\
                .eq("id", project_id)\
                .execute()
            logger.info(f"Project {project_id} deleted")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
