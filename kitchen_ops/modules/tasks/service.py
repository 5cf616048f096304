from datetime import date, datetime, timezone
from supabase import Client
from kitchen_ops.modules.tasks.schemas import (
    TaskCreate, TaskUpdate, TaskResponse, TaskWithSubtasksResponse, TaskStatus,
    TaskPriority, KanbanBoard, KanbanColumn, AssignableUser, TASK_STATUS_LABELS,
    CommentCreate, CommentUpdate, CommentResponse
)
from typing import List, Optional, Dict, Any, Tuple
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

KANBAN_COLUMN_LIMIT = 50

TASK_SELECT = (
    "*, responsavel:profiles!tasks_responsavel_id_fkey(id, nome, email, telefone), "
    "projects(nome, kitchen_id)"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_task(row: Dict[str, Any], cls=TaskResponse, **extra) -> TaskResponse:
    project = row.get("projects") or {}
    return cls(**{**row, "project_nome": project.get("nome"), **extra})


class TaskService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_row(self, task_id: str) -> Dict[str, Any]:
        result = self.supabase.table("tasks")\
            .select(TASK_SELECT)\
            .eq("id", task_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Task not found")
        return result.data

    def project_ids_for_kitchens(self, kitchen_ids: Optional[List[str]]) -> Optional[List[str]]:
        """None passes through (unrestricted)"""
        if kitchen_ids is None:
            return None
        if not kitchen_ids:
            return []
        result = self.supabase.table("projects")\
            .select("id")\
            .in_("kitchen_id", kitchen_ids)\
            .execute()
        return [p["id"] for p in result.data or []]

    def list_tasks(
        self,
        project_ids: Optional[List[str]],
        project_id: Optional[str] = None,
        status: Optional[TaskStatus] = None,
        prioridade: Optional[TaskPriority] = None,
        responsavel_id: Optional[str] = None,
        search: Optional[str] = None,
        prazo_inicio: Optional[date] = None,
        prazo_fim: Optional[date] = None
    ) -> List[TaskResponse]:
        try:
            if project_ids is not None and not project_ids:
                return []
            query = self.supabase.table("tasks").select(TASK_SELECT)
            if project_ids is not None:
                query = query.in_("project_id", project_ids)
            if project_id:
                query = query.eq("project_id", project_id)
            if status:
                query = query.eq("status", status.value)
            if prioridade:
                query = query.eq("prioridade", prioridade.value)
            if responsavel_id:
                query = query.eq("responsavel_id", responsavel_id)
            if search:
                query = query.ilike("titulo", f"%{search}%")
            if prazo_inicio:
                query = query.gte("prazo", prazo_inicio.isoformat())
            if prazo_fim:
                query = query.lte("prazo", prazo_fim.isoformat())
            result = query.order("criado_em", desc=True).execute()
            return [_to_task(row) for row in result.data or []]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_task(self, task_id: str) -> TaskWithSubtasksResponse:
        """Task with its subtasks"""
        try:
            row = self._get_row(task_id)
            subtasks = self.supabase.table("tasks")\
                .select(TASK_SELECT)\
                .eq("parent_task_id", task_id)\
                .order("criado_em")\
                .execute()
            return _to_task(row, TaskWithSubtasksResponse, subtasks=[_to_task(s) for s in subtasks.data or []])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_task(self, data: TaskCreate, user_id: str) -> TaskResponse:
        try:
            payload = data.model_dump(mode="json")
            payload["criado_por"] = user_id
            result = self.supabase.table("tasks").insert(payload).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create task")
            task_id = result.data[0]["id"]
            logger.info(f"Task {task_id} created in project {data.project_id}")
            return _to_task(self._get_row(task_id))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_task(self, task_id: str, data: TaskUpdate) -> Tuple[TaskResponse, bool]:
        """Returns the updated task and whether responsavel_id changed (including being cleared)"""
        try:
            current = self._get_row(task_id)
            update_data = data.model_dump(mode="json", exclude_unset=True)
            if not update_data:
                return _to_task(current), False
            update_data["atualizado_em"] = _now()
            result = self.supabase.table("tasks")\
                .update(update_data)\
                .eq("id", task_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Task not found")
            assignee_changed = "responsavel_id" in update_data \
                and update_data["responsavel_id"] != current.get("responsavel_id")
            return _to_task(self._get_row(task_id)), assignee_changed
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def move_task(self, task_id: str, status: TaskStatus) -> TaskResponse:
        """Kanban drag and drop: status change only"""
        task, _ = self.update_task(task_id, TaskUpdate(status=status))
        return task

    def delete_task(self, task_id: str) -> bool:
        try:
            self._get_row(task_id)
            self.supabase.table("tasks")\
                .delete()\
                .eq("id", task_id)\
                .execute()
            logger.info(f"Task {task_id} deleted")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_kanban(
        self,
        project_ids: Optional[List[str]],
        project_id: Optional[str] = None,
        responsavel_id: Optional[str] = None,
        prioridade: Optional[TaskPriority] = None
    ) -> KanbanBoard:
        """One column per status with the KANBAN_COLUMN_LIMIT most recent tasks each"""
        try:
            columns = []
            for status in TaskStatus:
                tasks: List[TaskResponse] = []
                if project_ids is None or project_ids:
                    query = self.supabase.table("tasks").select(TASK_SELECT).eq("status", status.value)
                    if project_ids is not None:
                        query = query.in_("project_id", project_ids)
                    if project_id:
                        query = query.eq("project_id", project_id)
                    if responsavel_id:
                        query = query.eq("responsavel_id", responsavel_id)
                    if prioridade:
                        query = query.eq("prioridade", prioridade.value)
                    result = query.order("criado_em", desc=True).limit(KANBAN_COLUMN_LIMIT).execute()
                    tasks = [_to_task(row) for row in result.data or []]
                columns.append(KanbanColumn(id=status, title=TASK_STATUS_LABELS[status], tasks=tasks))
            return KanbanBoard(columns=columns, limit_per_column=KANBAN_COLUMN_LIMIT)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_assignable_users(self, kitchen_id: str) -> List[AssignableUser]:
        """Active profiles holding any role in the kitchen"""
        try:
            roles = self.supabase.table("user_kitchen_roles")\
                .select("user_id")\
                .eq("kitchen_id", kitchen_id)\
                .execute()
            user_ids = list({r["user_id"] for r in roles.data or []})
            if not user_ids:
                return []
            profiles = self.supabase.table("profiles")\
                .select("id, nome, email, telefone")\
                .in_("id", user_ids)\
                .eq("ativo", True)\
                .order("nome")\
                .execute()
            return [AssignableUser(**p) for p in profiles.data or []]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Comments

    def _get_comment(self, comment_id: str) -> Dict[str, Any]:
        result = self.supabase.table("task_comments")\
            .select("*")\
            .eq("id", comment_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Comment not found")
        return result.data

    def list_comments(self, task_id: str) -> List[CommentResponse]:
        """Oldest first, with author name/email"""
        try:
            result = self.supabase.table("task_comments")\
                .select("*, profiles(nome, email)")\
                .eq("task_id", task_id)\
                .order("criado_em")\
                .execute()
            return [CommentResponse(**row, author=row.get("profiles")) for row in result.data or []]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_comment(self, task_id: str, comment: CommentCreate, author_id: str) -> CommentResponse:
        try:
            result = self.supabase.table("task_comments").insert({
                "task_id": task_id,
                "author_id": author_id,
                "texto": comment.texto,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add comment")
            return CommentResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_comment(self, comment_id: str, comment: CommentUpdate, user_id: str) -> CommentResponse:
        """Only the author can edit"""
        try:
            current = self._get_comment(comment_id)
            if current["author_id"] != user_id:
                raise HTTPException(status_code=403, detail="Only the author can edit this comment")
            result = self.supabase.table("task_comments")\
                .update({"texto": comment.texto})\
                .eq("id", comment_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Comment not found")
            return CommentResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_comment(self, comment_id: str, user_id: str) -> bool:
        """Only the author can delete"""
        try:
            current = self._get_comment(comment_id)
            if current["author_id"] != user_id:
                raise HTTPException(status_code=403, detail="Only the author can delete this comment")
            self.supabase.table("task_comments")\
                .delete()\
                .eq("id", comment_id)\
                .execute()
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
