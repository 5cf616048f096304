import math
from datetime import date, datetime, timezone
from supabase import Client
from kitchen_ops.modules.projects.schemas import ProjectStatus
from kitchen_ops.modules.tasks.schemas import TaskPriority, TaskStatus
from kitchen_ops.modules.reports.schemas import (
    DashboardStats, ProjectStats, KitchenStats, PerformanceReport
)
from typing import List, Optional, Dict, Any, Iterable
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def percentage(part: int, total: int) -> int:
    """Whole percentage rounded half up, 0 when total is 0"""
    if not total:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


def is_overdue(task: Dict[str, Any], today: date) -> bool:
    prazo = task.get("prazo")
    if not prazo or task.get("status") == TaskStatus.CONCLUIDA.value:
        return False
    try:
        return date.fromisoformat(str(prazo)[:10]) < today
    except ValueError:
        return False


def count_by(tasks: Iterable[Dict[str, Any]], field: str, keys: Iterable[str]) -> Dict[str, int]:
    counts = {key: 0 for key in keys}
    for task in tasks:
        if task.get(field) in counts:
            counts[task[field]] += 1
    return counts


class ReportService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _projects(self, kitchen_ids: Optional[List[str]], kitchen_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if kitchen_ids is not None and not kitchen_ids:
            return []
        query = self.supabase.table("projects").select("id, nome, status, kitchen_id")
        if kitchen_ids is not None:
            query = query.in_("kitchen_id", kitchen_ids)
        if kitchen_id:
            query = query.eq("kitchen_id", kitchen_id)
        return query.order("nome").execute().data or []

    def _tasks(
        self,
        project_ids: List[str],
        data_inicio: Optional[date] = None,
        data_fim: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """Tasks of the projects created inside the date range"""
        if not project_ids:
            return []
        query = self.supabase.table("tasks")\
            .select("id, project_id, status, prioridade, prazo, criado_em")\
            .in_("project_id", project_ids)
        if data_inicio:
            query = query.gte("criado_em", f"{data_inicio.isoformat()}T00:00:00")
        if data_fim:
            query = query.lte("criado_em", f"{data_fim.isoformat()}T23:59:59")
        return query.execute().data or []

    def get_dashboard(self, user_id: str, kitchen_ids: Optional[List[str]], now: Optional[datetime] = None) -> DashboardStats:
        """Counters for the home dashboard. kitchen_ids None means every kitchen."""
        now = now or datetime.now(timezone.utc)
        try:
            stats = DashboardStats(generated_at=now)
            if kitchen_ids is None or kitchen_ids:
                kitchens = self.supabase.table("kitchens").select("id", count="exact").eq("ativo", True)
                assistants = self.supabase.table("kitchen_assistants").select("id", count="exact").eq("ativo", True)
                if kitchen_ids is not None:
                    kitchens = kitchens.in_("id", kitchen_ids)
                    assistants = assistants.in_("kitchen_id", kitchen_ids)
                stats.kitchens = kitchens.execute().count or 0
                stats.active_assistants = assistants.execute().count or 0

                projects = self._projects(kitchen_ids)
                stats.active_projects = sum(1 for p in projects if p.get("status") == ProjectStatus.ATIVO.value)
                stats.paused_projects = sum(1 for p in projects if p.get("status") == ProjectStatus.PAUSADO.value)
                tasks = self._tasks([p["id"] for p in projects])
                stats.tasks = len(tasks)
                stats.completed_tasks = sum(1 for t in tasks if t.get("status") == TaskStatus.CONCLUIDA.value)

            reminders = self.supabase.table("task_reminders")\
                .select("id", count="exact")\
                .eq("user_id", user_id)\
                .eq("sent", False)\
                .lte("scheduled_time", now.isoformat())\
                .execute()
            stats.pending_reminders = reminders.count or 0
            return stats
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_project_stats(
        self,
        kitchen_ids: Optional[List[str]],
        kitchen_id: Optional[str] = None,
        data_inicio: Optional[date] = None,
        data_fim: Optional[date] = None,
        today: Optional[date] = None
    ) -> List[ProjectStats]:
        today = today or date.today()
        try:
            projects = self._projects(kitchen_ids, kitchen_id)
            tasks = self._tasks([p["id"] for p in projects], data_inicio, data_fim)
            by_project: Dict[str, List[Dict[str, Any]]] = {}
            for task in tasks:
                by_project.setdefault(task["project_id"], []).append(task)

            report = []
            for project in projects:
                project_tasks = by_project.get(project["id"], [])
                by_status = count_by(project_tasks, "status", [s.value for s in TaskStatus])
                total = len(project_tasks)
                completed = by_status[TaskStatus.CONCLUIDA.value]
                report.append(ProjectStats(
                    project_id=project["id"],
                    project_nome=project["nome"],
                    kitchen_id=project.get("kitchen_id"),
                    total_tasks=total,
                    completed_tasks=completed,
                    in_progress_tasks=by_status[TaskStatus.EM_ANDAMENTO.value],
                    overdue_tasks=sum(1 for t in project_tasks if is_overdue(t, today)),
                    by_status=by_status,
                    by_priority=count_by(project_tasks, "prioridade", [p.value for p in TaskPriority]),
                    completion_rate=percentage(completed, total),
                ))
            return report
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_kitchen_stats(
        self,
        kitchen_ids: Optional[List[str]],
        data_inicio: Optional[date] = None,
        data_fim: Optional[date] = None,
        today: Optional[date] = None
    ) -> List[KitchenStats]:
        today = today or date.today()
        try:
            if kitchen_ids is not None and not kitchen_ids:
                return []
            query = self.supabase.table("kitchens").select("id, nome")
            if kitchen_ids is not None:
                query = query.in_("id", kitchen_ids)
            kitchens = query.order("nome").execute().data or []

            projects = self._projects([k["id"] for k in kitchens])
            kitchen_of = {p["id"]: p["kitchen_id"] for p in projects}
            tasks = self._tasks(list(kitchen_of.keys()), data_inicio, data_fim)

            report = []
            for kitchen in kitchens:
                kitchen_projects = [p for p in projects if p["kitchen_id"] == kitchen["id"]]
                kitchen_tasks = [t for t in tasks if kitchen_of.get(t["project_id"]) == kitchen["id"]]
                completed = sum(1 for t in kitchen_tasks if t.get("status") == TaskStatus.CONCLUIDA.value)
                report.append(KitchenStats(
                    kitchen_id=kitchen["id"],
                    kitchen_nome=kitchen["nome"],
                    total_projects=len(kitchen_projects),
                    active_projects=sum(1 for p in kitchen_projects if p.get("status") == ProjectStatus.ATIVO.value),
                    total_tasks=len(kitchen_tasks),
                    completed_tasks=completed,
                    overdue_tasks=sum(1 for t in kitchen_tasks if is_overdue(t, today)),
                    completion_rate=percentage(completed, len(kitchen_tasks)),
                ))
            return report
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_performance(
        self,
        kitchen_ids: Optional[List[str]],
        kitchen_id: Optional[str] = None,
        data_inicio: Optional[date] = None,
        data_fim: Optional[date] = None,
        today: Optional[date] = None
    ) -> PerformanceReport:
        """Totals over the tasks created in the date range"""
        today = today or date.today()
        try:
            projects = self._projects(kitchen_ids, kitchen_id)
            tasks = self._tasks([p["id"] for p in projects], data_inicio, data_fim)
            by_status = count_by(tasks, "status", [s.value for s in TaskStatus])
            total = len(tasks)
            completed = by_status[TaskStatus.CONCLUIDA.value]
            overdue = sum(1 for t in tasks if is_overdue(t, today))
            return PerformanceReport(
                data_inicio=data_inicio,
                data_fim=data_fim,
                total_tasks=total,
                completed_tasks=completed,
                overdue_tasks=overdue,
                by_priority=count_by(tasks, "prioridade", [p.value for p in TaskPriority]),
                by_status=by_status,
                completion_rate=percentage(completed, total),
                overdue_rate=percentage(overdue, total),
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
