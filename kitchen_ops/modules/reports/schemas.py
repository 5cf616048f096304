from pydantic import BaseModel
from typing import Dict, Optional
from datetime import date, datetime


class DashboardStats(BaseModel):
    kitchens: int = 0
    active_projects: int = 0
    paused_projects: int = 0
    tasks: int = 0
    completed_tasks: int = 0
    pending_reminders: int = 0
    active_assistants: int = 0
    generated_at: datetime


class ProjectStats(BaseModel):
    project_id: str
    project_nome: str
    kitchen_id: Optional[str] = None
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0
    overdue_tasks: int = 0
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    completion_rate: int = 0


class KitchenStats(BaseModel):
    kitchen_id: str
    kitchen_nome: str
    total_projects: int = 0
    active_projects: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    completion_rate: int = 0


class PerformanceReport(BaseModel):
    data_inicio: Optional[date] = None
    data_fim: Optional[date] = None
    total_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    by_priority: Dict[str, int]
    by_status: Dict[str, int]
    completion_rate: int = 0
    overdue_rate: int = 0
