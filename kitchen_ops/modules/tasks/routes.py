from datetime import date
from fastapi import APIRouter, BackgroundTasks, Depends
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.tasks.schemas import (
    TaskCreate, TaskUpdate, TaskMove, TaskResponse, TaskWithSubtasksResponse, TaskStatus,
    TaskPriority, KanbanBoard, AssignableUser, CommentCreate, CommentUpdate, CommentResponse
)
from kitchen_ops.modules.tasks.service import TaskService
from kitchen_ops.modules.tasks.assignment import notify_task_assignment
from kitchen_ops.modules.reminders.routes import get_reminder_service
from kitchen_ops.modules.reminders.service import ReminderService
from kitchen_ops.modules.whatsapp.routes import get_whatsapp_service
from kitchen_ops.modules.whatsapp.service import WhatsAppService
from kitchen_ops.core.dependencies import (
    require_permission, get_current_user_id, get_access_cache,
    get_kitchens_with_permission, check_project_access, check_task_access
)
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/tasks", tags=["tasks"])


def get_task_service(supabase: Client = Depends(get_supabase)) -> TaskService:
    return TaskService(supabase)


def _readable_project_ids(user_data: Dict, service: TaskService, supabase: Client, cache: Dict) -> Optional[List[str]]:
    kitchen_ids = get_kitchens_with_permission(user_data, "tasks:read", supabase, cache)
    return service.project_ids_for_kitchens(kitchen_ids)


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    project_id: Optional[str] = None,
    status: Optional[TaskStatus] = None,
    prioridade: Optional[TaskPriority] = None,
    responsavel_id: Optional[str] = None,
    search: Optional[str] = None,
    prazo_inicio: Optional[date] = None,
    prazo_fim: Optional[date] = None,
    user_data: Dict = Depends(require_permission("tasks:read")),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    """List tasks of the projects the user can read"""
    return service.list_tasks(
        _readable_project_ids(user_data, service, supabase, cache),
        project_id=project_id,
        status=status,
        prioridade=prioridade,
        responsavel_id=responsavel_id,
        search=search,
        prazo_inicio=prazo_inicio,
        prazo_fim=prazo_fim
    )


@router.get("/kanban", response_model=KanbanBoard)
async def get_kanban(
    project_id: Optional[str] = None,
    responsavel_id: Optional[str] = None,
    prioridade: Optional[TaskPriority] = None,
    user_data: Dict = Depends(require_permission("tasks:read")),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    """Tasks grouped by status column"""
    return service.get_kanban(
        _readable_project_ids(user_data, service, supabase, cache),
        project_id=project_id,
        responsavel_id=responsavel_id,
        prioridade=prioridade
    )


@router.get("/assignable-users", response_model=List[AssignableUser])
async def get_assignable_users(
    project_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    """Active members of the project's kitchen"""
    project = check_project_access(project_id, user_data, supabase, "tasks:read", cache)
    return service.get_assignable_users(project["kitchen_id"])


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    task_data: TaskCreate,
    background_tasks: BackgroundTasks,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    whatsapp: WhatsAppService = Depends(get_whatsapp_service),
    reminders: ReminderService = Depends(get_reminder_service),
    supabase: Client = Depends(get_supabase)
):
    """Create a task; an assignee gets the delegation message and reminders"""
    project = check_project_access(task_data.project_id, user_data, supabase, "tasks:create", cache)
    if task_data.responsavel_id:
        check_project_access(task_data.project_id, user_data, supabase, "tasks:assign", cache, project=project)
    task = service.create_task(task_data, user_data["id"])
    if task.responsavel_id:
        background_tasks.add_task(
            notify_task_assignment, task.model_dump(mode="json"), user_data["id"], whatsapp, reminders
        )
    return task


@router.get("/{task_id}", response_model=TaskWithSubtasksResponse)
async def get_task(
    task_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    check_task_access(task_id, user_data, supabase, "tasks:read", cache)
    return service.get_task(task_id)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    background_tasks: BackgroundTasks,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    whatsapp: WhatsAppService = Depends(get_whatsapp_service),
    reminders: ReminderService = Depends(get_reminder_service),
    supabase: Client = Depends(get_supabase)
):
    current = check_task_access(task_id, user_data, supabase, "tasks:update", cache)
    if task_data.responsavel_id and task_data.responsavel_id != current.get("responsavel_id"):
        check_task_access(task_id, user_data, supabase, "tasks:assign", cache)
    task, assignee_changed = service.update_task(task_id, task_data)
    if assignee_changed:
        reminders.cancel_pending_reminders(task_id)
    if assignee_changed and task.responsavel_id:
        background_tasks.add_task(
            notify_task_assignment, task.model_dump(mode="json"), user_data["id"], whatsapp, reminders
        )
    return task


@router.patch("/{task_id}/move", response_model=TaskResponse)
async def move_task(
    task_id: str,
    move: TaskMove,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    """Move a task to another kanban column"""
    check_task_access(task_id, user_data, supabase, "tasks:update", cache)
    return service.move_task(task_id, move.status)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    check_task_access(task_id, user_data, supabase, "tasks:delete", cache)
    service.delete_task(task_id)
    return None


# Comments

@router.get("/{task_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    task_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    check_task_access(task_id, user_data, supabase, "comments:read", cache)
    return service.list_comments(task_id)


@router.post("/{task_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    task_id: str,
    comment: CommentCreate,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    check_task_access(task_id, user_data, supabase, "comments:create", cache)
    return service.add_comment(task_id, comment, user_data["id"])


@router.put("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    comment: CommentUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service)
):
    return service.update_comment(comment_id, comment, user_data["id"])


@router.delete("/comments/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service)
):
    service.delete_comment(comment_id, user_data["id"])
    return None
