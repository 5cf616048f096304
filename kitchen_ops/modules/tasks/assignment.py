import logging
from typing import Any, Dict, Optional

from kitchen_ops.core.errors import ServiceError
from kitchen_ops.modules.reminders.service import ReminderService
from kitchen_ops.modules.whatsapp.schemas import TaskNotificationData
from kitchen_ops.modules.whatsapp.service import WhatsAppService

logger = logging.getLogger(__name__)


def _profile(whatsapp: WhatsAppService, user_id: str, columns: str) -> Optional[Dict[str, Any]]:
    result = whatsapp.supabase.table("profiles")\
        .select(columns)\
        .eq("id", user_id)\
        .maybe_single()\
        .execute()
    return result.data if result else None


def _project_name(whatsapp: WhatsAppService, task: Dict[str, Any]) -> Optional[str]:
    if task.get("project_nome"):
        return task["project_nome"]
    if not task.get("project_id"):
        return None
    result = whatsapp.supabase.table("projects")\
        .select("nome")\
        .eq("id", task["project_id"])\
        .maybe_single()\
        .execute()
    return result.data.get("nome") if result and result.data else None


def notify_task_assignment(
    task: Dict[str, Any],
    assigned_by_id: str,
    whatsapp: WhatsAppService,
    reminders: ReminderService
) -> Dict[str, Any]:
    """
    Background job run after a task gets a new assignee.

    Sends the delegation WhatsApp message, schedules the workday reminders
    and writes the task_assignment/assigned audit row. Failures are logged;
    the task itself is already saved.
    """
    task_id = task["id"]
    assignee_id = task["responsavel_id"]
    outcome: Dict[str, Any] = {"notification": None, "reminders": 0}

    try:
        assigner = _profile(whatsapp, assigned_by_id, "nome") or {}
        assignee = _profile(whatsapp, assignee_id, "id, nome, telefone, hora_inicio, hora_fim")
        if not assignee:
            logger.warning(f"Assignee {assignee_id} of task {task_id} has no profile")
            return outcome

        try:
            outcome["notification"] = whatsapp.send_task_notification(TaskNotificationData(
                task_id=task_id,
                task_title=task.get("titulo") or "Tarefa",
                task_description=task.get("descricao"),
                project_name=_project_name(whatsapp, task) or "Projeto",
                priority=task.get("prioridade") or "MEDIA",
                deadline=task.get("prazo"),
                assigned_user_id=assignee_id,
                assigned_by_name=assigner.get("nome") or "Sistema",
                reminder_type="DELEGACAO",
            ))
        except ServiceError as e:
            logger.error(f"Delegation message for task {task_id} failed: {e.error}")
            outcome["notification"] = e.to_dict()

        outcome["reminders"] = len(reminders.schedule_task_reminders(task, assignee))

        reminders.audit.log(
            recurso="task_assignment",
            acao="assigned",
            user_id=assigned_by_id,
            recurso_id=task_id,
            payload={
                "assigned_user_id": assignee_id,
                "task_title": task.get("titulo"),
                "notification_sent": bool((outcome["notification"] or {}).get("success")),
                "reminders_scheduled": outcome["reminders"],
            },
        )
    except Exception as e:
        logger.error(f"Error processing assignment of task {task_id}: {e}")
    return outcome
