import httpx
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

from kitchen_ops.core.errors import ServiceError
from kitchen_ops.modules.audit.service import AuditService
from kitchen_ops.modules.whatsapp.evolution_client import (
    EvolutionClient, EvolutionAPIError, get_shared_client, normalize_phone
)
from kitchen_ops.modules.whatsapp.messages import format_task_message, DEFAULT_REMINDER_TYPE
from kitchen_ops.modules.whatsapp.schemas import TaskNotificationData

logger = logging.getLogger(__name__)

GATEWAY_HINT = "Check the Evolution API settings and the user data"


class WhatsAppService:
    def __init__(
        self,
        supabase: Client,
        evolution: Optional[EvolutionClient] = None,
        audit: Optional[AuditService] = None
    ):
        self.supabase = supabase
        self.evolution = evolution or get_shared_client()
        self.audit = audit or AuditService(supabase)

    def _get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("profiles")\
            .select("id, nome, telefone, email")\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def _get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("tasks")\
            .select("id, titulo, descricao, prioridade, prazo, projects(nome, kitchens(nome))")\
            .eq("id", task_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def send_task_notification(self, task_data: Optional[TaskNotificationData]) -> Dict[str, Any]:
        """
        Send the task message to the assignee's WhatsApp.

        A user without a phone is not an error: the result carries success False
        and the caller decides what to do.
        """
        if task_data is None or not task_data.assigned_user_id:
            raise ServiceError(400, "Task data with assignedUserId is required")

        profile = self._get_profile(task_data.assigned_user_id)
        if not profile:
            raise ServiceError(404, "User not found")

        if not profile.get("telefone"):
            logger.info(f"User {task_data.assigned_user_id} has no phone number, skipping WhatsApp")
            return {
                "success": False,
                "message": "User has no phone number registered",
                "userEmail": profile.get("email"),
            }

        instance = self.evolution.find_active_instance()
        phone_number = normalize_phone(profile["telefone"])
        reminder_type = task_data.reminder_type or DEFAULT_REMINDER_TYPE
        message = format_task_message(
            task_title=task_data.task_title,
            project_name=task_data.project_name,
            priority=task_data.priority,
            assigned_by_name=task_data.assigned_by_name,
            reminder_type=reminder_type,
            deadline=task_data.deadline,
            task_description=task_data.task_description,
        )

        try:
            evolution_result = self.evolution.send_text(instance, phone_number, message)
        except EvolutionAPIError as e:
            logger.error(f"Evolution API rejected message to {phone_number}: {e}")
            if e.status_code == 401:
                raise ServiceError(
                    401,
                    "Invalid or expired API key. Check the Evolution API settings.",
                    details="401 Unauthorized: the API key is not valid or lacks the required permissions.",
                )
            raise ServiceError(500, str(e), details=GATEWAY_HINT)
        except httpx.HTTPError as e:
            logger.error(f"Evolution API request failed: {e}")
            raise ServiceError(500, f"Evolution API request failed: {e}", details=GATEWAY_HINT)

        message_id = (evolution_result.get("key") or {}).get("id") if isinstance(evolution_result, dict) else None
        if not message_id:
            logger.error(f"Invalid Evolution API response: {evolution_result}")
            raise ServiceError(500, "Invalid response from Evolution API", details=GATEWAY_HINT)

        config_used = {"apiUrl": self.evolution.api_url, "instance": instance}
        self.audit.log(
            recurso="whatsapp_notification",
            acao=task_data.reminder_type or "task_assigned",
            user_id=task_data.assigned_user_id,
            recurso_id=task_data.task_id,
            payload={
                "message_id": message_id,
                "phone_number": phone_number,
                "task_title": task_data.task_title,
                "project_name": task_data.project_name,
                "reminder_type": reminder_type,
                "instance_used": instance,
                "evolution_response": evolution_result,
                "config_used": {"api_url": self.evolution.api_url, "instance": instance},
            },
        )
        logger.info(f"WhatsApp {reminder_type} sent to {phone_number} (message {message_id})")

        return {
            "success": True,
            "message": "WhatsApp message sent via Evolution API",
            "messageId": message_id,
            "phoneNumber": phone_number,
            "reminderType": reminder_type,
            "instanceUsed": instance,
            "configUsed": config_used,
            "evolutionResponse": evolution_result,
        }

    def send_manual_notification(
        self,
        task_id: Optional[str],
        assigned_user_id: Optional[str],
        assigned_by_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Send the delegation message for an existing task"""
        if not task_id or not assigned_user_id:
            raise ServiceError(400, "taskId and assignedUserId are required")

        task = self._get_task(task_id)
        if not task:
            raise ServiceError(404, "Task not found")

        task_data = TaskNotificationData(
            task_id=task["id"],
            task_title=task.get("titulo") or "Tarefa",
            task_description=task.get("descricao"),
            project_name=(task.get("projects") or {}).get("nome") or "Projeto",
            priority=task.get("prioridade") or "MEDIA",
            deadline=task.get("prazo"),
            assigned_user_id=assigned_user_id,
            assigned_by_name=assigned_by_name or "Sistema",
            reminder_type="DELEGACAO",
        )
        try:
            result = self.send_task_notification(task_data)
        except ServiceError as e:
            raise ServiceError(500, e.error, details=e.details)

        return {
            "success": result["success"],
            "message": "WhatsApp message sent" if result["success"] else result.get("message"),
            "whatsappResult": result,
        }

    def send_test_message(self, user_id: Optional[str]) -> Dict[str, Any]:
        """Send a fixed test message to a user"""
        if not user_id:
            raise ServiceError(400, "userId is required")

        profile = self._get_profile(user_id)
        if not profile:
            raise ServiceError(404, "User not found")
        if not profile.get("telefone"):
            raise ServiceError(400, "Phone number not configured")

        now = datetime.now(timezone.utc)
        task_data = TaskNotificationData(
            task_id=f"test-{int(now.timestamp() * 1000)}",
            task_title="🧪 Teste de Notificação WhatsApp",
            task_description=(
                "Esta é uma mensagem de teste para verificar se as notificações WhatsApp "
                "estão funcionando corretamente via Evolution API."
            ),
            project_name="Sistema de Testes",
            priority="MEDIA",
            deadline=(now + timedelta(days=7)).isoformat(),
            assigned_user_id=user_id,
            assigned_by_name="Sistema de Notificações",
        )
        try:
            result = self.send_task_notification(task_data)
        except ServiceError as e:
            raise ServiceError(500, e.error, details="Check the Evolution API and Supabase settings")

        return {
            "success": True,
            "message": "Test message sent via Evolution API",
            "details": result,
        }

    def send_test_notification(self, task_id: Optional[str], user_id: Optional[str]) -> Dict[str, Any]:
        """Send a real task's delegation message to a chosen user and audit the outcome"""
        task = self._get_task(task_id) if task_id else None
        if not task:
            raise ServiceError(404, "Task not found")

        profile = self._get_profile(user_id) if user_id else None
        if not profile:
            raise ServiceError(404, "User not found")

        if not profile.get("telefone"):
            raise ServiceError(
                400,
                "User has no phone number registered",
                extra={"userInfo": {"nome": profile.get("nome"), "email": profile.get("email")}},
            )

        task_data = TaskNotificationData(
            task_id=task["id"],
            task_title=task.get("titulo") or "Tarefa",
            task_description=task.get("descricao") or "Teste de notificação",
            project_name=(task.get("projects") or {}).get("nome") or "Projeto Teste",
            priority=task.get("prioridade") or "MEDIA",
            deadline=task.get("prazo"),
            assigned_user_id=user_id,
            assigned_by_name="Sistema de Teste",
            reminder_type="DELEGACAO",
        )
        try:
            whatsapp_result = self.send_task_notification(task_data)
        except ServiceError as e:
            whatsapp_result = e.to_dict()

        succeeded = bool(whatsapp_result.get("success"))
        self.audit.log(
            recurso="test_notification",
            acao="test_success" if succeeded else "test_failed",
            user_id=user_id,
            recurso_id=task_id,
            payload={
                "task_title": task.get("titulo"),
                "user_name": profile.get("nome"),
                "phone": profile.get("telefone"),
                "whatsapp_result": whatsapp_result,
                "test_time": datetime.now(timezone.utc).isoformat(),
            },
        )

        if not succeeded:
            raise ServiceError(
                500,
                whatsapp_result.get("error") or whatsapp_result.get("message") or "WhatsApp send failed",
                details=whatsapp_result,
            )
        return {
            "success": True,
            "message": f"Test notification sent to {profile.get('nome')}",
            "taskTitle": task.get("titulo"),
            "userName": profile.get("nome"),
            "phone": profile.get("telefone"),
            "whatsappResult": whatsapp_result,
        }

    def list_test_tasks(self) -> List[Dict[str, Any]]:
        """The 10 most recent tasks that have an assignee"""
        try:
            result = self.supabase.table("tasks")\
                .select("id, titulo, prioridade, responsavel_id, responsavel:profiles!tasks_responsavel_id_fkey(nome, telefone, email)")\
                .not_.is_("responsavel_id", "null")\
                .order("criado_em", desc=True)\
                .limit(10)\
                .execute()
            return result.data or []
        except Exception as e:
            raise ServiceError(500, str(e))

    def check_connection(self) -> Dict[str, Any]:
        """List gateway instances with their connection state"""
        try:
            instances = self.evolution.list_instances()
        except EvolutionAPIError as e:
            raise ServiceError(e.status_code if e.status_code == 401 else 502, str(e), details=GATEWAY_HINT)
        except httpx.HTTPError as e:
            raise ServiceError(502, f"Evolution API request failed: {e}", details=GATEWAY_HINT)
        return {
            "success": True,
            "apiUrl": self.evolution.api_url,
            "configuredInstance": self.evolution.default_instance,
            "instances": instances,
        }
