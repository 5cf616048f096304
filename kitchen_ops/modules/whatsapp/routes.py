from fastapi import APIRouter, Depends
from kitchen_ops.database.supabase_client import get_service_supabase
from kitchen_ops.modules.whatsapp.evolution_client import EvolutionClient, get_shared_client
from kitchen_ops.modules.whatsapp.schemas import (
    SendNotificationRequest, ManualNotificationRequest,
    SendTestMessageRequest, SendTestNotificationRequest
)
from kitchen_ops.modules.whatsapp.service import WhatsAppService
from kitchen_ops.core.dependencies import require_permission
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])


def get_evolution_client() -> EvolutionClient:
    return get_shared_client()


def get_whatsapp_service(
    supabase: Client = Depends(get_service_supabase),
    evolution: EvolutionClient = Depends(get_evolution_client)
) -> WhatsAppService:
    return WhatsAppService(supabase, evolution)


@router.post("/send")
async def send_notification(
    body: SendNotificationRequest,
    user_data: Dict = Depends(require_permission("whatsapp:send")),
    service: WhatsAppService = Depends(get_whatsapp_service)
):
    """Send a task notification. A user without phone answers 200 with success false."""
    return service.send_task_notification(body.task_data)


@router.post("/manual")
async def send_manual_notification(
    body: ManualNotificationRequest,
    user_data: Dict = Depends(require_permission("whatsapp:send")),
    service: WhatsAppService = Depends(get_whatsapp_service)
):
    """Send the delegation message of an existing task"""
    return service.send_manual_notification(body.task_id, body.assigned_user_id, body.assigned_by_name)


@router.post("/test")
async def send_test_message(
    body: SendTestMessageRequest,
    user_data: Dict = Depends(require_permission("whatsapp:test")),
    service: WhatsAppService = Depends(get_whatsapp_service)
):
    """Send a fixed test message to a user"""
    return service.send_test_message(body.user_id)


@router.post("/test-notification")
async def send_test_notification(
    body: SendTestNotificationRequest,
    user_data: Dict = Depends(require_permission("whatsapp:test")),
    service: WhatsAppService = Depends(get_whatsapp_service)
):
    """Send a task's notification to a user and record the outcome in the audit log"""
    return service.send_test_notification(body.task_id, body.user_id)


@router.get("/test-notification")
async def list_test_tasks(
    user_data: Dict = Depends(require_permission("whatsapp:test")),
    service: WhatsAppService = Depends(get_whatsapp_service)
):
    """Tasks available for a test notification"""
    return {"success": True, "tasks": service.list_test_tasks()}


@router.get("/instances")
async def check_connection(
    user_data: Dict = Depends(require_permission("whatsapp:test")),
    service: WhatsAppService = Depends(get_whatsapp_service)
):
    """Connection test: gateway instances and their state"""
    return service.check_connection()
