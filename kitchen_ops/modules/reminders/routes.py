import asyncio
import secrets
from fastapi import APIRouter, Depends, Header, Query
from kitchen_ops.config import settings
from kitchen_ops.core.errors import ServiceError
from kitchen_ops.database.supabase_client import get_service_supabase
from kitchen_ops.modules.reminders.calculator import calculate_reminder_times
from kitchen_ops.modules.reminders.schemas import (
    PrioritySetting, ReminderSettingsUpdate, ReminderPreview, ProcessResult
)
from kitchen_ops.modules.reminders.service import ReminderService
from kitchen_ops.modules.whatsapp.routes import get_whatsapp_service
from kitchen_ops.modules.whatsapp.service import WhatsAppService
from kitchen_ops.core.dependencies import require_permission, require_admin
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/reminders", tags=["reminders"])


def get_reminder_service(
    supabase: Client = Depends(get_service_supabase),
    whatsapp: WhatsAppService = Depends(get_whatsapp_service)
) -> ReminderService:
    return ReminderService(supabase, whatsapp=whatsapp)


def verify_cron_secret(x_cron_secret: Optional[str] = Header(None)):
    """Endpoints called by an external cron carry X-Cron-Secret when a secret is configured"""
    expected = settings.reminder_cron_secret
    if expected and not (x_cron_secret and secrets.compare_digest(x_cron_secret, expected)):
        raise ServiceError(401, "Invalid cron secret")


@router.post("/process", response_model=ProcessResult, dependencies=[Depends(verify_cron_secret)])
async def process_reminders(service: ReminderService = Depends(get_reminder_service)):
    """Dispatch due reminders (cron entry point)"""
    return await asyncio.to_thread(service.process_due_reminders)


@router.get("/process", dependencies=[Depends(verify_cron_secret)])
async def reminders_status(service: ReminderService = Depends(get_reminder_service)):
    """Pending (due) and future unsent reminders"""
    return {"success": True, "status": service.get_status()}


@router.post("/trigger")
async def trigger_reminders(
    user_data: Dict = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service)
):
    """Dispatch due reminders now (ADMIN)"""
    result = await asyncio.to_thread(service.process_due_reminders)
    return {"success": True, "message": "Reminders processed", "result": result}


@router.get("/trigger")
async def trigger_status(
    user_data: Dict = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service)
):
    return {"success": True, "status": service.get_status()}


@router.get("/settings", response_model=Dict[str, PrioritySetting])
async def get_reminder_settings(
    user_data: Dict = Depends(require_permission("reminders:read")),
    service: ReminderService = Depends(get_reminder_service)
):
    """Reminder frequency per task priority"""
    return service.get_settings()


@router.put("/settings", response_model=Dict[str, PrioritySetting])
async def update_reminder_settings(
    body: ReminderSettingsUpdate,
    user_data: Dict = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service)
):
    return service.update_settings(body)


@router.get("/preview", response_model=ReminderPreview)
async def preview_reminder_times(
    inicio: str = Query(settings.default_work_start),
    fim: str = Query(settings.default_work_end),
    frequency: int = Query(3, ge=1, le=3),
    user_data: Dict = Depends(require_permission("reminders:read"))
):
    """Reminder times for a work window and frequency"""
    return ReminderPreview(
        inicio=inicio, fim=fim, frequency=frequency,
        times=calculate_reminder_times(inicio, fim, frequency)
    )
