import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from supabase import Client

from kitchen_ops.config import settings
from kitchen_ops.core.errors import ServiceError
from kitchen_ops.modules.audit.service import AuditService
from kitchen_ops.modules.reminders.calculator import (
    calculate_reminder_times, parse_time, SLOT_REMINDER_TYPES
)
from kitchen_ops.modules.reminders.schemas import (
    PrioritySetting, ReminderSettingsUpdate, ProcessResult, ReminderStatus
)
from kitchen_ops.modules.whatsapp.schemas import TaskNotificationData
from kitchen_ops.modules.whatsapp.service import WhatsAppService

logger = logging.getLogger(__name__)

SLOT_LABELS = ["inicio", "meio", "fim"]

DEFAULT_REMINDER_SETTINGS = {
    "ALTA": {"enabled": True, "frequency": 3},
    "MEDIA": {"enabled": True, "frequency": 2},
    "BAIXA": {"enabled": True, "frequency": 1},
}

REMINDER_SELECT = (
    "id, task_id, user_id, reminder_type, scheduled_time, "
    "tasks(id, titulo, descricao, prioridade, prazo, projects(nome)), "
    "profiles(nome, telefone, email)"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _setting(enabled: bool, frequency: int) -> PrioritySetting:
    return PrioritySetting(enabled=enabled, frequency=frequency, times=SLOT_LABELS[:frequency])


class ReminderService:
    def __init__(
        self,
        supabase: Client,
        whatsapp: Optional[WhatsAppService] = None,
        audit: Optional[AuditService] = None
    ):
        self.supabase = supabase
        self.audit = audit or AuditService(supabase)
        self._whatsapp = whatsapp

    @property
    def whatsapp(self) -> WhatsAppService:
        if self._whatsapp is None:
            self._whatsapp = WhatsAppService(self.supabase, audit=self.audit)
        return self._whatsapp

    # Settings

    def get_settings(self) -> Dict[str, PrioritySetting]:
        """Per-priority reminder settings; rows in reminder_settings override the defaults"""
        merged = {priority: dict(values) for priority, values in DEFAULT_REMINDER_SETTINGS.items()}
        try:
            result = self.supabase.table("reminder_settings").select("*").execute()
            for row in result.data or []:
                priority = row.get("prioridade")
                if priority not in merged:
                    continue
                if row.get("enabled") is not None:
                    merged[priority]["enabled"] = bool(row["enabled"])
                if row.get("frequency"):
                    merged[priority]["frequency"] = max(1, min(3, int(row["frequency"])))
        except Exception as e:
            logger.warning(f"Could not load reminder settings, using defaults: {e}")
        return {priority: _setting(**values) for priority, values in merged.items()}

    def update_settings(self, update: ReminderSettingsUpdate) -> Dict[str, PrioritySetting]:
        current = self.get_settings()
        rows = []
        for priority, change in update.model_dump(exclude_none=True).items():
            row = {
                "prioridade": priority,
                "enabled": change.get("enabled", current[priority].enabled),
                "frequency": change.get("frequency", current[priority].frequency),
                "atualizado_em": _utcnow().isoformat(),
            }
            rows.append(row)
        if rows:
            try:
                self.supabase.table("reminder_settings").upsert(rows).execute()
            except Exception as e:
                raise ServiceError(500, "Failed to save reminder settings", details=str(e))
        return self.get_settings()

    # Scheduling

    def cancel_pending_reminders(self, task_id: str) -> int:
        """Drop the unsent reminders of a task, whoever they were scheduled for"""
        result = self.supabase.table("task_reminders")\
            .delete()\
            .eq("task_id", task_id)\
            .eq("sent", False)\
            .execute()
        removed = len(result.data or []) if result else 0
        if removed:
            logger.info(f"Cancelled {removed} pending reminders of task {task_id}")
        return removed

    def schedule_task_reminders(
        self,
        task: Dict[str, Any],
        profile: Dict[str, Any],
        now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        Replace the unsent workday reminders of the task with the assignee's.

        One reminder per slot of the task priority, placed on today's date in the
        business timezone when still ahead of `now`, otherwise on the next day.
        """
        now = now or _utcnow()
        user_id = profile["id"]
        task_id = task["id"]

        self.cancel_pending_reminders(task_id)

        setting = self.get_settings().get(task.get("prioridade") or "MEDIA")
        if setting is None or not setting.enabled:
            logger.info(f"Reminders disabled for priority {task.get('prioridade')}, task {task_id}")
            return []

        inicio = profile.get("hora_inicio") or settings.default_work_start
        fim = profile.get("hora_fim") or settings.default_work_end
        times = calculate_reminder_times(inicio, fim, setting.frequency)

        tz = ZoneInfo(settings.business_timezone)
        local_now = now.astimezone(tz)
        rows = []
        for reminder_type, clock in zip(SLOT_REMINDER_TYPES, times):
            slot = parse_time(clock)
            scheduled = datetime.combine(local_now.date(), slot.time(), tzinfo=tz)
            if scheduled <= local_now:
                scheduled += timedelta(days=1)
            rows.append({
                "task_id": task_id,
                "user_id": user_id,
                "reminder_type": reminder_type,
                "scheduled_time": scheduled.astimezone(timezone.utc).isoformat(),
                "sent": False,
            })

        if not rows:
            return []
        result = self.supabase.table("task_reminders").insert(rows).execute()
        self.audit.log(
            recurso="task_reminders",
            acao="reminders_scheduled",
            user_id=user_id,
            recurso_id=task_id,
            payload={
                "task_title": task.get("titulo"),
                "priority": task.get("prioridade"),
                "times": times,
                "count": len(rows),
            },
        )
        logger.info(f"Scheduled {len(rows)} reminder(s) for task {task_id}, user {user_id}")
        return result.data or rows

    # Dispatch

    def _mark_sent(self, reminder_id: str, now: datetime):
        self.supabase.table("task_reminders")\
            .update({"sent": True, "sent_at": now.isoformat()})\
            .eq("id", reminder_id)\
            .execute()

    def process_due_reminders(self, now: Optional[datetime] = None) -> ProcessResult:
        """
        Send every unsent reminder whose time has come, at most reminder_batch_size
        per call, one after the other. Rows of users without a phone are marked
        sent so they are not picked up again.
        """
        now = now or _utcnow()
        try:
            result = self.supabase.table("task_reminders")\
                .select(REMINDER_SELECT)\
                .eq("sent", False)\
                .lte("scheduled_time", now.isoformat())\
                .order("scheduled_time")\
                .limit(settings.reminder_batch_size)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to fetch due reminders: {e}")
            raise ServiceError(500, "Failed to fetch reminders", details=str(e))

        reminders = result.data or []
        if not reminders:
            logger.debug("No pending reminders")
            return ProcessResult(success=True, message="No pending reminders")

        logger.info(f"Processing {len(reminders)} due reminder(s)")
        processed = 0
        errors = 0
        for reminder in reminders:
            task = reminder.get("tasks") or {}
            profile = reminder.get("profiles") or {}
            audit_base = {
                "recurso": "task_reminder",
                "user_id": reminder.get("user_id"),
                "recurso_id": reminder.get("task_id"),
            }
            try:
                if not profile.get("telefone"):
                    logger.info(f"User {profile.get('nome') or reminder.get('user_id')} has no phone, skipping reminder {reminder['id']}")
                    self._mark_sent(reminder["id"], now)
                    continue

                task_data = TaskNotificationData(
                    task_id=reminder.get("task_id"),
                    task_title=task.get("titulo") or "Tarefa",
                    task_description=task.get("descricao"),
                    project_name=(task.get("projects") or {}).get("nome") or "Projeto",
                    priority=task.get("prioridade") or "MEDIA",
                    deadline=task.get("prazo"),
                    assigned_user_id=reminder.get("user_id"),
                    assigned_by_name="Sistema de Lembretes",
                    reminder_type=reminder.get("reminder_type"),
                )
                try:
                    send_result = self.whatsapp.send_task_notification(task_data)
                except ServiceError as e:
                    send_result = e.to_dict()

                if send_result.get("success"):
                    self._mark_sent(reminder["id"], now)
                    self.audit.log(
                        acao="reminder_sent",
                        payload={
                            "reminder_id": reminder["id"],
                            "reminder_type": reminder.get("reminder_type"),
                            "task_title": task.get("titulo"),
                            "whatsapp_result": send_result,
                        },
                        **audit_base,
                    )
                    processed += 1
                else:
                    errors += 1
                    logger.warning(f"Reminder {reminder['id']} not delivered: {send_result}")
                    self.audit.log(
                        acao="reminder_failed",
                        payload={
                            "reminder_id": reminder["id"],
                            "reminder_type": reminder.get("reminder_type"),
                            "error": send_result.get("error") or send_result.get("message") or "Unknown error",
                        },
                        **audit_base,
                    )
            except Exception as e:
                errors += 1
                logger.error(f"Error processing reminder {reminder.get('id')}: {e}")
                self.audit.log(
                    acao="reminder_error",
                    payload={"reminder_id": reminder.get("id"), "error": str(e)},
                    **audit_base,
                )

        logger.info(f"Reminder processing finished: {processed} sent, {errors} errors")
        return ProcessResult(
            success=True,
            message="Reminders processed",
            processed=processed,
            errors=errors,
            total=len(reminders),
        )

    def get_status(self, now: Optional[datetime] = None) -> ReminderStatus:
        now = now or _utcnow()
        try:
            pending = self.supabase.table("task_reminders")\
                .select("id", count="exact")\
                .eq("sent", False)\
                .lte("scheduled_time", now.isoformat())\
                .execute()
            future = self.supabase.table("task_reminders")\
                .select("id", count="exact")\
                .eq("sent", False)\
                .gt("scheduled_time", now.isoformat())\
                .execute()
        except Exception as e:
            raise ServiceError(500, str(e))
        return ReminderStatus(
            pending_reminders=pending.count or 0,
            future_reminders=future.count or 0,
            current_time=now.isoformat(),
        )

    def list_task_reminders(self, task_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("task_reminders")\
            .select("*")\
            .eq("task_id", task_id)\
            .order("scheduled_time")\
            .execute()
        return result.data or []
