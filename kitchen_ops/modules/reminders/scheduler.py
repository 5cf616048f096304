import asyncio
import logging
from kitchen_ops.config import settings
from kitchen_ops.database.supabase_client import get_service_supabase
from kitchen_ops.modules.reminders.service import ReminderService

logger = logging.getLogger(__name__)


async def process_due_reminders_job():
    """Run one reminder dispatch pass off the event loop."""
    try:
        service = ReminderService(get_service_supabase())
        result = await asyncio.to_thread(service.process_due_reminders)
        if result.total:
            logger.info(f"Reminder scheduler: {result.processed} sent, {result.errors} errors of {result.total}")
    except Exception as e:
        logger.error(f"Error in reminder scheduler: {str(e)}")


async def reminder_scheduler_loop():
    """Background task that periodically dispatches due reminders"""
    interval = settings.reminder_scheduler_interval_seconds
    while True:
        try:
            await process_due_reminders_job()
        except Exception as e:
            logger.error(f"Error in reminder scheduler loop: {str(e)}")

        await asyncio.sleep(interval)
