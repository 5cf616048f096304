"""WhatsApp message templates for task delegation and workday reminders."""
from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from kitchen_ops.config import settings

PRIORITY_EMOJI = {
    "ALTA": "🔴",
    "MEDIA": "🟡",
    "BAIXA": "🟢",
}
DEFAULT_PRIORITY_EMOJI = "⚪"

DEFAULT_REMINDER_TYPE = "DELEGACAO"

REMINDER_TITLES = {
    "DELEGACAO": "🎯 *Nova Tarefa Atribuída*",
    "INICIO_JORNADA": "🌅 *Lembrete - Início da Jornada*",
    "MEIO_JORNADA": "☀️ *Lembrete - Meio da Jornada*",
    "FIM_JORNADA": "🌆 *Lembrete - Fim da Jornada*",
}

REMINDER_TEXTS = {
    "DELEGACAO": "Uma nova tarefa foi atribuída a você.",
    "INICIO_JORNADA": "Lembrete para verificar suas tarefas no início da jornada.",
    "MEIO_JORNADA": "Lembrete para acompanhar o progresso de suas tarefas.",
    "FIM_JORNADA": "Lembrete para finalizar ou atualizar suas tarefas antes do fim da jornada.",
}


def format_deadline(deadline: Union[str, date, datetime, None]) -> Optional[str]:
    """dd/mm/yyyy; aware datetimes are shown in the business timezone"""
    if not deadline:
        return None
    if isinstance(deadline, str):
        try:
            deadline = datetime.fromisoformat(deadline.replace("Z", "+00:00"))
        except ValueError:
            return deadline
    if isinstance(deadline, datetime) and deadline.tzinfo is not None:
        deadline = deadline.astimezone(ZoneInfo(settings.business_timezone))
    return deadline.strftime("%d/%m/%Y")


def format_task_message(
    task_title: str,
    project_name: str,
    priority: str,
    assigned_by_name: str,
    reminder_type: Optional[str] = None,
    deadline: Union[str, date, datetime, None] = None,
    task_description: Optional[str] = None,
) -> str:
    reminder_type = reminder_type or DEFAULT_REMINDER_TYPE
    title = REMINDER_TITLES.get(reminder_type, REMINDER_TITLES[DEFAULT_REMINDER_TYPE])
    text = REMINDER_TEXTS.get(reminder_type, REMINDER_TEXTS[DEFAULT_REMINDER_TYPE])
    emoji = PRIORITY_EMOJI.get(priority, DEFAULT_PRIORITY_EMOJI)

    formatted_deadline = format_deadline(deadline)
    deadline_line = f"\n📅 *Prazo:* {formatted_deadline}" if formatted_deadline else ""
    description_line = f"📝 *Descrição:* {task_description}\n" if task_description else ""

    return (
        f"{title}\n\n"
        f"📋 *Tarefa:* {task_title}\n\n"
        f"🏢 *Projeto:* {project_name}\n\n"
        f"{emoji} *Prioridade:* {priority}{deadline_line}\n\n"
        f"👤 *Atribuída por:* {assigned_by_name}\n\n"
        f"{description_line}\n"
        f"💡 {text}\n\n"
        f"✅ Acesse o sistema para mais detalhes e atualizações."
    )
