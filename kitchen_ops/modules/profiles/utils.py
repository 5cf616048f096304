"""Display helpers for profiles: phone masks, work schedule summary, role labels."""
import re
from typing import Any, Dict, List, Optional

from kitchen_ops.config.permissions_config import ROLE_LABELS, Role
from kitchen_ops.modules.reminders.calculator import work_hours


def format_phone(phone: Optional[str]) -> str:
    """Brazilian display mask. Already formatted or unknown lengths are returned as-is."""
    if not phone:
        return "-"
    if "(" in phone or "-" in phone:
        return phone
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 13 and digits.startswith("55"):
        return f"+55 ({digits[2:4]}) {digits[4:9]}-{digits[9:]}"
    return phone


def format_work_schedule(hora_inicio: Optional[str], hora_fim: Optional[str]) -> Dict[str, Any]:
    """Display string, length in hours and a class: full (8h+), partial (6h+), short."""
    if not hora_inicio or not hora_fim:
        return {"display": "Não configurado", "hours": 0.0, "class": "unset"}
    hours = work_hours(hora_inicio, hora_fim)
    if hours >= 8:
        schedule_class = "full"
    elif hours >= 6:
        schedule_class = "partial"
    else:
        schedule_class = "short"
    return {
        "display": f"{hora_inicio[:5]} - {hora_fim[:5]}",
        "hours": hours,
        "class": schedule_class,
    }


def get_role_label(role: str) -> str:
    try:
        return ROLE_LABELS[Role(role)]
    except ValueError:
        return role


def get_kitchen_access(user_kitchen_roles: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Group a user's roles per kitchen with a short summary"""
    if not user_kitchen_roles:
        return {"count": 0, "total_roles": 0, "groups": {}, "summary": "Sem acesso"}

    groups: Dict[str, Dict[str, Any]] = {}
    for role in user_kitchen_roles:
        kitchen_id = role["kitchen_id"]
        kitchen_name = (role.get("kitchens") or {}).get("nome") or "Cozinha"
        groups.setdefault(kitchen_id, {"name": kitchen_name, "roles": []})
        groups[kitchen_id]["roles"].append(role["role"])

    count = len(groups)
    total_roles = len(user_kitchen_roles)
    summary = (
        f"{count} cozinha{'s' if count > 1 else ''} • "
        f"{total_roles} {'funções' if total_roles > 1 else 'função'}"
    )
    return {"count": count, "total_roles": total_roles, "groups": groups, "summary": summary}
