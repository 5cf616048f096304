import csv
import json
import io
import math
import re
from datetime import date
from supabase import Client
from kitchen_ops.modules.audit.schemas import (
    AuditLogResponse, AuditLogPage, AuditOption, AuditOptionsResponse
)
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

AUDIT_PAGE_SIZE = 50
AUDIT_EXPORT_LIMIT = 10000

# Characters with meaning inside a PostgREST or=(...) expression
_FILTER_RESERVED = re.compile(r'[,()"\\]')

RESOURCE_LABELS = {
    "tasks": "Tarefas",
    "projects": "Projetos",
    "profiles": "Perfis",
    "kitchens": "Cozinhas",
    "user_kitchen_roles": "Funções de Usuário",
    "task_comments": "Comentários",
    "task_files": "Arquivos de Tarefa",
    "project_files": "Arquivos de Projeto",
    "kitchen_contracts": "Contratos",
    "task_assignment": "Atribuição de Tarefa",
    "whatsapp_notification": "Notificação WhatsApp",
    "task_reminders": "Lembretes",
    "task_reminder": "Envio de Lembrete",
    "test_notification": "Teste de Notificação",
}

ACTION_LABELS = {
    "created": "Criado",
    "updated": "Atualizado",
    "deleted": "Excluído",
    "assigned": "Atribuído",
    "completed": "Concluído",
    "whatsapp_notification_triggered": "Notificação Disparada",
    "immediate_api_called": "API Chamada",
    "reminders_scheduled": "Lembretes Agendados",
    "trigger_error": "Erro no Trigger",
    "immediate_skipped": "Notificação Pulada",
    "reminder_sent": "Lembrete Enviado",
    "reminder_failed": "Falha no Lembrete",
    "reminder_error": "Erro no Lembrete",
    "test_success": "Teste Enviado",
    "test_failed": "Falha no Teste",
}

CSV_COLUMNS = ["criado_em", "user_nome", "user_email", "kitchen_nome", "recurso", "recurso_id", "acao", "payload"]


class AuditService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def log(
        self,
        recurso: str,
        acao: str,
        user_id: Optional[str] = None,
        recurso_id: Optional[str] = None,
        kitchen_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Insert an audit row. Failures are logged, never raised: audit is visibility only."""
        try:
            self.supabase.table("audit_logs").insert({
                "user_id": user_id,
                "kitchen_id": kitchen_id,
                "recurso": recurso,
                "recurso_id": recurso_id,
                "acao": acao,
                "payload": payload,
            }).execute()
            return True
        except Exception as e:
            logger.error(f"Failed to write audit log {recurso}/{acao}: {e}")
            return False

    def _filtered_query(
        self,
        user_id: Optional[str] = None,
        kitchen_id: Optional[str] = None,
        recurso: Optional[str] = None,
        acao: Optional[str] = None,
        data_inicio: Optional[date] = None,
        data_fim: Optional[date] = None,
        search: Optional[str] = None
    ):
        query = self.supabase.table("audit_logs").select("*", count="exact")
        if user_id:
            query = query.eq("user_id", user_id)
        if kitchen_id:
            query = query.eq("kitchen_id", kitchen_id)
        if recurso:
            query = query.eq("recurso", recurso)
        if acao:
            query = query.eq("acao", acao)
        if data_inicio:
            query = query.gte("criado_em", f"{data_inicio.isoformat()}T00:00:00")
        if data_fim:
            query = query.lte("criado_em", f"{data_fim.isoformat()}T23:59:59")
        term = " ".join(_FILTER_RESERVED.sub(" ", search or "").split())
        if term:
            query = query.or_(f"recurso.ilike.%{term}%,acao.ilike.%{term}%")
        return query

    def _attach_relations(self, logs: List[Dict[str, Any]]) -> List[AuditLogResponse]:
        """Resolve user and kitchen names in two batched lookups"""
        user_ids = list({log["user_id"] for log in logs if log.get("user_id")})
        kitchen_ids = list({log["kitchen_id"] for log in logs if log.get("kitchen_id")})
        users: Dict[str, Dict[str, Any]] = {}
        kitchens: Dict[str, Dict[str, Any]] = {}
        if user_ids:
            result = self.supabase.table("profiles")\
                .select("id, nome, email")\
                .in_("id", user_ids)\
                .execute()
            users = {p["id"]: p for p in result.data or []}
        if kitchen_ids:
            result = self.supabase.table("kitchens")\
                .select("id, nome")\
                .in_("id", kitchen_ids)\
                .execute()
            kitchens = {k["id"]: k for k in result.data or []}

        responses = []
        for log in logs:
            user = users.get(log.get("user_id")) or {}
            kitchen = kitchens.get(log.get("kitchen_id")) or {}
            responses.append(AuditLogResponse(
                **log,
                user_nome=user.get("nome"),
                user_email=user.get("email"),
                kitchen_nome=kitchen.get("nome"),
            ))
        return responses

    def list_logs(self, page: int = 1, **filters) -> AuditLogPage:
        """List audit logs, newest first, AUDIT_PAGE_SIZE per page"""
        try:
            page = max(page, 1)
            start = (page - 1) * AUDIT_PAGE_SIZE
            result = self._filtered_query(**filters)\
                .order("criado_em", desc=True)\
                .range(start, start + AUDIT_PAGE_SIZE - 1)\
                .execute()
            total = result.count or 0
            return AuditLogPage(
                logs=self._attach_relations(result.data or []),
                total=total,
                page=page,
                page_size=AUDIT_PAGE_SIZE,
                total_pages=math.ceil(total / AUDIT_PAGE_SIZE),
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_options(self) -> AuditOptionsResponse:
        return AuditOptionsResponse(
            recursos=[AuditOption(value=k, label=v) for k, v in RESOURCE_LABELS.items()],
            acoes=[AuditOption(value=k, label=v) for k, v in ACTION_LABELS.items()],
        )

    def export_csv(self, **filters) -> str:
        """Filtered logs as CSV text (header row first)"""
        try:
            result = self._filtered_query(**filters)\
                .order("criado_em", desc=True)\
                .limit(AUDIT_EXPORT_LIMIT)\
                .execute()
            logs = self._attach_relations(result.data or [])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_COLUMNS)
        for log in logs:
            row = log.model_dump()
            row["criado_em"] = log.criado_em.isoformat()
            row["payload"] = "" if log.payload is None else json.dumps(log.payload, ensure_ascii=False)
            writer.writerow(["" if row.get(col) is None else row[col] for col in CSV_COLUMNS])
        return buffer.getvalue()
