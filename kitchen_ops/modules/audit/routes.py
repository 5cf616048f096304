from fastapi import APIRouter, Depends, Response
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.audit.schemas import AuditLogPage, AuditOptionsResponse
from kitchen_ops.modules.audit.service import AuditService
from kitchen_ops.core.dependencies import require_admin
from supabase import Client
from typing import Dict, Optional
from datetime import date

router = APIRouter(prefix="/audit", tags=["audit"])


def get_audit_service(supabase: Client = Depends(get_supabase)) -> AuditService:
    return AuditService(supabase)


@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    page: int = 1,
    user_id: Optional[str] = None,
    kitchen_id: Optional[str] = None,
    recurso: Optional[str] = None,
    acao: Optional[str] = None,
    data_inicio: Optional[date] = None,
    data_fim: Optional[date] = None,
    search: Optional[str] = None,
    user_data: Dict = Depends(require_admin),
    service: AuditService = Depends(get_audit_service)
):
    """List audit logs (ADMIN only), 50 per page"""
    return service.list_logs(
        page=page, user_id=user_id, kitchen_id=kitchen_id, recurso=recurso, acao=acao,
        data_inicio=data_inicio, data_fim=data_fim, search=search
    )


@router.get("/options", response_model=AuditOptionsResponse)
async def get_audit_options(
    user_data: Dict = Depends(require_admin),
    service: AuditService = Depends(get_audit_service)
):
    """Known resources and actions with display labels"""
    return service.get_options()


@router.get("/export")
async def export_audit_logs(
    user_id: Optional[str] = None,
    kitchen_id: Optional[str] = None,
    recurso: Optional[str] = None,
    acao: Optional[str] = None,
    data_inicio: Optional[date] = None,
    data_fim: Optional[date] = None,
    search: Optional[str] = None,
    user_data: Dict = Depends(require_admin),
    service: AuditService = Depends(get_audit_service)
):
    """Export the filtered audit logs as CSV"""
    content = service.export_csv(
        user_id=user_id, kitchen_id=kitchen_id, recurso=recurso, acao=acao,
        data_inicio=data_inicio, data_fim=data_fim, search=search
    )
    filename = f"audit-logs-{date.today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
