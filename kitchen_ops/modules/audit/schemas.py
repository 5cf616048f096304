from pydantic import BaseModel
from typing import Optional, List, Any
from datetime import datetime


class AuditLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    kitchen_id: Optional[str] = None
    recurso: str
    recurso_id: Optional[str] = None
    acao: str
    payload: Optional[Any] = None
    criado_em: datetime
    user_nome: Optional[str] = None
    user_email: Optional[str] = None
    kitchen_nome: Optional[str] = None

    class Config:
        from_attributes = True


class AuditLogPage(BaseModel):
    logs: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class AuditOption(BaseModel):
    value: str
    label: str


class AuditOptionsResponse(BaseModel):
    recursos: List[AuditOption]
    acoes: List[AuditOption]
