from enum import Enum
from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime


class FileScope(str, Enum):
    PROJECT = "project"
    TASK = "task"


class FileResponse(BaseModel):
    id: str
    project_id: Optional[str] = None
    task_id: Optional[str] = None
    nome_arquivo: str
    nome_original: str
    tipo_arquivo: Optional[str] = None
    tamanho_bytes: int = 0
    tamanho_formatado: str = "0 Bytes"
    file_path: str
    uploaded_by: Optional[str] = None
    criado_em: Optional[datetime] = None
    ativo: bool = True
    uploader: Optional[Dict[str, Any]] = None
    scope: FileScope = FileScope.PROJECT
    task_titulo: Optional[str] = None

    class Config:
        from_attributes = True


class FileDeleteResponse(BaseModel):
    message: str
    id: str
