from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import date, datetime


class TaskPriority(str, Enum):
    BAIXA = "BAIXA"
    MEDIA = "MEDIA"
    ALTA = "ALTA"


class TaskStatus(str, Enum):
    BACKLOG = "BACKLOG"
    EM_ANDAMENTO = "EM_ANDAMENTO"
    EM_REVISAO = "EM_REVISAO"
    CONCLUIDA = "CONCLUIDA"


TASK_STATUS_LABELS = {
    TaskStatus.BACKLOG: "Backlog",
    TaskStatus.EM_ANDAMENTO: "Em andamento",
    TaskStatus.EM_REVISAO: "Em revisão",
    TaskStatus.CONCLUIDA: "Concluída",
}


class TaskCreate(BaseModel):
    project_id: str
    titulo: str = Field(..., min_length=1, max_length=200)
    descricao: Optional[str] = None
    prioridade: TaskPriority = TaskPriority.MEDIA
    status: TaskStatus = TaskStatus.BACKLOG
    responsavel_id: Optional[str] = None
    prazo: Optional[date] = None
    parent_task_id: Optional[str] = None

    @field_validator("titulo")
    @classmethod
    def strip_titulo(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("titulo is required")
        return v


class TaskUpdate(BaseModel):
    titulo: Optional[str] = Field(None, min_length=1, max_length=200)
    descricao: Optional[str] = None
    prioridade: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    responsavel_id: Optional[str] = None
    prazo: Optional[date] = None
    parent_task_id: Optional[str] = None


class TaskMove(BaseModel):
    status: TaskStatus


class TaskResponse(BaseModel):
    id: str
    project_id: str
    titulo: str
    descricao: Optional[str] = None
    prioridade: TaskPriority = TaskPriority.MEDIA
    status: TaskStatus = TaskStatus.BACKLOG
    responsavel_id: Optional[str] = None
    prazo: Optional[str] = None
    parent_task_id: Optional[str] = None
    criado_por: Optional[str] = None
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None
    responsavel: Optional[Dict[str, Any]] = None
    project_nome: Optional[str] = None

    class Config:
        from_attributes = True


class TaskWithSubtasksResponse(TaskResponse):
    subtasks: List[TaskResponse] = []


class KanbanColumn(BaseModel):
    id: TaskStatus
    title: str
    tasks: List[TaskResponse]


class KanbanBoard(BaseModel):
    columns: List[KanbanColumn]
    limit_per_column: int


class AssignableUser(BaseModel):
    id: str
    nome: str
    email: str
    telefone: Optional[str] = None


class CommentCreate(BaseModel):
    texto: str

    @field_validator("texto")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment text cannot be empty")
        return v


class CommentUpdate(CommentCreate):
    pass


class CommentResponse(BaseModel):
    id: str
    task_id: str
    author_id: str
    texto: str
    criado_em: Optional[datetime] = None
    author: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True
