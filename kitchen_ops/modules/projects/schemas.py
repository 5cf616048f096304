from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import date, datetime


class ProjectStatus(str, Enum):
    ATIVO = "ATIVO"
    PAUSADO = "PAUSADO"
    CONCLUIDO = "CONCLUIDO"


PROJECT_STATUS_LABELS = {
    ProjectStatus.ATIVO: "Ativo",
    ProjectStatus.PAUSADO: "Pausado",
    ProjectStatus.CONCLUIDO: "Concluído",
}

PROJECT_NAME_MIN = 3
PROJECT_NAME_MAX = 100
PROJECT_DESCRIPTION_MAX = 500


def _check_dates(inicio: Optional[date], fim: Optional[date]):
    if inicio and fim and inicio > fim:
        raise ValueError("fim_previsto must be on or after inicio_previsto")


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class ProjectCreate(BaseModel):
    kitchen_id: str = Field(..., min_length=1)
    nome: str = Field(..., min_length=PROJECT_NAME_MIN, max_length=PROJECT_NAME_MAX)
    descricao: Optional[str] = Field(None, max_length=PROJECT_DESCRIPTION_MAX)
    status: ProjectStatus = ProjectStatus.ATIVO
    inicio_previsto: Optional[date] = None
    fim_previsto: Optional[date] = None

    @field_validator("nome", mode="before")
    @classmethod
    def strip_nome(cls, v):
        return _strip(v)

    @model_validator(mode="after")
    def check_dates(self):
        _check_dates(self.inicio_previsto, self.fim_previsto)
        return self


class ProjectUpdate(BaseModel):
    nome: Optional[str] = Field(None, min_length=PROJECT_NAME_MIN, max_length=PROJECT_NAME_MAX)
    descricao: Optional[str] = Field(None, max_length=PROJECT_DESCRIPTION_MAX)
    status: Optional[ProjectStatus] = None
    inicio_previsto: Optional[date] = None
    fim_previsto: Optional[date] = None

    @field_validator("nome", mode="before")
    @classmethod
    def strip_nome(cls, v):
        return _strip(v)

    @model_validator(mode="after")
    def check_dates(self):
        _check_dates(self.inicio_previsto, self.fim_previsto)
        return self


class ProjectResponse(BaseModel):
    id: str
    kitchen_id: str
    nome: str
    descricao: Optional[str] = None
    status: ProjectStatus
    inicio_previsto: Optional[date] = None
    fim_previsto: Optional[date] = None
    criado_por: Optional[str] = None
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None
    kitchen_nome: Optional[str] = None
    task_count: Optional[int] = None

    class Config:
        from_attributes = True


class ProjectWithTasksResponse(ProjectResponse):
    tasks: List[Dict[str, Any]] = []
