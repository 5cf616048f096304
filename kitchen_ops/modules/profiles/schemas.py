import re
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime

from kitchen_ops.modules.reminders.calculator import parse_time

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"


def _validate_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    digits = re.sub(r"\D", "", value)
    if len(digits) < 10 or len(digits) > 13:
        raise ValueError("Invalid phone format. Use: (11) 99999-9999")
    return value


def _validate_schedule(hora_inicio: Optional[str], hora_fim: Optional[str]):
    if hora_inicio and hora_fim and parse_time(hora_fim) <= parse_time(hora_inicio):
        raise ValueError("hora_fim must be after hora_inicio")


class ProfileCreate(BaseModel):
    nome: str = Field(..., min_length=2)
    email: EmailStr
    telefone: str
    hora_inicio: str = Field("08:00", pattern=_TIME_PATTERN)
    hora_fim: str = Field("17:00", pattern=_TIME_PATTERN)
    ativo: bool = True

    @field_validator("nome")
    @classmethod
    def strip_nome(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("nome must have at least 2 characters")
        return v

    @field_validator("telefone")
    @classmethod
    def check_telefone(cls, v: str) -> str:
        return _validate_phone(v)

    @model_validator(mode="after")
    def check_schedule(self):
        _validate_schedule(self.hora_inicio, self.hora_fim)
        return self


class ProfileUpdate(BaseModel):
    """Email cannot change after creation"""
    nome: Optional[str] = Field(None, min_length=2)
    telefone: Optional[str] = None
    hora_inicio: Optional[str] = Field(None, pattern=_TIME_PATTERN)
    hora_fim: Optional[str] = Field(None, pattern=_TIME_PATTERN)
    ativo: Optional[bool] = None

    @field_validator("telefone")
    @classmethod
    def check_telefone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    @model_validator(mode="after")
    def check_schedule(self):
        _validate_schedule(self.hora_inicio, self.hora_fim)
        return self


class ProfileResponse(BaseModel):
    id: str
    nome: str
    email: str
    telefone: Optional[str] = None
    hora_inicio: Optional[str] = None
    hora_fim: Optional[str] = None
    ativo: bool = True
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileWithRolesResponse(ProfileResponse):
    user_kitchen_roles: List[Dict[str, Any]] = []
    telefone_formatado: str = "-"
    kitchen_access: Dict[str, Any] = {}


class WorkScheduleResponse(BaseModel):
    id: str
    nome: str
    email: str
    telefone: Optional[str] = None
    hora_inicio: str
    hora_fim: str
    ativo: bool = True
    display: str
    hours: float


class WorkScheduleFieldUpdate(BaseModel):
    field: Literal["hora_inicio", "hora_fim"]
    value: str = Field(..., pattern=_TIME_PATTERN)


class WorkScheduleEntry(BaseModel):
    id: str
    hora_inicio: str = Field(..., pattern=_TIME_PATTERN)
    hora_fim: str = Field(..., pattern=_TIME_PATTERN)

    @model_validator(mode="after")
    def check_schedule(self):
        _validate_schedule(self.hora_inicio, self.hora_fim)
        return self


class WorkScheduleBulkUpdate(BaseModel):
    schedules: List[WorkScheduleEntry]
