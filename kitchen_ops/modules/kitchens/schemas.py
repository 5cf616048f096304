from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from kitchen_ops.config.permissions_config import Role


def _normalize_code(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().upper()
    if not v:
        raise ValueError("codigo is required")
    return v


class KitchenCreate(BaseModel):
    nome: str = Field(..., min_length=1)
    codigo: str = Field(..., max_length=20)
    endereco: Optional[str] = None
    ativo: bool = True

    @field_validator("codigo")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return _normalize_code(v)


class KitchenUpdate(BaseModel):
    nome: Optional[str] = Field(None, min_length=1)
    codigo: Optional[str] = Field(None, max_length=20)
    endereco: Optional[str] = None
    ativo: Optional[bool] = None

    @field_validator("codigo")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_code(v)


class KitchenResponse(BaseModel):
    id: str
    nome: str
    codigo: str
    endereco: Optional[str] = None
    ativo: bool = True
    criado_por: Optional[str] = None
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None
    roles: List[str] = []  # current user's roles in this kitchen

    class Config:
        from_attributes = True


class MemberAdd(BaseModel):
    email: EmailStr
    role: Role = Role.AUX_ADM


class MemberResponse(BaseModel):
    id: str
    user_id: str
    kitchen_id: str
    role: str
    role_label: Optional[str] = None
    criado_em: Optional[datetime] = None
    profile: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class GeneratedCode(BaseModel):
    nome: str
    codigo: str
