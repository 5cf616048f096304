from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict, Any


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    nome: Optional[str] = None


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    nome: Optional[str] = None
    telefone: Optional[str] = None


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class KitchenRoles(BaseModel):
    kitchen_id: str
    roles: List[str]


class MeResponse(BaseModel):
    id: str
    email: Optional[str] = None
    profile: Optional[Dict[str, Any]] = None
    kitchen_roles: List[KitchenRoles] = []
    permissions: List[str] = []
    is_admin: bool = False
