from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class AssistantCreate(BaseModel):
    kitchen_id: str
    nome: str = Field(..., min_length=2, max_length=100)
    descricao: Optional[str] = None
    instrucoes: Optional[str] = None
    ativo: bool = True


class AssistantUpdate(BaseModel):
    nome: Optional[str] = Field(None, min_length=2, max_length=100)
    descricao: Optional[str] = None
    instrucoes: Optional[str] = None
    ativo: Optional[bool] = None


class AssistantResponse(BaseModel):
    id: str
    kitchen_id: str
    nome: str
    descricao: Optional[str] = None
    instrucoes: Optional[str] = None
    assistant_id: Optional[str] = None
    ativo: bool = True
    criado_por: Optional[str] = None
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConversationCreate(BaseModel):
    kitchen_id: str
    assistant_id: Optional[str] = None
    titulo: Optional[str] = Field(None, max_length=200)


class ConversationResponse(BaseModel):
    id: str
    kitchen_id: str
    user_id: str
    assistant_id: Optional[str] = None
    thread_id: Optional[str] = None
    titulo: Optional[str] = None
    criado_em: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    conversation_id: str = Field(..., alias="conversationId")
    assistant_id: str = Field(..., alias="assistantId")

    class Config:
        populate_by_name = True


class ChatResponse(BaseModel):
    success: bool = True
    response: str
    thread_id: str = Field(..., alias="threadId")
    files_used: int = Field(0, alias="filesUsed")
    contracts_available: int = Field(0, alias="contractsAvailable")
    conversation_files: int = Field(0, alias="conversationFiles")

    class Config:
        populate_by_name = True


class AIFileResponse(BaseModel):
    id: str
    file_id: str
    nome_original: Optional[str] = None
    tipo_arquivo: Optional[str] = None
    tamanho_bytes: int = 0
    criado_em: Optional[datetime] = None


class ContractResponse(BaseModel):
    id: str
    kitchen_id: str
    file_id: Optional[str] = None
    nome_contrato: str
    descricao: Optional[str] = None
    tipo_contrato: str = "outros"
    nome_arquivo: Optional[str] = None
    tipo_arquivo: Optional[str] = None
    tamanho_bytes: int = 0
    ativo: bool = True
    criado_por: Optional[str] = None
    criado_em: Optional[datetime] = None

    class Config:
        from_attributes = True
