from fastapi import APIRouter, Depends, UploadFile, File, Form
from kitchen_ops.core.errors import ServiceError
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.assistants.schemas import (
    AssistantCreate, AssistantUpdate, AssistantResponse, ConversationCreate,
    ConversationResponse, ChatRequest, ChatResponse, ContractResponse
)
from kitchen_ops.modules.assistants.service import AssistantService, OpenAIFactory
from kitchen_ops.core.dependencies import (
    require_permission, get_current_user_id, get_access_cache,
    get_kitchens_with_permission, check_kitchen_access, is_admin
)
from openai import OpenAI
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/ai", tags=["assistants"])


def get_openai_factory() -> OpenAIFactory:
    return OpenAI


def get_assistant_service(
    supabase: Client = Depends(get_supabase),
    openai_factory: OpenAIFactory = Depends(get_openai_factory)
) -> AssistantService:
    return AssistantService(supabase, openai_factory)


def _require_kitchen_admin(kitchen_id: str, user_data: Dict, supabase: Client, cache: Dict):
    if not is_admin(user_data, supabase, kitchen_id, cache):
        raise ServiceError(403, "Only administrators can manage contracts")


# Assistants

@router.get("/assistants", response_model=List[AssistantResponse])
async def list_assistants(
    kitchen_id: Optional[str] = None,
    active_only: bool = False,
    user_data: Dict = Depends(require_permission("assistants:read")),
    cache: Dict = Depends(get_access_cache),
    service: AssistantService = Depends(get_assistant_service),
    supabase: Client = Depends(get_supabase)
):
    kitchen_ids = get_kitchens_with_permission(user_data, "assistants:read", supabase, cache)
    return service.list_assistants(kitchen_ids, kitchen_id=kitchen_id, active_only=active_only)


@router.post("/assistants", response_model=AssistantResponse, status_code=201)
async def create_assistant(
    assistant_data: AssistantCreate,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: AssistantService = Depends(get_assistant_service),
    supabase: Client = Depends(get_supabase)
):
    check_kitchen_access(assistant_data.kitchen_id, user_data, supabase, "assistants:create", cache)
    return service.create_assistant(assistant_data, user_data["id"])


@router.get("/assistants/{assistant_id}", response_model=AssistantResponse)
async def get_assistant(
    assistant_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: AssistantService = Depends(get_assistant_service),
    supabase: Client = Depends(get_supabase)
):
    assistant = service.get_assistant(assistant_id)
    check_kitchen_access(assistant.kitchen_id, user_data, supabase, "assistants:read", cache)
    return assistant


@router.put("/assistants/{assistant_id}", response_model=AssistantResponse)
async def update_assistant(
    assistant_id: str,
    assistant_data: AssistantUpdate,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: AssistantService = Depends(get_assistant_service),
    supabase: Client = Depends(get_supabase)
):
    assistant = service.get_assistant(assistant_id)
    check_kitchen_access(assistant.kitchen_id, user_data, supabase, "assistants:update", cache)
    return service.update_assistant(assistant_id, assistant_data)


@router.delete("/assistants/{assistant_id}", status_code=204)
async def delete_assistant(
    assistant_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: AssistantService = Depends(get_assistant_service),
    supabase: Client = Depends(get_supabase)
):
    assistant = service.get_assistant(assistant_id)
    check_kitchen_access(assistant.kitchen_id, user_data, supabase, "assistants:delete", cache)
    service.delete_assistant(assistant_id)
    return None


# Conversations

@router.get("/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    kitchen_id: Optional[str] = None,
    user_data: Dict = Depends(get_current_user_id),
    service: AssistantService = Depends(get_assistant_service)
):
    """The current user's conversations"""
    return service.list_conversations(user_data["id"], kitchen_id)


@router.post("/conversations", response_model=ConversationResponse, status_code=201)
async def create_conversation(
    conversation: ConversationCreate,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: AssistantService = Depends(get_assistant_service),
    supabase: Client = Depends(get_supabase)
):
    check_kitchen_access(conversation.kitchen_id, user_data, supabase, "assistants:chat", cache)
    return service.create_conversation(conversation, user_data["id"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    user_data: Dict = Depends(require_permission("assistants:chat")),
    service: AssistantService = Depends(get_assistant_service)
):
    """Send a message and wait for the assistant's answer"""
    return await service.chat(request, user_data["id"])


@router.post("/upload")
async def upload_conversation_file(
    file: UploadFile = File(...),
    conversation_id: str = Form(..., alias="conversationId"),
    user_data: Dict = Depends(require_permission("assistants:chat")),
    service: AssistantService = Depends(get_assistant_service)
):
    """Attach a file to a conversation"""
    return await service.upload_conversation_file(file, conversation_id, user_data["id"])


# Contracts

@router.get("/contracts", response_model=List[ContractResponse])
async def list_contracts(
    kitchen_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: AssistantService = Depends(get_assistant_service),
    supabase: Client = Depends(get_supabase)
):
    check_kitchen_access(kitchen_id, user_data, supabase, "contracts:read", cache)
    return service.list_contracts(kitchen_id)


@router.post("/contracts/upload")
async def upload_contract(
    file: UploadFile = File(...),
    kitchen_id: str = Form(..., alias="kitchenId"),
    nome_contrato: str = Form(..., alias="nomeContrato"),
    descricao: Optional[str] = Form(None),
    tipo_contrato: Optional[str] = Form(None, alias="tipoContrato"),
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: AssistantService = Depends(get_assistant_service),
    supabase: Client = Depends(get_supabase)
):
    """Upload a contract the kitchen's assistants can read (kitchen ADMIN only)"""
    _require_kitchen_admin(kitchen_id, user_data, supabase, cache)
    return await service.upload_contract(
        file, kitchen_id, nome_contrato, user_data["id"], descricao=descricao, tipo_contrato=tipo_contrato
    )


@router.delete("/contracts/{contract_id}")
async def delete_contract(
    contract_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: AssistantService = Depends(get_assistant_service),
    supabase: Client = Depends(get_supabase)
):
    contract = service.get_contract(contract_id)
    _require_kitchen_admin(contract["kitchen_id"], user_data, supabase, cache)
    return service.delete_contract(contract)
