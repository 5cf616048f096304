import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import openai
from fastapi import HTTPException, UploadFile
from openai import OpenAI
from supabase import Client

from kitchen_ops.config import settings
from kitchen_ops.core.errors import ServiceError
from kitchen_ops.modules.assistants.schemas import (
    AssistantCreate, AssistantUpdate, AssistantResponse, ConversationCreate,
    ConversationResponse, ChatRequest, ChatResponse, AIFileResponse, ContractResponse
)
from kitchen_ops.modules.files.utils import format_file_size

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTIONS = "Você é um assistente útil para gerenciamento de cozinhas."
ACTIVE_RUN_STATUSES = ("queued", "in_progress")
# code_interpreter accepts at most 20 files per assistant
CODE_INTERPRETER_FILE_LIMIT = 20

OpenAIFactory = Callable[..., OpenAI]


def _contracts_instructions(contract_names: List[str]) -> str:
    return (
        f"\n\nVocê tem acesso aos seguintes contratos desta cozinha: {', '.join(contract_names)}. "
        "Use essas informações para responder perguntas sobre fornecedores, serviços, preços, "
        "prazos e outras informações contratuais."
    )


class AssistantService:
    def __init__(self, supabase: Client, openai_factory: Optional[OpenAIFactory] = None):
        self.supabase = supabase
        self.openai_factory = openai_factory or OpenAI

    # AI settings

    def get_ai_settings(self) -> Dict[str, Any]:
        """The ai_settings row, with the API key falling back to the environment"""
        try:
            result = self.supabase.table("ai_settings")\
                .select("openai_api_key, default_model, max_tokens, temperature")\
                .limit(1)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error loading AI settings: {e}")
            raise ServiceError(500, "Error loading AI settings")
        if not result or not result.data:
            raise ServiceError(400, "No AI settings found. Configure them under Settings > AI & Integrations.")
        ai_settings = dict(result.data)
        ai_settings["openai_api_key"] = ai_settings.get("openai_api_key") or settings.openai_api_key
        if not ai_settings["openai_api_key"]:
            raise ServiceError(400, "OpenAI API key not configured. Configure it under Settings > AI & Integrations.")
        ai_settings["default_model"] = ai_settings.get("default_model") or settings.openai_default_model
        return ai_settings

    def _client(self) -> Tuple[OpenAI, Dict[str, Any]]:
        ai_settings = self.get_ai_settings()
        return self.openai_factory(api_key=ai_settings["openai_api_key"]), ai_settings

    # Assistants

    def _get_assistant_row(self, assistant_id: str) -> Dict[str, Any]:
        result = self.supabase.table("kitchen_assistants")\
            .select("*")\
            .eq("id", assistant_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Assistant not found")
        return result.data

    def get_assistant(self, assistant_id: str) -> AssistantResponse:
        return AssistantResponse(**self._get_assistant_row(assistant_id))

    def list_assistants(
        self,
        kitchen_ids: Optional[List[str]],
        kitchen_id: Optional[str] = None,
        active_only: bool = False
    ) -> List[AssistantResponse]:
        """Assistants of the given kitchens (None means all)"""
        try:
            if kitchen_ids is not None and not kitchen_ids:
                return []
            query = self.supabase.table("kitchen_assistants").select("*")
            if kitchen_ids is not None:
                query = query.in_("kitchen_id", kitchen_ids)
            if kitchen_id:
                query = query.eq("kitchen_id", kitchen_id)
            if active_only:
                query = query.eq("ativo", True)
            result = query.order("nome").execute()
            return [AssistantResponse(**row) for row in result.data or []]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_assistant(self, data: AssistantCreate, user_id: str) -> AssistantResponse:
        try:
            payload = data.model_dump()
            payload["nome"] = payload["nome"].strip()
            payload["criado_por"] = user_id
            result = self.supabase.table("kitchen_assistants").insert(payload).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create assistant")
            return AssistantResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_assistant(self, assistant_id: str, data: AssistantUpdate) -> AssistantResponse:
        try:
            current = self._get_assistant_row(assistant_id)
            update_data = data.model_dump(exclude_none=True)
            if not update_data:
                return AssistantResponse(**current)
            update_data["atualizado_em"] = datetime.now(timezone.utc).isoformat()
            result = self.supabase.table("kitchen_assistants")\
                .update(update_data)\
                .eq("id", assistant_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Assistant not found")
            return AssistantResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_assistant(self, assistant_id: str) -> bool:
        try:
            self._get_assistant_row(assistant_id)
            self.supabase.table("kitchen_assistants")\
                .delete()\
                .eq("id", assistant_id)\
                .execute()
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Conversations

    def _get_conversation(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        result = self.supabase.table("ai_conversations")\
            .select("*")\
            .eq("id", conversation_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data or result.data.get("user_id") != user_id:
            raise ServiceError(404, "Conversation not found")
        return result.data

    def create_conversation(self, data: ConversationCreate, user_id: str) -> ConversationResponse:
        try:
            result = self.supabase.table("ai_conversations").insert({
                "kitchen_id": data.kitchen_id,
                "assistant_id": data.assistant_id,
                "titulo": data.titulo,
                "user_id": user_id,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create conversation")
            return ConversationResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_conversations(self, user_id: str, kitchen_id: Optional[str] = None) -> List[ConversationResponse]:
        """The user's own conversations, newest first"""
        try:
            query = self.supabase.table("ai_conversations").select("*").eq("user_id", user_id)
            if kitchen_id:
                query = query.eq("kitchen_id", kitchen_id)
            result = query.order("criado_em", desc=True).execute()
            return [ConversationResponse(**row) for row in result.data or []]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Chat

    def _conversation_file_ids(self, conversation_id: str) -> List[str]:
        try:
            result = self.supabase.table("ai_files")\
                .select("file_id")\
                .eq("conversation_id", conversation_id)\
                .execute()
            return [f["file_id"] for f in result.data or [] if f.get("file_id")]
        except Exception as e:
            logger.error(f"Error loading conversation files: {e}")
            return []

    def _active_contracts(self, kitchen_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("kitchen_contracts")\
                .select("file_id, nome_contrato")\
                .eq("kitchen_id", kitchen_id)\
                .eq("ativo", True)\
                .execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error loading kitchen contracts: {e}")
            return []

    def _ensure_remote_assistant(
        self,
        client: OpenAI,
        assistant: Dict[str, Any],
        model: str,
        file_ids: List[str],
        contract_names: List[str]
    ) -> str:
        """Create the OpenAI assistant on first use, otherwise refresh its files"""
        tool_resources = {"code_interpreter": {"file_ids": file_ids[:CODE_INTERPRETER_FILE_LIMIT]}}
        remote_id = assistant.get("assistant_id")
        if remote_id:
            try:
                client.beta.assistants.update(remote_id, tool_resources=tool_resources)
            except openai.OpenAIError as e:
                logger.error(f"Error updating assistant {remote_id} files: {e}")
            return remote_id

        instructions = assistant.get("instrucoes") or DEFAULT_INSTRUCTIONS
        if contract_names:
            instructions += _contracts_instructions(contract_names)
        created = client.beta.assistants.create(
            name=assistant["nome"],
            instructions=instructions,
            model=model,
            tools=[{"type": "code_interpreter"}, {"type": "file_search"}],
            tool_resources=tool_resources,
        )
        self.supabase.table("kitchen_assistants")\
            .update({"assistant_id": created.id})\
            .eq("id", assistant["id"])\
            .execute()
        logger.info(f"Created OpenAI assistant {created.id} for {assistant['id']}")
        return created.id

    async def chat(self, request: ChatRequest, user_id: str) -> ChatResponse:
        """
        Send a message to the conversation thread and wait for the assistant run.

        The OpenAI client blocks, so the exchange runs in a worker thread. The run
        is polled every assistant_poll_interval_seconds, at most
        assistant_max_poll_attempts times; a run still going after that is a 408.
        """
        return await asyncio.to_thread(self._chat, request, user_id)

    def _chat(self, request: ChatRequest, user_id: str) -> ChatResponse:
        client, ai_settings = self._client()
        try:
            assistant = self._get_assistant_row(request.assistant_id)
        except HTTPException:
            raise ServiceError(404, "Assistant not found")
        conversation = self._get_conversation(request.conversation_id, user_id)
        if assistant.get("kitchen_id") != conversation.get("kitchen_id"):
            raise ServiceError(404, "Assistant not found")

        try:
            thread_id = conversation.get("thread_id")
            if not thread_id:
                thread_id = client.beta.threads.create().id
                self.supabase.table("ai_conversations")\
                    .update({"thread_id": thread_id})\
                    .eq("id", request.conversation_id)\
                    .execute()

            conversation_file_ids = self._conversation_file_ids(request.conversation_id)
            contracts = self._active_contracts(conversation["kitchen_id"])
            contract_file_ids = [c["file_id"] for c in contracts if c.get("file_id")]
            all_file_ids = conversation_file_ids + contract_file_ids
            logger.info(
                f"Chat files: conversation={len(conversation_file_ids)} "
                f"contracts={len(contract_file_ids)} total={len(all_file_ids)}"
            )

            client.beta.threads.messages.create(
                thread_id,
                role="user",
                content=request.message,
                attachments=[
                    {"file_id": file_id, "tools": [{"type": "file_search"}]}
                    for file_id in all_file_ids
                ],
            )

            remote_assistant_id = self._ensure_remote_assistant(
                client,
                assistant,
                ai_settings["default_model"],
                all_file_ids,
                [c["nome_contrato"] for c in contracts if c.get("nome_contrato")],
            )

            run = client.beta.threads.runs.create(thread_id, assistant_id=remote_assistant_id)
            attempts = 0
            while run.status in ACTIVE_RUN_STATUSES and attempts < settings.assistant_max_poll_attempts:
                time.sleep(settings.assistant_poll_interval_seconds)
                run = client.beta.threads.runs.retrieve(run.id, thread_id=thread_id)
                attempts += 1

            if run.status == "failed":
                reason = run.last_error.message if run.last_error else "Unknown error"
                raise ServiceError(500, f"Assistant run failed: {reason}")
            if run.status != "completed":
                raise ServiceError(408, "Timeout: the assistant took too long to respond")

            messages = client.beta.threads.messages.list(thread_id)
            last_message = messages.data[0] if messages.data else None
            if last_message and last_message.role == "assistant" and last_message.content:
                content = last_message.content[0]
                if content.type == "text":
                    return ChatResponse(
                        response=content.text.value,
                        thread_id=thread_id,
                        files_used=len(all_file_ids),
                        contracts_available=len(contract_file_ids),
                        conversation_files=len(conversation_file_ids),
                    )
            raise ServiceError(500, "Error processing the assistant response")
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Chat error: {e}")
            raise ServiceError(500, str(e) or "Internal server error")

    # Files sent to OpenAI

    async def _read_upload(self, file: UploadFile) -> bytes:
        content = await file.read()
        if len(content) > settings.assistant_max_file_size:
            raise ServiceError(
                400,
                f"File too large. Maximum allowed: {format_file_size(settings.assistant_max_file_size)}"
            )
        return content

    def _upload_remote(self, client: OpenAI, file: UploadFile, content: bytes):
        return client.files.create(
            file=(file.filename, content, file.content_type or "application/octet-stream"),
            purpose="assistants",
        )

    def _discard_remote(self, client: OpenAI, file_id: str):
        try:
            client.files.delete(file_id)
        except openai.OpenAIError as e:
            logger.error(f"Error deleting OpenAI file {file_id}: {e}")

    async def upload_conversation_file(self, file: UploadFile, conversation_id: str, user_id: str) -> Dict[str, Any]:
        """Upload to OpenAI and record it in ai_files; the remote file is removed if the insert fails"""
        content = await self._read_upload(file)
        client, _ = self._client()
        self._get_conversation(conversation_id, user_id)

        try:
            uploaded = self._upload_remote(client, file, content)
        except openai.OpenAIError as e:
            logger.error(f"OpenAI upload failed: {e}")
            raise ServiceError(500, str(e))

        try:
            result = self.supabase.table("ai_files").insert({
                "conversation_id": conversation_id,
                "file_id": uploaded.id,
                "nome_original": file.filename,
                "tipo_arquivo": file.content_type,
                "tamanho_bytes": len(content),
            }).execute()
            if not result.data:
                raise ServiceError(500, "Failed to save file record")
        except Exception as e:
            logger.error(f"Error saving AI file record: {e}")
            self._discard_remote(client, uploaded.id)
            if isinstance(e, ServiceError):
                raise
            raise ServiceError(500, str(e))

        saved = result.data[0]
        return {"success": True, "file": AIFileResponse(**saved).model_dump(mode="json")}

    # Contracts

    def get_contract(self, contract_id: str) -> Dict[str, Any]:
        result = self.supabase.table("kitchen_contracts")\
            .select("*")\
            .eq("id", contract_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise ServiceError(404, "Contract not found")
        return result.data

    def list_contracts(self, kitchen_id: str) -> List[ContractResponse]:
        try:
            result = self.supabase.table("kitchen_contracts")\
                .select("*")\
                .eq("kitchen_id", kitchen_id)\
                .eq("ativo", True)\
                .order("criado_em", desc=True)\
                .execute()
            return [ContractResponse(**row) for row in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    async def upload_contract(
        self,
        file: UploadFile,
        kitchen_id: str,
        nome_contrato: str,
        user_id: str,
        descricao: Optional[str] = None,
        tipo_contrato: Optional[str] = None
    ) -> Dict[str, Any]:
        content = await self._read_upload(file)
        client, _ = self._client()

        try:
            uploaded = self._upload_remote(client, file, content)
        except openai.OpenAIError as e:
            logger.error(f"OpenAI upload failed: {e}")
            raise ServiceError(500, str(e))

        try:
            result = self.supabase.table("kitchen_contracts").insert({
                "kitchen_id": kitchen_id,
                "file_id": uploaded.id,
                "nome_contrato": nome_contrato,
                "descricao": descricao or None,
                "tipo_contrato": tipo_contrato or "outros",
                "nome_arquivo": file.filename,
                "tipo_arquivo": file.content_type,
                "tamanho_bytes": len(content),
                "criado_por": user_id,
            }).execute()
            if not result.data:
                raise ServiceError(500, "Failed to save contract")
        except Exception as e:
            logger.error(f"Error saving contract: {e}")
            self._discard_remote(client, uploaded.id)
            if isinstance(e, ServiceError):
                raise
            raise ServiceError(500, str(e))

        logger.info(f"Contract {result.data[0]['id']} uploaded to kitchen {kitchen_id}")
        return {"success": True, "contract": ContractResponse(**result.data[0]).model_dump(mode="json")}

    def delete_contract(self, contract: Dict[str, Any]) -> Dict[str, Any]:
        """Delete the row; a failure removing the OpenAI file is only logged"""
        client, _ = self._client()
        if contract.get("file_id"):
            self._discard_remote(client, contract["file_id"])
        try:
            self.supabase.table("kitchen_contracts")\
                .delete()\
                .eq("id", contract["id"])\
                .execute()
        except Exception as e:
            logger.error(f"Error deleting contract {contract['id']}: {e}")
            raise ServiceError(500, str(e))
        return {"success": True, "message": "Contract deleted successfully"}
