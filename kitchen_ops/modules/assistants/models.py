# Supabase tables: kitchen_assistants, ai_conversations, ai_files, kitchen_contracts, ai_settings
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

kitchen_assistants:
- id: uuid (primary key)
- kitchen_id: uuid (not null, references kitchens.id)
- nome: text (not null)
- descricao: text (nullable)
- instrucoes: text (nullable, system instructions sent when the remote assistant is created)
- assistant_id: text (nullable, OpenAI assistant id, set on first chat)
- ativo: boolean (default: true)
- criado_por: uuid (references profiles.id)
- criado_em: timestamp (default: now())
- atualizado_em: timestamp (nullable)

ai_conversations:
- id: uuid (primary key)
- kitchen_id: uuid (not null, references kitchens.id)
- user_id: uuid (not null, references profiles.id)
- assistant_id: uuid (nullable, references kitchen_assistants.id)
- thread_id: text (nullable, OpenAI thread id, set on first message)
- titulo: text (nullable)
- criado_em: timestamp (default: now())

ai_files:
- id: uuid (primary key)
- conversation_id: uuid (not null, references ai_conversations.id on delete cascade)
- file_id: text (not null, OpenAI file id)
- nome_original: text
- tipo_arquivo: text
- tamanho_bytes: bigint
- criado_em: timestamp (default: now())

kitchen_contracts:
- id: uuid (primary key)
- kitchen_id: uuid (not null, references kitchens.id)
- file_id: text (OpenAI file id)
- nome_contrato: text (not null)
- descricao: text (nullable)
- tipo_contrato: text (default: 'outros')
- nome_arquivo, tipo_arquivo: text
- tamanho_bytes: bigint
- ativo: boolean (default: true)
- criado_por: uuid (references profiles.id)
- criado_em: timestamp (default: now())

ai_settings (single row):
- id: uuid (primary key)
- openai_api_key: text (nullable)
- default_model: text (nullable)
- max_tokens: integer (nullable)
- temperature: numeric (nullable)
"""
