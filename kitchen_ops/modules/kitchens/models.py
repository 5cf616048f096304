# Supabase tables: kitchens, user_kitchen_roles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

kitchens:
- id: uuid (primary key)
- nome: text (not null)
- codigo: text (unique, not null) - short code, e.g. "CENTRA"
- endereco: text (nullable)
- ativo: boolean (default: true)
- criado_por: uuid (nullable, references profiles.id)
- criado_em: timestamp (default: now())
- atualizado_em: timestamp (nullable)

user_kitchen_roles:
- id: uuid (primary key)
- user_id: uuid (references profiles.id)
- kitchen_id: uuid (references kitchens.id, on delete cascade)
- role: text (ADMIN | SUPERVISORA | NUTRICIONISTA | AUX_ADM)
- criado_em: timestamp (default: now())
- unique (user_id, kitchen_id, role)

A user may hold several roles in the same kitchen; a kitchen is the tenant
boundary for projects, tasks, assistants and contracts.
"""
