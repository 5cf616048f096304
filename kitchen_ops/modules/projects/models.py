# Supabase table: projects
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

projects:
- id: uuid (primary key)
- kitchen_id: uuid (not null, references kitchens.id)
- nome: text (not null, 3-100 chars)
- descricao: text (nullable, max 500 chars)
- status: text (ATIVO | PAUSADO | CONCLUIDO, default: ATIVO)
- inicio_previsto: date (nullable)
- fim_previsto: date (nullable, >= inicio_previsto)
- criado_por: uuid (nullable, references profiles.id)
- criado_em: timestamp (default: now())
- atualizado_em: timestamp (nullable)

Tasks and project_files reference projects.id with on delete cascade.
"""
