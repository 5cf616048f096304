# Supabase tables: tasks, task_comments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

tasks:
- id: uuid (primary key)
- project_id: uuid (not null, references projects.id, on delete cascade)
- titulo: text (not null)
- descricao: text (nullable)
- prioridade: text (BAIXA | MEDIA | ALTA, default: MEDIA)
- status: text (BACKLOG | EM_ANDAMENTO | EM_REVISAO | CONCLUIDA, default: BACKLOG)
- responsavel_id: uuid (nullable, references profiles.id, fk name tasks_responsavel_id_fkey)
- prazo: date (nullable)
- parent_task_id: uuid (nullable, references tasks.id) - subtasks
- criado_por: uuid (nullable, references profiles.id)
- criado_em: timestamp (default: now())
- atualizado_em: timestamp (nullable)

task_comments:
- id: uuid (primary key)
- task_id: uuid (references tasks.id, on delete cascade)
- author_id: uuid (references profiles.id)
- texto: text (not null)
- criado_em: timestamp (default: now())
"""
