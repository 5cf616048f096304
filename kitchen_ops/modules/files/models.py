# Supabase tables: project_files, task_files
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

project_files:
- id: uuid (primary key)
- project_id: uuid (not null, references projects.id on delete cascade)
- nome_arquivo: text (not null, storage name: <timestamp>.<ext>)
- nome_original: text (not null, name sent by the client)
- tipo_arquivo: text (MIME type)
- tamanho_bytes: bigint
- file_path: text (not null, path inside the bucket: projects/<project_id>/<timestamp>.<ext>)
- uploaded_by: uuid (references profiles.id)
- criado_em: timestamp (default: now())
- ativo: boolean (default: true, false after soft delete)

task_files:
- same columns with task_id (references tasks.id on delete cascade) instead of project_id
- file_path: tasks/<task_id>/<timestamp>.<ext>

Storage buckets (Supabase Storage): project-files, task-files.
When S3 is configured the same paths are used as object keys under <bucket>/.
"""
