# Supabase tables: task_reminders, reminder_settings
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

task_reminders:
- id: uuid (primary key)
- task_id: uuid (references tasks.id, on delete cascade)
- user_id: uuid (references profiles.id)
- reminder_type: text (DELEGACAO | INICIO_JORNADA | MEIO_JORNADA | FIM_JORNADA)
- scheduled_time: timestamptz (not null)
- sent: boolean (default: false)
- sent_at: timestamptz (nullable)
- created_at: timestamp (default: now())

reminder_settings (optional; defaults apply for missing rows):
- prioridade: text (primary key, ALTA | MEDIA | BAIXA)
- enabled: boolean (default: true)
- frequency: integer (1-3)
- atualizado_em: timestamp (nullable)

Dispatch reads task_reminders with the embedded tasks(..., projects(nome)) and
profiles(nome, telefone, email) relations.
"""
