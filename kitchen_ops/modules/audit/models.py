# Supabase table: audit_logs
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

audit_logs:
- id: uuid (primary key)
- user_id: uuid (nullable, references profiles.id)
- kitchen_id: uuid (nullable, references kitchens.id)
- recurso: text (not null) - resource name, e.g. "tasks", "whatsapp_notification"
- recurso_id: text (nullable) - id of the affected row
- acao: text (not null) - action, e.g. "created", "reminder_sent"
- payload: jsonb (nullable)
- criado_em: timestamp (default: now())

Rows are written by database triggers (CRUD on tasks, projects, ...) and by
this service (notifications, reminders, assignments). Visibility only: nothing
reads them back to drive behaviour.
"""
