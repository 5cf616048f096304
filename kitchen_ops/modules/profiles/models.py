# Supabase tables: profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id for users that signed up)
- nome: text (not null)
- email: text (unique, not null)
- telefone: text (nullable, unique) - WhatsApp number
- hora_inicio: time (nullable) - start of the work day, defaults to 08:00 when unset
- hora_fim: time (nullable) - end of the work day, defaults to 17:00 when unset
- ativo: boolean (default: true)
- criado_em: timestamp (default: now())
- atualizado_em: timestamp (nullable)

Note: Authentication data (password, tokens) is stored in auth.users table
managed by Supabase Auth. This table only stores profile information; the
per-kitchen roles of a profile live in user_kitchen_roles.
"""
