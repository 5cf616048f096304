# Accounts live in Supabase Auth (auth.users); this service keeps no table of its own.
#
# A database trigger on auth.users insert creates the matching row in
# public.profiles, copying "nome" and "telefone" from the sign-up metadata.
# Login is refused while profiles.ativo is false.
#
# Kitchen roles are not stored in auth metadata; they live in user_kitchen_roles
# (see kitchen_ops.modules.kitchens.models). The only auth metadata read here is
# app_metadata.type == "super_user", which grants access to every kitchen.
