# No tables of its own.
# Reads profiles (nome, telefone, email) and tasks (with projects(nome)),
# writes audit_logs rows (recurso "whatsapp_notification" / "test_notification").

"""
Evolution API payloads used by this module:

GET  /instance/fetchInstances
  -> [{"instance": {"instanceName": "...", "state": "open"}}, ...]
     (older gateway versions return the fields flat: {"instanceName", "state"})

POST /message/sendText/{instance}
  body: {"number": "5511999999999", "text": "..."}
  -> {"key": {"id": "<message id>", ...}, ...}
"""
