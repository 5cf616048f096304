"""
Tests for reminder settings, scheduling, dispatch and the /reminders routes.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from kitchen_ops.config import settings
from kitchen_ops.core.errors import ServiceError
from kitchen_ops.modules.reminders import scheduler
from kitchen_ops.modules.reminders.schemas import ProcessResult, ReminderSettingsUpdate
from kitchen_ops.modules.reminders.service import ReminderService
from kitchen_ops.modules.whatsapp.service import WhatsAppService

from tests.conftest import API, AUX_ID, NUTRI_ID, TASK_ID, login_as

# 09:00 in Sao Paulo
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

TASK = {"id": TASK_ID, "titulo": "Revisar fichas técnicas", "prioridade": "ALTA"}
ASSIGNEE = {"id": NUTRI_ID, "nome": "Bruna Nutri", "hora_inicio": "08:00", "hora_fim": "16:00"}


@pytest.fixture
def service(db, evolution):
    return ReminderService(db, whatsapp=WhatsAppService(db, evolution))


def _due(db, reminder_id, user_id=NUTRI_ID, telefone="11988887777", scheduled="2026-03-02T11:00:00+00:00"):
    return db.add(
        "task_reminders",
        id=reminder_id,
        task_id=TASK_ID,
        user_id=user_id,
        reminder_type="INICIO_JORNADA",
        scheduled_time=scheduled,
        sent=False,
        tasks={
            "id": TASK_ID, "titulo": "Revisar fichas técnicas", "descricao": None,
            "prioridade": "ALTA", "prazo": "2026-03-10", "projects": {"nome": "Cardápio de Verão"},
        },
        profiles={"nome": "Bruna Nutri", "telefone": telefone, "email": "bruna@cozinha.com"},
    )


class TestReminderSettings:
    def test_defaults(self, service):
        result = service.get_settings()
        assert {p: s.frequency for p, s in result.items()} == {"ALTA": 3, "MEDIA": 2, "BAIXA": 1}
        assert result["MEDIA"].times == ["inicio", "meio"]

    def test_stored_rows_override_defaults(self, service, db):
        db.add("reminder_settings", prioridade="ALTA", enabled=False, frequency=7)
        result = service.get_settings()
        assert result["ALTA"].enabled is False
        assert result["ALTA"].frequency == 3

    def test_unavailable_table_falls_back(self, service, db):
        db.errors[("reminder_settings", "select")] = Exception("relation does not exist")
        assert service.get_settings()["BAIXA"].frequency == 1

    def test_update_upserts_per_priority(self, service, db):
        service.update_settings(ReminderSettingsUpdate(MEDIA={"frequency": 3}))
        result = service.update_settings(ReminderSettingsUpdate(MEDIA={"enabled": False}))
        assert result["MEDIA"].frequency == 3
        assert result["MEDIA"].enabled is False
        assert len(db.rows("reminder_settings")) == 1


class TestScheduleTaskReminders:
    def test_slots_in_business_timezone(self, service, db):
        rows = service.schedule_task_reminders(TASK, ASSIGNEE, now=NOW)

        assert [(r["reminder_type"], r["scheduled_time"]) for r in rows] == [
            # 08:00 already passed today, so it moves to tomorrow
            ("INICIO_JORNADA", "2026-03-03T11:00:00+00:00"),
            ("MEIO_JORNADA", "2026-03-02T15:00:00+00:00"),
            ("FIM_JORNADA", "2026-03-02T19:00:00+00:00"),
        ]
        assert all(r["sent"] is False for r in rows)
        assert db.rows("audit_logs")[-1]["acao"] == "reminders_scheduled"

    def test_frequency_follows_priority(self, service):
        rows = service.schedule_task_reminders({**TASK, "prioridade": "BAIXA"}, ASSIGNEE, now=NOW)
        assert [r["reminder_type"] for r in rows] == ["INICIO_JORNADA"]

    def test_missing_schedule_uses_default_window(self, service):
        rows = service.schedule_task_reminders(
            {**TASK, "prioridade": "MEDIA"}, {"id": NUTRI_ID, "hora_inicio": None, "hora_fim": None}, now=NOW
        )
        # default window 08:00-17:00, midpoint 12:30 local
        assert rows[1]["scheduled_time"] == "2026-03-02T15:30:00+00:00"

    def test_replaces_unsent_reminders_only(self, service, db):
        db.add("task_reminders", id="old-unsent", task_id=TASK_ID, user_id=NUTRI_ID, sent=False)
        db.add("task_reminders", id="old-sent", task_id=TASK_ID, user_id=NUTRI_ID, sent=True)

        service.schedule_task_reminders(TASK, ASSIGNEE, now=NOW)

        ids = {r["id"] for r in db.rows("task_reminders")}
        assert "old-unsent" not in ids
        assert "old-sent" in ids
        assert len(ids) == 4

    def test_drops_other_users_pending_reminders(self, service, db):
        db.add("task_reminders", id="aux-unsent", task_id=TASK_ID, user_id=AUX_ID, sent=False)
        db.add("task_reminders", id="other-task", task_id="task-9", user_id=AUX_ID, sent=False)

        service.schedule_task_reminders(TASK, ASSIGNEE, now=NOW)

        ids = {r["id"] for r in db.rows("task_reminders") if r["user_id"] == AUX_ID}
        assert ids == {"other-task"}

    def test_cancel_pending_reminders(self, service, db):
        db.add("task_reminders", id="a", task_id=TASK_ID, user_id=AUX_ID, sent=False)
        db.add("task_reminders", id="b", task_id=TASK_ID, user_id=NUTRI_ID, sent=False)
        db.add("task_reminders", id="c", task_id=TASK_ID, user_id=NUTRI_ID, sent=True)

        assert service.cancel_pending_reminders(TASK_ID) == 2
        assert [r["id"] for r in db.rows("task_reminders")] == ["c"]

    def test_disabled_priority_schedules_nothing(self, service, db):
        db.add("reminder_settings", prioridade="ALTA", enabled=False, frequency=3)
        db.add("task_reminders", id="old-unsent", task_id=TASK_ID, user_id=NUTRI_ID, sent=False)

        assert service.schedule_task_reminders(TASK, ASSIGNEE, now=NOW) == []
        assert db.rows("task_reminders") == []


class TestProcessDueReminders:
    def test_nothing_due(self, service):
        result = service.process_due_reminders(now=NOW)
        assert result.success is True
        assert result.message == "No pending reminders"
        assert result.total == 0

    def test_sends_due_reminders(self, service, db, gateway):
        _due(db, "r1")
        _due(db, "future", scheduled="2026-03-02T18:00:00+00:00")

        result = service.process_due_reminders(now=NOW)

        assert (result.processed, result.errors, result.total) == (1, 0, 1)
        assert "🌅 *Lembrete - Início da Jornada*" in gateway.sent[0]["body"]["text"]
        sent = {r["id"]: r["sent"] for r in db.rows("task_reminders")}
        assert sent == {"r1": True, "future": False}
        assert "reminder_sent" in [row["acao"] for row in db.rows("audit_logs")]

    def test_user_without_phone_is_marked_sent(self, service, db, gateway):
        _due(db, "r1", user_id=AUX_ID, telefone=None)

        result = service.process_due_reminders(now=NOW)

        assert (result.processed, result.errors, result.total) == (0, 0, 1)
        assert gateway.sent == []
        assert db.rows("task_reminders")[0]["sent"] is True

    def test_gateway_failure_keeps_reminder_pending(self, service, db, gateway):
        gateway.send_status = 500
        _due(db, "r1")

        result = service.process_due_reminders(now=NOW)

        assert (result.processed, result.errors) == (0, 1)
        assert db.rows("task_reminders")[0]["sent"] is False
        assert db.rows("audit_logs")[-1]["acao"] == "reminder_failed"

    def test_batch_size(self, service, db, monkeypatch):
        monkeypatch.setattr(settings, "reminder_batch_size", 2)
        for i in range(3):
            _due(db, f"r{i}", scheduled=f"2026-03-02T1{i}:00:00+00:00")

        result = service.process_due_reminders(now=NOW)

        assert result.total == 2
        assert [r["sent"] for r in db.rows("task_reminders")] == [True, True, False]

    def test_fetch_failure(self, service, db):
        db.errors[("task_reminders", "select")] = Exception("timeout")
        with pytest.raises(ServiceError) as exc:
            service.process_due_reminders(now=NOW)
        assert exc.value.error == "Failed to fetch reminders"

    def test_status_counts(self, service, db):
        _due(db, "due")
        _due(db, "later", scheduled="2026-03-02T20:00:00+00:00")
        status = service.get_status(now=NOW)
        assert (status.pending_reminders, status.future_reminders) == (1, 1)


class TestScheduler:
    def test_job_logs_fetch_errors(self, db, monkeypatch):
        db.errors[("task_reminders", "select")] = Exception("timeout")
        monkeypatch.setattr(scheduler, "get_service_supabase", lambda: db)
        asyncio.run(scheduler.process_due_reminders_job())

    def test_job_with_nothing_due(self, db, monkeypatch):
        monkeypatch.setattr(scheduler, "get_service_supabase", lambda: db)
        asyncio.run(scheduler.process_due_reminders_job())
        assert ("task_reminders", "select") in db.calls


class TestReminderRoutes:
    def test_process_without_secret_configured(self, client, db):
        _due(db, "r1", scheduled="2020-01-01T08:00:00+00:00")
        response = client.post(f"{API}/reminders/process")
        assert response.status_code == 200
        assert response.json()["processed"] == 1

    def test_process_rejects_wrong_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "reminder_cron_secret", "s3cret")
        response = client.post(f"{API}/reminders/process", headers={"X-Cron-Secret": "nope"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid cron secret"}

    def test_process_accepts_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "reminder_cron_secret", "s3cret")
        response = client.get(f"{API}/reminders/process", headers={"X-Cron-Secret": "s3cret"})
        assert response.status_code == 200
        assert response.json()["status"]["pending_reminders"] == 0

    def test_trigger_is_admin_only(self, client, current_user):
        login_as(current_user, NUTRI_ID)
        response = client.post(f"{API}/reminders/trigger")
        assert response.status_code == 403
        assert response.json()["detail"] == "Administrator role required"

    def test_trigger(self, client):
        response = client.post(f"{API}/reminders/trigger")
        assert response.status_code == 200
        assert response.json()["result"]["message"] == "No pending reminders"

    def test_dispatch_runs_in_worker_thread(self, client, monkeypatch):
        seen = []

        def dispatch(self, now=None):
            try:
                asyncio.get_running_loop()
                seen.append("event loop")
            except RuntimeError:
                seen.append("worker")
            return ProcessResult(success=True, message="No pending reminders")

        monkeypatch.setattr(ReminderService, "process_due_reminders", dispatch)
        client.post(f"{API}/reminders/process")
        client.post(f"{API}/reminders/trigger")
        assert seen == ["worker", "worker"]

    def test_preview(self, client):
        response = client.get(f"{API}/reminders/preview", params={"inicio": "09:00", "fim": "18:00", "frequency": 2})
        assert response.status_code == 200
        assert response.json()["times"] == ["09:00", "13:30"]

    def test_preview_rejects_frequency_out_of_range(self, client):
        response = client.get(f"{API}/reminders/preview", params={"frequency": 4})
        assert response.status_code == 422

    def test_update_settings(self, client):
        response = client.put(f"{API}/reminders/settings", json={"BAIXA": {"frequency": 2}})
        assert response.status_code == 200
        assert response.json()["BAIXA"] == {"enabled": True, "frequency": 2, "times": ["inicio", "meio"]}
