"""
Tests for services/reminders/checker.py and /reminders endpoints.
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from agenda.models import Appointments, Businesses
from agenda.routers.reminders import get_sender
from agenda.main import app
from agenda.services.reminders import mark_reminder_sent, process_due_reminders
from agenda.services.whatsapp import WhatsAppSendError

from .factories import add_appointment

TODAY = "2031-03-03"
TOMORROW = "2031-03-04"

# São Paulo is UTC-3: 15:05 UTC = 12:05 local
NOON_LOCAL = datetime(2031, 3, 3, 15, 5, tzinfo=timezone.utc)
EVENING_LOCAL = datetime(2031, 3, 3, 22, 5, tzinfo=timezone.utc)


class RecordingSender:
    def __init__(self, on_send=None):
        self.sent = []
        self.on_send = on_send

    def send_text(self, config, phone, text):
        self.sent.append((config.instance_name, phone, text))
        if self.on_send:
            self.on_send()


class FailingSender:
    def send_text(self, config, phone, text):
        raise WhatsAppSendError("503: instance disconnected")


def flag(db, appt):
    db.expire_all()
    return db.get(Appointments, appt.id).reminder_sent


def test_sends_due_same_day_reminder(db, salon):
    appt = add_appointment(db, salon, TODAY, "14:00")
    sender = RecordingSender()

    results = process_due_reminders(db, sender, now=NOON_LOCAL)

    assert results == [{"appointment_id": appt.id, "status": "sent"}]
    assert flag(db, appt) == 1
    instance, phone, text = sender.sent[0]
    assert instance == "salao"
    assert "Maria!" in text
    assert "hoje, às *14:00*" in text
    assert "Serviço: Corte com Ana" in text
    assert text.startswith("🔔 Lembrete Automático")


def test_sends_previous_day_reminder_for_early_appointment(db, salon):
    appt = add_appointment(db, salon, TOMORROW, "08:00")
    sender = RecordingSender()

    results = process_due_reminders(db, sender, now=EVENING_LOCAL)

    assert results == [{"appointment_id": appt.id, "status": "sent"}]
    assert "amanhã" in sender.sent[0][2]


def test_not_due_yet_is_left_out(db, salon):
    appt = add_appointment(db, salon, TODAY, "18:00")
    sender = RecordingSender()

    assert process_due_reminders(db, sender, now=NOON_LOCAL) == []
    assert sender.sent == []
    assert flag(db, appt) == 0


def test_failed_send_releases_claim(db, salon):
    appt = add_appointment(db, salon, TODAY, "14:00")

    results = process_due_reminders(db, FailingSender(), now=NOON_LOCAL)

    assert results == [{"appointment_id": appt.id, "status": "failed", "error": "503: instance disconnected"}]
    assert flag(db, appt) == 0


def test_missing_phone_is_skipped(db, salon):
    appt = add_appointment(db, salon, TODAY, "14:00", client_phone=None)

    results = process_due_reminders(db, RecordingSender(), now=NOON_LOCAL)

    assert results == [{"appointment_id": appt.id, "status": "skipped", "reason": "no_config_or_phone"}]
    assert flag(db, appt) == 0


def test_missing_evolution_config_is_skipped(db, salon):
    salon["business"].evolution_api_config = '{"serverUrl": "https://evo.example.com"}'
    db.commit()
    add_appointment(db, salon, TODAY, "14:00")

    results = process_due_reminders(db, RecordingSender(), now=NOON_LOCAL)

    assert results[0]["status"] == "skipped"


def test_business_without_automatic_reminders(db, salon):
    salon["business"].automatic_reminders = 0
    db.commit()
    add_appointment(db, salon, TODAY, "14:00")

    assert process_due_reminders(db, RecordingSender(), now=NOON_LOCAL) == []


def test_cancelled_and_completed_are_ignored(db, salon):
    add_appointment(db, salon, TODAY, "14:00", status="Cancelado")
    add_appointment(db, salon, TODAY, "14:00", status="Concluído")

    assert process_due_reminders(db, RecordingSender(), now=NOON_LOCAL) == []


def test_same_day_switch_off_sends_nothing(db, salon):
    salon["business"].reminder_config = '{"same_day_enabled": false, "previous_day_enabled": true}'
    db.commit()
    add_appointment(db, salon, TOMORROW, "08:00")

    assert process_due_reminders(db, RecordingSender(), now=EVENING_LOCAL) == []


def test_bad_appointment_does_not_abort_pass(db, salon):
    bad = add_appointment(db, salon, TODAY, "99:99")
    good = add_appointment(db, salon, TODAY, "14:00")

    results = process_due_reminders(db, RecordingSender(), now=NOON_LOCAL)

    by_id = {r["appointment_id"]: r for r in results}
    assert by_id[bad.id]["status"] == "failed"
    assert by_id[good.id]["status"] == "sent"


def test_second_pass_does_not_resend(db, salon):
    add_appointment(db, salon, TODAY, "14:00")
    sender = RecordingSender()

    process_due_reminders(db, sender, now=NOON_LOCAL)
    assert process_due_reminders(db, sender, now=NOON_LOCAL) == []
    assert len(sender.sent) == 1


def test_overlapping_pass_during_send_does_not_double_send(db, session_factory, salon):
    add_appointment(db, salon, TODAY, "14:00")
    nested_results = []

    def overlapping_pass():
        other = session_factory()
        try:
            nested_results.extend(process_due_reminders(other, inner, now=NOON_LOCAL))
        finally:
            other.close()

    inner = RecordingSender()
    outer = RecordingSender(on_send=overlapping_pass)

    results = process_due_reminders(db, outer, now=NOON_LOCAL)

    assert [r["status"] for r in results] == ["sent"]
    assert nested_results == []
    assert len(outer.sent) + len(inner.sent) == 1

def test_outcomes_kept_when_failed_appointment_vanishes(db, session_factory, salon, monkeypatch):
    from agenda.services.reminders import checker

    first = add_appointment(db, salon, TODAY, "14:00")
    second = add_appointment(db, salon, TODAY, "14:30")
    first_id, second_id = first.id, second.id
    real_policy = checker.should_send_reminder_now

    def policy(appt, config, now):
        if appt.id != second_id:
            return real_policy(appt, config, now)
        # Row disappears, so reloading the instance after rollback fails
        other = session_factory()
        other.query(Appointments).filter(Appointments.id == second_id).delete()
        other.commit()
        other.close()
        raise ValueError("storage hiccup")

    monkeypatch.setattr(checker, "should_send_reminder_now", policy)

    results = process_due_reminders(db, RecordingSender(), now=NOON_LOCAL)

    assert results == [
        {"appointment_id": first_id, "status": "sent"},
        {"appointment_id": second_id, "status": "failed", "error": "storage hiccup"},
    ]


def test_conditional_write_applies_once(db, salon):
    appt = add_appointment(db, salon, TODAY, "14:00")
    assert mark_reminder_sent(db, appt.id) is True
    assert mark_reminder_sent(db, appt.id) is False


def test_fixed_offset_business(db, salon):
    salon["business"].timezone = None
    db.commit()
    add_appointment(db, salon, TODAY, "14:00")

    results = process_due_reminders(db, RecordingSender(), now=NOON_LOCAL)
    assert [r["status"] for r in results] == ["sent"]


# ── Endpoints ────────────────────────────────────────────────────────────


def test_manual_send_endpoint(client, db, salon):
    appt = add_appointment(db, salon, TOMORROW, "16:00")
    sender = RecordingSender()
    app.dependency_overrides[get_sender] = lambda: sender

    resp = client.post(f"/reminders/{appt.id}/send")
    assert resp.status_code == 200
    assert resp.json() == {"appointmentId": appt.id, "status": "sent"}
    assert len(sender.sent) == 1
    assert sender.sent[0][2].startswith("🔔 Lembrete Manual")

    resp = client.post(f"/reminders/{appt.id}/send")
    assert resp.status_code == 409


def test_manual_send_unknown_appointment(client, salon):
    app.dependency_overrides[get_sender] = lambda: RecordingSender()
    assert client.post("/reminders/999/send").status_code == 404


def test_process_endpoint_shape(client, db, salon):
    other = Businesses(name="Sem lembretes", slug="sem-lembretes", automatic_reminders=0)
    db.add(other)
    db.commit()
    app.dependency_overrides[get_sender] = lambda: RecordingSender()

    resp = client.post("/reminders/process")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert isinstance(body["processed"], list)


def test_process_endpoint_reports_camel_case_outcomes(client, db, salon):
    salon["business"].reminder_config = '{"previous_day_enabled": false}'
    db.commit()
    # Appointment two hours from now: its same-day target is "now"
    appt_at = datetime.now(ZoneInfo("America/Sao_Paulo")) + timedelta(hours=2)
    appt = add_appointment(db, salon, appt_at.strftime("%Y-%m-%d"), appt_at.strftime("%H:%M"))
    sender = RecordingSender()
    app.dependency_overrides[get_sender] = lambda: sender

    resp = client.post("/reminders/process")
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "processed": [{"appointmentId": appt.id, "status": "sent"}],
    }
    assert len(sender.sent) == 1


# ── Locked pass ──────────────────────────────────────────────────────────


class FakeLockRedis:
    """Single-key stand-in for the run lock: SET NX and compare-and-delete."""

    def __init__(self, holder=None):
        self.holder = holder

    @property
    def held(self):
        return self.holder is not None

    def set(self, key, value, nx=False, ex=None):
        if nx and self.held:
            return None
        self.holder = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.holder == token:
            self.holder = None
            return 1
        return 0


def test_run_pass_skips_when_lock_held(monkeypatch):
    from agenda.services.reminders import checker

    monkeypatch.setattr(checker, "redis_client", FakeLockRedis(holder="other-worker"))
    assert checker.run_reminder_pass() is None


def test_run_pass_releases_lock(monkeypatch, session_factory, salon):
    from agenda.services.reminders import checker

    lock = FakeLockRedis()
    monkeypatch.setattr(checker, "redis_client", lock)
    monkeypatch.setattr(checker, "SessionLocal", session_factory)

    assert checker.run_reminder_pass() == []
    assert lock.held is False


def test_health_reports_redis_down(client, monkeypatch):
    from agenda import main

    class DownRedis:
        def ping(self):
            raise ConnectionError("refused")

    monkeypatch.setattr(main, "redis_client", DownRedis())
    assert client.get("/health").json() == {"redis": False}


def test_run_pass_keeps_lock_taken_over_by_another_worker(monkeypatch, session_factory, salon):
    from agenda.services.reminders import checker

    lock = FakeLockRedis()
    monkeypatch.setattr(checker, "redis_client", lock)
    monkeypatch.setattr(checker, "SessionLocal", session_factory)

    def slow_pass(db, sender, now=None):
        # Our lock expired mid-pass and another worker acquired it
        lock.holder = "other-worker"
        return []

    monkeypatch.setattr(checker, "process_due_reminders", slow_pass)

    assert checker.run_reminder_pass() == []
    assert lock.holder == "other-worker"
