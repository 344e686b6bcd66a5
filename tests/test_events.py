from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from conftest import RecordingMailer
from rcrpm.core.config import Settings
from rcrpm.events import notifications
from rcrpm.events.bus import Event, EventBus, HandlerContext, deliver_in_background, event_bus
from rcrpm.notifications import templates
from rcrpm.notifications.mailer import SmtpMailer, html_to_text


def test_dispatch_runs_every_handler_and_counts_them() -> None:
    bus = EventBus(max_attempts=1)
    seen: list[str] = []

    @bus.on("app/sample")
    def first(event: Event, context: HandlerContext) -> None:
        seen.append("first:" + event.data["value"])

    @bus.on("app/sample")
    def second(event: Event, context: HandlerContext) -> None:
        seen.append("second:" + event.data["value"])

    handled = bus.dispatch(Event("app/sample", {"value": "x"}), HandlerContext())

    assert handled == 2
    assert seen == ["first:x", "second:x"]
    assert bus.dispatch(Event("app/unknown"), HandlerContext()) == 0


def test_failing_handler_is_retried_then_raises() -> None:
    bus = EventBus(max_attempts=3)
    calls = {"flaky": 0, "broken": 0}

    @bus.on("app/flaky")
    def flaky(event: Event, context: HandlerContext) -> None:
        calls["flaky"] += 1
        if calls["flaky"] < 3:
            raise ConnectionError("smtp down")

    @bus.on("app/broken")
    def broken(event: Event, context: HandlerContext) -> None:
        calls["broken"] += 1
        raise ConnectionError("smtp down")

    assert bus.dispatch(Event("app/flaky"), HandlerContext()) == 1
    with pytest.raises(ConnectionError):
        bus.dispatch(Event("app/broken"), HandlerContext())
    assert calls == {"flaky": 3, "broken": 3}


def test_background_delivery_logs_instead_of_raising(caplog: pytest.LogCaptureFixture) -> None:
    bus = EventBus(max_attempts=1)

    @bus.on("app/broken")
    def broken(event: Event, context: HandlerContext) -> None:
        raise RuntimeError("boom")

    with caplog.at_level(logging.ERROR, logger="rcrpm.events.bus"):
        deliver_in_background(bus, Event("app/broken"), HandlerContext())

    assert "Delivery of event app/broken failed" in caplog.text


def test_every_notification_has_a_handler() -> None:
    names = [
        notifications.TASK_ASSIGNED,
        notifications.MATERIAL_PENDING,
        notifications.MATERIAL_APPROVED,
        notifications.MATERIAL_REJECTED,
        notifications.FINANCIAL_PENDING,
        notifications.FINANCIAL_APPROVED,
        notifications.FINANCIAL_REJECTED,
        notifications.HUMAN_CONFIRMED,
        notifications.HUMAN_NOTIFY_LEAD,
        notifications.WORKSPACE_INVITATION,
        notifications.CONTACT_GUEST_FORM,
    ]

    assert all(event_bus.handlers_for(name) for name in names)
    assert "clerk/user.created" in event_bus.event_names


def test_handler_sends_one_email_per_recipient() -> None:
    mailer = RecordingMailer()

    event_bus.dispatch(
        Event(
            notifications.FINANCIAL_PENDING,
            {
                "recipients": ["lead@rcr.test", "", "admin@rcr.test"],
                "contributor_name": "Rakoto",
                "project_name": "Lalana",
                "amount": "1500000.00",
                "reference": "MVOLA-1",
                "link": None,
            },
        ),
        HandlerContext(mailer=mailer),
    )

    assert mailer.recipients() == ["lead@rcr.test", "admin@rcr.test"]
    assert "1 500 000 Ar" in mailer.outbox[0][2]


class FlakyMailer(RecordingMailer):
    """Fails the first send to one address."""

    def __init__(self, failing: str) -> None:
        super().__init__()
        self.failing = failing
        self.failures = 0

    def send(self, *, to: str, subject: str, html: str) -> bool:
        if to == self.failing and self.failures == 0:
            self.failures += 1
            raise ConnectionError("smtp down")
        return super().send(to=to, subject=subject, html=html)


def test_retry_does_not_resend_to_reached_recipients() -> None:
    mailer = FlakyMailer(failing="admin@rcr.test")
    bus = EventBus(max_attempts=3)
    bus.on(notifications.MATERIAL_PENDING)(notifications.notify_material_pending)

    handled = bus.dispatch(
        Event(
            notifications.MATERIAL_PENDING,
            {
                "recipients": ["lead@rcr.test", "admin@rcr.test"],
                "contributor_name": "Rakoto",
                "project_name": "Fanadiovana tsena",
                "resource_name": "Kifafa",
                "quantity": 3,
                "message": None,
                "link": None,
            },
        ),
        HandlerContext(mailer=mailer),
    )

    assert handled == 1
    assert mailer.failures == 1
    assert mailer.recipients() == ["lead@rcr.test", "admin@rcr.test"]


def test_templates_escape_user_content() -> None:
    subject, html = templates.material_rejected(
        contributor_name="<b>Eve</b>",
        project_name="Tetikasa",
        resource_name="Kifafa",
        quantity=2,
        reason="<script>alert(1)</script>",
    )

    assert subject == "Contribution non retenue"
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "&lt;b&gt;Eve&lt;/b&gt;" in html


def test_format_amount_groups_thousands() -> None:
    assert templates.format_amount("1500000.00") == "1 500 000 Ar"
    assert templates.format_amount(250) == "250 Ar"


def test_unconfigured_mailer_skips_delivery() -> None:
    mailer = SmtpMailer(Settings(sender_email="", smtp_host=""))

    assert mailer.send(to="someone@rcr.test", subject="Test", html="<p>Salama</p>") is False


def test_html_to_text_strips_markup() -> None:
    assert html_to_text("<p>Salama</p><p>Tompoko<br>Misaotra</p>") == "Salama\nTompoko\nMisaotra"


def test_guest_contact_form_is_forwarded(client: TestClient, mailer: RecordingMailer) -> None:
    payload = {
        "full_name": "Rasoa Vololona",
        "region": "Analamanga",
        "district": "Antananarivo Renivohitra",
        "whatsapp": "+261341234567",
        "reason": "Te hiditra ho mpikambana",
        "is_member": "Tsia",
        "recipient_email": "contact@rcr.test",
    }

    response = client.post("/api/contact/send-guest-form", json=payload)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["received_at"]
    assert mailer.recipients() == ["contact@rcr.test"]
    assert mailer.subjects() == ["Fangatahana vaovao: Rasoa Vololona"]


def test_guest_contact_form_requires_every_field(client: TestClient, mailer: RecordingMailer) -> None:
    response = client.post(
        "/api/contact/send-guest-form",
        json={"full_name": "Rasoa", "recipient_email": "contact@rcr.test"},
    )

    assert response.status_code == 422
    assert mailer.outbox == []
