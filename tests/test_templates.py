"""Tests for reminder message formatting."""

from __future__ import annotations

import uuid
from datetime import date, time

from src.models.enums import ReminderType
from src.reminders.templates import DEFAULT_TEMPLATES, render_reminder, render_template
from src.schemas.reminders import AppointmentSummary


def _appointment(**overrides) -> AppointmentSummary:
    fields = {
        "appointment_id": uuid.uuid4(),
        "salon_id": uuid.uuid4(),
        "client_name": "Giulia",
        "client_phone": "+393331234567",
        "service": "Colore",
        "date": date(2026, 10, 20),
        "start_time": time(9, 5),
    }
    fields.update(overrides)
    return AppointmentSummary(**fields)


class TestRenderTemplate:
    def test_substitutes_known_placeholders(self):
        out = render_template("Ciao {clientName}, a domani!", {"clientName": "Giulia"})
        assert out == "Ciao Giulia, a domani!"

    def test_repeated_placeholder(self):
        assert render_template("{x}-{x}", {"x": "a"}) == "a-a"

    def test_unknown_placeholder_is_kept(self):
        assert render_template("Hi {nickname}", {"clientName": "Giulia"}) == "Hi {nickname}"

    def test_single_pass(self):
        """A value containing a placeholder is not expanded again."""
        out = render_template("{clientName} / {service}", {"clientName": "{service}", "service": "Taglio"})
        assert out == "{service} / Taglio"

    def test_no_placeholders(self):
        assert render_template("See you soon", {"clientName": "Giulia"}) == "See you soon"


class TestRenderReminder:
    def test_salon_template(self):
        template = "Ciao {clientName}! {service} il {date} alle {time}."
        out = render_reminder(template, _appointment(), ReminderType.TWENTY_FOUR_HOUR)
        assert out == "Ciao Giulia! Colore il 2026-10-20 alle 09:05."

    def test_blank_template_uses_default(self):
        out = render_reminder("   ", _appointment(), ReminderType.TWO_HOUR)
        assert out == render_template(
            DEFAULT_TEMPLATES[ReminderType.TWO_HOUR],
            {"clientName": "Giulia", "service": "Colore", "date": "2026-10-20", "time": "09:05"},
        )
        assert "Giulia" in out
        assert "09:05" in out

    def test_every_type_has_a_default(self):
        assert set(DEFAULT_TEMPLATES) == set(ReminderType)
