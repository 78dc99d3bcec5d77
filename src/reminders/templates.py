"""Reminder message formatting.

Templates use ``{placeholder}`` markers. Substitution is a single pass, so
a value that itself contains ``{...}`` is never expanded again. Unknown
placeholders are left as written.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from src.models.enums import ReminderType
from src.schemas.reminders import AppointmentSummary

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

DEFAULT_TEMPLATES: dict[ReminderType, str] = {
    ReminderType.TWENTY_FOUR_HOUR: (
        "Hi {clientName}, this is a reminder of your {service} appointment "
        "tomorrow ({date}) at {time}. See you soon!"
    ),
    ReminderType.TWO_HOUR: (
        "Hi {clientName}, your {service} appointment is today at {time}. See you soon!"
    ),
}


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Replace every known ``{name}`` in ``template`` with ``values[name]``."""
    return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def reminder_values(appointment: AppointmentSummary) -> dict[str, str]:
    """Placeholder values for an appointment reminder."""
    return {
        "clientName": appointment.client_name,
        "service": appointment.service,
        "date": appointment.date.isoformat(),
        "time": appointment.start_time.strftime("%H:%M"),
    }


def render_reminder(template: str, appointment: AppointmentSummary, reminder_type: ReminderType) -> str:
    """Render a salon template, falling back to the default when it is blank."""
    if not template.strip():
        template = DEFAULT_TEMPLATES[reminder_type]
    return render_template(template, reminder_values(appointment))
