# backend/agenda/services/reminders/formatters.py
"""
Reminder message text (pt-BR, WhatsApp markdown).
"""

from datetime import date, timedelta

from ..clock import parse_date


def _when(appt_date: date, today: date) -> str:
    if appt_date == today:
        return "hoje"
    if appt_date == today + timedelta(days=1):
        return "amanhã"
    return f"em {appt_date.strftime('%d/%m')}"


def format_reminder_message(
    business_name: str,
    client_name: str | None,
    appt_date: str,
    appt_time: str,
    today: date,
    service_name: str | None = None,
    professional_name: str | None = None,
    manual: bool = False,
) -> str:
    """Build the reminder text, e.g. "... é amanhã, às *08:00*"."""
    first_name = (client_name or "").split(" ")[0] or "Cliente"
    when = _when(parse_date(appt_date), today)
    service = service_name or "serviço"
    with_pro = f" com {professional_name}" if professional_name else ""
    header = "🔔 Lembrete Manual" if manual else "🔔 Lembrete Automático"

    return (
        f"{header}\n\n"
        f"Olá {first_name}! Seu horário na *{business_name}* é {when}, às *{appt_time[:5]}*.\n\n"
        f"Serviço: {service}{with_pro}\n\n"
        f"Caso não possa comparecer, por favor nos avise."
    )
