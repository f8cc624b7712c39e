# backend/agenda/constants.py
"""
Values stored by the dashboard in the business locale (pt-BR).
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = "Pendente"
    CONFIRMED = "Confirmado"
    COMPLETED = "Concluído"
    CANCELLED = "Cancelado"


# 0 = Sunday .. 6 = Saturday
WEEKDAY_LABELS = ("Domingo", "Segunda", "Terça", "Quarta", "Quinta", "Sexta", "Sábado")

# Statuses that still expect the client to show up
REMINDABLE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)
