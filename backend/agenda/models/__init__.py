from .generated import (
    Base,
    Businesses,
    Services,
    Professionals,
    Appointments,
    ProfessionalBlocks,
)

__all__ = [
    "Base",
    "Businesses",
    "Services",
    "Professionals",
    "Appointments",
    "ProfessionalBlocks",
]
