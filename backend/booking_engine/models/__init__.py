from .generated import (
    Base,
    Bookings,
    ProviderScheduleOverrides,
    ProviderSchedules,
    ProviderServices,
    Providers,
    Services,
)

__all__ = [
    "Base",
    "Bookings",
    "ProviderScheduleOverrides",
    "ProviderSchedules",
    "ProviderServices",
    "Providers",
    "Services",
]
