# Import all models to ensure they are registered with SQLAlchemy
from . import (
    appointment,
    service,
    shop_settings,
)

__all__ = [
    "appointment",
    "service",
    "shop_settings",
]
