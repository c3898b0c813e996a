from backend.app.models.settings import Settings
from backend.app.models.usage import UsageRecord

__all__ = [
    "Settings",
    "UsageRecord",
]
