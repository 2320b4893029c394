"""Engine configuration

Defaults suit a single desk install; every field can be overridden with a
ROOMY_<FIELD> environment variable (e.g. ROOMY_SLOT_INTERVAL_MINUTES=30).
"""
import os
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "ROOMY_"

DEFAULT_ROOMS = [
    "Study Room 1",
    "Study Room 2",
    "Study Room 3",
    "Study Room 4",
    "Study Room 5",
    "Conference Room",
    "LRE Room",
]


class Settings(BaseModel):
    """Runtime settings for the booking engine and its HTTP adapter"""

    # Storage
    rooms_file: Path = Path("data/reservations.json")
    users_file: Path = Path("data/users.json")
    default_rooms: List[str] = Field(default_factory=lambda: list(DEFAULT_ROOMS))

    # Time grid
    slot_interval_minutes: int = Field(60, gt=0)
    day_start: str = "08:00"
    day_end: str = "23:00"

    # Auth (In production, set the secret through the environment)
    secret_key: str = "change-me-roomy-secret-key"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(30, gt=0)
    min_password_length: int = Field(8, ge=1)

    # Engine behaviour
    max_undo_history: Optional[int] = Field(None, gt=0)
    notification_outbox_size: int = Field(500, gt=0)

    # Maintenance timers
    enable_maintenance: bool = True
    sweep_interval_seconds: float = Field(300.0, gt=0)

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ROOMY_* environment variables"""
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is None:
                continue
            if name == "default_rooms":
                overrides[name] = [room.strip() for room in value.split(",") if room.strip()]
            else:
                overrides[name] = value
        return cls(**overrides)
