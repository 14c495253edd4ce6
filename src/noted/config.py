from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_PORT = 8080
DEFAULT_DATA_DIR = Path.home() / ".noted"
CALENDAR_COOLDOWN = 30.0  # seconds
TOAST_TTL = 3.0  # seconds


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class Settings:
    api_port: int = DEFAULT_PORT
    port_file: Path | None = None
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    calendar_cooldown: float = CALENDAR_COOLDOWN
    toast_ttl: float = TOAST_TTL

    @classmethod
    def from_env(cls) -> "Settings":
        """Read NOTED_* variables. Callers load .env beforehand."""
        port_file = os.environ.get("NOTED_PORT_FILE", "")
        data_dir = os.environ.get("NOTED_DATA_DIR", "")
        return cls(
            api_port=int(_float_env("NOTED_API_PORT", DEFAULT_PORT)),
            port_file=Path(port_file).expanduser() if port_file else None,
            data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
            calendar_cooldown=_float_env("NOTED_CALENDAR_COOLDOWN", CALENDAR_COOLDOWN),
            toast_ttl=_float_env("NOTED_TOAST_TTL", TOAST_TTL),
        )

    @property
    def theme_path(self) -> Path:
        return self.data_dir / "theme"
