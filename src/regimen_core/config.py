import os
from dataclasses import dataclass
from pathlib import Path


def _positive_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a positive integer, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be a positive integer, got {raw!r}")
    return value


@dataclass(frozen=True)
class Config:
    log_format: str = "json"
    horizon_days: int = 730
    calendar_lookback_days: int = 90
    calendar_lookahead_days: int = 180
    state_file: Path | None = None

    @classmethod
    def from_env(cls) -> "Config":
        log_format = os.environ.get("REGIMEN_LOG_FORMAT", "json").strip().lower()
        if log_format not in {"json", "text"}:
            raise RuntimeError(f"REGIMEN_LOG_FORMAT must be 'json' or 'text', got {log_format!r}")

        state_file = os.environ.get("REGIMEN_STATE_FILE")
        return cls(
            log_format=log_format,
            horizon_days=_positive_int_env("REGIMEN_HORIZON_DAYS", 730),
            calendar_lookback_days=_positive_int_env("REGIMEN_CALENDAR_LOOKBACK_DAYS", 90),
            calendar_lookahead_days=_positive_int_env("REGIMEN_CALENDAR_LOOKAHEAD_DAYS", 180),
            state_file=Path(state_file) if state_file else None,
        )
