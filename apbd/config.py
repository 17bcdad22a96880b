"""Runtime settings for the dashboard.

Everything comes from the environment so that no backend credentials live in
the source tree. ``APBD_*`` names win over the plain ``SUPABASE_*`` ones.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from apbd.domain import TABLE


def _first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value:
            return value.strip()
    return None


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    table: str = TABLE
    max_rows: int = 100
    import_chunk: int = 100
    log_level: str = "INFO"

    @property
    def has_backend(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            supabase_url=_first(env, "APBD_SUPABASE_URL", "SUPABASE_URL"),
            supabase_key=_first(env, "APBD_SUPABASE_KEY", "SUPABASE_KEY"),
            table=_first(env, "APBD_TABLE") or TABLE,
            max_rows=_positive_int(env, "APBD_MAX_ROWS", 100),
            import_chunk=_positive_int(env, "APBD_IMPORT_CHUNK", 100),
            log_level=(_first(env, "APBD_LOG_LEVEL") or "INFO").upper(),
        )
