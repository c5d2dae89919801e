# ----------------------------------------------------------------
# Import configuration variables to be used throughout the project
# ----------------------------------------------------------------
import os
from dotenv import load_dotenv

# Load .env (allow container env to override file values)
load_dotenv(override=True)


def _rstrip_slash(s: str) -> str:
    return (s or "").rstrip("/")


def _get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "on", "y"}


def _get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "") or default)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, "") or default)
    except ValueError:
        return default


class Settings:
    # ── Database ─────────────────────────────────────────────────────────────
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/ohm.db")

    # ── Cron ─────────────────────────────────────────────────────────────────
    # Bearer secret expected on /api/cron/* (empty = cron endpoints locked)
    CRON_SECRET: str = os.getenv("CRON_SECRET", "")

    # ── Bytez (text-to-image) ────────────────────────────────────────────────
    BYTEZ_API_KEY: str = os.getenv("BYTEZ_API_KEY", "")
    BYTEZ_API_URL: str = _rstrip_slash(os.getenv("BYTEZ_API_URL", "https://api.bytez.com/models/v2"))
    BYTEZ_MODEL: str = os.getenv("BYTEZ_MODEL", "google/imagen-4.0-ultra-generate-001")
    BYTEZ_TIMEOUT: float = _get_float("BYTEZ_TIMEOUT", 120.0)

    # ── Diagram queue ────────────────────────────────────────────────────────
    # 60 per run at 1 req/sec keeps a once-a-minute cron inside the rate limit
    DIAGRAM_BATCH_LIMIT: int = _get_int("DIAGRAM_BATCH_LIMIT", 60)
    DIAGRAM_MIN_INTERVAL: float = _get_float("DIAGRAM_MIN_INTERVAL", 1.0)

    # In-process worker (use when no external cron hits /api/cron/process-diagrams)
    DIAGRAM_WORKER_ENABLED: bool = _get_bool("DIAGRAM_WORKER_ENABLED", False)
    DIAGRAM_WORKER_INTERVAL: float = _get_float("DIAGRAM_WORKER_INTERVAL", 60.0)

    # ── Diagram storage ──────────────────────────────────────────────────────
    # data directory is mounted: ./data ↔ /code/data (see docker-compose)
    DIAGRAM_STORAGE_DIR: str = os.getenv("DIAGRAM_STORAGE_DIR", "./data/circuit-diagrams")
    DIAGRAM_PUBLIC_BASE_URL: str = _rstrip_slash(os.getenv("DIAGRAM_PUBLIC_BASE_URL", "/static/circuit-diagrams"))
    # Where the Fritzing reference images live (references/<name>.png under it)
    DIAGRAM_REFERENCE_BASE_URL: str = _rstrip_slash(
        os.getenv("DIAGRAM_REFERENCE_BASE_URL", "")
        or (_rstrip_slash(os.getenv("DIAGRAM_PUBLIC_BASE_URL", "/static/circuit-diagrams")) + "/references")
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    # Comma-separated list in .env, e.g. "https://example.com, https://foo.bar"
    CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


settings = Settings()
