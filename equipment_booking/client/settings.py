import os

from dotenv import load_dotenv

load_dotenv()


def _optional_float_env(name: str) -> float | None:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be a number, got {raw!r}") from exc
    return value if value > 0 else None


API_BASE_URL = (os.environ.get("EQUIPMENT_API_BASE_URL") or "http://localhost:8080/api").strip().rstrip("/")
API_TIMEOUT_SECONDS = _optional_float_env("EQUIPMENT_API_TIMEOUT_SECONDS")

OPERATOR_CONSOLE_PASSWORD = (os.environ.get("OPERATOR_CONSOLE_PASSWORD") or "").strip()
OPERATOR_SESSION_TTL_SECONDS = int(os.environ.get("OPERATOR_SESSION_TTL_SECONDS") or str(60 * 60 * 12))
