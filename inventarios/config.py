import os


def _bool_env(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


class Config:
    BASE_DIR = os.path.dirname(os.path.dirname(__file__))

    BACKEND_URL = os.environ.get("BACKEND_URL")
    BACKEND_KEY = os.environ.get("BACKEND_KEY")
    BACKEND_REST_PATH = os.environ.get("BACKEND_REST_PATH", "/rest/v1")
    BACKEND_TIMEOUT_SECONDS = _int_env("BACKEND_TIMEOUT_SECONDS", 20)
    BACKEND_VERIFY_SSL = _bool_env("BACKEND_VERIFY_SSL", True)
    DB_AUTO_INIT = _bool_env("DB_AUTO_INIT", False)

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-inventarios")
    LOG_JSON = _bool_env("LOG_JSON", True)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    IVA_RATE = _float_env("IVA_RATE", 0.15)
    PAYMENT_DUE_SOON_DAYS = _int_env("PAYMENT_DUE_SOON_DAYS", 7)
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "PYG")


REQUIRED_BACKEND_SETTINGS = ("BACKEND_URL", "BACKEND_KEY")


def backend_kind(backend_url: str | None) -> str:
    value = str(backend_url or "").strip().lower()
    if value.startswith(("http://", "https://")):
        return "rest"
    if value.startswith(("postgres://", "postgresql://")):
        return "postgres"
    return "sqlite"


def missing_backend_settings(config) -> list[str]:
    return [name for name in REQUIRED_BACKEND_SETTINGS if not str(config.get(name) or "").strip()]
