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


class Config:
    BASE_DIR = os.path.dirname(os.path.dirname(__file__))
    DATABASE_URL = os.environ.get("DATABASE_URL")
    DATABASE_DIR = None if DATABASE_URL else os.path.join(BASE_DIR, "database")
    DB_PATH = DATABASE_URL or os.path.join(DATABASE_DIR, "licitacoes.db")
    DB_AUTO_INIT = _bool_env("DB_AUTO_INIT", False)

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-licitacoes")
    AUTH_ENABLED = _bool_env("AUTH_ENABLED", True)
    ACCESS_TOKEN_TTL_SECONDS = _int_env("ACCESS_TOKEN_TTL_SECONDS", 900)

    LOG_JSON = _bool_env("LOG_JSON", True)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    BLOB_STORAGE_DIR = os.environ.get("BLOB_STORAGE_DIR") or os.path.join(BASE_DIR, "storage")
    DEFAULT_TENDER_STATUS = os.environ.get("DEFAULT_TENDER_STATUS", "analise_interna")

    TENDERS_API_BASE_URL = os.environ.get("TENDERS_API_BASE_URL", "http://127.0.0.1:5000/api")
    TENDERS_API_TIMEOUT_SECONDS = _int_env("TENDERS_API_TIMEOUT_SECONDS", 20)
    CLIENT_CACHE_TTL_SECONDS = _int_env("CLIENT_CACHE_TTL_SECONDS", 300)
    CLIENT_DEBOUNCE_MS = _int_env("CLIENT_DEBOUNCE_MS", 300)

    def __init__(self):
        env = os.environ.get("FLASK_ENV", "development").lower()
        if env == "production" and not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL nao definida para ambiente de producao.")
        if env == "production" and self.SECRET_KEY == "dev-secret-licitacoes":
            raise RuntimeError("SECRET_KEY insegura para producao.")
