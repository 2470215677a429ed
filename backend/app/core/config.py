import sys

from pydantic_settings import BaseSettings

_ENV_FILE = None if "pytest" in sys.modules else ".env"


class Settings(BaseSettings):
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    COSMOS_DB_ENDPOINT: str = ""
    COSMOS_DB_KEY: str = ""
    COSMOS_DB_DATABASE: str = "company_db"
    COSMOS_DB_EMPLOYEES_CONTAINER: str = "employees"
    COSMOS_DB_DEPARTMENTS_CONTAINER: str = "departments"

    # "memory" or "redis"
    CACHE_BACKEND: str = "memory"
    CACHE_MAX_SIZE: int = 1000
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "directory:"

    # Seconds
    CACHE_TTL_EMPLOYEES: int = 300
    CACHE_TTL_EMPLOYEE_DETAILS: int = 600
    CACHE_TTL_DEPARTMENTS: int = 1800

    model_config = {
        "env_file": _ENV_FILE,
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


settings = Settings()
