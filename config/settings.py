import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / ".env")


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Settings:
    APP_ENV: str = os.getenv("APP_ENV", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    MOCK_MODE: bool = os.getenv("MOCK_MODE", "true").lower() == "true"
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:6000")
    LOGIN_URL: str = os.getenv("LOGIN_URL", "http://localhost:5000/login")
    CLOUDFLARE_BASE_PATH: str = os.getenv("CLOUDFLARE_BASE_PATH", "/api/cloudflare")
    HTTP_TIMEOUT: int = _int_env("HTTP_TIMEOUT", 30)
    HTTP_RETRY_ATTEMPTS: int = _int_env("HTTP_RETRY_ATTEMPTS", 1)
    STATE_DIR: Path = Path(os.getenv("STATE_DIR", "./.vulntrack"))
    REPORT_OUTPUT_DIR: Path = Path(os.getenv("REPORT_OUTPUT_DIR", "./reports"))
    SLA_THRESHOLDS: dict = {
        "Critical": _int_env("SLA_CRITICAL_DAYS", 1),
        "High": _int_env("SLA_HIGH_DAYS", 7),
        "Medium": _int_env("SLA_MEDIUM_DAYS", 30),
        "Low": _int_env("SLA_LOW_DAYS", 90),
        "Info": _int_env("SLA_INFO_DAYS", 180),
    }
    VERSION: str = "1.0.0"
    APP_NAME: str = "VulnTrack"

    @classmethod
    def validate(cls) -> list:
        warnings = []
        if cls.MOCK_MODE:
            warnings.append("MOCK MODE active — no real backend calls.")
        if cls.HTTP_RETRY_ATTEMPTS > 1:
            warnings.append(
                f"GET requests retried up to {cls.HTTP_RETRY_ATTEMPTS} times."
            )
        return warnings

    @classmethod
    def token_path(cls) -> Path:
        return cls.STATE_DIR / "token.json"

    @classmethod
    def notes_path(cls) -> Path:
        return cls.STATE_DIR / "notes.json"


settings = Settings()
