from pydantic_settings import BaseSettings
from typing import List, Any
import json
from pathlib import Path


def parse_endpoint_list(v: Any) -> List[str]:
    """Parse endpoint patterns from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [item.strip() for item in v.split(',') if item.strip()]
    return []


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "ValueDesk"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # Request gateway
    API_BASE_URL: str = "http://localhost:5000/api"
    REQUEST_TIMEOUT: float = 30.0
    REQUEST_CACHE_TTL: int = 300  # 5 minutes
    PUBLIC_ENDPOINTS_STR: str = "/auth/login,/auth/logout"
    SERVICE_ENDPOINTS_STR: str = "/free-stream-ai"
    SERVICE_API_KEY: str = ""
    REFRESH_ENDPOINT: str = "/auth/refresh-token"

    @property
    def PUBLIC_ENDPOINTS(self) -> List[str]:
        """Endpoints dispatched without any identity attached"""
        return parse_endpoint_list(self.PUBLIC_ENDPOINTS_STR)

    @property
    def SERVICE_ENDPOINTS(self) -> List[str]:
        """Endpoints authenticated with the fixed service key"""
        return parse_endpoint_list(self.SERVICE_ENDPOINTS_STR)

    # Client-side session
    SESSION_DIR: Path = Path.home() / ".valuedesk"
    SESSION_FILE: str = "session.json"

    # Record collections
    UBI_SHOP_ENDPOINT: str = "/valuations"
    BOM_FLAT_ENDPOINT: str = "/bof-maharashtra"
    UBI_APF_ENDPOINT: str = "/ubi-apf"

    # Dashboard
    DASHBOARD_PAGE_SIZE: int = 10
    DURATION_REFRESH_INTERVAL: float = 1.0  # seconds

    # Export
    EXPORT_DIR: Path = Path("./exports")
    IMAGE_LOAD_TIMEOUT: float = 5.0
    REMOTE_IMAGE_TIMEOUT: float = 10.0
    RASTER_DPI: int = 96
    PAGE_WIDTH_MM: float = 210.0
    PAGE_HEIGHT_MM: float = 297.0

    # Valuer identity printed on signature blocks
    VALUER_NAME: str = "Shashikant R. Dhumal"
    VALUER_DESIGNATION: str = "Engineer & Govt. Approved Valuer"
    VALUER_REGISTRATION_NO: str = "CAT/I/143-2007"
    APPOINTING_AUTHORITY: str = "Branch Manager, Bank of Maharashtra, S.P. Road Branch, Mumbai"
    CODE_OF_CONDUCT_PLACE: str = "Navi Mumbai"

    # Derived values (applied only when the record does not carry them)
    REALISABLE_VALUE_PERCENT: int = 90
    DISTRESS_VALUE_PERCENT: int = 80

    @property
    def session_path(self) -> Path:
        """Full path of the persisted session file"""
        return Path(self.SESSION_DIR) / self.SESSION_FILE

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings


# Create settings instance
settings = Settings()
