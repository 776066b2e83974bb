from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Manages all application settings. Loads variables from environment and a .env file.
    """

    # --- Application Metadata ---
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    PROJECT_NAME: str = "Tenant RBAC"
    VERSION: str = "v1"

    @property
    def API_V1_STR(self) -> str:
        return f"/api/{self.VERSION}"

    # --- Security ---
    # When unset the X-API-Key check is disabled (e.g. behind a trusted gateway)
    API_KEY: Optional[str] = None
    FRONTEND_URL: str = "http://localhost:3000"

    # --- Tenancy ---
    TENANT_HEADER: str = "X-Tenant-ID"
    USER_HEADER: str = "X-User-ID"

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./rbac.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # --- RBAC policies ---
    # "cascade" drops user assignments with the role, "reject" refuses while users remain
    ROLE_DELETE_POLICY: Literal["cascade", "reject"] = "cascade"
    # PUT/DELETE on a role must carry If-Match with the role version
    REQUIRE_ROLE_VERSION: bool = True

    # --- Rate limiting ---
    RATE_LIMIT_ENABLED: bool = True
    MUTATION_RATE_LIMIT: str = "120/minute"

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.upper() in ("PRODUCTION", "PROD")


settings = Settings()
