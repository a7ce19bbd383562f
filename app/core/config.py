from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str
    project_name: str = "Local Directory API"
    api_prefix: str = "/api"

    # Identity provider configuration
    # AUTH_ISSUER: issuer URL of the identity provider (e.g. https://xxx.supabase.co/auth/v1)
    #   Used as the expected `iss` claim and to derive the JWKS URL
    auth_issuer: str

    # AUTH_AUDIENCE: JWT audience claim to validate
    auth_audience: str = "authenticated"

    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = "INFO"

    # Exposed to the browser through GET /api/config for the map widget (optional)
    google_maps_api_key: str | None = None

    # Business listing pagination
    default_page_size: int = 20
    max_page_size: int = 100

    @property
    def auth_jwks_url(self) -> str:
        """Derive JWKS URL from the issuer."""
        return f"{self.auth_issuer.rstrip('/')}/.well-known/jwks.json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="forbid"
    )


settings = Settings()
