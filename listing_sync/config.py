from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    SYNC_DB_URL: str = "sqlite+aiosqlite:///./listings.db"

    # --- Minimal ops auth (API key) ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Bulk replication feed (MLS Grid, RESO OData) ---
    MLSGRID_API_URL: str | None = None
    # BBO (broker back office) carries sold data, so it wins over VOW and the legacy token
    MLS_GRID_BBO: str | None = None
    MLS_GRID_VOW: str | None = None
    MLSGRID_API_TOKEN: str | None = None

    MLSGRID_MAX_RPS: int = 2
    MLSGRID_MAX_RPH: int = 7200
    MLSGRID_HTTP_TIMEOUT_S: float = 30.0

    # --- Real-time search API (secondary source) ---
    SEARCH_API_URL: str | None = None
    SEARCH_API_KEY: str | None = None
    SEARCH_API_KEY_HEADER: str = "REPLIERS-API-KEY"
    SEARCH_API_TIMEOUT_S: float = 30.0

    # --- Sync tuning ---
    SYNC_PAGE_SIZE: int = 100
    SYNC_INTERVAL_MINUTES: int = 60
    DEDUPE_THRESHOLD: float = 0.85
    RETAIN_RAW_PAYLOADS: bool = True

    @property
    def mlsgrid_token(self) -> str | None:
        return self.MLS_GRID_BBO or self.MLS_GRID_VOW or self.MLSGRID_API_TOKEN

    @property
    def mlsgrid_token_source(self) -> str | None:
        if self.MLS_GRID_BBO:
            return "BBO"
        if self.MLS_GRID_VOW:
            return "VOW"
        if self.MLSGRID_API_TOKEN:
            return "legacy"
        return None


settings = Settings()
