"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with sensible defaults for local development."""

    # --- Application ---
    app_name: str = "Vinyl Scrobbler"
    app_version: str = "1.0.0"
    debug: bool = False

    # --- Database ---
    database_url: str = "sqlite+aiosqlite:///data/scrobbler.db"

    # --- Last.fm ---
    lastfm_api_url: str = "https://ws.audioscrobbler.com/2.0/"
    lastfm_api_key: str = ""
    lastfm_api_secret: str = ""
    lastfm_session_key: str = ""
    scrobble_spacing_sec: int = 180  # ~3 min per track

    # --- Server ---
    host: str = "0.0.0.0"
    port: int = 8080

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def lastfm_configured(self) -> bool:
        return bool(self.lastfm_api_key and self.lastfm_api_secret and self.lastfm_session_key)


settings = Settings()
