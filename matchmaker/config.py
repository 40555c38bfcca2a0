from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

from matchmaker.models.game_mode import GameMode


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # Server Configuration
    # ==========================================================================
    app_name: str = "matchmaker"
    app_version: str = "1.0.0"
    port: int = 8082
    api_prefix: str = "/api"
    debug: bool = False
    cors_origins: str = "*"
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into list."""
        if self.cors_origins == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ==========================================================================
    # Redis Configuration
    # ==========================================================================
    redis_url: str = "redis://localhost:6379/0"
    redis_timeout_seconds: float = 2.0
    redis_health_check_interval: int = 30

    # ==========================================================================
    # Matchmaking Configuration
    # ==========================================================================
    matchmaking_interval_ms: int = 1500
    stats_log_interval_ms: int = 10000
    cleanup_interval_minutes: int = 5
    queue_expiry_minutes: int = 30
    room_expiry_hours: int = 2
    abandoned_room_minutes: int = 30  # FORMING rooms older than this get reaped
    max_players_pvp: int = 2
    max_players_boss: int = 4
    min_players_for_room: int = 2
    queue_scan_limit: int = 1000  # Bounded prefix for position lookup and expiry scans

    # Only one scheduler may match a given mode at a time
    matching_lock_enabled: bool = True
    matching_lock_ttl_ms: int = 5000

    # ==========================================================================
    # Pub/Sub Channels
    # ==========================================================================
    room_notifications_channel: str = "room.notifications"
    notification_resubscribe_delay_seconds: float = 1.0  # Pause before resubscribing after a dropped connection

    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_window_seconds: int = 900
    rate_limit_max_requests: int = 100
    matchmaking_rate_window_seconds: int = 60
    matchmaking_rate_max_requests: int = 10

    # ==========================================================================
    # Process Roles
    # ==========================================================================
    run_schedulers: bool = True
    run_notification_listener: bool = True

    # ==========================================================================
    # Computed Properties
    # ==========================================================================

    @property
    def queue_expiry_seconds(self) -> int:
        return self.queue_expiry_minutes * 60

    @property
    def room_expiry_seconds(self) -> int:
        return self.room_expiry_hours * 60 * 60

    @property
    def abandoned_room_seconds(self) -> int:
        return self.abandoned_room_minutes * 60

    def max_players_for(self, mode: GameMode) -> int:
        """Room capacity for a game mode."""
        capacities = {
            GameMode.PVP: self.max_players_pvp,
            GameMode.BOSS: self.max_players_boss,
        }
        return capacities[mode]

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-reading env vars on every request.
    """
    return Settings()


# Convenience export
settings = get_settings()
