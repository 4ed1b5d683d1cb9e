"""Application settings and configuration.

This module defines all configuration options for the Parlor chat service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files. List
    values are read from the environment as JSON arrays.
    """

    # Application metadata
    app_name: str = Field(default="Parlor", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Database configuration
    database_url: str = Field(default="sqlite:///./parlor.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Live update channel
    chat_stream_poll_interval_seconds: float = Field(
        default=0.5,
        alias="CHAT_STREAM_POLL_INTERVAL_SECONDS",
    )
    chat_stream_keepalive_seconds: float = Field(
        default=15.0,
        alias="CHAT_STREAM_KEEPALIVE_SECONDS",
    )

    # Message ledger
    chat_default_page_size: int = Field(default=100, alias="CHAT_DEFAULT_PAGE_SIZE")
    chat_max_page_size: int = Field(default=200, alias="CHAT_MAX_PAGE_SIZE")
    chat_message_max_length: int = Field(default=2000, alias="CHAT_MESSAGE_MAX_LENGTH")
    chat_priority_rooms: list[str] = Field(default=[], alias="CHAT_PRIORITY_ROOMS")

    # Reactions are limited to a small fixed palette.
    chat_allowed_reactions: list[str] = Field(
        default=["👍", "❤️", "😂", "🔥", "👎"],
        alias="CHAT_ALLOWED_REACTIONS",
    )

    # Moderation capability is derived from the user record.
    chat_moderator_roles: list[str] = Field(
        default=["owner", "moderator"],
        alias="CHAT_MODERATOR_ROLES",
    )
    chat_moderator_usernames: list[str] = Field(
        default=[],
        alias="CHAT_MODERATOR_USERNAMES",
    )
    chat_default_user_role: str = Field(default="member", alias="CHAT_DEFAULT_USER_ROLE")

    # Notifications and user lookup
    chat_notification_preview_length: int = Field(
        default=80,
        alias="CHAT_NOTIFICATION_PREVIEW_LENGTH",
    )
    chat_user_search_limit: int = Field(default=10, alias="CHAT_USER_SEARCH_LIMIT")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
