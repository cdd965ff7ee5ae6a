"""ODI configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid.

    This exception provides clear, actionable error messages when
    configuration values required by a specific operation are not set.

    Example:
        >>> Settings(_env_file=None).require_uploads_basedir()  # doctest: +ELLIPSIS
        Traceback (most recent call last):
        ...
        ConfigError: Uploads base directory not configured. Set it in .env file
        or UPLOADS_BASEDIR environment variable.
    """

    def __init__(self, key_name: str, env_var: str) -> None:
        """Initialize configuration error.

        Args:
            key_name: Human-readable name of the missing key.
            env_var: Environment variable name to set.
        """
        self.key_name = key_name
        self.env_var = env_var
        message = (
            f"{key_name} not configured. "
            f"Set it in .env file or {env_var} environment variable."
        )
        super().__init__(message)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Width quantization
    MIN_VIEWPORT_WIDTH: int = 320
    MAX_VIEWPORT_WIDTH: int = 2000
    WIDTH_STEP: int = 200  # Max distance between two generated widths

    # Storage
    UPLOADS_BASEDIR: Path | None = None
    UPLOADS_BASEURL: str | None = None
    UPLOAD_FOLDER: str = "odi"

    # Registered sizes that are also generated on demand
    ON_DEMAND_SIZE_KEYS: list[str] = ["large", "medium"]

    # Encoding
    JPEG_QUALITY: int = 85

    def require_uploads_basedir(self) -> Path:
        """Get the uploads base directory, raising ConfigError if not set.

        Returns:
            The directory under which the derivative folder lives.

        Raises:
            ConfigError: If UPLOADS_BASEDIR is not configured.
        """
        if self.UPLOADS_BASEDIR is None:
            raise ConfigError("Uploads base directory", "UPLOADS_BASEDIR")
        return self.UPLOADS_BASEDIR

    def require_uploads_baseurl(self) -> str:
        """Get the public URL of the uploads directory, raising ConfigError if not set.

        Returns:
            The base URL the uploads directory is served from.

        Raises:
            ConfigError: If UPLOADS_BASEURL is not configured.
        """
        if self.UPLOADS_BASEURL is None or self.UPLOADS_BASEURL.strip() == "":
            raise ConfigError("Uploads base URL", "UPLOADS_BASEURL")
        return self.UPLOADS_BASEURL


# Singleton instance for import convenience
settings = Settings()
