"""Configuration management for the Library Circulation server.

Settings come from the environment (``LIBRARY_CIRCULATION_`` prefix) or a
``.env`` file and cover:
1. Server metadata and transport for the MCP handshake
2. Database location
3. Circulation calendar behaviour (weekly holidays, holiday-aware fines)
4. Logging
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

WEEKDAY_NAMES: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class CirculationConfig(BaseSettings):
    """Circulation server configuration.

    Holiday weekdays use three-letter English day names so the same values
    can be written in ``.env`` files and read by librarians.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_CIRCULATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="library-circulation",
        description="MCP server name used in protocol handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version for capability negotiation",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^(stdio|streamable_http)$",
    )

    # === Database Configuration ===

    database_path: Path = Field(
        default=Path("data/circulation.db"),
        description="SQLite database file path",
    )

    # === Circulation Calendar ===

    holiday_weekdays: list[str] = Field(
        default_factory=lambda: ["Sun"],
        description="Weekly holidays as three-letter day names (Mon..Sun)",
    )

    ignore_holidays_fine_calc: bool = Field(
        default=False,
        description="Subtract holidays from overdue days when computing fines",
    )

    allow_ignore_rules: bool = Field(
        default=True,
        description="Whether staging calls may bypass reservation and loan-limit rules",
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    # === Validation Methods ===

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure the database directory exists."""
        abs_path = v.absolute()
        abs_path.parent.mkdir(parents=True, exist_ok=True)

        if not abs_path.parent.is_dir():
            raise ValueError(f"Database directory {abs_path.parent} is not accessible")

        return abs_path

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    @field_validator("holiday_weekdays")
    @classmethod
    def validate_holiday_weekdays(cls, v: list[str]) -> list[str]:
        """Normalise day names to ``Mon``..``Sun`` and reject unknown ones."""
        normalised = []
        for name in v:
            day = name.strip()[:3].capitalize()
            if day not in WEEKDAY_NAMES:
                raise ValueError(f"Unknown holiday weekday: {name!r}")
            if day not in normalised:
                normalised.append(day)
        if len(normalised) == len(WEEKDAY_NAMES):
            raise ValueError("At least one weekday must be open")
        return normalised

    # === Computed Properties ===

    @property
    def holiday_weekday_numbers(self) -> frozenset[int]:
        """Holiday weekdays as ``date.weekday()`` numbers (Monday is 0)."""
        return frozenset(WEEKDAY_NAMES.index(day) for day in self.holiday_weekdays)

    @property
    def is_development(self) -> bool:
        return self.debug or self.log_level == "DEBUG"

    @property
    def server_info(self) -> dict[str, str]:
        """Server information sent during the MCP handshake."""
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }

    def get_database_url(self) -> str:
        """Get SQLAlchemy database URL."""
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: CirculationConfig | None = None


def get_config() -> CirculationConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = CirculationConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
