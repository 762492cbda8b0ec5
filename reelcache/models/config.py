"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CacheConfig(BaseModel):
    """A validated configuration model for the cache."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Storage locations
    media_root: Path = Path("media")
    index_path: Path = Path("dlindex.json")
    playback_path: Path = Path("videopersistance.json")

    # Origin normalization
    origin_base: str = ""

    # Progress reporting
    progress_interval: float = 2.0
    speed_smoothing: float = 0.25

    # Network
    probe_timeout: float = 30.0
    connect_timeout: float = 15.0
    read_timeout: float = 90.0
    max_connections: int = 8

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @field_validator(
        "progress_interval", "probe_timeout", "connect_timeout", "read_timeout"
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Intervals and timeouts must be positive."""
        if v <= 0:
            raise ValueError("Intervals and timeouts must be greater than zero.")
        return v

    @field_validator("speed_smoothing")
    @classmethod
    def validate_smoothing(cls, v: float) -> float:
        """The weight on the previous smoothed rate must leave room for new samples."""
        if not 0 <= v < 1:
            raise ValueError("Speed smoothing must be in the range [0, 1).")
        return v

    @field_validator("max_connections")
    @classmethod
    def validate_connections(cls, v: int) -> int:
        """Ensures a reasonable connection pool size."""
        if v < 1 or v > 32:
            raise ValueError("Max connections must be between 1 and 32.")
        return v

    @field_validator("origin_base")
    @classmethod
    def validate_origin_base(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Origin base must be an http(s) URL.")
        return v.rstrip("/")

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
