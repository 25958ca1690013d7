"""Configuration management for Distortr.

All configuration is loaded through Pydantic Settings from environment
variables with the ``DISTORTR_`` prefix, so the service can be tuned without
code changes.

Environment Variable Loading
-----------------------------
Values are resolved in the following priority order:

1. Environment variables (``DISTORTR_*`` prefix)
2. ``.env`` file in the working directory
3. Default values defined in :class:`DistortrConfig`

Example ``.env`` file::

    DISTORTR_SERVER_PORT=3000
    DISTORTR_DISTORTION_PASSES=2
    DISTORTR_FINAL_QUALITY=25

Global Configuration Instance
------------------------------
A global ``config`` instance is created at import time and is the default
used by :func:`distortr.api.main.create_app`.  Tests build their own
instances instead of mutating it.
"""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class DistortrConfig(BaseSettings):
    """Main configuration for the Distortr service.

    Attributes
    ----------
    Server Settings:
        server_host : str
            Bind address for uvicorn.
        server_port : int
            Listen port (1024-65535).
        log_level : str
            Root logging level name.

    Templates:
        templates_dir : Path
            Directory holding ``index.html``, ``style.css`` and ``main.js``.

    Distortion Settings:
        distortion_passes : int
            Number of resize/rotate/hue/re-encode rounds per upload.
        min_quality, max_quality : int
            Inclusive bounds for the per-pass JPEG quality draw.
        final_quality : int
            JPEG quality of the stored payload.

    Upload Settings:
        max_upload_bytes : int
            Request bodies above this size are rejected before decoding.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DISTORTR_",
        case_sensitive=False,
    )

    # Server settings
    server_host: str = Field(
        default="127.0.0.1",
        description="Server bind address",
    )
    server_port: int = Field(
        default=3000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    # Templates
    templates_dir: Path = Field(
        default=PACKAGE_DIR / "templates",
        description="Directory containing the page, stylesheet and script templates",
    )

    # Distortion settings
    distortion_passes: int = Field(
        default=2,
        description="Number of lossy re-encoding passes applied to each upload",
        ge=1,
        le=10,
    )
    min_quality: int = Field(default=10, ge=1, le=95)
    max_quality: int = Field(default=30, ge=1, le=95)
    final_quality: int = Field(
        default=25,
        description="JPEG quality of the stored image",
        ge=1,
        le=95,
    )

    # Upload settings
    max_upload_bytes: int = Field(
        default=20 * 1024 * 1024,
        description="Maximum accepted upload body size in bytes",
        ge=1,
    )

    @model_validator(mode="after")
    def _check_quality_bounds(self) -> "DistortrConfig":
        if self.min_quality > self.max_quality:
            raise ValueError(
                f"min_quality ({self.min_quality}) must not exceed "
                f"max_quality ({self.max_quality})"
            )
        return self


# Global configuration instance, loaded from DISTORTR_* variables and .env.
config = DistortrConfig()
