"""Pydantic response models for the Distortr API.

Models
------
UploadResponse
    Body of a successful ``POST /upload``.
ErrorResponse
    Body of every error response.
HealthResponse
    Body of ``GET /healthz``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Response body for ``POST /upload``.

    Attributes:
        src: Path the distorted image can be fetched from,
            e.g. ``/images/01J9Z3Q4V6XK2R8T5M7N0PB1CD``.
    """

    src: str = Field(
        ...,
        description="Retrieval path of the stored image.",
        pattern=r"^/images/[0-9A-HJKMNP-TV-Z]{26}$",
    )


class ErrorResponse(BaseModel):
    """Generic error body; never carries internal error text."""

    detail: str


class HealthResponse(BaseModel):
    """Response body for ``GET /healthz``."""

    status: str = "ok"
    version: str
    images: int = Field(..., ge=0, description="Number of images currently stored.")
