"""Image identifiers.

Every stored image is keyed by a ULID: a 128-bit value made of a 48-bit
millisecond timestamp followed by 80 random bits.  Its canonical string form
is 26 characters of Crockford base32, which sorts lexically in creation order
and is safe to drop straight into a URL path.

Retrieval URLs may carry a ``.jpg`` suffix so browsers and chat clients treat
them as images.  :func:`normalize_image_ref` removes it before parsing;
nothing else in the request path touches the raw segment.
"""

from __future__ import annotations

import re

from ulid import ULID

from distortr.core.errors import InvalidIdentifier

ImageId = ULID

ID_LENGTH = 26

# Crockford base32, first character limited to 0-7 so the value fits in 128 bits.
_ID_PATTERN = re.compile(r"^[0-7][0-9A-HJKMNP-TV-Z]{25}$")

_IMAGE_SUFFIXES = (".jpg", ".jpeg")


def new_id() -> ImageId:
    """Generate a fresh, time-sortable image identifier.

    Safe to call from any number of threads: each call reads the clock and
    draws its random component from ``os.urandom``.
    """
    return ULID()


def render_id(image_id: ImageId) -> str:
    """Render an identifier as its 26-character URL-safe string."""
    return str(image_id)


def parse_id(text: str) -> ImageId:
    """Parse the string form of an identifier.

    Lowercase input is accepted; the canonical rendering is uppercase.

    Raises:
        InvalidIdentifier: If ``text`` is not a well-formed identifier.
    """
    candidate = text.upper()
    if not _ID_PATTERN.match(candidate):
        raise InvalidIdentifier(f"Malformed image identifier: {text!r}")
    try:
        return ULID.from_str(candidate)
    except ValueError as e:
        raise InvalidIdentifier(f"Malformed image identifier: {text!r}") from e


def normalize_image_ref(segment: str) -> str:
    """Strip a single trailing image suffix from a retrieval path segment."""
    lowered = segment.lower()
    for suffix in _IMAGE_SUFFIXES:
        if lowered.endswith(suffix):
            return segment[: -len(suffix)]
    return segment


def parse_image_ref(segment: str) -> ImageId:
    """Normalise a retrieval path segment and parse it as an identifier."""
    return parse_id(normalize_image_ref(segment))


def image_url(image_id: ImageId) -> str:
    """Build the retrieval path for a stored image."""
    return f"/images/{render_id(image_id)}"
