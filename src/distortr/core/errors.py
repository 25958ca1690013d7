"""Exception hierarchy for Distortr.

Route handlers translate these into HTTP responses with generic bodies; the
detailed message only ever reaches the server log.
"""


class DistortrError(Exception):
    """Base class for all Distortr errors."""


class TransformError(DistortrError):
    """A step of the distortion pipeline failed."""


class DecodeError(TransformError):
    """The uploaded payload could not be decoded as an image."""


class InvalidIdentifier(DistortrError, ValueError):
    """A path segment does not parse as an image identifier."""


class DuplicateImageId(DistortrError, KeyError):
    """An identifier was inserted into the store twice."""


class TemplateCompileError(DistortrError):
    """A template failed to load or compile at startup."""


class TemplateRenderError(DistortrError):
    """A compiled template failed to render."""
