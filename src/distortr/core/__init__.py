"""Core functionality for Distortr.

- **config**: ``DistortrConfig`` and the global ``config`` instance
- **ids**: ULID-based image identifiers and retrieval path parsing
- **transform**: the lossy distortion pipeline
- **store**: the in-memory, write-once image store
- **templates**: the startup-compiled template registry
- **errors**: the exception hierarchy shared by all of the above
"""

from distortr.core.config import DistortrConfig, config
from distortr.core.store import ImageStore, StoredImage
from distortr.core.templates import TemplateRegistry
from distortr.core.transform import DistortionSettings, distort

__all__ = [
    "DistortionSettings",
    "DistortrConfig",
    "ImageStore",
    "StoredImage",
    "TemplateRegistry",
    "config",
    "distort",
]
