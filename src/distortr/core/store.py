"""In-memory image store.

The store is the only mutable state shared between requests.  It is a plain
dict guarded by a single lock; the lock is held only for the dict operation
itself, so the CPU-heavy distortion work always happens before ``put`` is
called and never serialises behind it.

Entries are write-once and live until the process exits.  There is no
eviction and no persistence.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from distortr.core.errors import DuplicateImageId
from distortr.core.ids import ImageId, new_id, render_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredImage:
    """An encoded image payload and the MIME type it is served with."""

    content_type: str
    data: bytes


class ImageStore:
    """Thread-safe, write-once mapping from :data:`ImageId` to :class:`StoredImage`.

    Create one per application (it lives on ``app.state``) and pass it
    explicitly; tests build isolated instances.
    """

    def __init__(self) -> None:
        self._images: dict[ImageId, StoredImage] = {}
        self._lock = threading.Lock()

    def put(self, image_id: ImageId, image: StoredImage) -> None:
        """Insert ``image`` under ``image_id``.

        Once this returns, every later :meth:`get` from any thread sees the
        entry.

        Raises:
            DuplicateImageId: If ``image_id`` is already present.  Callers
                must only pass freshly generated ids; the existing entry is
                left untouched.
        """
        with self._lock:
            if image_id in self._images:
                raise DuplicateImageId(render_id(image_id))
            self._images[image_id] = image
        logger.debug(f"Stored image {image_id} ({len(image.data)} bytes)")

    def get(self, image_id: ImageId) -> StoredImage | None:
        """Return the image stored under ``image_id``, or ``None``."""
        with self._lock:
            return self._images.get(image_id)

    def add(self, image: StoredImage) -> ImageId:
        """Store ``image`` under a newly generated id and return the id."""
        image_id = new_id()
        self.put(image_id, image)
        return image_id

    def __contains__(self, image_id: object) -> bool:
        with self._lock:
            return image_id in self._images

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)
