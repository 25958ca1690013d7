"""Tests for distortr.core.store — the in-memory image store."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from distortr.core.errors import DuplicateImageId
from distortr.core.ids import new_id
from distortr.core.store import ImageStore, StoredImage


def _image(payload: bytes = b"\xff\xd8payload") -> StoredImage:
    return StoredImage(content_type="image/jpeg", data=payload)


class TestStoredImage:
    def test_stored_image_is_frozen(self):
        image = _image()
        with pytest.raises(AttributeError):
            image.data = b"other"  # type: ignore[misc]


class TestPutGet:
    """Basic insert and lookup behaviour."""

    def test_new_store_is_empty(self, store: ImageStore):
        assert len(store) == 0

    def test_get_after_put(self, store: ImageStore):
        image_id = new_id()
        image = _image()
        store.put(image_id, image)

        fetched = store.get(image_id)
        assert fetched == image
        assert fetched.data == image.data
        assert fetched.content_type == "image/jpeg"

    def test_get_unknown_returns_none(self, store: ImageStore):
        store.put(new_id(), _image())
        assert store.get(new_id()) is None

    def test_contains(self, store: ImageStore):
        image_id = new_id()
        assert image_id not in store
        store.put(image_id, _image())
        assert image_id in store

    def test_duplicate_put_rejected(self, store: ImageStore):
        """A second put for the same id fails and keeps the first entry."""
        image_id = new_id()
        store.put(image_id, _image(b"first"))

        with pytest.raises(DuplicateImageId):
            store.put(image_id, _image(b"second"))

        assert store.get(image_id).data == b"first"
        assert len(store) == 1

    def test_add_generates_id(self, store: ImageStore):
        image = _image()
        image_id = store.add(image)
        assert store.get(image_id) is image

    def test_stores_are_isolated(self):
        first, second = ImageStore(), ImageStore()
        image_id = first.add(_image())
        assert second.get(image_id) is None


class TestConcurrency:
    """Read-after-write visibility and concurrent inserts."""

    def test_concurrent_adds_all_retrievable(self, store: ImageStore):
        payloads = [f"image-{i}".encode() for i in range(500)]

        with ThreadPoolExecutor(max_workers=16) as pool:
            ids = list(pool.map(lambda p: store.add(_image(p)), payloads))

        assert len(set(ids)) == 500
        assert len(store) == 500
        for image_id, payload in zip(ids, payloads):
            assert store.get(image_id).data == payload

    def test_put_visible_to_other_thread(self, store: ImageStore):
        """After put returns, a get from another thread sees the entry."""
        image_id = new_id()
        image = _image()
        stored = threading.Event()
        seen: list[StoredImage | None] = []

        def reader() -> None:
            stored.wait(timeout=5)
            seen.append(store.get(image_id))

        thread = threading.Thread(target=reader)
        thread.start()
        store.put(image_id, image)
        stored.set()
        thread.join(timeout=5)

        assert seen == [image]

    def test_readers_and_writers_interleave(self, store: ImageStore):
        known = [store.add(_image(f"seed-{i}".encode())) for i in range(50)]

        def read_all(_: int) -> bool:
            return all(store.get(image_id) is not None for image_id in known)

        def write(i: int) -> None:
            store.add(_image(f"extra-{i}".encode()))

        with ThreadPoolExecutor(max_workers=8) as pool:
            writes = [pool.submit(write, i) for i in range(200)]
            reads = [pool.submit(read_all, i) for i in range(200)]
            for future in writes:
                future.result()
            assert all(future.result() for future in reads)

        assert len(store) == 250
