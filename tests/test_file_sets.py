"""Tests for ContentStore handles and FileSetCollector validation."""

import pytest

from conftest import raw_image

from forensics_client.errors import HandleReleasedError, NoValidFiles
from forensics_client.repositories.content_store import ContentStore
from forensics_client.services.file_set_collector import (
    FileSetCollector,
    RawFile,
    is_accepted_media_type,
)


# ------------------------------------------------------------------
# ContentStore
# ------------------------------------------------------------------


class TestContentStore:
    def test_acquire_and_read(self, store: ContentStore) -> None:
        handle = store.acquire(b"abc", "image/png")
        assert handle.startswith("blob:")
        assert store.read_bytes(handle) == b"abc"
        assert store.get(handle).media_type == "image/png"
        assert store.is_live(handle)

    def test_handles_are_unique(self, store: ContentStore) -> None:
        handles = {store.acquire(b"x", "image/png") for _ in range(20)}
        assert len(handles) == 20

    def test_double_release_raises(self, store: ContentStore) -> None:
        handle = store.acquire(b"abc", "image/png")
        store.release(handle)
        with pytest.raises(HandleReleasedError):
            store.release(handle)

    def test_use_after_release_raises(self, store: ContentStore) -> None:
        handle = store.acquire(b"abc", "image/png")
        store.release(handle)
        assert not store.is_live(handle)
        with pytest.raises(HandleReleasedError):
            store.read_bytes(handle)

    def test_release_all(self, store: ContentStore) -> None:
        store.acquire(b"a", "image/png")
        store.acquire(b"b", "image/png")
        assert store.release_all() == 2
        assert len(store) == 0


# ------------------------------------------------------------------
# FileSetCollector
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    ("media_type", "accepted"),
    [
        ("image/jpeg", True),
        ("image/png", True),
        ("IMAGE/WEBP", True),
        ("application/pdf", True),
        ("image/jpeg; charset=binary", True),
        ("text/plain", False),
        ("application/zip", False),
        ("", False),
        (None, False),
    ],
)
def test_is_accepted_media_type(media_type, accepted: bool) -> None:
    assert is_accepted_media_type(media_type) is accepted


class TestFileSetCollector:
    def test_collect_filters_and_preserves_order(self, store: ContentStore) -> None:
        collector = FileSetCollector(store)
        raw = [
            raw_image("b.jpg"),
            RawFile(name="notes.txt", media_type="text/plain", data=b"hi"),
            RawFile(name="scan.pdf", media_type="application/pdf", data=b"%PDF-1.4"),
            raw_image("a.jpg"),
        ]

        file_set = collector.collect(raw, "input")

        assert [r.name for r in file_set] == ["b.jpg", "scan.pdf", "a.jpg"]
        assert all(r.id.startswith("input-") for r in file_set)
        assert len({r.id for r in file_set}) == 3
        assert len(store) == 3

    def test_collect_drops_duplicate_names(self, store: ContentStore) -> None:
        collector = FileSetCollector(store)
        first = RawFile(name="a.jpg", media_type="image/jpeg", data=b"first")
        second = RawFile(name="a.jpg", media_type="image/jpeg", data=b"second")

        file_set = collector.collect([first, second], "comparison")

        assert len(file_set) == 1
        assert store.read_bytes(file_set.records[0].content_ref) == b"first"

    def test_collect_no_valid_files(self, store: ContentStore) -> None:
        collector = FileSetCollector(store)
        raw = [RawFile(name="a.txt", media_type="text/plain", data=b"")]

        with pytest.raises(NoValidFiles) as exc_info:
            collector.collect(raw, "comparison")

        assert exc_info.value.kind == "comparison"
        assert len(store) == 0

    def test_collect_empty_selection(self, store: ContentStore) -> None:
        with pytest.raises(NoValidFiles):
            FileSetCollector(store).collect([], "input")

    def test_release_frees_every_handle_once(self, store: ContentStore) -> None:
        file_set = FileSetCollector(store).collect(
            [raw_image("a.jpg"), raw_image("b.jpg")], "input"
        )
        refs = [r.content_ref for r in file_set]

        file_set.release()

        assert file_set.released
        assert not any(store.is_live(ref) for ref in refs)
        with pytest.raises(HandleReleasedError):
            file_set.release()

    def test_get_by_id(self, store: ContentStore) -> None:
        file_set = FileSetCollector(store).collect([raw_image("a.jpg")], "input")
        record = file_set.records[0]
        assert file_set.get(record.id) == record
        assert file_set.get("missing") is None
