"""Turns a user file selection into an ordered, validated file set.

Only images and PDF documents are accepted.  Each accepted file gets a
fresh id and a content handle from the :class:`ContentStore`; the
handles belong to the :class:`FileSet` and are released together when
the set is replaced or the session ends.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from forensics_client.errors import HandleReleasedError, NoValidFiles
from forensics_client.models.files import FileRecord, FileSetKind
from forensics_client.repositories.content_store import ContentStore

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class RawFile:
    """A file as selected by the user, before validation."""

    name: str
    media_type: str
    data: bytes


def is_accepted_media_type(media_type: str | None) -> bool:
    """Return ``True`` for ``image/*`` and ``application/pdf``."""
    if not media_type:
        return False
    media_type = media_type.split(";", 1)[0].strip().lower()
    return media_type.startswith("image/") or media_type == PDF_MEDIA_TYPE


def new_file_id(kind: str) -> str:
    """Generate a record id such as ``input-3f9a0c1d2``."""
    return f"{kind}-{uuid.uuid4().hex[:9]}"


class FileSet:
    """Ordered file records for one role, owning their content handles."""

    def __init__(
        self, kind: FileSetKind, records: list[FileRecord], store: ContentStore
    ) -> None:
        self.kind = kind
        self._records = tuple(records)
        self._store = store
        self._released = False

    @property
    def records(self) -> tuple[FileRecord, ...]:
        return self._records

    @property
    def released(self) -> bool:
        return self._released

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self._records)

    def get(self, file_id: str) -> FileRecord | None:
        """Return the record with *file_id*, or ``None``."""
        for record in self._records:
            if record.id == file_id:
                return record
        return None

    def release(self) -> None:
        """Release every content handle held by this set.

        Raises :class:`HandleReleasedError` if the set was already released.
        """
        if self._released:
            raise HandleReleasedError(f"{self.kind} set")
        self._released = True
        for record in self._records:
            self._store.release(record.content_ref)
        logger.debug("Released %s set (%d files)", self.kind, len(self._records))


class FileSetCollector:
    """Validates a raw selection and builds a :class:`FileSet`."""

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    def collect(self, raw_files: Iterable[RawFile], kind: FileSetKind) -> FileSet:
        """Filter, de-duplicate and register *raw_files*.

        Files that are neither images nor PDFs are skipped.  When two
        files share a name only the first is kept, since the analysis
        backend reports matches by file name.  Raises
        :class:`NoValidFiles` when nothing is left; in that case no
        handle is acquired.
        """
        accepted: list[RawFile] = []
        seen_names: set[str] = set()
        for raw in raw_files:
            if not is_accepted_media_type(raw.media_type):
                logger.debug(
                    "Skipping %s: unsupported media type %r", raw.name, raw.media_type
                )
                continue
            if raw.name in seen_names:
                logger.warning("Skipping duplicate file name %s", raw.name)
                continue
            seen_names.add(raw.name)
            accepted.append(raw)

        if not accepted:
            raise NoValidFiles(kind)

        records = [
            FileRecord(
                id=new_file_id(kind),
                name=raw.name,
                media_type=raw.media_type,
                content_ref=self.store.acquire(raw.data, raw.media_type),
            )
            for raw in accepted
        ]
        logger.info("Collected %d files for the %s set", len(records), kind)
        return FileSet(kind, records, self.store)
