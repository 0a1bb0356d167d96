"""In-memory store for uploaded file content behind revocable handles."""

import logging
import threading
import uuid
from dataclasses import dataclass

from forensics_client.errors import HandleReleasedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredContent:
    """Bytes and declared media type held for one handle."""

    data: bytes
    media_type: str


class ContentStore:
    """Issues short-lived handles for uploaded file bytes.

    Every handle is released exactly once.  Reading or releasing a handle
    after release raises :class:`HandleReleasedError`, as does any handle
    the store never issued.
    """

    def __init__(self) -> None:
        self._contents: dict[str, StoredContent] = {}
        self._lock = threading.Lock()

    def acquire(self, data: bytes, media_type: str) -> str:
        """Store *data* and return a new handle for it."""
        handle = f"blob:{uuid.uuid4()}"
        with self._lock:
            self._contents[handle] = StoredContent(data=data, media_type=media_type)
        return handle

    def get(self, handle: str) -> StoredContent:
        """Return the content behind *handle*."""
        with self._lock:
            content = self._contents.get(handle)
        if content is None:
            raise HandleReleasedError(handle)
        return content

    def read_bytes(self, handle: str) -> bytes:
        """Return the raw bytes behind *handle*."""
        return self.get(handle).data

    def is_live(self, handle: str) -> bool:
        """Return ``True`` if *handle* has not been released."""
        with self._lock:
            return handle in self._contents

    def release(self, handle: str) -> None:
        """Drop the content behind *handle*."""
        with self._lock:
            if self._contents.pop(handle, None) is None:
                raise HandleReleasedError(handle)

    def release_all(self) -> int:
        """Release every live handle (session end).  Returns the count."""
        with self._lock:
            count = len(self._contents)
            self._contents.clear()
        if count:
            logger.info("Released %d content handles", count)
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._contents)
