"""HTTP client for the remote face-comparison endpoint.

Wraps one ``POST /compare-faces`` multipart call.  Every failure mode
(transport error, timeout, non-2xx status, malformed body) is raised as
:class:`ProbeCallFailure`; HTTP 401 is raised as :class:`AuthFailure`
so callers can signal session invalidation.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
import pydantic

from forensics_client.errors import AuthFailure, HandleReleasedError, ProbeCallFailure
from forensics_client.models.face_recognition import CompareFacesResponse
from forensics_client.models.files import FileRecord
from forensics_client.repositories.content_store import ContentStore

logger = logging.getLogger(__name__)

NO_RESPONSE_MESSAGE = (
    "No response received from server. Please check your internet connection."
)


class ComparisonClient:
    """Async client for the analysis backend's face comparison call.

    *store* resolves each record's content handle to the bytes that are
    uploaded.  *transport* is forwarded to :class:`httpx.AsyncClient`
    (tests pass an :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        store: ContentStore,
        base_url: str,
        compare_path: str = "/compare-faces",
        access_token: str | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.store = store
        self.compare_path = compare_path
        self.access_token = access_token
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    def auth_headers(self) -> dict[str, str]:
        """Bearer token headers; the token is empty when not logged in."""
        token = self.access_token
        return {
            "Authorization": f"Bearer {token}" if token else "",
            "Accept": "application/json",
        }

    def _file_field(self, field: str, record: FileRecord) -> tuple[str, tuple[str, bytes, str]]:
        try:
            content = self.store.get(record.content_ref)
        except HandleReleasedError as e:
            raise ProbeCallFailure(f"Content of {record.name} is no longer available") from e
        return field, (record.name, content.data, content.media_type)

    async def compare_faces(
        self,
        probes: Sequence[FileRecord],
        candidates: Sequence[FileRecord],
        threshold: float,
    ) -> CompareFacesResponse:
        """Compare every probe against every candidate at *threshold*."""
        files = [self._file_field("input_files", p) for p in probes]
        files.extend(self._file_field("compare_files", c) for c in candidates)

        try:
            response = await self._client.post(
                self.compare_path,
                headers=self.auth_headers(),
                files=files,
                data={"threshold": _format_threshold(threshold)},
            )
        except httpx.TimeoutException as e:
            logger.warning("Comparison call timed out: %s", e)
            raise ProbeCallFailure(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("Comparison call failed: %s", e)
            raise ProbeCallFailure(NO_RESPONSE_MESSAGE) from e

        if response.status_code == 401:
            raise AuthFailure(f"Failed to compare faces: {response.text}")
        if not response.is_success:
            raise ProbeCallFailure(
                f"Failed to compare faces: {response.text}",
                status_code=response.status_code,
            )

        try:
            return CompareFacesResponse.model_validate(response.json())
        except (ValueError, pydantic.ValidationError) as e:
            # ValueError covers both JSONDecodeError and UnicodeDecodeError.
            raise ProbeCallFailure(
                f"Malformed response from comparison service: {e}",
                status_code=response.status_code,
            ) from e

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()


def _format_threshold(threshold: float) -> str:
    """Render whole-number thresholds without a trailing ``.0``."""
    if float(threshold).is_integer():
        return str(int(threshold))
    return str(threshold)
