"""CSV and JSON export of accumulated face-recognition results."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

from forensics_client.errors import NoResultsToExport, UnsupportedExportFormat
from forensics_client.models.face_recognition import ProbeResult

ExportFormat = Literal["csv", "json"]

CSV_HEADER = [
    "Input File",
    "Compare File",
    "Matched",
    "Distance",
    "Threshold",
    "Result",
]

EXPORT_BASENAME = "face-recognition-results"

MEDIA_TYPES: dict[str, str] = {
    "csv": "text/csv",
    "json": "application/json",
}


@dataclass(frozen=True)
class ExportFile:
    """A generated download."""

    filename: str
    media_type: str
    content: bytes


def export(
    results: Sequence[ProbeResult], threshold: float, format: str
) -> ExportFile:
    """Serialize *results* as ``csv`` or ``json``.

    Raises :class:`NoResultsToExport` for an empty result set and
    :class:`UnsupportedExportFormat` for any other format.  *results* is
    only read.
    """
    if format not in MEDIA_TYPES:
        raise UnsupportedExportFormat(format)
    if not results:
        raise NoResultsToExport()

    if format == "csv":
        text = to_csv(results, threshold)
    else:
        text = to_json(results, threshold)

    return ExportFile(
        filename=f"{EXPORT_BASENAME}.{format}",
        media_type=MEDIA_TYPES[format],
        content=text.encode("utf-8"),
    )


def to_csv(results: Sequence[ProbeResult], threshold: float) -> str:
    """One row per (probe, match) pair, in result order.

    Text fields are always quoted with embedded quotes doubled; numbers
    are written unquoted at full precision.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC)
    writer.writerow(CSV_HEADER)
    for result in results:
        for match in result.matches:
            writer.writerow(
                [
                    result.probe.name,
                    match.candidate_name,
                    "true",
                    match.distance,
                    float(threshold),
                    match.score,
                ]
            )
    return buffer.getvalue()


def to_json(results: Sequence[ProbeResult], threshold: float) -> str:
    """Pretty-printed JSON document with every probe, matched or not."""
    document: dict[str, Any] = {
        "threshold": threshold,
        "total_probes": len(results),
        "total_matches": sum(len(r.matches) for r in results),
        "results": [
            {
                "probe_id": r.probe.id,
                "probe_name": r.probe.name,
                "failed": r.failed,
                "matches": [
                    {
                        "candidate_id": m.candidate_id,
                        "candidate_name": m.candidate_name,
                        "score": m.score,
                        "distance": m.distance,
                        "tier": m.tier,
                    }
                    for m in r.matches
                ],
            }
            for r in results
        ],
    }
    return json.dumps(document, indent=2)
