"""Classification of free-form ``altool`` / ``notarytool`` output.

The Apple tools only speak human-readable text, and their wording is
owned by Apple. Every phrase the pipeline relies on is listed here and
nowhere else; bump ``CLASSIFIER_VERSION`` whenever the table changes and
refresh the recorded samples in ``test_classifier.py``.

Unrecognised status text is classified as in-progress: the poll loop
keeps waiting (bounded by its policy) rather than reporting a success
it cannot prove.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from shipyard.services.notary.backends import ProbeStatus

__all__ = [
    "CLASSIFIER_VERSION",
    "StatusClass",
    "UploadClassification",
    "UploadOutcome",
    "classify_probe",
    "classify_status",
    "classify_upload",
    "request_uuid",
    "submission_id",
    "team_id",
]

CLASSIFIER_VERSION = 2

# notarytool submit/info/wait
_SUBMISSION_ID_RE = re.compile(r"^\s*id:\s*([0-9A-Za-z-]+)\s*$", re.MULTILINE)
_STATUS_RE = re.compile(r"\bstatus:[ \t]*([^\r\n]*)", re.IGNORECASE)
_ACCEPTED_STATUSES = frozenset({"accepted"})
_INVALID_STATUSES = frozenset({"invalid", "rejected"})

# altool --upload-app
_UPLOAD_OK_MARKER = "No errors uploading"
_APP_RECORD_MISSING_MARKER = "No suitable application records were found"
_ITMS_ERROR_MARKER = "ERROR ITMS-"
_REQUEST_UUID_RE = re.compile(r"RequestUUID\s*[=:]\s*([0-9A-Fa-f-]{8,})")

# altool --list-providers: table whose last column is WWDRTeamID
_PROVIDERS_TEAM_HEADER = "WWDRTeamID"
_TEAM_ID_RE = re.compile(r"\b([A-Z0-9]{10})\s*$")

# Probes: the tool itself (or the network) is unavailable, as opposed to
# the credentials being refused.
_UNREACHABLE_MARKERS = (
    "unable to find utility",
    "no such file or directory",
    "could not connect",
    "network connection was lost",
    "internet connection appears to be offline",
    "timed out",
    "nsurlerrordomain",
)


class StatusClass(StrEnum):
    IN_PROGRESS = "in-progress"
    ACCEPTED = "accepted"
    INVALID = "invalid"


class UploadOutcome(StrEnum):
    UPLOADED = "uploaded"
    APP_RECORD_MISSING = "app-record-missing"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class UploadClassification:
    outcome: UploadOutcome
    request_uuid: str | None = None
    errors: tuple[str, ...] = ()


def submission_id(text: str) -> str | None:
    """First ``id: <value>`` line of a ``notarytool submit`` response."""
    match = _SUBMISSION_ID_RE.search(text)
    return match.group(1) if match else None


def team_id(text: str) -> str | None:
    """Team of the first provider listed by ``altool --list-providers``."""
    lines = text.splitlines()
    for i, line in enumerate(lines):
        if _PROVIDERS_TEAM_HEADER not in line:
            continue
        for row in lines[i + 1 :]:
            stripped = row.strip()
            if not stripped or not stripped.strip("- "):
                continue
            match = _TEAM_ID_RE.search(stripped)
            return match.group(1) if match else None
    return None


def request_uuid(text: str) -> str | None:
    match = _REQUEST_UUID_RE.search(text)
    return match.group(1) if match else None


def classify_status(text: str) -> StatusClass:
    """Classify a status response by its last ``status:`` field."""
    statuses = _STATUS_RE.findall(text)
    if not statuses:
        return StatusClass.IN_PROGRESS
    last = statuses[-1].strip().rstrip(".").strip().lower()
    if last in _INVALID_STATUSES:
        return StatusClass.INVALID
    if last in _ACCEPTED_STATUSES:
        return StatusClass.ACCEPTED
    return StatusClass.IN_PROGRESS


def classify_upload(returncode: int, text: str) -> UploadClassification:
    """Classify an ``altool --upload-app`` run."""
    if returncode == 0 and _UPLOAD_OK_MARKER in text:
        return UploadClassification(UploadOutcome.UPLOADED, request_uuid=request_uuid(text))
    if _APP_RECORD_MISSING_MARKER in text:
        return UploadClassification(UploadOutcome.APP_RECORD_MISSING)
    itms = tuple(line.strip() for line in text.splitlines() if _ITMS_ERROR_MARKER in line)
    if itms:
        return UploadClassification(UploadOutcome.REJECTED, errors=itms)
    return UploadClassification(UploadOutcome.FAILED)


def classify_probe(returncode: int, text: str) -> ProbeStatus:
    """Classify a credential probe.

    ``returncode`` -1 means the process never ran (or timed out).
    """
    if returncode == 0:
        return ProbeStatus.ACCEPTED
    if returncode == -1:
        return ProbeStatus.UNREACHABLE
    lowered = text.lower()
    if any(marker in lowered for marker in _UNREACHABLE_MARKERS):
        return ProbeStatus.UNREACHABLE
    return ProbeStatus.REJECTED
