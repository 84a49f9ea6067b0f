"""Backend selection, submission and status tracking for Apple services."""

from shipyard.services.notary.backends import (
    BACKENDS,
    BackendId,
    BackendSpec,
    ProbeOutcome,
    ProbeStatus,
    Purpose,
)
from shipyard.services.notary.probe import BackendProber
from shipyard.services.notary.selector import Selection, UploadMode, select_backend
from shipyard.services.notary.submission import (
    CancelToken,
    PollPolicy,
    SubmissionRecord,
    SubmissionStatus,
    client_for,
    submit_and_wait,
)

__all__ = [
    "BACKENDS",
    "BackendId",
    "BackendProber",
    "BackendSpec",
    "CancelToken",
    "PollPolicy",
    "ProbeOutcome",
    "ProbeStatus",
    "Purpose",
    "Selection",
    "SubmissionRecord",
    "SubmissionStatus",
    "UploadMode",
    "client_for",
    "select_backend",
    "submit_and_wait",
]
