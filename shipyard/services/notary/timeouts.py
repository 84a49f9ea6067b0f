from __future__ import annotations

# Credential probes (altool --list-providers, notarytool info)
PROBE_TIMEOUT_SECONDS = 60.0

# notarytool submit uploads the archive before returning an id
SUBMIT_TIMEOUT_SECONDS = 30 * 60.0

# altool --upload-app blocks until the upload is processed
UPLOAD_TIMEOUT_SECONDS = 60 * 60.0

# notarytool info <id> / notarytool log <id>
STATUS_TIMEOUT_SECONDS = 2 * 60.0
LOG_TIMEOUT_SECONDS = 2 * 60.0
