"""Code signing identity lookup and bundle signing.

The signature itself is produced by ``codesign``; this module only
decides which identity to pass. Without a Developer ID certificate the
bundle is signed ad-hoc (identity ``-``): it runs locally but users see a
Gatekeeper warning on first launch.
"""

from __future__ import annotations

import re
from pathlib import Path

from shipyard.core.result import Err, Ok, Result
from shipyard.platform.process import CommandRunner
from shipyard.services.errors import DeliveryError, StepFailed, ToolNotFound

__all__ = ["ADHOC_IDENTITY", "find_signing_identity", "sign_bundle"]

ADHOC_IDENTITY = "-"

_IDENTITY_RE = re.compile(r'"(Developer ID Application: [^"]+)"')


def find_signing_identity(runner: CommandRunner, cwd: Path) -> str | None:
    """Return the first valid Developer ID Application identity in the keychain."""
    if runner.which("security") is None:
        return None
    result = runner.run(["security", "find-identity", "-v", "-p", "codesigning"], cwd=cwd)
    if isinstance(result, Err):
        return None
    match = _IDENTITY_RE.search(result.value)
    return match.group(1) if match else None


def sign_bundle(
    bundle: Path, identity: str, *, runner: CommandRunner, cwd: Path
) -> Result[str, DeliveryError]:
    """Sign ``bundle`` with ``identity`` (hardened runtime unless ad-hoc)."""
    if runner.which("codesign") is None:
        return Err(ToolNotFound(tool="codesign", hint="xcode-select --install"))

    cmd = ["codesign", "--force", "--deep", "--timestamp"]
    if identity == ADHOC_IDENTITY:
        cmd = ["codesign", "--force", "--deep"]
    else:
        cmd.extend(["--options", "runtime"])
    cmd.extend(["--sign", identity, str(bundle)])

    result = runner.run(cmd, cwd=cwd)
    if isinstance(result, Err):
        e = result.error
        return Err(StepFailed(step="codesign", returncode=e.returncode, output=e.output))

    verify = runner.run(["codesign", "--verify", "--deep", "--strict", str(bundle)], cwd=cwd)
    if isinstance(verify, Err):
        e = verify.error
        return Err(StepFailed(step="codesign --verify", returncode=e.returncode, output=e.output))
    return Ok(identity)
