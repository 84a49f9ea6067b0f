"""Apple account credentials for the review/distribution services.

Credentials are read from the environment exactly once, at the CLI entry
point, and passed down explicitly. Nothing below the CLI reads
``os.environ``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import StrEnum

from shipyard.core.result import Err, Ok, Result
from shipyard.services.errors import CredentialsIncomplete

__all__ = [
    "Credentials",
    "ENV_IDENTITY",
    "ENV_SECRET",
    "ENV_TEAM",
    "Requirement",
]

ENV_IDENTITY = "APPLE_ID"
ENV_SECRET = "APPLE_ID_PASSWORD"
ENV_TEAM = "TEAM_ID"


class Requirement(StrEnum):
    """What the credentials are about to be used for."""

    UPLOAD = "upload"
    NOTARIZE = "notarize"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Apple ID, app-specific password and developer team.

    Attributes:
        identity: Apple ID email (safe to echo)
        secret: App-specific password (never printed)
        team_id: Developer team identifier
    """

    identity: str = ""
    secret: str = ""
    team_id: str = ""

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> Credentials:
        return cls(
            identity=env.get(ENV_IDENTITY, "").strip(),
            secret=env.get(ENV_SECRET, "").strip(),
            team_id=env.get(ENV_TEAM, "").strip(),
        )

    def missing(self, requirement: Requirement) -> tuple[str, ...]:
        """Names of the environment variables still needed for ``requirement``."""
        fields = [(ENV_IDENTITY, self.identity), (ENV_SECRET, self.secret)]
        if requirement == Requirement.NOTARIZE:
            fields.append((ENV_TEAM, self.team_id))
        return tuple(name for name, value in fields if not value)

    def is_complete(self, requirement: Requirement) -> bool:
        return not self.missing(requirement)

    def require(self, requirement: Requirement) -> Result[Credentials, CredentialsIncomplete]:
        missing = self.missing(requirement)
        if missing:
            return Err(CredentialsIncomplete(requirement=str(requirement), missing=missing))
        return Ok(self)

    def with_team(self, team_id: str) -> Credentials:
        return replace(self, team_id=team_id.strip())

    def __repr__(self) -> str:
        secret = "***" if self.secret else ""
        return (
            f"Credentials(identity={self.identity!r}, secret={secret!r}, "
            f"team_id={self.team_id!r})"
        )
