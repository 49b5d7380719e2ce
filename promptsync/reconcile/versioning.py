"""Version comparison between the declared record and a fresh remote snapshot.

Any identity mismatch, forward or backward, means something other than this
tool produced the current remote version, so remote wins. Version numbers
are not assumed to be monotonic: rollbacks are an expected transition.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from promptsync.core.logging import get_logger

logger = get_logger(__name__)


class VersionVerdict(str, Enum):
    FIRST_POPULATION = "first_population"
    UNCHANGED = "unchanged"
    EXTERNAL_ADVANCE = "external_advance"
    EXTERNAL_ROLLBACK = "external_rollback"

    @property
    def remote_wins(self) -> bool:
        """Whether remote content replaces the declared content."""
        return self is not VersionVerdict.UNCHANGED


def _by_number(local_version: Optional[int], remote_version: Optional[int]) -> VersionVerdict:
    if local_version is None:
        return VersionVerdict.FIRST_POPULATION
    if remote_version is None:
        # Nothing to compare against; surface remote rather than overwrite it.
        return VersionVerdict.EXTERNAL_ADVANCE
    if remote_version == local_version:
        return VersionVerdict.UNCHANGED
    if remote_version < local_version:
        return VersionVerdict.EXTERNAL_ROLLBACK
    return VersionVerdict.EXTERNAL_ADVANCE


def classify(
    local_version: Optional[int],
    local_identity: Optional[str],
    remote_version: Optional[int],
    remote_identity: Optional[str],
) -> VersionVerdict:
    """Classify how the remote version relates to the last one we recorded.

    Args:
        local_version: Version number held in the declared record.
        local_identity: Version identity token held in the declared record.
        remote_version: Version number of the fetched record.
        remote_identity: Version identity token of the fetched record.

    Returns:
        The verdict. Identity tokens decide equality when both sides have
        one; otherwise version numbers are compared.
    """
    if local_version is None and not local_identity:
        return VersionVerdict.FIRST_POPULATION

    if local_identity and remote_identity:
        if local_identity == remote_identity:
            if (
                local_version is not None
                and remote_version is not None
                and local_version != remote_version
            ):
                logger.debug(
                    "Version number differs under identical version identity",
                    data={
                        "local_version": local_version,
                        "remote_version": remote_version,
                        "version_id": remote_identity,
                    },
                )
            return VersionVerdict.UNCHANGED
        if (
            local_version is not None
            and remote_version is not None
            and remote_version < local_version
        ):
            return VersionVerdict.EXTERNAL_ROLLBACK
        return VersionVerdict.EXTERNAL_ADVANCE

    # Older records may lack identity tokens on one side or both.
    return _by_number(local_version, remote_version)
