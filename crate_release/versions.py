"""Version parsing and bumping utilities.

Handles conversion between Cargo version strings and semver objects, and
the increment rules applied when a crate is released.
"""

from __future__ import annotations

import semver

from .errors import VersionError
from .models import Bump


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Cargo requires full major.minor.patch versions, optionally followed by
    pre-release and build metadata ("1.2.3-alpha.1+build.5").

    Raises:
        VersionError: If the string is not a valid semantic version.
    """
    try:
        return semver.Version.parse(version_str.strip())
    except (TypeError, ValueError) as exc:
        raise VersionError(f"Invalid version {version_str!r}: {exc}") from exc


def bump_version(version_str: str, bump: Bump) -> str:
    """Increment the component selected by bump and return as a string.

    Lower components are reset to zero and any pre-release or build
    metadata is dropped.

    Examples:
        "1.4.2", MINOR → "1.5.0"
        "1.4.2-rc.1", MAJOR → "2.0.0"
        "1.4.2+build", PATCH → "1.4.3"
    """
    v = parse_version(version_str)
    if bump == Bump.MAJOR:
        return str(v.bump_major())
    if bump == Bump.MINOR:
        return str(v.bump_minor())
    if bump == Bump.PATCH:
        return str(v.bump_patch())
    raise VersionError(f"Cannot bump {version_str} with classification {bump}")


def classify_change(old_str: str, new_str: str) -> Bump:
    """Classify the jump from old to new by the highest component that moved.

    Examples:
        "1.4.2" → "2.0.0" is MAJOR
        "1.4.2" → "1.4.3" is PATCH
        "1.4.2" → "1.4.2" is NONE
    """
    old, new = parse_version(old_str), parse_version(new_str)
    if old.major != new.major:
        return Bump.MAJOR
    if old.minor != new.minor:
        return Bump.MINOR
    if old == new:
        return Bump.NONE
    return Bump.PATCH
