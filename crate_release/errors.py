"""Exception types raised by crate-release.

Every error derives from CrateReleaseError so the CLI can turn any of them
into a one-line message. NoChangesError is informational: callers report it
and exit successfully.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from .models import ReleasePlan


class CrateReleaseError(Exception):
    """Base class for all crate-release failures."""


class DiscoveryError(CrateReleaseError):
    """The repository or one of its manifests could not be read."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class ConfigError(DiscoveryError):
    """Invalid [workspace.metadata.crate-release] settings."""


class DanglingDependencyError(CrateReleaseError):
    """An internal-looking dependency is not a discovered crate (strict mode)."""

    def __init__(self, crate: str, dependency: str) -> None:
        self.crate = crate
        self.dependency = dependency
        super().__init__(
            f"{crate} depends on {dependency}, which is not a discovered crate"
        )


class CycleDetectedError(CrateReleaseError):
    """The dependency graph is not acyclic."""

    def __init__(self, crates: list[str]) -> None:
        self.crates = crates
        super().__init__(f"Dependency cycle detected involving: {', '.join(crates)}")


class UnknownCrateError(CrateReleaseError):
    """A crate name given by the user does not match any discovered crate."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Crate '{name}' not found")


class NoChangesError(CrateReleaseError):
    """Nothing to release after propagation."""

    def __init__(self, plan: ReleasePlan) -> None:
        self.plan = plan
        super().__init__("Nothing to release: no crate requires a version bump")


class VersionError(CrateReleaseError):
    """A version string is not a valid semantic version."""


class BuildError(CrateReleaseError):
    """cargo build failed for a crate."""


class ManifestError(CrateReleaseError):
    """A manifest could not be rewritten."""


class CommandError(CrateReleaseError):
    """An external command could not be started."""


class SemverCheckError(CrateReleaseError):
    """cargo semver-checks failed without reaching a verdict."""
