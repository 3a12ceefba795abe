"""Data models for crate-release.

These Pydantic models represent the snapshot of a Cargo repository that the
graph engine works on, and the release plan it produces.
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class Bump(IntEnum):
    """Minimum semver component that has to change.

    Ordered so that combining two classifications is just max().
    """

    NONE = 0
    PATCH = 1
    MINOR = 2
    MAJOR = 3

    @classmethod
    def parse(cls, value: str) -> Bump:
        """Parse "none", "patch", "minor" or "major" (any case)."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown bump classification: {value!r}") from None

    def __str__(self) -> str:
        return self.name.lower()

    def __format__(self, format_spec: str) -> str:
        return format(str(self), format_spec)


class BuildConfig(BaseModel):
    """One way of building a crate.

    Attributes:
        features: Cargo features to enable.
        target: Target triple, or None for the host target.
    """

    model_config = ConfigDict(frozen=True)

    features: list[str] = Field(default_factory=list)
    target: str | None = None


class Crate(BaseModel):
    """Metadata for a single crate in the repository.

    Attributes:
        name: Package name from Cargo.toml.
        path: Relative path from repository root to the crate directory.
        version: Current version string from Cargo.toml.
        dependencies: Internal dependency names from the normal and build
                      dependency tables. These become graph edges.
        dev_dependencies: Internal dev-dependency names. They never become
                          edges, but their version requirements are kept in
                          sync on release.
        publish: False when the crate is never released.
        build_configs: Build configurations, at least one after discovery.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    version: str
    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list)
    publish: bool = True
    build_configs: list[BuildConfig] = Field(default_factory=lambda: [BuildConfig()])


class ReleaseEntry(BaseModel):
    """Records a version change for a crate in a release plan.

    Attributes:
        name: The crate being released.
        old_version: The version before bumping.
        new_version: The version after bumping.
        bump: Classification that produced new_version.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    old_version: str
    new_version: str
    bump: Bump


class ReleasePlan(BaseModel):
    """Ordered release entries, dependencies before dependents."""

    model_config = ConfigDict(frozen=True)

    entries: list[ReleaseEntry] = Field(default_factory=list)

    def names(self) -> list[str]:
        return [e.name for e in self.entries]

    def new_versions(self) -> dict[str, str]:
        return {e.name: e.new_version for e in self.entries}
