"""Tool configuration.

Settings live in the root Cargo.toml so a repository carries its own release
policy:

    [workspace.metadata.crate-release]
    prefixes = ["embassy-", "cyw43"]
    exclude = ["examples/**"]
    strict = false
    changelog = "CHANGELOG.md"
    license = "MIT OR Apache-2.0"
    documentation = "https://docs.example.dev/{name}"

Every key is optional.
"""

from __future__ import annotations

import fnmatch
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tomlkit.exceptions import TOMLKitError

from .errors import ConfigError
from .toml import get_workspace_metadata, load_manifest

CONFIG_KEY = "crate-release"


class ReleaseConfig(BaseModel):
    """Release policy for one repository.

    Attributes:
        prefixes: Dependency name prefixes that mark a crate as internal.
                  Empty means every crate found in the repository counts.
        exclude: Glob patterns (relative to the root, "/" separated) of
                 manifests that discovery ignores.
        strict: Fail on internal-looking dependencies that were dropped.
        metadata_key: Table under [package.metadata] holding skip/build.
        changelog: Changelog file name inside each crate directory.
        edition, license, repository, documentation: Expected manifest
            values for check-manifest; None disables that check.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    prefixes: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    strict: bool = False
    metadata_key: str = Field(default=CONFIG_KEY, alias="metadata-key")
    changelog: str = "CHANGELOG.md"
    edition: str | None = None
    license: str | None = None
    repository: str | None = None
    documentation: str | None = None

    def is_internal_name(self, name: str) -> bool:
        """Whether a dependency name looks like it belongs to this repository."""
        return any(name.startswith(p) for p in self.prefixes)

    def is_excluded(self, relative_manifest: str) -> bool:
        """Whether a manifest path (relative, "/" separated) is excluded."""
        return any(fnmatch.fnmatch(relative_manifest, p) for p in self.exclude)


def load_config(root: Path) -> ReleaseConfig:
    """Read [workspace.metadata.crate-release] from root/Cargo.toml.

    A missing manifest or table yields the defaults.

    Raises:
        ConfigError: If the root manifest is malformed or a value is invalid.
    """
    manifest = root / "Cargo.toml"
    if not manifest.exists():
        return ReleaseConfig()

    try:
        doc = load_manifest(manifest)
    except TOMLKitError as exc:
        raise ConfigError(f"invalid TOML: {exc}", manifest) from exc

    try:
        settings = get_workspace_metadata(doc, CONFIG_KEY)
    except ValueError as exc:
        raise ConfigError(str(exc), manifest) from exc

    try:
        return ReleaseConfig.model_validate(settings)
    except ValidationError as exc:
        raise ConfigError(
            f"invalid [workspace.metadata.{CONFIG_KEY}]: {exc}", manifest
        ) from exc
