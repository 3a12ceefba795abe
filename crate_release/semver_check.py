"""Semver classification of a crate's changes.

Wraps `cargo semver-checks`, which compares the crate against its last
published version. The tool only answers "is release type X enough?", so
the minimum is found by asking for patch first and then minor.
"""

from __future__ import annotations

from pathlib import Path

from .errors import SemverCheckError
from .models import BuildConfig, Bump, Crate
from .shell import cargo

# Exit status of `cargo semver-checks` when the release type is too small
VIOLATIONS_FOUND = 1

# Release types to try, from least to most permissive
_CANDIDATES = (("patch", Bump.PATCH), ("minor", Bump.MINOR))


def semver_check_args(
    crate: Crate, config: BuildConfig, release_type: str
) -> list[str]:
    """Arguments for one `cargo semver-checks` invocation."""
    args = [
        "semver-checks",
        "check-release",
        "--manifest-path",
        f"{crate.path}/Cargo.toml",
        "--release-type",
        release_type,
    ]
    if config.features:
        args.extend(["--features", ",".join(config.features)])
    if config.target:
        args.extend(["--target", config.target])
    return args


def minimum_update(root: Path, crate: Crate) -> Bump:
    """Return the minimum required bump for the next release of crate.

    Even if nothing changed this will be Bump.PATCH: a release always
    changes the version. Every build configuration is checked, and the
    most severe answer wins.

    Raises:
        SemverCheckError: If cargo semver-checks fails without a verdict,
            for example when it is not installed or the baseline cannot be
            built.
    """
    required = Bump.PATCH
    for config in crate.build_configs:
        result = Bump.MAJOR
        for release_type, bump in _CANDIDATES:
            status = cargo(*semver_check_args(crate, config, release_type), cwd=root)
            if status == 0:
                result = bump
                break
            if status != VIOLATIONS_FOUND:
                raise SemverCheckError(
                    f"cargo semver-checks failed for {crate.name} "
                    f"(exit status {status})"
                )
        required = max(required, result)
        if required == Bump.MAJOR:
            break
    return required
