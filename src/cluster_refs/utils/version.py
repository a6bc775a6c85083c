"""Helpers for Kubernetes-style version tags."""

from __future__ import annotations

import re
from typing import NamedTuple

from ..errors import ParseError

# Major, minor and patch are required; anything after patch (pre-release,
# build metadata, or the "_"-separated OCI form of build metadata) is ignored.
_KUBE_SEMVER = re.compile(
    r"^v?(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)([-0-9a-zA-Z_.+]*)?\Z"
)


class Version(NamedTuple):
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_major_minor_patch(version: str) -> Version:
    """Extract (major, minor, patch) from a tag such as ``v1.16.6+foobar-0`` or ``v1.2.16_foo-1``.

    Raises:
        ParseError: If the tag does not start with three numeric components.
    """
    match = _KUBE_SEMVER.match(version or "")
    if match is None:
        raise ParseError(f"failed to parse major.minor.patch from {version!r}")
    return Version(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def semver_to_oci_image_tag(version: str) -> str:
    """Make a semantic version usable as an image tag; tags cannot contain "+"."""
    return version.replace("+", "_")


def is_supported_version_skew(a: Version, b: Version) -> bool:
    """Return True when ``a`` and ``b`` share a major version and are at most one minor apart."""
    if a.major != b.major:
        return False
    return abs(a.minor - b.minor) <= 1
