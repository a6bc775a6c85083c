"""Container image references.

Parses and renders ``[registry/]path[:tag][@digest]`` strings following the
distribution reference grammar: lower-case path components joined by ``/``,
an optional registry host (with port) in front, a tag of at most 128
characters, and a name of at most 255 characters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from ..errors import ImageReferenceError

NAME_TOTAL_LENGTH_MAX = 255

DEFAULT_DOMAIN = "docker.io"
LEGACY_DEFAULT_DOMAIN = "index.docker.io"
OFFICIAL_REPO_PREFIX = "library/"

ERR_REFERENCE_INVALID_FORMAT = "invalid reference format"
ERR_TAG_INVALID_FORMAT = "invalid tag format"
ERR_DIGEST_INVALID_FORMAT = "invalid digest format"
ERR_NAME_CONTAINS_UPPERCASE = "repository name must be lowercase"
ERR_NAME_EMPTY = "repository name must have at least one component"
ERR_NAME_TOO_LONG = f"repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters"
ERR_NAME_NOT_CANONICAL = "repository name must be canonical"
ERR_NOT_TAGGED = "image must be tagged"
ERR_DIGEST_PINNED = "image uses digest as version, cannot update tag"

_ALPHA_NUMERIC = r"[a-z0-9]+"
_SEPARATOR = r"(?:[._]|__|[-]+)"
_PATH_COMPONENT = rf"{_ALPHA_NUMERIC}(?:{_SEPARATOR}{_ALPHA_NUMERIC})*"
_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_IPV6_ADDRESS = r"\[(?:[a-fA-F0-9:]+)\]"
_DOMAIN_NAME = rf"{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*"
_HOST = rf"(?:{_DOMAIN_NAME}|{_IPV6_ADDRESS})"
_DOMAIN = rf"{_HOST}(?::[0-9]+)?"
# Compiled with re.ASCII: \w is [A-Za-z0-9_] as in the distribution grammar.
_TAG = r"[\w][\w.-]{0,127}"
_DIGEST = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"
_REMOTE_NAME = rf"{_PATH_COMPONENT}(?:/{_PATH_COMPONENT})*"
_NAME = rf"(?:{_DOMAIN}/)?{_REMOTE_NAME}"

REFERENCE_REGEXP = re.compile(rf"^({_NAME})(?::({_TAG}))?(?:@({_DIGEST}))?\Z", re.ASCII)
ANCHORED_NAME_REGEXP = re.compile(rf"^(?:({_DOMAIN})/)?({_REMOTE_NAME})\Z", re.ASCII)
ANCHORED_TAG_REGEXP = re.compile(rf"^{_TAG}\Z", re.ASCII)
ANCHORED_DIGEST_REGEXP = re.compile(rf"^{_DIGEST}\Z", re.ASCII)
ANCHORED_IDENTIFIER_REGEXP = re.compile(r"^[a-f0-9]{64}\Z", re.ASCII)


def _fail(reason: str) -> ImageReferenceError:
    return ImageReferenceError(reason, reason=reason)


@dataclass(frozen=True)
class ImageReference:
    domain: str
    path: str
    tag: str | None = None
    digest: str | None = None

    @property
    def name(self) -> str:
        if not self.domain:
            return self.path
        return f"{self.domain}/{self.path}"

    @property
    def is_name_only(self) -> bool:
        return self.tag is None and self.digest is None

    def familiar_name(self) -> str:
        """Return the name the way users type it, without the default registry."""
        if self.domain != DEFAULT_DOMAIN:
            return self.name
        path = self.path
        if path.startswith(OFFICIAL_REPO_PREFIX) and "/" not in path[len(OFFICIAL_REPO_PREFIX) :]:
            path = path[len(OFFICIAL_REPO_PREFIX) :]
        return path

    def familiar(self) -> str:
        return self._render(self.familiar_name())

    def _render(self, name: str) -> str:
        out = name
        if self.tag is not None:
            out += f":{self.tag}"
        if self.digest is not None:
            out += f"@{self.digest}"
        return out

    def __str__(self) -> str:
        return self._render(self.name)


def _split_name(name: str) -> tuple[str, str]:
    match = ANCHORED_NAME_REGEXP.match(name)
    if match is None:
        raise _fail(ERR_REFERENCE_INVALID_FORMAT)
    return match.group(1) or "", match.group(2)


def parse(value: str) -> ImageReference:
    """Parse ``value`` as-is, without applying registry defaults."""
    match = REFERENCE_REGEXP.match(value)
    if match is None:
        if not value:
            raise _fail(ERR_NAME_EMPTY)
        if REFERENCE_REGEXP.match(value.lower()) is not None:
            raise _fail(ERR_NAME_CONTAINS_UPPERCASE)
        raise _fail(ERR_REFERENCE_INVALID_FORMAT)

    name, tag, digest = match.group(1), match.group(2), match.group(3)
    if len(name) > NAME_TOTAL_LENGTH_MAX:
        raise _fail(ERR_NAME_TOO_LONG)
    if digest is not None and ANCHORED_DIGEST_REGEXP.match(digest) is None:
        raise _fail(ERR_DIGEST_INVALID_FORMAT)

    domain, path = _split_name(name)
    return ImageReference(domain=domain, path=path, tag=tag, digest=digest)


def _split_docker_domain(name: str) -> tuple[str, str]:
    head, sep, tail = name.partition("/")
    if not sep or (not any(c in head for c in ".:") and head != "localhost"):
        domain, remainder = DEFAULT_DOMAIN, name
    else:
        domain, remainder = head, tail
    if domain == LEGACY_DEFAULT_DOMAIN:
        domain = DEFAULT_DOMAIN
    if domain == DEFAULT_DOMAIN and "/" not in remainder:
        remainder = OFFICIAL_REPO_PREFIX + remainder
    return domain, remainder


def parse_normalized_named(value: str) -> ImageReference:
    """Parse a familiar reference such as ``nginx:1.19``, filling in ``docker.io/library``."""
    if ANCHORED_IDENTIFIER_REGEXP.match(value):
        raise ImageReferenceError(
            f"invalid repository name ({value}), cannot specify 64-byte hexadecimal strings",
            reason=ERR_REFERENCE_INVALID_FORMAT,
        )
    domain, remainder = _split_docker_domain(value)
    remote_name = remainder.split(":", 1)[0]
    if remote_name.lower() != remote_name:
        raise ImageReferenceError(
            f"{ERR_REFERENCE_INVALID_FORMAT}: {ERR_NAME_CONTAINS_UPPERCASE}",
            reason=ERR_NAME_CONTAINS_UPPERCASE,
        )
    return parse(f"{domain}/{remainder}")


def parse_named(value: str) -> ImageReference:
    """Parse ``value`` and require that it is already in canonical form."""
    ref = parse_normalized_named(value)
    if str(ref) != value:
        raise _fail(ERR_NAME_NOT_CANONICAL)
    return ref


def with_name(name: str) -> ImageReference:
    if len(name) > NAME_TOTAL_LENGTH_MAX:
        raise _fail(ERR_NAME_TOO_LONG)
    domain, path = _split_name(name)
    return ImageReference(domain=domain, path=path)


def with_tag(ref: ImageReference, tag: str) -> ImageReference:
    if ANCHORED_TAG_REGEXP.match(tag) is None:
        raise _fail(ERR_TAG_INVALID_FORMAT)
    return replace(ref, tag=tag)
