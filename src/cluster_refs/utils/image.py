"""Rewriting of tags and repositories on container image references."""

from __future__ import annotations

import posixpath

from ..errors import ImageReferenceError
from . import reference
from .version import semver_to_oci_image_tag


def _wrap(prefix: str, err: ImageReferenceError) -> ImageReferenceError:
    return ImageReferenceError(f"{prefix}: {err}", reason=err.reason)


def modify_image_tag(image: str, tag: str) -> str:
    """Replace the tag of ``image`` with ``tag``.

    ``tag`` may be a semantic version with build metadata; "+" is rewritten to
    "_" because image tags cannot contain it.

    Raises:
        ImageReferenceError: If ``image`` cannot be parsed, is pinned by
            digest, or the sanitized tag is not a valid tag.
    """
    try:
        ref = reference.parse_normalized_named(image)
    except ImageReferenceError as e:
        raise _wrap("failed to parse image name", e) from e

    if ref.digest is not None:
        raise ImageReferenceError(reference.ERR_DIGEST_PINNED, reason=reference.ERR_DIGEST_PINNED)

    try:
        tagged = reference.with_tag(ref, semver_to_oci_image_tag(tag))
    except ImageReferenceError as e:
        raise _wrap("failed to update image tag", e) from e
    return tagged.familiar()


def modify_image_repository(image: str, repository: str) -> str:
    """Move a tagged, fully qualified ``image`` under ``repository``.

    Only the last path segment of the image name is kept, so
    ``example.com/subpaths/are/okay/image:1.17.3`` moved to ``example.com/new``
    becomes ``example.com/new/image:1.17.3``. Any digest is dropped.

    Raises:
        ImageReferenceError: If ``image`` is unparsable, not canonical or not
            tagged, or if the resulting name is invalid or too long.
    """
    try:
        ref = reference.parse_named(image)
    except ImageReferenceError as e:
        raise _wrap("failed to parse image name", e) from e

    new_name = posixpath.normpath(posixpath.join(repository, posixpath.basename(ref.name)))
    try:
        renamed = reference.with_name(new_name)
    except ImageReferenceError as e:
        raise _wrap("failed to update repository name", e) from e

    if ref.tag is None:
        raise ImageReferenceError(reference.ERR_NOT_TAGGED, reason=reference.ERR_NOT_TAGGED)

    try:
        retagged = reference.with_tag(renamed, ref.tag)
    except ImageReferenceError as e:
        raise _wrap("failed to parse image tag", e) from e
    return retagged.familiar()
