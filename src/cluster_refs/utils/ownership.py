"""Queries over ``metadata.ownerReferences``.

Owner references are the plain dicts stored on Kubernetes objects
(``apiVersion``, ``kind``, ``name``, ``uid`` and optionally ``controller``).
Nothing here mutates its arguments.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import kopf

from ..errors import ParseError
from ..schema import parse_group_version


def _group_of(api_version: str | None) -> str | None:
    try:
        return parse_group_version(api_version or "")[0]
    except ParseError:
        return None


def _index_owner_ref(refs: list[dict[str, Any]], ref: Mapping[str, Any]) -> int:
    for index, existing in enumerate(refs):
        if existing.get("kind") == ref.get("kind") and existing.get("name") == ref.get("name"):
            return index
    return -1


def has_owner(
    refs: Iterable[Mapping[str, Any]] | None, api_version: str, kinds: Iterable[str]
) -> bool:
    """Return True if any ref has one of ``kinds`` in the same API group as ``api_version``.

    The version is not compared, so owners written under an older version of
    the group still count.
    """
    group = _group_of(api_version)
    if group is None:
        return False
    wanted = set(kinds)
    for ref in refs or []:
        if ref.get("kind") in wanted and _group_of(ref.get("apiVersion")) == group:
            return True
    return False


def points_to(refs: Iterable[Mapping[str, Any]] | None, target: Mapping[str, Any]) -> bool:
    """Return True if any ref carries the UID of ``target`` (an object's metadata).

    A target without a UID matches nothing.
    """
    uid = target.get("uid")
    if not uid:
        return False
    return any(ref.get("uid") == uid for ref in refs or [])


def has_owner_ref(refs: Iterable[Mapping[str, Any]] | None, ref: Mapping[str, Any]) -> bool:
    return _index_owner_ref(list(refs or []), ref) > -1


def ensure_owner_ref(
    refs: Iterable[Mapping[str, Any]] | None, ref: Mapping[str, Any]
) -> list[dict[str, Any]]:
    """Return ``refs`` with ``ref`` present exactly once per (kind, name).

    An existing entry for the same kind and name is replaced where it stands,
    which picks up a new apiVersion or UID for the same owner.
    """
    updated = [dict(r) for r in refs or []]
    index = _index_owner_ref(updated, ref)
    if index == -1:
        updated.append(dict(ref))
    else:
        updated[index] = dict(ref)
    return updated


def _meta(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    return obj.get("metadata") or {}


def is_owned_by_object(obj: Mapping[str, Any], owner: Mapping[str, Any]) -> bool:
    return points_to(_meta(obj).get("ownerReferences"), _meta(owner))


def get_controller_of(obj: Mapping[str, Any]) -> Mapping[str, Any] | None:
    for ref in _meta(obj).get("ownerReferences") or []:
        if ref.get("controller"):
            return ref
    return None


def is_controlled_by(obj: Mapping[str, Any], owner: Mapping[str, Any]) -> bool:
    controller = get_controller_of(obj)
    if controller is None:
        return False
    return controller.get("uid") == _meta(owner).get("uid")


def owner_reference_for(owner: Mapping[str, Any], controller: bool = True) -> dict[str, Any]:
    """Build an owner reference pointing at ``owner`` (a full object body)."""
    ref = dict(kopf.build_owner_reference(owner))
    ref["controller"] = controller
    ref["blockOwnerDeletion"] = controller
    return ref
