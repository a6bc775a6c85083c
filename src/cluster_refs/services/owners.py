"""Resolution of owners and related cluster API objects through the object store."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .. import logging as structured_logging
from ..constants import LABEL_CLUSTER_NAME, LABEL_CONTROL_PLANE
from ..errors import (
    MissingClusterLabelError,
    NotFoundError,
    OwnerLookupError,
    ParseError,
    StoreError,
)
from ..schema import CLUSTER_GVK, MACHINE_GVK, GroupVersionKind, ObjectKey, parse_group_version
from .store import ObjectStore


def object_key(obj: Mapping[str, Any]) -> ObjectKey:
    meta = obj.get("metadata") or {}
    return ObjectKey(namespace=meta.get("namespace", ""), name=meta.get("name", ""))


def _find_owner_name(meta: Mapping[str, Any], kind: str, group: str) -> str | None:
    for ref in meta.get("ownerReferences") or []:
        if ref.get("kind") != kind:
            continue
        try:
            ref_group, _ = parse_group_version(ref.get("apiVersion") or "")
        except ParseError:
            continue
        if ref_group == group:
            return ref.get("name")
    return None


def _get_by_name(
    store: ObjectStore, gvk: GroupVersionKind, namespace: str, name: str
) -> dict[str, Any]:
    try:
        return store.get(gvk, namespace, name)
    except StoreError as e:
        raise OwnerLookupError(f"failed to get {gvk.kind}/{name}: {e}", status=e.status) from e


def get_cluster_by_name(store: ObjectStore, namespace: str, name: str) -> dict[str, Any]:
    return _get_by_name(store, CLUSTER_GVK, namespace, name)


def get_machine_by_name(store: ObjectStore, namespace: str, name: str) -> dict[str, Any]:
    return _get_by_name(store, MACHINE_GVK, namespace, name)


def _get_owner(
    store: ObjectStore, meta: Mapping[str, Any], gvk: GroupVersionKind
) -> dict[str, Any] | None:
    name = _find_owner_name(meta, gvk.kind, gvk.group)
    if name is None:
        return None
    namespace = meta.get("namespace", "")
    structured_logging.logger.debug(
        f"Resolving owning {gvk.kind}",
        component="owners",
        resource=f"{namespace}/{meta.get('name', '')}",
        uid=meta.get("uid"),
        gvk=str(gvk),
        owner=name,
    )
    return _get_by_name(store, gvk, namespace, name)


def get_owner_cluster(store: ObjectStore, meta: Mapping[str, Any]) -> dict[str, Any] | None:
    """Return the Cluster that owns the object described by ``meta``.

    Any version of the cluster API group matches. Returns None when no
    Cluster owner reference exists.

    Raises:
        OwnerLookupError: If the referenced Cluster cannot be fetched,
            including when it no longer exists.
    """
    return _get_owner(store, meta, CLUSTER_GVK)


def get_owner_machine(store: ObjectStore, meta: Mapping[str, Any]) -> dict[str, Any] | None:
    """Return the Machine that owns the object described by ``meta``, or None."""
    return _get_owner(store, meta, MACHINE_GVK)


def get_cluster_from_metadata(store: ObjectStore, meta: Mapping[str, Any]) -> dict[str, Any]:
    """Return the Cluster named by the cluster-name label in ``meta``."""
    name = (meta.get("labels") or {}).get(LABEL_CLUSTER_NAME)
    if not name:
        raise MissingClusterLabelError(f"no {LABEL_CLUSTER_NAME} label present")
    return get_cluster_by_name(store, meta.get("namespace", ""), name)


def get_machine_if_exists(
    store: ObjectStore, namespace: str, name: str
) -> dict[str, Any] | None:
    try:
        return store.get(MACHINE_GVK, namespace, name)
    except NotFoundError:
        return None


def get_machines_for_cluster(
    store: ObjectStore, cluster: Mapping[str, Any]
) -> list[dict[str, Any]]:
    """List the Machines in the cluster's namespace labelled with the cluster's name."""
    meta = cluster.get("metadata") or {}
    return store.list(
        MACHINE_GVK,
        namespace=meta.get("namespace", ""),
        label_selector={LABEL_CLUSTER_NAME: meta.get("name", "")},
    )


def is_control_plane_machine(machine: Mapping[str, Any]) -> bool:
    labels = (machine.get("metadata") or {}).get("labels") or {}
    return LABEL_CONTROL_PLANE in labels


def get_control_plane_machines_from_list(
    machines: Iterable[Mapping[str, Any]],
) -> list[Mapping[str, Any]]:
    return [m for m in machines if is_control_plane_machine(m)]


def get_control_plane_machines(
    store: ObjectStore, cluster: Mapping[str, Any]
) -> list[dict[str, Any]]:
    meta = cluster.get("metadata") or {}
    return store.list(
        MACHINE_GVK,
        namespace=meta.get("namespace", ""),
        label_selector={LABEL_CLUSTER_NAME: meta.get("name", ""), LABEL_CONTROL_PLANE: None},
    )


def is_node_ready(node: Mapping[str, Any] | None) -> bool:
    """Return True if the Node's Ready condition is True."""
    if not node:
        return False
    conditions = (node.get("status") or {}).get("conditions") or []
    ready = next((c for c in conditions if c.get("type") == "Ready"), None)
    return ready is not None and ready.get("status") == "True"
