"""Map a changed object to the objects that must be reconciled because of it.

Each factory returns a plain function ``(obj) -> list[ObjectKey]``. The
functions keep no state between calls and can be shared across watch workers.
An object of a kind the mapper does not handle maps to an empty list.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from . import logging as structured_logging
from . import metrics
from .constants import API_GROUP, KIND_CLUSTER, KIND_MACHINE, LABEL_CLUSTER_NAME
from .errors import ParseError
from .schema import GroupVersionKind, ObjectKey, Scheme, parse_group_version
from .services.store import ObjectStore

MapFunc = Callable[[Mapping[str, Any]], list[ObjectKey]]


def _is_kind(obj: Mapping[str, Any], kind: str, group: str = API_GROUP) -> bool:
    if not isinstance(obj, Mapping) or obj.get("kind") != kind:
        return False
    try:
        obj_group, _ = parse_group_version(obj.get("apiVersion") or "")
    except ParseError:
        return False
    return obj_group == group


def _infrastructure_ref_gvk(ref: Mapping[str, Any]) -> GroupVersionKind | None:
    try:
        return GroupVersionKind.from_api_version(ref.get("apiVersion") or "", ref.get("kind") or "")
    except ParseError:
        return None


def _infrastructure_map_func(kind: str, gvk: GroupVersionKind, mapper_name: str) -> MapFunc:
    def map_func(obj: Mapping[str, Any]) -> list[ObjectKey]:
        if not _is_kind(obj, kind):
            return []
        ref = (obj.get("spec") or {}).get("infrastructureRef")
        if not ref or not ref.get("name"):
            return []
        if _infrastructure_ref_gvk(ref) != gvk:
            return []
        namespace = (obj.get("metadata") or {}).get("namespace", "")
        metrics.MAPPED_REQUESTS_TOTAL.labels(mapper=mapper_name).inc()
        return [ObjectKey(namespace=namespace, name=ref["name"])]

    return map_func


def machine_to_infrastructure_map_func(gvk: GroupVersionKind) -> MapFunc:
    """Map a Machine to its infrastructure object when the reference is exactly ``gvk``.

    Group, version and kind must all match; a reference to the same kind in
    another group or version maps to nothing.
    """
    return _infrastructure_map_func(KIND_MACHINE, gvk, "machine_to_infrastructure")


def cluster_to_infrastructure_map_func(gvk: GroupVersionKind) -> MapFunc:
    """Map a Cluster to its infrastructure object when the reference is exactly ``gvk``."""
    return _infrastructure_map_func(KIND_CLUSTER, gvk, "cluster_to_infrastructure")


def cluster_to_objects_mapper(
    store: ObjectStore, list_gvk: GroupVersionKind, scheme: Scheme
) -> MapFunc:
    """Map a Cluster to every object of ``list_gvk``'s item kind labelled with its name.

    ``list_gvk`` names a list kind such as ``MachineDeploymentList`` and is
    resolved against ``scheme`` once, here.

    Raises:
        SchemeError: If ``list_gvk`` is not a list kind registered in ``scheme``.
    """
    resource = scheme.resource_for(scheme.item_kind_for(list_gvk))
    mapper_name = f"cluster_to_{resource.plural}"

    def map_func(obj: Mapping[str, Any]) -> list[ObjectKey]:
        if not _is_kind(obj, KIND_CLUSTER):
            return []
        cluster_name = (obj.get("metadata") or {}).get("name")
        if not cluster_name:
            return []
        items = store.list_resource(resource, label_selector={LABEL_CLUSTER_NAME: cluster_name})
        requests = [
            ObjectKey(
                namespace=(item.get("metadata") or {}).get("namespace", ""),
                name=(item.get("metadata") or {}).get("name", ""),
            )
            for item in items
        ]
        structured_logging.logger.debug(
            f"Mapped Cluster to {len(requests)} {resource.kind} object(s)",
            component="mappers",
            resource=cluster_name,
            gvk=str(resource.gvk),
            event="map",
        )
        metrics.MAPPED_REQUESTS_TOTAL.labels(mapper=mapper_name).inc(len(requests))
        return requests

    return map_func
