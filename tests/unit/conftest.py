"""Shared fixtures for unit tests.

``FakeCustomObjectsApi`` stands in for ``kubernetes.client.CustomObjectsApi``:
it keeps objects in memory and honours namespaces and label selectors the way
the API server does for the calls the object store makes.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

import pytest
from kubernetes import client

from cluster_refs.constants import API_GROUP_VERSION, LABEL_CLUSTER_NAME
from cluster_refs.schema import default_scheme
from cluster_refs.services.store import ObjectStore

PLURALS = {
    "Cluster": "clusters",
    "Machine": "machines",
    "MachineSet": "machinesets",
    "MachineDeployment": "machinedeployments",
    "MachineHealthCheck": "machinehealthchecks",
}


def _matches_selector(labels: dict[str, str], selector: str | None) -> bool:
    if not selector:
        return True
    for term in selector.split(","):
        if "=" in term:
            key, value = term.split("=", 1)
            if labels.get(key) != value:
                return False
        elif term not in labels:
            return False
    return True


class FakeCustomObjectsApi:
    """In-memory CustomObjectsApi keyed by (group, plural)."""

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.patches: list[dict[str, Any]] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.error: Exception | None = None

    def add(self, obj: dict[str, Any], plural: str | None = None) -> dict[str, Any]:
        group = obj["apiVersion"].split("/")[0] if "/" in obj["apiVersion"] else ""
        plural = plural or PLURALS[obj["kind"]]
        self._objects.setdefault((group, plural), []).append(obj)
        return obj

    def _maybe_fail(self, method: str, kwargs: dict[str, Any]) -> None:
        self.calls.append((method, kwargs))
        if self.error is not None:
            raise self.error

    def _items(self, group: str, plural: str) -> list[dict[str, Any]]:
        return self._objects.get((group, plural), [])

    def _find(self, group: str, plural: str, namespace: str | None, name: str) -> dict[str, Any]:
        for obj in self._items(group, plural):
            meta = obj.get("metadata", {})
            if meta.get("name") == name and (namespace is None or meta.get("namespace") == namespace):
                return obj
        raise client.exceptions.ApiException(status=404, reason="Not Found")

    def get_namespaced_custom_object(
        self, group: str, version: str, namespace: str, plural: str, name: str, **kwargs: Any
    ) -> dict[str, Any]:
        self._maybe_fail("get_namespaced_custom_object", kwargs)
        return copy.deepcopy(self._find(group, plural, namespace, name))

    def get_cluster_custom_object(
        self, group: str, version: str, plural: str, name: str, **kwargs: Any
    ) -> dict[str, Any]:
        self._maybe_fail("get_cluster_custom_object", kwargs)
        return copy.deepcopy(self._find(group, plural, None, name))

    def list_namespaced_custom_object(
        self,
        group: str,
        version: str,
        namespace: str,
        plural: str,
        label_selector: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        self._maybe_fail("list_namespaced_custom_object", kwargs)
        items = [
            copy.deepcopy(obj)
            for obj in self._items(group, plural)
            if obj.get("metadata", {}).get("namespace") == namespace
            and _matches_selector(obj.get("metadata", {}).get("labels") or {}, label_selector)
        ]
        return {"items": items}

    def list_cluster_custom_object(
        self, group: str, version: str, plural: str, label_selector: str | None = None, **kwargs: Any
    ) -> dict[str, Any]:
        self._maybe_fail("list_cluster_custom_object", kwargs)
        items = [
            copy.deepcopy(obj)
            for obj in self._items(group, plural)
            if _matches_selector(obj.get("metadata", {}).get("labels") or {}, label_selector)
        ]
        return {"items": items}

    def patch_namespaced_custom_object(
        self,
        group: str,
        version: str,
        namespace: str,
        plural: str,
        name: str,
        body: dict[str, Any],
        **kwargs: Any,
    ) -> dict[str, Any]:
        self._maybe_fail("patch_namespaced_custom_object", kwargs)
        obj = self._find(group, plural, namespace, name)
        annotations = obj.setdefault("metadata", {}).setdefault("annotations", {})
        annotations.update(body.get("metadata", {}).get("annotations", {}))
        self.patches.append({"plural": plural, "namespace": namespace, "name": name, "body": body})
        return copy.deepcopy(obj)


def _object(
    kind: str,
    name: str,
    namespace: str | None,
    api_version: str = API_GROUP_VERSION,
    labels: dict[str, str] | None = None,
    owner_references: list[dict[str, Any]] | None = None,
    uid: str | None = None,
    spec: dict[str, Any] | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {"name": name}
    if namespace is not None:
        metadata["namespace"] = namespace
    if labels:
        metadata["labels"] = dict(labels)
    if owner_references:
        metadata["ownerReferences"] = list(owner_references)
    metadata["uid"] = uid or f"uid-{kind.lower()}-{name}"
    obj: dict[str, Any] = {"apiVersion": api_version, "kind": kind, "metadata": metadata}
    if spec is not None:
        obj["spec"] = spec
    return obj


@pytest.fixture
def fake_api() -> FakeCustomObjectsApi:
    return FakeCustomObjectsApi()


@pytest.fixture
def scheme():
    return default_scheme()


@pytest.fixture
def store(scheme, fake_api) -> ObjectStore:
    return ObjectStore(scheme, api=fake_api)


@pytest.fixture
def make_cluster() -> Callable[..., dict[str, Any]]:
    def factory(name: str, namespace: str | None = "default", **kwargs: Any) -> dict[str, Any]:
        return _object("Cluster", name, namespace, **kwargs)

    return factory


@pytest.fixture
def make_machine() -> Callable[..., dict[str, Any]]:
    def factory(
        name: str,
        namespace: str | None = "default",
        cluster: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        labels = dict(kwargs.pop("labels", None) or {})
        if cluster is not None:
            labels[LABEL_CLUSTER_NAME] = cluster
        return _object("Machine", name, namespace, labels=labels, **kwargs)

    return factory


@pytest.fixture
def make_machine_deployment() -> Callable[..., dict[str, Any]]:
    def factory(
        name: str, namespace: str | None = "default", cluster: str | None = None, **kwargs: Any
    ) -> dict[str, Any]:
        labels = {LABEL_CLUSTER_NAME: cluster} if cluster is not None else None
        return _object("MachineDeployment", name, namespace, labels=labels, **kwargs)

    return factory
