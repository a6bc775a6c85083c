"""Group/version/kind identities and the scheme that maps kinds to resources."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    API_GROUP_VERSION,
    KIND_CLUSTER,
    KIND_MACHINE,
    KIND_MACHINE_DEPLOYMENT,
    KIND_MACHINE_HEALTH_CHECK,
    KIND_MACHINE_SET,
)
from .errors import ParseError, SchemeError

LIST_SUFFIX = "List"


def parse_group_version(api_version: str) -> tuple[str, str]:
    """Split an apiVersion into (group, version).

    A bare version such as ``v1`` belongs to the core group, which is empty.
    """
    if not api_version:
        raise ParseError("empty apiVersion")
    parts = api_version.split("/")
    if len(parts) == 1:
        return "", parts[0]
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    raise ParseError(f"unexpected GroupVersion string: {api_version!r}")


@dataclass(frozen=True)
class GroupVersionKind:
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    @property
    def group_kind(self) -> tuple[str, str]:
        return self.group, self.kind

    @property
    def is_list(self) -> bool:
        return self.kind.endswith(LIST_SUFFIX) and len(self.kind) > len(LIST_SUFFIX)

    def list_kind(self) -> GroupVersionKind:
        return GroupVersionKind(self.group, self.version, self.kind + LIST_SUFFIX)

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> GroupVersionKind:
        group, version = parse_group_version(api_version)
        return cls(group, version, kind)

    @classmethod
    def parse(cls, value: str) -> GroupVersionKind:
        """Parse the dotted ``Kind.version.group`` form.

        ``DockerMachine.v1alpha3.infrastructure.cluster.x-k8s.io`` gives group
        ``infrastructure.cluster.x-k8s.io``, version ``v1alpha3``, kind ``DockerMachine``.
        """
        parts = (value or "").strip().split(".", 2)
        if len(parts) < 2 or not all(parts):
            raise ParseError(f"expected Kind.version[.group], got {value!r}")
        kind, version = parts[0], parts[1]
        group = parts[2] if len(parts) == 3 else ""
        return cls(group, version, kind)

    def __str__(self) -> str:
        return f"{self.api_version}, Kind={self.kind}"


@dataclass(frozen=True, order=True)
class ObjectKey:
    """Namespace and name of an object to reconcile."""

    namespace: str
    name: str

    def __str__(self) -> str:
        if not self.namespace:
            return self.name
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class Resource:
    """REST identity of a registered kind."""

    group: str
    version: str
    kind: str
    plural: str
    namespaced: bool = True

    @property
    def gvk(self) -> GroupVersionKind:
        return GroupVersionKind(self.group, self.version, self.kind)


class Scheme:
    """Registry of known kinds.

    A scheme is an ordinary object: create one per operator (or per test) and
    pass it to whatever needs to resolve kinds.
    """

    def __init__(self) -> None:
        self._resources: dict[GroupVersionKind, Resource] = {}

    def add_known_type(
        self, gvk: GroupVersionKind, plural: str, namespaced: bool = True
    ) -> Resource:
        if gvk.is_list:
            raise SchemeError(f"register the item kind, not the list kind: {gvk}")
        resource = Resource(gvk.group, gvk.version, gvk.kind, plural, namespaced)
        self._resources[gvk] = resource
        return resource

    def is_registered(self, gvk: GroupVersionKind) -> bool:
        if gvk in self._resources:
            return True
        if gvk.is_list:
            return self._item_gvk(gvk) in self._resources
        return False

    def item_kind_for(self, list_gvk: GroupVersionKind) -> GroupVersionKind:
        if not list_gvk.is_list:
            raise SchemeError(f"expected a list kind, got {list_gvk}")
        item = self._item_gvk(list_gvk)
        if item not in self._resources:
            raise SchemeError(f"no kind {list_gvk} is registered in the scheme")
        return item

    def resource_for(self, gvk: GroupVersionKind) -> Resource:
        key = self._item_gvk(gvk) if gvk.is_list else gvk
        try:
            return self._resources[key]
        except KeyError:
            raise SchemeError(f"no kind {gvk} is registered in the scheme") from None

    def known_kinds(self) -> list[GroupVersionKind]:
        return list(self._resources)

    @staticmethod
    def _item_gvk(list_gvk: GroupVersionKind) -> GroupVersionKind:
        return GroupVersionKind(
            list_gvk.group, list_gvk.version, list_gvk.kind[: -len(LIST_SUFFIX)]
        )


CLUSTER_GVK = GroupVersionKind.from_api_version(API_GROUP_VERSION, KIND_CLUSTER)
MACHINE_GVK = GroupVersionKind.from_api_version(API_GROUP_VERSION, KIND_MACHINE)
MACHINE_SET_GVK = GroupVersionKind.from_api_version(API_GROUP_VERSION, KIND_MACHINE_SET)
MACHINE_DEPLOYMENT_GVK = GroupVersionKind.from_api_version(
    API_GROUP_VERSION, KIND_MACHINE_DEPLOYMENT
)
MACHINE_HEALTH_CHECK_GVK = GroupVersionKind.from_api_version(
    API_GROUP_VERSION, KIND_MACHINE_HEALTH_CHECK
)


def default_scheme() -> Scheme:
    """Return a new scheme with the cluster API kinds registered."""
    scheme = Scheme()
    scheme.add_known_type(CLUSTER_GVK, "clusters")
    scheme.add_known_type(MACHINE_GVK, "machines")
    scheme.add_known_type(MACHINE_SET_GVK, "machinesets")
    scheme.add_known_type(MACHINE_DEPLOYMENT_GVK, "machinedeployments")
    scheme.add_known_type(MACHINE_HEALTH_CHECK_GVK, "machinehealthchecks")
    return scheme
