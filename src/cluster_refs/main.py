from __future__ import annotations

import os
from contextlib import suppress
from functools import lru_cache
from typing import Any

import kopf
from prometheus_client import start_http_server

from . import logging as structured_logging
from .constants import (
    API_GROUP,
    API_VERSION,
    DEFAULT_METRICS_PORT,
    INFRA_MACHINE_GVK_ENV,
    METRICS_PORT_ENV,
)
from .mappers import MapFunc, cluster_to_objects_mapper, machine_to_infrastructure_map_func
from .schema import (
    MACHINE_DEPLOYMENT_GVK,
    MACHINE_GVK,
    GroupVersionKind,
    Resource,
    Scheme,
    default_scheme,
)
from .services.requeue import RequeueService
from .services.store import ObjectStore, load_kube_config, request_timeout_from_env

SCHEME = default_scheme()
STORE = ObjectStore(SCHEME)
REQUEUE = RequeueService(STORE)

CLUSTER_FANOUT: list[tuple[MapFunc, Resource]] = [
    (
        cluster_to_objects_mapper(STORE, MACHINE_GVK.list_kind(), SCHEME),
        SCHEME.resource_for(MACHINE_GVK),
    ),
    (
        cluster_to_objects_mapper(STORE, MACHINE_DEPLOYMENT_GVK.list_kind(), SCHEME),
        SCHEME.resource_for(MACHINE_DEPLOYMENT_GVK),
    ),
]


def metrics_port_from_env() -> int:
    raw = os.getenv(METRICS_PORT_ENV)
    if not raw:
        return DEFAULT_METRICS_PORT
    return int(raw)


@lru_cache(maxsize=None)
def infrastructure_machine_target() -> tuple[MapFunc, Resource] | None:
    """Return the Machine -> infrastructure mapper configured in the environment, if any.

    The value is ``Kind.version.group``; the plural is the lower-cased kind
    with an "s", which is how infrastructure providers name their CRDs.
    """
    raw = os.getenv(INFRA_MACHINE_GVK_ENV)
    if not raw:
        return None
    gvk = GroupVersionKind.parse(raw)
    scheme = Scheme()
    resource = scheme.add_known_type(gvk, plural=f"{gvk.kind.lower()}s")
    return machine_to_infrastructure_map_func(gvk), resource


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    structured_logging.setup_structured_logging()

    timeout = request_timeout_from_env()
    settings.networking.request_timeout = timeout
    settings.execution.max_workers = 4
    STORE.request_timeout = timeout

    # Start metrics HTTP server (Prometheus)
    with suppress(Exception):
        start_http_server(metrics_port_from_env())

    load_kube_config()


def _fan_out(
    obj: dict[str, Any], targets: list[tuple[MapFunc, Resource]], source_kind: str
) -> int:
    """Requeue every target's mapped objects and return how many were patched.

    kopf does not retry event handlers, so a failing target does not stop the
    others; the first error is raised once all targets have been tried.
    """
    meta = obj.get("metadata") or {}
    resource = f"{meta.get('namespace', '')}/{meta.get('name', '')}"
    total = 0
    first_error: Exception | None = None
    for map_func, target in targets:
        try:
            total += len(REQUEUE.requeue(target, map_func(obj)))
        except Exception as e:
            structured_logging.logger.error(
                f"Fan-out from {source_kind} to {target.kind} failed: {str(e)}",
                component="main",
                resource=resource,
                uid=meta.get("uid"),
                gvk=str(target.gvk),
                event="fanout",
                reason="FanOutFailed",
            )
            if first_error is None:
                first_error = e
    if first_error is not None:
        raise first_error
    return total


@kopf.on.event(API_GROUP, API_VERSION, "clusters")
def on_cluster_event(event: dict[str, Any], **_: Any) -> None:
    """Requeue the Machines and MachineDeployments labelled for a changed Cluster."""
    _fan_out(event.get("object") or {}, CLUSTER_FANOUT, "Cluster")


@kopf.on.event(API_GROUP, API_VERSION, "machines")
def on_machine_event(event: dict[str, Any], **_: Any) -> None:
    """Requeue the infrastructure object referenced by a changed Machine."""
    target = infrastructure_machine_target()
    if target is None:
        return
    _fan_out(event.get("object") or {}, [target], "Machine")
