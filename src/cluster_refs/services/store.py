"""Object store adapter over the Kubernetes custom objects API."""

from __future__ import annotations

import os
from collections.abc import Mapping
from functools import partial
from time import monotonic
from typing import Any

import urllib3
from kubernetes import client, config

from .. import logging as structured_logging
from .. import metrics
from ..constants import DEFAULT_REQUEST_TIMEOUT, FIELD_MANAGER, REQUEST_TIMEOUT_ENV
from ..errors import NotFoundError, StoreError
from ..schema import GroupVersionKind, Resource, Scheme


def load_kube_config() -> None:
    """Load in-cluster config, falling back to the local kube config."""
    try:
        config.load_incluster_config()
    except Exception:
        try:
            config.load_kube_config()
        except Exception:
            # Running without kube config (e.g., unit tests)
            pass


def request_timeout_from_env() -> float:
    raw = os.getenv(REQUEST_TIMEOUT_ENV)
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(
            f"{REQUEST_TIMEOUT_ENV} must be a number of seconds, got {raw!r}"
        ) from None
    if value <= 0:
        raise ValueError(f"{REQUEST_TIMEOUT_ENV} must be positive, got {raw!r}")
    return value


def format_label_selector(labels: Mapping[str, str | None] | None) -> str | None:
    """Render ``{"a": "b", "c": None}`` as ``a=b,c``; a None value only requires the key."""
    if not labels:
        return None
    return ",".join(key if value is None else f"{key}={value}" for key, value in labels.items())


class ObjectStore:
    """Read access to typed objects, resolved through a scheme.

    Every read is a point-in-time snapshot; nothing is cached between calls.
    ``request_timeout`` bounds each call and defaults to
    ``CLUSTER_REFS_REQUEST_TIMEOUT`` (30 seconds when unset). A call that
    times out fails with ``StoreError`` like any other transport failure.
    """

    def __init__(
        self,
        scheme: Scheme,
        api: client.CustomObjectsApi | None = None,
        request_timeout: float | None = None,
    ) -> None:
        self.scheme = scheme
        self._api = api
        if request_timeout is None:
            request_timeout = request_timeout_from_env()
        self.request_timeout = request_timeout

    @property
    def api(self) -> client.CustomObjectsApi:
        if self._api is None:
            return client.CustomObjectsApi()
        return self._api

    def _call_kwargs(self) -> dict[str, Any]:
        return {"_request_timeout": self.request_timeout}

    def _execute(self, operation: str, resource: Resource, target: str, fn: Any) -> Any:
        started_at = monotonic()
        try:
            result = fn()
        except client.exceptions.ApiException as e:
            metrics.STORE_REQUESTS_TOTAL.labels(
                operation=operation, kind=resource.kind, result="error"
            ).inc()
            if e.status == 404:
                raise NotFoundError(f"{resource.kind} {target} not found") from e
            raise StoreError(
                f"failed to {operation} {resource.kind} {target}: {e.reason}", status=e.status
            ) from e
        except urllib3.exceptions.HTTPError as e:
            metrics.STORE_REQUESTS_TOTAL.labels(
                operation=operation, kind=resource.kind, result="error"
            ).inc()
            raise StoreError(f"failed to {operation} {resource.kind} {target}: {e}") from e
        finally:
            metrics.STORE_REQUEST_DURATION.labels(operation=operation, kind=resource.kind).observe(
                monotonic() - started_at
            )
        metrics.STORE_REQUESTS_TOTAL.labels(
            operation=operation, kind=resource.kind, result="success"
        ).inc()
        return result

    def get(self, gvk: GroupVersionKind, namespace: str | None, name: str) -> dict[str, Any]:
        return self.get_resource(self.scheme.resource_for(gvk), namespace, name)

    def list(
        self,
        gvk: GroupVersionKind,
        namespace: str | None = None,
        label_selector: Mapping[str, str | None] | None = None,
    ) -> list[dict[str, Any]]:
        return self.list_resource(self.scheme.resource_for(gvk), namespace, label_selector)

    def get_resource(
        self, resource: Resource, namespace: str | None, name: str
    ) -> dict[str, Any]:
        api = self.api
        if resource.namespaced:
            target = f"{namespace}/{name}"
            fn = partial(
                api.get_namespaced_custom_object,
                group=resource.group,
                version=resource.version,
                namespace=namespace,
                plural=resource.plural,
                name=name,
                **self._call_kwargs(),
            )
        else:
            target = name
            fn = partial(
                api.get_cluster_custom_object,
                group=resource.group,
                version=resource.version,
                plural=resource.plural,
                name=name,
                **self._call_kwargs(),
            )
        structured_logging.logger.debug(
            "Fetching object",
            component="store",
            resource=target,
            gvk=str(resource.gvk),
            event="get",
        )
        return self._execute("get", resource, target, fn)

    def list_resource(
        self,
        resource: Resource,
        namespace: str | None = None,
        label_selector: Mapping[str, str | None] | None = None,
    ) -> list[dict[str, Any]]:
        api = self.api
        selector_kwargs: dict[str, Any] = dict(self._call_kwargs())
        selector = format_label_selector(label_selector)
        if selector:
            selector_kwargs["label_selector"] = selector

        if namespace and resource.namespaced:
            target = f"in namespace {namespace}"
            fn = partial(
                api.list_namespaced_custom_object,
                group=resource.group,
                version=resource.version,
                namespace=namespace,
                plural=resource.plural,
                **selector_kwargs,
            )
        else:
            target = "in all namespaces"
            fn = partial(
                api.list_cluster_custom_object,
                group=resource.group,
                version=resource.version,
                plural=resource.plural,
                **selector_kwargs,
            )
        structured_logging.logger.debug(
            "Listing objects",
            component="store",
            resource=target,
            gvk=str(resource.gvk),
            event="list",
            label_selector=selector,
        )
        result = self._execute("list", resource, target, fn)
        return list((result or {}).get("items") or [])

    def patch_annotations(
        self,
        resource: Resource,
        namespace: str | None,
        name: str,
        annotations: Mapping[str, str],
    ) -> dict[str, Any]:
        api = self.api
        body = {"metadata": {"annotations": dict(annotations)}}
        if resource.namespaced:
            target = f"{namespace}/{name}"
            fn = partial(
                api.patch_namespaced_custom_object,
                group=resource.group,
                version=resource.version,
                namespace=namespace,
                plural=resource.plural,
                name=name,
                body=body,
                field_manager=FIELD_MANAGER,
                **self._call_kwargs(),
            )
        else:
            target = name
            fn = partial(
                api.patch_cluster_custom_object,
                group=resource.group,
                version=resource.version,
                plural=resource.plural,
                name=name,
                body=body,
                field_manager=FIELD_MANAGER,
                **self._call_kwargs(),
            )
        return self._execute("patch", resource, target, fn)
