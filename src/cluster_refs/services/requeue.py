"""Trigger reconciliation of mapped objects by touching an annotation."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable

from .. import logging as structured_logging
from .. import metrics
from ..constants import ANNOTATION_TRIGGER_RECONCILE
from ..errors import NotFoundError, StoreError
from ..schema import ObjectKey, Resource
from .store import ObjectStore


class RequeueService:
    """Nudges the handlers of other resources by patching a trigger annotation.

    The annotation value changes on every call, so the patch is always a real
    update event for whichever operator watches ``resource``.
    """

    def __init__(self, store: ObjectStore) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._last_stamp = 0

    def _next_stamp(self) -> str:
        # Strictly increasing even when the clock does not advance between calls.
        with self._lock:
            self._last_stamp = max(time.time_ns(), self._last_stamp + 1)
            return str(self._last_stamp)

    def requeue(self, resource: Resource, requests: Iterable[ObjectKey]) -> list[ObjectKey]:
        """Patch every request's target and return the keys that were patched.

        A target deleted since it was mapped is skipped. Any other store
        failure is raised after the targets before it have been patched.
        """
        patched: list[ObjectKey] = []
        stamp = self._next_stamp()
        for key in dict.fromkeys(requests):
            try:
                self._store.patch_annotations(
                    resource,
                    key.namespace or None,
                    key.name,
                    {ANNOTATION_TRIGGER_RECONCILE: stamp},
                )
            except NotFoundError:
                metrics.REQUEUE_PATCHES_TOTAL.labels(kind=resource.kind, result="gone").inc()
                structured_logging.logger.debug(
                    "Requeue target no longer exists",
                    component="requeue",
                    resource=str(key),
                    gvk=str(resource.gvk),
                    event="requeue",
                    reason="TargetGone",
                )
                continue
            except StoreError:
                metrics.REQUEUE_PATCHES_TOTAL.labels(kind=resource.kind, result="error").inc()
                raise
            metrics.REQUEUE_PATCHES_TOTAL.labels(kind=resource.kind, result="success").inc()
            patched.append(key)

        if patched:
            structured_logging.logger.info(
                f"Requeued {len(patched)} {resource.kind} object(s)",
                component="requeue",
                gvk=str(resource.gvk),
                event="requeue",
                reason="RequeueTriggered",
            )
        return patched
