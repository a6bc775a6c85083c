"""Unit tests for metrics functionality."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from cluster_refs import metrics
from cluster_refs.errors import NotFoundError
from cluster_refs.mappers import cluster_to_objects_mapper
from cluster_refs.schema import CLUSTER_GVK, MACHINE_GVK, ObjectKey
from cluster_refs.services.requeue import RequeueService


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetrics:
    """Test metrics collection and exposure."""

    def test_metrics_definitions(self):
        assert metrics.STORE_REQUESTS_TOTAL._type == "counter"
        assert metrics.STORE_REQUEST_DURATION._type == "histogram"
        assert metrics.MAPPED_REQUESTS_TOTAL._type == "counter"
        assert metrics.REQUEUE_PATCHES_TOTAL._type == "counter"

    def test_store_request_metrics(self, store, fake_api, make_cluster):
        fake_api.add(make_cluster("c1"))
        labels = {"operation": "get", "kind": "Cluster"}
        success_before = _sample("cluster_refs_store_requests_total", {**labels, "result": "success"})
        error_before = _sample("cluster_refs_store_requests_total", {**labels, "result": "error"})
        count_before = _sample("cluster_refs_store_request_duration_seconds_count", labels)

        store.get(CLUSTER_GVK, "default", "c1")
        with pytest.raises(NotFoundError):
            store.get(CLUSTER_GVK, "default", "missing")

        success_after = _sample("cluster_refs_store_requests_total", {**labels, "result": "success"})
        error_after = _sample("cluster_refs_store_requests_total", {**labels, "result": "error"})
        assert success_after - success_before == 1
        assert error_after - error_before == 1
        assert _sample("cluster_refs_store_request_duration_seconds_count", labels) - count_before == 2

    def test_mapped_requests_metric(self, store, scheme, fake_api, make_cluster, make_machine):
        fake_api.add(make_machine("m1", cluster="c1"))
        fake_api.add(make_machine("m2", cluster="c1"))
        mapper = cluster_to_objects_mapper(store, MACHINE_GVK.list_kind(), scheme)
        labels = {"mapper": "cluster_to_machines"}
        before = _sample("cluster_refs_mapped_requests_total", labels)

        mapper(make_cluster("c1"))

        assert _sample("cluster_refs_mapped_requests_total", labels) - before == 2

    def test_requeue_patch_metrics(self, store, scheme, fake_api, make_machine):
        fake_api.add(make_machine("m1"))
        resource = scheme.resource_for(MACHINE_GVK)
        success = {"kind": "Machine", "result": "success"}
        gone = {"kind": "Machine", "result": "gone"}
        success_before = _sample("cluster_refs_requeue_patches_total", success)
        gone_before = _sample("cluster_refs_requeue_patches_total", gone)

        RequeueService(store).requeue(
            resource, [ObjectKey("default", "m1"), ObjectKey("default", "deleted")]
        )

        assert _sample("cluster_refs_requeue_patches_total", success) - success_before == 1
        assert _sample("cluster_refs_requeue_patches_total", gone) - gone_before == 1
