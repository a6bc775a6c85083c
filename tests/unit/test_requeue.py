"""Unit tests for the requeue service."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from kubernetes import client

from cluster_refs.constants import ANNOTATION_TRIGGER_RECONCILE
from cluster_refs.errors import StoreError
from cluster_refs.schema import MACHINE_GVK, ObjectKey
from cluster_refs.services.requeue import RequeueService


class TestRequeueService:
    """Test trigger-annotation patching."""

    @pytest.fixture
    def machines(self, scheme):
        return scheme.resource_for(MACHINE_GVK)

    def test_patches_each_target(self, store, fake_api, machines, make_machine):
        fake_api.add(make_machine("m1"))
        fake_api.add(make_machine("m2"))

        patched = RequeueService(store).requeue(
            machines, [ObjectKey("default", "m1"), ObjectKey("default", "m2")]
        )

        assert patched == [ObjectKey("default", "m1"), ObjectKey("default", "m2")]
        assert [p["name"] for p in fake_api.patches] == ["m1", "m2"]
        for p in fake_api.patches:
            assert ANNOTATION_TRIGGER_RECONCILE in p["body"]["metadata"]["annotations"]

    def test_duplicates_are_patched_once(self, store, fake_api, machines, make_machine):
        fake_api.add(make_machine("m1"))
        key = ObjectKey("default", "m1")

        assert RequeueService(store).requeue(machines, [key, key, key]) == [key]
        assert len(fake_api.patches) == 1

    def test_deleted_target_is_skipped(self, store, fake_api, machines, make_machine):
        fake_api.add(make_machine("m2"))

        patched = RequeueService(store).requeue(
            machines, [ObjectKey("default", "gone"), ObjectKey("default", "m2")]
        )

        assert patched == [ObjectKey("default", "m2")]

    def test_store_failure_is_raised(self, store, fake_api, machines, make_machine):
        fake_api.add(make_machine("m1"))
        fake_api.error = client.exceptions.ApiException(status=409, reason="Conflict")

        with pytest.raises(StoreError) as exc_info:
            RequeueService(store).requeue(machines, [ObjectKey("default", "m1")])
        assert exc_info.value.status == 409

    def test_no_requests(self, store, fake_api, machines):
        assert RequeueService(store).requeue(machines, []) == []
        assert fake_api.calls == []

    def test_stamp_changes_between_calls(self, store, fake_api, machines, make_machine):
        fake_api.add(make_machine("m1"))
        service = RequeueService(store)
        key = ObjectKey("default", "m1")

        service.requeue(machines, [key])
        service.requeue(machines, [key])

        first, second = [
            p["body"]["metadata"]["annotations"][ANNOTATION_TRIGGER_RECONCILE]
            for p in fake_api.patches
        ]
        assert int(second) > int(first)

    def test_stamp_changes_when_clock_stands_still(
        self, store, fake_api, machines, make_machine
    ):
        fake_api.add(make_machine("m1"))
        service = RequeueService(store)
        key = ObjectKey("default", "m1")

        with patch("cluster_refs.services.requeue.time.time_ns", return_value=1_700_000_000):
            service.requeue(machines, [key])
            service.requeue(machines, [key])

        stamps = [
            p["body"]["metadata"]["annotations"][ANNOTATION_TRIGGER_RECONCILE]
            for p in fake_api.patches
        ]
        assert stamps == ["1700000000", "1700000001"]
