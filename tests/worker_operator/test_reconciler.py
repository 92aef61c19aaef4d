"""Behavioral tests for WorkerClusterReconciler."""

from __future__ import annotations

import asyncio
from typing import cast

import pytest

from tests.worker_operator.factories import create_cluster, get_cluster, make_pod
from tests.worker_operator.mocks import FlakyObjectStore
from worker_operator.controller import ReconcileRequest, ReconcileResult, WorkerClusterReconciler
from worker_operator.controller.builder import (
    POOL_SIZE_ENV,
    TEMPLATE_HASH_ANNOTATION,
    build_deployment,
)
from worker_operator.errors import (
    AlreadyExistsError,
    ConflictError,
    TemplatePreconditionError,
    TransientStoreError,
)
from worker_operator.models.config import ControlPlaneConfig
from worker_operator.models.enums import Kind, SpecDriftPolicy
from worker_operator.models.meta import LabelSelector, ObjectKey
from worker_operator.models.workload import Deployment
from worker_operator.store import InMemoryObjectStore

KEY = ObjectKey(namespace="ci", name="workers")


async def _deployment(store: InMemoryObjectStore, key: ObjectKey = KEY) -> Deployment:
    return cast(Deployment, await store.get(Kind.DEPLOYMENT, key))


async def _reconcile(reconciler: WorkerClusterReconciler, key: ObjectKey = KEY) -> ReconcileResult:
    return await reconciler.reconcile(ReconcileRequest(key=key))


class TestCreate:
    """First pass against a cluster without a deployment."""

    @pytest.mark.asyncio
    async def test_creates_owned_deployment_and_status(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """One pass creates the canonical deployment and publishes status."""
        # Given: A stored WorkerCluster and one matching pod
        cluster = await create_cluster(store)
        await store.create(make_pod("workers-abc"))
        reconciler = WorkerClusterReconciler(flaky_store)

        # When: Reconciling
        result = await _reconcile(reconciler)

        # Then: Success with no requeue
        assert result == ReconcileResult()
        assert result.requeue_after is None

        # Then: The deployment equals the builder output plus a controller reference
        deployment = await _deployment(store)
        expected = build_deployment(cluster)
        assert deployment.spec == expected.spec
        assert deployment.metadata.labels == expected.metadata.labels
        owner = deployment.metadata.controller_reference()
        assert owner is not None
        assert owner.uid == cluster.metadata.uid
        assert owner.kind == "WorkerCluster"

        # Then: Status lists the pod
        updated = await get_cluster(store, KEY)
        assert updated.status is not None
        assert [w.name for w in updated.status.worker_statuses] == ["workers-abc"]
        assert flaky_store.count("create", Kind.DEPLOYMENT) == 1

    @pytest.mark.asyncio
    async def test_injects_control_plane_settings(self, store: InMemoryObjectStore) -> None:
        """Configured control-plane values reach the worker container env."""
        await create_cluster(store)
        reconciler = WorkerClusterReconciler(
            store, control_plane=ControlPlaneConfig(addr="ctl:8080", auth="u:p")
        )

        await _reconcile(reconciler)

        container = (await _deployment(store)).spec.template.spec.containers[0]
        env = {e.name: e.value for e in container.env}
        assert env["TRAVIS_WORKER_REMOTE_CONTROLLER_ADDR"] == "ctl:8080"
        assert env["TRAVIS_WORKER_REMOTE_CONTROLLER_AUTH"] == "u:p"
        assert env[POOL_SIZE_ENV] == "0"

    @pytest.mark.asyncio
    async def test_empty_pod_set_publishes_empty_list(self, store: InMemoryObjectStore) -> None:
        """No pods means an empty list of worker statuses, not a missing one."""
        await create_cluster(store)

        await _reconcile(WorkerClusterReconciler(store))

        updated = await get_cluster(store, KEY)
        assert updated.status is not None
        assert updated.status.worker_statuses == []
        assert updated.to_manifest()["status"] == {"workerStatuses": []}


class TestIdempotence:
    """Repeated passes with unchanged inputs."""

    @pytest.mark.asyncio
    async def test_second_pass_writes_nothing(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """A converged cluster is left exactly as it was."""
        # Given: A cluster reconciled once
        await create_cluster(store)
        await store.create(make_pod("workers-1"))
        reconciler = WorkerClusterReconciler(flaky_store)
        await _reconcile(reconciler)
        deployment_before = await _deployment(store)
        cluster_before = await get_cluster(store, KEY)

        # When: Reconciling again
        await _reconcile(reconciler)

        # Then: No new create or update, and no resource version moved
        assert flaky_store.count("create") == 1
        assert flaky_store.count("update") == 0
        assert (await _deployment(store)).metadata.resource_version == (
            deployment_before.metadata.resource_version
        )
        assert (await get_cluster(store, KEY)).metadata.resource_version == (
            cluster_before.metadata.resource_version
        )

    @pytest.mark.asyncio
    async def test_creation_is_deterministic(self) -> None:
        """Two independent stores end up with equal deployments."""
        # Given: Two stores holding equal clusters
        first_store, second_store = InMemoryObjectStore(), InMemoryObjectStore()
        await create_cluster(first_store)
        await create_cluster(second_store)

        # When: Reconciling each
        await _reconcile(WorkerClusterReconciler(first_store))
        await _reconcile(WorkerClusterReconciler(second_store))

        # Then: Deployments match apart from server-assigned fields
        first = await _deployment(first_store)
        second = await _deployment(second_store)
        assert first.spec == second.spec
        assert first.metadata.labels == second.metadata.labels
        assert first.metadata.annotations == second.metadata.annotations


class TestStatusRegeneration:
    """Status is rebuilt from observation on every pass."""

    @pytest.mark.asyncio
    async def test_tracks_pod_set_changes(self, store: InMemoryObjectStore) -> None:
        """Entries appear and disappear with the pods."""
        # Given: A cluster with pod A
        await create_cluster(store)
        await store.create(make_pod("worker-a"))
        reconciler = WorkerClusterReconciler(store)
        await _reconcile(reconciler)
        status = (await get_cluster(store, KEY)).status
        assert status is not None
        assert {w.name for w in status.worker_statuses} == {"worker-a"}

        # When: Pod B appears
        await store.create(make_pod("worker-b"))
        await _reconcile(reconciler)

        # Then: Both are listed
        status = (await get_cluster(store, KEY)).status
        assert status is not None
        assert {w.name for w in status.worker_statuses} == {"worker-a", "worker-b"}

        # When: Pod A goes away
        await store.delete(Kind.POD, ObjectKey("ci", "worker-a"))
        await _reconcile(reconciler)

        # Then: No stale entry survives
        status = (await get_cluster(store, KEY)).status
        assert status is not None
        assert [w.name for w in status.worker_statuses] == ["worker-b"]

    @pytest.mark.asyncio
    async def test_ignores_unselected_pods(self, store: InMemoryObjectStore) -> None:
        """Pods in other namespaces or with other labels are not reported."""
        await create_cluster(store)
        await store.create(make_pod("mine"))
        await store.create(make_pod("other-ns", namespace="prod"))
        await store.create(make_pod("other-app", labels={"app": "web"}))

        await _reconcile(WorkerClusterReconciler(store))

        status = (await get_cluster(store, KEY)).status
        assert status is not None
        assert [w.name for w in status.worker_statuses] == ["mine"]

    @pytest.mark.asyncio
    async def test_uses_observed_deployment_selector(self, store: InMemoryObjectStore) -> None:
        """Pods are selected by the stored deployment's selector."""
        # Given: A pre-existing deployment with a narrower selector than the cluster's
        cluster = await create_cluster(store)
        existing = build_deployment(cluster)
        existing.spec.selector = LabelSelector(match_labels={"app": "travis-worker", "pin": "1"})
        await store.create(existing)
        pinned_labels = {"app": "travis-worker", "site": "com", "pin": "1"}
        await store.create(make_pod("pinned", labels=pinned_labels))
        await store.create(make_pod("loose"))

        # When: Reconciling
        await _reconcile(WorkerClusterReconciler(store))

        # Then: Only pods matching the stored selector are reported
        status = (await get_cluster(store, KEY)).status
        assert status is not None
        assert [w.name for w in status.worker_statuses] == ["pinned"]


class TestDrift:
    """Existing deployments whose template differs from the cluster's."""

    @pytest.mark.asyncio
    async def test_ignore_policy_never_updates(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """With the default policy a changed template is not rolled out."""
        # Given: A reconciled cluster whose image then changes
        await create_cluster(store, image="travisci/worker:v1")
        reconciler = WorkerClusterReconciler(flaky_store)
        await _reconcile(reconciler)
        cluster = await get_cluster(store, KEY)
        cluster.spec.template.spec.containers[0].image = "travisci/worker:v2"
        await store.update(cluster)

        # When: Reconciling
        await _reconcile(reconciler)

        # Then: The deployment still runs the old image
        deployment = await _deployment(store)
        assert deployment.spec.template.spec.containers[0].image == "travisci/worker:v1"
        assert flaky_store.count("update") == 0

    @pytest.mark.asyncio
    async def test_hash_policy_rolls_out_new_template(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """With the hash policy the operator-owned fields are rewritten once."""
        # Given: A reconciled cluster whose image and labels then change
        await create_cluster(store, image="travisci/worker:v1")
        reconciler = WorkerClusterReconciler(flaky_store, drift_policy=SpecDriftPolicy.HASH)
        await _reconcile(reconciler)
        original = await _deployment(store)
        cluster = await get_cluster(store, KEY)
        cluster.spec.template.spec.containers[0].image = "travisci/worker:v2"
        cluster.metadata.labels["tier"] = "ci"
        await store.update(cluster)

        # When: Reconciling
        await _reconcile(reconciler)

        # Then: The deployment runs the new image with a new hash and the same selector
        deployment = await _deployment(store)
        assert deployment.spec.template.spec.containers[0].image == "travisci/worker:v2"
        assert deployment.metadata.labels["tier"] == "ci"
        assert deployment.spec.selector == original.spec.selector
        assert deployment.metadata.uid == original.metadata.uid
        assert (
            deployment.metadata.annotations[TEMPLATE_HASH_ANNOTATION]
            != original.metadata.annotations[TEMPLATE_HASH_ANNOTATION]
        )
        assert flaky_store.count("update", Kind.DEPLOYMENT) == 1

        # When: Reconciling once more
        await _reconcile(reconciler)

        # Then: Nothing else is written
        assert flaky_store.count("update", Kind.DEPLOYMENT) == 1

    @pytest.mark.asyncio
    async def test_hash_policy_keeps_template_matching_selector(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """A changed selector is not rolled out, since the stored selector cannot change."""
        # Given: A reconciled cluster whose selector and pod labels then change
        await create_cluster(store)
        reconciler = WorkerClusterReconciler(flaky_store, drift_policy=SpecDriftPolicy.HASH)
        await _reconcile(reconciler)
        original = await _deployment(store)
        cluster = await get_cluster(store, KEY)
        cluster.spec.selector = LabelSelector(match_labels={"app": "travis-worker-v2"})
        cluster.spec.template.metadata.labels = {"app": "travis-worker-v2"}
        await store.update(cluster)

        # When: Reconciling
        await _reconcile(reconciler)

        # Then: The deployment is untouched and its template still matches its selector
        deployment = await _deployment(store)
        assert flaky_store.count("update", Kind.DEPLOYMENT) == 0
        assert deployment.spec == original.spec
        assert deployment.spec.selector.matches(deployment.spec.template.metadata.labels)
        assert (await get_cluster(store, KEY)).status is not None

    @pytest.mark.asyncio
    async def test_hash_policy_leaves_foreign_deployment_alone(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """A same-named deployment not controlled by the cluster is never rewritten."""
        # Given: An unowned deployment built from an older template
        cluster = await create_cluster(store, image="travisci/worker:v1")
        foreign = build_deployment(cluster)
        foreign.metadata.annotations.clear()
        await store.create(foreign)
        reconciler = WorkerClusterReconciler(flaky_store, drift_policy=SpecDriftPolicy.HASH)

        # When: Reconciling
        await _reconcile(reconciler)

        # Then: It is adopted for status purposes but not updated
        assert flaky_store.count("update") == 0
        assert (await _deployment(store)).metadata.owner_references == []
        assert (await get_cluster(store, KEY)).status is not None


class TestRaces:
    """Concurrent writers and disappearing objects."""

    @pytest.mark.asyncio
    async def test_missing_cluster_is_success(self, flaky_store: FlakyObjectStore) -> None:
        """A deleted cluster ends the pass successfully without writes."""
        reconciler = WorkerClusterReconciler(flaky_store)

        result = await _reconcile(reconciler)

        assert result == ReconcileResult()
        assert flaky_store.count("create") == 0
        assert flaky_store.count("update_status") == 0

    @pytest.mark.asyncio
    async def test_adopts_deployment_created_concurrently(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """Losing a create race adopts the winner's deployment."""
        # Given: Another writer creates the deployment just before our create lands
        await create_cluster(store)

        async def _concurrent_create(obj: object) -> None:
            flaky_store.before_create = None
            await store.create(obj)  # type: ignore[arg-type]

        flaky_store.before_create = _concurrent_create
        reconciler = WorkerClusterReconciler(flaky_store)

        # When: Reconciling
        result = await _reconcile(reconciler)

        # Then: The pass succeeds with exactly one deployment
        assert result == ReconcileResult()
        deployments = await store.list(Kind.DEPLOYMENT, "ci", LabelSelector())
        assert len(deployments) == 1
        assert (await get_cluster(store, KEY)).status is not None

    @pytest.mark.asyncio
    async def test_already_exists_without_object_propagates(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """If the conflicting deployment vanished again, the error is raised."""
        await create_cluster(store)
        error = AlreadyExistsError(Kind.DEPLOYMENT, KEY)
        flaky_store.fail_next("create", error)

        with pytest.raises(AlreadyExistsError) as exc_info:
            await _reconcile(WorkerClusterReconciler(flaky_store))

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_transient_read_error_propagates_unchanged(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """Errors other than not-found are re-raised as-is."""
        await create_cluster(store)
        error = TransientStoreError("apiserver unavailable", kind=Kind.WORKER_CLUSTER, key=KEY)
        flaky_store.fail_next("get", error)

        with pytest.raises(TransientStoreError) as exc_info:
            await _reconcile(WorkerClusterReconciler(flaky_store))

        assert exc_info.value is error
        assert flaky_store.count("create") == 0

    @pytest.mark.asyncio
    async def test_status_conflict_propagates(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """A status write that loses to a concurrent writer fails the pass."""
        # Given: The status write will conflict
        await create_cluster(store)
        flaky_store.fail_next("update_status", ConflictError(Kind.WORKER_CLUSTER, KEY))
        reconciler = WorkerClusterReconciler(flaky_store)

        # When/Then: The pass fails, but the deployment was still created
        with pytest.raises(ConflictError):
            await _reconcile(reconciler)
        assert await _deployment(store)

        # When: Retrying
        await _reconcile(reconciler)

        # Then: The retry converges without a second create
        assert flaky_store.count("create") == 1
        assert (await get_cluster(store, KEY)).status is not None

    @pytest.mark.asyncio
    async def test_stale_status_write_conflicts(self, store: InMemoryObjectStore) -> None:
        """The store rejects a status write based on an outdated read."""
        # Given: A cluster modified after it was read
        await create_cluster(store)
        stale = await get_cluster(store, KEY)
        fresh = await get_cluster(store, KEY)
        fresh.metadata.labels["touched"] = "yes"
        await store.update(fresh)

        # When/Then: Writing status from the stale copy conflicts
        stale.status = None
        with pytest.raises(ConflictError):
            await store.update_status(stale)

    @pytest.mark.asyncio
    async def test_template_without_containers_fails_before_writes(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """A cluster with no containers is reported and nothing is created."""
        await create_cluster(store, containers=[])

        with pytest.raises(TemplatePreconditionError):
            await _reconcile(WorkerClusterReconciler(flaky_store))

        assert flaky_store.count("create") == 0
        assert flaky_store.count("update_status") == 0


class TestFailures:
    """Passes interrupted part way through."""

    @pytest.mark.asyncio
    async def test_cancel_after_create_leaves_owned_deployment(
        self, store: InMemoryObjectStore, flaky_store: FlakyObjectStore
    ) -> None:
        """A pass cancelled right after its create never leaves an ownerless child."""
        # Given: A create that lands, then stalls before returning
        await create_cluster(store)
        created = asyncio.Event()

        async def _land_then_stall(obj: object) -> None:
            flaky_store.before_create = None
            await store.create(obj)  # type: ignore[arg-type]
            created.set()
            await asyncio.sleep(10)

        flaky_store.before_create = _land_then_stall
        task = asyncio.create_task(_reconcile(WorkerClusterReconciler(flaky_store)))
        await asyncio.wait_for(created.wait(), timeout=1.0)

        # When: The pass is cancelled
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # Then: The stored deployment already carries its controller reference
        cluster = await get_cluster(store, KEY)
        owner = (await _deployment(store)).metadata.controller_reference()
        assert owner is not None
        assert owner.uid == cluster.metadata.uid
        assert owner.kind == Kind.WORKER_CLUSTER


@pytest.mark.asyncio
async def test_deleting_cluster_collects_deployment(store: InMemoryObjectStore) -> None:
    """The controller reference lets the store reclaim the deployment."""
    # Given: A reconciled cluster
    await create_cluster(store)
    await _reconcile(WorkerClusterReconciler(store))

    # When: Deleting the cluster
    await store.delete(Kind.WORKER_CLUSTER, KEY)

    # Then: Its deployment is gone too, and another pass is a successful no-op
    assert await store.list(Kind.DEPLOYMENT, "ci", LabelSelector()) == []
    assert await _reconcile(WorkerClusterReconciler(store)) == ReconcileResult()
