import itertools

import pytest

from conftest import USER_ID, make_event

from todoist_gtasks_sync.clients import GoogleTasksAPIError
from todoist_gtasks_sync.config import DEFAULT_TASK_LIST_ID
from todoist_gtasks_sync.models import (
    EventKind,
    MappingState,
    RemoteTask,
    SyncAction,
    SyncResult,
    TaskMutation,
    WebhookEvent,
)
from todoist_gtasks_sync.services.credentials import access_token_key
from todoist_gtasks_sync.services.mapping_store import TOMBSTONE
from todoist_gtasks_sync.services.sync import (
    DECISIONS,
    LIST_KEY,
    CorruptedStateError,
    SyncStats,
    decide,
    task_list_key,
)


def event(event_name="item:updated", **task):
    return WebhookEvent.model_validate(make_event(event_name, **task))


def test_decision_table_is_exhaustive():
    assert set(DECISIONS) == set(itertools.product(EventKind, MappingState))


@pytest.mark.parametrize(
    "kind,state,expected",
    [
        (EventKind.ADDED, MappingState.TOMBSTONE, SyncAction.CREATE),
        (EventKind.DELETED, MappingState.ABSENT, SyncAction.IGNORE),
        (EventKind.DELETED, MappingState.TOMBSTONE, SyncAction.IGNORE),
        (EventKind.DELETED, MappingState.LIVE, SyncAction.DELETE),
        (EventKind.OTHER, MappingState.ABSENT, SyncAction.CREATE),
        (EventKind.OTHER, MappingState.TOMBSTONE, SyncAction.IGNORE),
        (EventKind.OTHER, MappingState.LIVE, SyncAction.UPDATE),
    ],
)
def test_decide(kind, state, expected):
    assert decide(kind, state)[0] is expected


def test_event_kinds():
    assert event("item:added").kind is EventKind.ADDED
    assert event("item:deleted").kind is EventKind.DELETED
    assert event("item:completed").kind is EventKind.OTHER
    assert event("item:uncompleted").kind is EventKind.OTHER


@pytest.mark.usefixtures("authorized")
class TestProcess:
    def test_added_creates_task_and_mapping(self, service, tasks_client, mapping_store, client_factory):
        result = service.process(event("item:added", task_id="101"))

        assert result.action is SyncAction.CREATE
        assert result.target_id == "g-1"
        assert mapping_store.get("101") == "g-1"
        tasks_client.create.assert_called_once_with(TaskMutation(title="Купить молоко", notes="2 литра"))
        list_id, credential = client_factory.call_args.args
        assert list_id == DEFAULT_TASK_LIST_ID
        assert credential.access_token == "ya29.cached"

    def test_duplicate_added_creates_twice(self, service, tasks_client, mapping_store):
        service.process(event("item:added", task_id="101"))
        service.process(event("item:added", task_id="101"))

        assert tasks_client.create.call_count == 2
        assert mapping_store.get("101") == "g-2"

    def test_update_mapped_task(self, service, tasks_client, mapping_store):
        mapping_store.put("101", "g-7")
        result = service.process(
            event("item:completed", task_id="101", checked=True, completed_at="2024-01-16T08:00:00Z")
        )

        assert result.action is SyncAction.UPDATE
        assert result.target_id == "g-7"
        target_id, mutation = tasks_client.update.call_args.args
        assert target_id == "g-7"
        assert mutation.status == "completed"
        assert mutation.completed == "2024-01-16T08:00:00.000Z"
        tasks_client.create.assert_not_called()
        assert mapping_store.get("101") == "g-7"

    def test_unmapped_update_becomes_create(self, service, tasks_client, mapping_store):
        result = service.process(event("item:updated", task_id="101"))

        assert result.action is SyncAction.CREATE
        assert result.reason == "unmapped"
        tasks_client.create.assert_called_once()
        tasks_client.update.assert_not_called()
        assert mapping_store.get("101") == "g-1"

    def test_delete_tombstones_mapping(self, service, tasks_client, mapping_store):
        mapping_store.put("101", "g-7")
        result = service.process(event("item:deleted", task_id="101", is_deleted=True))

        assert result.action is SyncAction.DELETE
        tasks_client.delete.assert_called_once_with("g-7")
        assert mapping_store.get("101") is TOMBSTONE

    def test_duplicate_delete_is_suppressed(self, service, tasks_client, mapping_store):
        mapping_store.put("101", "g-7")
        service.process(event("item:deleted", task_id="101"))
        result = service.process(event("item:deleted", task_id="101"))

        assert result.action is SyncAction.IGNORE
        assert result.reason == "duplicate_delete"
        assert tasks_client.delete.call_count == 1
        assert mapping_store.state("101") is MappingState.TOMBSTONE

    def test_delete_without_mapping_is_ignored(self, service, tasks_client):
        result = service.process(event("item:deleted", task_id="101"))

        assert result.action is SyncAction.IGNORE
        assert result.reason == "nothing_to_delete"
        assert not tasks_client.method_calls

    def test_late_update_after_delete_is_ignored(self, service, tasks_client, mapping_store):
        mapping_store.put("101", "g-7")
        service.process(event("item:deleted", task_id="101"))
        tasks_client.reset_mock()

        result = service.process(event("item:updated", task_id="101"))

        assert result.action is SyncAction.IGNORE
        assert result.reason == "stale_after_delete"
        assert not tasks_client.method_calls

    def test_update_after_tombstone_expiry_creates(self, clock, kv, service, tasks_client, mapping_store):
        mapping_store.tombstone("101")
        clock.advance(3600)
        # access token из фикстуры тоже истёк
        kv.put(access_token_key(USER_ID), "ya29.cached", ttl=3600)

        result = service.process(event("item:updated", task_id="101"))

        assert result.action is SyncAction.CREATE
        assert mapping_store.get("101") == "g-1"

    def test_added_after_tombstone_overwrites_it(self, service, mapping_store):
        mapping_store.tombstone("101")
        service.process(event("item:added", task_id="101"))
        assert mapping_store.get("101") == "g-1"

    def test_remote_error_propagates_without_mapping_change(self, service, tasks_client, mapping_store):
        mapping_store.put("101", "g-7")
        tasks_client.delete.side_effect = GoogleTasksAPIError(500, "500", "Backend Error")

        with pytest.raises(GoogleTasksAPIError):
            service.process(event("item:deleted", task_id="101"))
        assert mapping_store.get("101") == "g-7"


def test_unauthenticated_user_is_ignored(service, client_factory, tasks_client, oauth_client):
    result = service.process(event("item:added", task_id="101"))

    assert result.action is SyncAction.IGNORE
    assert result.reason == "unauthenticated"
    client_factory.assert_not_called()
    oauth_client.refresh.assert_not_called()
    assert not tasks_client.method_calls


@pytest.mark.usefixtures("authorized")
class TestMappingValidation:
    @pytest.fixture(autouse=True)
    def _enable(self, config):
        config.sync.validate_mappings = True

    def test_stale_mapping_is_recreated(self, service, tasks_client, mapping_store):
        mapping_store.put("101", "g-gone")
        tasks_client.retrieve.side_effect = GoogleTasksAPIError(404, "404", "Task not found.")

        result = service.process(event("item:updated", task_id="101"))

        assert result.action is SyncAction.CREATE
        assert result.reason == "stale_mapping"
        tasks_client.update.assert_not_called()
        assert mapping_store.get("101") == "g-1"

    def test_any_retrieve_failure_counts_as_stale(self, service, tasks_client, mapping_store):
        mapping_store.put("101", "g-7")
        tasks_client.retrieve.side_effect = GoogleTasksAPIError(403, "403", "Forbidden")

        assert service.process(event("item:updated", task_id="101")).action is SyncAction.CREATE

    def test_valid_mapping_is_updated(self, service, tasks_client, mapping_store):
        mapping_store.put("101", "g-7")
        tasks_client.retrieve.return_value = RemoteTask(id="g-7", title="T", status="needsAction")

        result = service.process(event("item:updated", task_id="101"))

        assert result.action is SyncAction.UPDATE
        tasks_client.retrieve.assert_called_once_with("g-7")
        tasks_client.update.assert_called_once()


@pytest.mark.usefixtures("authorized")
def test_dry_run_makes_no_changes(config, service, tasks_client, mapping_store):
    config.sync.dry_run = True
    mapping_store.put("101", "g-7")

    result = service.process(event("item:deleted", task_id="101"))

    assert result.action is SyncAction.DELETE
    assert not tasks_client.method_calls
    assert mapping_store.get("101") == "g-7"


class TestListResolution:
    def test_hard_default(self, service):
        assert service.resolve_list_id(USER_ID) == DEFAULT_TASK_LIST_ID

    def test_configured_default(self, config, service):
        config.google_tasks.list_id = "configured"
        assert service.resolve_list_id(USER_ID) == "configured"

    def test_store_override(self, config, kv, service):
        config.google_tasks.list_id = "configured"
        kv.put(LIST_KEY, "from-store")
        assert service.resolve_list_id(USER_ID) == "from-store"

    def test_per_user_list(self, config, kv, service):
        config.google_tasks.per_user_lists = True
        kv.put(task_list_key(USER_ID), "user-list")
        assert service.resolve_list_id(USER_ID) == "user-list"

    @pytest.mark.usefixtures("authorized")
    def test_missing_per_user_list_is_corrupted_state(self, config, service, client_factory):
        config.google_tasks.per_user_lists = True
        with pytest.raises(CorruptedStateError):
            service.process(event("item:added", task_id="101"))
        client_factory.assert_not_called()


def test_sync_stats_record():
    stats = SyncStats()
    for action in (SyncAction.CREATE, SyncAction.CREATE, SyncAction.UPDATE, SyncAction.DELETE, SyncAction.IGNORE):
        stats.record(SyncResult("item:updated", "101", action))
    assert (stats.created, stats.updated, stats.deleted, stats.ignored) == (2, 1, 1, 1)
