import itertools
from unittest.mock import MagicMock

import pytest

from todoist_gtasks_sync.clients import GoogleOAuthClient, GoogleTasksClient
from todoist_gtasks_sync.config import AppConfig
from todoist_gtasks_sync.models import RemoteTask
from todoist_gtasks_sync.services.credentials import CredentialProvider, access_token_key
from todoist_gtasks_sync.services.kv_store import MemoryKeyValueStore
from todoist_gtasks_sync.services.mapping_store import MappingStore
from todoist_gtasks_sync.services.sync import TaskSyncService

USER_ID = "2671355"


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_event(event_name="item:updated", task_id="6X7rM8997g3RQmvh", user_id=USER_ID, **task):
    data = {
        "id": task_id,
        "checked": False,
        "content": "Купить молоко",
        "description": "2 литра",
        "due": None,
        "completed_at": None,
        "is_deleted": False,
    }
    data.update(task)
    return {"event_name": event_name, "user_id": user_id, "event_data": data}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv(clock):
    return MemoryKeyValueStore(clock=clock)


@pytest.fixture
def config():
    return AppConfig.model_validate({"google_oauth": {"client_id": "cid", "client_secret": "secret"}})


@pytest.fixture
def oauth_client():
    return MagicMock(spec=GoogleOAuthClient)


@pytest.fixture
def tasks_client():
    client = MagicMock(spec=GoogleTasksClient)
    counter = itertools.count(1)

    def _create(mutation):
        return RemoteTask(id=f"g-{next(counter)}", title=mutation.title, status=mutation.status or "needsAction")

    client.create.side_effect = _create
    return client


@pytest.fixture
def client_factory(tasks_client):
    return MagicMock(return_value=tasks_client)


@pytest.fixture
def mapping_store(kv):
    return MappingStore(kv)


@pytest.fixture
def authorized(kv):
    kv.put(access_token_key(USER_ID), "ya29.cached", ttl=3600)


@pytest.fixture
def service(config, kv, oauth_client, mapping_store, client_factory):
    credentials = CredentialProvider(kv, oauth_client)
    return TaskSyncService(config, credentials, mapping_store, kv, client_factory)
