import pytest
import pytest_asyncio
from botocore.exceptions import ClientError

from notification_dispatch.blacklist import SqliteBlacklistStore, create_blacklist_store
from notification_dispatch.blacklist.dynamodb_store import DEFAULT_TABLE, DynamoBlacklistStore
from notification_dispatch.errors import StoreError
from notification_dispatch.models import BlacklistEntry


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    store = SqliteBlacklistStore(str(tmp_path / "nested" / "blacklist.db"))
    await store.init()
    return store


class TestSqliteBlacklistStore:
    @pytest.mark.asyncio
    async def test_create_and_read(self, sqlite_store):
        assert await sqlite_store.create(BlacklistEntry(email="Bad@Example.com", date=100)) is True
        entry = await sqlite_store.read("BAD@example.com")
        assert entry == BlacklistEntry(email="bad@example.com", date=100)
        assert await sqlite_store.read("other@example.com") is None

    @pytest.mark.asyncio
    async def test_create_is_idempotent_overwrite(self, sqlite_store):
        await sqlite_store.create(BlacklistEntry(email="bad@example.com", date=100))
        await sqlite_store.create(BlacklistEntry(email="bad@example.com", date=200))
        entries = await sqlite_store.list_entries()
        assert entries == [BlacklistEntry(email="bad@example.com", date=200)]

    @pytest.mark.asyncio
    async def test_delete(self, sqlite_store):
        await sqlite_store.create(BlacklistEntry(email="bad@example.com", date=100))
        assert await sqlite_store.delete("bad@example.com") is True
        assert await sqlite_store.delete("bad@example.com") is False
        assert await sqlite_store.read("bad@example.com") is None

    @pytest.mark.asyncio
    async def test_list_entries_newest_first_with_limit(self, sqlite_store):
        for index, email in enumerate(["a@example.com", "b@example.com", "c@example.com"]):
            await sqlite_store.create(BlacklistEntry(email=email, date=100 + index))
        entries = await sqlite_store.list_entries(limit=2)
        assert [e.email for e in entries] == ["c@example.com", "b@example.com"]

    @pytest.mark.asyncio
    async def test_ping(self, sqlite_store, tmp_path):
        assert await sqlite_store.ping() is True
        uninitialised = SqliteBlacklistStore(str(tmp_path / "fresh.db"))
        assert await uninitialised.ping() is False

    @pytest.mark.asyncio
    async def test_errors_become_store_error(self, tmp_path):
        store = SqliteBlacklistStore(str(tmp_path / "fresh.db"))
        with pytest.raises(StoreError):
            await store.read("bad@example.com")
        with pytest.raises(StoreError):
            await store.create(BlacklistEntry(email="bad@example.com", date=1))


class DummyDynamoClient:
    """Tiny in-memory stand-in for the low-level DynamoDB client."""

    def __init__(self):
        self.items = {}
        self.calls = []
        self.error = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def _check(self, operation):
        self.calls.append(operation)
        if self.error is not None:
            raise ClientError({"Error": {"Code": self.error, "Message": "failed"}}, operation)

    async def put_item(self, TableName, Item):
        self._check("PutItem")
        self.items[Item["Email"]["S"]] = Item

    async def get_item(self, TableName, Key, ConsistentRead):
        self._check("GetItem")
        assert ConsistentRead is True
        item = self.items.get(Key["Email"]["S"])
        return {"Item": item} if item else {}

    async def delete_item(self, TableName, Key, ReturnValues):
        self._check("DeleteItem")
        old = self.items.pop(Key["Email"]["S"], None)
        return {"Attributes": old} if old else {}

    async def scan(self, TableName, Limit):
        self._check("Scan")
        return {"Items": list(self.items.values())[:Limit]}

    async def describe_table(self, TableName):
        self._check("DescribeTable")
        return {"Table": {"TableName": TableName}}


class DummySession:
    def __init__(self, client):
        self._client = client

    def client(self, service_name, region_name=None):
        assert service_name == "dynamodb"
        return self._client


class TestDynamoBlacklistStore:
    @pytest.fixture
    def client(self):
        return DummyDynamoClient()

    @pytest.fixture
    def store(self, client):
        return DynamoBlacklistStore(region="eu-west-1", session=DummySession(client))

    def test_default_table(self, store):
        assert store.table_name == DEFAULT_TABLE == "Notification.BlackList"

    @pytest.mark.asyncio
    async def test_round_trip(self, store, client):
        await store.create(BlacklistEntry(email="Bad@Example.com", date=1700000000))
        assert client.items["bad@example.com"] == {"Email": {"S": "bad@example.com"}, "Date": {"N": "1700000000"}}
        assert await store.read("BAD@EXAMPLE.COM") == BlacklistEntry(email="bad@example.com", date=1700000000)
        assert await store.list_entries() == [BlacklistEntry(email="bad@example.com", date=1700000000)]
        assert await store.delete("bad@example.com") is True
        assert await store.delete("bad@example.com") is False
        assert await store.read("bad@example.com") is None

    @pytest.mark.asyncio
    async def test_client_errors_become_store_error(self, store, client):
        client.error = "ProvisionedThroughputExceededException"
        with pytest.raises(StoreError):
            await store.read("bad@example.com")
        with pytest.raises(StoreError):
            await store.create(BlacklistEntry(email="bad@example.com", date=1))

    @pytest.mark.asyncio
    async def test_ping(self, store, client):
        assert await store.ping() is True
        client.error = "ResourceNotFoundException"
        assert await store.ping() is False


def test_factory(tmp_path):
    store = create_blacklist_store("sqlite", db_path=str(tmp_path / "b.db"))
    assert isinstance(store, SqliteBlacklistStore)
    dynamo = create_blacklist_store("dynamodb", table_name="Custom", region="eu-west-1")
    assert isinstance(dynamo, DynamoBlacklistStore)
    assert dynamo.table_name == "Custom"
    with pytest.raises(ValueError):
        create_blacklist_store("redis")
