import pytest

from notification_dispatch.admin import BlacklistAdminService
from notification_dispatch.errors import InvalidEmail, StoreError
from notification_dispatch.prometheus import DispatchMetrics

from conftest import DummyStore


@pytest.mark.asyncio
async def test_add_normalizes_to_lowercase(store):
    metrics = DispatchMetrics()
    admin = BlacklistAdminService(store, metrics=metrics)

    entry = await admin.add_to_blacklist("  User@Example.COM ")

    assert entry.email == "user@example.com"
    assert (await store.read("user@example.com")) == entry
    assert metrics.registry.get_sample_value("nds_blacklist_additions_total") == 1


@pytest.mark.asyncio
async def test_add_with_display_name_keeps_address_only(store):
    admin = BlacklistAdminService(store)
    entry = await admin.add_to_blacklist('"Michael Keeman" <M.Keeman@Example.com>')
    assert entry.email == "m.keeman@example.com"


@pytest.mark.asyncio
async def test_add_is_idempotent(store, monkeypatch):
    admin = BlacklistAdminService(store)
    monkeypatch.setattr("notification_dispatch.models.time.time", lambda: 1000.0)
    await admin.add_to_blacklist("bad@example.com")
    monkeypatch.setattr("notification_dispatch.models.time.time", lambda: 2000.0)
    await admin.add_to_blacklist("BAD@example.com")

    entries = await admin.list_entries()
    assert len(entries) == 1
    assert entries[0].date == 2000


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["not-an-address", "", "jane@", "one@example.com, two@example.com"])
async def test_add_rejects_invalid(store, raw):
    admin = BlacklistAdminService(store)
    with pytest.raises(InvalidEmail):
        await admin.add_to_blacklist(raw)
    assert store.entries == {}


@pytest.mark.asyncio
async def test_store_failure_is_logged_and_raised(caplog):
    store = DummyStore()
    store.fail_creates = True
    admin = BlacklistAdminService(store)
    with pytest.raises(StoreError):
        await admin.add_to_blacklist("bad@example.com")
    assert "Unable to save the email address bad@example.com" in caplog.text


@pytest.mark.asyncio
async def test_store_refusal_is_store_error():
    class RefusingStore(DummyStore):
        async def create(self, entry):
            return False

    admin = BlacklistAdminService(RefusingStore())
    with pytest.raises(StoreError):
        await admin.add_to_blacklist("bad@example.com")


@pytest.mark.asyncio
async def test_get_and_remove():
    store = DummyStore(["bad@example.com"])
    admin = BlacklistAdminService(store)
    assert (await admin.get_entry("Bad@Example.com")).email == "bad@example.com"
    assert await admin.remove_from_blacklist("BAD@example.com") is True
    assert await admin.remove_from_blacklist("bad@example.com") is False
    assert await admin.get_entry("bad@example.com") is None
