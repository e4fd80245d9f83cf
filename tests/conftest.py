import json

import pytest

from notification_dispatch.blacklist.base import BlacklistStoreBase
from notification_dispatch.errors import SendError, StoreError, TemplateNotFound
from notification_dispatch.models import BlacklistEntry
from notification_dispatch.senders.base import EmailSenderBase
from notification_dispatch.templates.base import TemplateLoaderBase


class DummyStore(BlacklistStoreBase):
    """In-memory blacklist keyed by lowercase address."""

    def __init__(self, addresses=()):
        self.entries = {a.lower(): BlacklistEntry.now(a) for a in addresses}
        self.reads = []
        self.healthy = True
        self.fail_reads = False
        self.fail_creates = False
        self.initialised = False
        self.closed = False

    async def init(self):
        self.initialised = True

    async def create(self, entry):
        if self.fail_creates:
            raise StoreError("store is down")
        self.entries[entry.key] = entry
        return True

    async def read(self, key):
        self.reads.append(key)
        if self.fail_reads:
            raise StoreError("store is down")
        return self.entries.get(key.lower())

    async def delete(self, key):
        return self.entries.pop(key.lower(), None) is not None

    async def list_entries(self, limit=100):
        return sorted(self.entries.values(), key=lambda e: (-e.date, e.email))[:limit]

    async def ping(self):
        return self.healthy

    async def close(self):
        self.closed = True


class DummyLoader(TemplateLoaderBase):
    def __init__(self, templates=None):
        self.templates = dict(templates or {})
        self.requested = []
        self.closed = False

    async def load(self, key):
        self.requested.append(key)
        if key not in self.templates:
            raise TemplateNotFound(key)
        value = self.templates[key]
        return value.encode("utf-8") if isinstance(value, str) else value

    async def close(self):
        self.closed = True


class DummySender(EmailSenderBase):
    def __init__(self, default_sender="noreply@example.com", fail_for=()):
        super().__init__(default_sender)
        self.sent = []
        self.fail_for = set(fail_for)
        self.closed = False

    async def send(self, message):
        if set(message.envelope_recipients) & self.fail_for:
            raise SendError("relay refused the message")
        self.sent.append(message)
        return f"<msg-{len(self.sent)}@example.com>"

    async def close(self):
        self.closed = True


def direct_payload(**overrides):
    payload = {
        "Sender": "alerts@example.com",
        "To": ["jane@example.com"],
        "CC": None,
        "BCC": None,
        "ReplyTo": None,
        "Subject": "Report ready",
        "HtmlBody": "<p>Your report is ready</p>",
    }
    payload.update(overrides)
    return json.dumps(payload)


def templated_payload(**overrides):
    payload = {
        "Sender": "alerts@example.com",
        "To": ["jane@example.com"],
        "Template": "welcome.html",
        "Parameters": {"Name": "Jane"},
        "Subject": "Welcome {{Name}}",
    }
    payload.update(overrides)
    return json.dumps(payload)


@pytest.fixture
def store():
    return DummyStore()


@pytest.fixture
def loader():
    return DummyLoader({"templates/emails/welcome.html": "<h1>Hello {{Name}}</h1>"})


@pytest.fixture
def sender():
    return DummySender()
