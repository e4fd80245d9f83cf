"""DynamoDB-backed blacklist store using aioboto3.

Items use the address as partition key (``Email``, string) and the
creation timestamp as a number attribute (``Date``).
"""

from __future__ import annotations

from typing import Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import StoreError
from ..logger import get_logger
from ..models import BlacklistEntry
from .base import BlacklistStoreBase

DEFAULT_TABLE = "Notification.BlackList"

logger = get_logger("DynamoBlacklistStore")


class DynamoBlacklistStore(BlacklistStoreBase):
    def __init__(
        self,
        table_name: str = DEFAULT_TABLE,
        *,
        region: str | None = None,
        session: Any | None = None,
    ):
        self.table_name = table_name
        self.region = region
        self._session = session or aioboto3.Session()

    def _client(self):
        return self._session.client("dynamodb", region_name=self.region)

    @staticmethod
    def _to_entry(item: dict[str, Any]) -> BlacklistEntry:
        return BlacklistEntry(email=item["Email"]["S"], date=int(item["Date"]["N"]))

    async def create(self, entry: BlacklistEntry) -> bool:
        try:
            async with self._client() as db:
                await db.put_item(
                    TableName=self.table_name,
                    Item={"Email": {"S": entry.key}, "Date": {"N": str(entry.date)}},
                )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Unable to store blacklist entry {entry.key}: {exc}") from exc
        return True

    async def read(self, key: str) -> BlacklistEntry | None:
        try:
            async with self._client() as db:
                resp = await db.get_item(
                    TableName=self.table_name,
                    Key={"Email": {"S": key.lower()}},
                    ConsistentRead=True,
                )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Unable to read blacklist entry {key}: {exc}") from exc
        item = resp.get("Item")
        return self._to_entry(item) if item else None

    async def delete(self, key: str) -> bool:
        try:
            async with self._client() as db:
                resp = await db.delete_item(
                    TableName=self.table_name,
                    Key={"Email": {"S": key.lower()}},
                    ReturnValues="ALL_OLD",
                )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Unable to delete blacklist entry {key}: {exc}") from exc
        return bool(resp.get("Attributes"))

    async def list_entries(self, limit: int = 100) -> list[BlacklistEntry]:
        try:
            async with self._client() as db:
                resp = await db.scan(TableName=self.table_name, Limit=int(limit))
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Unable to list blacklist entries: {exc}") from exc
        entries = [self._to_entry(item) for item in resp.get("Items", [])]
        return sorted(entries, key=lambda e: (-e.date, e.email))

    async def ping(self) -> bool:
        try:
            async with self._client() as db:
                await db.describe_table(TableName=self.table_name)
        except (ClientError, BotoCoreError) as exc:
            logger.warning("DynamoDB table %s unreachable: %s", self.table_name, exc)
            return False
        return True
