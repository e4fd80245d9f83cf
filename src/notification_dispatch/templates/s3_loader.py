"""Load templates from an S3 bucket with aioboto3."""

from __future__ import annotations

from typing import Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import TemplateNotFound
from ..logger import get_logger
from .base import TemplateLoaderBase

MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound", "NoSuchBucket"}

logger = get_logger("S3TemplateLoader")


class S3TemplateLoader(TemplateLoaderBase):
    """Template loader reading objects from a single bucket."""

    def __init__(self, bucket: str, *, region: str | None = None, session: Any | None = None):
        self.bucket = bucket
        self.region = region
        self._session = session or aioboto3.Session()

    async def load(self, key: str) -> bytes:
        try:
            async with self._session.client("s3", region_name=self.region) as s3:
                resp = await s3.get_object(Bucket=self.bucket, Key=key)
                return await resp["Body"].read()
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in MISSING_KEY_CODES:
                raise TemplateNotFound(key) from exc
            logger.error("S3 error loading s3://%s/%s: %s", self.bucket, key, exc)
            raise TemplateNotFound(key, f"Template '{key}' could not be loaded: {code or exc}") from exc
        except BotoCoreError as exc:
            logger.error("S3 transport error loading s3://%s/%s: %s", self.bucket, key, exc)
            raise TemplateNotFound(key, f"Template '{key}' could not be loaded: {exc}") from exc
