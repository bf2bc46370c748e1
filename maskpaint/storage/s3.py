from __future__ import annotations

import logging
from typing import Any

import boto3

from maskpaint.storage.base import blob_name


logger = logging.getLogger(__name__)


class S3BlobStorage:
    def __init__(self, bucket: str | None, region: str, *, client: Any | None = None) -> None:
        if not bucket:
            raise ValueError("S3 storage selected but s3_bucket is not configured")
        self.bucket = bucket
        self.region = region
        self._s3 = client or boto3.client("s3", region_name=region)

    def _url_for(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    @staticmethod
    def extract_key(url: str) -> str:
        if ".amazonaws.com/" not in url:
            raise ValueError(f"not an S3 object URL: {url}")
        after = url.split(".amazonaws.com/", 1)[1]
        return after.split("?", 1)[0]

    def put(self, data: bytes, content_type: str, *, prefix: str = "upload") -> str:
        key = blob_name(content_type, prefix)
        self._s3.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        logger.info("uploaded %d bytes (%s) to s3://%s/%s", len(data), content_type, self.bucket, key)
        return self._url_for(key)

    def get(self, url: str) -> bytes:
        response = self._s3.get_object(Bucket=self.bucket, Key=self.extract_key(url))
        return response["Body"].read()
