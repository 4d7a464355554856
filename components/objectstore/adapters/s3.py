
from __future__ import annotations
import asyncio
import logging
from typing import AsyncIterator, Dict, Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..contracts import ObjectBody, ObjectEntry, ObjectMetadata, ObjectPage, PresignOperation, PutObjectResult
from ..errors import StorageError, not_found, upstream_unavailable
from ..observability import span
from ..ports import ObjectStorePort

log = logging.getLogger("objectstore")

_CHUNK_SIZE = 64 * 1024


def _status(e: ClientError) -> Optional[int]:
    return e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def _is_missing(e: ClientError) -> bool:
    code = e.response.get("Error", {}).get("Code")
    return _status(e) == 404 or code in ("404", "NoSuchKey", "NotFound")


class S3ObjectStore(ObjectStorePort):
    def __init__(self, name: str, *, region: Optional[str] = None, endpoint_url: Optional[str] = None,
                 access_key_id: Optional[str] = None, secret_access_key: Optional[str] = None,
                 force_path_style: bool = False):
        self.name = name
        self.s3 = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path" if force_path_style else "auto"}),
        )

    def _translate(self, e: Exception, op: str, bucket: str, key: Optional[str]) -> StorageError:
        if isinstance(e, ClientError) and _is_missing(e):
            return not_found()
        log.warning("objectstore.%s err backend=%s bucket=%s key=%s error=%s", op, self.name, bucket, key, e)
        return upstream_unavailable(f"{self.name} {op} failed", backend=self.name, bucket=bucket)

    async def put(self, bucket: str, key: str, data: bytes, *, content_type: Optional[str] = None,
                  cache_control: Optional[str] = None, metadata: Optional[Dict[str, str]] = None) -> PutObjectResult:
        kwargs = {"Bucket": bucket, "Key": key, "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        if cache_control:
            kwargs["CacheControl"] = cache_control
        if metadata:
            kwargs["Metadata"] = metadata

        with span("objectstore.put", backend=self.name, bucket=bucket, key=key, size=len(data)):
            try:
                resp = await asyncio.to_thread(lambda: self.s3.put_object(**kwargs))
            except (ClientError, BotoCoreError) as e:
                raise self._translate(e, "put", bucket, key) from e
        return PutObjectResult(bucket=bucket, key=key, etag=resp.get("ETag"), size=len(data))

    async def get(self, bucket: str, key: str) -> ObjectBody:
        with span("objectstore.get", backend=self.name, bucket=bucket, key=key):
            try:
                obj = await asyncio.to_thread(self.s3.get_object, Bucket=bucket, Key=key)
            except (ClientError, BotoCoreError) as e:
                raise self._translate(e, "get", bucket, key) from e

        body = obj.get("Body")
        if body is None:
            raise not_found()

        async def chunks() -> AsyncIterator[bytes]:
            try:
                while True:
                    data = await asyncio.to_thread(body.read, _CHUNK_SIZE)
                    if not data:
                        break
                    yield data
            finally:
                body.close()

        length = obj.get("ContentLength")
        return ObjectBody(
            key=key,
            stream=chunks(),
            content_type=obj.get("ContentType"),
            content_length=int(length) if length is not None else None,
            last_modified=obj.get("LastModified"),
            cache_control=obj.get("CacheControl"),
            metadata=obj.get("Metadata") or {},
        )

    async def head(self, bucket: str, key: str) -> ObjectMetadata:
        with span("objectstore.head", backend=self.name, bucket=bucket, key=key):
            try:
                resp = await asyncio.to_thread(self.s3.head_object, Bucket=bucket, Key=key)
            except (ClientError, BotoCoreError) as e:
                raise self._translate(e, "head", bucket, key) from e

        length = resp.get("ContentLength")
        return ObjectMetadata(
            key=key,
            content_type=resp.get("ContentType"),
            content_length=int(length) if length is not None else None,
            last_modified=resp.get("LastModified"),
            etag=resp.get("ETag"),
            cache_control=resp.get("CacheControl"),
            content_encoding=resp.get("ContentEncoding"),
            content_disposition=resp.get("ContentDisposition"),
            metadata=resp.get("Metadata") or {},
        )

    async def delete(self, bucket: str, key: str) -> None:
        with span("objectstore.delete", backend=self.name, bucket=bucket, key=key):
            try:
                await asyncio.to_thread(self.s3.delete_object, Bucket=bucket, Key=key)
            except ClientError as e:
                # S3 answers 204 for missing keys; some compatible endpoints answer 404
                if _is_missing(e):
                    return
                raise self._translate(e, "delete", bucket, key) from e
            except BotoCoreError as e:
                raise self._translate(e, "delete", bucket, key) from e

    async def list(self, bucket: str, prefix: str = "", continuation_token: Optional[str] = None,
                   limit: int = 1000) -> ObjectPage:
        kwargs = {"Bucket": bucket, "MaxKeys": limit}
        if prefix:
            kwargs["Prefix"] = prefix
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token

        with span("objectstore.list", backend=self.name, bucket=bucket, prefix=prefix):
            try:
                resp = await asyncio.to_thread(lambda: self.s3.list_objects_v2(**kwargs))
            except (ClientError, BotoCoreError) as e:
                raise self._translate(e, "list", bucket, None) from e

        entries = [
            ObjectEntry(key=c["Key"], size=int(c.get("Size", 0)), last_modified=c.get("LastModified"), etag=c.get("ETag"))
            for c in resp.get("Contents", []) or []
            if c.get("Key")
        ]
        next_token = resp.get("NextContinuationToken") if resp.get("IsTruncated", True) else None
        return ObjectPage(bucket=bucket, prefix=prefix, entries=entries, next_token=next_token)

    async def copy(self, bucket: str, source_key: str, dest_key: str, *, content_type: Optional[str] = None,
                   cache_control: Optional[str] = None, metadata: Optional[Dict[str, str]] = None) -> None:
        kwargs = {
            "Bucket": bucket,
            "Key": dest_key,
            "CopySource": {"Bucket": bucket, "Key": source_key},
            "MetadataDirective": "REPLACE",
            "Metadata": metadata or {},
        }
        if content_type:
            kwargs["ContentType"] = content_type
        if cache_control:
            kwargs["CacheControl"] = cache_control

        with span("objectstore.copy", backend=self.name, bucket=bucket, key=source_key):
            try:
                await asyncio.to_thread(lambda: self.s3.copy_object(**kwargs))
            except (ClientError, BotoCoreError) as e:
                raise self._translate(e, "copy", bucket, source_key) from e

    async def presign(self, bucket: str, key: str, operation: PresignOperation, expires_in: int, *,
                      content_type: Optional[str] = None, cache_control: Optional[str] = None) -> str:
        method = "put_object" if operation == "upload" else "get_object"
        params = {"Bucket": bucket, "Key": key}
        if operation == "upload":
            if content_type:
                params["ContentType"] = content_type
            if cache_control:
                params["CacheControl"] = cache_control

        with span("objectstore.presign", backend=self.name, bucket=bucket, key=key, op=operation):
            try:
                return await asyncio.to_thread(
                    self.s3.generate_presigned_url, ClientMethod=method, Params=params, ExpiresIn=expires_in
                )
            except (ClientError, BotoCoreError) as e:
                raise self._translate(e, "presign", bucket, key) from e
