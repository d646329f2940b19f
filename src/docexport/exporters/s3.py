from __future__ import annotations

import base64
import hashlib
import logging
from typing import Any, Mapping, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from ..core.retry import default_predicate, retry_call
from .base import CompletedPart, UploadError

_log = logging.getLogger(__name__)


def _content_md5(data: bytes) -> str:
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


class S3ObjectStore:
    """Amazon S3 (or S3-compatible) backend for single-shot and multipart writes.

    Each RPC is retried on throttling and 5xx responses; anything else is raised
    as :class:`UploadError` with the botocore error as its cause.
    """

    def __init__(
        self,
        *,
        bucket: str,
        client: Any = None,
        session: Any = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        sse: str | None = None,
        kms_key_id: str | None = None,
        retry_max_attempts: int = 5,
        retry_max_elapsed_s: float = 30.0,
    ) -> None:
        if not bucket:
            raise UploadError("S3ObjectStore requires a bucket")
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.sse = (sse or "none").lower()
        self.kms_key_id = kms_key_id
        self.retry_max_attempts = retry_max_attempts
        self.retry_max_elapsed_s = retry_max_elapsed_s
        self._session = session
        self._client = client

    @classmethod
    def from_config(cls, s3_cfg, upload_cfg=None, *, session: Any = None) -> "S3ObjectStore":
        kwargs: dict[str, Any] = {}
        if upload_cfg is not None:
            kwargs["retry_max_attempts"] = upload_cfg.retry_max_attempts
            kwargs["retry_max_elapsed_s"] = upload_cfg.retry_max_elapsed_s
        return cls(
            bucket=s3_cfg.bucket,
            session=session,
            region=s3_cfg.region,
            endpoint_url=s3_cfg.endpoint_url,
            sse=s3_cfg.sse,
            kms_key_id=s3_cfg.kms_key_id,
            **kwargs,
        )

    def _s3(self):
        if self._client is not None:
            return self._client
        kwargs: dict[str, Any] = {}
        if self.region:
            kwargs["region_name"] = self.region
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if self._session is not None:
            self._client = self._session.client("s3", **kwargs)
        else:
            import boto3

            self._client = boto3.client("s3", **kwargs)
        return self._client

    def _call(self, op: str, **kwargs: Any) -> Any:
        func = getattr(self._s3(), op)
        try:
            return retry_call(
                func,
                kwargs=kwargs,
                should_retry=default_predicate,
                max_attempts=self.retry_max_attempts,
                max_elapsed=self.retry_max_elapsed_s,
            )
        except (ClientError, BotoCoreError) as e:
            raise UploadError(f"S3 {op} failed for s3://{self.bucket}/{kwargs.get('Key')}: {e}", part_number=kwargs.get("PartNumber")) from e

    def _sse_kwargs(self) -> dict[str, str]:
        if self.sse == "kms":
            out = {"ServerSideEncryption": "aws:kms"}
            if self.kms_key_id:
                out["SSEKMSKeyId"] = self.kms_key_id
            return out
        if self.sse == "s3":
            return {"ServerSideEncryption": "AES256"}
        return {}

    def _object_kwargs(
        self,
        key: str,
        content_type: str,
        content_encoding: Optional[str],
        metadata: Optional[Mapping[str, str]],
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Key": key, "ContentType": content_type}
        if content_encoding:
            kwargs["ContentEncoding"] = content_encoding
        if metadata:
            kwargs["Metadata"] = dict(metadata)
        kwargs.update(self._sse_kwargs())
        return kwargs

    def initiate(
        self,
        key: str,
        *,
        content_type: str,
        content_encoding: Optional[str] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> str:
        resp = self._call("create_multipart_upload", **self._object_kwargs(key, content_type, content_encoding, metadata))
        upload_id = resp.get("UploadId")
        if not upload_id:
            raise UploadError(f"S3 returned no UploadId for s3://{self.bucket}/{key}")
        return upload_id

    def upload_part(self, upload_id: str, key: str, part_number: int, data: bytes) -> str:
        resp = self._call(
            "upload_part",
            Bucket=self.bucket,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=data,
            ContentLength=len(data),
            ContentMD5=_content_md5(data),
        )
        etag = resp.get("ETag")
        if not etag:
            raise UploadError(f"S3 returned no ETag for part {part_number}", part_number=part_number)
        return etag

    def complete(self, upload_id: str, key: str, parts: Sequence[CompletedPart]) -> None:
        self._call(
            "complete_multipart_upload",
            Bucket=self.bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={"Parts": [{"PartNumber": p.part_number, "ETag": p.etag} for p in parts]},
        )

    def abort(self, upload_id: str, key: str) -> None:
        self._call("abort_multipart_upload", Bucket=self.bucket, Key=key, UploadId=upload_id)

    def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        content_encoding: Optional[str] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> None:
        kwargs = self._object_kwargs(key, content_type, content_encoding, metadata)
        kwargs.update({"Body": data, "ContentLength": len(data), "ContentMD5": _content_md5(data)})
        _log.debug("Putting %d bytes to s3://%s/%s", len(data), self.bucket, key)
        self._call("put_object", **kwargs)

    def uri(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"


__all__ = ["S3ObjectStore"]
