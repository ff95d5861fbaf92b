"""
Blob storage for uploaded task attachments.

Two backends: a directory on local disk (served back through /uploads/<key>) and an
S3-compatible bucket. Both are addressed by a relative key such as
``uploads/2024/05/<uuid>-clip.mp4``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Mapping


class StorageError(RuntimeError):
    pass


def _clean_key(key: str) -> str:
    return key.replace("\\", "/").lstrip("/")


class Storage:
    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path
    url_prefix: str = "/uploads"

    def resolve(self, key: str) -> Path:
        base = self.root.resolve()
        target = (base / _clean_key(key)).resolve()
        # keys must stay inside the storage root ("../" escapes are rejected)
        if base not in target.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return target

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        target = self.resolve(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def open(self, key: str) -> BinaryIO:
        return self.resolve(key).open("rb")

    def exists(self, key: str) -> bool:
        return self.resolve(key).is_file()

    def public_url(self, key: str) -> str:
        return f"{self.url_prefix}/{_clean_key(key)}"


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str

    def _client(self) -> Any:
        import boto3

        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Key": _clean_key(key), "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        try:
            self._client().put_object(**kwargs)
        except Exception as e:
            raise StorageError(f"Upload to bucket {self.bucket!r} failed: {e}") from e

    def open(self, key: str) -> BinaryIO:
        return self._client().get_object(Bucket=self.bucket, Key=_clean_key(key))["Body"]

    def exists(self, key: str) -> bool:
        from botocore.exceptions import ClientError

        try:
            self._client().head_object(Bucket=self.bucket, Key=_clean_key(key))
        except ClientError:
            return False
        return True

    def public_url(self, key: str) -> str:
        # path-style addressing works across S3-compatible providers
        return f"https://{self.endpoint}/{self.bucket}/{_clean_key(key)}"


def storage_from_config(config: Mapping[str, Any]) -> Storage:
    def opt(name: str, default: str = "") -> str:
        return str(config.get(name) or default).strip()

    if opt("STORAGE_BACKEND", "local").lower() == "s3":
        return S3Storage(
            endpoint=opt("S3_ENDPOINT"),
            region=opt("S3_REGION", "nyc3"),
            bucket=opt("S3_BUCKET"),
            access_key_id=opt("S3_ACCESS_KEY_ID"),
            secret_access_key=opt("S3_SECRET_ACCESS_KEY"),
        )
    return LocalStorage(root=Path(config.get("LOCAL_STORAGE_ROOT") or Path(os.getcwd()) / "storage"))
