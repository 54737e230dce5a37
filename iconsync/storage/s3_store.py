"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

S3-backed icon store used as the networked key-value backend.
"""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional

from iconsync.errors import StorageError, StorageUnavailableError, ValidationError
from iconsync.models import IconData, IconSetMetadata, version_sort_key

from .keys import (METADATA_FILE, RECORD_SUFFIX, decode_icon, decode_metadata,
                   encode_icon, encode_metadata, icon_key, metadata_key,
                   safe_segment, strip_suffix, version_dir_key, version_key)


def _error_code(exc: Exception) -> Optional[str]:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    error = response.get("Error")
    if not isinstance(error, dict):
        return None
    code = error.get("Code")
    return code if isinstance(code, str) else None


def _looks_like_transient_cloud_failure(exc: Exception) -> bool:
    """Classify throttling, timeouts and connection drops as transient."""

    code = _error_code(exc)
    if code in {
        "SlowDown",
        "Throttling",
        "ThrottlingException",
        "RequestTimeout",
        "RequestTimeoutException",
        "ServiceUnavailable",
        "InternalError",
        "503",
    }:
        return True
    name = exc.__class__.__name__
    if name in {
        "EndpointConnectionError",
        "ConnectTimeoutError",
        "ReadTimeoutError",
        "ConnectionClosedError",
    }:
        return True
    message = str(exc).lower()
    return any(
        token in message
        for token in (
            "timed out",
            "timeout",
            "temporarily unavailable",
            "service unavailable",
            "connection reset",
            "connection aborted",
            "connection refused",
            "endpoint connection error",
        )
    )


def _is_not_found(exc: Exception) -> bool:
    return _error_code(exc) in {"404", "NoSuchKey", "NotFound"}


class S3IconStore:
    """Persist icon records as JSON objects in an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        *,
        prefix: str = "",
        client: Any | None = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not bucket:
            raise ValidationError("bucket name must be provided")
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        if client is None:
            try:
                import boto3 as _boto3
            except ImportError as exc:  # pragma: no cover
                raise StorageError(
                    "boto3 is required for S3 icon storage"
                ) from exc
            region = (
                os.environ.get("ICON_STORAGE_REGION")
                or os.environ.get("AWS_REGION")
                or os.environ.get("AWS_DEFAULT_REGION")
            )
            endpoint_override = os.environ.get("ICON_STORAGE_ENDPOINT")
            client_kwargs: dict[str, Any] = {}
            if region:
                client_kwargs["region_name"] = region
            if endpoint_override:
                client_kwargs["endpoint_url"] = endpoint_override
            client = _boto3.client("s3", **client_kwargs)
        self._s3 = client

    def probe(self) -> None:
        """Fail fast when the bucket is unreachable."""
        try:
            self._s3.head_bucket(Bucket=self._bucket)
        except Exception as exc:  # noqa: BLE001
            raise self._translate(exc, f"probe bucket {self._bucket}") from exc

    def initialize_namespace(self, namespace: str) -> None:
        # Object keys are created implicitly on first write.
        safe_segment(namespace, field="namespace")

    def list_namespaces(self) -> List[str]:
        suffix = f"/{METADATA_FILE}"
        namespaces = set()
        for key in self._iter_keys(""):
            if key.endswith(suffix) and key.count("/") == 1:
                namespaces.add(key[: -len(suffix)])
        return sorted(namespaces)

    def put(self, namespace: str, name: str, icon: IconData) -> None:
        self._put_object(icon_key(namespace, name), encode_icon(icon))

    def get(self, namespace: str, name: str) -> Optional[IconData]:
        raw = self._get_object(icon_key(namespace, name))
        return decode_icon(raw) if raw is not None else None

    def delete(self, namespace: str, name: str) -> None:
        key = self._object_key(icon_key(namespace, name))
        try:
            # S3 deletes are already idempotent.
            self._s3.delete_object(Bucket=self._bucket, Key=key)
        except Exception as exc:  # noqa: BLE001
            if _is_not_found(exc):
                return
            self._logger.error(
                "Failed to delete icon namespace=%s name=%s key=%s: %s",
                namespace,
                name,
                key,
                exc,
            )
            raise self._translate(exc, f"delete {key}") from exc

    def list(self, namespace: str) -> List[str]:
        directory = f"{safe_segment(namespace, field='namespace')}/icons/"
        return sorted(self._iter_record_names(directory))

    def put_metadata(self, namespace: str, metadata: IconSetMetadata) -> None:
        self._put_object(metadata_key(namespace), encode_metadata(metadata))

    def get_metadata(self, namespace: str) -> Optional[IconSetMetadata]:
        raw = self._get_object(metadata_key(namespace))
        return decode_metadata(raw) if raw is not None else None

    def put_version(
        self, namespace: str, name: str, version_id: str, icon: IconData
    ) -> None:
        self._put_object(
            version_key(namespace, name, version_id), encode_icon(icon)
        )

    def list_versions(self, namespace: str, name: str) -> List[str]:
        directory = f"{version_dir_key(namespace, name)}/"
        return sorted(self._iter_record_names(directory), key=version_sort_key)

    def get_version(
        self, namespace: str, name: str, version_id: str
    ) -> Optional[IconData]:
        raw = self._get_object(version_key(namespace, name, version_id))
        return decode_icon(raw) if raw is not None else None

    def _object_key(self, relative: str) -> str:
        prefix = f"{self._prefix}/" if self._prefix else ""
        return f"{prefix}{relative}"

    def _put_object(self, relative: str, payload: bytes) -> None:
        key = self._object_key(relative)
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=payload,
                ContentType="application/json",
            )
        except Exception as exc:  # noqa: BLE001
            self._logger.error("Failed to write key=%s: %s", key, exc)
            raise self._translate(exc, f"write {key}") from exc

    def _get_object(self, relative: str) -> Optional[bytes]:
        key = self._object_key(relative)
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
        except Exception as exc:  # noqa: BLE001
            if _is_not_found(exc):
                return None
            self._logger.error("Failed to read key=%s: %s", key, exc)
            raise self._translate(exc, f"read {key}") from exc
        return response["Body"].read()

    def _iter_keys(self, relative_prefix: str):
        full_prefix = self._object_key(relative_prefix)
        strip = len(self._object_key(""))
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(
                Bucket=self._bucket, Prefix=full_prefix
            ):
                for entry in page.get("Contents", []) or []:
                    yield entry["Key"][strip:]
        except Exception as exc:  # noqa: BLE001
            self._logger.error("Failed to list prefix=%s: %s", full_prefix, exc)
            raise self._translate(exc, f"list {full_prefix}") from exc

    def _iter_record_names(self, directory: str):
        for key in self._iter_keys(directory):
            remainder = key[len(directory):]
            if "/" in remainder or not remainder.endswith(RECORD_SUFFIX):
                continue
            yield strip_suffix(remainder)

    def _translate(self, exc: Exception, action: str) -> StorageError:
        if _looks_like_transient_cloud_failure(exc):
            return StorageUnavailableError(
                f"S3 temporarily unavailable during {action}: {exc}"
            )
        return StorageError(f"S3 failed to {action}: {exc}")
