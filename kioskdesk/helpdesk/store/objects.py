"""S3 object store for attachment blobs.

The helpdesk never streams attachment bytes itself: clients upload and
download directly against time-limited presigned URLs, and only the
resulting key plus metadata is persisted on the ticket or kiosk.  Keys are
namespaced by entity::

    s3://{bucket}/tickets/workspace/{workspace_id}/{ticket_id}/{ms}_{name}
    s3://{bucket}/kiosks/workspace/{workspace_id}/{kiosk_id}/{ms}_{name}

Uses ``anyio.to_thread.run_sync`` to run boto3 calls in the thread pool.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Protocol, runtime_checkable

import boto3
from anyio import to_thread
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from kioskdesk.helpdesk.errors import StorageError


@runtime_checkable
class ObjectStore(Protocol):
    """Async protocol for presigned blob access."""

    async def presign_upload(self, key: str, content_type: str, expires_in: int) -> str:
        """Return a URL the client can PUT the object to."""
        ...

    async def presign_download(self, key: str, expires_in: int) -> str:
        """Return a URL the client can GET the object from."""
        ...

    async def delete(self, key: str) -> None:
        """Delete an object.  No-op if the key does not exist."""
        ...


def _create_s3_client(
    endpoint_url: str,
    access_key: str,
    secret_key: str,
    region: str | None = None,
    path_style: bool = False,
) -> Any:
    """Create a boto3 S3 client.

    Args:
        endpoint_url: S3 endpoint URL.
        access_key: AWS access key ID.
        secret_key: AWS secret access key.
        region: AWS region name (optional, some endpoints require it).
        path_style: Use path-style addressing instead of virtual-hosted.
            Required by MinIO and some S3-compatible services.
    """
    config = Config(
        signature_version="s3v4",
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
        s3={"addressing_style": "path" if path_style else "auto"},
    )

    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=region,
        config=config,
    )


class S3ObjectStore:
    """S3 implementation of the ObjectStore protocol."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        region: str | None = None,
        path_style: bool = False,
    ) -> None:
        self._bucket = bucket
        self._client = _create_s3_client(endpoint_url, access_key, secret_key, region=region, path_style=path_style)

    # -- Presign ---------------------------------------------------------------

    async def presign_upload(self, key: str, content_type: str, expires_in: int) -> str:
        params = {"Bucket": self._bucket, "Key": key, "ContentType": content_type}
        return await self._presign("put_object", params, expires_in)

    async def presign_download(self, key: str, expires_in: int) -> str:
        params = {"Bucket": self._bucket, "Key": key}
        return await self._presign("get_object", params, expires_in)

    async def _presign(self, method: str, params: dict[str, str], expires_in: int) -> str:
        try:
            return await to_thread.run_sync(
                partial(self._client.generate_presigned_url, method, Params=params, ExpiresIn=expires_in)
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"sign {method} URL", str(exc)) from exc

    # -- Delete ----------------------------------------------------------------

    async def delete(self, key: str) -> None:
        # S3 delete is idempotent -- no error if key doesn't exist.
        try:
            await to_thread.run_sync(partial(self._client.delete_object, Bucket=self._bucket, Key=key))
        except (BotoCoreError, ClientError) as exc:
            raise StorageError("delete attachment", str(exc)) from exc

