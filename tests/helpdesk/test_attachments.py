"""Tests for ticket and kiosk attachments.

Uses a real ``S3ObjectStore`` with dummy credentials: presigning is a local
computation in botocore, so no endpoint is contacted.  Blob deletion is
checked against a recording stub.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlparse

import pytest

from kioskdesk.helpdesk.errors import AttachmentNotFoundError, InsufficientPermissionsError, InvalidInputError
from kioskdesk.helpdesk.managers import attachments
from kioskdesk.helpdesk.models.api import AttachmentUploadRequest
from kioskdesk.helpdesk.models.enums import WorkspaceRole
from kioskdesk.helpdesk.store.objects import S3ObjectStore

if TYPE_CHECKING:
    from conftest import Seeder

    from kioskdesk.helpdesk.store.memory import MemoryDocumentStore

MB = 1024 * 1024


class RecordingObjects(S3ObjectStore):
    """Presigns for real, records deletes instead of sending them."""

    def __init__(self) -> None:
        super().__init__(
            bucket="kiosk-test",
            endpoint_url="http://localhost:9000",
            access_key="test",
            secret_key="test",
            region="us-east-1",
            path_style=True,
        )
        self.deleted: list[str] = []

    async def delete(self, key: str) -> None:
        self.deleted.append(key)


@pytest.fixture
def objects() -> RecordingObjects:
    return RecordingObjects()


@pytest.fixture
async def setup(seed: Seeder) -> dict:
    member = await seed.user("Max")
    viewer = await seed.user("Vic")
    ws = await seed.workspace()
    await seed.member(ws, member, WorkspaceRole.MEMBER)
    await seed.member(ws, viewer, WorkspaceRole.VIEWER)
    kiosk = await seed.kiosk(ws)
    ticket = await seed.ticket(ws, kiosk, member)
    return {"member": member, "viewer": viewer, "ws": ws, "kiosk": kiosk, "ticket": ticket}


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def test_sanitize_filename() -> None:
    assert attachments.sanitize_filename("my photo (1).JPG") == "my_photo__1_.JPG"


@pytest.mark.parametrize(
    ("file_type", "size", "is_image"),
    [("image/png", 5 * MB, True), ("application/pdf", 10 * MB, False), ("text/csv", 1, False)],
)
def test_validate_file_accepts(file_type: str, size: int, is_image: bool) -> None:
    assert attachments.validate_file(file_type, size) is is_image


@pytest.mark.parametrize(
    ("file_type", "size"),
    [("image/png", 5 * MB + 1), ("application/pdf", 10 * MB + 1), ("application/zip", 10)],
)
def test_validate_file_rejects(file_type: str, size: int) -> None:
    with pytest.raises(InvalidInputError):
        attachments.validate_file(file_type, size)


# ---------------------------------------------------------------------------
# Ticket attachments
# ---------------------------------------------------------------------------


async def test_ticket_upload_roundtrip(
    store: MemoryDocumentStore, objects: RecordingObjects, setup: dict
) -> None:
    ws, ticket, member = setup["ws"], setup["ticket"], setup["member"]
    request = AttachmentUploadRequest(filename="broken screen.png", file_type="image/png", file_size=1024)

    upload = await attachments.request_ticket_upload(store, objects, member, ws.id, ticket.id, request, expires_in=60)

    key = upload.attachment.s3_key
    assert key.startswith(f"tickets/workspace/{ws.workspace_id}/{ticket.ticket_id}/")
    assert key.endswith("_broken_screen.png")
    assert upload.attachment.is_image
    assert upload.expires_in == 60
    assert urlparse(upload.upload_url).path == f"/kiosk-test/{key}"

    updated = await attachments.add_ticket_attachment(store, member, ws.id, ticket.id, upload.attachment)
    assert updated.attachments == [upload.attachment]

    url = await attachments.get_attachment_url(
        store, objects, setup["viewer"], ws.id, ticket.id, upload.attachment.id
    )
    assert "X-Amz-Signature" in url.url

    removed = await attachments.remove_ticket_attachment(
        store, objects, member, ws.id, ticket.id, upload.attachment.id
    )
    assert removed.attachments == []
    assert objects.deleted == [key]


async def test_add_rejects_key_from_other_ticket(
    seed: Seeder, store: MemoryDocumentStore, objects: RecordingObjects, setup: dict
) -> None:
    ws, member = setup["ws"], setup["member"]
    other = await seed.ticket(ws, setup["kiosk"], member, "other")
    request = AttachmentUploadRequest(filename="a.pdf", file_type="application/pdf", file_size=10)
    upload = await attachments.request_ticket_upload(store, objects, member, ws.id, other.id, request)

    with pytest.raises(InvalidInputError):
        await attachments.add_ticket_attachment(store, member, ws.id, setup["ticket"].id, upload.attachment)


async def test_viewer_cannot_upload(store: MemoryDocumentStore, objects: RecordingObjects, setup: dict) -> None:
    request = AttachmentUploadRequest(filename="a.png", file_type="image/png", file_size=10)
    with pytest.raises(InsufficientPermissionsError):
        await attachments.request_ticket_upload(
            store, objects, setup["viewer"], setup["ws"].id, setup["ticket"].id, request
        )


async def test_unknown_attachment(store: MemoryDocumentStore, objects: RecordingObjects, setup: dict) -> None:
    with pytest.raises(AttachmentNotFoundError):
        await attachments.get_attachment_url(
            store, objects, setup["viewer"], setup["ws"].id, setup["ticket"].id, "att_missing"
        )


# ---------------------------------------------------------------------------
# Kiosk location attachments
# ---------------------------------------------------------------------------


async def test_kiosk_attachment_roundtrip(
    store: MemoryDocumentStore, objects: RecordingObjects, setup: dict
) -> None:
    ws, kiosk, member = setup["ws"], setup["kiosk"], setup["member"]
    request = AttachmentUploadRequest(filename="map.pdf", file_type="application/pdf", file_size=2048)

    upload = await attachments.request_kiosk_upload(store, objects, member, ws.id, kiosk.id, request)
    assert upload.attachment.s3_key.startswith(f"kiosks/workspace/{ws.workspace_id}/{kiosk.kiosk_id}/")
    assert not upload.attachment.is_image

    updated = await attachments.add_kiosk_attachment(store, member, ws.id, kiosk.id, upload.attachment)
    assert updated.location_attachments == [upload.attachment]

    url = await attachments.get_kiosk_attachment_url(
        store, objects, setup["viewer"], ws.id, kiosk.id, upload.attachment.id
    )
    assert url.expires_in == attachments.DEFAULT_URL_EXPIRES

    removed = await attachments.remove_kiosk_attachment(
        store, objects, member, ws.id, kiosk.id, upload.attachment.id
    )
    assert removed.location_attachments == []
    assert objects.deleted == [upload.attachment.s3_key]


async def test_adding_same_attachment_twice_is_a_noop(
    store: MemoryDocumentStore, objects: RecordingObjects, setup: dict
) -> None:
    member, ws, ticket = setup["member"], setup["ws"], setup["ticket"]
    request = AttachmentUploadRequest(filename="a.png", file_type="image/png", file_size=10)
    upload = await attachments.request_ticket_upload(store, objects, member, ws.id, ticket.id, request)

    await attachments.add_ticket_attachment(store, member, ws.id, ticket.id, upload.attachment)
    again = await attachments.add_ticket_attachment(store, member, ws.id, ticket.id, upload.attachment)

    assert again.attachments == [upload.attachment]
