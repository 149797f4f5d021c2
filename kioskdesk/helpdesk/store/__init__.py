"""Document and object store adapters."""

from kioskdesk.helpdesk.store.base import DocumentStore
from kioskdesk.helpdesk.store.memory import MemoryDocumentStore
from kioskdesk.helpdesk.store.objects import ObjectStore, S3ObjectStore
from kioskdesk.helpdesk.store.sql import SqlDocumentStore

__all__ = ["DocumentStore", "MemoryDocumentStore", "ObjectStore", "S3ObjectStore", "SqlDocumentStore"]
