from __future__ import annotations

from taskboard.persistence.base import PersistenceAdapter
from taskboard.persistence.local import JsonFileStorage, KeyValueStorage, LocalAdapter, MemoryStorage
from taskboard.persistence.remote import (
  DocumentStore,
  DocumentStoreError,
  HttpDocumentStore,
  InMemoryDocumentStore,
  RemoteAdapter,
)
from taskboard.session import Session, SessionMode

__all__ = [
  "DocumentStore",
  "DocumentStoreError",
  "HttpDocumentStore",
  "InMemoryDocumentStore",
  "JsonFileStorage",
  "KeyValueStorage",
  "LocalAdapter",
  "MemoryStorage",
  "PersistenceAdapter",
  "RemoteAdapter",
  "build_adapter",
]


def build_adapter(
  session: Session,
  *,
  document_store: DocumentStore | None = None,
  local_storage: KeyValueStorage | None = None,
  collection: str = "users",
) -> PersistenceAdapter:
  if session.mode == SessionMode.AUTHENTICATED:
    if document_store is None:
      raise ValueError("authenticated sessions need a document store")
    return RemoteAdapter(document_store, session.user_id or "", collection=collection)
  if local_storage is None:
    raise ValueError("guest sessions need local storage")
  return LocalAdapter(local_storage)
