"""
Attach / detach S3 documents on a versioned record's `documents` list.

The object is written first and the record updated second, under the
record's version. If the record moved on in between, the freshly uploaded
object is removed again and the conflict goes back to the caller.
"""
from __future__ import annotations

from portal_shared.consistency import update_with_lock
from portal_shared.dynamodb import key_of, now_iso
from portal_shared.errors import ConcurrentModificationError, NotFoundError
from portal_shared.models import DocumentUploadRequest
from portal_shared.storage import DocumentStore


def attach_document(store: DocumentStore, table, item: dict, prefix: str,
                    upload: DocumentUploadRequest) -> dict:
    document = store.upload_document(
        prefix, item["id"], upload.file_name, upload.file_content, upload.content_type
    )
    documents = [*item.get("documents", []), document]
    try:
        update_with_lock(
            table, key_of(item), {"documents": documents, "updatedAt": now_iso()}, int(item.get("version", 0))
        )
    except ConcurrentModificationError:
        store.delete_quietly([document["s3Key"]])
        raise
    return document


def detach_document(store: DocumentStore, table, item: dict, document_id: str) -> None:
    documents = item.get("documents", [])
    target = next((d for d in documents if d.get("id") == document_id), None)
    if target is None:
        raise NotFoundError("Document not found")
    remaining = [d for d in documents if d.get("id") != document_id]
    update_with_lock(
        table, key_of(item), {"documents": remaining, "updatedAt": now_iso()}, int(item.get("version", 0))
    )
    store.delete_quietly([target["s3Key"]])


def document_keys(item: dict) -> list[str]:
    return [d["s3Key"] for d in item.get("documents", []) if d.get("s3Key")]
