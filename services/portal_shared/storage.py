"""
S3 document storage for use cases, customer cases and solution markdown.

Object layout in the documents bucket:
  use-cases/{useCaseId}/{documentId}-{fileName}
  customer-cases/{customerCaseId}/{documentId}-{fileName}
  solutions/{solutionId}/detail.md

Records keep `{id, name, s3Key, uploadedAt}` per attachment; solutions keep
`detailMarkdownUrl` as an `s3://bucket/key` URL.
"""
from __future__ import annotations

import base64
import binascii
import uuid

import boto3
from botocore.exceptions import ClientError

from portal_shared.config import PortalConfig
from portal_shared.dynamodb import now_iso
from portal_shared.errors import ValidationError
from portal_shared.logger import get_logger

logger = get_logger(__name__)


class DocumentStore:
    def __init__(self, config: PortalConfig, client=None):
        self._s3 = client or boto3.client("s3")
        self.bucket = config.documents_bucket
        self.url_ttl = config.presigned_url_ttl_seconds

    def upload_document(self, prefix: str, owner_id: str, file_name: str,
                        content_b64: str, content_type: str) -> dict:
        try:
            body = base64.b64decode(content_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError("fileContent must be base64 encoded",
                                  {"field": "fileContent", "constraint": "base64"}) from e

        document_id = str(uuid.uuid4())
        s3_key = f"{prefix}/{owner_id}/{document_id}-{file_name}"
        self._s3.put_object(Bucket=self.bucket, Key=s3_key, Body=body, ContentType=content_type)
        logger.info("Document uploaded", extra={"s3_key": s3_key, "size": len(body)})
        return {"id": document_id, "name": file_name, "s3Key": s3_key, "uploadedAt": now_iso()}

    def put_markdown(self, solution_id: str, markdown: str) -> str:
        s3_key = f"solutions/{solution_id}/detail.md"
        self._s3.put_object(
            Bucket=self.bucket,
            Key=s3_key,
            Body=markdown.encode("utf-8"),
            ContentType="text/markdown; charset=utf-8",
        )
        return f"s3://{self.bucket}/{s3_key}"

    def delete(self, s3_key: str) -> None:
        self._s3.delete_object(Bucket=self.bucket, Key=s3_key)

    def delete_quietly(self, s3_keys: list[str]) -> None:
        """Remove attachments of a record that is already gone. Failures are logged, not raised."""
        for s3_key in s3_keys:
            try:
                self.delete(s3_key)
            except ClientError:
                logger.warning("Failed to delete document object", extra={"s3_key": s3_key}, exc_info=True)

    def exists(self, s3_key: str) -> bool:
        try:
            self._s3.head_object(Bucket=self.bucket, Key=s3_key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return False
            raise
        return True

    def presigned_url(self, s3_key: str) -> str:
        return self._s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": s3_key},
            ExpiresIn=self.url_ttl,
        )

    def key_from_url(self, url: str) -> str:
        prefix = f"s3://{self.bucket}/"
        if url.startswith(prefix):
            return url[len(prefix):]
        # other buckets: strip scheme and bucket
        return url.split("/", 3)[-1] if url.startswith("s3://") else url
