"""
News and blog articles. Both share one shape and differ only in table and key prefix:

  News table    PK NEWS#{id}   SK METADATA
  Blogs table   PK BLOG#{id}   SK METADATA

Every article belongs to an industry, asserted at create time in the same
transaction as the put.
"""
from __future__ import annotations

import uuid

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from portal_shared.consistency import TransactionBuilder, get_item_with_version, update_with_lock
from portal_shared.dynamodb import (
    PortalTables,
    blog_key,
    get_item,
    industry_key,
    news_key,
    now_iso,
    scan_all,
    strip_keys,
)
from portal_shared.errors import ConcurrentModificationError, NotFoundError
from portal_shared.logger import get_logger

logger = get_logger(__name__)


class ArticleRepository:
    def __init__(self, tables: PortalTables, kind: str):
        if kind not in ("news", "blog"):
            raise ValueError(f"Unknown article kind {kind!r}")
        self._tables = tables
        self.kind = kind
        self._table = tables.news if kind == "news" else tables.blogs
        self._key = news_key if kind == "news" else blog_key
        self._label = "News" if kind == "news" else "Blog"

    def list(self, industry_id: str | None = None) -> list[dict]:
        kwargs = {"FilterExpression": Attr("industryId").eq(industry_id)} if industry_id else {}
        items = scan_all(self._table, **kwargs)
        return sorted((strip_keys(i) for i in items), key=lambda i: i.get("publishedAt", ""), reverse=True)

    def get(self, article_id: str) -> dict:
        item = get_item(self._table, self._key(article_id))
        if not item:
            raise NotFoundError(f"{self._label} not found")
        return strip_keys(item)

    def _require_industry(self, industry_id: str) -> None:
        if not get_item(self._tables.industries, industry_key(industry_id)):
            raise NotFoundError("Industry not found")

    def create(self, fields: dict, created_by: str) -> dict:
        self._require_industry(fields["industryId"])

        article_id = str(uuid.uuid4())
        now = now_iso()
        item = {
            **self._key(article_id),
            "id": article_id,
            "content": "",
            **fields,
            "publishedAt": fields.get("publishedAt") or now,
            "createdAt": now,
            "updatedAt": now,
            "createdBy": created_by,
            "version": 0,
        }
        tx = TransactionBuilder(self._tables.client)
        tx.add_condition_check(self._tables.industries.name, industry_key(fields["industryId"]), "attribute_exists(PK)")
        tx.add_put(self._table.name, item, condition="attribute_not_exists(PK)")
        try:
            tx.execute()
        except ConcurrentModificationError as e:
            raise NotFoundError("Industry not found") from e

        logger.info(f"{self._label} created", extra={"article_id": article_id, "industry_id": fields["industryId"]})
        return strip_keys(item)

    def update(self, article_id: str, changes: dict, expected_version: int | None = None) -> dict:
        key = self._key(article_id)
        try:
            current = get_item_with_version(self._table, key)
        except NotFoundError:
            raise NotFoundError(f"{self._label} not found") from None
        if "industryId" in changes:
            self._require_industry(changes["industryId"])
        version = current.version if expected_version is None else expected_version
        return strip_keys(update_with_lock(self._table, key, {**changes, "updatedAt": now_iso()}, version))

    def delete(self, article_id: str) -> None:
        try:
            self._table.delete_item(Key=self._key(article_id), ConditionExpression=Attr("PK").exists())
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError(f"{self._label} not found") from e
            raise
        logger.info(f"{self._label} deleted", extra={"article_id": article_id})
