"""
Bulk import of industries and sub-industries from CSV.

Two header layouts are accepted:

  English   Tier 1 Industry, Tier 2 Sub Industry, AWS Definition
  Chinese   行业名称, 行业定义, 子行业名称, 子行业定义
            [, 典型全球企业, 典型中国企业]   (comma-separated company lists)

Rows are processed independently: an industry or sub-industry that already
exists (matched by name) is skipped, a bad row is counted and reported, and
the import carries on with the next row. Row numbers in `errors` are 1-based
and count the header line.
"""
from __future__ import annotations

import csv
import io
import uuid
from dataclasses import dataclass, field

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from portal_shared.dynamodb import PortalTables, iter_query, now_iso, sub_industry_key
from portal_shared.errors import ValidationError
from portal_shared.logger import get_logger

from .repository import IndustryRepository

logger = get_logger(__name__)

ENGLISH_HEADERS = ("Tier 1 Industry", "Tier 2 Sub Industry", "AWS Definition")
CHINESE_HEADERS = ("行业名称", "行业定义", "子行业名称", "子行业定义")


@dataclass
class CsvRow:
    industry_name: str
    industry_definition: str
    sub_industry_name: str
    sub_industry_definition: str
    global_companies: list[str] = field(default_factory=list)
    chinese_companies: list[str] = field(default_factory=list)


@dataclass
class ImportResult:
    success_count: int = 0
    skip_count: int = 0
    error_count: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "successCount": self.success_count,
            "skipCount": self.skip_count,
            "errorCount": self.error_count,
            "errors": self.errors,
        }


def _split_companies(value: str) -> list[str]:
    return [c.strip() for c in (value or "").split(",") if c.strip()]


def parse_csv(content: str) -> list[CsvRow]:
    """Parse and validate the header layout. Raises ValidationError on an unusable file."""
    content = content.lstrip("\ufeff")
    if not content.strip():
        raise ValidationError("CSV content is empty")

    reader = csv.DictReader(io.StringIO(content), skipinitialspace=True)
    headers = {(h or "").strip() for h in (reader.fieldnames or [])}
    english = all(h in headers for h in ENGLISH_HEADERS)
    chinese = all(h in headers for h in CHINESE_HEADERS)
    if not english and not chinese:
        raise ValidationError(
            "CSV is missing required columns: expected "
            f"{', '.join(CHINESE_HEADERS)} or {', '.join(ENGLISH_HEADERS)}"
        )

    rows: list[CsvRow] = []
    for raw in reader:
        record = {(k or "").strip(): (v or "").strip() for k, v in raw.items() if isinstance(v, str)}
        if not any(record.values()):
            continue
        if english and record.get("Tier 1 Industry"):
            definition = record.get("AWS Definition", "")
            rows.append(CsvRow(
                industry_name=record["Tier 1 Industry"],
                industry_definition=definition,
                sub_industry_name=record.get("Tier 2 Sub Industry", ""),
                sub_industry_definition=definition,
            ))
        else:
            rows.append(CsvRow(
                industry_name=record.get("行业名称", ""),
                industry_definition=record.get("行业定义", ""),
                sub_industry_name=record.get("子行业名称", ""),
                sub_industry_definition=record.get("子行业定义", ""),
                global_companies=_split_companies(record.get("典型全球企业", "")),
                chinese_companies=_split_companies(record.get("典型中国企业", "")),
            ))

    if not rows:
        raise ValidationError("CSV has no data rows")
    return rows


class CsvImporter:
    def __init__(self, tables: PortalTables):
        self._tables = tables
        self._industries = IndustryRepository(tables)

    def run(self, content: str, created_by: str) -> ImportResult:
        rows = parse_csv(content)
        result = ImportResult()
        industry_ids: dict[str, str] = {}

        for index, row in enumerate(rows):
            row_number = index + 2
            if not row.industry_name or not row.sub_industry_name:
                result.error_count += 1
                result.errors.append(f"Row {row_number}: industry name and sub-industry name are required")
                continue
            try:
                industry_id = industry_ids.get(row.industry_name)
                if industry_id is None:
                    existing = self._industries.find_by_name(row.industry_name)
                    if existing:
                        industry_id = existing["id"]
                        result.skip_count += 1
                    else:
                        industry_id = self._industries.create(
                            {"name": row.industry_name, "definition": row.industry_definition},
                            created_by,
                        )["id"]
                        result.success_count += 1
                    industry_ids[row.industry_name] = industry_id

                if self._sub_industry_exists(industry_id, row.sub_industry_name):
                    result.skip_count += 1
                else:
                    self._create_sub_industry(industry_id, row)
                    result.success_count += 1
            except ClientError as e:
                result.error_count += 1
                result.errors.append(f"Row {row_number}: {e.response['Error'].get('Message', str(e))}")
                logger.warning("CSV row failed", extra={"row": row_number}, exc_info=True)

        logger.info("CSV import finished", extra=result.to_dict())
        return result

    def _sub_industry_exists(self, industry_id: str, name: str) -> bool:
        matches = iter_query(
            self._tables.sub_industries,
            KeyConditionExpression=Key("PK").eq(f"INDUSTRY#{industry_id}"),
            FilterExpression=Attr("name").eq(name),
        )
        return next(matches, None) is not None

    def _create_sub_industry(self, industry_id: str, row: CsvRow) -> None:
        sub_industry_id = str(uuid.uuid4())
        now = now_iso()
        self._tables.sub_industries.put_item(Item={
            **sub_industry_key(industry_id, sub_industry_id),
            "id": sub_industry_id,
            "industryId": industry_id,
            "name": row.sub_industry_name,
            "definition": row.sub_industry_definition,
            "typicalGlobalCompanies": row.global_companies,
            "typicalChineseCompanies": row.chinese_companies,
            "createdAt": now,
            "updatedAt": now,
            "version": 0,
        })
