"""
Runtime configuration, read from the Lambda environment.

Read on every invocation (not at import) so tests can monkeypatch the
environment between cases.
"""
from __future__ import annotations

import os

from pydantic import BaseModel

_TABLE_ENV = {
    "industries_table": ("INDUSTRIES_TABLE", "IndustryPortal-Industries"),
    "sub_industries_table": ("SUB_INDUSTRIES_TABLE", "IndustryPortal-SubIndustries"),
    "use_cases_table": ("USE_CASES_TABLE", "IndustryPortal-UseCases"),
    "solutions_table": ("SOLUTIONS_TABLE", "IndustryPortal-Solutions"),
    "mapping_table": ("MAPPING_TABLE", "IndustryPortal-UseCaseSolutionMapping"),
    "customer_cases_table": ("CUSTOMER_CASES_TABLE", "IndustryPortal-CustomerCases"),
    "news_table": ("NEWS_TABLE", "IndustryPortal-News"),
    "blogs_table": ("BLOGS_TABLE", "IndustryPortal-Blogs"),
    "users_table": ("USERS_TABLE", "IndustryPortal-Users"),
    "accounts_table": ("ACCOUNTS_TABLE", "IndustryPortal-Accounts"),
}


class PortalConfig(BaseModel):
    industries_table: str
    sub_industries_table: str
    use_cases_table: str
    solutions_table: str
    mapping_table: str
    customer_cases_table: str
    news_table: str
    blogs_table: str
    users_table: str
    accounts_table: str
    documents_bucket: str = "industry-portal-documents"
    user_pool_id: str = ""
    presigned_url_ttl_seconds: int = 3600
    region: str = "us-east-1"

    @classmethod
    def from_env(cls) -> "PortalConfig":
        values = {field: os.environ.get(var, default) for field, (var, default) in _TABLE_ENV.items()}
        return cls(
            **values,
            documents_bucket=os.environ.get("DOCUMENTS_BUCKET", "industry-portal-documents"),
            user_pool_id=os.environ.get("USER_POOL_ID", ""),
            presigned_url_ttl_seconds=int(os.environ.get("PRESIGNED_URL_TTL_SECONDS", "3600")),
            region=os.environ.get("AWS_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-east-1")),
        )
