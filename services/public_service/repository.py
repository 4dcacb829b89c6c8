"""
Read-only catalog for anonymous visitors.

Hidden industries (`isVisible = false`) and anything underneath them answer
404, so the public site never leaks draft content.
"""
from __future__ import annotations

from boto3.dynamodb.conditions import Attr, Key

from portal_shared.dynamodb import (
    REVERSE_INDEX,
    PortalTables,
    blog_key,
    find_by_id,
    get_item,
    industry_key,
    iter_query,
    news_key,
    query_all,
    scan_all,
    solution_key,
    strip_keys,
)
from portal_shared.errors import NotFoundError, ValidationError
from portal_shared.storage import DocumentStore

DOWNLOADABLE_PREFIXES = ("use-cases/", "customer-cases/", "solutions/")


class PublicCatalog:
    def __init__(self, tables: PortalTables, store: DocumentStore):
        self._tables = tables
        self._store = store

    # -- industries ---------------------------------------------------------

    def industries(self) -> list[dict]:
        items = scan_all(self._tables.industries, FilterExpression=Attr("isVisible").eq(True))
        return sorted((strip_keys(i) for i in items), key=lambda i: i.get("name", ""))

    def industry(self, industry_id: str) -> dict:
        item = get_item(self._tables.industries, industry_key(industry_id))
        if not item or not item.get("isVisible", True):
            raise NotFoundError("Industry not found or not visible")
        return strip_keys(item)

    def _visible_use_case(self, use_case: dict | None, visible: dict[str, bool]) -> bool:
        """True if the use case exists under a visible industry. `visible` caches per industry."""
        if not use_case:
            return False
        industry_id = use_case.get("industryId")
        if industry_id not in visible:
            try:
                self.industry(industry_id)
                visible[industry_id] = True
            except NotFoundError:
                visible[industry_id] = False
        return visible[industry_id]

    def sub_industries(self, industry_id: str) -> list[dict]:
        self.industry(industry_id)
        items = query_all(self._tables.sub_industries, KeyConditionExpression=Key("PK").eq(f"INDUSTRY#{industry_id}"))
        return sorted((strip_keys(i) for i in items), key=lambda i: (i.get("priority") or 0, i.get("name", "")))

    def use_cases(self, sub_industry_id: str) -> list[dict]:
        sub_industry = find_by_id(self._tables.sub_industries, sub_industry_id)
        if not sub_industry:
            raise NotFoundError("Sub-industry not found")
        self.industry(sub_industry["industryId"])
        items = query_all(self._tables.use_cases, KeyConditionExpression=Key("PK").eq(f"SUBINDUSTRY#{sub_industry_id}"))
        return [strip_keys(i) for i in items]

    def use_case(self, use_case_id: str) -> dict:
        item = find_by_id(self._tables.use_cases, use_case_id)
        if not item:
            raise NotFoundError("Use case not found")
        self.industry(item["industryId"])
        return strip_keys(item)

    # -- solutions ----------------------------------------------------------

    def solutions_for_use_case(self, use_case_id: str) -> list[dict]:
        self.use_case(use_case_id)
        solutions = []
        for mapping in iter_query(self._tables.mapping, KeyConditionExpression=Key("PK").eq(f"USECASE#{use_case_id}")):
            solution = get_item(self._tables.solutions, solution_key(mapping["solutionId"]))
            if solution:
                solutions.append(strip_keys(solution))
        return solutions

    def solution(self, solution_id: str) -> dict:
        item = get_item(self._tables.solutions, solution_key(solution_id))
        if not item:
            raise NotFoundError("Solution not found")
        return strip_keys(item)

    def solution_use_cases(self, solution_id: str) -> list[dict]:
        self.solution(solution_id)
        use_cases, visible = [], {}
        for mapping in iter_query(
            self._tables.mapping,
            IndexName=REVERSE_INDEX,
            KeyConditionExpression=Key("GSI_PK").eq(f"SOLUTION#{solution_id}"),
        ):
            use_case = find_by_id(self._tables.use_cases, mapping["useCaseId"])
            if self._visible_use_case(use_case, visible):
                use_cases.append(strip_keys(use_case))
        return use_cases

    def solution_markdown(self, solution_id: str) -> dict:
        solution = self.solution(solution_id)
        if not solution.get("detailMarkdownUrl"):
            raise NotFoundError("Solution detail markdown not found")
        s3_key = self._store.key_from_url(solution["detailMarkdownUrl"])
        return {"url": self._store.presigned_url(s3_key), "expiresIn": self._store.url_ttl}

    def customer_cases(self, solution_id: str) -> list[dict]:
        self.solution(solution_id)
        items = query_all(self._tables.customer_cases, KeyConditionExpression=Key("PK").eq(f"SOLUTION#{solution_id}"))
        use_cases, visible = {}, {}
        cases = []
        for item in items:
            use_case_id = item.get("useCaseId")
            if use_case_id not in use_cases:
                use_cases[use_case_id] = find_by_id(self._tables.use_cases, use_case_id) if use_case_id else None
            if self._visible_use_case(use_cases[use_case_id], visible):
                cases.append(strip_keys(item))
        return cases

    # -- articles -----------------------------------------------------------

    def articles(self, kind: str, industry_id: str | None = None) -> list[dict]:
        table = self._tables.news if kind == "news" else self._tables.blogs
        kwargs = {"FilterExpression": Attr("industryId").eq(industry_id)} if industry_id else {}
        items = scan_all(table, **kwargs)
        return sorted((strip_keys(i) for i in items), key=lambda i: i.get("publishedAt", ""), reverse=True)

    def article(self, kind: str, article_id: str) -> dict:
        if kind == "news":
            item = get_item(self._tables.news, news_key(article_id))
        else:
            item = get_item(self._tables.blogs, blog_key(article_id))
        if not item:
            raise NotFoundError("News not found" if kind == "news" else "Blog not found")
        return strip_keys(item)

    # -- documents ----------------------------------------------------------

    def document_download(self, document_id: str, s3_key: str | None) -> dict:
        if not s3_key:
            raise ValidationError("s3Key query parameter is required", {"field": "s3Key", "constraint": "required"})
        if not s3_key.startswith(DOWNLOADABLE_PREFIXES):
            raise NotFoundError("Document not found")
        if not self._store.exists(s3_key):
            raise NotFoundError("Document not found")
        return {
            "url": self._store.presigned_url(s3_key),
            "expiresIn": self._store.url_ttl,
            "documentId": document_id,
        }
