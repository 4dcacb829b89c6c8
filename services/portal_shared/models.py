"""
Portal Request Schemas
======================
Request bodies are validated with Pydantic before any store access. The
wire format is camelCase (what the frontend sends); attributes are
snake_case in Python and are dumped back to camelCase for storage.

Create models require their fields. Update models make every field optional
and carry an optional `version`: the version the client last read. When
present, the update is rejected if the record has moved on since.
"""
from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StringConstraints
from pydantic.alias_generators import to_camel

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Role = Literal["admin", "specialist", "user"]


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def sent_fields(self, exclude: set[str] | None = None) -> dict:
        """The non-null fields the caller actually sent, camelCased, minus `exclude`."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True, exclude=exclude or set())


class _Update(_Body):
    version: int | None = Field(default=None, ge=0)

    def changes(self) -> dict:
        return self.sent_fields(exclude={"version"})


# ---------------------------------------------------------------------------
# Industries / sub-industries
# ---------------------------------------------------------------------------

class CreateIndustryRequest(_Body):
    name: RequiredText
    definition: RequiredText
    definition_cn: str | None = None
    image_url: str | None = None
    is_visible: StrictBool = True


class UpdateIndustryRequest(_Update):
    name: RequiredText | None = None
    definition: RequiredText | None = None
    definition_cn: str | None = None
    image_url: str | None = None


class VisibilityRequest(_Update):
    is_visible: StrictBool


class CsvImportRequest(_Body):
    csv_content: RequiredText


class CreateSubIndustryRequest(_Body):
    industry_id: RequiredText
    name: RequiredText
    definition: RequiredText
    definition_cn: str | None = None
    typical_global_companies: list[str] = Field(default_factory=list)
    typical_chinese_companies: list[str] = Field(default_factory=list)
    priority: int | None = None


class UpdateSubIndustryRequest(_Update):
    name: RequiredText | None = None
    definition: RequiredText | None = None
    definition_cn: str | None = None
    typical_global_companies: list[str] | None = None
    typical_chinese_companies: list[str] | None = None
    priority: int | None = None


class MoveSubIndustryRequest(_Update):
    new_industry_id: RequiredText


# ---------------------------------------------------------------------------
# Use cases / solutions / customer cases
# ---------------------------------------------------------------------------

class CreateUseCaseRequest(_Body):
    sub_industry_id: RequiredText
    name: RequiredText
    description: RequiredText


class UpdateUseCaseRequest(_Update):
    name: RequiredText | None = None
    description: RequiredText | None = None


class CreateSolutionRequest(_Body):
    name: RequiredText
    description: RequiredText
    target_customers: str | None = None
    solution_content: str | None = None
    solution_source: str | None = None
    aws_services: str | None = None
    why_aws: str | None = None
    promotion_key_points: str | None = None
    faq: str | None = None
    key_terms: str | None = None
    success_cases: str | None = None


class UpdateSolutionRequest(_Update):
    name: RequiredText | None = None
    description: RequiredText | None = None
    target_customers: str | None = None
    solution_content: str | None = None
    solution_source: str | None = None
    aws_services: str | None = None
    why_aws: str | None = None
    promotion_key_points: str | None = None
    faq: str | None = None
    key_terms: str | None = None
    success_cases: str | None = None


class MarkdownUploadRequest(_Body):
    markdown_content: RequiredText


class CreateCustomerCaseRequest(_Body):
    solution_id: RequiredText
    use_case_id: RequiredText
    name: RequiredText
    description: RequiredText


class UpdateCustomerCaseRequest(_Update):
    name: RequiredText | None = None
    description: RequiredText | None = None


class DocumentUploadRequest(_Body):
    file_name: RequiredText
    file_content: RequiredText  # base64
    content_type: str = "application/octet-stream"


# ---------------------------------------------------------------------------
# News / blogs
# ---------------------------------------------------------------------------

class CreateArticleRequest(_Body):
    industry_id: RequiredText
    title: RequiredText
    summary: RequiredText
    author: RequiredText
    content: str = ""
    image_url: str | None = None
    external_url: str | None = None
    published_at: str | None = None


class UpdateArticleRequest(_Update):
    industry_id: RequiredText | None = None
    title: RequiredText | None = None
    summary: RequiredText | None = None
    author: RequiredText | None = None
    content: str | None = None
    image_url: str | None = None
    external_url: str | None = None
    published_at: str | None = None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class CreateUserRequest(_Body):
    email: RequiredText
    role: Role
    assigned_industries: list[str] = Field(default_factory=list)


class UpdateUserRequest(_Body):
    role: Role | None = None
    assigned_industries: list[str] | None = None


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

AccountType = Literal["customer", "partner", "vendor"]


class CreateAccountRequest(_Body):
    name: RequiredText
    type: AccountType
    description: str | None = None
    logo_url: str | None = None
    website: str | None = None


class UpdateAccountRequest(_Update):
    name: RequiredText | None = None
    type: AccountType | None = None
    description: str | None = None
    logo_url: str | None = None
    website: str | None = None
