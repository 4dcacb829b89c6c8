"""
Database Stack
==============
One DynamoDB table per catalog entity.

Key layout (every table uses generic PK / SK string keys):
  Industries              PK INDUSTRY#{id}          SK METADATA
  SubIndustries           PK INDUSTRY#{industryId}  SK SUBINDUSTRY#{id}     + IdIndex
  UseCases                PK SUBINDUSTRY#{subId}    SK USECASE#{id}         + IdIndex
  Solutions               PK SOLUTION#{id}          SK METADATA
  UseCaseSolutionMapping  PK USECASE#{useCaseId}    SK SOLUTION#{solutionId} + ReverseIndex
  CustomerCases           PK SOLUTION#{solutionId}  SK CUSTOMERCASE#{id}    + IdIndex
  News / Blogs            PK NEWS#{id} / BLOG#{id}  SK METADATA
  Users                   PK USER#{userId}          SK METADATA

Children share their parent's partition, so "does this parent still have
children?" is a single Limit=1 query.
"""
import aws_cdk as cdk
from aws_cdk import aws_dynamodb as dynamodb
from constructs import Construct

TABLE_PREFIX = "IndustryPortal"

# logical name → (table suffix, environment variable the Lambdas read)
TABLES = {
    "industries": ("Industries", "INDUSTRIES_TABLE"),
    "sub_industries": ("SubIndustries", "SUB_INDUSTRIES_TABLE"),
    "use_cases": ("UseCases", "USE_CASES_TABLE"),
    "solutions": ("Solutions", "SOLUTIONS_TABLE"),
    "mapping": ("UseCaseSolutionMapping", "MAPPING_TABLE"),
    "customer_cases": ("CustomerCases", "CUSTOMER_CASES_TABLE"),
    "news": ("News", "NEWS_TABLE"),
    "blogs": ("Blogs", "BLOGS_TABLE"),
    "users": ("Users", "USERS_TABLE"),
    "accounts": ("Accounts", "ACCOUNTS_TABLE"),
}
ID_INDEXED = ("sub_industries", "use_cases", "customer_cases")


def _string(name: str) -> dynamodb.Attribute:
    return dynamodb.Attribute(name=name, type=dynamodb.AttributeType.STRING)


class DatabaseStack(cdk.Stack):
    def __init__(self, scope: Construct, id: str, **kwargs):
        super().__init__(scope, id, **kwargs)

        self.tables: dict[str, dynamodb.Table] = {}

        for name, (suffix, _env_var) in TABLES.items():
            self.tables[name] = dynamodb.Table(
                self, f"{suffix}Table",
                table_name=f"{TABLE_PREFIX}-{suffix}",
                partition_key=_string("PK"),
                sort_key=_string("SK"),
                billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
                point_in_time_recovery=True,
                removal_policy=cdk.RemovalPolicy.RETAIN,
            )

        # Locate a child by id without knowing its parent
        for name in ID_INDEXED:
            self.tables[name].add_global_secondary_index(
                index_name="IdIndex",
                partition_key=_string("id"),
            )

        # Mapping read from the solution side
        self.tables["mapping"].add_global_secondary_index(
            index_name="ReverseIndex",
            partition_key=_string("GSI_PK"),
            sort_key=_string("GSI_SK"),
        )

        for name, table in self.tables.items():
            cdk.CfnOutput(self, f"{TABLES[name][0]}TableName", value=table.table_name)

    @property
    def table_environment(self) -> dict[str, str]:
        """Environment variables naming every table, for the service Lambdas."""
        return {env_var: self.tables[name].table_name for name, (_suffix, env_var) in TABLES.items()}
