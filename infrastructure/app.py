#!/usr/bin/env python3
"""
Industry Portal CDK App
=======================
Stack dependency order:
  DatabaseStack, StorageStack, AuthStack → ApiStack → MonitoringStack

Run: cdk deploy --all
"""
import aws_cdk as cdk

from industry_portal.api_stack import ApiStack
from industry_portal.auth_stack import AuthStack
from industry_portal.database_stack import DatabaseStack
from industry_portal.monitoring_stack import MonitoringStack
from industry_portal.storage_stack import StorageStack

app = cdk.App()

env = cdk.Environment(
    account=app.node.try_get_context("account"),
    region=app.node.try_get_context("region") or "us-east-1",
)

db_stack = DatabaseStack(app, "IndustryPortalDatabase", env=env)
storage_stack = StorageStack(app, "IndustryPortalStorage", env=env)
auth_stack = AuthStack(app, "IndustryPortalAuth", env=env)
api_stack = ApiStack(
    app, "IndustryPortalApi",
    database=db_stack,
    documents_bucket=storage_stack.documents_bucket,
    user_pool=auth_stack.user_pool,
    env=env,
)
MonitoringStack(
    app, "IndustryPortalMonitoring",
    lambdas=api_stack.lambdas,
    tables=db_stack.tables,
    env=env,
)

app.synth()
