"""
API Stack
=========
API Gateway + one Lambda per portal service.

Lambda configuration highlights:
- X-Ray active tracing enabled on all functions
- Shared layer carrying /services/portal_shared/ plus pydantic and aws-xray-sdk
- /admin and /specialist routes sit behind the Cognito authorizer; the
  handlers then check `custom:role` themselves. /public routes are open.
"""
import aws_cdk as cdk
from aws_cdk import aws_apigateway as apigw
from aws_cdk import aws_lambda as _lambda
from aws_cdk import aws_logs as logs

LAMBDA_RUNTIME = _lambda.Runtime.PYTHON_3_11

# service → (tables it writes, needs documents bucket, routes)
SERVICES = {
    "industry": (("industries", "sub_industries"), False, [
        ("GET", "/admin/industries"),
        ("POST", "/admin/industries"),
        ("POST", "/admin/industries/import-csv"),
        ("PUT", "/admin/industries/{id}"),
        ("DELETE", "/admin/industries/{id}"),
        ("PATCH", "/admin/industries/{id}/visibility"),
    ]),
    "sub_industry": (("industries", "sub_industries", "use_cases"), False, [
        ("GET", "/admin/sub-industries"),
        ("POST", "/admin/sub-industries"),
        ("GET", "/admin/industries/{id}/sub-industries"),
        ("GET", "/admin/sub-industries/{id}"),
        ("PUT", "/admin/sub-industries/{id}"),
        ("DELETE", "/admin/sub-industries/{id}"),
        ("PATCH", "/admin/sub-industries/{id}/move"),
    ]),
    "use_case": (("sub_industries", "use_cases", "mapping"), True, [
        ("GET", "/specialist/use-cases"),
        ("POST", "/specialist/use-cases"),
        ("GET", "/specialist/use-cases/{id}"),
        ("PUT", "/specialist/use-cases/{id}"),
        ("DELETE", "/specialist/use-cases/{id}"),
        ("POST", "/specialist/use-cases/{id}/documents"),
        ("DELETE", "/specialist/use-cases/{id}/documents/{docId}"),
    ]),
    "solution": (("solutions", "use_cases", "mapping", "customer_cases"), True, [
        ("GET", "/admin/solutions"),
        ("POST", "/admin/solutions"),
        ("GET", "/admin/solutions/{id}"),
        ("PUT", "/admin/solutions/{id}"),
        ("DELETE", "/admin/solutions/{id}"),
        ("GET", "/admin/solutions/{id}/detail-markdown"),
        ("POST", "/admin/solutions/{id}/detail-markdown"),
    ]),
    "mapping": (("use_cases", "solutions", "mapping", "customer_cases"), False, [
        ("GET", "/specialist/use-cases/{id}/solutions"),
        ("POST", "/specialist/use-cases/{id}/solutions/{solutionId}"),
        ("DELETE", "/specialist/use-cases/{id}/solutions/{solutionId}"),
        ("GET", "/specialist/solutions/{id}/use-cases"),
    ]),
    "customer_case": (("use_cases", "mapping", "customer_cases"), True, [
        ("GET", "/specialist/customer-cases"),
        ("POST", "/specialist/customer-cases"),
        ("GET", "/specialist/customer-cases/{id}"),
        ("PUT", "/specialist/customer-cases/{id}"),
        ("DELETE", "/specialist/customer-cases/{id}"),
        ("POST", "/specialist/customer-cases/{id}/documents"),
        ("DELETE", "/specialist/customer-cases/{id}/documents/{docId}"),
    ]),
    "content": (("industries", "news", "blogs"), False, [
        (method, f"/admin/{collection}{suffix}")
        for collection in ("news", "blogs")
        for method, suffix in (("GET", ""), ("POST", ""), ("GET", "/{id}"), ("PUT", "/{id}"), ("DELETE", "/{id}"))
    ]),
    "public": ((), True, [
        ("GET", "/public/industries"),
        ("GET", "/public/industries/{id}"),
        ("GET", "/public/industries/{id}/sub-industries"),
        ("GET", "/public/sub-industries/{id}/use-cases"),
        ("GET", "/public/use-cases/{id}"),
        ("GET", "/public/use-cases/{id}/solutions"),
        ("GET", "/public/solutions/{id}"),
        ("GET", "/public/solutions/{id}/use-cases"),
        ("GET", "/public/solutions/{id}/detail-markdown"),
        ("GET", "/public/solutions/{id}/customer-cases"),
        ("GET", "/public/news"),
        ("GET", "/public/news/{id}"),
        ("GET", "/public/blogs"),
        ("GET", "/public/blogs/{id}"),
        ("GET", "/public/documents/{id}/download"),
    ]),
    "user": (("users",), False, [
        ("GET", "/admin/users"),
        ("POST", "/admin/users"),
        ("GET", "/admin/users/{id}"),
        ("PUT", "/admin/users/{id}"),
        ("DELETE", "/admin/users/{id}"),
    ]),
    "account": (("accounts",), False, [
        ("GET", "/admin/accounts"),
        ("POST", "/admin/accounts"),
        ("GET", "/admin/accounts/{id}"),
        ("PUT", "/admin/accounts/{id}"),
        ("DELETE", "/admin/accounts/{id}"),
    ]),
}

COGNITO_USER_ACTIONS = (
    "cognito-idp:AdminCreateUser",
    "cognito-idp:AdminUpdateUserAttributes",
    "cognito-idp:AdminDeleteUser",
    "cognito-idp:AdminGetUser",
)


def _resource(root: apigw.IResource, path: str) -> apigw.IResource:
    node = root
    for part in path.strip("/").split("/"):
        node = node.get_resource(part) or node.add_resource(part)
    return node


class ApiStack(cdk.Stack):
    def __init__(self, scope, id: str, *, database, documents_bucket, user_pool, **kwargs):
        super().__init__(scope, id, **kwargs)

        self.lambdas: dict[str, _lambda.Function] = {}

        # ----------------------------------------------------------------
        # Shared layer: portal_shared + the libraries the runtime lacks
        # ----------------------------------------------------------------
        shared_layer = _lambda.LayerVersion(
            self, "SharedLayer",
            code=_lambda.Code.from_asset(
                "../services/portal_shared",
                bundling=cdk.BundlingOptions(
                    image=LAMBDA_RUNTIME.bundling_image,
                    command=[
                        "bash", "-c",
                        "pip install 'pydantic>=2.5' aws-xray-sdk -t /asset-output/python && "
                        "mkdir -p /asset-output/python/portal_shared && "
                        "cp -r /asset-input/*.py /asset-output/python/portal_shared/",
                    ],
                ),
            ),
            compatible_runtimes=[LAMBDA_RUNTIME],
            description="Industry portal shared code (consistency guards, http, auth, models)",
        )

        # ----------------------------------------------------------------
        # Common environment variables
        # ----------------------------------------------------------------
        common_env = {
            **database.table_environment,
            "DOCUMENTS_BUCKET": documents_bucket.bucket_name,
            "USER_POOL_ID": user_pool.user_pool_id,
            "PRESIGNED_URL_TTL_SECONDS": "3600",
            "LOG_LEVEL": "INFO",
        }
        service_code = _lambda.Code.from_asset(
            "../services",
            exclude=["portal_shared", "**/__pycache__", "**/*.pyc"],
        )

        # ----------------------------------------------------------------
        # API Gateway
        # ----------------------------------------------------------------
        log_group = logs.LogGroup(self, "ApiGwLogs", retention=logs.RetentionDays.ONE_WEEK)

        api = apigw.RestApi(
            self, "IndustryPortalApi",
            rest_api_name="industry-portal-api",
            default_cors_preflight_options=apigw.CorsOptions(
                allow_origins=apigw.Cors.ALL_ORIGINS,
                allow_methods=apigw.Cors.ALL_METHODS,
                allow_headers=["Content-Type", "Authorization"],
            ),
            deploy_options=apigw.StageOptions(
                stage_name="v1",
                access_log_destination=apigw.LogGroupLogDestination(log_group),
                access_log_format=apigw.AccessLogFormat.json_with_standard_fields(
                    caller=True,
                    http_method=True,
                    ip=True,
                    protocol=True,
                    request_time=True,
                    resource_path=True,
                    response_length=True,
                    status=True,
                    user=True,
                ),
                tracing_enabled=True,
            ),
        )
        authorizer = apigw.CognitoUserPoolsAuthorizer(
            self, "PortalAuthorizer",
            cognito_user_pools=[user_pool],
        )

        # ----------------------------------------------------------------
        # One function per service
        # ----------------------------------------------------------------
        for name, (table_names, uses_bucket, routes) in SERVICES.items():
            fn = _lambda.Function(
                self, f"{name.title().replace('_', '')}Function",
                function_name=f"industry-portal-{name.replace('_', '-')}-service",
                runtime=LAMBDA_RUNTIME,
                handler=f"{name}_service.handler.handler",
                code=service_code,
                layers=[shared_layer],
                environment=common_env,
                tracing=_lambda.Tracing.ACTIVE,
                log_retention=logs.RetentionDays.ONE_WEEK,
                timeout=cdk.Duration.seconds(30),
                memory_size=512 if name == "industry" else 256,  # CSV import
            )
            self.lambdas[name] = fn

            for table_name in table_names:
                database.tables[table_name].grant_read_write_data(fn)
            if name == "public":
                for table in database.tables.values():
                    table.grant_read_data(fn)
                documents_bucket.grant_read(fn)
            elif uses_bucket:
                documents_bucket.grant_read_write(fn)
                documents_bucket.grant_delete(fn)
            if name == "user":
                user_pool.grant(fn, *COGNITO_USER_ACTIONS)

            integration = apigw.LambdaIntegration(fn)
            for method, path in routes:
                if path.startswith("/public/"):
                    _resource(api.root, path).add_method(method, integration)
                else:
                    _resource(api.root, path).add_method(
                        method, integration,
                        authorizer=authorizer,
                        authorization_type=apigw.AuthorizationType.COGNITO,
                    )

        cdk.CfnOutput(self, "ApiUrl", value=api.url)
