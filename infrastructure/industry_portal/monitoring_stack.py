"""
Monitoring Stack
================
CloudWatch dashboard + alarms for the portal Lambdas and DynamoDB tables.

Per service: errors and P99 duration. Per table: conditional check failures,
which is where optimistic-lock conflicts and refused transactions surface.
A steady trickle is normal with several editors; a spike means clients keep
retrying with stale versions.
"""
import aws_cdk as cdk
from aws_cdk import aws_cloudwatch as cw
from aws_cdk import aws_cloudwatch_actions as cw_actions
from aws_cdk import aws_sns as sns


class MonitoringStack(cdk.Stack):
    def __init__(self, scope, id: str, *, lambdas, tables, **kwargs):
        super().__init__(scope, id, **kwargs)

        # SNS topic for alarm notifications
        alarm_topic = sns.Topic(self, "AlarmTopic", topic_name="industry-portal-alarms")

        # ----------------------------------------------------------------
        # Per-service Lambda metrics
        # ----------------------------------------------------------------
        service_widgets = []
        for name, fn in lambdas.items():
            error_metric = fn.metric_errors(
                period=cdk.Duration.minutes(1),
                statistic="Sum",
            )
            duration_p99 = fn.metric_duration(
                period=cdk.Duration.minutes(5),
                statistic="p99",
            )
            title = name.replace("_", " ").title()

            # Alarm: >5 errors in 5 min
            error_alarm = cw.Alarm(
                self, f"{title.replace(' ', '')}ErrorAlarm",
                alarm_name=f"industry-portal-{name.replace('_', '-')}-errors",
                metric=error_metric,
                threshold=5,
                evaluation_periods=5,
                comparison_operator=cw.ComparisonOperator.GREATER_THAN_THRESHOLD,
                treat_missing_data=cw.TreatMissingData.NOT_BREACHING,
            )
            error_alarm.add_alarm_action(cw_actions.SnsAction(alarm_topic))

            service_widgets.append(
                cw.GraphWidget(
                    title=f"{title} Service",
                    left=[error_metric],
                    right=[duration_p99],
                    width=12,
                )
            )

        # ----------------------------------------------------------------
        # Conditional check failures (lock conflicts, refused transactions)
        # ----------------------------------------------------------------
        conflict_metrics = [
            table.metric_conditional_check_failed_requests(
                period=cdk.Duration.minutes(5),
                statistic="Sum",
                label=name,
            )
            for name, table in tables.items()
        ]
        total_conflicts = cw.MathExpression(
            expression=" + ".join(f"m{i}" for i in range(len(conflict_metrics))),
            using_metrics={f"m{i}": metric for i, metric in enumerate(conflict_metrics)},
            label="All tables",
            period=cdk.Duration.minutes(5),
        )
        cw.Alarm(
            self, "ConflictAlarm",
            alarm_name="industry-portal-conflicts",
            metric=total_conflicts,
            threshold=50,
            evaluation_periods=3,
            comparison_operator=cw.ComparisonOperator.GREATER_THAN_THRESHOLD,
            treat_missing_data=cw.TreatMissingData.NOT_BREACHING,
        ).add_alarm_action(cw_actions.SnsAction(alarm_topic))

        # ----------------------------------------------------------------
        # CloudWatch Dashboard
        # ----------------------------------------------------------------
        dashboard = cw.Dashboard(self, "IndustryPortalDashboard", dashboard_name="IndustryPortal")
        dashboard.add_widgets(
            cw.TextWidget(
                markdown="# Industry Portal\n"
                         "Service errors and latency, plus DynamoDB conditional check failures per table.",
                width=24,
            )
        )
        for row_widgets in [service_widgets[i:i+2] for i in range(0, len(service_widgets), 2)]:
            dashboard.add_widgets(*row_widgets)
        dashboard.add_widgets(
            cw.GraphWidget(title="Conditional Check Failures", left=conflict_metrics, width=24)
        )
