from pathlib import Path

import aws_cdk as core
from constructs import Construct
from aws_cdk import (
    aws_iam as iam,
    aws_codebuild as codebuild,
    aws_events as events,
    aws_events_targets as targets,
    aws_lambda as _lambda,
    aws_logs
)

import config
from prowler_audit.buildspec import render_buildspec

FUNCTIONS_DIR = str(Path(__file__).parent.parent / 'functions')

RETENTION_DAYS = [1, 3, 7, 14, 30, 60, 90, 180, 365]


class ProwlerAuditStack(core.Stack):
    """
    CodeBuild project that audits the account with Prowler on a schedule and
    sends failed checks to Security Hub.
    """

    def __init__(self, scope: Construct, id: str, run_on_deploy: bool = None, **kwargs) -> None:
        super().__init__(scope, id, **kwargs)

        if run_on_deploy is None:
            run_on_deploy = config.run_on_deploy

        ### Parameters

        logs_retention = core.CfnParameter(self, "LogsRetentionInDays",
            type="Number",
            default=config.logs_retention_days,
            allowed_values=[str(days) for days in RETENTION_DAYS],
            description="Number of days to retain CodeBuild run log events."
        )

        prowler_options = core.CfnParameter(self, "ProwlerOptions",
            type="String",
            default=config.prowler_options,
            description="Prowler command options: use '--security-hub' to send output to Security Hub "
                        "and '--status FAIL' to send only check failures."
        )

        prowler_scheduler = core.CfnParameter(self, "ProwlerScheduler",
            type="String",
            default=config.prowler_schedule,
            description="When Prowler will run (UTC/GMT), in cron format."
        )

        ### Role with privileges to run prowler and send results to Security Hub

        codebuild_role = iam.Role(self, "CodeBuildServiceRole",
            role_name="prowler-codebuild-role",
            path="/service-role/",
            assumed_by=iam.ServicePrincipal("codebuild.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name("job-function/SupportUser"),
                iam.ManagedPolicy.from_aws_managed_policy_name("job-function/ViewOnlyAccess"),
                iam.ManagedPolicy.from_aws_managed_policy_name("SecurityAudit")
            ],
            inline_policies={
                "LogGroup": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=["logs:CreateLogGroup", "logs:CreateLogStream", "logs:PutLogEvents"],
                            effect=iam.Effect.ALLOW,
                            resources=[f"arn:aws:logs:{self.region}:{self.account}:log-group:/aws/codebuild/*"]
                        )
                    ]
                ),
                "CodeBuild": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=[
                                "codebuild:CreateReportGroup",
                                "codebuild:CreateReport",
                                "codebuild:UpdateReport",
                                "codebuild:BatchPutTestCases",
                                "codebuild:BatchPutCodeCoverages"
                            ],
                            effect=iam.Effect.ALLOW,
                            resources=[f"arn:aws:codebuild:{self.region}:{self.account}:report-group/*"]
                        )
                    ]
                ),
                "SecurityHubFindings": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=["securityhub:BatchImportFindings", "securityhub:GetFindings"],
                            effect=iam.Effect.ALLOW,
                            resources=[f"arn:aws:securityhub:{self.region}::product/prowler/prowler"]
                        )
                    ]
                ),
                "ExtraViewPrivileges": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=[
                                "account:Get*",
                                "dax:ListTables",
                                "ds:ListAuthorizedApplications",
                                "ds:DescribeRoles",
                                "ec2:GetEbsEncryptionByDefault",
                                "ecr:Describe*",
                                "glue:Get*",
                                "glue:SearchTables",
                                "lambda:GetFunction*",
                                "support:Describe*",
                                "tag:GetTagKeys"
                            ],
                            effect=iam.Effect.ALLOW,
                            resources=["*"]
                        )
                    ]
                ),
                "AssumeRole": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=["sts:AssumeRole"],
                            effect=iam.Effect.ALLOW,
                            resources=[f"arn:aws:iam::{self.account}:role/service-role/prowler-codebuild-role"]
                        )
                    ]
                )
            }
        )

        ### CodeBuild project running prowler

        project = codebuild.CfnProject(self, "ProwlerCodeBuild",
            description="Run Prowler assessment",
            service_role=codebuild_role.role_arn,
            timeout_in_minutes=config.build_timeout_minutes,
            artifacts=codebuild.CfnProject.ArtifactsProperty(type="NO_ARTIFACTS"),
            source=codebuild.CfnProject.SourceProperty(
                type="NO_SOURCE",
                build_spec=render_buildspec()
            ),
            environment=codebuild.CfnProject.EnvironmentProperty(
                compute_type="BUILD_GENERAL1_SMALL",
                image=config.build_image,
                type="LINUX_CONTAINER",
                environment_variables=[
                    codebuild.CfnProject.EnvironmentVariableProperty(
                        name="PROWLER_OPTIONS",
                        value=prowler_options.value_as_string,
                        type="PLAINTEXT"
                    )
                ]
            )
        )
        project_arn = f"arn:aws:codebuild:{self.region}:{self.account}:project/{project.ref}"

        log_group = aws_logs.CfnLogGroup(self, "ProwlerLogGroup",
            log_group_name=f"/aws/codebuild/{project.ref}",
            retention_in_days=logs_retention.value_as_number
        )

        ### Lambda functions to start prowler builds

        lambda_role = iam.Role(self, "CodeBuildStartBuildLambdaRole",
            path="/",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name("service-role/AWSLambdaBasicExecutionRole")
            ],
            inline_policies={
                "StartBuildInline": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=["codebuild:StartBuild"],
                            effect=iam.Effect.ALLOW,
                            resources=[project_arn]
                        )
                    ]
                )
            }
        )

        code = _lambda.Code.from_asset(FUNCTIONS_DIR,
            bundling=core.BundlingOptions(
                image=_lambda.Runtime.PYTHON_3_12.bundling_image,
                command=[
                    "bash", "-c",
                    "pip install -r requirements.txt -t /asset-output && cp -au . /asset-output"
                ]
            )
        )

        schedule_function, _ = self.trigger_function("ProwlerScheduleLambdaFunction", code, lambda_role, project.ref)

        schedule = events.Rule(self, "ProwlerSchedule",
            description="Schedule for Lambda function that triggers Prowler in CodeBuild.",
            schedule=events.Schedule.expression(prowler_scheduler.value_as_string),
            enabled=True,
            targets=[targets.LambdaFunction(schedule_function)]
        )

        if run_on_deploy:
            lifecycle_function, lifecycle_log_group = self.trigger_function("ProwlerLifecycleLambdaFunction", code, lambda_role, project.ref)

            initial_audit = core.CustomResource(self, "ProwlerInitialAudit",
                service_token=lifecycle_function.function_arn,
                resource_type="Custom::ProwlerInitialAudit",
                properties={
                    "BuildName": project.ref
                }
            )
            # the function must not create its own log group before the stack does
            initial_audit.node.add_dependency(log_group, lifecycle_log_group)

        ### Outputs

        core.CfnOutput(self, "ProjectName",
            value=project.ref,
            export_name="ProwlerProjectName",
            description="The CodeBuild project that runs the Prowler assessment."
        )

        core.CfnOutput(self, "ScheduleRuleName",
            value=schedule.rule_name,
            export_name="ProwlerScheduleRuleName",
            description="The EventBridge rule that starts scheduled Prowler runs."
        )

        core.CfnOutput(self, "CodeBuildRoleArn",
            value=codebuild_role.role_arn,
            export_name="ProwlerCodeBuildRoleArn",
            description="The IAM Role prowler runs as inside CodeBuild."
        )

    def trigger_function(self, id: str, code: _lambda.Code, role: iam.IRole, project_name: str):
        function = _lambda.Function(
            self, id,
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="trigger.handler",
            code=code,
            role=role,
            memory_size=128,
            timeout=core.Duration.seconds(120),
            environment={
                "BUILD_NAME": project_name
            }
        )

        log_group = aws_logs.LogGroup(
            self, f"{id}LogGroup",
            log_group_name=f"/aws/lambda/{function.function_name}",
            retention=aws_logs.RetentionDays.ONE_WEEK
        )

        return function, log_group
