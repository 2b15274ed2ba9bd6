import aws_cdk as core
from constructs import Construct
from aws_cdk import aws_iam as iam


class ProwlerRoleStack(core.Stack):
    """IAM role for running prowler by hand from an EC2 instance."""

    def __init__(self, scope: Construct, id: str, **kwargs) -> None:
        super().__init__(scope, id, **kwargs)

        role_name = core.CfnParameter(self, "ProwlerRoleName",
            type="String",
            default="ProwlerExecRole",
            description="Name of the IAM role that will have these policies attached."
        )

        # 12h is the maximum allowed, use with `prowler aws --session-duration 43200`
        role = iam.Role(self, "ProwlerExecRole",
            role_name=role_name.value_as_string,
            assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
            max_session_duration=core.Duration.hours(12),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name("SecurityAudit"),
                iam.ManagedPolicy.from_aws_managed_policy_name("job-function/ViewOnlyAccess")
            ],
            inline_policies={
                "ProwlerExecRoleAdditionalViewPrivileges": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=[
                                "dax:ListTables",
                                "ds:ListAuthorizedApplications",
                                "ds:DescribeRoles",
                                "ec2:GetEbsEncryptionByDefault",
                                "ecr:Describe*",
                                "glue:Get*",
                                "glue:SearchTables",
                                "support:Describe*",
                                "tag:GetTagKeys"
                            ],
                            effect=iam.Effect.ALLOW,
                            resources=["*"]
                        )
                    ]
                ),
                "ProwlerExecRoleSecurityHubPrivileges": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            actions=["securityhub:BatchImportFindings", "securityhub:GetFindings"],
                            effect=iam.Effect.ALLOW,
                            resources=["*"]
                        )
                    ]
                )
            }
        )

        core.CfnOutput(self, "RoleArn",
            value=role.role_arn,
            description="IAM role ARN prowler assumes to run the assessment."
        )
