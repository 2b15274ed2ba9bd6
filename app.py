#!/usr/bin/env python3

import aws_cdk as cdk

import config
from prowler_audit.audit_stack import ProwlerAuditStack
from prowler_audit.role_stack import ProwlerRoleStack


app = cdk.App()
audit = ProwlerAuditStack(app, config.stack_name,
    description="Audits the account with Prowler on a schedule in CodeBuild and sends failed checks to Security Hub."
)
role = ProwlerRoleStack(app, config.role_stack_name,
    description="IAM role with the read-only and Security Hub permissions Prowler needs."
)
app.synth()
