from os import environ


stack_name = environ.get('PROWLER_STACK_NAME', 'ProwlerAuditStack')
role_stack_name = environ.get('PROWLER_ROLE_STACK_NAME', 'ProwlerRoleStack')

# Prowler release installed by the build and the default CLI options
prowler_version = environ.get('PROWLER_VERSION', '4.2.4')
prowler_options = environ.get('PROWLER_OPTIONS', 'aws --security-hub --status FAIL -f us-east-1')
prowler_schedule = environ.get('PROWLER_SCHEDULE', 'cron(0 3 * * ? *)')

logs_retention_days = int(environ.get('LOGS_RETENTION_DAYS', '3'))
build_image = environ.get('BUILD_IMAGE', 'aws/codebuild/amazonlinux2-x86_64-standard:5.0')
python_version = environ.get('BUILD_PYTHON_VERSION', '3.11')
build_timeout_minutes = 300

# Start one audit as soon as the stack is created or updated
run_on_deploy = environ.get('RUN_ON_DEPLOY', 'true').lower() == 'true'
