import json
from enum import Enum
from os import environ

import boto3
from crhelper import CfnResource


build_name = environ.get('BUILD_NAME', '')

codebuild_client = boto3.client('codebuild')

# answers CloudFormation for Create/Update/Delete, including on errors and timeouts
helper = CfnResource(json_logging=False, log_level='INFO', boto_level='CRITICAL')


class Invocation(Enum):
    """Why the trigger was invoked: a timer tick or a CloudFormation request type."""

    SCHEDULED = 'Scheduled'
    CREATE = 'Create'
    UPDATE = 'Update'
    DELETE = 'Delete'

    @classmethod
    def from_event(cls, event) -> 'Invocation':
        request_type = (event or {}).get('RequestType')
        if request_type is None:
            return cls.SCHEDULED
        return cls(request_type)


def start_build(client, project_name: str) -> str:
    if not project_name:
        raise ValueError('No CodeBuild project name configured')

    print(f'Starting Prowler build: {project_name}')
    response = client.start_build(projectName=project_name)
    print(response)
    return response.get('build', {}).get('id', '')


def handle(invocation: Invocation, project_name: str, client):
    """
    Start at most one build for ``project_name``.

    Scheduled runs let errors reach the Lambda runtime. Lifecycle runs record
    the error message in the response data and re-raise so the helper
    reports FAILED with the same message as reason.
    """
    if invocation is Invocation.SCHEDULED:
        build_id = start_build(client, project_name)
        print('Result: SUCCESS')
        return build_id

    if invocation in (Invocation.CREATE, Invocation.UPDATE):
        try:
            build_id = start_build(client, project_name)
        except Exception as e:
            print(f'Result: FAILED ({e})')
            helper.Data['Message'] = str(e)
            raise
        print(f'Result: SUCCESS ({build_id})')
        return build_id

    if invocation is Invocation.DELETE:
        # builds already started are left to finish on their own
        print(f'Nothing to do on delete for {project_name}')
        return None

    raise ValueError(f'Unhandled invocation: {invocation}')


@helper.create
@helper.update
@helper.delete
def lifecycle(event, context):
    project_name = event.get('ResourceProperties', {}).get('BuildName') or build_name
    handle(Invocation.from_event(event), project_name, codebuild_client)
    # keep the physical id stable so updates do not replace the resource
    return event.get('PhysicalResourceId')


def handler(event, context):
    event = event or {}
    print(f'Received event: {json.dumps(event, default=str)}')

    if 'RequestType' not in event:
        return handle(Invocation.SCHEDULED, build_name, codebuild_client)

    helper(event, context)
