#!/usr/bin/env python3

from pprint import pprint

import boto3

import config
from functions.trigger import start_build


def get_stack_outputs(stack_name):
    client = boto3.client('cloudformation')
    response = client.describe_stacks(StackName=stack_name)
    outputs = response['Stacks'][0]['Outputs']
    return {output['OutputKey']: output['OutputValue'] for output in outputs}


if __name__ == '__main__':
    outputs = get_stack_outputs(config.stack_name)
    project_name = outputs['ProjectName']
    build_id = start_build(boto3.client('codebuild'), project_name)
    pprint({
        'project': project_name,
        'build_id': build_id,
        'logs': f'/aws/codebuild/{project_name}'
    })
