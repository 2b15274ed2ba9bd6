#!/usr/bin/env python3

import boto3

import config
from start_audit import get_stack_outputs


def get_latest_build(client, project_name):
    build_ids = client.list_builds_for_project(projectName=project_name, sortOrder='DESCENDING')['ids']
    if not build_ids:
        return None
    return client.batch_get_builds(ids=build_ids[:1])['builds'][0]


if __name__ == '__main__':
    outputs = get_stack_outputs(config.stack_name)
    for key, value in outputs.items():
        print(key, value)

    build = get_latest_build(boto3.client('codebuild'), outputs['ProjectName'])
    if build:
        print('LatestBuild', build['id'], build['buildStatus'])
    else:
        print('LatestBuild', 'none yet')
