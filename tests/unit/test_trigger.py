import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from functions import trigger
from functions.trigger import Invocation


CONTEXT = SimpleNamespace(
    log_stream_name='2024/01/01/[$LATEST]abcdef',
    aws_request_id='aws-request-1',
    function_name='ProwlerLifecycleLambdaFunction',
    get_remaining_time_in_millis=lambda: 20000
)


def lifecycle_event(request_type, build_name='prowler-job-1'):
    return {
        'RequestType': request_type,
        'ResponseURL': 'https://cloudformation-custom-resource-response.s3.amazonaws.com/signed',
        'StackId': 'arn:aws:cloudformation:us-east-1:123456789012:stack/ProwlerAuditStack/guid',
        'RequestId': 'request-1',
        'LogicalResourceId': 'ProwlerInitialAudit',
        'ResourceType': 'Custom::ProwlerInitialAudit',
        'ResourceProperties': {'BuildName': build_name}
    }


def codebuild(build_id='prowler-job-1:1234'):
    client = MagicMock()
    client.start_build.return_value = {'build': {'id': build_id, 'buildStatus': 'IN_PROGRESS'}}
    return client


@pytest.fixture
def client(monkeypatch):
    client = codebuild()
    monkeypatch.setattr(trigger, 'codebuild_client', client)
    monkeypatch.setattr(trigger, 'build_name', 'from-environment')
    return client


@pytest.fixture
def send(monkeypatch):
    send = MagicMock()
    monkeypatch.setattr(trigger.helper, '_send', send)
    return send


def test_invocation_from_event():
    assert Invocation.from_event({}) is Invocation.SCHEDULED
    assert Invocation.from_event(None) is Invocation.SCHEDULED
    assert Invocation.from_event({'source': 'aws.events', 'detail-type': 'Scheduled Event'}) is Invocation.SCHEDULED
    assert Invocation.from_event({'RequestType': 'Create'}) is Invocation.CREATE
    assert Invocation.from_event({'RequestType': 'Update'}) is Invocation.UPDATE
    assert Invocation.from_event({'RequestType': 'Delete'}) is Invocation.DELETE
    with pytest.raises(ValueError):
        Invocation.from_event({'RequestType': 'Rollback'})


def test_scheduled_starts_one_build(capsys):
    client = codebuild()

    build_id = trigger.handle(Invocation.SCHEDULED, 'prowler-job-1', client)

    client.start_build.assert_called_once_with(projectName='prowler-job-1')
    assert build_id == 'prowler-job-1:1234'
    assert 'SUCCESS' in capsys.readouterr().out


def test_scheduled_errors_propagate():
    client = MagicMock()
    client.start_build.side_effect = Exception('AccessDenied')

    with pytest.raises(Exception, match='AccessDenied'):
        trigger.handle(Invocation.SCHEDULED, 'prowler-job-1', client)
    assert client.start_build.call_count == 1


def test_start_build_requires_project_name():
    client = codebuild()

    with pytest.raises(ValueError):
        trigger.start_build(client, '')
    client.start_build.assert_not_called()


def test_handler_scheduled_uses_configured_build(client, send, capsys):
    trigger.handler({'source': 'aws.events', 'detail-type': 'Scheduled Event', 'detail': {}}, CONTEXT)

    client.start_build.assert_called_once_with(projectName='from-environment')
    send.assert_not_called()
    assert 'Result: SUCCESS' in capsys.readouterr().out


@pytest.mark.parametrize('request_type', ['Create', 'Update'])
def test_lifecycle_success_signals_empty_payload(client, send, request_type):
    trigger.handler(lifecycle_event(request_type), CONTEXT)

    client.start_build.assert_called_once_with(projectName='prowler-job-1')
    send.assert_called_once_with()
    assert trigger.helper.Status == 'SUCCESS'
    assert trigger.helper.Data == {}
    assert trigger.helper.RequestId == 'request-1'
    assert trigger.helper.LogicalResourceId == 'ProwlerInitialAudit'


def test_lifecycle_update_keeps_physical_id(client, send):
    event = lifecycle_event('Update')
    event['PhysicalResourceId'] = 'existing-id'

    trigger.handler(event, CONTEXT)

    assert trigger.helper.PhysicalResourceId == 'existing-id'


def test_lifecycle_falls_back_to_configured_build(client, send):
    event = lifecycle_event('Create')
    del event['ResourceProperties']

    trigger.handler(event, CONTEXT)

    client.start_build.assert_called_once_with(projectName='from-environment')


def test_lifecycle_failure_signals_error_message(client, send):
    client.start_build.side_effect = Exception('AccessDenied')

    trigger.handler(lifecycle_event('Create'), CONTEXT)

    client.start_build.assert_called_once_with(projectName='prowler-job-1')
    send.assert_called_once()
    assert trigger.helper.Status == 'FAILED'
    assert trigger.helper.Reason == 'AccessDenied'
    assert trigger.helper.Data == {'Message': 'AccessDenied'}


def test_lifecycle_delete_is_a_noop(client, send):
    event = lifecycle_event('Delete')
    event['PhysicalResourceId'] = 'existing-id'

    trigger.handler(event, CONTEXT)

    client.start_build.assert_not_called()
    send.assert_called_once_with()
    assert trigger.helper.Status == 'SUCCESS'
    assert trigger.helper.PhysicalResourceId == 'existing-id'


def test_unknown_request_type_is_answered_without_a_build(client, send):
    trigger.handler(lifecycle_event('Rollback'), CONTEXT)

    client.start_build.assert_not_called()
    send.assert_called_once()


@patch('time.sleep')
@patch('crhelper.utils.HTTPSConnection')
def test_response_delivery_error_does_not_restart_build(mock_connection, mock_sleep, client):
    delivered = MagicMock()
    mock_connection.side_effect = [ConnectionResetError('connection reset'), delivered]

    trigger.handler(lifecycle_event('Create'), CONTEXT)

    client.start_build.assert_called_once_with(projectName='prowler-job-1')
    assert mock_connection.call_count == 2
    body = json.loads(delivered.request.call_args.kwargs['body'])
    assert body['Status'] == 'SUCCESS'
    assert body['Data'] == {}
