# tests/test_client.py
"""Operation registry lookups and the PlunetClient facade."""

import pytest

from conftest import soap_response, LOGIN_TOKEN

from plunet_soap.client import PlunetClient
from plunet_soap.exceptions import ValidationError
from plunet_soap.executor import ResultType
from plunet_soap.operations import (
    OPERATION_REGISTRY, build_struct_xml, get_descriptor, list_operations, list_resources
)
from plunet_soap.script_runner import ArgumentDefinition, ScriptRunner


@pytest.fixture
def client(credentials, transport, session_cache):
    return PlunetClient(credentials, transport=transport, session_cache=session_cache)


def test_registry_covers_every_resource():
    assert list_resources() == sorted([
        'PlunetAPI', 'DataCustomer30', 'DataCustomerAddress30', 'DataCustomerContact30',
        'DataResource30', 'DataOrder30', 'DataItem30', 'DataJob30', 'DataAdmin30', 'DataDocument30',
    ])


def test_descriptors_are_consistent():
    for resource, operations in OPERATION_REGISTRY.items():
        for name, descriptor in operations.items():
            assert descriptor.resource == resource
            assert descriptor.endpoint == resource
            if descriptor.result_type in (ResultType.ENTITY, ResultType.ENTITY_LIST):
                assert descriptor.entity, f"{resource}.{name} needs an entity"
            if descriptor.body_builder is None:
                assert set(descriptor.required) <= set(descriptor.param_order)


def test_unknown_resource_lists_valid_names():
    with pytest.raises(ValidationError) as exc_info:
        get_descriptor('DataInvoice30', 'getInvoice')

    assert exc_info.value.field == 'resource'
    assert 'DataCustomer30' in exc_info.value.message


def test_unknown_operation_lists_valid_names():
    with pytest.raises(ValidationError) as exc_info:
        get_descriptor('DataCustomer30', 'getCustomer')

    assert exc_info.value.field == 'operation'
    assert 'getCustomerObject' in exc_info.value.message
    assert 'getCustomerObject' in list_operations('DataCustomer30')


def test_build_struct_xml_skips_absent_and_blank():
    xml = build_struct_xml('SearchFilter_Customer', ('name1', 'email', 'status'),
                           {'name1': 'A&B', 'email': ' ', 'other': 'x'})
    assert xml == '<SearchFilter_Customer><name1>A&amp;B</name1></SearchFilter_Customer>'


def test_call_routes_through_executor(client, server):
    server.responses['getFileList'] = soap_response(
        'getFileList', '<statusCode>0</statusCode><data>a.docx</data><data>b.xlf</data>'
    )

    result = client.call('DataDocument30', 'getFileList', {'folderType': 1, 'mainID': 42})

    assert result == {
        'success': True, 'resource': 'DataDocument30', 'operation': 'getFileList',
        'statusCode': 0, 'data': ['a.docx', 'b.xlf'],
    }
    assert '<folderType>1</folderType><mainID>42</mainID>' in server.bodies('getFileList')[0]


def test_plunet_api_version_skips_login(client, server):
    server.responses['getPlunetVersion'] = soap_response('getPlunetVersion', '9.4.2')

    result = client.call('PlunetAPI', 'getPlunetVersion')

    assert result['value'] == '9.4.2'
    assert result['resource'] == 'PlunetAPI'
    assert server.operations() == ['getPlunetVersion']


def test_login_logout_cycle(client, server):
    server.responses['logout'] = soap_response('logout', '<statusCode>0</statusCode>')

    assert client.call('PlunetAPI', 'login') == {
        'success': True, 'resource': 'PlunetAPI', 'operation': 'login', 'uuid': LOGIN_TOKEN
    }
    assert client.is_logged_in()['loggedIn'] is True

    client.logout()

    assert client.is_logged_in() == {'loggedIn': False}


def test_unknown_operation_makes_no_call(client, server):
    with pytest.raises(ValidationError):
        client.call('DataJob30', 'explode')
    assert server.calls == []


def test_script_runner_parses_custom_arguments():
    custom_args = [
        ArgumentDefinition("resource"),
        ArgumentDefinition("operation"),
        ArgumentDefinition("args_json", required=False, default="{}"),
    ]

    args = ScriptRunner("test").parse_arguments(
        custom_args, ['acme', 'test', 'DataJob30', 'getComment', '--args-json', '{"jobID": 1}']
    )

    assert (args.org_id, args.env_type) == ('acme', 'test')
    assert args.resource == 'DataJob30'
    assert args.args_json == '{"jobID": 1}'
