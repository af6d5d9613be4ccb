# tests/test_executor.py
"""Generic operation execution: body serialization, status handling, debug output."""

from datetime import datetime
from xml.etree import ElementTree

import pytest

from conftest import soap_response, soap_fault, LOGIN_TOKEN

from plunet_soap.exceptions import (
    PlunetSoapFaultError, PlunetStatusError, PlunetTransportError, ValidationError
)
from plunet_soap.executor import (
    OperationDescriptor, OperationExecutor, ResultType,
    build_body, format_param_value, is_truthy,
)
from plunet_soap.operations import get_descriptor


@pytest.fixture
def executor(transport, session_manager, credentials):
    return OperationExecutor(transport, session_manager, credentials)


@pytest.fixture
def debug_executor(transport, session_manager, debug_credentials):
    return OperationExecutor(transport, session_manager, debug_credentials)


def custom_descriptor(**overrides):
    values = dict(resource='DataTest30', operation='doThing', endpoint='DataTest30',
                  param_order=('a', 'b'), result_type=ResultType.VOID)
    values.update(overrides)
    return OperationDescriptor(**values)


# -------- Serialization --------

def test_uuid_prepended_and_params_in_order():
    body = build_body(custom_descriptor(param_order=('b', 'a')), {'a': 1, 'b': 2}, 'tok')
    assert body == '<UUID>tok</UUID><b>2</b><a>1</a>'


def test_uuid_not_prepended_when_order_names_it():
    body = build_body(custom_descriptor(param_order=('UUID', 'a')), {'a': 1}, 'tok')
    assert body == '<UUID>tok</UUID><a>1</a>'


def test_empty_values_omitted_by_default():
    body = build_body(custom_descriptor(), {'a': '  ', 'b': None}, 'tok')
    assert body == '<UUID>tok</UUID>'


def test_empty_values_included_when_requested():
    body = build_body(custom_descriptor(include_empty=True), {'a': ''}, 'tok')
    assert body == '<UUID>tok</UUID><a></a><b></b>'


def test_values_trimmed_and_escaped():
    body = build_body(custom_descriptor(), {'a': '  Smith & <Sons>  '}, 'tok')
    assert '<a>Smith &amp; &lt;Sons&gt;</a>' in body


def test_list_values_repeat_the_tag():
    body = build_body(custom_descriptor(param_order=('ids',)), {'ids': [1, 2, 3]}, 'tok')
    assert body == '<UUID>tok</UUID><ids>1</ids><ids>2</ids><ids>3</ids>'


def test_booleans_and_datetimes():
    descriptor = custom_descriptor(param_order=('flag', 'when'))
    body = build_body(descriptor, {'flag': False, 'when': datetime(2024, 5, 1, 12, 30)}, 'tok')
    assert '<flag>false</flag>' in body
    assert '<when>2024-05-01T12:30:00</when>' in body


def test_body_parses_back_to_the_same_values():
    descriptor = custom_descriptor(param_order=('customerID', 'name1', 'note', 'active'))
    arguments = {'customerID': 7, 'name1': 'Smith & <Sons>', 'note': 'a "quoted" \'word\'', 'active': True}

    body = build_body(descriptor, arguments, 'tok')
    root = ElementTree.fromstring(f'<body>{body}</body>')

    assert [(child.tag, child.text) for child in root] == [
        ('UUID', 'tok'),
        ('customerID', '7'),
        ('name1', 'Smith & <Sons>'),
        ('note', 'a "quoted" \'word\''),
        ('active', 'true'),
    ]


def test_numeric_booleans():
    assert format_param_value('createAsFirstItem', True) == '1'
    assert format_param_value('createAsFirstItem', 'false') == '0'
    assert format_param_value('analyzeAndCopyResultToJob', '0') == '0'
    assert format_param_value('overwriteExistingPriceLines', 'yes') == '1'
    assert format_param_value('enableNullOrEmptyValues', '') == '0'
    assert not is_truthy(' FALSE ')


def test_numeric_boolean_false_is_still_sent():
    descriptor = get_descriptor('DataItem30', 'insertPriceLine')
    body = build_body(descriptor, {'itemID': 5, 'projectType': 3, 'createAsFirstItem': False}, 'tok')
    assert body.endswith('<createAsFirstItem>0</createAsFirstItem>')


# -------- Execution --------

def test_execute_entity_operation(executor, server):
    server.responses['getCustomerObject'] = soap_response(
        'getCustomerObject',
        '<statusCode>0</statusCode><data><customerID>42</customerID><name1>Acme</name1>'
        '<status>1</status></data>'
    )

    result = executor.execute(get_descriptor('DataCustomer30', 'getCustomerObject'), {'customerID': 42})

    assert server.operations() == ['login', 'getCustomerObject']
    call = server.calls[1]
    assert call['url'] == 'https://plunet.example.com/DataCustomer30'
    assert call['headers']['SOAPAction'] == '"http://API.Integration/getCustomerObject"'
    assert f'<UUID>{LOGIN_TOKEN}</UUID><customerID>42</customerID>' in call['body']

    assert result['success'] is True
    assert result['resource'] == 'DataCustomer30'
    assert result['operation'] == 'getCustomerObject'
    assert result['statusCode'] == 0
    assert result['customer']['customerID'] == 42
    assert result['customer']['status'] == 'ACTIVE'
    assert 'debugInfo' not in result


def test_missing_required_parameter_fails_before_network(executor, server):
    with pytest.raises(ValidationError) as exc_info:
        executor.execute(get_descriptor('DataJob30', 'getJob_ForView'), {'jobID': 7})

    assert exc_info.value.field == 'projectType'
    assert server.calls == []


def test_blank_required_parameter_is_missing(executor, server):
    with pytest.raises(ValidationError):
        executor.execute(get_descriptor('DataCustomer30', 'delete'), {'customerID': '  '})
    assert server.calls == []


def test_void_operation(executor, server):
    server.responses['delete'] = soap_response('delete', '<statusCode>0</statusCode><statusMessage>OK</statusMessage>')

    result = executor.execute(get_descriptor('DataCustomer30', 'delete'), {'customerID': 9})

    assert result['ok'] is True
    assert result['statusMessage'] == 'OK'


def test_nonzero_status_raises_status_error(executor, server):
    server.responses['getCustomerObject'] = soap_response(
        'getCustomerObject', '<statusCode>-24</statusCode><statusMessage>Customer not found</statusMessage>'
    )

    with pytest.raises(PlunetStatusError) as exc_info:
        executor.execute(get_descriptor('DataCustomer30', 'getCustomerObject'), {'customerID': 1})

    error = exc_info.value
    assert error.status_code == -24
    assert error.status_message == 'Customer not found'
    assert error.context.operation == 'getCustomerObject'
    assert error.context.resource == 'DataCustomer30'


def test_status_message_without_code_is_success(executor, server):
    server.responses['getDossier'] = soap_response('getDossier', '<statusMessage>OK</statusMessage><data>text</data>')

    result = executor.execute(get_descriptor('DataCustomer30', 'getDossier'), {'customerID': 1})

    assert result['value'] == 'text'


def test_fault_is_raised_before_parsing(executor, server):
    server.responses['getCustomerObject'] = soap_fault('Invalid UUID')

    with pytest.raises(PlunetSoapFaultError) as exc_info:
        executor.execute(get_descriptor('DataCustomer30', 'getCustomerObject'), {'customerID': 1})

    assert exc_info.value.message == 'Invalid UUID'
    assert exc_info.value.context.resource == 'DataCustomer30'


def test_transport_failure_with_fault_body_becomes_fault(executor, server):
    server.responses['getCustomerObject'] = [(500, soap_fault('Boom')), (500, soap_fault('Boom'))]

    with pytest.raises(PlunetSoapFaultError) as exc_info:
        executor.execute(get_descriptor('DataCustomer30', 'getCustomerObject'), {'customerID': 1})

    assert exc_info.value.message == 'Boom'


def test_transport_failure_keeps_operation_context(executor, server):
    server.responses['getCustomerObject'] = [(503, 'unavailable'), (503, 'unavailable')]

    with pytest.raises(PlunetTransportError) as exc_info:
        executor.execute(get_descriptor('DataCustomer30', 'getCustomerObject'), {'customerID': 1})

    assert exc_info.value.status_code == 503
    assert exc_info.value.context.resource == 'DataCustomer30'


def test_custom_body_builder_for_insert(executor, server):
    server.responses['insert2'] = soap_response('insert2', '<statusCode>0</statusCode><data>77</data>')

    result = executor.execute(get_descriptor('DataCustomer30', 'insert2'), {'name1': 'Acme', 'email': ''})

    body = server.bodies('insert2')[0]
    assert f'<UUID>{LOGIN_TOKEN}</UUID><CustomerIN><name1>Acme</name1></CustomerIN>' in body
    assert result['value'] == 77


def test_update_with_null_values_enabled(executor, server):
    server.responses['update'] = soap_response('update', '<statusCode>0</statusCode>')

    executor.execute(get_descriptor('DataCustomer30', 'update'),
                     {'customerID': 5, 'name2': '', 'enableNullOrEmptyValues': True})

    body = server.bodies('update')[0]
    assert ('<CustomerIN><customerID>5</customerID><name2></name2></CustomerIN>'
            '<enableNullOrEmptyValues>1</enableNullOrEmptyValues>') in body


def test_update_without_null_values_drops_blanks(executor, server):
    server.responses['update'] = soap_response('update', '<statusCode>0</statusCode>')

    executor.execute(get_descriptor('DataCustomer30', 'update'),
                     {'customerID': 5, 'name2': '', 'enableNullOrEmptyValues': 'false'})

    body = server.bodies('update')[0]
    assert '<name2>' not in body
    assert '<enableNullOrEmptyValues>0</enableNullOrEmptyValues>' in body


def test_search_filter_body(executor, server):
    server.responses['search'] = soap_response('search', '<data>3</data><data>4</data>')

    result = executor.execute(get_descriptor('DataResource30', 'search'), {'name1': 'Ann', 'workingStatus': 2})

    body = server.bodies('search')[0]
    assert '<SearchFilter_Resource><name1>Ann</name1><workingStatus>2</workingStatus></SearchFilter_Resource>' in body
    assert result['data'] == [3, 4]


def test_remote_name_differs_from_lookup_name(executor, server):
    server.responses['GetAddressObject'] = soap_response(
        'GetAddressObject', '<data><addressID>3</addressID><city>Berlin</city></data>'
    )

    result = executor.execute(get_descriptor('DataCustomerAddress30', 'getAddressObject'), {'addressID': 3})

    assert server.calls[-1]['headers']['SOAPAction'] == '"http://API.Integration/GetAddressObject"'
    assert result['address'] == {'addressID': 3, 'city': 'Berlin'}


def test_debug_mode_adds_sanitized_debug_info(debug_executor, server):
    server.responses['getComment'] = soap_response('getComment', '<statusCode>0</statusCode><data>hi</data>')

    result = debug_executor.execute(get_descriptor('DataJob30', 'getComment'), {'projectType': 3, 'jobID': 1})

    debug_info = result['debugInfo']
    assert debug_info['request']['url'] == 'https://plunet.example.com/DataJob30'
    assert debug_info['request']['soapAction'] == 'http://API.Integration/getComment'
    assert '<UUID>[REDACTED_UUID]</UUID>' in debug_info['request']['envelope']
    assert LOGIN_TOKEN not in debug_info['request']['envelope']
    assert debug_info['timestamp'].endswith('Z')


def test_debug_mode_errors_carry_request_description(debug_executor, server):
    server.responses['getComment'] = soap_response('getComment', '<statusCode>-5</statusCode>')

    with pytest.raises(PlunetStatusError) as exc_info:
        debug_executor.execute(get_descriptor('DataJob30', 'getComment'), {'projectType': 3, 'jobID': 1})

    description = exc_info.value.context.details['request']
    assert 'SOAPAction: http://API.Integration/getComment' in description
    assert '[REDACTED_UUID]' in description

    message = str(exc_info.value)
    assert '(during getComment)\n\nDebug Information:\nSOAPAction: http://API.Integration/getComment' in message
    assert '--- Sent SOAP Envelope (sanitized) ---' in message
    assert LOGIN_TOKEN not in message


def test_errors_without_debug_mode_have_no_envelope(executor, server):
    server.responses['getComment'] = soap_response('getComment', '<statusCode>-5</statusCode>')

    with pytest.raises(PlunetStatusError) as exc_info:
        executor.execute(get_descriptor('DataJob30', 'getComment'), {'projectType': 3, 'jobID': 1})

    assert 'Debug Information' not in str(exc_info.value)


def test_session_reused_across_calls(executor, server):
    server.responses['getDueDate'] = soap_response('getDueDate', '<data>/Date(0)/</data>')
    descriptor = get_descriptor('DataJob30', 'getDueDate')

    results = executor.execute_many(descriptor, [{'projectType': 3, 'jobID': 1}, {'projectType': 3, 'jobID': 2}])

    assert server.operations() == ['login', 'getDueDate', 'getDueDate']
    assert [r['date'] for r in results] == ['1970-01-01T00:00:00.000Z'] * 2
