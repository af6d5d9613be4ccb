# plunet_soap/operations.py
"""
Operation registry: one OperationDescriptor per supported remote method.

- OPERATION_REGISTRY[resource][operation] -> OperationDescriptor
- Body builders for operations whose payload is a nested structure
  (CustomerIN, SearchFilter_Customer, SearchFilter_Resource)
- get_descriptor() with a helpful ValidationError for unknown names

Parameter orders follow the Plunet WSDLs; Plunet binds parameters by
element name, but some servers are picky about order, so keep them as listed.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from plunet_soap.exceptions import ValidationError
from plunet_soap.executor import (
    NUMERIC_BOOLEAN_PARAMS, OperationDescriptor, ResultType, format_param_value, is_empty, is_truthy
)
from plunet_soap.soap_transport import escape_xml

CUSTOMER_IN_FIELDS = (
    'academicTitle', 'costCenter', 'currency', 'customerID', 'email', 'externalID', 'fax',
    'formOfAddress', 'fullName', 'mobilePhone', 'name1', 'name2', 'opening', 'phone',
    'skypeID', 'status', 'userId', 'website',
)

CUSTOMER_SEARCH_FILTER_FIELDS = (
    'customerID', 'externalID', 'fullName', 'name1', 'name2', 'email', 'phone', 'fax',
    'mobilePhone', 'status', 'formOfAddress', 'academicTitle', 'costCenter', 'currency',
    'website', 'skypeID', 'opening',
)

RESOURCE_SEARCH_FILTER_FIELDS = (
    'resourceID', 'externalID', 'fullName', 'name1', 'name2', 'email', 'phone', 'fax',
    'mobilePhone', 'status', 'workingStatus', 'resourceType', 'formOfAddress', 'academicTitle',
    'costCenter', 'currency', 'website', 'skypeID', 'opening', 'supervisor1', 'supervisor2',
)


# -------- Body builders --------

def _uuid_xml(token: str) -> str:
    return f"<UUID>{escape_xml(token)}</UUID>"


def build_struct_xml(tag: str, fields: Sequence[str], arguments: Mapping[str, Any],
                     include_empty: bool = False) -> str:
    """
    Serialize the listed fields of arguments as a nested <tag>...</tag> element.

    Only fields present in arguments are considered. Blank values are
    dropped unless include_empty is set.
    """
    lines = [f"<{tag}>"]
    for name in fields:
        if name not in arguments:
            continue
        value = arguments[name]
        if is_empty(value) and not include_empty:
            continue
        lines.append(f"<{name}>{escape_xml(format_param_value(name, value))}</{name}>")
    lines.append(f"</{tag}>")
    return ''.join(lines)


def customer_insert_body(arguments: Mapping[str, Any], token: str) -> str:
    return _uuid_xml(token) + build_struct_xml('CustomerIN', CUSTOMER_IN_FIELDS, arguments)


def customer_update_body(arguments: Mapping[str, Any], token: str) -> str:
    # With enableNullOrEmptyValues, blank fields the caller passed are sent to clear them
    enable_null = is_truthy(arguments.get('enableNullOrEmptyValues'))
    customer_in = build_struct_xml('CustomerIN', CUSTOMER_IN_FIELDS, arguments, include_empty=enable_null)
    flag = format_param_value('enableNullOrEmptyValues', enable_null)
    return f"{_uuid_xml(token)}{customer_in}<enableNullOrEmptyValues>{flag}</enableNullOrEmptyValues>"


def customer_search_body(arguments: Mapping[str, Any], token: str) -> str:
    return _uuid_xml(token) + build_struct_xml('SearchFilter_Customer', CUSTOMER_SEARCH_FILTER_FIELDS, arguments)


def resource_search_body(arguments: Mapping[str, Any], token: str) -> str:
    return _uuid_xml(token) + build_struct_xml('SearchFilter_Resource', RESOURCE_SEARCH_FILTER_FIELDS, arguments)


# -------- Registry --------

def _ops(resource: str, *descriptors: Dict[str, Any]) -> Dict[str, OperationDescriptor]:
    """Build one resource's table from keyword dicts; 'name' overrides the lookup key."""
    table = {}
    for entry in descriptors:
        entry = dict(entry)
        name = entry.pop('name', entry['operation'])
        entry.setdefault('param_order', ())
        table[name] = OperationDescriptor(resource=resource, endpoint=resource, **entry)
    return table


def _op(operation: str, params: Sequence[str], result_type: ResultType,
        entity: Optional[str] = None, required: Sequence[str] = (), **extra: Any) -> Dict[str, Any]:
    return dict(operation=operation, param_order=tuple(params), result_type=result_type,
                entity=entity, required=tuple(required), **extra)


R = ResultType

OPERATION_REGISTRY: Dict[str, Dict[str, OperationDescriptor]] = {
    # Routed through SessionManager by PlunetClient; listed here for discovery
    'PlunetAPI': _ops(
        'PlunetAPI',
        _op('login', ('arg0', 'arg1'), R.STRING),
        _op('logout', ('UUID',), R.VOID),
        _op('validate', ('UUID', 'Username', 'Password'), R.BOOLEAN),
        _op('getVersion', (), R.STRING),
        _op('getPlunetVersion', (), R.STRING),
    ),

    'DataCustomer30': _ops(
        'DataCustomer30',
        _op('insert2', CUSTOMER_IN_FIELDS, R.INTEGER, required=('name1',),
            body_builder=customer_insert_body),
        _op('update', CUSTOMER_IN_FIELDS + ('enableNullOrEmptyValues',), R.VOID,
            required=('customerID',), body_builder=customer_update_body),
        _op('delete', ('customerID',), R.VOID, required=('customerID',)),
        _op('getCustomerObject', ('customerID',), R.ENTITY, 'customer', required=('customerID',)),
        _op('search', CUSTOMER_SEARCH_FILTER_FIELDS, R.INTEGER_ARRAY, body_builder=customer_search_body),
        _op('seekByExternalID', ('ExternalID',), R.INTEGER, required=('ExternalID',)),
        _op('getAllCustomerObjects', ('Status',), R.ENTITY_LIST, 'customer'),
        _op('getAvailableAccountIDList', (), R.INTEGER_ARRAY),
        _op('getAvailableWorkflows', ('customerID',), R.ENTITY_LIST, 'workflow', required=('customerID',)),
        _op('getAccount', ('AccountID',), R.ENTITY, 'account', required=('AccountID',)),
        _op('getPaymentInformation', ('customerID',), R.ENTITY, 'paymentInfo', required=('customerID',)),
        _op('getProjectManagerID', ('customerID',), R.INTEGER, required=('customerID',)),
        _op('getDateOfInitialContact', ('customerID',), R.DATE, required=('customerID',)),
        _op('getDossier', ('customerID',), R.STRING, required=('customerID',)),
        _op('setPaymentInformation',
            ('customerID', 'accountHolder', 'accountID', 'BIC', 'contractNumber', 'debitAccount',
             'IBAN', 'paymentMethodID', 'preselectedTaxID', 'salesTaxID'),
            R.VOID, required=('customerID',)),
        _op('setProjectManagerID', ('resourceID', 'customerID'), R.VOID, required=('resourceID', 'customerID')),
        _op('setDossier', ('dossier', 'customerID'), R.VOID, required=('customerID',)),
    ),

    'DataCustomerAddress30': _ops(
        'DataCustomerAddress30',
        _op('insert2', ('customerID',), R.INTEGER, required=('customerID',)),
        _op('delete', ('addressID',), R.VOID, required=('addressID',)),
        _op('getAllAddresses', ('customerID',), R.INTEGER_ARRAY, required=('customerID',)),
        _op('GetAddressObject', ('addressID',), R.ENTITY, 'address', required=('addressID',),
            name='getAddressObject'),
    ),

    'DataCustomerContact30': _ops(
        'DataCustomerContact30',
        _op('getAllContactObjects', ('CustomerID',), R.ENTITY_LIST, 'contact', required=('CustomerID',)),
        _op('getContactObject', ('ContactID',), R.ENTITY, 'contact', required=('ContactID',)),
        _op('seekByExternalID', ('ExternalID',), R.INTEGER_ARRAY, required=('ExternalID',)),
    ),

    'DataResource30': _ops(
        'DataResource30',
        _op('getResourceObject', ('resourceID',), R.ENTITY, 'resource', required=('resourceID',)),
        _op('search', RESOURCE_SEARCH_FILTER_FIELDS, R.INTEGER_ARRAY, body_builder=resource_search_body),
        _op('delete', ('resourceID',), R.VOID, required=('resourceID',)),
        _op('seekByExternalID', ('ExternalID',), R.INTEGER, required=('ExternalID',)),
        _op('getPricelists', ('resourceID',), R.ENTITY_LIST, 'pricelist', required=('resourceID',)),
        _op('getPaymentInformation', ('resourceID',), R.ENTITY, 'paymentInfo', required=('resourceID',)),
    ),

    'DataOrder30': _ops(
        'DataOrder30',
        _op('getOrderObject', ('orderID', 'languageCode', 'projectType', 'extendedObject'),
            R.ENTITY, 'order', required=('orderID',)),
    ),

    'DataItem30': _ops(
        'DataItem30',
        _op('getItemObject', ('itemID', 'projectType'), R.ENTITY, 'item', required=('itemID', 'projectType')),
        _op('getAllItemObjects', ('projectID', 'projectType'), R.ENTITY_LIST, 'item',
            required=('projectID', 'projectType')),
        _op('delete', ('itemID', 'projectType'), R.VOID, required=('itemID', 'projectType')),
        _op('get_ByLanguage', ('projectType', 'projectID', 'sourceLanguage', 'targetLanguage'), R.INTEGER,
            required=('projectType', 'projectID')),
        _op('getPriceLine_List', ('itemID', 'projectType'), R.ENTITY_LIST, 'priceLine',
            required=('itemID', 'projectType')),
        _op('insertPriceLine',
            ('itemID', 'projectType', 'amount', 'amount_perUnit', 'priceUnitID', 'unit_price',
             'taxType', 'createAsFirstItem'),
            R.ENTITY, 'priceLine', required=('itemID', 'projectType')),
        _op('getPriceUnit', ('PriceUnitID', 'languageCode'), R.ENTITY, 'priceUnit', required=('PriceUnitID',)),
    ),

    'DataJob30': _ops(
        'DataJob30',
        _op('getJob_ForView', ('jobID', 'projectType'), R.ENTITY, 'job', required=('jobID', 'projectType')),
        _op('getJobListOfItem_ForView', ('itemID', 'projectType'), R.ENTITY_LIST, 'job',
            required=('itemID', 'projectType')),
        _op('insert3', ('projectID', 'projectType', 'jobTypeShort'), R.INTEGER,
            required=('projectID', 'projectType', 'jobTypeShort')),
        _op('deleteJob', ('jobID', 'projectType'), R.VOID, required=('jobID', 'projectType')),
        _op('setJobStatus', ('projectType', 'jobID', 'status'), R.VOID,
            required=('projectType', 'jobID', 'status')),
        _op('getComment', ('projectType', 'jobID'), R.STRING, required=('projectType', 'jobID')),
        _op('getDueDate', ('projectType', 'jobID'), R.DATE, required=('projectType', 'jobID')),
        _op('getDeliveryDate', ('projectType', 'jobID'), R.DATE, required=('projectType', 'jobID')),
        _op('getJobMetrics', ('jobID', 'projectType'), R.ENTITY, 'jobMetric', required=('jobID', 'projectType')),
        _op('getPriceLine_List', ('jobID', 'projectType'), R.ENTITY_LIST, 'priceLine',
            required=('jobID', 'projectType')),
        _op('getPriceUnit_List', ('languageCode',), R.ENTITY_LIST, 'priceUnit'),
        _op('getPricelist', ('jobID', 'projectType'), R.ENTITY, 'pricelist', required=('jobID', 'projectType')),
        _op('getJobTrackingTimesList', ('jobID', 'projectType'), R.ENTITY_LIST, 'jobTrackingTime',
            required=('jobID', 'projectType')),
        _op('setCatReport2',
            ('FileByteStream', 'FilePathName', 'Filesize', 'catType', 'projectType',
             'analyzeAndCopyResultToJob', 'jobID'),
            R.VOID, required=('FileByteStream', 'FilePathName', 'catType', 'projectType', 'jobID')),
    ),

    'DataAdmin30': _ops(
        'DataAdmin30',
        _op('getAvailableLanguages', ('languageCode',), R.ENTITY_LIST, 'language'),
        _op('getAvailableCountries', ('languageCode',), R.ENTITY_LIST, 'country'),
        _op('getSystemCurrencies', (), R.ENTITY_LIST, 'currency'),
        _op('getAvailableWorkflows', (), R.ENTITY_LIST, 'adminWorkflow'),
    ),

    'DataDocument30': _ops(
        'DataDocument30',
        _op('getFileList', ('folderType', 'mainID'), R.STRING_ARRAY, required=('folderType', 'mainID')),
        _op('download_Document', ('folderType', 'mainID', 'filePathName'), R.FILE,
            required=('folderType', 'mainID', 'filePathName')),
    ),
}


def list_resources() -> List[str]:
    return sorted(OPERATION_REGISTRY)


def list_operations(resource: str) -> List[str]:
    return sorted(get_resource_operations(resource))


def get_resource_operations(resource: str) -> Dict[str, OperationDescriptor]:
    """
    Raises:
        ValidationError: Unknown resource (message lists the valid ones)
    """
    operations = OPERATION_REGISTRY.get(resource)
    if operations is None:
        raise ValidationError(
            f"Unknown resource '{resource}'. Valid resources: {', '.join(list_resources())}",
            field='resource',
            value=resource
        )
    return operations


def get_descriptor(resource: str, operation: str) -> OperationDescriptor:
    """
    Look up the descriptor for resource.operation.

    Raises:
        ValidationError: Unknown resource or operation (message lists the valid ones)
    """
    operations = get_resource_operations(resource)
    descriptor = operations.get(operation)
    if descriptor is None:
        raise ValidationError(
            f"Unknown operation '{operation}' for {resource}. "
            f"Valid operations: {', '.join(sorted(operations))}",
            field='operation',
            value=operation
        )
    return descriptor


__all__ = [
    'CUSTOMER_IN_FIELDS', 'CUSTOMER_SEARCH_FILTER_FIELDS', 'RESOURCE_SEARCH_FILTER_FIELDS',
    'NUMERIC_BOOLEAN_PARAMS', 'OPERATION_REGISTRY',
    'build_struct_xml', 'customer_insert_body', 'customer_update_body',
    'customer_search_body', 'resource_search_body',
    'get_descriptor', 'get_resource_operations', 'list_resources', 'list_operations',
]
