# plunet_soap/entity_parsers.py
"""
Domain object decoders for Plunet results (customer, job, order, ...).

Each entity is described by an EntitySpec table:
- containers: element names that wrap one entity (Customer, Job, ...)
- fingerprint: keys whose presence marks a dict as the entity itself
- fields: output keys with ordered input aliases, a value kind and an
  optional enum table for a resolved name
Unknown keys are copied through verbatim. Locating the entity is a bounded
tree walk, so the same table copes with the different response shapes
Plunet versions produce.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from plunet_soap.enums import (
    CustomerStatus, TaxType, ProjectType, ResourceType, WorkingStatus, ResourceStatus,
    ItemStatus, JobStatus, AddressType, FormOfAddress, ContactPersonStatus, ArchivStatus,
    WorkflowStatus, WorkflowType, enum_label,
)
from plunet_soap.exceptions import ValidationError
from plunet_soap.xml_helpers import (
    XmlInput, MAX_SEARCH_DEPTH, parse_xml, get_return_node, extract_result_base,
    coerce_scalar, find_first, to_list, to_int,
)


@dataclass(frozen=True)
class FieldSpec:
    """
    One output field.

    The first alias whose value coerces to `kind` wins. With `enum`, the
    resolved member name is written to `label` (or "Unknown (<id>)"); a
    non-numeric string found under the aliases is kept as the label.
    """
    name: str
    aliases: Tuple[str, ...]
    kind: str = 'str'
    enum: Optional[Type[IntEnum]] = None
    label: Optional[str] = None


def F(name: str, *aliases: str, kind: str = 'str',
      enum: Optional[Type[IntEnum]] = None, label: Optional[str] = None) -> FieldSpec:
    """Field with explicit aliases, or name plus its capitalized form."""
    if not aliases:
        aliases = (name, name[0].upper() + name[1:])
    return FieldSpec(name, tuple(aliases), kind, enum, label)


@dataclass(frozen=True)
class EntitySpec:
    key: str
    list_key: str
    containers: Tuple[str, ...]
    fingerprint: Tuple[str, ...]
    fields: Tuple[FieldSpec, ...]
    list_containers: Tuple[str, ...] = ()
    post: Optional[Callable[[Dict[str, Any], Dict[str, Any]], None]] = None
    list_extras: Optional[Callable[[Any], Dict[str, Any]]] = None
    passthrough: bool = True
    consumed: frozenset = field(init=False)

    def __post_init__(self):
        names = {alias for spec in self.fields for alias in spec.aliases}
        object.__setattr__(self, 'consumed', frozenset(names))


# -------- Value coercion --------

def _coerce(value: Any, kind: str) -> Any:
    if value is None:
        return None

    if kind == 'str':
        if isinstance(value, (dict, list)):
            return None
        return value if isinstance(value, str) else str(value)

    if kind == 'int':
        return to_int(value)

    if kind == 'number':
        number = coerce_scalar(value)
        return number if isinstance(number, (int, float)) and not isinstance(number, bool) else None

    if kind == 'bool':
        flag = coerce_scalar(value)
        if isinstance(flag, bool):
            return flag
        return {1: True, 0: False}.get(flag) if isinstance(flag, int) else None

    if kind == 'scalar':
        return coerce_scalar(value) if isinstance(value, str) else value

    if kind == 'str_list':
        return [item for item in to_list(value) if item != '' and item is not None]

    if kind == 'int_list':
        if isinstance(value, dict):
            value = find_first(value, ('int', 'data', 'value'))
        return [number for number in (to_int(item) for item in to_list(value)) if number is not None]

    return value


def coerce_entity(raw: Dict[str, Any], spec: EntitySpec) -> Dict[str, Any]:
    """Map a raw dict onto the documented fields of `spec`."""
    entity: Dict[str, Any] = {}

    for field_spec in spec.fields:
        present = [raw[alias] for alias in field_spec.aliases if raw.get(alias) is not None]

        value = None
        for candidate in present:
            value = _coerce(candidate, field_spec.kind)
            if value is not None:
                break

        if value is not None:
            entity[field_spec.name] = value

        if field_spec.enum is not None and field_spec.label:
            if isinstance(value, int):
                entity[field_spec.label] = enum_label(field_spec.enum, value)
            else:
                text = next((c for c in present if isinstance(c, str) and c.strip()), None)
                if text is not None:
                    entity[field_spec.label] = text

    if spec.post is not None:
        spec.post(raw, entity)

    if spec.passthrough:
        for key, value in raw.items():
            if key not in spec.consumed and key not in entity:
                entity[key] = value

    return entity


# -------- Locating entities --------

def _looks_like(node: Any, spec: EntitySpec) -> bool:
    return isinstance(node, dict) and any(key in node for key in spec.fingerprint)


def find_entity(node: Any, spec: EntitySpec, depth: int = 0,
                visited: Optional[set] = None) -> Optional[Dict[str, Any]]:
    """
    Bounded search for one entity.

    Order: named container, fingerprint match, then the 'return', '*Result'
    and 'data' children, then every other child.
    """
    if visited is None:
        visited = set()
    if depth > MAX_SEARCH_DEPTH or not isinstance(node, (dict, list)) or id(node) in visited:
        return None
    visited.add(id(node))

    if isinstance(node, list):
        for element in node:
            hit = find_entity(element, spec, depth + 1, visited)
            if hit is not None:
                return hit
        return None

    for container in spec.containers:
        wrapped = next((item for item in to_list(node.get(container)) if isinstance(item, dict)), None)
        if wrapped is not None:
            return wrapped

    if _looks_like(node, spec):
        return node

    candidates = []
    if 'return' in node:
        candidates.append(node['return'])
    candidates.extend(value for key, value in node.items() if key.lower().endswith('result'))
    if 'data' in node:
        candidates.append(node['data'])
    candidates.extend(node.values())

    for candidate in candidates:
        hit = find_entity(candidate, spec, depth + 1, visited)
        if hit is not None:
            return hit
    return None


def _container_members(node: Any, spec: EntitySpec, depth: int = 0) -> List[Dict[str, Any]]:
    """All dicts under the first container element found below node."""
    if depth > MAX_SEARCH_DEPTH:
        return []
    if isinstance(node, list):
        children = node
    elif isinstance(node, dict):
        for container in spec.containers:
            if container in node:
                return [item for item in to_list(node[container]) if isinstance(item, dict)]
        children = list(node.values())
    else:
        return []

    for child in children:
        members = _container_members(child, spec, depth + 1)
        if members:
            return members
    return []


def _collect(node: Any, spec: EntitySpec) -> List[Dict[str, Any]]:
    members = _container_members(node, spec)
    if members:
        return members
    hit = find_entity(node, spec)
    return [hit] if hit is not None else []


def pick_entity_list(ret: Any, spec: EntitySpec) -> List[Dict[str, Any]]:
    if not isinstance(ret, dict):
        return []

    raw_items: List[Dict[str, Any]] = []
    if 'data' in ret:
        for item in to_list(ret['data']):
            raw_items.extend(_collect(item, spec))

    for container in spec.list_containers:
        for item in to_list(ret.get(container)):
            raw_items.extend(_collect(item, spec))

    if not raw_items:
        raw_items = _collect(ret, spec)

    return raw_items


# -------- Post-processing hooks --------

AMOUNT_SPEC_FIELDS = (
    F('baseUnitName'),
    F('grossQuantity', kind='number'),
    F('netQuantity', kind='number'),
    F('serviceType'),
)


def _job_metric_amounts(raw: Dict[str, Any], entity: Dict[str, Any]) -> None:
    amounts = []
    for block in to_list(raw.get('amounts') or raw.get('Amounts')):
        if not isinstance(block, dict):
            continue
        inner = block.get('Amount') or block.get('amount')
        for amount in (to_list(inner) if inner is not None else [block]):
            if isinstance(amount, dict):
                amounts.append(coerce_entity(amount, AMOUNT_SPEC))
    entity['amounts'] = amounts


def _tracking_time_extras(ret: Any) -> Dict[str, Any]:
    completed = find_first(ret, ('Completed', 'completed'))
    if completed is None:
        return {}
    return {'completed': coerce_scalar(completed) if isinstance(completed, str) else completed}


# -------- Entity tables --------

_NAME_FIELDS = (
    F('fullName'),
    F('name1'),
    F('name2'),
    F('email', 'email', 'EMail', 'Email'),
    F('phone'),
    F('fax'),
    F('mobilePhone'),
    F('website'),
    F('currency'),
    F('academicTitle'),
    F('opening'),
    F('skypeID'),
    F('costCenter'),
    F('formOfAddress', 'formOfAddress', 'FormOfAddress', 'formOfAddressId', 'FormOfAddressId',
      kind='int', enum=FormOfAddress, label='formOfAddressName'),
)

CUSTOMER_SPEC = EntitySpec(
    key='customer',
    list_key='customers',
    containers=('Customer', 'customer'),
    list_containers=('Customers', 'customers'),
    fingerprint=('customerID', 'CustomerID', 'fullName', 'FullName', 'name1', 'Name1', 'email', 'EMail'),
    fields=(
        F('customerID', 'customerID', 'CustomerID', 'id', 'ID', kind='int'),
        F('externalID'),
        *_NAME_FIELDS,
        F('accountID', kind='int'),
        F('projectManagerID', kind='int'),
        F('accountManagerID', kind='int'),
        F('dateOfInitialContact', kind='scalar'),
        F('sourceOfContact'),
        F('dossier'),
        F('statusId', 'status', 'Status', 'statusId', 'statusID', 'StatusID',
          kind='int', enum=CustomerStatus, label='status'),
    ),
)

RESOURCE_SPEC = EntitySpec(
    key='resource',
    list_key='resources',
    containers=('Resource', 'resource'),
    list_containers=('Resources', 'resources'),
    fingerprint=('resourceID', 'ResourceID', 'fullName', 'FullName', 'name1', 'Name1', 'email', 'EMail'),
    fields=(
        F('resourceID', 'resourceID', 'ResourceID', 'id', 'ID', kind='int'),
        F('externalID'),
        *_NAME_FIELDS,
        F('userId', 'userId', 'UserId', 'UserID', kind='int'),
        F('supervisor1'),
        F('supervisor2'),
        F('statusId', 'status', 'Status', 'statusId', 'statusID', 'StatusID',
          kind='int', enum=ResourceStatus, label='status'),
        F('workingStatusId', 'workingStatus', 'WorkingStatus', 'workingStatusId', 'WorkingStatusID',
          kind='int', enum=WorkingStatus, label='workingStatus'),
        F('resourceTypeId', 'resourceType', 'ResourceType', 'resourceTypeId', 'ResourceTypeID',
          kind='int', enum=ResourceType, label='resourceType'),
    ),
)

ADDRESS_SPEC = EntitySpec(
    key='address',
    list_key='addresses',
    containers=('Address', 'address'),
    fingerprint=('addressID', 'AddressID', 'street', 'Street', 'city', 'City', 'zip', 'Zip'),
    fields=(
        F('addressID', 'addressID', 'AddressID', 'id', 'ID', kind='int'),
        F('description'),
        F('name1'),
        F('name2'),
        F('office'),
        F('street'),
        F('street2'),
        F('city'),
        F('zip'),
        F('state'),
        F('country'),
        F('addressType', kind='int', enum=AddressType, label='addressTypeLabel'),
    ),
)

CONTACT_SPEC = EntitySpec(
    key='contact',
    list_key='contacts',
    containers=('CustomerContact', 'customerContact', 'Contact', 'contact'),
    fingerprint=('customerContactID', 'CustomerContactID', 'contactID', 'ContactID'),
    fields=(
        F('customerContactID', 'customerContactID', 'CustomerContactID', 'contactID', 'ContactID', kind='int'),
        F('customerID', kind='int'),
        F('addressID', kind='int'),
        F('userId', 'userId', 'UserId', 'UserID', kind='int'),
        F('email', 'email', 'EMail'),
        F('externalID'),
        F('fax'),
        F('mobilePhone'),
        F('name1'),
        F('name2'),
        F('phone'),
        F('statusId', 'status', 'Status', 'statusId', 'statusID', 'StatusID',
          kind='int', enum=ContactPersonStatus, label='status'),
    ),
)

PRICELIST_SPEC = EntitySpec(
    key='pricelist',
    list_key='pricelists',
    containers=('Pricelist', 'pricelist', 'PriceList'),
    fingerprint=('adminPriceListId', 'AdminPriceListId', 'pricelistNameEN', 'resourcePriceListID'),
    fields=(
        F('adminPriceListId', kind='int'),
        F('adminPriceListPartnerType', kind='int'),
        F('currency'),
        F('isWithWhiteSpace', 'isWithWhiteSpace', 'IsWithWhiteSpace', 'withWhiteSpace', kind='bool'),
        F('memo'),
        F('pricelistNameEN'),
        F('resourcePriceListID', kind='int'),
    ),
)

ORDER_SPEC = EntitySpec(
    key='order',
    list_key='orders',
    containers=('Order', 'order'),
    fingerprint=('orderID', 'OrderID', 'orderNo', 'orderNo_for_View'),
    fields=(
        F('orderID', kind='int'),
        F('orderNo'),
        F('orderNo_for_View'),
        F('subject'),
        F('orderDate', kind='scalar'),
        F('orderClosingDate', kind='scalar'),
        F('creationDate', kind='scalar'),
        F('deliveryComment'),
        F('externalID'),
        F('projectCategory'),
        F('projectStatus', kind='int', enum=ArchivStatus, label='projectStatusLabel'),
        F('requestID', kind='int'),
        F('masterProjectID', kind='int'),
        F('en15038Requested', kind='bool'),
        F('en15038', kind='bool'),
        F('languageCombinations', kind='str_list'),
        F('links', kind='str_list'),
        F('orderConfirmations', kind='str_list'),
    ),
)

ITEM_SPEC = EntitySpec(
    key='item',
    list_key='items',
    containers=('Item', 'item'),
    fingerprint=('itemID', 'ItemID', 'briefDescription', 'BriefDescription'),
    fields=(
        F('itemID', kind='int'),
        F('projectID', kind='int'),
        F('projectType', kind='int', enum=ProjectType, label='projectTypeLabel'),
        F('orderID', kind='int'),
        F('invoiceID', kind='int'),
        F('briefDescription'),
        F('sourceLanguage'),
        F('targetLanguage'),
        F('status', kind='int', enum=ItemStatus, label='statusLabel'),
        F('totalPrice', kind='number'),
        F('taxType', kind='int', enum=TaxType, label='taxTypeLabel'),
        F('jobIDList', kind='int_list'),
    ),
)


def _pascal(name: str, kind: str = 'scalar', **kwargs) -> FieldSpec:
    """PascalCase output key with its camelCase alias."""
    return F(name, name, name[0].lower() + name[1:], kind=kind, **kwargs)


JOB_SPEC = EntitySpec(
    key='job',
    list_key='jobs',
    containers=('Job', 'job'),
    fingerprint=('JobID', 'jobID', 'JobTypeShort', 'jobTypeShort', 'JobTypeFull', 'jobTypeFull'),
    fields=(
        _pascal('JobID'),
        _pascal('ProjectID'),
        _pascal('ResourceID'),
        _pascal('ProjectType'),
        _pascal('Status', enum=JobStatus, label='StatusLabel'),
        _pascal('JobTypeFull'),
        _pascal('JobTypeShort'),
        _pascal('CountSourceFiles'),
        _pascal('ItemID'),
        _pascal('StartDate'),
        _pascal('DueDate'),
    ),
)

PRICE_LINE_SPEC = EntitySpec(
    key='priceLine',
    list_key='priceLines',
    containers=('PriceLine', 'priceLine'),
    fingerprint=('PriceLineID', 'priceLineID', 'Unit_price', 'unit_price'),
    fields=(
        _pascal('PriceUnitID'),
        _pascal('PriceLineID'),
        _pascal('Memo'),
        _pascal('Amount'),
        _pascal('Amount_perUnit'),
        _pascal('Time_perUnit'),
        _pascal('Unit_price'),
        _pascal('TaxType', enum=TaxType, label='TaxTypeLabel'),
        _pascal('Sequence'),
    ),
)

PRICE_UNIT_SPEC = EntitySpec(
    key='priceUnit',
    list_key='priceUnits',
    containers=('PriceUnit', 'priceUnit'),
    fingerprint=('PriceUnitID', 'priceUnitID', 'ArticleNumber', 'articleNumber'),
    fields=(
        _pascal('PriceUnitID'),
        _pascal('Description'),
        _pascal('Memo'),
        _pascal('ArticleNumber'),
        _pascal('Service'),
        F('isActive', 'isActive', 'Active', 'active', kind='bool'),
        _pascal('BaseUnit'),
    ),
)

AMOUNT_SPEC = EntitySpec(
    key='amount',
    list_key='amounts',
    containers=('Amount', 'amount'),
    fingerprint=('baseUnitName', 'grossQuantity', 'netQuantity'),
    fields=AMOUNT_SPEC_FIELDS,
    passthrough=False,
)

JOB_METRIC_SPEC = EntitySpec(
    key='jobMetric',
    list_key='jobMetrics',
    containers=('JobMetric', 'jobMetric'),
    fingerprint=('totalPrice', 'TotalPrice', 'totalPriceJobCurrency', 'amounts'),
    fields=(
        F('totalPrice', kind='number'),
        F('totalPriceJobCurrency', kind='number'),
        F('amounts', 'amounts', 'Amounts', kind='raw'),
    ),
    post=_job_metric_amounts,
)

JOB_TRACKING_TIME_SPEC = EntitySpec(
    key='time',
    list_key='times',
    containers=('JobTrackingTime', 'jobTrackingTime'),
    fingerprint=('DateFrom', 'dateFrom', 'DateTo', 'dateTo'),
    fields=(
        _pascal('ResourceID'),
        _pascal('Comment'),
        _pascal('DateFrom'),
        _pascal('DateTo'),
    ),
    list_extras=_tracking_time_extras,
)

PAYMENT_INFO_SPEC = EntitySpec(
    key='paymentInfo',
    list_key='paymentInfos',
    containers=('PaymentInfo', 'paymentInfo'),
    fingerprint=('IBAN', 'BIC', 'accountHolder', 'AccountHolder', 'paymentMethodID'),
    fields=(
        F('accountHolder'),
        F('accountID', kind='int'),
        F('BIC', 'BIC', 'bic'),
        F('contractNumber'),
        F('debitAccount'),
        F('IBAN', 'IBAN', 'iban'),
        F('paymentMethodID', kind='int'),
        F('preselectedTaxID', kind='int'),
        F('salesTaxID'),
    ),
)

ACCOUNT_SPEC = EntitySpec(
    key='account',
    list_key='accounts',
    containers=('Account', 'account'),
    fingerprint=('accountID', 'AccountID'),
    fields=(
        F('accountID', kind='int'),
        F('costCenter'),
        F('currency'),
    ),
)

WORKFLOW_SPEC = EntitySpec(
    key='workflow',
    list_key='workflows',
    containers=('Workflow', 'workflow'),
    fingerprint=('workflowID', 'WorkflowID', 'id', 'ID', 'name', 'Name'),
    fields=(
        F('id', 'id', 'ID', 'workflowID', 'WorkflowID', kind='int'),
        F('name', 'name', 'Name'),
    ),
)

# DataAdmin30 lists: each <data> element is one object

COUNTRY_SPEC = EntitySpec(
    key='country',
    list_key='countries',
    containers=('Country', 'country'),
    fingerprint=('ID', 'isoCode', 'name'),
    fields=(
        F('ID', 'ID', 'id', kind='int'),
        F('isoCode', 'isoCode', 'IsoCode'),
        F('name', 'name', 'Name'),
    ),
)

LANGUAGE_SPEC = EntitySpec(
    key='language',
    list_key='languages',
    containers=('Language', 'language'),
    fingerprint=('id', 'isoCode', 'folderName'),
    fields=(
        F('id', 'id', 'ID', kind='int'),
        F('name', 'name', 'Name'),
        F('isoCode', 'isoCode', 'IsoCode'),
        F('folderName'),
        F('active', kind='bool'),
        F('favorite', kind='bool'),
    ),
)

CURRENCY_SPEC = EntitySpec(
    key='currency',
    list_key='currencies',
    containers=('Currency',),
    fingerprint=('currencyID', 'CurrencyID', 'isoCode'),
    fields=(
        F('currencyID', 'currencyID', 'CurrencyID', kind='int'),
        F('description'),
        F('isoCode', 'isoCode', 'IsoCode'),
    ),
)

ADMIN_WORKFLOW_SPEC = EntitySpec(
    key='workflow',
    list_key='workflows',
    containers=('Workflow', 'workflow'),
    fingerprint=('workflowId', 'WorkflowId', 'workflowID'),
    fields=(
        F('workflowId', 'workflowId', 'WorkflowId', 'workflowID', kind='int'),
        F('name'),
        F('description'),
        F('status', kind='int', enum=WorkflowStatus, label='statusLabel'),
        F('type', kind='int', enum=WorkflowType, label='typeLabel'),
    ),
)

ENTITY_SPECS: Dict[str, EntitySpec] = {
    'customer': CUSTOMER_SPEC,
    'resource': RESOURCE_SPEC,
    'address': ADDRESS_SPEC,
    'contact': CONTACT_SPEC,
    'pricelist': PRICELIST_SPEC,
    'order': ORDER_SPEC,
    'item': ITEM_SPEC,
    'job': JOB_SPEC,
    'priceLine': PRICE_LINE_SPEC,
    'priceUnit': PRICE_UNIT_SPEC,
    'jobMetric': JOB_METRIC_SPEC,
    'jobTrackingTime': JOB_TRACKING_TIME_SPEC,
    'paymentInfo': PAYMENT_INFO_SPEC,
    'account': ACCOUNT_SPEC,
    'workflow': WORKFLOW_SPEC,
    'country': COUNTRY_SPEC,
    'language': LANGUAGE_SPEC,
    'currency': CURRENCY_SPEC,
    'adminWorkflow': ADMIN_WORKFLOW_SPEC,
}


def get_entity_spec(name: str) -> EntitySpec:
    try:
        return ENTITY_SPECS[name]
    except KeyError:
        raise ValidationError(
            f"Unknown entity '{name}'. Valid entities: {', '.join(sorted(ENTITY_SPECS))}",
            field='entity', value=name
        ) from None


# -------- Public parsers --------

def parse_entity(name: str, xml: XmlInput) -> Dict[str, Any]:
    """
    Decode a single-entity result.

    Returns:
        {<entity key>: entity dict or None, **result base}
    """
    spec = get_entity_spec(name)
    tree = parse_xml(xml)
    raw = find_entity(get_return_node(tree), spec)
    entity = coerce_entity(raw, spec) if raw is not None else None
    return {spec.key: entity, **extract_result_base(tree)}


def parse_entity_list(name: str, xml: XmlInput) -> Dict[str, Any]:
    """
    Decode a list result.

    Returns:
        {<plural key>: [entity dicts], **result base}
    """
    spec = get_entity_spec(name)
    tree = parse_xml(xml)
    ret = get_return_node(tree)
    entities = [coerce_entity(raw, spec) for raw in pick_entity_list(ret, spec)]

    result = {spec.list_key: entities}
    if spec.list_extras is not None:
        result.update(spec.list_extras(ret))
    result.update(extract_result_base(tree))
    return result
