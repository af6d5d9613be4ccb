# plunet_soap/executor.py
"""
Descriptor-driven execution of Plunet operations.

One OperationDescriptor per remote method says where to send it, which
parameters go into the body in which order, and how to decode the result.
The executor turns (descriptor, arguments) into an envelope, sends it with
the session token embedded, checks for faults and non-zero status, and
returns a fresh result dict.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from plunet_soap.credentials import PlunetCredentials
from plunet_soap.debug_helpers import build_debug_info, build_error_description
from plunet_soap.entity_parsers import parse_entity, parse_entity_list
from plunet_soap.exceptions import (
    ErrorContext, PlunetSoapFaultError, PlunetStatusError, PlunetTransportError, ValidationError
)
from plunet_soap.logger import setup_logger
from plunet_soap.session_manager import SessionManager
from plunet_soap.soap_transport import SoapTransport, build_envelope, escape_xml, soap_action_for
from plunet_soap.xml_helpers import (
    extract_soap_fault, extract_result_base,
    parse_void_result, parse_string_result, parse_integer_result, parse_integer_array_result,
    parse_string_array_result, parse_date_result, parse_file_result, parse_boolean_result,
)

logger = setup_logger()

# Plunet expects 1/0 rather than true/false for these
NUMERIC_BOOLEAN_PARAMS = frozenset({
    'enableNullOrEmptyValues',
    'createAsFirstItem',
    'overwriteExistingPriceLines',
    'analyzeAndCopyResultToJob',
})

SESSION_PARAMS = ('session', 'UUID')

BodyBuilder = Callable[[Mapping[str, Any], str], str]


class ResultType(Enum):
    VOID = 'void'
    STRING = 'string'
    INTEGER = 'integer'
    INTEGER_ARRAY = 'integer_array'
    STRING_ARRAY = 'string_array'
    DATE = 'date'
    FILE = 'file'
    BOOLEAN = 'boolean'
    ENTITY = 'entity'
    ENTITY_LIST = 'entity_list'


_PRIMITIVE_DECODERS = {
    ResultType.VOID: parse_void_result,
    ResultType.STRING: parse_string_result,
    ResultType.INTEGER: parse_integer_result,
    ResultType.INTEGER_ARRAY: parse_integer_array_result,
    ResultType.STRING_ARRAY: parse_string_array_result,
    ResultType.DATE: parse_date_result,
    ResultType.FILE: parse_file_result,
    ResultType.BOOLEAN: parse_boolean_result,
}


@dataclass(frozen=True)
class OperationDescriptor:
    """
    Static metadata for one remote operation.

    Attributes:
        resource: Resource name callers use (e.g. DataCustomer30)
        operation: Remote method name, also used for the SOAP action
        endpoint: Service path appended to the base URL
        param_order: Body element names in the order Plunet expects them
        result_type: How the response is decoded
        entity: Entity name for ENTITY / ENTITY_LIST results
        required: Parameters that must carry a non-empty value
        body_builder: (arguments, token) -> full body XML, replacing param_order
        include_empty: Emit empty elements instead of omitting them
    """
    resource: str
    operation: str
    endpoint: str
    param_order: Tuple[str, ...]
    result_type: ResultType
    entity: Optional[str] = None
    required: Tuple[str, ...] = ()
    body_builder: Optional[BodyBuilder] = None
    include_empty: bool = False


# -------- Parameter serialization --------

def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def is_truthy(value: Any) -> bool:
    """Truthiness for numeric boolean parameters; 'false', '0' and '' are false."""
    if isinstance(value, str):
        return value.strip().lower() not in ('', 'false', '0')
    return bool(value)


def format_param_value(name: str, value: Any) -> str:
    """Render one parameter value as element text (not yet escaped)."""
    if name in NUMERIC_BOOLEAN_PARAMS:
        return '1' if is_truthy(value) else '0'
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        value = value.value
    return str(value).strip()


def param_elements(name: str, value: Any, include_empty: bool = False) -> List[str]:
    """Serialized <name>value</name> elements; lists give one element per item."""
    items = value if isinstance(value, (list, tuple)) else [value]
    elements = []
    for item in items:
        if is_empty(item) and not include_empty and name not in NUMERIC_BOOLEAN_PARAMS:
            continue
        elements.append(f"<{name}>{escape_xml(format_param_value(name, item))}</{name}>")
    return elements


def build_body(descriptor: OperationDescriptor, arguments: Mapping[str, Any], token: str) -> str:
    if descriptor.body_builder is not None:
        return descriptor.body_builder(arguments, token)

    names = descriptor.param_order
    chunks = []
    if not any(name in names for name in SESSION_PARAMS):
        chunks.append(f"<UUID>{escape_xml(token)}</UUID>")

    for name in names:
        value = arguments.get(name)
        if name in SESSION_PARAMS and is_empty(value):
            value = token
        chunks.extend(param_elements(name, value, descriptor.include_empty))

    return ''.join(chunks)


def validate_arguments(descriptor: OperationDescriptor, arguments: Mapping[str, Any]) -> None:
    """
    Raises:
        ValidationError: When a required parameter is missing or blank
    """
    for name in descriptor.required:
        if is_empty(arguments.get(name)):
            raise ValidationError(
                f"Missing required parameter '{name}' for {descriptor.resource}.{descriptor.operation}",
                field=name,
                context=ErrorContext(operation=descriptor.operation, resource=descriptor.resource)
            )

    if descriptor.body_builder is None:
        unused = [name for name in arguments if name not in descriptor.param_order]
        if unused:
            logger.debug(f"Ignoring arguments not used by {descriptor.operation}: {', '.join(unused)}")


def decode_result(descriptor: OperationDescriptor, xml: str) -> Dict[str, Any]:
    if descriptor.result_type is ResultType.ENTITY:
        return parse_entity(descriptor.entity, xml)
    if descriptor.result_type is ResultType.ENTITY_LIST:
        return parse_entity_list(descriptor.entity, xml)
    return _PRIMITIVE_DECODERS[descriptor.result_type](xml)


def raise_for_fault_or_status(xml: str, context: ErrorContext) -> None:
    """
    Raise when the response carries a SOAP Fault or a non-zero status code.

    A statusMessage without a statusCode is informational only.
    """
    fault = extract_soap_fault(xml)
    if fault:
        logger.error(f"SOAP fault from {context.resource}.{context.operation}: {fault['message']}")
        raise PlunetSoapFaultError(fault['message'], fault_code=fault['code'], response=xml, context=context)

    base = extract_result_base(xml)
    status_code = base.get('statusCode')
    if status_code is not None and status_code != 0:
        logger.error(f"{context.resource}.{context.operation} returned status {status_code}: "
                     f"{base.get('statusMessage', '')}")
        raise PlunetStatusError(status_code, base.get('statusMessage'), response=xml, context=context)


class OperationExecutor:
    """
    Runs operation descriptors for one set of credentials.

    Example:
        >>> executor = OperationExecutor(transport, session_manager, credentials)
        >>> executor.execute(get_descriptor('DataCustomer30', 'getCustomerObject'), {'customerID': 42})
    """

    def __init__(self, transport: SoapTransport,
                 session_manager: SessionManager,
                 credentials: PlunetCredentials):
        self.transport = transport
        self.session_manager = session_manager
        self.credentials = credentials

    def execute(self, descriptor: OperationDescriptor,
                arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute one operation.

        Returns:
            {"success": True, "resource", "operation", **decoded payload}
            plus "debugInfo" when debug mode is enabled

        Raises:
            ValidationError: Missing required parameter (before any network call)
            PlunetTransportError: Both protocol attempts failed
            PlunetSoapFaultError: The response (or failed response body) is a Fault
            PlunetStatusError: Non-zero status code
        """
        arguments = dict(arguments or {})
        validate_arguments(descriptor, arguments)

        token = self.session_manager.ensure_session(self.credentials)
        envelope = build_envelope(descriptor.operation, build_body(descriptor, arguments, token))
        soap_action = soap_action_for(descriptor.operation)
        url = self.credentials.endpoint_url(descriptor.endpoint)
        debug = self.credentials.enable_debug_mode

        context = ErrorContext(operation=descriptor.operation, resource=descriptor.resource)
        if debug:
            context.details = {'request': build_error_description(envelope, soap_action)}

        logger.debug(f"Calling {descriptor.resource}.{descriptor.operation} at {url}")

        try:
            xml = self.transport.send_envelope(url, envelope, soap_action, self.credentials.timeout_ms)
        except PlunetTransportError as e:
            fault = extract_soap_fault(e.response_text) if e.response_text else None
            if fault:
                raise PlunetSoapFaultError(fault['message'], fault_code=fault['code'],
                                           response=e.response_text, context=context) from e
            raise PlunetTransportError(e.message, status_code=e.status_code,
                                       response_text=e.response_text, context=context) from e

        raise_for_fault_or_status(xml, context)

        result: Dict[str, Any] = {
            'success': True,
            'resource': descriptor.resource,
            'operation': descriptor.operation,
            **decode_result(descriptor, xml),
        }

        if debug:
            result.update(build_debug_info(envelope, soap_action, url, xml))

        return result

    def execute_many(self, descriptor: OperationDescriptor,
                     argument_sets: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Execute the same operation once per argument set, sequentially."""
        return [self.execute(descriptor, arguments) for arguments in argument_sets]
