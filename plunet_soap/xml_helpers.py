# plunet_soap/xml_helpers.py
"""
Shape-tolerant extraction helpers for Plunet SOAP responses.

Plunet answers the same logical result in several shapes depending on the
endpoint and server version, so everything here is lenient:
- XML is converted to plain dicts with namespaces stripped
- Envelope/Body/return navigation never raises on missing nodes
- Typed result decoders check canonical names first, then search synonyms
- Decode failures are soft (None or empty list), faults and status are
  surfaced separately through extract_soap_fault / extract_result_base

Every public function accepts either raw XML text or an already parsed tree.
"""

import re
import xml.etree.ElementTree as ElT
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Union, Iterable

from plunet_soap.logger import setup_logger

logger = setup_logger()

XmlInput = Union[str, bytes, Dict[str, Any]]

MAX_SEARCH_DEPTH = 6

UUID_PATTERN = re.compile(r'^[a-f0-9-]{36}$', re.IGNORECASE)
DOTNET_DATE_PATTERN = re.compile(r'^/Date\((-?\d+)(?:[+-]\d{4})?\)/$')
INTEGER_PATTERN = re.compile(r'^-?\d+$')
FLOAT_PATTERN = re.compile(r'^-?\d+\.\d+$')

# Synonym lists used when a payload is not where it normally is
INTEGER_SYNONYMS = ('value', 'int', 'data', 'status', 'statusId', 'id')
STRING_SYNONYMS = ('value', 'string', 'data')
ARRAY_SYNONYMS = ('data', 'int', 'string', 'value', 'item')
DATE_SYNONYMS = ('value', 'date', 'data')
BOOLEAN_SYNONYMS = ('value', 'boolean', 'data')
FILE_CONTENT_SYNONYMS = ('fileContent', 'FileByteStream')
FILE_SIZE_SYNONYMS = ('fileSize', 'Filesize')
FILE_NAME_SYNONYMS = ('filename', 'fileName', 'FilePathName')

UUID_KEYS = ('uuid', 'UUID', 'token', 'sessionId')


# -------- Tree conversion --------

def _local_name(tag: str) -> str:
    """'{http://ns}Envelope' or 'soap:Envelope' -> 'Envelope'"""
    if '}' in tag:
        tag = tag.rsplit('}', 1)[1]
    if ':' in tag:
        tag = tag.rsplit(':', 1)[1]
    return tag


def _element_to_value(element: ElT.Element) -> Any:
    children = list(element)
    if not children:
        return (element.text or '').strip()

    node: Dict[str, Any] = {}
    for child in children:
        key = _local_name(child.tag)
        value = _element_to_value(child)
        if key in node:
            existing = node[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[key] = [existing, value]
        else:
            node[key] = value
    return node


def parse_xml(xml: XmlInput) -> Dict[str, Any]:
    """
    Convert XML text to a dict tree.

    Namespaces are dropped from tags, repeated sibling tags become lists,
    leaf elements become their stripped text and attributes are ignored.

    Args:
        xml: XML text (str or bytes) or an already parsed tree

    Returns:
        {root_tag: value}, or {} when the text is not well-formed XML
    """
    if isinstance(xml, dict):
        return xml
    if not xml:
        return {}

    try:
        root = ElT.fromstring(xml)
    except ElT.ParseError as e:
        logger.debug(f"Response is not well-formed XML: {e}")
        return {}

    return {_local_name(root.tag): _element_to_value(root)}


def to_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def get_ci(node: Any, name: str, default: Any = None) -> Any:
    """Case-insensitive key lookup on a dict node (exact match wins)."""
    if not isinstance(node, dict):
        return default
    if name in node:
        return node[name]
    lowered = name.lower()
    for key, value in node.items():
        if key.lower() == lowered:
            return value
    return default


# -------- Envelope navigation --------

def get_body_root(xml: XmlInput) -> Dict[str, Any]:
    """Return the children of Envelope/Body, or {}."""
    tree = parse_xml(xml)
    body = get_ci(get_ci(tree, 'Envelope', {}), 'Body', {})
    return body if isinstance(body, dict) else {}


def get_return_node(xml: XmlInput) -> Any:
    """
    Return the operation result node.

    Picks the first Body child whose name ends in Response or Result
    (case-insensitive), else the first child, and descends into its
    'return' element when present. May be a string for scalar returns.
    """
    body = get_body_root(xml)
    if not body:
        return {}

    wrapper_key = next(
        (key for key in body if re.search(r'(response|result)$', key, re.IGNORECASE)),
        next(iter(body))
    )
    wrapper = body[wrapper_key]
    if isinstance(wrapper, dict) and 'return' in wrapper:
        return wrapper['return']
    return wrapper


def get_data_node(xml: XmlInput) -> Any:
    """The 'data' child of the return node, else the return node itself."""
    ret = get_return_node(xml)
    if isinstance(ret, dict) and 'data' in ret:
        return ret['data']
    return ret


# -------- Faults and status --------

def _find_key_deep(node: Any, name: str, depth: int = 0) -> Any:
    if depth > MAX_SEARCH_DEPTH:
        return None
    if isinstance(node, dict):
        found = get_ci(node, name)
        if found is not None:
            return found
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None

    for child in children:
        found = _find_key_deep(child, name, depth + 1)
        if found is not None:
            return found
    return None


def extract_soap_fault(xml: XmlInput) -> Optional[Dict[str, Optional[str]]]:
    """
    Detect a SOAP 1.1 or 1.2 Fault.

    Returns:
        {"message": ..., "code": ...} or None when the response has no Fault
    """
    tree = parse_xml(xml)
    fault = get_ci(get_body_root(tree), 'Fault')
    if fault is None:
        fault = _find_key_deep(tree, 'Fault')
    if fault is None:
        return None
    if not isinstance(fault, dict):
        return {'message': str(fault) or 'SOAP Fault', 'code': None}

    # SOAP 1.1
    message = get_ci(fault, 'faultstring')
    code = get_ci(fault, 'faultcode')

    # SOAP 1.2
    if message is None:
        reason = get_ci(fault, 'Reason')
        message = get_ci(reason, 'Text') if isinstance(reason, dict) else reason
    if code is None:
        fault_code = get_ci(fault, 'Code')
        code = get_ci(fault_code, 'Value') if isinstance(fault_code, dict) else fault_code

    if isinstance(message, list):
        message = message[0] if message else None

    return {
        'message': str(message) if message else 'SOAP Fault',
        'code': str(code) if isinstance(code, str) and code else None,
    }


def to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and INTEGER_PATTERN.match(value.strip()):
        return int(value.strip())
    return None


def extract_result_base(xml: XmlInput) -> Dict[str, Any]:
    """
    Extract the common Result fields.

    Keys (only when present): statusCode, statusCodeAlphanumeric,
    statusMessage, warningStatusCodeList.
    """
    ret = get_return_node(xml)
    if not isinstance(ret, dict):
        return {}

    base: Dict[str, Any] = {}

    status_code = to_int(get_ci(ret, 'statusCode'))
    if status_code is not None:
        base['statusCode'] = status_code

    alphanumeric = get_ci(ret, 'statusCodeAlphanumeric')
    if isinstance(alphanumeric, str) and alphanumeric:
        base['statusCodeAlphanumeric'] = alphanumeric

    message = get_ci(ret, 'statusMessage')
    if isinstance(message, str) and message:
        base['statusMessage'] = message

    warnings = get_ci(ret, 'warning_StatusCodeList')
    if isinstance(warnings, dict):
        warnings = get_ci(warnings, 'int')
    warning_codes = [code for code in (to_int(w) for w in to_list(warnings)) if code is not None]
    if warning_codes:
        base['warningStatusCodeList'] = warning_codes

    return base


def extract_status_message(xml: XmlInput) -> Optional[str]:
    return extract_result_base(xml).get('statusMessage')


# -------- Scalar coercion --------

def decode_dotnet_date(value: Any) -> Any:
    """
    '/Date(1694544000000)/', '/Date(1694544000000+0200)/' or a bare
    millisecond integer -> '2023-09-12T18:40:00.000Z'. Anything else is
    returned unchanged.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        millis = value
    elif isinstance(value, str):
        text = value.strip()
        match = DOTNET_DATE_PATTERN.match(text)
        if match:
            millis = int(match.group(1))
        elif INTEGER_PATTERN.match(text):
            millis = int(text)
        else:
            return value
    else:
        return value

    try:
        moment = datetime.fromtimestamp(millis / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return value
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def coerce_scalar(text: Any) -> Any:
    """'true'/'false' -> bool, .NET date -> ISO, integers, floats, else the text."""
    if not isinstance(text, str):
        return text
    raw = text.strip()
    if raw == '':
        return ''
    lowered = raw.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    if DOTNET_DATE_PATTERN.match(raw):
        return decode_dotnet_date(raw)
    if INTEGER_PATTERN.match(raw):
        return int(raw)
    if FLOAT_PATTERN.match(raw):
        return float(raw)
    return raw


# -------- Typed result decoders --------

def find_first(node: Any, names: Iterable[str], max_depth: int = MAX_SEARCH_DEPTH) -> Any:
    """
    Depth-first search for the first non-empty value stored under any of `names`.

    Each dict level checks the names in order before descending. Lists are
    searched element by element. Depth is bounded and visited containers are
    skipped.
    """
    names = tuple(names)
    visited = set()

    def walk(current: Any, depth: int) -> Any:
        if depth > max_depth or id(current) in visited:
            return None
        if isinstance(current, dict):
            visited.add(id(current))
            for name in names:
                value = current.get(name)
                if value is not None and value != '':
                    return value
            children = list(current.values())
        elif isinstance(current, list):
            visited.add(id(current))
            children = current
        else:
            return None

        for child in children:
            found = walk(child, depth + 1)
            if found is not None:
                return found
        return None

    return walk(node, 0)


def _locate(xml: XmlInput, synonyms: Iterable[str]) -> Any:
    """Data node when it is already a value, else a synonym search below the return node."""
    data = get_data_node(xml)
    if data is None or isinstance(data, (str, list)):
        return data
    return find_first(data, synonyms)


def _first_scalar(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def parse_string_result(xml: XmlInput) -> Dict[str, Any]:
    tree = parse_xml(xml)
    raw = _first_scalar(_locate(tree, STRING_SYNONYMS))
    return {**extract_result_base(tree), 'value': raw if isinstance(raw, str) else None}


def parse_integer_result(xml: XmlInput) -> Dict[str, Any]:
    tree = parse_xml(xml)
    value = to_int(_first_scalar(_locate(tree, INTEGER_SYNONYMS)))
    return {**extract_result_base(tree), 'value': value}


def parse_boolean_result(xml: XmlInput) -> Dict[str, Any]:
    tree = parse_xml(xml)
    raw = _first_scalar(_locate(tree, BOOLEAN_SYNONYMS))
    value = coerce_scalar(raw) if isinstance(raw, str) else None
    if not isinstance(value, bool):
        value = {1: True, 0: False}.get(value) if isinstance(value, int) else None
    return {**extract_result_base(tree), 'value': value}


def _array_items(xml: XmlInput) -> List[Any]:
    items = []
    for item in to_list(_locate(xml, ARRAY_SYNONYMS)):
        # <data><int>1</int><int>2</int></data> style nesting
        if isinstance(item, dict):
            items.extend(to_list(find_first(item, ARRAY_SYNONYMS)))
        else:
            items.append(item)
    return items


def parse_integer_array_result(xml: XmlInput) -> Dict[str, Any]:
    tree = parse_xml(xml)
    values = [number for number in (to_int(item) for item in _array_items(tree)) if number is not None]
    return {**extract_result_base(tree), 'data': values}


def parse_string_array_result(xml: XmlInput) -> Dict[str, Any]:
    tree = parse_xml(xml)
    values = [item for item in _array_items(tree) if isinstance(item, str) and item != '']
    return {**extract_result_base(tree), 'data': values}


def parse_void_result(xml: XmlInput) -> Dict[str, Any]:
    """ok is True only when statusCode is absent or exactly 0."""
    base = extract_result_base(xml)
    return {**base, 'ok': base.get('statusCode', 0) == 0}


def parse_date_result(xml: XmlInput) -> Dict[str, Any]:
    tree = parse_xml(xml)
    raw = _first_scalar(_locate(tree, DATE_SYNONYMS))
    date = decode_dotnet_date(raw) if isinstance(raw, str) and raw else None
    return {**extract_result_base(tree), 'date': date}


def parse_file_result(xml: XmlInput) -> Dict[str, Any]:
    """
    Decode a FileResult.

    fileContent stays base64 text; decoding is left to the caller.
    """
    tree = parse_xml(xml)
    ret = get_return_node(tree)

    content = find_first(ret, FILE_CONTENT_SYNONYMS)
    if content is None:
        data = get_data_node(tree)
        content = data if isinstance(data, str) and data else None

    size = to_int(_first_scalar(find_first(ret, FILE_SIZE_SYNONYMS)))
    filename = _first_scalar(find_first(ret, FILE_NAME_SYNONYMS))

    return {
        **extract_result_base(tree),
        'fileContent': content if isinstance(content, str) else None,
        'fileSize': size,
        'filename': filename if isinstance(filename, str) else None,
    }


# -------- Session token --------

def _iter_strings(node: Any, depth: int = 0) -> Iterable[str]:
    if depth > MAX_SEARCH_DEPTH:
        return
    if isinstance(node, str):
        yield node
    elif isinstance(node, dict):
        for value in node.values():
            yield from _iter_strings(value, depth + 1)
    elif isinstance(node, list):
        for value in node:
            yield from _iter_strings(value, depth + 1)


def extract_uuid(xml: XmlInput) -> Optional[str]:
    """
    Find the session token in a login response.

    Order: a plain string return, the uuid/UUID/token/sessionId keys, then any
    string shaped like a UUID. 'refused' (Plunet's answer to bad credentials)
    yields None.
    """
    tree = parse_xml(xml)
    ret = get_return_node(tree)

    if isinstance(ret, str):
        token = ret.strip()
        return token if token and token.lower() != 'refused' else None

    body = get_body_root(tree)
    found = _first_scalar(find_first(body, UUID_KEYS))
    if isinstance(found, str) and found.strip() and found.strip().lower() != 'refused':
        return found.strip()

    for text in _iter_strings(body):
        if UUID_PATTERN.match(text.strip()):
            return text.strip()
    return None
