# plunet_soap/enums.py
"""
Static Plunet enum tables (ids as returned and accepted by the API).

Names follow the Plunet API documentation, including its spellings
(AQUISITION_ADDRESS, IN_PREPERATION, PAYED).
"""

from enum import IntEnum
from typing import Any, Optional, Type


class CustomerStatus(IntEnum):
    ACTIVE = 1
    NOT_ACTIVE = 2
    CONTACTED = 3
    NEW = 4
    BLOCKED = 5
    AQUISITION_ADDRESS = 6
    NEW_AUTO = 7
    DELETION_REQUESTED = 8


class TaxType(IntEnum):
    TAX_1 = 0
    TAX_2 = 1
    WITHOUT_TAX = 2
    INFO = 3
    SUM = 4
    TAX_1_2 = 5
    INFO_SUM = 6
    TAX_3 = 7
    TAX_1_2_3 = 8
    TAX_4 = 9
    TAX_1_3 = 10
    TAX_2_3 = 11
    PRICE_BLOCK = 12
    TAX_5 = 13
    TAX_1_2_3_4 = 14
    TAX_1_2_3_4_5 = 15
    TAX_2_4_5 = 16
    TAX_1_4 = 17


class CurrencyType(IntEnum):
    PROJECTCURRENCY = 1
    HOMECURRENCY = 2


class ProjectType(IntEnum):
    QUOTE = 1
    ORDER = 3


class ResourceType(IntEnum):
    RESOURCES = 0
    TEAM_MEMBER = 1
    PROJECT_MANAGER = 2
    SUPERVISOR = 3


class WorkingStatus(IntEnum):
    INTERNAL = 1
    EXTERNAL = 2


class ResourceStatus(IntEnum):
    ACTIVE = 1
    NOT_ACTIVE_OR_OLD = 2
    BLOCKED = 3
    NEW = 4
    PREMIUM = 5
    NEW_AUTO = 6
    PROBATION = 7
    QUALIFIED = 8
    DISQUALIFIED = 9
    DELETION_REQUESTED = 10


class ItemStatus(IntEnum):
    IN_PROGRESS = 1
    DELIVERED = 2
    APPROVED = 3
    INVOICED = 4
    CANCELED = 5
    NEW_AUTO = 6
    DELIVERABLE = 7
    IN_PREPERATION = 8
    PAID = 9
    WITHOUT_INVOICE = 10
    PENDING = 11
    ACCEPTED = 12
    REJECTED = 13
    SUM = 14


class JobStatus(IntEnum):
    IN_PREPERATION = 0
    IN_PROGRESS = 1
    DELIVERED = 2
    APPROVED = 3
    CANCELED = 4
    INVOICE_ACCEPTED = 5
    PAYED = 6
    ASSIGNED_WAITING = 7
    REQUESTED = 8
    INVOICE_CHECKED = 9
    INVOICE_CREATED = 10
    WITHOUT_INVOICE = 11
    TRANSFERRED_TO_ORDER = 12
    OVERDUE = 13


class AddressType(IntEnum):
    DELIVERY = 1
    INVOICE = 2
    OTHER = 3


class FormOfAddress(IntEnum):
    SIR = 1
    MADAM = 2
    COMPANY = 3


class ContactPersonStatus(IntEnum):
    ACTIVE = 1
    NOT_ACTIVE = 2
    CONTACTED = 3
    DELETION_REQUESTED = 4


class ArchivStatus(IntEnum):
    ACTIVE = 1
    COMPLETED_ARCHIVABLE = 2
    ARCHIVED = 3
    QUOTE_MOVED_TO_ORDER = 4
    IN_PREPARATION = 5
    COMPLETED = 6


class ProjectClassType(IntEnum):
    ALL = 0
    TRANSLATION = 1
    INTERPRETING = 2


class WorkflowStatus(IntEnum):
    IN_PREPARATION = 0
    RELEASED = 1
    CANCELED = 2
    RELEASED_FOR_SELECTION = 3


class WorkflowType(IntEnum):
    STANDARD = 0
    ORDER = 1
    QUOTE_ORDER = 2


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    return None


def id_to_name(enum_cls: Type[IntEnum], value: Any) -> Optional[str]:
    """Enum member name for an id, or None when the id is missing or unknown."""
    number = _as_int(value)
    if number is None:
        return None
    try:
        return enum_cls(number).name
    except ValueError:
        return None


def enum_label(enum_cls: Type[IntEnum], value: Any) -> Optional[str]:
    """Like id_to_name, but unknown ids render as 'Unknown (<id>)'."""
    number = _as_int(value)
    if number is None:
        return None
    return id_to_name(enum_cls, number) or f"Unknown ({number})"


def name_to_id(enum_cls: Type[IntEnum], name: Optional[str]) -> Optional[int]:
    if not name:
        return None
    member = enum_cls.__members__.get(name.strip().upper())
    return int(member) if member is not None else None
