# plunet_soap/__init__.py
"""Plunet BusinessManager SOAP adapter."""

__version__ = '1.0.0'

# Convenience imports for most common utilities
from .logger import setup_logger
from .client import PlunetClient, create_plunet_client
from .credentials import PlunetCredentials, credentials_from_config
from .operations import get_descriptor, OPERATION_REGISTRY
from .exceptions import (
    PlunetBaseError, PlunetApiError, PlunetTransportError, PlunetSoapFaultError,
    PlunetStatusError, PlunetAuthenticationError, ValidationError, HelpfulError
)

__all__ = [
    'setup_logger',
    'PlunetClient',
    'create_plunet_client',
    'PlunetCredentials',
    'credentials_from_config',
    'get_descriptor',
    'OPERATION_REGISTRY',
    'PlunetBaseError',
    'PlunetApiError',
    'PlunetTransportError',
    'PlunetSoapFaultError',
    'PlunetStatusError',
    'PlunetAuthenticationError',
    'ValidationError',
    'HelpfulError',
]
