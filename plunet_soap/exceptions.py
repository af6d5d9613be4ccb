# plunet_soap/exceptions.py
"""
Exception hierarchy for the Plunet SOAP adapter.

Distinguishes the ways a call can fail:
- Transport: both SOAP protocol attempts failed
- SOAP fault: the server answered with a Fault element
- Status: the result body carries a non-zero Plunet status code
- Authentication: login produced no session token
- Validation / configuration problems detected before any network call
"""

from typing import Optional, Any, Dict
from dataclasses import dataclass


@dataclass
class ErrorContext:
    """
    Structured error context for debugging.

    Attributes:
        operation: Remote operation name (e.g. getCustomerObject)
        resource: Service endpoint (e.g. DataCustomer30)
        details: Additional error details, such as a sanitized request description
    """

    operation: Optional[str] = None
    resource: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            k: v for k, v in {
                'operation': self.operation,
                'resource': self.resource,
                'details': self.details
            }.items() if v is not None
        }


class PlunetBaseError(Exception):
    """Base exception for all adapter errors."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None):
        self.context = context or ErrorContext()
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        """Format exception with context; debug-mode request descriptions are appended."""
        base_msg = super().__str__()
        if self.context.operation:
            base_msg = f"{base_msg} (during {self.context.operation})"
        request = (self.context.details or {}).get('request')
        if request:
            base_msg = f"{base_msg}\n\nDebug Information:\n{request}"
        return base_msg


# API-related exceptions

class PlunetApiError(PlunetBaseError):
    """
    Base exception for errors reported by, or while talking to, the Plunet server.

    Attributes:
        status_code: HTTP or Plunet status code if applicable
        response: Raw response text or object if available
    """

    def __init__(self, message: str,
                 status_code: Optional[int] = None,
                 response: Optional[Any] = None,
                 context: Optional[ErrorContext] = None):
        super().__init__(message, context)
        self.status_code = status_code
        self.response = response


class PlunetTransportError(PlunetApiError):
    """
    Raised when neither the SOAP 1.1 nor the SOAP 1.2 attempt succeeded.

    Attributes:
        status_code: HTTP status of the last attempt (None on network failure)
        response_text: Body of the last attempt, if any
    """

    def __init__(self, message: str,
                 status_code: Optional[int] = None,
                 response_text: Optional[str] = None,
                 context: Optional[ErrorContext] = None):
        super().__init__(message, status_code=status_code, response=response_text, context=context)
        self.response_text = response_text


class PlunetSoapFaultError(PlunetApiError):
    """
    Raised when the response envelope contains a SOAP Fault.

    Attributes:
        fault_code: faultcode (SOAP 1.1) or Code/Value (SOAP 1.2)
    """

    def __init__(self, message: str,
                 fault_code: Optional[str] = None,
                 response: Optional[Any] = None,
                 context: Optional[ErrorContext] = None):
        super().__init__(message, response=response, context=context)
        self.fault_code = fault_code


class PlunetStatusError(PlunetApiError):
    """
    Raised when the result body carries a status code other than 0.

    Attributes:
        status_code: Plunet status code (negative values are API errors)
        status_message: statusMessage from the result body
    """

    def __init__(self, status_code: int,
                 status_message: Optional[str] = None,
                 response: Optional[Any] = None,
                 context: Optional[ErrorContext] = None):
        message = f"Plunet returned status {status_code}"
        if status_message:
            message = f"{message}: {status_message}"
        super().__init__(message, status_code=status_code, response=response, context=context)
        self.status_message = status_message


class PlunetAuthenticationError(PlunetApiError):
    """Raised when login does not yield a session token."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(message, **kwargs)


# Configuration and validation exceptions

class ConfigurationError(PlunetBaseError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        config_key: Specific configuration key that caused the error
    """

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        if config_key:
            message = f"{message} (key: {config_key})"
        super().__init__(message, **kwargs)
        self.config_key = config_key


class ValidationError(PlunetBaseError):
    """
    Raised when call arguments fail validation before anything is sent.

    Attributes:
        field: Field that failed validation
        value: Value that was invalid
    """

    def __init__(self, message: str,
                 field: Optional[str] = None,
                 value: Optional[Any] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


# Helpful error with instructions

class HelpfulError(PlunetBaseError):
    """
    Exception that provides helpful instructions to fix the problem.

    Used for user-friendly error messages with solutions.
    """

    def __init__(self, what_went_wrong: str,
                 how_to_fix: str,
                 example: Optional[str] = None):
        """
        Initialize helpful error.

        Args:
            what_went_wrong: Description of the problem
            how_to_fix: Instructions to fix it
            example: Optional example of correct usage
        """
        message = f"\n❌ Problem: {what_went_wrong}\n\n✅ Solution: {how_to_fix}"
        if example:
            message += f"\n\n📝 Example:\n{example}"
        super().__init__(message)
        self.what_went_wrong = what_went_wrong
        self.how_to_fix = how_to_fix
        self.example = example
