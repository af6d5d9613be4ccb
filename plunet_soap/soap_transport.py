# plunet_soap/soap_transport.py
"""
SOAP envelope construction and HTTP dispatch.

- Envelopes are built as text, no WSDL involved
- Every request goes out as SOAP 1.1 first and falls back to SOAP 1.2 once
- The fallback is an explicit attempt state machine
- One requests.Session per transport, zero automatic retries
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from plunet_soap.exceptions import PlunetTransportError, ErrorContext
from plunet_soap.logger import setup_logger
from plunet_soap.xml_helpers import parse_xml, get_ci, extract_status_message

logger = setup_logger()

SOAP11_NS = 'http://schemas.xmlsoap.org/soap/envelope/'
SOAP12_NS = 'http://www.w3.org/2003/05/soap-envelope'
API_NS = 'http://API.Integration/'

DEFAULT_TIMEOUT_MS = 30000
ERROR_SNIPPET_CHARS = 400


class SoapVersion(Enum):
    SOAP11 = '1.1'
    SOAP12 = '1.2'


class AttemptState(Enum):
    TRYING_SOAP11 = 'trying_soap11'
    TRYING_SOAP12 = 'trying_soap12'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


# (current state, attempt succeeded) -> next state
_TRANSITIONS = {
    (AttemptState.TRYING_SOAP11, True): AttemptState.SUCCEEDED,
    (AttemptState.TRYING_SOAP11, False): AttemptState.TRYING_SOAP12,
    (AttemptState.TRYING_SOAP12, True): AttemptState.SUCCEEDED,
    (AttemptState.TRYING_SOAP12, False): AttemptState.FAILED,
}


@dataclass
class AttemptFailure:
    """Why a single protocol attempt failed."""
    version: SoapVersion
    status_code: Optional[int] = None
    body: Optional[str] = None
    error: Optional[str] = None


_XML_ESCAPES = str.maketrans({
    '&': '&amp;',
    '<': '&lt;',
    '>': '&gt;',
    '"': '&quot;',
    "'": '&apos;',
})


def escape_xml(value: Any) -> str:
    return str(value).translate(_XML_ESCAPES)


def build_envelope(operation: str, body_xml: str) -> str:
    """Wrap a body fragment in a SOAP 1.1 envelope calling api:<operation>."""
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<soapenv:Envelope xmlns:soapenv="{SOAP11_NS}" xmlns:api="{API_NS}">'
        '<soapenv:Header/>'
        '<soapenv:Body>'
        f'<api:{operation}>{body_xml}</api:{operation}>'
        '</soapenv:Body>'
        '</soapenv:Envelope>'
    )


def to_soap12(envelope: str) -> str:
    return envelope.replace(SOAP11_NS, SOAP12_NS)


def soap_action_for(operation: str) -> str:
    return f"{API_NS}{operation}"


def headers_for(version: SoapVersion, soap_action: str) -> Dict[str, str]:
    if version is SoapVersion.SOAP11:
        return {
            'Content-Type': 'text/xml; charset=utf-8',
            'SOAPAction': f'"{soap_action}"',
            'Accept': 'text/xml, application/soap+xml, */*;q=0.8',
        }
    return {
        'Content-Type': f'application/soap+xml; charset=utf-8; action="{soap_action}"',
        'Accept': 'application/soap+xml, text/xml, */*;q=0.8',
    }


def looks_like_soap_envelope(text: Optional[str]) -> bool:
    """True when text parses as XML with an Envelope root."""
    if not text:
        return False
    return get_ci(parse_xml(text), 'Envelope') is not None


class SoapTransport:
    """
    Posts SOAP envelopes to Plunet endpoints.

    Example:
        >>> with SoapTransport() as transport:
        ...     xml = transport.send_operation(url, 'getVersion', '')
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or self._create_session()
        logger.debug("Initialized SOAP transport")

    @staticmethod
    def _create_session() -> requests.Session:
        session = requests.Session()

        # Version fallback is the only retry
        adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def send_operation(self, url: str, operation: str, body_xml: str,
                       soap_action: Optional[str] = None,
                       timeout_ms: int = DEFAULT_TIMEOUT_MS) -> str:
        """Build the envelope for `operation` and send it. Returns the response XML."""
        envelope = build_envelope(operation, body_xml)
        return self.send_envelope(url, envelope, soap_action or soap_action_for(operation), timeout_ms)

    def send_envelope(self, url: str, envelope: str, soap_action: str,
                      timeout_ms: int = DEFAULT_TIMEOUT_MS) -> str:
        """
        Send a prepared SOAP 1.1 envelope, falling back to SOAP 1.2 once.

        Returns:
            Response XML text of the successful attempt

        Raises:
            PlunetTransportError: When both attempts failed
        """
        state = AttemptState.TRYING_SOAP11
        failure: Optional[AttemptFailure] = None
        text: Optional[str] = None

        while state in (AttemptState.TRYING_SOAP11, AttemptState.TRYING_SOAP12):
            if state is AttemptState.TRYING_SOAP11:
                version, payload = SoapVersion.SOAP11, envelope
            else:
                version, payload = SoapVersion.SOAP12, to_soap12(envelope)

            text, failure = self._attempt(url, payload, soap_action, version, timeout_ms)
            state = _TRANSITIONS[(state, failure is None)]

            if state is AttemptState.TRYING_SOAP12:
                logger.warning(f"SOAP 1.1 call to {url} failed "
                               f"({failure.error or failure.status_code}), retrying with SOAP 1.2")

        if state is AttemptState.SUCCEEDED:
            return text

        error = self._transport_error(url, soap_action, failure)
        logger.error(f"SOAP call to {url} failed on both protocol versions: {error.message}")
        raise error

    def _attempt(self, url: str, payload: str, soap_action: str,
                 version: SoapVersion, timeout_ms: int) -> Tuple[Optional[str], Optional[AttemptFailure]]:
        logger.debug(f"POST {url} (SOAP {version.value}, action {soap_action})")

        try:
            response = self.session.post(
                url,
                data=payload.encode('utf-8'),
                headers=headers_for(version, soap_action),
                timeout=timeout_ms / 1000.0
            )
        except requests.RequestException as e:
            return None, AttemptFailure(version, error=str(e))

        text = response.text
        if not 200 <= response.status_code < 300:
            return None, AttemptFailure(version, status_code=response.status_code, body=text,
                                        error=f"HTTP {response.status_code}")

        if not looks_like_soap_envelope(text):
            return None, AttemptFailure(version, status_code=response.status_code, body=text,
                                        error="Response is not a SOAP envelope")

        return text, None

    @staticmethod
    def _transport_error(url: str, soap_action: str, failure: AttemptFailure) -> PlunetTransportError:
        snippet = failure.body[:ERROR_SNIPPET_CHARS] if failure.body else (failure.error or "SOAP request failed")
        status_message = extract_status_message(failure.body) if failure.body else None
        message = f"{snippet} - {status_message}" if status_message else snippet

        return PlunetTransportError(
            message,
            status_code=failure.status_code,
            response_text=failure.body,
            context=ErrorContext(
                operation=soap_action.rsplit('/', 1)[-1],
                details={'url': url, 'soap_version': failure.version.value}
            )
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> 'SoapTransport':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
