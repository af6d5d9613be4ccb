# tests/conftest.py
"""
Shared fixtures: fake Plunet server, canned SOAP responses, credentials.

The fake server stands in for requests.Session inside SoapTransport and
routes each POST by the api:<operation> element of the envelope.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

REPO_ROOT = Path(__file__).resolve().parent.parent

# Logger and config lookups resolve against the repository checkout
os.environ.setdefault('PROJECT_ROOT', str(REPO_ROOT))

from plunet_soap.credentials import PlunetCredentials  # noqa: E402
from plunet_soap.session_manager import SessionCache, SessionManager  # noqa: E402
from plunet_soap.soap_transport import SoapTransport  # noqa: E402

LOGIN_TOKEN = '0b6e3c1e-6c2d-4e2b-9a1f-1234567890ab'


def soap_response(operation: str, return_xml: str) -> str:
    """A SOAP 1.1 response envelope with return_xml inside <return>."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">'
        '<soap:Body>'
        f'<ns2:{operation}Response xmlns:ns2="http://API.Integration/">'
        f'<return>{return_xml}</return>'
        f'</ns2:{operation}Response>'
        '</soap:Body>'
        '</soap:Envelope>'
    )


def soap_fault(message: str, code: str = 'soap:Server') -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">'
        '<soap:Body><soap:Fault>'
        f'<faultcode>{code}</faultcode><faultstring>{message}</faultstring>'
        '</soap:Fault></soap:Body></soap:Envelope>'
    )


def http_response(status_code: int, text: str) -> MagicMock:
    return MagicMock(status_code=status_code, text=text)


class FakePlunetServer:
    """
    Minimal requests.Session replacement.

    responses maps operation name to a response text, a (status, text)
    tuple, an exception instance, or a list of those consumed in order.
    """

    def __init__(self, responses: Dict[str, Any]):
        self.responses = responses
        self.calls: List[Dict[str, Any]] = []

    def post(self, url, data=None, headers=None, timeout=None):
        body = data.decode('utf-8') if isinstance(data, bytes) else data
        operation = re.search(r'<api:(\w+)>', body).group(1)
        self.calls.append({
            'url': url,
            'operation': operation,
            'body': body,
            'headers': headers,
            'timeout': timeout,
        })

        response = self.responses[operation]
        if isinstance(response, list):
            response = response.pop(0)
        if isinstance(response, Exception):
            raise response
        status, text = response if isinstance(response, tuple) else (200, response)
        return http_response(status, text)

    def close(self):
        pass

    def operations(self) -> List[str]:
        return [call['operation'] for call in self.calls]

    def bodies(self, operation: str) -> List[str]:
        return [call['body'] for call in self.calls if call['operation'] == operation]


@pytest.fixture
def credentials() -> PlunetCredentials:
    return PlunetCredentials(base_host='plunet.example.com', username='api', password='secret')


@pytest.fixture
def debug_credentials() -> PlunetCredentials:
    return PlunetCredentials(base_host='plunet.example.com', username='api', password='secret',
                             enable_debug_mode=True)


@pytest.fixture
def server() -> FakePlunetServer:
    return FakePlunetServer({'login': soap_response('login', LOGIN_TOKEN)})


@pytest.fixture
def transport(server) -> SoapTransport:
    return SoapTransport(session=server)


@pytest.fixture
def session_cache() -> SessionCache:
    return SessionCache()


@pytest.fixture
def session_manager(transport, session_cache) -> SessionManager:
    return SessionManager(transport, cache=session_cache)
