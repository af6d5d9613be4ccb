# plunet_soap/session_manager.py
"""
Plunet session lifecycle with an injected TTL cache.

Sessions are keyed by "<normalized server url>:<username>" so two users on
the same server never share a token. The cache guards its dict with a lock;
logins themselves are not serialized, so two threads missing at the same
time may both log in and the last write wins.

States per key:
    NO_SESSION --login--> ACTIVE --TTL expiry or logout--> NO_SESSION
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Dict, Any, Optional, MutableMapping

from plunet_soap.credentials import PlunetCredentials
from plunet_soap.exceptions import (
    PlunetAuthenticationError, PlunetSoapFaultError, ValidationError, ErrorContext
)
from plunet_soap.logger import setup_logger
from plunet_soap.soap_transport import SoapTransport, escape_xml
from plunet_soap.xml_helpers import (
    extract_uuid, extract_soap_fault, extract_result_base,
    parse_boolean_result, parse_string_result
)

logger = setup_logger()

DEFAULT_SESSION_TTL_SECONDS = 1800
PLUNET_API_ENDPOINT = 'PlunetAPI'


@dataclass
class SessionEntry:
    """A cached session token with its validity window."""
    token: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def issue(cls, token: str, ttl_seconds: int) -> 'SessionEntry':
        now = datetime.now(UTC)
        return cls(token=token, issued_at=now, expires_at=now + timedelta(seconds=ttl_seconds))

    @property
    def is_expired(self) -> bool:
        return datetime.now(UTC) >= self.expires_at

    def to_dict(self) -> Dict[str, str]:
        return {
            'token': self.token,
            'issued_at': self.issued_at.isoformat(),
            'expires_at': self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> 'SessionEntry':
        return cls(
            token=data['token'],
            issued_at=datetime.fromisoformat(data['issued_at']),
            expires_at=datetime.fromisoformat(data['expires_at']),
        )


def session_key(credentials: PlunetCredentials) -> str:
    return f"{credentials.base_url}:{credentials.username or 'anonymous'}"


class SessionCache:
    """
    Thread-safe in-memory session store.

    An optional host-provided mapping mirrors entries as a best-effort
    durability upgrade. Failures writing or reading it are logged and
    otherwise ignored; the in-memory dict is the source of truth.
    """

    def __init__(self, persistent_store: Optional[MutableMapping[str, Any]] = None):
        self._entries: Dict[str, SessionEntry] = {}
        self._lock = threading.Lock()
        self._store = persistent_store

    def get(self, key: str) -> Optional[SessionEntry]:
        """Return the unexpired entry for key. Expired entries are dropped."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._load_mirrored(key)
                if entry is not None:
                    self._entries[key] = entry

            if entry is not None and entry.is_expired:
                logger.debug(f"Session for {key} expired at {entry.expires_at.isoformat()}")
                self._remove_locked(key)
                return None
            return entry

    def put(self, key: str, entry: SessionEntry) -> None:
        with self._lock:
            self._entries[key] = entry
            if self._store is not None:
                try:
                    self._store[key] = entry.to_dict()
                except Exception as e:
                    logger.warning(f"Could not mirror session for {key}: {e}")

    def remove(self, key: str) -> None:
        with self._lock:
            self._remove_locked(key)

    def clear(self) -> None:
        with self._lock:
            for key in list(self._entries):
                self._remove_locked(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _remove_locked(self, key: str) -> None:
        self._entries.pop(key, None)
        if self._store is not None:
            try:
                self._store.pop(key, None)
            except Exception as e:
                logger.warning(f"Could not remove mirrored session for {key}: {e}")

    def _load_mirrored(self, key: str) -> Optional[SessionEntry]:
        if self._store is None:
            return None
        try:
            data = self._store.get(key)
            return SessionEntry.from_dict(data) if data else None
        except Exception as e:
            logger.warning(f"Ignoring unreadable mirrored session for {key}: {e}")
            return None


class SessionManager:
    """
    Acquires, caches and releases Plunet session tokens.

    Example:
        >>> manager = SessionManager(SoapTransport())
        >>> token = manager.ensure_session(credentials)
    """

    def __init__(self, transport: SoapTransport,
                 cache: Optional[SessionCache] = None,
                 ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS):
        self.transport = transport
        self.cache = cache if cache is not None else SessionCache()
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _api_url(credentials: PlunetCredentials, login_url: Optional[str] = None) -> str:
        return login_url or credentials.endpoint_url(PLUNET_API_ENDPOINT)

    def _call(self, credentials: PlunetCredentials, operation: str, body_xml: str,
              url: Optional[str] = None, timeout_ms: Optional[int] = None) -> str:
        xml = self.transport.send_operation(
            self._api_url(credentials, url),
            operation,
            body_xml,
            timeout_ms=timeout_ms or credentials.timeout_ms
        )

        fault = extract_soap_fault(xml)
        if fault:
            raise PlunetSoapFaultError(
                fault['message'],
                fault_code=fault['code'],
                response=xml,
                context=ErrorContext(operation=operation, resource=PLUNET_API_ENDPOINT)
            )
        return xml

    def ensure_session(self, credentials: PlunetCredentials,
                       login_url: Optional[str] = None,
                       timeout_ms: Optional[int] = None) -> str:
        """Return a cached unexpired token, logging in on a miss."""
        key = session_key(credentials)
        entry = self.cache.get(key)
        if entry is not None:
            logger.debug(f"Session cache hit for {key}")
            return entry.token

        logger.debug(f"Session cache miss for {key}, logging in")
        return self.login(credentials, login_url=login_url, timeout_ms=timeout_ms)

    def login(self, credentials: PlunetCredentials,
              login_url: Optional[str] = None,
              timeout_ms: Optional[int] = None) -> str:
        """
        Log in and cache the new token.

        Raises:
            PlunetTransportError: Both protocol attempts failed
            PlunetSoapFaultError: The server answered with a Fault
            PlunetAuthenticationError: No token in the response (e.g. 'refused')
        """
        body = (f"<arg0>{escape_xml(credentials.username or '')}</arg0>"
                f"<arg1>{escape_xml(credentials.password or '')}</arg1>")
        xml = self._call(credentials, 'login', body, url=login_url, timeout_ms=timeout_ms)

        token = extract_uuid(xml)
        if not token:
            raise PlunetAuthenticationError(
                "Login succeeded at transport level but no session UUID was returned",
                response=xml,
                context=ErrorContext(operation='login', resource=PLUNET_API_ENDPOINT,
                                     details={'base_url': credentials.base_url,
                                              'username': credentials.username})
            )

        key = session_key(credentials)
        self.cache.put(key, SessionEntry.issue(token, self.ttl_seconds))
        logger.info(f"Logged in to {credentials.base_url} as {credentials.username}")
        return token

    def invalidate(self, credentials: PlunetCredentials) -> None:
        self.cache.remove(session_key(credentials))

    def logout(self, credentials: PlunetCredentials, token: Optional[str] = None) -> Dict[str, Any]:
        """
        End a session. The cache entry is removed whether or not the remote call succeeds.

        Raises:
            ValidationError: No token given and none cached
        """
        token = (token or '').strip()
        if not token:
            entry = self.cache.get(session_key(credentials))
            if entry is None:
                raise ValidationError("No stored session UUID to logout", field='UUID',
                                      context=ErrorContext(operation='logout', resource=PLUNET_API_ENDPOINT))
            token = entry.token

        try:
            xml = self._call(credentials, 'logout', f"<UUID>{escape_xml(token)}</UUID>")
        finally:
            self.invalidate(credentials)

        logger.info(f"Logged out from {credentials.base_url}")
        result: Dict[str, Any] = {'uuid': token}
        result.update(extract_result_base(xml))
        return result

    def validate(self, credentials: PlunetCredentials, token: Optional[str] = None) -> Dict[str, Any]:
        """
        Ask the server whether a token is still valid.

        A false answer is returned as valid=False; it is not an error and the
        cache is left untouched.
        """
        token = (token or '').strip() or self.ensure_session(credentials)

        username = (credentials.username or '').strip()
        password = (credentials.password or '').strip()
        if not username or not password:
            raise ValidationError("Username and Password are required for validate()",
                                  context=ErrorContext(operation='validate', resource=PLUNET_API_ENDPOINT))

        body = (f"<UUID>{escape_xml(token)}</UUID>"
                f"<Username>{escape_xml(username)}</Username>"
                f"<Password>{escape_xml(password)}</Password>")
        xml = self._call(credentials, 'validate', body)

        parsed = parse_boolean_result(xml)
        valid = parsed.pop('value') is True
        return {'valid': valid, 'uuid': token, **parsed}

    def is_logged_in(self, credentials: PlunetCredentials) -> Dict[str, Any]:
        """Report whether an unexpired session is cached, without any network call."""
        entry = self.cache.get(session_key(credentials))
        if entry is None:
            return {'loggedIn': False}
        return {'loggedIn': True, 'uuid': entry.token}

    def get_plunet_api_version(self, credentials: PlunetCredentials) -> Dict[str, Any]:
        xml = self._call(credentials, 'getVersion', '')
        return parse_string_result(xml)

    def get_plunet_version(self, credentials: PlunetCredentials) -> Dict[str, Any]:
        xml = self._call(credentials, 'getPlunetVersion', '')
        return parse_string_result(xml)
