# plunet_soap/client.py
"""
Caller-facing Plunet client and factory.

- PlunetClient.call(resource, operation, arguments) for any registered operation
- PlunetAPI operations (login, logout, validate, versions) go to the session manager
- create_plunet_client() builds a client from a loaded configuration
- Optional client caching, context manager support

Configuration is REQUIRED - missing keys fail hard with ConfigurationError.
"""

import threading
from typing import Dict, Any, Optional, Mapping
from weakref import WeakValueDictionary

from plunet_soap.credentials import PlunetCredentials, credentials_from_config
from plunet_soap.executor import OperationExecutor
from plunet_soap.logger import setup_logger
from plunet_soap.operations import get_descriptor
from plunet_soap.session_manager import (
    DEFAULT_SESSION_TTL_SECONDS, PLUNET_API_ENDPOINT, SessionCache, SessionManager
)
from plunet_soap.soap_transport import SoapTransport

logger = setup_logger()

# Sessions outlive individual clients within one process
_shared_session_cache = SessionCache()

_client_cache: WeakValueDictionary = WeakValueDictionary()
_cache_lock = threading.Lock()


class PlunetClient:
    """
    One configured connection to a Plunet server.

    Example:
        >>> with PlunetClient(credentials) as client:
        ...     result = client.call('DataCustomer30', 'getCustomerObject', {'customerID': 42})
        ...     customer = result['customer']
    """

    def __init__(self, credentials: PlunetCredentials,
                 transport: Optional[SoapTransport] = None,
                 session_manager: Optional[SessionManager] = None,
                 session_cache: Optional[SessionCache] = None,
                 ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS):
        self.credentials = credentials
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else SoapTransport()
        self.session_manager = session_manager or SessionManager(
            self.transport,
            cache=session_cache if session_cache is not None else _shared_session_cache,
            ttl_seconds=ttl_seconds
        )
        self.executor = OperationExecutor(self.transport, self.session_manager, credentials)

    def call(self, resource: str, operation: str,
             arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute resource.operation with the given arguments.

        Raises:
            ValidationError: Unknown resource/operation or missing required parameter
            PlunetApiError: Any transport, fault, status or authentication failure
        """
        descriptor = get_descriptor(resource, operation)
        if descriptor.resource == PLUNET_API_ENDPOINT:
            return self._call_plunet_api(descriptor.operation, dict(arguments or {}))
        return self.executor.execute(descriptor, arguments)

    def _call_plunet_api(self, operation: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        if operation == 'login':
            payload = self.login()
        elif operation == 'logout':
            payload = self.logout(arguments.get('UUID'))
        elif operation == 'validate':
            payload = self.validate(arguments.get('UUID'))
        elif operation == 'getVersion':
            payload = self.session_manager.get_plunet_api_version(self.credentials)
        else:
            payload = self.session_manager.get_plunet_version(self.credentials)

        return {'success': True, 'resource': PLUNET_API_ENDPOINT, 'operation': operation, **payload}

    def login(self) -> Dict[str, Any]:
        """Force a fresh login, replacing any cached session."""
        return {'uuid': self.session_manager.login(self.credentials)}

    def logout(self, token: Optional[str] = None) -> Dict[str, Any]:
        return self.session_manager.logout(self.credentials, token)

    def validate(self, token: Optional[str] = None) -> Dict[str, Any]:
        return self.session_manager.validate(self.credentials, token)

    def is_logged_in(self) -> Dict[str, Any]:
        return self.session_manager.is_logged_in(self.credentials)

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> 'PlunetClient':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        logger.debug(f"Closed Plunet client for {self.credentials.base_url}")

    def __repr__(self) -> str:
        return f"PlunetClient({self.credentials!r})"


def create_plunet_client(config: Dict[str, Any],
                         use_cache: bool = False,
                         cache_key: Optional[str] = None,
                         session_cache: Optional[SessionCache] = None) -> PlunetClient:
    """
    Create a configured Plunet client.

    Args:
        config: Configuration dictionary with the 'plunet' section and injected secrets
        use_cache: Whether to cache and reuse client instances
        cache_key: Optional custom cache key
        session_cache: Session store to use instead of the process-wide one

    Returns:
        Configured PlunetClient instance

    Raises:
        ConfigurationError: If required configuration is missing

    Example:
        >>> config = get_config_loader('acme', 'test').load_config()
        >>> client = create_plunet_client(config)
    """
    if use_cache:
        if not cache_key:
            cache_key = f"plunet_{config['_org_id']}_{config['_env_type']}"

        with _cache_lock:
            if cache_key in _client_cache:
                logger.debug(f"Returning cached Plunet client for {cache_key}")
                return _client_cache[cache_key]

    credentials = credentials_from_config(config)
    ttl_seconds = config['plunet'].get('session-ttl-seconds', DEFAULT_SESSION_TTL_SECONDS)

    client = PlunetClient(credentials, session_cache=session_cache, ttl_seconds=ttl_seconds)

    if use_cache and cache_key:
        with _cache_lock:
            _client_cache[cache_key] = client
            logger.debug(f"Cached Plunet client for {cache_key}")

    logger.debug(f"Created Plunet client for {credentials.base_url} "
                 f"(debug={credentials.enable_debug_mode}, ttl={ttl_seconds}s)")
    return client


def clear_client_cache() -> None:
    """Clear all cached client instances (sessions are kept)."""
    with _cache_lock:
        count = len(_client_cache)
        _client_cache.clear()
        if count > 0:
            logger.debug(f"Cleared {count} cached Plunet clients")
