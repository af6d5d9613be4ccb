# plunet_soap/credentials.py
"""
Connection credentials for a Plunet BusinessManager instance.

- Frozen dataclass, one per configured server/user
- Normalized base URL used for endpoints and session cache keys
- Built from the "plunet" config section plus injected secrets
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional

from plunet_soap.exceptions import ConfigurationError

DEFAULT_TIMEOUT_MS = 30000


def normalize_host(host: str) -> str:
    """Strip scheme prefix, whitespace and trailing slashes from a host."""
    host = host.strip()
    lowered = host.lower()
    for prefix in ('https://', 'http://'):
        if lowered.startswith(prefix):
            host = host[len(prefix):]
            break
    return host.rstrip('/')


@dataclass(frozen=True)
class PlunetCredentials:
    """
    Credentials and per-call options.

    Attributes:
        base_host: Server host, with or without scheme (scheme is ignored)
        username: API user name
        password: API user password
        use_https: Build https:// URLs (default True)
        timeout_ms: Per-request HTTP timeout in milliseconds
        enable_debug_mode: Attach sanitized request/response info to results
    """
    base_host: str
    username: Optional[str] = None
    password: Optional[str] = None
    use_https: bool = True
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    enable_debug_mode: bool = False

    @property
    def base_url(self) -> str:
        scheme = 'https' if self.use_https else 'http'
        return f"{scheme}://{normalize_host(self.base_host)}"

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def endpoint_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.strip('/')}"

    def __repr__(self) -> str:
        # Keep the password out of reprs and log lines
        return (f"PlunetCredentials(base_url='{self.base_url}', username='{self.username}', "
                f"timeout_ms={self.timeout_ms}, enable_debug_mode={self.enable_debug_mode})")


def credentials_from_config(config: Dict[str, Any]) -> PlunetCredentials:
    """
    Build credentials from a loaded configuration.

    Required: config['plunet']['base-host'] and the injected secrets
    '_plunet_username' / '_plunet_password'.

    Raises:
        ConfigurationError: If a required key is missing
    """
    try:
        section = config['plunet']
    except KeyError as e:
        raise ConfigurationError("Missing 'plunet' configuration section", config_key='plunet') from e

    try:
        base_host = section['base-host']
    except KeyError as e:
        raise ConfigurationError("Missing Plunet base host", config_key='plunet.base-host') from e

    try:
        username = config['_plunet_username']
        password = config['_plunet_password']
    except KeyError as e:
        raise ConfigurationError(
            "Missing Plunet secret, add it to the secrets file",
            config_key=e.args[0].lstrip('_').replace('_', '-')
        ) from e

    # Optional settings with documented defaults
    return PlunetCredentials(
        base_host=base_host,
        username=username,
        password=password,
        use_https=section.get('use-https', True),
        timeout_ms=section.get('timeout-ms', DEFAULT_TIMEOUT_MS),
        enable_debug_mode=section.get('enable-debug-mode', False),
    )
