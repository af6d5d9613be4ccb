# plunet_soap/debug_helpers.py
"""
Sanitized request/response output for debug mode and error messages.

- Secrets and file payloads in envelopes are replaced by placeholders
- Long envelopes are clipped
- debugInfo blocks carry UTC timestamps
"""

import re
from datetime import datetime, UTC
from typing import Any, Dict, Optional

MAX_ENVELOPE_CHARS = 16384

# Tag -> placeholder, matched case-insensitively with any namespace prefix
REDACT_TAGS = {
    'UUID': '[REDACTED_UUID]',
    'Password': '[REDACTED]',
    'FileByteStream': '[REDACTED_FILE_B64]',
    'FilePathName': '[REDACTED]',
    'Authorization': '[REDACTED]',
    'Token': '[REDACTED]',
}

_REDACT_PATTERNS = [
    (re.compile(rf'(<(?:\w+:)?{tag}\b[^>/]*>)[\s\S]*?(</(?:\w+:)?{tag}>)', re.IGNORECASE), placeholder)
    for tag, placeholder in REDACT_TAGS.items()
]


def clip(text: str, max_chars: int = MAX_ENVELOPE_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}\n[...truncated {len(text) - max_chars} chars]"


def sanitize_envelope(envelope: str) -> str:
    """Replace sensitive element contents with placeholders and clip the result."""
    sanitized = envelope
    for pattern, placeholder in _REDACT_PATTERNS:
        sanitized = pattern.sub(lambda m, p=placeholder: f"{m.group(1)}{p}{m.group(2)}", sanitized)
    return clip(sanitized)


def build_error_description(envelope: str, soap_action: Optional[str] = None) -> str:
    """Render the sanitized envelope as a block suitable for an error message."""
    lines = []
    if soap_action:
        lines.append(f"SOAPAction: {soap_action}")
    lines.append("--- Sent SOAP Envelope (sanitized) ---")
    lines.append(sanitize_envelope(envelope))
    lines.append("--------------------------------------")
    return "\n".join(lines)


def _utc_timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def build_debug_info(envelope: str, soap_action: str, url: str, response_xml: str) -> Dict[str, Any]:
    return {
        'debugInfo': {
            'request': {
                'url': url,
                'soapAction': soap_action,
                'envelope': sanitize_envelope(envelope),
            },
            'response': {
                'xml': response_xml,
            },
            'timestamp': _utc_timestamp(),
        }
    }
