# plunet_soap/logger.py
"""
Thread-safe singleton logger with mandatory secret redaction.

This module provides centralized logging with:
- Mandatory redaction patterns from log-redaction-patterns.json
- Mandatory logging configuration from logging-config.json
  (project config/ first, then the copy shipped in plunet_soap/defaults/)
- Hard fail if either configuration is missing or invalid
- UTC timestamps
- Thread-safe singleton pattern

SOAP traffic carries session UUIDs, passwords and base64 file payloads inside
XML tags, so the pattern file is expected to cover those tags as well as the
usual key/value secrets.
"""

import logging
import logging.config
import json
import os
import re
import sys
import time
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Tuple, Dict, Any

from plunet_soap.path_helpers import get_path, get_config_file, Dir

LOGGER_NAME = 'PlunetSoap'

# Required fields per pattern definition type
_REGEX_FIELDS = ('name', 'pattern', 'replacement')
_SIMPLE_FIELDS = ('name', 'contains', 'replacement')


def _debug_print(message: str) -> None:
    if os.getenv('DEBUG_LOGGING'):
        print(f"[DEBUG] {message}", file=sys.stderr)


def _fail_hard(title: str, message: str, path: Path) -> None:
    """Print a framed error and exit with code 1."""
    print(
        f"\n{'=' * 60}\n"
        f"{title}\n"
        f"{message}\n"
        f"File: {path}\n"
        f"{'=' * 60}",
        file=sys.stderr
    )
    sys.exit(1)


def _load_json_object(path: Path, title: str) -> Dict[str, Any]:
    """Load a JSON object from disk, exiting on any problem."""
    if not path.exists():
        _fail_hard(title, "Configuration file not found!", path)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        _fail_hard(title, f"Invalid JSON!\nError: {e}", path)
    except OSError as e:
        _fail_hard(title, f"Failed to read file!\nError: {e}", path)

    if not isinstance(data, dict):
        _fail_hard(title, "Configuration must be a JSON object (not array or scalar)", path)

    return data


class TokenRedactionFilter(logging.Filter):
    """
    Filter that redacts session tokens and secrets from log messages.

    STRICT MODE: exits if the patterns file is missing or invalid.
    """

    TITLE = "CRITICAL SECURITY ERROR"

    def __init__(self):
        super().__init__()
        self.config_path = get_config_file(Dir.CONFIG, 'log-redaction-patterns.json')

        config = _load_json_object(self.config_path, self.TITLE)
        section = config.get('redaction-patterns')
        if not isinstance(section, dict):
            self._fail("Missing or invalid top-level object 'redaction-patterns'")

        self.patterns = self._load_regex_patterns(section)
        self.simple_patterns = self._load_simple_patterns(section)

        total = len(self.patterns) + len(self.simple_patterns)
        if total == 0:
            self._fail("No redaction patterns loaded! At least one pattern is required.")

        _debug_print(f"Loaded {total} redaction patterns "
                     f"({len(self.patterns)} regex, {len(self.simple_patterns)} simple)")

    def _fail(self, message: str) -> None:
        _fail_hard(self.TITLE, message, self.config_path)

    def _checked_definitions(self, section: Dict[str, Any], key: str,
                             required: Tuple[str, ...]) -> List[Dict[str, Any]]:
        """Return the list under `key` after checking every entry has the required fields."""
        definitions = section[key]
        if not isinstance(definitions, list):
            self._fail(f"'redaction-patterns.{key}' must be an array")

        for idx, definition in enumerate(definitions):
            if not isinstance(definition, dict):
                self._fail(f"Entry {idx} of '{key}' must be an object")
            missing = [field for field in required if field not in definition]
            if missing:
                name = definition.get('name', f'index {idx}')
                self._fail(f"Entry '{name}' of '{key}' missing required field(s): {', '.join(missing)}")
            if not isinstance(definition['replacement'], str):
                self._fail(f"Entry '{definition['name']}' field 'replacement' must be a string")

        return definitions

    def _load_regex_patterns(self, section: Dict[str, Any]) -> List[Tuple[re.Pattern, str]]:
        if 'patterns' not in section:
            self._fail("Missing required key: 'redaction-patterns.patterns'")

        patterns = []
        for definition in self._checked_definitions(section, 'patterns', _REGEX_FIELDS):
            try:
                patterns.append((re.compile(definition['pattern'], re.IGNORECASE),
                                 definition['replacement']))
            except (re.error, TypeError) as e:
                self._fail(f"Invalid regex in pattern '{definition['name']}'\n"
                           f"Regex: {definition['pattern']}\nError: {e}")
            _debug_print(f"  Loaded regex: {definition['name']}")

        return patterns

    def _load_simple_patterns(self, section: Dict[str, Any]) -> List[Dict[str, Any]]:
        # Simple patterns are optional
        if 'simple-patterns' not in section:
            return []

        simple_patterns = []
        for definition in self._checked_definitions(section, 'simple-patterns', _SIMPLE_FIELDS):
            contains = definition['contains']
            if not isinstance(contains, list) or not contains:
                self._fail(f"Simple pattern '{definition['name']}' needs a non-empty 'contains' array")
            if not all(isinstance(keyword, str) and keyword for keyword in contains):
                self._fail(f"Simple pattern '{definition['name']}' contains an empty or non-string keyword")

            simple_patterns.append({
                'name': definition['name'],
                'contains': contains,
                'replacement': definition['replacement']
            })
            _debug_print(f"  Loaded simple: {definition['name']}")

        return simple_patterns

    def redact(self, text: str) -> str:
        """Apply every regex pattern, then every simple keyword pattern."""
        for pattern, replacement in self.patterns:
            text = pattern.sub(replacement, text)

        for pattern in self.simple_patterns:
            for keyword in pattern['contains']:
                if keyword.lower() in text.lower():
                    # Keyword followed by everything up to a delimiter
                    regex = f"({re.escape(keyword)})([^\\s;\"'&,<}}\\n]*)"
                    text = re.sub(regex, f"\\1{pattern['replacement']}", text, flags=re.IGNORECASE)

        return text

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact sensitive information from log record."""
        record.msg = self.redact(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self.redact(str(v)) for k, v in record.args.items()}
            else:
                record.args = tuple(self.redact(str(arg)) for arg in record.args)

        return True


class UTCFormatter(logging.Formatter):
    """Formatter that uses UTC timestamps."""

    converter = time.gmtime


class PlunetLogger:
    """
    Thread-safe singleton logger for the adapter.

    Features:
    - Mandatory secret redaction from JSON file
    - Mandatory logging configuration from JSON file
    - UTC timestamps
    - Daily log file under logs/

    SECURITY: Will exit(1) if either configuration is not properly set.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Ensure only one instance exists."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        with self._lock:
            if self._initialized:
                return

            _debug_print("Initializing PlunetLogger...")

            self.logger = logging.getLogger(LOGGER_NAME)
            self.token_filter = TokenRedactionFilter()
            self._setup_logger()
            self._initialized = True

            self.logger.debug(f"PlunetLogger initialized with {len(self.token_filter.patterns)} regex, "
                              f"{len(self.token_filter.simple_patterns)} simple redaction patterns")

    def _setup_logger(self) -> None:
        """Apply logging-config.json (project config/ or packaged default). Hard fails if invalid."""
        config_path = get_config_file(Dir.CONFIG, 'logging-config.json')
        title = "CRITICAL CONFIGURATION ERROR"
        config = _load_json_object(config_path, title)

        missing_sections = [s for s in ('formatters', 'handlers', 'loggers') if s not in config]
        if missing_sections:
            _fail_hard(title, f"Missing required sections: {', '.join(missing_sections)}", config_path)

        if LOGGER_NAME not in config['loggers']:
            _fail_hard(title, f"'{LOGGER_NAME}' logger not configured in 'loggers'", config_path)

        try:
            log_path = str(get_path(Dir.LOGS, f"plunet_{datetime.now().strftime('%Y-%m-%d')}.log"))
            for handler_config in config['handlers'].values():
                if handler_config['class'].endswith('FileHandler'):
                    handler_config['filename'] = log_path

            for formatter_config in config['formatters'].values():
                formatter_config['()'] = UTCFormatter

            logging.config.dictConfig(config)
            self.logger = logging.getLogger(LOGGER_NAME)
            _debug_print(f"Logging configured from {config_path}")

        except (KeyError, TypeError, ValueError, OSError) as e:
            _fail_hard(title, f"Failed to apply logging configuration!\nError: {e}", config_path)

        # Redact on our logger and on root so third-party records are covered too
        self.logger.addFilter(self.token_filter)
        logging.getLogger().addFilter(self.token_filter)

    def redact(self, text: str) -> str:
        """Redact text with the loaded patterns, for callers that build their own output."""
        return self.token_filter.redact(text)

    def debug(self, msg: str, *args, **kwargs) -> None:
        self.logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self.logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self.logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self.logger.error(msg, *args, **kwargs)


def setup_logger() -> PlunetLogger:
    """
    Get configured logger instance.

    WILL EXIT(1) if log-redaction-patterns.json or logging-config.json
    is missing or invalid.

    Returns:
        Configured PlunetLogger instance

    Example:
        >>> logger = setup_logger()
        >>> logger.info(f"[acme-prod] Calling DataCustomer30.getCustomerObject")

    Debug Mode:
        Set DEBUG_LOGGING=1 to see initialization details on stderr.
    """
    return PlunetLogger()
