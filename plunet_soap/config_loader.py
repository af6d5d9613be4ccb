# plunet_soap/config_loader.py
"""
ConfigLoader with schema validation, caching, and thread safety.

Handles configuration and secrets with:
- JSON Schema validation (org-env-config-schema.json, packaged default)
- Automatic secrets injection with underscore prefix
- Cached loader instances per org/env
"""
import json
import jsonschema
import threading
from typing import Dict, Any, Optional
from weakref import WeakValueDictionary

from plunet_soap.exceptions import ConfigurationError, ValidationError, ErrorContext, HelpfulError
from plunet_soap.logger import setup_logger
from plunet_soap.path_helpers import get_config_file, Dir, CategoryType

logger = setup_logger()

CONFIG_SCHEMA = 'org-env-config-schema.json'

# Thread-safe cache for ConfigLoader instances
_loader_cache: WeakValueDictionary = WeakValueDictionary()
_cache_lock = threading.Lock()


def _read_json(category: CategoryType, filename: str) -> Dict[str, Any]:
    """Read a JSON object (project file or packaged default). Raises FileNotFoundError if absent."""
    path = get_config_file(category, filename)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{filename} must contain a JSON object")
    return data


class ConfigLoader:
    """
    Configuration loader with validation and caching.

    Files used for org "acme" and env "prod":
    - config/acme-prod-config.json (required, schema validated)
    - config/acme-prod-config-secrets.json (optional, flat key/value)
    """

    __slots__ = ['org_id', 'env_type', '_config', '_lock', '__weakref__']

    def __init__(self, org_id: str, env_type: str) -> None:
        self.org_id = org_id
        self.env_type = env_type
        self._config: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    @property
    def config_filename(self) -> str:
        return f"{self.org_id}-{self.env_type}-config.json"

    @property
    def secrets_filename(self) -> str:
        return f"{self.org_id}-{self.env_type}-config-secrets.json"

    def _load_secrets(self) -> Dict[str, Any]:
        """
        Load the flat key-value secrets file.

        Returns:
            Dictionary of secrets, or empty dict if file not found

        Raises:
            ConfigurationError: If secrets contain nested structures
        """
        try:
            secrets = _read_json(Dir.CONFIG, self.secrets_filename)
        except FileNotFoundError:
            logger.debug(f"No secrets file found: {self.secrets_filename}")
            return {}

        for key, value in secrets.items():
            if isinstance(value, (dict, list)):
                raise ConfigurationError(
                    "Secrets must be flat key-value pairs",
                    config_key=key
                )

        logger.info(f"Loaded secrets: {self.secrets_filename}")
        return secrets

    @staticmethod
    def _inject_secrets(config: Dict[str, Any], secrets: Dict[str, Any]) -> None:
        """
        Inject flat secrets into config with underscore prefix.

        "plunet-password" → "_plunet_password"
        """
        for key, value in secrets.items():
            new_key = "_" + key.replace("-", "_")
            config[new_key] = value
            logger.debug(f"Injected secret key: {new_key}")

    def validate_schema(self, data: Dict[str, Any], schema_filename: str) -> None:
        """
        Validate data against a JSON schema (project schemas/ first, then the packaged copy).

        Raises:
            ConfigurationError: If the schema file is missing
            ValidationError: If the data does not match the schema
        """
        logger.debug(f"Starting schema validation: {schema_filename} for "
                     f"{self.org_id}-{self.env_type}")

        try:
            schema = _read_json(Dir.SCHEMAS, schema_filename)
        except FileNotFoundError as e:
            logger.error(f"❌ CRITICAL: Schema file not found: {schema_filename}")
            raise ConfigurationError(
                f"Schema file not found: {schema_filename}",
                context=ErrorContext(
                    operation="schema_validation",
                    resource=schema_filename,
                    details={"org_id": self.org_id, "env_type": self.env_type}
                )
            ) from e

        try:
            jsonschema.validate(instance=data, schema=schema)
            logger.info(f"✅ Schema validation successful: {schema_filename} for "
                        f"{self.org_id}-{self.env_type}")

        except jsonschema.ValidationError as e:
            error_path = " > ".join(str(p) for p in e.absolute_path) if e.absolute_path else "root"
            logger.error(
                f"❌ CRITICAL: Schema validation failed for {self.org_id}-{self.env_type}: "
                f"Error at '{error_path}' - {e.message}"
            )
            raise ValidationError(
                f"Schema validation failed at '{error_path}': {e.message}",
                field=error_path,
                context=ErrorContext(
                    operation="schema_validation",
                    resource=self.config_filename,
                    details={
                        "schema_file": schema_filename,
                        "error_path": error_path,
                        "validation_message": e.message
                    }
                )
            ) from e

    def load_config(self, validate: bool = True,
                    include_secrets: bool = True,
                    force_reload: bool = False) -> Dict[str, Any]:
        """
        Load the main configuration with optional secrets injection.

        Args:
            validate: Whether to validate against schema (default: True)
            include_secrets: Whether to load and inject secrets (default: True)
            force_reload: Force reload even if cached (default: False)

        Returns:
            The configuration dictionary with injected secrets

        Raises:
            HelpfulError: If the config file is missing or not valid JSON
            ValidationError: If schema validation fails
        """
        with self._lock:
            if self._config is not None and not force_reload:
                logger.debug(f"Returning cached config for {self.org_id}-{self.env_type}")
                return self._config

            try:
                config = _read_json(Dir.CONFIG, self.config_filename)
            except FileNotFoundError:
                raise HelpfulError(
                    what_went_wrong=f"Configuration file '{self.config_filename}' not found in config/ directory",
                    how_to_fix=f"Create 'config/{self.config_filename}' (see config/acme-test-config_example.json)",
                    example="""Example minimal config:
{
  "plunet": {
    "base-host": "acme.plunet.example.com",
    "use-https": true,
    "timeout-ms": 30000
  }
}"""
                )
            except json.JSONDecodeError as e:
                raise HelpfulError(
                    what_went_wrong=f"Configuration file '{self.config_filename}' is not valid JSON: {e}",
                    how_to_fix="Fix the JSON syntax at the reported line and column"
                ) from e

            logger.info(f"Loaded config: {self.config_filename}")

            if validate:
                self.validate_schema(config, CONFIG_SCHEMA)

            if include_secrets:
                secrets = self._load_secrets()
                if secrets:
                    self._inject_secrets(config, secrets)
                    logger.debug(f"Injected {len(secrets)} secrets into config")

            self._config = config
            return self._config

    def __repr__(self) -> str:
        return f"ConfigLoader(org_id='{self.org_id}', env_type='{self.env_type}')"


def get_config_loader(org_id: str, env_type: str,
                      use_cache: bool = True) -> ConfigLoader:
    """
    Get or create a ConfigLoader instance.

    Example:
         loader = get_config_loader("acme", "prod")
         config = loader.load_config()
    """
    if not use_cache:
        return ConfigLoader(org_id, env_type)

    cache_key = f"{org_id}_{env_type}"

    with _cache_lock:
        loader = _loader_cache.get(cache_key)
        if loader is not None:
            logger.debug(f"Returning cached ConfigLoader for {cache_key}")
            return loader

        loader = ConfigLoader(org_id, env_type)
        _loader_cache[cache_key] = loader
        logger.debug(f"Created and cached ConfigLoader for {cache_key}")
        return loader
