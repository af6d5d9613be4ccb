# tests/test_config_loader.py
"""Configuration loading, schema validation, secrets injection and credentials."""

import json

import pytest

from plunet_soap.client import PlunetClient, clear_client_cache, create_plunet_client
from plunet_soap.config_loader import CONFIG_SCHEMA, ConfigLoader, get_config_loader
from plunet_soap.credentials import PlunetCredentials, credentials_from_config, normalize_host
from plunet_soap.exceptions import ConfigurationError, HelpfulError, ValidationError
from plunet_soap.path_helpers import (
    PACKAGE_DEFAULTS, Dir, get_config_file, reset_project_root, set_project_root
)
from plunet_soap.session_manager import SessionCache

VALID_CONFIG = {
    "plunet": {
        "base-host": "https://acme.plunet.example.com/",
        "use-https": True,
        "timeout-ms": 15000,
        "enable-debug-mode": False,
        "session-ttl-seconds": 600
    }
}

SECRETS = {"plunet-username": "api", "plunet-password": "secret"}


@pytest.fixture
def project(tmp_path):
    (tmp_path / 'config').mkdir()
    set_project_root(tmp_path)
    yield tmp_path
    reset_project_root()


def write_config(project, data, name='acme-test-config.json'):
    (project / 'config' / name).write_text(json.dumps(data), encoding='utf-8')


def test_load_config_injects_secrets(project):
    write_config(project, VALID_CONFIG)
    write_config(project, SECRETS, 'acme-test-config-secrets.json')

    config = ConfigLoader('acme', 'test').load_config()

    assert config['plunet']['timeout-ms'] == 15000
    assert config['_plunet_username'] == 'api'
    assert config['_plunet_password'] == 'secret'


def test_load_config_without_secrets_file(project):
    write_config(project, VALID_CONFIG)

    config = ConfigLoader('acme', 'test').load_config()

    assert '_plunet_password' not in config


def test_config_is_cached_until_forced(project):
    write_config(project, VALID_CONFIG)
    loader = ConfigLoader('acme', 'test')
    first = loader.load_config()

    write_config(project, {"plunet": {"base-host": "other.example.com"}})

    assert loader.load_config() is first
    assert loader.load_config(force_reload=True)['plunet']['base-host'] == 'other.example.com'


def test_missing_base_host_fails_schema(project):
    write_config(project, {"plunet": {"use-https": True}})

    with pytest.raises(ValidationError) as exc_info:
        ConfigLoader('acme', 'test').load_config()

    assert exc_info.value.field == 'plunet'


def test_unknown_plunet_key_fails_schema(project):
    write_config(project, {"plunet": {"base-host": "h", "retries": 3}})

    with pytest.raises(ValidationError):
        ConfigLoader('acme', 'test').load_config()


def test_missing_config_file_is_helpful(project):
    with pytest.raises(HelpfulError) as exc_info:
        ConfigLoader('acme', 'prod').load_config()

    assert 'acme-prod-config.json' in exc_info.value.what_went_wrong


def test_invalid_json_is_helpful(project):
    (project / 'config' / 'acme-test-config.json').write_text('{"plunet": ', encoding='utf-8')

    with pytest.raises(HelpfulError):
        ConfigLoader('acme', 'test').load_config()


def test_nested_secrets_rejected(project):
    write_config(project, VALID_CONFIG)
    write_config(project, {"plunet": {"password": "x"}}, 'acme-test-config-secrets.json')

    with pytest.raises(ConfigurationError) as exc_info:
        ConfigLoader('acme', 'test').load_config()

    assert exc_info.value.config_key == 'plunet'


def test_packaged_defaults_used_without_project_files(project):
    assert get_config_file(Dir.CONFIG, 'logging-config.json') == PACKAGE_DEFAULTS / 'logging-config.json'
    assert get_config_file(Dir.SCHEMAS, CONFIG_SCHEMA) == PACKAGE_DEFAULTS / CONFIG_SCHEMA
    assert not (project / 'schemas').exists()


def test_project_file_overrides_packaged_default(project):
    override = project / 'config' / 'logging-config.json'
    override.write_text('{"version": 1}', encoding='utf-8')

    assert get_config_file(Dir.CONFIG, 'logging-config.json') == override


def test_missing_file_without_default_points_at_project(project):
    assert get_config_file(Dir.CONFIG, 'acme-prod-config.json') == project / 'config' / 'acme-prod-config.json'


def test_schema_validation_with_packaged_schema_only(project):
    write_config(project, VALID_CONFIG)

    assert ConfigLoader('acme', 'test').load_config()['plunet']['use-https'] is True


def test_path_categories():
    assert Dir.all() == {'config', 'logs', 'schemas'}
    assert not Dir.validate('tmp')


def test_get_config_loader_caches_instances(project):
    assert get_config_loader('acme', 'test') is get_config_loader('acme', 'test')
    assert get_config_loader('acme', 'test', use_cache=False) is not get_config_loader('acme', 'test')


def test_normalize_host():
    assert normalize_host(' HTTPS://acme.plunet.example.com/ ') == 'acme.plunet.example.com'
    assert normalize_host('acme.plunet.example.com//') == 'acme.plunet.example.com'


def test_credentials_from_config():
    credentials = credentials_from_config({**VALID_CONFIG, '_plunet_username': 'api', '_plunet_password': 'pw'})

    assert credentials.base_url == 'https://acme.plunet.example.com'
    assert credentials.endpoint_url('/DataJob30') == 'https://acme.plunet.example.com/DataJob30'
    assert credentials.timeout_seconds == 15.0
    assert 'pw' not in repr(credentials)


def test_credentials_defaults():
    credentials = credentials_from_config({'plunet': {'base-host': 'h'}, '_plunet_username': 'u',
                                           '_plunet_password': 'p'})
    assert credentials == PlunetCredentials(base_host='h', username='u', password='p')


def test_credentials_missing_secret():
    with pytest.raises(ConfigurationError) as exc_info:
        credentials_from_config(VALID_CONFIG)

    assert exc_info.value.config_key == 'plunet-username'


def test_credentials_missing_section():
    with pytest.raises(ConfigurationError) as exc_info:
        credentials_from_config({})

    assert exc_info.value.config_key == 'plunet'


def test_create_plunet_client_uses_ttl():
    config = {**VALID_CONFIG, '_org_id': 'acme', '_env_type': 'test',
              '_plunet_username': 'api', '_plunet_password': 'pw'}

    with create_plunet_client(config, session_cache=SessionCache()) as client:
        assert isinstance(client, PlunetClient)
        assert client.session_manager.ttl_seconds == 600
        assert client.credentials.timeout_ms == 15000


def test_create_plunet_client_caching():
    config = {**VALID_CONFIG, '_org_id': 'acme', '_env_type': 'test',
              '_plunet_username': 'api', '_plunet_password': 'pw'}

    first = create_plunet_client(config, use_cache=True)
    assert create_plunet_client(config, use_cache=True) is first

    clear_client_cache()

    second = create_plunet_client(config, use_cache=True)
    assert second is not first
    first.close()
    second.close()
