# tests/test_plunet_call_script.py
"""Argument handling of src/plunet_call_script.py."""

import importlib.util

import pytest

from conftest import REPO_ROOT

from plunet_soap.exceptions import HelpfulError


@pytest.fixture(scope='module')
def script():
    location = importlib.util.spec_from_file_location(
        'plunet_call_script', REPO_ROOT / 'src' / 'plunet_call_script.py'
    )
    module = importlib.util.module_from_spec(location)
    location.loader.exec_module(module)
    return module


def test_parse_arguments_json(script):
    assert script.parse_arguments_json('{"jobID": 7, "projectType": 3}') == {'jobID': 7, 'projectType': 3}


@pytest.mark.parametrize('raw', ['{"jobID": ', '[1, 2]'])
def test_parse_arguments_json_rejects(script, raw):
    with pytest.raises(HelpfulError):
        script.parse_arguments_json(raw)


def test_unknown_operation_is_helpful(script):
    config = {
        'plunet': {'base-host': 'plunet.example.com'},
        '_plunet_username': 'api', '_plunet_password': 'pw',
        '_resource': 'DataJob30', '_operation': 'explode', '_args_json': '{}',
    }

    with pytest.raises(HelpfulError) as exc_info:
        script.run_call(config)

    assert 'getComment' in exc_info.value.example
