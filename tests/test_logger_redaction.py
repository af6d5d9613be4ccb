# tests/test_logger_redaction.py
"""Logger singleton and the packaged log-redaction-patterns.json."""

import logging

import pytest

from plunet_soap.logger import LOGGER_NAME, TokenRedactionFilter, setup_logger


@pytest.fixture(scope='module')
def logger():
    return setup_logger()


def test_logger_is_singleton(logger):
    assert setup_logger() is logger
    assert logger.logger.name == LOGGER_NAME


@pytest.mark.parametrize('text, expected', [
    ('<UUID>0b6e3c1e-6c2d</UUID>', '<UUID>[REDACTED_UUID]</UUID>'),
    ('<api:UUID>abc</api:UUID>', '<api:UUID>[REDACTED_UUID]</api:UUID>'),
    ('<arg0>api</arg0><arg1>hunter2</arg1>', '<arg0>api</arg0><arg1>[REDACTED]</arg1>'),
    ('<Password>hunter2</Password>', '<Password>[REDACTED]</Password>'),
    ('<FileByteStream>UEsDBBQ=</FileByteStream>', '<FileByteStream>[REDACTED_FILE_B64]</FileByteStream>'),
    ('{"_plunet_password": "hunter2"}', '{"_plunet_password": "[REDACTED]"}'),
    ('Authorization: Bearer abc.def-ghi', 'Authorization: Bearer [REDACTED]'),
    ('url?uuid=abc123&x=1', 'url?uuid=[REDACTED]&x=1'),
])
def test_redaction_patterns(logger, text, expected):
    assert logger.redact(text) == expected


def test_plain_text_untouched(logger):
    text = 'Calling DataCustomer30.getCustomerObject customerID=42'
    assert logger.redact(text) == text


def test_filter_redacts_message_and_args(logger):
    record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1,
                               'Sent %s', ('<UUID>secret-token</UUID>',), None)

    assert logger.token_filter.filter(record) is True
    assert record.getMessage() == 'Sent <UUID>[REDACTED_UUID]</UUID>'


def test_filter_is_installed(logger):
    assert any(isinstance(f, TokenRedactionFilter) for f in logging.getLogger(LOGGER_NAME).filters)


def test_level_methods_delegate(logger, monkeypatch):
    seen = []
    for level in ('debug', 'info', 'warning', 'error'):
        monkeypatch.setattr(logger.logger, level, lambda msg, _level=level: seen.append((_level, msg)))

    logger.debug('d')
    logger.info('i')
    logger.warning('w')
    logger.error('e')

    assert seen == [('debug', 'd'), ('info', 'i'), ('warning', 'w'), ('error', 'e')]
    assert not hasattr(logger, 'critical')
