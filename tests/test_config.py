import pytest

import megaphone


def test_defaults(monkeypatch):

    monkeypatch.delenv('MEGAPHONE_URL', raising=False)
    monkeypatch.delenv('MEGAPHONE_BUFFER', raising=False)
    monkeypatch.delenv('MEGAPHONE_READ_TIMEOUT', raising=False)

    assert megaphone.config.url() == megaphone.config.default_url
    assert megaphone.config.buffer_length() == megaphone.config.default_buffer_length
    assert megaphone.config.read_timeout() is None


def test_environment(monkeypatch):

    monkeypatch.setenv('MEGAPHONE_URL', ' http://broker.test:8080/ ')
    monkeypatch.setenv('MEGAPHONE_BUFFER', '250')
    monkeypatch.setenv('MEGAPHONE_READ_TIMEOUT', '45')

    assert megaphone.config.url() == 'http://broker.test:8080'
    assert megaphone.config.buffer_length() == 250
    assert megaphone.config.read_timeout() == 45.0


def test_invalid(monkeypatch):

    for value in ('zero', '0', '-3', ''):
        monkeypatch.setenv('MEGAPHONE_BUFFER', value)
        with pytest.raises(ValueError):
            megaphone.config.buffer_length()

    monkeypatch.setenv('MEGAPHONE_READ_TIMEOUT', '-1')
    with pytest.raises(ValueError):
        megaphone.config.read_timeout()


def test_poller_uses_environment(monkeypatch):

    monkeypatch.setenv('MEGAPHONE_URL', 'http://configured.test')
    monkeypatch.setenv('MEGAPHONE_BUFFER', '7')
    monkeypatch.setenv('MEGAPHONE_READ_TIMEOUT', '12.5')

    poller = megaphone.Poller(session=object())

    assert poller.url == 'http://configured.test'
    assert poller.window.capacity == 7
    assert poller.timeout == 12.5

    # Explicit arguments take precedence.

    poller = megaphone.Poller('http://explicit.test', buffer_length=3, session=object(), timeout=1)

    assert poller.url == 'http://explicit.test'
    assert poller.window.capacity == 3
    assert poller.timeout == 1


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
