import pytest

import megaphone

from fakebroker import FakeSession


@pytest.fixture
def session():

    session = FakeSession()
    yield session
    session.close()


@pytest.fixture
def poller(session):

    poller = megaphone.Poller('http://broker.test/', buffer_length=10, session=session)
    yield poller
    poller.close()
    session.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
