import pytest

import requests

import megaphone
from megaphone.errors import BrokerError


class Reply:

    def __init__(self, status=200, body=None):
        self.status_code = status
        self.ok = status < 400
        if body is None:
            self.content = b''
        else:
            self.content = megaphone.json.dumps(body)


class RestSession:
    """ Records every request, and answers with the queued replies in order.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests = list()

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


def sent(session, index=-1):
    method, url, kwargs = session.requests[index]
    try:
        data = kwargs['data']
    except KeyError:
        body = None
    else:
        body = megaphone.json.loads(data)
    return method, url, body


def test_create():

    session = RestSession(Reply(200, {'channelId': 'agent-1.abc', 'agentName': 'agent-1'}))
    broker = megaphone.Broker('http://broker.test/', session=session)

    info = broker.create()

    assert info == megaphone.ChannelInfo('agent-1.abc', 'agent-1')
    assert info.channel_id == 'agent-1.abc'
    assert sent(session) == ('POST', 'http://broker.test/create', None)


def test_create_malformed():

    session = RestSession(Reply(200, {'unexpected': True}), Reply(200))
    broker = megaphone.Broker('http://broker.test', session=session)

    with pytest.raises(BrokerError):
        broker.create()

    with pytest.raises(BrokerError):
        broker.create()


def test_write():

    session = RestSession(Reply(201, {'status': 'OK'}))
    broker = megaphone.Broker('http://broker.test', session=session)

    broker.write('chan-1', 'new-message', {'message': 'hello'})

    method, url, body = sent(session)
    assert method == 'POST'
    assert url == 'http://broker.test/write/chan-1/new-message'
    assert body == {'message': 'hello'}

    headers = session.requests[-1][2]['headers']
    assert headers['Content-Type'] == 'application/json'


def test_write_null_body():

    session = RestSession(Reply(201))
    broker = megaphone.Broker('http://broker.test', session=session)

    broker.write('chan-1', 'ping', None)

    assert session.requests[-1][2]['data'] == megaphone.json.dumps(None)


def test_write_batch():

    failures = {'failures': [{'channel': 'chan-2', 'index': 1, 'reason': 'NOT_FOUND'}]}
    session = RestSession(Reply(201, failures))
    broker = megaphone.Broker('http://broker.test', session=session)

    messages = [('a', 1), {'streamId': 'b', 'body': 2}]
    result = broker.write_batch(['chan-2', 'chan-1', 'chan-1'], messages)

    assert result == [megaphone.broker.DeliveryFailure('chan-2', 1, 'NOT_FOUND')]

    method, url, body = sent(session)
    assert url == 'http://broker.test/write-batch'
    assert body['channelIds'] == ['chan-1', 'chan-2']
    assert body['messages'] == [{'streamId': 'a', 'body': 1}, {'streamId': 'b', 'body': 2}]


def test_exists():

    session = RestSession(Reply(200, {'channelIds': {'chan-1': True, 'chan-2': False}}))
    broker = megaphone.Broker('http://broker.test', session=session)

    assert broker.exists(['chan-1', 'chan-2']) == {'chan-1': True, 'chan-2': False}

    method, url, body = sent(session)
    assert url == 'http://broker.test/channelsExists'
    assert body == {'channelIds': ['chan-1', 'chan-2']}


def test_errors():

    session = RestSession(Reply(404, {'code': 'NOT_FOUND'}), Reply(500), requests.ConnectionError('refused'))
    broker = megaphone.Broker('http://broker.test', session=session)

    with pytest.raises(BrokerError) as caught:
        broker.write('missing', 'stream', {})

    assert caught.value.status == 404
    assert caught.value.code == 'NOT_FOUND'

    with pytest.raises(BrokerError) as caught:
        broker.create()

    assert caught.value.status == 500
    assert caught.value.code is None

    with pytest.raises(BrokerError) as caught:
        broker.create()

    assert caught.value.status is None
    assert isinstance(caught.value.__cause__, requests.ConnectionError)


def test_negotiator():

    session = RestSession(Reply(200, {'channelId': 'chan-new', 'agentName': 'agent'}))
    broker = megaphone.Broker('http://broker.test', session=session)

    negotiate = broker.negotiator('a', 'b')

    assert negotiate(None) == ('chan-new', ['a', 'b'])
    assert negotiate('chan-old') == ('chan-old', ['a', 'b'])

    # Only the first call needed a new channel.

    assert len(session.requests) == 1

    with pytest.raises(ValueError):
        broker.negotiator()


def test_negotiator_failure_surfaces(session):
    """ A broker failure during negotiation reaches the stream constructor
        caller as a NegotiationError, chained to the BrokerError.
    """

    rest = RestSession(Reply(503))
    broker = megaphone.Broker('http://broker.test', session=rest)
    poller = megaphone.Poller('http://broker.test', buffer_length=5, session=session)

    with pytest.raises(megaphone.errors.NegotiationError) as caught:
        poller.new_unbounded_stream(broker.negotiator('feed'))

    assert isinstance(caught.value.__cause__, BrokerError)
    assert poller.reader is None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
