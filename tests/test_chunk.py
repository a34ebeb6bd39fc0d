import pytest

import megaphone
from megaphone.errors import DecodeError, TransportError


def test_decode():

    chunk = megaphone.chunk.decode(b'{"sid": "room", "eid": "e1", "ts": "2024-01-01T00:00:00Z", "body": {"message": "hi"}}')

    assert chunk.stream_id == 'room'
    assert chunk.event_id == 'e1'
    assert chunk.timestamp == '2024-01-01T00:00:00Z'
    assert chunk.body == {'message': 'hi'}


def test_decode_optional_fields():

    chunk = megaphone.chunk.decode('{"sid": "room", "eid": "e1"}')

    assert chunk.timestamp is None
    assert chunk.body is None


def test_wire_names():

    wire = {'sid': 'room', 'eid': 'e1', 'ts': 1700000000, 'body': [1, 2, 3]}

    decoded = megaphone.chunk.decode(megaphone.json.dumps(wire))
    assert decoded == megaphone.Chunk('room', 'e1', [1, 2, 3], 1700000000)


def test_malformed():

    for line in (b'{"sid": "room", "eid"', b'not json', b'[1, 2]', b'"string"'):
        with pytest.raises(DecodeError):
            megaphone.chunk.decode(line)


def test_missing_ids():

    with pytest.raises(DecodeError):
        megaphone.chunk.decode(b'{"eid": "e1", "body": 1}')

    with pytest.raises(DecodeError):
        megaphone.chunk.decode(b'{"sid": "room", "body": 1}')

    with pytest.raises(DecodeError):
        megaphone.chunk.decode(b'{"sid": null, "eid": "e1"}')


def test_decode_error_is_transport_error():
    """ A chunk that cannot be decoded is fatal to the channel, just like a
        dropped connection.
    """

    assert issubclass(DecodeError, TransportError)


def test_json_codec():

    encoded = megaphone.json.dumps({'sid': 'room', 'eid': 'e1'})

    assert isinstance(encoded, bytes)
    assert megaphone.json.loads(encoded) == {'sid': 'room', 'eid': 'e1'}

    with pytest.raises(megaphone.json.errors):
        megaphone.json.loads(b'{"sid"')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
