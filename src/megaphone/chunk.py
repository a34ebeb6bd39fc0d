""" The :class:`Chunk` is the unit of delivery on a channel: one line of the
    newline-delimited JSON body returned by the broker's read endpoint.
"""

from . import json
from .errors import DecodeError


class Chunk:
    """ A single message addressed to one stream. The fields mirror the JSON
        object on the wire, which uses abbreviated names:

        :ivar stream_id: The stream (topic) this chunk is addressed to, 'sid'.
        :ivar event_id: The broker-assigned unique event id, 'eid'. This is
            what duplicate suppression keys on.
        :ivar timestamp: The broker timestamp, 'ts'; None if the broker did
            not provide one.
        :ivar body: The opaque, caller-defined payload.
    """

    __slots__ = ('stream_id', 'event_id', 'timestamp', 'body')

    def __init__(self, stream_id, event_id, body=None, timestamp=None):

        self.stream_id = stream_id
        self.event_id = event_id
        self.timestamp = timestamp
        self.body = body


    def __eq__(self, other):

        if isinstance(other, Chunk):
            pass
        else:
            return NotImplemented

        return self.event_id == other.event_id and \
               self.stream_id == other.stream_id and \
               self.timestamp == other.timestamp and \
               self.body == other.body


    def __repr__(self):
        return "Chunk(sid=%r, eid=%r, ts=%r, body=%r)" % (self.stream_id, self.event_id, self.timestamp, self.body)


# end of class Chunk



def decode(line):
    """ Decode one line from the read endpoint into a :class:`Chunk`. A
        :class:`megaphone.errors.DecodeError` is raised if the line is not
        valid JSON, is not a JSON object, or is missing the stream id or the
        event id.
    """

    try:
        fields = json.loads(line)
    except json.errors as e:
        raise DecodeError('malformed chunk: ' + str(e)) from e

    if isinstance(fields, dict):
        pass
    else:
        raise DecodeError('chunk is not a JSON object: ' + repr(line))

    try:
        stream_id = fields['sid']
        event_id = fields['eid']
    except KeyError as e:
        raise DecodeError('chunk is missing field ' + str(e)) from e

    if stream_id is None or event_id is None:
        raise DecodeError('chunk has a null stream or event id: ' + repr(line))

    stream_id = str(stream_id)
    event_id = str(event_id)

    timestamp = fields.get('ts')
    body = fields.get('body')

    return Chunk(stream_id, event_id, body, timestamp)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
