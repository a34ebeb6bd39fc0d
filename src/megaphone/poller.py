""" The :class:`Poller` is the public entry point for receiving messages:
    it multiplexes any number of independent streams over a single channel
    to the broker, starting a background reader when the first stream is
    registered and letting it exit once the last stream is gone.
"""

import atexit
import collections
import collections.abc
import logging
import threading

import requests

from . import config
from . import dedup
from . import errors
from .reader import ChannelState, Reader
from .registry import Registry
from .stream import Stream

logger = logging.getLogger(__name__)


StreamSpec = collections.namedtuple('StreamSpec', ('channel', 'streams'))
StreamSpec.__doc__ = """ The result of a negotiation callback: the *channel*
    id to read from, and the list of *streams* to register on it. A plain
    (channel, streams) tuple is accepted in its place.
"""


def always(chunk):
    """ Continuation policy for a subscription that stays active until it
        is explicitly cancelled.
    """

    return True


def never(chunk):
    """ Continuation policy for a subscription that completes after its
        first chunk.
    """

    return False



class Poller:
    """ Multiplex streams over one channel to the broker at *url*. The
        *buffer_length* is the capacity of the event id dedup window; both
        default to the values in :mod:`megaphone.config`. A
        :class:`requests.Session` is created if no *session* is provided;
        any object with a compatible ``get(url, stream, timeout)`` method
        can be used in its place. The *timeout* is applied to each
        streaming read, and defaults to no timeout at all.

        Every stream constructor takes a *negotiate* callable. It is invoked
        with the id of the channel currently being read, or None if there
        is none, and is expected to return the channel id to use (the same
        one, if joining) and a non-empty sequence of stream ids to register
        on that channel; see :class:`StreamSpec`. Negotiation typically asks
        an application server to subscribe the channel to some topics,
        creating a new channel if necessary.
    """

    def __init__(self, url=None, buffer_length=None, session=None, timeout=None):

        if url is None:
            url = config.url()

        if buffer_length is None:
            buffer_length = config.buffer_length()
        else:
            buffer_length = config.positive_int(buffer_length, 'buffer_length')

        if timeout is None:
            timeout = config.read_timeout()

        if session is None:
            session = requests.Session()
            self._owns_session = True
        else:
            self._owns_session = False

        self.url = url.rstrip('/')
        self.session = session
        self.timeout = timeout

        self.registry = Registry()
        self.window = dedup.Window(buffer_length)
        self.state = ChannelState()


    def __repr__(self):
        return "Poller(%r)" % (self.url,)


    @property
    def channel_id(self):
        """ The id of the channel currently being read, or None.
        """

        return self.state.channel_id


    @property
    def reader(self):
        """ The active :class:`megaphone.reader.Reader`, or None.
        """

        return self.state.reader


    def new_stream(self, negotiate, policy):
        """ Negotiate and register a new stream, returning a
            :class:`megaphone.Stream`. The continuation *policy* is invoked
            with each :class:`megaphone.Chunk` delivered to one of the newly
            registered stream ids, after the chunk is delivered; if it
            returns False that stream id is unsubscribed. The returned
            stream finishes once all of its stream ids are unsubscribed.

            A :class:`megaphone.errors.NegotiationError` is raised if
            *negotiate* fails or returns an unusable result; in that case
            nothing is registered.
        """

        if callable(negotiate):
            pass
        else:
            raise TypeError('negotiate must be callable')

        if callable(policy):
            pass
        else:
            raise TypeError('policy must be callable')

        with self.state.lock:
            current = self.state.channel_id

            try:
                result = negotiate(current)
            except Exception as e:
                raise errors.NegotiationError('stream negotiation failed: ' + str(e)) from e

            channel_id, stream_ids = self._interpret(result)

            if current is not None and channel_id != current:
                raise errors.NegotiationError("negotiated channel %r while channel %r is active" % (channel_id, current))

            stream = Stream(channel_id, stream_ids, self._cancel)

            try:
                self.registry.register_all(stream_ids, stream, policy, channel_id)
            except ValueError as e:
                raise errors.NegotiationError(str(e)) from e

            logger.debug("registered streams %s on channel %s", stream_ids, channel_id)

            if self.state.reader is None:
                reader = Reader(self.url, channel_id, self.registry, self.window, self.state, self.session, self.timeout)
                self.state.bind(reader)

                try:
                    reader.start()
                except Exception:
                    self.state.release(reader)
                    self.registry.remove_ids(stream_ids, sink=stream)
                    raise

        return stream


    def new_unbounded_stream(self, negotiate):
        """ A continuous subscription: the returned stream stays active until
            it is cancelled, or the channel fails.
        """

        return self.new_stream(negotiate, always)


    def new_delayed_response(self, negotiate):
        """ A one-shot subscription: each stream id is unsubscribed after the
            first chunk addressed to it. With a single stream id this
            behaves like a future resolved by the first message.
        """

        return self.new_stream(negotiate, never)


    def delayed_response(self, negotiate, timeout=None, convert=None):
        """ Block until the first response arrives on a one-shot stream, and
            return its body, passed through *convert* if it is specified. The
            remaining stream ids, if any, are unsubscribed once a response
            arrives. Raises a subclass of
            :class:`megaphone.errors.DelayedResponseError` on failure.
        """

        try:
            stream = self.new_delayed_response(negotiate)
        except errors.NegotiationError as e:
            raise errors.InitializationError(str(e)) from e

        with stream:
            try:
                chunk = stream.wait(timeout)
            except errors.TransportError as e:
                raise errors.MissingResponse('channel failed before a response arrived: ' + str(e)) from e

        if chunk is None:
            raise errors.MissingResponse('no response on ' + repr(stream))

        body = chunk.body

        if convert is not None:
            try:
                body = convert(body)
            except Exception as e:
                raise errors.DeserializationError(str(e)) from e

        return body


    def close(self):
        """ Finish every active stream and detach from the current channel.
            The reader, if any, stops routing immediately and exits once its
            in-flight read returns; chunks it reads after this point are
            discarded, even if new streams reuse the same stream ids.
        """

        with self.state.lock:
            reader = self.state.reader
            if reader is not None:
                self.state.release(reader)

            removed = self.registry.clear()

        for subscription in removed:
            subscription.sink._complete()

        if self._owns_session:
            self.session.close()


    def _cancel(self, stream):
        removed = self.registry.remove_ids(stream.stream_ids, sink=stream)
        if removed:
            logger.debug("cancelled streams %s", sorted(s.stream_id for s in removed))


    def _interpret(self, result):
        """ Validate the return value of a negotiation callback, returning
            a (channel_id, stream_ids) tuple.
        """

        if isinstance(result, collections.abc.Mapping):
            raise errors.NegotiationError('negotiation must return (channel, streams), not a mapping: ' + repr(result))

        try:
            channel_id, stream_ids = result
        except (TypeError, ValueError):
            raise errors.NegotiationError('negotiation must return (channel, streams), not ' + repr(result))

        if channel_id is None or str(channel_id) == '':
            raise errors.NegotiationError('negotiation returned no channel id')

        if isinstance(stream_ids, str):
            stream_ids = (stream_ids,)

        stream_ids = tuple(str(stream_id) for stream_id in stream_ids)

        if len(stream_ids) == 0:
            raise errors.NegotiationError('negotiation returned no stream ids')

        return str(channel_id), stream_ids


# end of class Poller



_cache = dict()
_cache_lock = threading.Lock()

def get(url=None):
    """ Factory function for a :class:`Poller` instance. Use of this method is
        encouraged: there should only be one reader per broker in a process,
        and every call with the same *url* returns the same instance.
    """

    if url is None:
        url = config.url()

    url = url.rstrip('/')

    with _cache_lock:
        try:
            instance = _cache[url]
        except KeyError:
            instance = Poller(url)
            _cache[url] = instance

    return instance



def shutdown():

    with _cache_lock:
        instances = list(_cache.values())
        _cache.clear()

    for instance in instances:
        instance.close()


atexit.register(shutdown)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
