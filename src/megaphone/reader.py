""" The channel reader is the only component that reads from the broker.
    It holds one streaming read at a time against a single channel, decodes
    the newline-delimited chunks in the response body, discards duplicates,
    and routes each chunk to the stream registered for it.
"""

import logging
import threading

import requests

from . import chunk as chunk_module
from .errors import MegaphoneError, TransportError

logger = logging.getLogger(__name__)


class ChannelState:
    """ Which channel, if any, the reader for one :class:`megaphone.Poller`
        is bound to. At most one :class:`Reader` is bound at any time. The
        *lock* is held by the poller while it negotiates and registers new
        streams, and by the reader while it decides to exit; holding it
        across both decisions is what guarantees that a newly registered
        stream is never stranded without a reader.

        :ivar channel_id: The bound channel id, or None.
        :ivar reader: The bound :class:`Reader`, or None.
    """

    def __init__(self):

        self.lock = threading.RLock()
        self.channel_id = None
        self.reader = None


    def bind(self, reader):
        """ Bind *reader*; the caller must hold the lock, and the state must
            currently be unbound.
        """

        if self.reader is not None:
            raise RuntimeError('channel state already bound to ' + repr(self.channel_id))

        self.channel_id = reader.channel_id
        self.reader = reader


    def release(self, reader):
        """ Return to the unbound state, but only if *reader* is the one that
            is bound. Returns True if the state changed.
        """

        with self.lock:
            if self.reader is not reader:
                return False

            self.channel_id = None
            self.reader = None

        return True


    def bound(self, reader):
        with self.lock:
            return self.reader is reader


# end of class ChannelState



class Reader:
    """ Background reader for a single channel. The read endpoint is
        expected to return a streaming body of newline-delimited JSON chunks;
        the broker may hold the request open until data is available, and
        closing the body is the normal end of one read cycle. After each
        cycle the reader issues another read against the same channel, as
        long as at least one stream remains registered; otherwise it unbinds
        itself from the :class:`ChannelState` and exits.

        Any failure of a read is fatal to the channel: every registered
        stream receives the error and is finished, the registry is cleared,
        and the channel state is reset. There is no retry here; callers
        recover by requesting a new stream, which negotiates a new channel.
    """

    def __init__(self, url, channel_id, registry, window, state, session, timeout=None):

        self.url = url.rstrip('/')
        self.channel_id = channel_id
        self.registry = registry
        self.window = window
        self.state = state
        self.session = session
        self.timeout = timeout

        self.thread = threading.Thread(target=self.run, name='megaphone-reader-' + str(channel_id))
        self.thread.daemon = True


    def __repr__(self):
        return "Reader(%r)" % (self.channel_id,)


    @property
    def read_url(self):
        return "%s/read/%s" % (self.url, self.channel_id)


    def start(self):
        self.thread.start()


    def join(self, timeout=None):
        self.thread.join(timeout)


    def is_alive(self):
        return self.thread.is_alive()


    def run(self):

        logger.debug("reader started for channel %s", self.channel_id)

        try:
            while True:
                self.read()

                with self.state.lock:
                    if self.state.bound(self) == False:
                        logger.warning("channel state rebound during read; ending reader for channel %s", self.channel_id)
                        break

                    if self.registry.is_empty():
                        logger.debug("no streams left on channel %s; ending reader", self.channel_id)
                        self.state.release(self)
                        break

        except Exception as e:
            if isinstance(e, MegaphoneError):
                error = e
            else:
                error = TransportError("channel %s: %s" % (self.channel_id, e))
                error.__cause__ = e

            logger.warning("read failed for channel %s: %s", self.channel_id, error)
            self.fail(error)


    def read(self):
        """ Perform one read cycle: issue the streaming request and dispatch
            every chunk in the response body, returning when the broker
            closes the body. The read is abandoned as soon as this reader is
            no longer bound to the channel state; an unbound reader routes
            nothing, and does not record anything in the dedup window.
        """

        try:
            response = self.session.get(self.read_url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError("channel %s: %s" % (self.channel_id, e)) from e

        try:
            if response.ok:
                pass
            else:
                status = response.status_code
                raise TransportError('HTTP status code: ' + str(status), status)

            for line in response.iter_lines():
                if self.state.bound(self) == False:
                    logger.debug("reader for channel %s unbound; abandoning read", self.channel_id)
                    return

                line = line.strip()
                if line:
                    self.dispatch(chunk_module.decode(line))

        except requests.RequestException as e:
            raise TransportError("channel %s: %s" % (self.channel_id, e)) from e

        finally:
            response.close()


    def dispatch(self, chunk):
        """ Route a single decoded chunk. Duplicates are discarded; chunks
            addressed to a stream id with no registered subscription are
            dropped silently, since that subscription may have completed or
            been cancelled moments earlier. A subscription negotiated on a
            different channel never receives the chunk.
        """

        if self.window.check(chunk.event_id):
            logger.debug("duplicate event %s on channel %s discarded", chunk.event_id, self.channel_id)
            return

        subscription = self.registry.lookup(chunk.stream_id)

        if subscription is None:
            logger.debug("no subscription for stream %s; event %s dropped", chunk.stream_id, chunk.event_id)
            return

        if subscription.channel_id is not None and subscription.channel_id != self.channel_id:
            logger.debug("stream %s belongs to channel %s; event %s from channel %s dropped", chunk.stream_id, subscription.channel_id, chunk.event_id, self.channel_id)
            return

        sink = subscription.sink
        sink._deliver(chunk)

        try:
            proceed = subscription.proceed(chunk)
        except Exception as e:
            logger.exception("continuation policy for stream %s failed", chunk.stream_id)
            self.registry.remove_ids(sink.stream_ids, sink=sink)
            sink._fail(e)
            return

        if proceed:
            return

        if self.registry.discard(subscription):
            logger.debug("stream %s completed on channel %s", chunk.stream_id, self.channel_id)
            sink._retire(chunk.stream_id)


    def fail(self, error):
        """ Tear down every stream on this channel with *error*, and reset
            the channel state. Registration is blocked while this happens, so
            a stream cannot be registered against a channel that is being
            torn down.
        """

        with self.state.lock:
            if self.state.bound(self):
                removed = self.registry.clear()
                self.state.release(self)
            else:
                removed = ()

        sinks = list()
        for subscription in removed:
            if subscription.sink not in sinks:
                sinks.append(subscription.sink)

        for sink in sinks:
            sink._fail(error)


# end of class Reader


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
