""" The :class:`Stream` is what a caller receives from the stream
    constructors on :class:`megaphone.Poller`: a lazy, cancellable sequence
    of :class:`megaphone.Chunk` instances. It is also the sink the reader
    thread delivers into.
"""

import queue
import threading

from . import errors


_end = object()


class _Failure:
    """ Terminal marker carrying the exception that ended a stream.
    """

    __slots__ = ('error',)

    def __init__(self, error):
        self.error = error


class Stream:
    """ Chunks delivered to this stream are buffered, without limit, until
        the caller retrieves them, either by iterating over the stream or by
        calling :func:`wait`. Iteration ends when the stream completes: every
        stream id it was registered under has been retired by its
        continuation policy, or :func:`cancel` was called. If the channel
        fails, iteration raises the :class:`megaphone.errors.TransportError`
        after the chunks that were already buffered.

        A stream can be used as a context manager; it is cancelled on exit.

        :ivar channel_id: The channel this stream is multiplexed on.
        :ivar stream_ids: The frozenset of stream ids this stream was
            registered under.
        :ivar error: The exception that ended the stream, if any.
    """

    def __init__(self, channel_id, stream_ids, canceller=None):

        self.channel_id = channel_id
        self.stream_ids = frozenset(stream_ids)
        self.error = None

        self._canceller = canceller
        self._queue = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._remaining = set(self.stream_ids)
        self._finished = threading.Event()
        self._exhausted = False


    def __repr__(self):
        ids = ', '.join(sorted(self.stream_ids))
        return "Stream(%r, [%s])" % (self.channel_id, ids)


    def __enter__(self):
        return self


    def __exit__(self, exc_type, exc_value, traceback):
        self.cancel()


    def __iter__(self):
        return self


    def __next__(self):

        item = self._take(None)

        if item is _end:
            raise StopIteration

        return item


    # Consumer side.

    @property
    def closed(self):
        """ True once the stream is finished and every buffered chunk has
            been retrieved.
        """

        return self._exhausted


    def poll(self):
        """ Return True if the stream has finished, meaning no further chunks
            will be delivered to it. Chunks delivered before that point may
            still be waiting to be retrieved.
        """

        return self._finished.is_set()


    def wait(self, timeout=60):
        """ Block until the next chunk is available and return it. None is
            returned if the stream finished, or if *timeout* seconds elapsed
            without a chunk arriving. If the *timeout* is None this method
            will block indefinitely.
        """

        try:
            item = self._take(timeout)
        except queue.Empty:
            return None

        if item is _end:
            return None

        return item


    def bodies(self, convert=None):
        """ Iterate over the bodies of the chunks in this stream rather than
            the chunks themselves. If *convert* is specified it is invoked
            on every body, and its return value is yielded instead.
        """

        for chunk in self:
            body = chunk.body
            if convert is not None:
                body = convert(body)
            yield body


    def cancel(self):
        """ Unsubscribe. Exactly the stream ids registered for this stream
            are removed; other streams sharing the channel are unaffected.
            Iteration ends once any chunks already buffered have been
            retrieved. Cancelling a stream more than once is harmless.
        """

        canceller = self._canceller
        self._canceller = None

        if canceller is not None:
            canceller(self)

        self._complete()


    def _take(self, timeout):

        if self._exhausted:
            return _end

        if timeout is None:
            item = self._queue.get()
        else:
            item = self._queue.get(timeout=timeout)

        if item is _end:
            self._exhausted = True
            return _end

        if isinstance(item, _Failure):
            self._exhausted = True
            raise item.error

        return item


    # Sink side, invoked by the reader.

    def _deliver(self, chunk):
        """ Buffer *chunk* for retrieval. Chunks delivered after the stream
            finished are dropped; returns True if the chunk was accepted.
        """

        with self._lock:
            if self._finished.is_set():
                return False

            self._queue.put(chunk)

        return True


    def _retire(self, stream_id):
        """ The subscription for *stream_id* has completed. The stream as a
            whole completes when none of its stream ids remain.
        """

        with self._lock:
            self._remaining.discard(stream_id)
            remaining = len(self._remaining)

        if remaining == 0:
            self._complete()


    def _complete(self):

        with self._lock:
            if self._finished.is_set():
                return

            self._finished.set()
            self._queue.put(_end)


    def _fail(self, error):

        if isinstance(error, BaseException):
            pass
        else:
            error = errors.MegaphoneError(str(error))

        with self._lock:
            if self._finished.is_set():
                return

            self.error = error
            self._finished.set()
            self._queue.put(_Failure(error))


# end of class Stream


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
