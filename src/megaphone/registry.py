""" The stream registry maps stream ids to the active subscriptions that
    should receive chunks addressed to them. It is shared by the reader
    thread, which looks up and retires subscriptions as chunks arrive, and
    by callers, who register and cancel streams from their own threads.
"""

import threading


class Subscription:
    """ One registered stream id. The *sink* is the :class:`megaphone.Stream`
        that receives chunks for this stream id; the *policy* is a callable
        accepting a :class:`megaphone.Chunk` and returning True if the
        subscription should remain active after that chunk was delivered.
        The *channel_id*, if set, is the channel the stream id was
        negotiated on; chunks read from any other channel are not routed to
        this subscription.
    """

    __slots__ = ('stream_id', 'sink', 'policy', 'channel_id')

    def __init__(self, stream_id, sink, policy, channel_id=None):

        self.stream_id = stream_id
        self.sink = sink
        self.policy = policy
        self.channel_id = channel_id


    def __repr__(self):
        return "Subscription(%r)" % (self.stream_id,)


    def proceed(self, chunk):
        """ Evaluate the continuation policy for *chunk*.
        """

        return bool(self.policy(chunk))


# end of class Subscription



class Registry:
    """ Thread-safe mapping of stream id to :class:`Subscription`. Every
        mutation happens under a single lock, and methods that return
        subscriptions return snapshots; the caller never iterates the live
        mapping. A subscription removed by one thread is therefore never
        handed to the reader afterwards, and a subscription registered by
        one thread is visible to the very next :func:`lookup`.
    """

    def __init__(self):

        self._lock = threading.Lock()
        self._subscriptions = dict()


    def __contains__(self, stream_id):
        with self._lock:
            return stream_id in self._subscriptions


    def __len__(self):
        with self._lock:
            return len(self._subscriptions)


    def is_empty(self):
        return len(self) == 0


    def stream_ids(self):
        """ Return a set of the stream ids currently registered.
        """

        with self._lock:
            return set(self._subscriptions.keys())


    def register(self, stream_id, sink, policy, channel_id=None):
        """ Register a single stream id; see :func:`register_all`.
        """

        return self.register_all((stream_id,), sink, policy, channel_id)[0]


    def register_all(self, stream_ids, sink, policy, channel_id=None):
        """ Register every stream id in *stream_ids* with the same *sink* and
            continuation *policy*, returning the list of new
            :class:`Subscription` instances. Either every stream id is
            registered or none of them are: a ValueError is raised if any of
            the stream ids is already registered, or repeated in the
            arguments. The new subscriptions are tied to *channel_id*.
        """

        stream_ids = tuple(stream_ids)

        if len(set(stream_ids)) != len(stream_ids):
            raise ValueError('duplicate stream id in ' + repr(stream_ids))

        added = list()

        with self._lock:
            for stream_id in stream_ids:
                if stream_id in self._subscriptions:
                    raise ValueError('stream id already registered: ' + repr(stream_id))

            for stream_id in stream_ids:
                subscription = Subscription(stream_id, sink, policy, channel_id)
                self._subscriptions[stream_id] = subscription
                added.append(subscription)

        return added


    def lookup(self, stream_id):
        """ Return the :class:`Subscription` registered for *stream_id*, or
            None if there is no such subscription. A None return is not an
            error; the subscription may have completed moments earlier.
        """

        with self._lock:
            return self._subscriptions.get(stream_id)


    def discard(self, subscription):
        """ Remove *subscription* if, and only if, it is still the entry
            registered for its stream id. Returns True if it was removed.
        """

        with self._lock:
            current = self._subscriptions.get(subscription.stream_id)
            if current is subscription:
                del self._subscriptions[subscription.stream_id]
                return True

        return False


    def remove_ids(self, stream_ids, sink=None):
        """ Remove the subscriptions for every stream id in *stream_ids*,
            returning the list of removed :class:`Subscription` instances.
            Stream ids that are not registered are ignored. If *sink* is
            specified only subscriptions delivering to that sink are removed,
            such that a cancellation never removes a stream id that has since
            been registered by somebody else.
        """

        removed = list()

        with self._lock:
            for stream_id in stream_ids:
                try:
                    subscription = self._subscriptions[stream_id]
                except KeyError:
                    continue

                if sink is not None and subscription.sink is not sink:
                    continue

                del self._subscriptions[stream_id]
                removed.append(subscription)

        return removed


    def remove_where(self, predicate):
        """ Remove every subscription for which *predicate* returns True,
            returning the list of removed :class:`Subscription` instances.
            The *predicate* is invoked with the registry lock held; it must
            not call back into the registry.
        """

        removed = list()

        with self._lock:
            for stream_id, subscription in tuple(self._subscriptions.items()):
                if predicate(subscription):
                    del self._subscriptions[stream_id]
                    removed.append(subscription)

        return removed


    def clear(self):
        """ Remove every subscription, returning the list of removed
            :class:`Subscription` instances.
        """

        with self._lock:
            removed = list(self._subscriptions.values())
            self._subscriptions.clear()

        return removed


# end of class Registry


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
