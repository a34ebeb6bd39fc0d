""" Duplicate suppression for chunks redelivered by the broker. The broker
    may deliver the same event more than once across consecutive reads of a
    channel; the :class:`Window` remembers the most recently seen event ids
    so the reader can discard the repeats.
"""

import collections
import threading


class Window:
    """ A fixed-capacity record of recently observed event ids. Once the
        capacity is reached, recording a new id evicts the oldest recorded
        id, first in first out; a lookup via :func:`seen` does not refresh
        an id's position.

        The guarantee is bounded: an id recorded more than *capacity*
        insertions ago is forgotten, and a late duplicate of it would be
        treated as new. The capacity should be sized generously relative to
        the largest expected burst of in-flight messages.

        :func:`check` and :func:`record` are atomic with respect to each
        other; the reader for a channel is normally the only caller, but a
        reader that is finishing a read may overlap briefly with its
        replacement.
    """

    def __init__(self, capacity):

        capacity = int(capacity)
        if capacity < 1:
            raise ValueError('dedup window capacity must be positive: ' + str(capacity))

        self.capacity = capacity
        self._order = collections.deque()
        self._members = set()
        self._lock = threading.Lock()


    def __contains__(self, event_id):
        return event_id in self._members


    def __len__(self):
        return len(self._order)


    def __iter__(self):
        with self._lock:
            snapshot = tuple(self._order)

        return iter(snapshot)


    def seen(self, event_id):
        """ Return True if *event_id* is currently retained in the window.
        """

        return event_id in self._members


    def record(self, event_id):
        """ Record *event_id* as seen, evicting the oldest retained id if the
            window is already full. Recording an id that is already retained
            is a no-op; it does not move the id to the back of the queue.
        """

        with self._lock:
            self._record(event_id)


    def _record(self, event_id):

        if event_id in self._members:
            return

        self._order.append(event_id)
        self._members.add(event_id)

        while len(self._order) > self.capacity:
            evicted = self._order.popleft()
            self._members.discard(evicted)


    def check(self, event_id):
        """ Combined :func:`seen` and :func:`record`: return True if the id
            was already retained, otherwise record it and return False.
        """

        with self._lock:
            if event_id in self._members:
                return True

            self._record(event_id)
            return False


# end of class Window


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
