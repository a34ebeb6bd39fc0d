""" Configuration defaults for the megaphone client. Every value can be
    overridden in the environment; the environment is consulted each time
    a value is requested, so that a long-running process picks up changes
    for any :class:`megaphone.Poller` created afterwards. Explicit arguments
    to the :class:`megaphone.Poller` constructor always take precedence.
"""

import os


default_url = 'http://localhost:3000'
default_buffer_length = 100
default_read_timeout = None


def url():
    """ Return the base URL of the broker. The value is taken from the
        MEGAPHONE_URL environment variable if it is set.
    """

    try:
        value = os.environ['MEGAPHONE_URL']
    except KeyError:
        return default_url

    value = value.strip()

    if value == '':
        return default_url

    return value.rstrip('/')



def buffer_length():
    """ Return the capacity of the event id dedup window, taken from the
        MEGAPHONE_BUFFER environment variable if it is set. The capacity
        should be sized generously relative to the largest burst of messages
        expected on one channel; an event id older than this many subsequent
        events will no longer be recognized as a duplicate.
    """

    try:
        value = os.environ['MEGAPHONE_BUFFER']
    except KeyError:
        return default_buffer_length

    return positive_int(value, 'MEGAPHONE_BUFFER')



def read_timeout():
    """ Return the socket timeout, in seconds, applied to each streaming
        read; None means the read blocks until the broker closes it. Taken
        from MEGAPHONE_READ_TIMEOUT if it is set.
    """

    try:
        value = os.environ['MEGAPHONE_READ_TIMEOUT']
    except KeyError:
        return default_read_timeout

    value = value.strip()
    if value == '':
        return default_read_timeout

    value = float(value)
    if value <= 0:
        raise ValueError('MEGAPHONE_READ_TIMEOUT must be positive: ' + repr(value))

    return value



def positive_int(value, name='value'):
    """ Interpret *value* as a strictly positive integer, raising a
        ValueError that names *name* if that is not possible.
    """

    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError("%s must be an integer: %r" % (name, value))

    if number < 1:
        raise ValueError("%s must be positive: %r" % (name, value))

    return number


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
