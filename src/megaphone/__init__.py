""" Python client for megaphone, a broker that pushes messages to clients
    over long-lived channels. Many independent streams share one channel:
    the :class:`Poller` reads the channel in the background, discards
    redelivered messages, and routes each message to the stream it is
    addressed to.
"""

# Utility components.

from . import json
from . import config
from . import errors

# Submodules used by multiple other components.

from . import chunk
from . import dedup
from . import registry
from . import stream
from . import reader

# Primary public-facing interfaces.

from .broker import Broker, ChannelInfo
from .chunk import Chunk
from .poller import Poller, StreamSpec
from .stream import Stream

from . import poller
get = poller.get

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
