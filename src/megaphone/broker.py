""" Thin client for the broker's REST endpoints. None of this is needed to
    receive messages; it exists for the applications that create channels,
    and for the applications that write messages into them. A negotiation
    callback for :class:`megaphone.Poller` is usually built from
    :func:`Broker.create`, either directly, via :func:`Broker.negotiator`,
    or indirectly through an application server.
"""

import collections
import logging

import requests

from . import config
from . import json
from .errors import BrokerError

logger = logging.getLogger(__name__)


ChannelInfo = collections.namedtuple('ChannelInfo', ('channel_id', 'agent_name'))

DeliveryFailure = collections.namedtuple('DeliveryFailure', ('channel', 'index', 'reason'))

_empty = object()


class Broker:
    """ REST client for the broker at *url*. A :class:`requests.Session` is
        created if no *session* is provided. The *timeout*, in seconds,
        applies to every request made here; these are all short-lived calls,
        unlike the streaming reads issued by the reader.
    """

    timeout = 10

    def __init__(self, url=None, session=None, timeout=None):

        if url is None:
            url = config.url()

        if session is None:
            session = requests.Session()

        if timeout is not None:
            self.timeout = float(timeout)

        self.url = url.rstrip('/')
        self.session = session


    def __repr__(self):
        return "Broker(%r)" % (self.url,)


    def create(self):
        """ Create a new channel, returning a :class:`ChannelInfo` with the
            channel id and the name of the agent hosting it.
        """

        reply = self._request('POST', '/create')

        try:
            channel_id = reply['channelId']
        except (KeyError, TypeError):
            raise BrokerError('create reply has no channelId: ' + repr(reply))

        agent_name = reply.get('agentName')

        logger.debug("created channel %s on agent %s", channel_id, agent_name)
        return ChannelInfo(channel_id, agent_name)


    def write(self, channel_id, stream_id, body):
        """ Write a single message with the JSON-serializable *body* to
            *stream_id* on *channel_id*.
        """

        path = "/write/%s/%s" % (channel_id, stream_id)
        return self._request('POST', path, body)


    def write_batch(self, channel_ids, messages):
        """ Write every message in *messages* to every channel in
            *channel_ids*. Each message is either a (stream_id, body) tuple
            or a dictionary with 'streamId' and 'body' keys. The return value
            is a list of :class:`DeliveryFailure` instances, one per message
            the broker could not deliver; it is empty on complete success.
        """

        batch = list()
        for message in messages:
            if isinstance(message, dict):
                stream_id = message['streamId']
                body = message.get('body')
            else:
                stream_id, body = message

            batch.append({'streamId': stream_id, 'body': body})

        request = dict()
        request['channelIds'] = sorted(set(channel_ids))
        request['messages'] = batch

        reply = self._request('POST', '/write-batch', request)

        failures = list()
        if reply:
            for failure in reply.get('failures', ()):
                failures.append(DeliveryFailure(failure.get('channel'), failure.get('index'), failure.get('reason')))

        return failures


    def exists(self, channel_ids):
        """ Return a dictionary mapping each of *channel_ids* to True if the
            channel exists on the broker, False otherwise.
        """

        request = {'channelIds': sorted(set(channel_ids))}
        reply = self._request('POST', '/channelsExists', request) or dict()

        exists = dict()
        for channel_id, present in reply.get('channelIds', {}).items():
            exists[channel_id] = bool(present)

        return exists


    def negotiator(self, *stream_ids):
        """ Return a negotiation callback for :class:`megaphone.Poller` that
            joins the channel currently being read, if there is one, or
            creates a new channel otherwise, and subscribes *stream_ids*.
        """

        if len(stream_ids) == 0:
            raise ValueError('at least one stream id is required')

        def negotiate(channel_id):
            if channel_id is None:
                channel_id = self.create().channel_id
            return (channel_id, list(stream_ids))

        return negotiate


    def _request(self, method, path, body=_empty):
        """ Issue a request, returning the decoded JSON reply, or None if the
            reply is empty. A :class:`megaphone.errors.BrokerError` is raised
            for a non-success status or a connection failure.
        """

        url = self.url + path

        kwargs = dict()
        kwargs['timeout'] = self.timeout

        if body is not _empty:
            kwargs['data'] = json.dumps(body)
            kwargs['headers'] = {'Content-Type': 'application/json'}

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise BrokerError("%s %s: %s" % (method, path, e)) from e

        content = response.content

        if response.ok:
            if content:
                return json.loads(content)
            return None

        code = None
        if content:
            try:
                code = json.loads(content).get('code')
            except (AttributeError,) + json.errors:
                pass

        status = response.status_code
        raise BrokerError("%s %s: HTTP status code %d" % (method, path, status), status, code)


# end of class Broker


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
