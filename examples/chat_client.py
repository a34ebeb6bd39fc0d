""" Follow a chat room served by an application server that subscribes
    megaphone channels on behalf of its clients. The application server is
    expected to answer POST /room/<name> with a JSON object carrying the
    'channelUuid' to read from; if the client already has a channel open it
    passes it along in the 'use-channel' header, so that every room this
    process follows shares one channel.
"""

import logging
import sys

import requests

import megaphone


def negotiator(server, room):

    def negotiate(channel_id):
        headers = dict()
        if channel_id is not None:
            headers['use-channel'] = channel_id

        response = requests.post("%s/room/%s" % (server, room), headers=headers, timeout=10)
        response.raise_for_status()
        reply = response.json()

        return megaphone.StreamSpec(reply['channelUuid'], ['new-message'])

    return negotiate



def main():

    logging.basicConfig(level=logging.INFO)

    server = sys.argv[1] if len(sys.argv) > 1 else 'http://localhost:5173'
    room = sys.argv[2] if len(sys.argv) > 2 else 'test'

    poller = megaphone.get(server + '/megaphone')
    stream = poller.new_unbounded_stream(negotiator(server, room))

    try:
        for body in stream.bodies():
            print('message', body.get('message'))
    except KeyboardInterrupt:
        stream.cancel()
    except megaphone.errors.TransportError as e:
        print('channel lost:', e)

    print('stream ended')


if __name__ == '__main__':
    main()

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
