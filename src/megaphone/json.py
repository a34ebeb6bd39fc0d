""" Codec for the JSON carried on the wire. Chunks arrive one per line on the
    read endpoint, and every one of them goes through :func:`loads`; this is
    the hot path of the reader, which is why msgspec is used rather than the
    standard library.
"""

import msgspec

encoder = msgspec.json.Encoder()
decoder = msgspec.json.Decoder()

# Encoding returns bytes, such that a request body can be handed to the HTTP
# session as-is.

dumps = encoder.encode
loads = decoder.decode

errors = (msgspec.DecodeError,)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
