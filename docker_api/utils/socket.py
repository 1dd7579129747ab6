import errno
import os
import select
import socket as pysocket

from ..types.streams import StreamTag
from .demux import demux_adaptor
from .frames import FrameDecoder


def read(socket, n=4096):
    """
    Reads at most n bytes from socket
    """

    recoverable_errors = (errno.EINTR, errno.EDEADLK, errno.EWOULDBLOCK)

    select.select([socket], [], [])

    try:
        if hasattr(socket, 'recv'):
            return socket.recv(n)
        if isinstance(socket, pysocket.SocketIO):
            return socket.read(n)
        return os.read(socket.fileno(), n)
    except OSError as e:
        if e.errno not in recoverable_errors:
            raise


def socket_raw_iter(socket):
    """
    Returns a generator of data read from the socket.
    This is used for non-multiplexed streams and as the input of the
    multiplexed stream decoders.
    """
    while True:
        result = read(socket)
        if result is None:
            # Interrupted before anything was read
            continue
        if len(result) == 0:
            # We have reached EOF
            return
        yield result


def frames_iter(socket, tty):
    """
    Return a generator of frames read from socket. A frame is a tuple where
    the first item is the stream number and the second item is a chunk of
    data.

    If the tty setting is enabled, the streams are not multiplexed and are
    always returned as stdout.
    """
    if tty:
        return ((StreamTag.STDOUT, chunk) for chunk in socket_raw_iter(socket))
    return (
        tuple(frame)
        for frame in FrameDecoder().decode(socket_raw_iter(socket))
    )


def consume_socket_output(frames, demux=False):
    """
    Iterate through frames read from the socket and return the result.

    Args:

        demux (bool):
            If False, stdout and stderr are multiplexed, and the result is the
            concatenation of all the frames. If True, the streams are
            demultiplexed, and the result is a 2-tuple where each item is the
            concatenation of frames belonging to the same stream.
    """
    if demux is False:
        # If the streams are multiplexed, the generator returns strings, that
        # we just need to concatenate.
        return b"".join(frames)

    # If the streams are demultiplexed, the generator yields tuples
    # (stdout, stderr)
    out = [None, None]
    for frame in frames:
        # It is guaranteed that for each frame, one and only one stream
        # is not None.
        assert frame != (None, None)
        if frame[0] is not None:
            if out[0] is None:
                out[0] = frame[0]
            else:
                out[0] += frame[0]
        else:
            if out[1] is None:
                out[1] = frame[1]
            else:
                out[1] += frame[1]
    return tuple(out)


def demux_frames(frames):
    """
    Map ``(stream, data)`` frames to ``(stdout, stderr)`` tuples.
    """
    return (demux_adaptor(*frame) for frame in frames)
