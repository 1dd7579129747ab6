import collections

from .. import errors
from ..types.streams import END_OF_STREAM, NEED_INPUT, StreamTag, TaggedChunk
from .frames import FrameDecoder

STDOUT = StreamTag.STDOUT
STDERR = StreamTag.STDERR


def demux_adaptor(stream_id, data):
    """
    Utility to demultiplex stdout and stderr when reading frames from the
    socket.
    """
    if stream_id == STDOUT:
        return (data, None)
    elif stream_id == STDERR:
        return (None, data)
    else:
        raise errors.UnexpectedStdinFrame(
            'Received a stdin frame in a response stream'
        )


class Demultiplexer:
    """
    Splits a multiplexed attach/logs/exec stream into two independently
    consumable sequences, one for stdout and one for stderr.

    Frames are only read when one of the sequences asks for more data. Frames
    of the other stream are queued until they are asked for, so one side can
    be read arbitrarily far ahead of the other. Order within each stream is
    preserved.

    Args:
        chunks (iterable): Raw byte chunks of the response body.
        tty (bool): The stream was produced with a TTY allocated, in which
            case it carries no framing and everything is stdout.
        response (:py:class:`requests.Response`): The response the chunks
            are read from. Closed by :py:meth:`close`.

    Example:

        >>> demux = Demultiplexer(socket_raw_iter(sock))
        >>> for chunk in demux.stderr():
        ...     print(chunk.data)
        >>> out = b''.join(chunk.data for chunk in demux.stdout())
    """

    def __init__(self, chunks, tty=False, response=None):
        self._chunks = iter(chunks)
        self._tty = tty
        self._response = response
        self._decoder = FrameDecoder()
        self._pending = {
            STDOUT: collections.deque(),
            STDERR: collections.deque(),
        }
        self._seen = set()
        self._error = None
        self._exhausted = False

    def next_chunk(self, tag):
        """
        Return the next :py:class:`~docker_api.types.TaggedChunk` for
        ``tag``, or ``None`` once the stream has ended.

        Raises:
            :py:class:`docker_api.errors.StreamDecodeError`
                If the stream could not be decoded. Chunks queued before the
                error are handed out first.
        """
        tag = StreamTag(tag)
        if tag not in self._pending:
            raise ValueError(f'Cannot read the {tag.name.lower()} stream')
        pending = self._pending[tag]
        while not pending:
            if self._error is not None:
                raise self._error
            if self._exhausted:
                return None
            self._advance()
        return pending.popleft()

    def stdout(self):
        return self._iter(STDOUT)

    def stderr(self):
        return self._iter(STDERR)

    def collect(self):
        """
        Read the rest of the stream.

        Returns:
            (tuple): ``(stdout, stderr)`` as bytes. Either is ``None`` if no
            frame of that stream was received.
        """
        while not self._exhausted and self._error is None:
            self._advance()
        if self._error is not None:
            raise self._error
        result = tuple(
            b''.join(chunk.data for chunk in self._pending[tag])
            if tag in self._seen else None
            for tag in (STDOUT, STDERR)
        )
        for pending in self._pending.values():
            pending.clear()
        return result

    def close(self):
        """
        Stop reading. Both sequences end and the underlying response, if
        any, is closed.
        """
        self._exhausted = True
        for pending in self._pending.values():
            pending.clear()
        if self._response is not None:
            self._response.close()

    def _iter(self, tag):
        while True:
            chunk = self.next_chunk(tag)
            if chunk is None:
                return
            yield chunk

    def _advance(self):
        """Read one frame (or reach the end of the stream)."""
        if self._tty:
            try:
                data = next(self._chunks)
            except StopIteration:
                self._exhausted = True
                return
            self._push(STDOUT, data)
            return

        try:
            frame = self._decoder.poll()
            while frame is NEED_INPUT:
                try:
                    chunk = next(self._chunks)
                except StopIteration:
                    self._decoder.close()
                else:
                    self._decoder.feed(chunk)
                frame = self._decoder.poll()
        except errors.StreamDecodeError as e:
            self._error = e
            return

        if frame is END_OF_STREAM:
            self._exhausted = True
        elif frame.stream == StreamTag.STDIN:
            self._error = errors.UnexpectedStdinFrame(
                'Received a stdin frame in a response stream'
            )
        else:
            self._push(frame.stream, frame.payload)

    def _push(self, tag, data):
        self._seen.add(tag)
        self._pending[tag].append(TaggedChunk(tag, bytes(data)))
