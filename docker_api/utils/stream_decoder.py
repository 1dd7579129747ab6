import logging

from .. import errors
from ..types.streams import END_OF_STREAM, NEED_INPUT

log = logging.getLogger(__name__)


class StreamDecoder:
    """
    Base class for the incremental decoders used on streamed response
    bodies.

    A decoder owns a single growable buffer and never performs I/O itself.
    Bytes are pushed in with :py:meth:`feed`, the end of the input is
    signalled with :py:meth:`close` and values are pulled out one at a time
    with :py:meth:`poll`. :py:meth:`decode` drives the whole cycle over an
    iterable of chunks.

    Subclasses implement ``_decode_next`` (return a value or ``NEED_INPUT``)
    and ``_finish`` (called once the input is closed and ``_decode_next``
    needs more bytes; raise if the leftover buffer is not a clean end).
    """

    def __init__(self):
        self._buf = bytearray()
        self._pos = 0
        self._closed = False
        self._finished = False
        self._error = None

    @property
    def finished(self):
        return self._finished

    @property
    def buffered(self):
        """Number of bytes received but not yet consumed."""
        return len(self._buf) - self._pos

    def feed(self, data):
        if self._closed:
            raise errors.DockerException(
                'Cannot feed data to a closed stream decoder'
            )
        if isinstance(data, str):
            data = data.encode('utf-8')
        if data:
            self._buf += data

    def close(self):
        self._closed = True

    def poll(self):
        """
        Attempt to decode the next value.

        Returns:
            The next decoded value, ``NEED_INPUT`` if more bytes are required
            or ``END_OF_STREAM`` once the input is closed and fully consumed.

        Raises:
            :py:class:`docker_api.errors.StreamDecodeError`
                If the stream is malformed or truncated. The same error is
                raised again by every later call.
        """
        if self._error is not None:
            raise self._error
        if self._finished:
            return END_OF_STREAM
        try:
            value = self._decode_next()
            if value is NEED_INPUT and self._closed:
                self._finish()
                self._finished = True
                self._release()
                return END_OF_STREAM
        except errors.StreamDecodeError as e:
            log.debug(f'{type(self).__name__} failed: {e}')
            self._error = e
            self._release()
            raise
        return value

    def decode(self, chunks):
        """
        Generator of decoded values read from an iterable of byte chunks.
        """
        for chunk in chunks:
            self.feed(chunk)
            yield from self._drain()
        self.close()
        yield from self._drain()

    def _drain(self):
        while True:
            value = self.poll()
            if value is NEED_INPUT or value is END_OF_STREAM:
                return
            yield value

    def _consume(self, n):
        start = self._pos
        self._pos += n
        data = bytes(self._buf[start:self._pos])
        self._compact()
        return data

    def _compact(self):
        # Drop the consumed prefix once it makes up most of the buffer
        if self._pos and self._pos * 2 >= len(self._buf):
            del self._buf[:self._pos]
            self._pos = 0

    def _release(self):
        self._buf = bytearray()
        self._pos = 0

    def _decode_next(self):
        raise NotImplementedError

    def _finish(self):
        raise NotImplementedError
