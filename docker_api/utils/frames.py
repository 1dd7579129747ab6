import struct

from .. import errors
from ..constants import STREAM_HEADER_SIZE_BYTES
from ..types.streams import NEED_INPUT, Frame, StreamTag
from .stream_decoder import StreamDecoder

# 1 byte stream tag, 3 reserved bytes, big-endian unsigned payload length
_HEADER = struct.Struct('>BxxxL')


def encode_frame(stream, payload):
    """
    Return the wire form of a single multiplexed frame.
    """
    return _HEADER.pack(int(stream), len(payload)) + bytes(payload)


class FrameDecoder(StreamDecoder):
    """
    Incremental decoder for the multiplexed stream format used by the attach,
    logs and exec endpoints when no TTY is allocated:

    https://docs.docker.com/engine/api/v1.43/#tag/Container/operation/ContainerAttach

    Every frame is an 8 byte header (stream tag, three ignored bytes and the
    payload length as a big-endian uint32) followed by the payload. Chunk
    boundaries of the input are irrelevant.

    Example:

        >>> decoder = FrameDecoder()
        >>> decoder.feed(b'\\x01\\x00\\x00\\x00\\x00\\x00\\x00\\x05hello')
        >>> decoder.poll()
        Frame(stream=<StreamTag.STDOUT: 1>, payload=b'hello')
        >>> decoder.poll()
        <Pending.NEED_INPUT: 'need-input'>
    """

    def __init__(self):
        super().__init__()
        self._header = None

    def _decode_next(self):
        if self._header is None:
            if self.buffered < STREAM_HEADER_SIZE_BYTES:
                return NEED_INPUT
            tag, length = _HEADER.unpack_from(self._buf, self._pos)
            try:
                stream = StreamTag(tag)
            except ValueError:
                raise errors.UnknownStreamTag(tag) from None
            self._pos += STREAM_HEADER_SIZE_BYTES
            self._header = (stream, length)

        stream, length = self._header
        if self.buffered < length:
            return NEED_INPUT
        self._header = None
        return Frame(stream, self._consume(length))

    def _finish(self):
        if self._header is not None:
            stream, length = self._header
            raise errors.TruncatedFrame(
                f'Stream ended after {self.buffered} of {length} payload '
                f'bytes of a {stream.name.lower()} frame'
            )
        if self.buffered:
            raise errors.TruncatedFrame(
                f'Stream ended after {self.buffered} bytes of a frame header'
            )


def decode_frames(chunks):
    """
    Returns a generator of :py:class:`~docker_api.types.Frame` decoded from
    an iterable of byte chunks.
    """
    return FrameDecoder().decode(chunks)
