import enum
from typing import NamedTuple


class StreamTag(enum.IntEnum):
    STDIN = 0
    STDOUT = 1
    STDERR = 2


class Frame(NamedTuple):
    """
    One frame of a multiplexed attach/logs/exec stream.
    """
    stream: StreamTag
    payload: bytes


class TaggedChunk(NamedTuple):
    """
    A frame payload handed out by
    :py:class:`~docker_api.utils.demux.Demultiplexer`. ``tag`` is always
    ``STDOUT`` or ``STDERR``.
    """
    tag: StreamTag
    data: bytes


class Pending(enum.Enum):
    """
    What a decoder's ``poll()`` returns when it has no value to hand out.
    """
    NEED_INPUT = 'need-input'
    END_OF_STREAM = 'end-of-stream'


NEED_INPUT = Pending.NEED_INPUT
END_OF_STREAM = Pending.END_OF_STREAM
