# flake8: noqa
from .daemon import CancellableStream
from .streams import (
    END_OF_STREAM, NEED_INPUT, Frame, Pending, StreamTag, TaggedChunk
)
