import codecs
import json
import re

from .. import errors
from ..types.streams import NEED_INPUT
from .stream_decoder import StreamDecoder

_WHITESPACE = b' \t\n\r'
_SCALAR_DELIMITERS = _WHITESPACE + b'{}[]",:'
_OPEN = b'{['
_CLOSE = b'}]'
_QUOTE = ord('"')
_BACKSLASH = ord('\\')

_NESTED = 'nested'
_SCALAR = 'scalar'

_LITERALS = ('true', 'false', 'null', 'NaN', 'Infinity', '-Infinity')
_NUMBER_PREFIX = re.compile(r'[-+.0-9eE]+')
_UNICODE_ESCAPE_PREFIX = re.compile(r'u[0-9a-fA-F]{0,4}')

_json_decoder = json.JSONDecoder()
_utf8_decoder = codecs.getincrementaldecoder('utf-8')


def _is_partial_token(rest):
    """
    Whether ``rest`` may still turn into valid JSON text with more input:
    nothing but whitespace, or the beginning of a literal or a number.
    """
    if not rest.strip():
        return True
    if any(literal.startswith(rest) for literal in _LITERALS):
        return True
    return _NUMBER_PREFIX.fullmatch(rest) is not None


def _is_incomplete(text, error):
    """
    Whether the decode ``error`` raised for ``text`` is only caused by the
    text ending too early.
    """
    rest = text[error.pos:]
    if not rest.strip() or error.msg.startswith('Unterminated string'):
        return True
    if error.msg.startswith('Invalid \\uXXXX escape'):
        return _UNICODE_ESCAPE_PREFIX.fullmatch(rest) is not None
    if error.msg == 'Expecting value':
        return _is_partial_token(rest)
    if error.msg.endswith('delimiter') and text[:error.pos][-1:].isdigit():
        # Number cut before the digits of its fraction or exponent
        return _NUMBER_PREFIX.fullmatch(rest) is not None
    return False


class JSONStreamDecoder(StreamDecoder):
    """
    Incremental decoder for a stream of concatenated JSON values, as sent by
    the events, stats, pull, push and build endpoints. Values may be
    separated by any amount of whitespace (usually ``\\r\\n``) but do not
    need to be.

    The end of the next value is found by scanning the raw bytes, tracking
    bracket depth, strings and escapes, so a value split across any number
    of chunks (including inside a multi-byte UTF-8 sequence) is only parsed
    once it is complete. Numbers and literals at the top level end at the
    next whitespace or structural character, or at the end of the input.

    While a value is still open, the bytes received so far are checked
    with :py:meth:`json.JSONDecoder.raw_decode`: a prefix that no further
    input could complete raises
    :py:class:`~docker_api.errors.MalformedJson` right away instead of being
    buffered until the end of the stream.

    Args:
        decoder (callable): Applied to every decoded value before it is
            returned. Default: return values unchanged.
    """

    def __init__(self, decoder=None):
        super().__init__()
        self._decoder = decoder
        self._reset_scan()

    def _reset_scan(self):
        self._kind = None
        self._scanned = 0
        self._depth = 0
        self._in_string = False
        self._escape = False

    def _decode_next(self):
        if self._kind is None:
            self._skip_whitespace()
            if not self.buffered:
                return NEED_INPUT
            first = self._buf[self._pos]
            if first in _CLOSE or first in b',:':
                raise errors.MalformedJson(
                    f'Unexpected {chr(first)!r} at the start of a JSON value'
                )
            self._kind = _NESTED if first in _OPEN or first == _QUOTE \
                else _SCALAR

        end = self._scan()
        if end is None:
            self._check_prefix()
            if not (self._closed and self._kind is _SCALAR):
                return NEED_INPUT
            return self._parse(self.buffered, at_eof=True)

        if self._kind is _SCALAR and self.buffered > end:
            following = self._buf[self._pos + end]
            if following == _QUOTE or following in _OPEN:
                raise errors.MalformedJson(
                    f'Unexpected {chr(following)!r} directly after a JSON '
                    f'value'
                )
        return self._parse(end)

    def _parse(self, end, at_eof=False):
        span = self._consume(end)
        self._reset_scan()
        try:
            value = json.loads(span)
        except ValueError as e:
            text = span.decode('utf-8', errors='replace')
            if at_eof and _is_partial_token(text):
                raise errors.TruncatedJson(
                    f'Stream ended in the middle of a JSON value: {text!r}'
                ) from e
            raise errors.MalformedJson(
                f'Invalid JSON value in stream: {e}'
            ) from e
        if self._decoder is not None:
            return self._decoder(value)
        return value

    def _check_prefix(self):
        """
        Raise ``MalformedJson`` if the unfinished value received so far can
        not be completed by any further input.
        """
        # A multi-byte character cut at the end of the buffer is held back
        text = _utf8_decoder(errors='replace').decode(
            bytes(self._buf[self._pos:]), final=False
        )
        try:
            _json_decoder.raw_decode(text)
        except json.JSONDecodeError as e:
            if not _is_incomplete(text, e):
                raise errors.MalformedJson(
                    f'Invalid JSON value in stream: {e}'
                ) from e

    def _finish(self):
        if self._kind is not None:
            raise errors.TruncatedJson(
                f'Stream ended in the middle of a JSON value '
                f'({self.buffered} bytes buffered)'
            )

    def _skip_whitespace(self):
        buf = self._buf
        while self._pos < len(buf) and buf[self._pos] in _WHITESPACE:
            self._pos += 1
        self._compact()

    def _scan(self):
        """
        Continue scanning the current value. Returns its length once its last
        byte has been seen, ``None`` otherwise.
        """
        buf = self._buf
        start = self._pos
        i = start + self._scanned
        end = len(buf)

        if self._kind is _SCALAR:
            while i < end:
                if buf[i] in _SCALAR_DELIMITERS:
                    return i - start
                i += 1
            self._scanned = i - start
            return None

        while i < end:
            c = buf[i]
            if self._in_string:
                if self._escape:
                    self._escape = False
                elif c == _BACKSLASH:
                    self._escape = True
                elif c == _QUOTE:
                    self._in_string = False
                    if self._depth == 0:
                        return i + 1 - start
            elif c == _QUOTE:
                self._in_string = True
            elif c in _OPEN:
                self._depth += 1
            elif c in _CLOSE:
                self._depth -= 1
                if self._depth == 0:
                    return i + 1 - start
            i += 1
        self._scanned = i - start
        return None


def json_stream(stream, decoder=None):
    """
    Given a stream of byte chunks, return a generator that yields each
    complete JSON value found in it.
    """
    return JSONStreamDecoder(decoder=decoder).decode(stream)
