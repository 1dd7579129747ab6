import contextlib
import json
import logging
import urllib.parse

import requests
import requests.adapters
import requests.exceptions
import websocket

from .. import auth
from ..constants import (
    DEFAULT_DATA_CHUNK_SIZE, DEFAULT_MAX_POOL_SIZE, DEFAULT_NUM_POOLS,
    DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT, DEFAULT_DOCKER_API_VERSION,
    MINIMUM_DOCKER_API_VERSION,
)
from ..errors import (
    DockerException, InvalidVersion, TLSParameterError,
    create_api_error_from_http_exception
)
from ..tls import TLSConfig
from ..transport import UnixHTTPAdapter
from ..utils import check_resource, parse_host, version_lt
from ..utils.demux import Demultiplexer
from ..utils.frames import FrameDecoder
from ..utils.json_stream import json_stream
from ..utils.socket import (
    consume_socket_output, demux_frames, frames_iter, socket_raw_iter
)
from .build import BuildApiMixin
from .container import ContainerApiMixin
from .daemon import DaemonApiMixin
from .exec_api import ExecApiMixin
from .image import ImageApiMixin
from .network import NetworkApiMixin
from .service import ServiceApiMixin
from .swarm import SwarmApiMixin
from .volume import VolumeApiMixin

log = logging.getLogger(__name__)


def _quote_path_arg(arg):
    return urllib.parse.quote(arg, safe='/:')


class APIClient(
        requests.Session,
        BuildApiMixin,
        ContainerApiMixin,
        DaemonApiMixin,
        ExecApiMixin,
        ImageApiMixin,
        NetworkApiMixin,
        ServiceApiMixin,
        SwarmApiMixin,
        VolumeApiMixin):
    """
    A low-level client for the Docker Engine API. Every endpoint method
    returns what the daemon sent, decoded from JSON where the endpoint
    speaks JSON.

        >>> client = docker_api.APIClient()
        >>> client.version()['ApiVersion']
        '1.43'

    Args:
        base_url (str): Where the daemon listens, e.g.
            ``unix:///var/run/docker.sock`` or ``tcp://10.0.0.5:2376``.
            Defaults to the local socket.
        version (str): API version to speak, or ``auto`` to ask the daemon.
            Defaults to the newest version this library knows.
        timeout (int): Default timeout for API calls, in seconds.
        tls (bool or :py:class:`~docker_api.tls.TLSConfig`): ``True`` for TLS
            with default settings, or a ``TLSConfig`` for client
            certificates and verification.
        user_agent (str): ``User-Agent`` header to send.
        num_pools (int): Connection pools to cache.
        max_pool_size (int): Connections kept per pool.
    """

    __attrs__ = requests.Session.__attrs__ + ['_auth_configs',
                                              '_version',
                                              'base_url',
                                              'timeout']

    def __init__(self, base_url=None, version=None,
                 timeout=DEFAULT_TIMEOUT_SECONDS, tls=False,
                 user_agent=DEFAULT_USER_AGENT, num_pools=None,
                 max_pool_size=DEFAULT_MAX_POOL_SIZE):
        super().__init__()

        if tls and not base_url:
            raise TLSParameterError(
                'If using TLS, the base_url argument must be provided.'
            )

        self.timeout = timeout
        self.headers['User-Agent'] = user_agent
        self._custom_adapter = None
        self._auth_configs = auth.load_config()

        self.base_url = self._mount_transport(
            parse_host(base_url, tls=bool(tls)), tls,
            num_pools or DEFAULT_NUM_POOLS, max_pool_size
        )
        # "auto" needs the transport mounted above
        self._version = self._pick_version(version)

    def _mount_transport(self, url, tls, num_pools, max_pool_size):
        """Mount the adapter for ``url`` and return the base URL to use."""
        if not url.startswith('http+unix://'):
            if isinstance(tls, TLSConfig):
                tls.configure_client(self)
            elif tls:
                self._custom_adapter = requests.adapters.HTTPAdapter(
                    pool_connections=num_pools
                )
                self.mount('https://', self._custom_adapter)
            return url

        self._custom_adapter = UnixHTTPAdapter(
            url, self.timeout, pool_connections=num_pools,
            max_pool_size=max_pool_size
        )
        self.mount('http+docker://', self._custom_adapter)
        self._unmount('http://', 'https://')
        # requests still resolves the host part, so it must be a real name
        return 'http+docker://localhost'

    def _pick_version(self, version):
        if version is None:
            picked = DEFAULT_DOCKER_API_VERSION
        elif not isinstance(version, str):
            raise DockerException(
                'Version parameter must be a string or None. '
                f'Found {type(version).__name__}'
            )
        elif version.lower() == 'auto':
            picked = self._retrieve_server_version()
        else:
            picked = version

        if version_lt(picked, MINIMUM_DOCKER_API_VERSION):
            raise InvalidVersion(
                f'API versions below {MINIMUM_DOCKER_API_VERSION} are '
                f'no longer supported by this library.'
            )
        return picked

    def _retrieve_server_version(self):
        log.debug('Asking the daemon for its API version')
        try:
            return self.version(api_version=False)['ApiVersion']
        except KeyError as ke:
            raise DockerException(
                'Invalid response from docker daemon: key "ApiVersion"'
                ' is missing.'
            ) from ke
        except Exception as e:
            raise DockerException(
                f'Error while fetching server API version: {e}'
            ) from e

    def _set_request_timeout(self, kwargs):
        """Prepare the kwargs for an HTTP request by inserting the timeout
        parameter, if not already present."""
        kwargs.setdefault('timeout', self.timeout)
        return kwargs

    def _post(self, url, **kwargs):
        return self.post(url, **self._set_request_timeout(kwargs))

    def _get(self, url, **kwargs):
        return self.get(url, **self._set_request_timeout(kwargs))

    def _put(self, url, **kwargs):
        return self.put(url, **self._set_request_timeout(kwargs))

    def _delete(self, url, **kwargs):
        return self.delete(url, **self._set_request_timeout(kwargs))

    def _url(self, pathfmt, *args, versioned_api=True):
        """
        The full URL for ``pathfmt`` with ``args`` URL-quoted into it. Slashes
        and colons are kept so that ``registry:5000/app`` stays readable.
        """
        bad = [arg for arg in args if not isinstance(arg, str)]
        if bad:
            raise ValueError(
                f'Expected a string but found {bad[0]} ({type(bad[0])}) '
                'instead'
            )
        path = pathfmt.format(*map(_quote_path_arg, args))
        if versioned_api:
            return f'{self.base_url}/v{self._version}{path}'
        return f'{self.base_url}{path}'

    def _raise_for_status(self, response):
        """Raises stored :class:`APIError`, if one occurred."""
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise create_api_error_from_http_exception(e) from e

    def _result(self, response, json=False, binary=False):
        assert not (json and binary)
        self._raise_for_status(response)

        if json:
            return response.json()
        if binary:
            return response.content
        return response.text

    def _post_json(self, url, data, **kwargs):
        """
        POST ``data`` as JSON. ``None`` values are left out of a dict body,
        as the daemon rejects ``null`` for many string fields.
        """
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if v is not None}
        elif data is None:
            data = {}
        kwargs.setdefault('headers', {})['Content-Type'] = 'application/json'
        return self._post(url, data=json.dumps(data), **kwargs)

    def _attach_params(self, override=None):
        return override or {'stdout': 1, 'stderr': 1, 'stream': 1}

    @check_resource('container')
    def _attach_websocket(self, container, params=None):
        request = requests.Request(
            'POST', self._url('/containers/{0}/attach/ws', container),
            params=self._attach_params(params)
        ).prepare()
        scheme, sep, rest = request.url.partition('://')
        ws_scheme = {'http': 'ws', 'https': 'wss'}.get(scheme, scheme)
        return self._create_websocket_connection(ws_scheme + sep + rest)

    def _create_websocket_connection(self, url):
        return websocket.create_connection(url)

    def _get_raw_response_socket(self, response):
        """The socket under an upgraded (hijacked) ``response``."""
        self._raise_for_status(response)
        sock = response.raw._fp.fp.raw
        if self.base_url.startswith('https://'):
            sock = sock._sock
        # The response must outlive the socket or a TLS socket gets closed.
        # Unix sockets take no attributes and never carry TLS.
        with contextlib.suppress(AttributeError):
            sock._response = response
        return sock

    def _stream_raw_chunks(self, response, chunk_size=DEFAULT_DATA_CHUNK_SIZE):
        """Generator of the raw body chunks of a streamed response, as they
        come off the wire."""
        yield from response.raw.stream(chunk_size, decode_content=True)

    def _stream_helper(self, response, decode=False):
        """Generator for data coming from a chunked-encoded HTTP response."""

        if response.raw._fp.chunked:
            if decode:
                yield from json_stream(self._stream_raw_chunks(response))
            else:
                yield from self._stream_raw_chunks(response)
        else:
            # Response isn't chunked, meaning we probably
            # encountered an error immediately
            yield self._result(response, json=decode)

    def _multiplexed_buffer_helper(self, response):
        """A generator of multiplexed data blocks read from a buffered
        response."""
        buf = self._result(response, binary=True)
        decoder = FrameDecoder()
        for frame in decoder.decode([buf]):
            yield frame.payload

    def _multiplexed_response_stream_helper(self, response):
        """A generator of multiplexed data blocks coming from a response
        stream."""

        # Disable timeout on the underlying socket to prevent
        # Read timed out(s) for long running processes
        socket = self._get_raw_response_socket(response)
        self._disable_socket_timeout(socket)

        decoder = FrameDecoder()
        for frame in decoder.decode(self._stream_raw_chunks(response)):
            yield frame.payload

    def _multiplexed_response_demux(self, response, tty=False):
        """A :py:class:`~docker_api.utils.demux.Demultiplexer` over the frames
        of a response stream. Closing it closes the response."""
        socket = self._get_raw_response_socket(response)
        self._disable_socket_timeout(socket)

        return Demultiplexer(
            self._stream_raw_chunks(response), tty=tty, response=response
        )

    def _stream_raw_result(self, response, chunk_size=1, decode=True):
        ''' Stream result for TTY-enabled container and raw binary data'''
        self._raise_for_status(response)

        # Disable timeout on the underlying socket to prevent
        # Read timed out(s) for long running processes
        socket = self._get_raw_response_socket(response)
        self._disable_socket_timeout(socket)

        yield from response.iter_content(chunk_size, decode)

    def _read_from_socket(self, response, stream, tty=True, demux=False):
        """Consume all data from the socket, close the response and return the
        data. If stream=True, then a generator is returned instead and the
        caller is responsible for closing the response.

        With ``stream`` and ``demux`` both set, a
        :py:class:`~docker_api.utils.demux.Demultiplexer` is returned so
        stdout and stderr can be read independently.
        """
        socket = self._get_raw_response_socket(response)

        if stream and demux:
            return Demultiplexer(
                socket_raw_iter(socket), tty=tty, response=response
            )

        gen = frames_iter(socket, tty)

        if demux:
            # The generator will output tuples (stdout, stderr)
            gen = demux_frames(gen)
        else:
            # The generator will output strings
            gen = (data for (_, data) in gen)

        if stream:
            return gen
        else:
            try:
                # Wait for all frames, concatenate them, and return the result
                return consume_socket_output(gen, demux=demux)
            finally:
                response.close()

    def _disable_socket_timeout(self, socket):
        """
        Let reads on a long-lived stream block forever. Both ``socket`` and
        the ``_sock`` a TLS wrapper may hold are updated, whichever of them
        supports ``settimeout``. A socket that is already blocking or
        non-blocking (timeout ``None`` or ``0``) is left alone.
        """
        for s in (socket, getattr(socket, '_sock', None)):
            if not hasattr(s, 'settimeout'):
                continue
            current = s.gettimeout() if hasattr(s, 'gettimeout') else -1
            if current is None or current == 0.0:
                continue
            s.settimeout(None)

    @check_resource('container')
    def _check_is_tty(self, container):
        cont = self.inspect_container(container)
        return cont['Config']['Tty']

    def _get_result(self, container, stream, res):
        return self._get_result_tty(stream, res, self._check_is_tty(container))

    def _get_result_tty(self, stream, res, is_tty):
        """
        A container's output: raw bytes for a TTY, otherwise the payloads
        of its frames. Streams as a generator when ``stream`` is set.
        """
        if is_tty:
            if stream:
                return self._stream_raw_result(res)
            return self._result(res, binary=True)

        self._raise_for_status(res)
        if stream:
            return self._multiplexed_response_stream_helper(res)
        return b''.join(self._multiplexed_buffer_helper(res))

    def _unmount(self, *args):
        for proto in args:
            self.adapters.pop(proto)

    def get_adapter(self, url):
        try:
            return super().get_adapter(url)
        except requests.exceptions.InvalidSchema as e:
            if self._custom_adapter:
                return self._custom_adapter
            else:
                raise e

    @property
    def api_version(self):
        return self._version

    def reload_config(self, dockercfg_path=None):
        """
        Force a reload of the auth configuration

        Args:
            dockercfg_path (str): Use a custom path for the Docker config file
                (default ``$HOME/.docker/config.json`` if present,
                otherwise ``$HOME/.dockercfg``)

        Returns:
            None
        """
        self._auth_configs = auth.load_config(dockercfg_path)
