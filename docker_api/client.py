from __future__ import annotations

import functools
from typing import Any, Callable, NoReturn

from .api.client import APIClient
from .constants import DEFAULT_MAX_POOL_SIZE, DEFAULT_TIMEOUT_SECONDS
from .utils import kwargs_from_env


def _daemon_call(name: str) -> Callable[..., Any]:
    """A method forwarding to ``APIClient.<name>`` on the wrapped client."""
    target = getattr(APIClient, name)

    @functools.wraps(target)
    def call(self: DockerClient, *args: Any, **kwargs: Any) -> Any:
        return getattr(self.api, name)(*args, **kwargs)
    return call


class DockerClient:
    """
    Entry point for one Docker daemon.

    Daemon-wide calls (``version``, ``info``, ``df``, ``ping``, ``login``
    and ``events``) are available directly. Container, image, exec, network,
    volume and swarm calls are made on the low-level
    :py:class:`~docker_api.api.client.APIClient` held in ``api``.

    Used as a context manager, the client closes its connections on exit::

        with docker_api.from_env() as client:
            for event in client.events(decode=True):
                ...

    All arguments (``base_url``, ``version``, ``timeout``, ``tls``,
    ``user_agent``, ``max_pool_size``...) are those of
    :py:class:`~docker_api.api.client.APIClient`.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.api = APIClient(*args, **kwargs)

    @classmethod
    def from_env(cls, **kwargs: Any) -> DockerClient:
        """
        Build a client from ``DOCKER_HOST``, ``DOCKER_TLS_VERIFY`` and
        ``DOCKER_CERT_PATH``, as the ``docker`` command line does.

        Args:
            version (str): API version, or ``auto`` to ask the daemon.
                Default: the newest version this library knows.
            timeout (int): Default timeout for API calls, in seconds.
            max_pool_size (int): Connections kept per pool.
            environment (dict): Read the variables from this mapping
                instead of ``os.environ``.
        """
        options = {
            'timeout': kwargs.pop('timeout', DEFAULT_TIMEOUT_SECONDS),
            'max_pool_size': kwargs.pop('max_pool_size',
                                        DEFAULT_MAX_POOL_SIZE),
            'version': kwargs.pop('version', None),
        }
        options.update(kwargs_from_env(**kwargs))
        return cls(**options)

    df = _daemon_call('df')
    events = _daemon_call('events')
    info = _daemon_call('info')
    login = _daemon_call('login')
    ping = _daemon_call('ping')
    version = _daemon_call('version')
    close = _daemon_call('close')

    def __enter__(self) -> DockerClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __getattr__(self, name: str) -> NoReturn:
        message = f"'DockerClient' object has no attribute '{name}'"
        if not name.startswith('_') and hasattr(APIClient, name):
            message += f"; call it on DockerClient.api.{name} instead"
        raise AttributeError(message)


from_env = DockerClient.from_env
