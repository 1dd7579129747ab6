from datetime import datetime

from .. import errors
from .. import utils
from ..constants import DEFAULT_DATA_CHUNK_SIZE
from ..types import CancellableStream
from ..utils.demux import Demultiplexer

UPGRADE_HEADERS = {'Connection': 'Upgrade', 'Upgrade': 'tcp'}


def _as_command(value):
    return utils.split_command(value) if isinstance(value, str) else value


def _exposed_ports(ports):
    """``[80, (53, 'udp')]`` becomes ``{'80/tcp': {}, '53/udp': {}}``."""
    if not isinstance(ports, list):
        return ports
    exposed = {}
    for entry in ports:
        if isinstance(entry, tuple):
            port, proto = entry[0], entry[1] if len(entry) == 2 else 'tcp'
        else:
            port, proto = entry, 'tcp'
        exposed[f'{port}/{proto}'] = {}
    return exposed


def _volume_paths(volumes):
    if isinstance(volumes, str):
        volumes = [volumes]
    if isinstance(volumes, list):
        return {path: {} for path in volumes}
    return volumes


def create_container_config(
    version, image, command, hostname=None, user=None, detach=False,
    stdin_open=False, tty=False, ports=None, environment=None, volumes=None,
    network_disabled=False, entrypoint=None, working_dir=None,
    domainname=None, host_config=None, mac_address=None, labels=None,
    stop_signal=None, networking_config=None, healthcheck=None,
    stop_timeout=None, platform=None
):
    """The ``POST /containers/create`` body for the given options."""
    if stop_timeout is not None and utils.version_lt(version, '1.25'):
        raise errors.InvalidVersion(
            'stop_timeout was only introduced in API version 1.25'
        )
    if isinstance(environment, dict):
        environment = utils.format_environment(environment)
    if isinstance(labels, list):
        labels = dict.fromkeys(labels, '')

    # A detached container attaches nothing; stdin only when kept open
    attached = not detach
    attach_stdin = attached and bool(stdin_open)

    return {
        'Hostname': hostname,
        'Domainname': domainname,
        'ExposedPorts': _exposed_ports(ports),
        'User': None if user is None else str(user),
        'Tty': tty,
        'OpenStdin': stdin_open,
        'StdinOnce': attach_stdin,
        'AttachStdin': attach_stdin,
        'AttachStdout': attached,
        'AttachStderr': attached,
        'Env': environment,
        'Cmd': _as_command(command),
        'Image': image,
        'Volumes': _volume_paths(volumes),
        'NetworkDisabled': network_disabled,
        'Entrypoint': _as_command(entrypoint),
        'WorkingDir': working_dir,
        'Labels': labels,
        'StopSignal': stop_signal,
        'HostConfig': host_config,
        'NetworkingConfig': networking_config,
        'MacAddress': mac_address,
        'Healthcheck': healthcheck,
        'StopTimeout': stop_timeout,
    }


class ContainerApiMixin:
    @utils.check_resource('container')
    def attach(self, container, stdout=True, stderr=True,
               stream=False, logs=False, demux=False):
        """
        Read a container's output over an upgraded attach connection.

        Unlike :py:meth:`logs`, attaching without ``logs=True`` starts at
        the container's current output and skips the backlog.

        Args:
            container (str): The container.
            stdout (bool): Read stdout.
            stderr (bool): Read stderr.
            stream (bool): Yield output as it arrives instead of waiting for
                the container to close its streams.
            logs (bool): Replay earlier output first.
            demux (bool): Keep stdout and stderr apart.

        Returns:
            - bytes, or a ``(stdout, stderr)`` tuple with ``demux``.
            - With ``stream``, a
              :py:class:`~docker_api.types.CancellableStream` of chunks.
            - With ``stream`` and ``demux``, a
              :py:class:`~docker_api.utils.demux.Demultiplexer`. Its
              ``stdout()`` and ``stderr()`` are consumed independently and
              ``close()`` ends the session.

        Raises:
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
            :py:class:`docker_api.errors.StreamDecodeError`
                If the multiplexed output is malformed.
        """
        params = {
            'logs': int(bool(logs)),
            'stdout': int(bool(stdout)),
            'stderr': int(bool(stderr)),
            'stream': int(bool(stream)),
        }
        res = self._post(
            self._url('/containers/{0}/attach', container),
            headers=dict(UPGRADE_HEADERS), params=params, stream=True
        )
        output = self._read_from_socket(
            res, stream, self._check_is_tty(container), demux=demux
        )
        if stream and not demux:
            return CancellableStream(output, res)
        return output

    @utils.check_resource('container')
    def attach_socket(self, container, params=None, ws=False):
        """
        Attach to ``container`` and hand back the connection itself, for
        callers that write to stdin or read frames themselves.

        ``params`` defaults to stdout, stderr and stream all on. With ``ws``
        the attach goes over a websocket and a ``websocket-client``
        connection is returned. Otherwise the raw socket is returned. Either
        way the caller closes it.
        """
        if ws:
            return self._attach_websocket(container, params)

        res = self._post(
            self._url('/containers/{0}/attach', container),
            headers=dict(UPGRADE_HEADERS),
            params=self._attach_params(params), stream=True
        )
        return self._get_raw_response_socket(res)

    def containers(self, quiet=False, all=False, trunc=False, latest=False,
                   since=None, before=None, limit=-1, size=False,
                   filters=None):
        """
        List containers, like ``docker ps``.

        Args:
            quiet (bool): Return only ``{'Id': ...}`` for each container.
            all (bool): Include stopped containers.
            trunc (bool): Shorten IDs to 12 characters.
            latest (bool): Only the most recently created container.
            since (str): Only containers created after this ID or name.
            before (str): Only containers created before this ID or name.
            limit (int): At most this many, newest first. ``-1`` for all.
            size (bool): Report container sizes.
            filters (dict): Daemon-side filters such as ``status`` or
                ``label``.

        Returns:
            (list): One dict per container.
        """
        params = {
            'limit': 1 if latest else limit,
            'all': int(bool(all)),
            'size': int(bool(size)),
            'trunc_cmd': int(bool(trunc)),
            'since': since,
            'before': before
        }
        if filters:
            params['filters'] = utils.convert_filters(filters)
        found = self._result(
            self._get(self._url('/containers/json'), params=params), True
        )

        if quiet:
            return [{'Id': c['Id']} for c in found]
        if trunc:
            for c in found:
                c['Id'] = c['Id'][:12]
        return found

    def create_container(self, image, command=None, hostname=None, user=None,
                         detach=False, stdin_open=False, tty=False,
                         ports=None, environment=None, volumes=None,
                         network_disabled=False, name=None, entrypoint=None,
                         working_dir=None, domainname=None, host_config=None,
                         mac_address=None, labels=None, stop_signal=None,
                         networking_config=None, healthcheck=None,
                         stop_timeout=None, platform=None):
        """
        Create, but do not start, a container from ``image``.

        Host-level settings such as port bindings, binds and restart policy
        belong in ``host_config``, built with :py:meth:`create_host_config`::

            client.api.create_container(
                'redis:7', ports=[6379],
                host_config=client.api.create_host_config(
                    port_bindings={6379: ('127.0.0.1', 16379)}
                )
            )

        Args:
            image (str): Image to run.
            command (str or list): Command. Strings are split like a shell
                would.
            hostname (str): Hostname inside the container.
            user (str or int): User name or UID.
            detach (bool): Do not attach stdout and stderr.
            stdin_open (bool): Keep stdin open.
            tty (bool): Allocate a pseudo-TTY.
            ports (list): Ports to expose, as ints or ``(port, proto)``.
            environment (dict or list): ``{"KEY": "value"}`` or
                ``["KEY=value"]``.
            volumes (str or list): Container paths to declare as volumes.
            network_disabled (bool): Start without networking.
            name (str): Container name.
            entrypoint (str or list): Entrypoint override.
            working_dir (str): Working directory.
            domainname (str): Domain name.
            host_config (dict): From :py:meth:`create_host_config`.
            mac_address (str): MAC address.
            labels (dict or list): Labels, or label names with empty values.
            stop_signal (str): Signal ``stop`` sends, e.g. ``SIGINT``.
            stop_timeout (int): Seconds ``stop`` waits. Requires API 1.25.
            networking_config (dict): Sent as ``NetworkingConfig``.
            healthcheck (dict): Health check settings.
            platform (str): ``os[/arch[/variant]]`` of the image.

        Returns:
            (dict): ``Id`` and ``Warnings`` of the new container.

        Raises:
            :py:class:`docker_api.errors.ImageNotFound`
                If the image is not present.
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
        """
        config = self.create_container_config(
            image, command, hostname, user, detach, stdin_open, tty,
            ports, environment, volumes,
            network_disabled, entrypoint, working_dir, domainname,
            host_config, mac_address, labels,
            stop_signal, networking_config, healthcheck,
            stop_timeout, platform
        )
        return self.create_container_from_config(config, name, platform)

    def create_container_config(self, *args, **kwargs):
        return create_container_config(self._version, *args, **kwargs)

    def create_container_from_config(self, config, name=None, platform=None):
        u = self._url("/containers/create")
        params = {
            'name': name
        }
        if platform:
            if utils.version_lt(self._version, '1.41'):
                raise errors.InvalidVersion(
                    'platform is not supported for API version < 1.41'
                )
            params['platform'] = platform
        res = self._post_json(u, data=config, params=params)
        return self._result(res, True)

    def create_host_config(self, *args, **kwargs):
        """
        Build the ``host_config`` for :py:meth:`create_container`, for the
        API version this client speaks.

        Common options: ``binds``, ``port_bindings`` (container port to a
        host port, ``(host_ip, host_port)`` or a list of those),
        ``publish_all_ports``, ``links``, ``privileged``, ``network_mode``,
        ``restart_policy``, ``auto_remove``, ``mem_limit`` (``128m``,
        ``1g``...), ``cpu_shares``, ``cap_add``, ``cap_drop``,
        ``extra_hosts``, ``volumes_from``, ``log_config``, ``userns_mode``,
        ``devices`` (``host:container:perms`` strings), ``security_opt``
        and ``init``. See :py:func:`docker_api.utils.create_host_config`.
        """
        if 'version' in kwargs:
            raise TypeError(
                "create_host_config() got an unexpected "
                "keyword argument 'version'"
            )
        return utils.create_host_config(*args, version=self._version,
                                        **kwargs)

    def _container_post(self, container, action, **kwargs):
        res = self._post(
            self._url('/containers/{0}/' + action, container), **kwargs
        )
        self._raise_for_status(res)

    def _timeout_plus(self, seconds):
        """The request timeout for a call the daemon may hold ``seconds``."""
        if self.timeout is None:
            return None
        return self.timeout + seconds

    @utils.check_resource('container')
    def diff(self, container):
        """Filesystem changes in ``container`` as ``Path``/``Kind`` dicts."""
        return self._result(
            self._get(self._url('/containers/{0}/changes', container)), True
        )

    @utils.check_resource('container')
    def export(self, container, chunk_size=DEFAULT_DATA_CHUNK_SIZE):
        """
        The container's filesystem as a tar archive, in pieces of
        ``chunk_size`` bytes (as received when ``None``).
        """
        res = self._get(
            self._url('/containers/{0}/export', container), stream=True
        )
        return self._stream_raw_result(res, chunk_size, False)

    @utils.check_resource('container')
    def inspect_container(self, container):
        """The daemon's full description of ``container``."""
        return self._result(
            self._get(self._url('/containers/{0}/json', container)), True
        )

    @utils.check_resource('container')
    def kill(self, container, signal=None):
        """
        Send ``signal`` (a name such as ``SIGHUP`` or a number) to the
        container's main process. The daemon's default is ``SIGKILL``.
        """
        params = {}
        if signal is not None:
            params['signal'] = signal if isinstance(signal, str) \
                else int(signal)
        self._container_post(container, 'kill', params=params)

    @utils.check_resource('container')
    def logs(self, container, stdout=True, stderr=True, stream=False,
             timestamps=False, tail='all', since=None, follow=None,
             until=None, demux=False):
        """
        Fetch a container's output, like ``docker logs``.

        Args:
            container (str): The container.
            stdout (bool): Include stdout.
            stderr (bool): Include stderr.
            stream (bool): Return a generator that yields output as the
                daemon sends it.
            timestamps (bool): Prefix each line with its timestamp.
            tail (str or int): Only this many lines from the end, or
                ``'all'``. Invalid values mean ``'all'``.
            since (datetime, int or float): Only output after this time.
            follow (bool): Keep following new output. Defaults to ``stream``.
            until (datetime, int or float): Only output before this time.
                Requires API 1.35.
            demux (bool): Keep stdout and stderr apart. Without ``stream``
                the result is a ``(stdout, stderr)`` tuple. With ``stream``
                it is a :py:class:`~docker_api.utils.demux.Demultiplexer`
                whose ``close()`` closes the response.

        Returns:
            (bytes, generator, tuple or Demultiplexer)

        Raises:
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
            :py:class:`docker_api.errors.StreamDecodeError`
                If the multiplexed output is malformed.
        """
        if follow is None:
            follow = stream
        if tail != 'all' and (not isinstance(tail, int) or tail < 0):
            tail = 'all'
        params = {
            'stderr': int(bool(stderr)),
            'stdout': int(bool(stdout)),
            'timestamps': int(bool(timestamps)),
            'follow': int(bool(follow)),
            'tail': tail,
        }
        if since is not None:
            params['since'] = self._log_timestamp('since', since)
        if until is not None:
            if utils.version_lt(self._version, '1.35'):
                raise errors.InvalidVersion(
                    'until is not supported for API version < 1.35'
                )
            params['until'] = self._log_timestamp('until', until)

        res = self._get(
            self._url('/containers/{0}/logs', container), params=params,
            stream=stream
        )
        if demux:
            is_tty = self._check_is_tty(container)
            if stream:
                return self._multiplexed_response_demux(res, tty=is_tty)
            body = self._result(res, binary=True)
            return Demultiplexer([body], tty=is_tty).collect()

        output = self._get_result(container, stream, res)
        return CancellableStream(output, res) if stream else output

    def _log_timestamp(self, name, value):
        if isinstance(value, datetime):
            return utils.datetime_to_timestamp(value)
        if isinstance(value, (int, float)) and value > 0:
            return value
        raise errors.InvalidArgument(
            f'{name} value should be datetime or positive int/float, '
            f'not {type(value)}'
        )

    @utils.check_resource('container')
    def pause(self, container):
        """Freeze every process in ``container``."""
        self._container_post(container, 'pause')

    def prune_containers(self, filters=None):
        """
        Delete stopped containers, optionally only those matching
        ``filters`` (``until``, ``label``).

        Returns:
            (dict): ``ContainersDeleted`` and ``SpaceReclaimed`` in bytes.
        """
        params = {}
        if filters:
            params['filters'] = utils.convert_filters(filters)
        return self._result(
            self._post(self._url('/containers/prune'), params=params), True
        )

    @utils.check_resource('container')
    def remove_container(self, container, v=False, link=False, force=False):
        """
        Remove ``container``, like ``docker rm``.

        Args:
            v (bool): Also remove its anonymous volumes.
            link (bool): Remove the link named ``container`` instead.
            force (bool): Kill it first if it is running.
        """
        params = {'v': v, 'link': link, 'force': force}
        self._raise_for_status(self._delete(
            self._url('/containers/{0}', container), params=params
        ))

    @utils.check_resource('container')
    def rename(self, container, name):
        """Give ``container`` a new ``name``."""
        self._container_post(container, 'rename', params={'name': name})

    @utils.check_resource('container')
    def resize(self, container, height, width):
        """Resize the container's TTY to ``height`` rows by ``width``."""
        self._container_post(
            container, 'resize', params={'h': height, 'w': width}
        )

    @utils.check_resource('container')
    def restart(self, container, timeout=10):
        """
        Stop ``container``, killing it after ``timeout`` seconds, then start
        it again. The request itself may take that much longer.
        """
        self._container_post(
            container, 'restart', params={'t': timeout},
            timeout=self._timeout_plus(timeout)
        )

    @utils.check_resource('container')
    def start(self, container):
        """Start a created or stopped container."""
        self._container_post(container, 'start')

    @utils.check_resource('container')
    def stats(self, container, decode=None, stream=True, one_shot=None):
        """
        Resource usage of ``container``, like ``docker stats``.

        Args:
            decode (bool): With ``stream``, yield dicts instead of text.
            stream (bool): Keep reporting. Otherwise return one sample.
            one_shot (bool): Without ``stream``, return the first sample
                immediately instead of waiting for two.

        Raises:
            :py:class:`docker_api.errors.InvalidArgument`
                If ``one_shot`` is combined with ``stream`` or ``decode``
                is set without it.
            :py:class:`docker_api.errors.StreamDecodeError`
                If a decoded stream is malformed.
        """
        url = self._url('/containers/{0}/stats', container)
        params = {'stream': stream}
        if one_shot is not None:
            if stream:
                raise errors.InvalidArgument(
                    'one_shot is only available in conjunction with '
                    'stream=False'
                )
            params['one-shot'] = one_shot

        if not stream:
            if decode:
                raise errors.InvalidArgument(
                    "decode is only available in conjunction with stream=True"
                )
            return self._result(self._get(url, params=params), json=True)
        res = self._get(url, params=params, stream=True)
        return self._stream_helper(res, decode=bool(decode))

    @utils.check_resource('container')
    def stop(self, container, timeout=None):
        """
        Stop ``container``, killing it after ``timeout`` seconds. Without
        ``timeout`` the container's own ``StopTimeout`` applies and the
        request allows for the default of 10 seconds.
        """
        params = {} if timeout is None else {'t': timeout}
        grace = 10 if timeout is None else timeout
        self._container_post(
            container, 'stop', params=params,
            timeout=self._timeout_plus(grace)
        )

    @utils.check_resource('container')
    def top(self, container, ps_args=None):
        """
        The processes running in ``container``, as ``Titles`` and
        ``Processes``. ``ps_args`` is passed to ``ps``, e.g. ``aux``.
        """
        params = {} if ps_args is None else {'ps_args': ps_args}
        return self._result(
            self._get(self._url('/containers/{0}/top', container),
                      params=params),
            True
        )

    @utils.check_resource('container')
    def unpause(self, container):
        """Resume the processes frozen by :py:meth:`pause`."""
        self._container_post(container, 'unpause')

    @utils.check_resource('container')
    def wait(self, container, timeout=None, condition=None):
        """
        Block until ``container`` reaches ``condition`` (``not-running`` by
        default, or ``next-exit``/``removed``).

        Args:
            timeout (int): Give up after this many seconds. Unlike other
                calls, the default is to wait forever.

        Returns:
            (dict): ``StatusCode`` and, if any, ``Error``.

        Raises:
            :py:class:`requests.exceptions.ReadTimeout`
                If the timeout is exceeded.
        """
        params = {} if condition is None else {'condition': condition}
        res = self._post(
            self._url('/containers/{0}/wait', container), timeout=timeout,
            params=params
        )
        return self._result(res, True)
