from .. import errors
from .. import utils
from ..types import CancellableStream


def _exec_id(exec_id):
    """Accept either an exec ID or the dict returned by ``exec_create``."""
    if isinstance(exec_id, dict):
        return exec_id.get('Id')
    return exec_id


class ExecApiMixin:
    @utils.check_resource('container')
    def exec_create(self, container, cmd, stdout=True, stderr=True,
                    stdin=False, tty=False, privileged=False, user='',
                    environment=None, workdir=None, detach_keys=None):
        """
        Prepare ``cmd`` to run inside a running container. Nothing runs
        until :py:meth:`exec_start` is called with the returned ID.

        Args:
            container (str): The container to run in.
            cmd (str or list): The command. A string is split like a shell
                would.
            stdout (bool): Attach stdout. Default: ``True``
            stderr (bool): Attach stderr. Default: ``True``
            stdin (bool): Attach stdin. Default: ``False``
            tty (bool): Allocate a pseudo-TTY. Stdout and stderr then share
                one unframed stream.
            privileged (bool): Run with extended privileges.
            user (str): User to run as. Default: the container's user.
            environment (dict or list): Extra environment, as
                ``{"KEY": "value"}`` or ``["KEY=value"]``. Requires API 1.25.
            workdir (str): Working directory. Requires API 1.35.
            detach_keys (str): Key sequence for detaching, e.g. ``ctrl-p``.

        Returns:
            (dict): ``{'Id': ...}`` for the new exec instance.

        Raises:
            :py:class:`docker_api.errors.InvalidVersion`
                If an option is not supported by the API version in use.
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
        """
        if environment is not None and utils.version_lt(self._version, '1.25'):
            raise errors.InvalidVersion(
                'Exec environment requires API 1.25 or later'
            )
        if workdir is not None and utils.version_lt(self._version, '1.35'):
            raise errors.InvalidVersion(
                'Exec working directory requires API 1.35 or later'
            )

        if isinstance(environment, dict):
            environment = utils.format_environment(environment)

        data = {
            'Container': container,
            'Cmd': utils.split_command(cmd) if isinstance(cmd, str) else cmd,
            'User': user,
            'Privileged': privileged,
            'Tty': tty,
            'AttachStdin': stdin,
            'AttachStdout': stdout,
            'AttachStderr': stderr,
            'Env': environment,
            'WorkingDir': workdir,
            'detachKeys': detach_keys or None,
        }
        return self._result(
            self._post_json(
                self._url('/containers/{0}/exec', container), data=data
            ),
            True
        )

    def exec_inspect(self, exec_id):
        """
        Return the state of an exec instance: whether it is running, its
        exit code and the process it runs.
        """
        url = self._url('/exec/{0}/json', _exec_id(exec_id))
        return self._result(self._get(url), True)

    def exec_resize(self, exec_id, height=None, width=None):
        """
        Resize the TTY of an exec instance started with ``tty=True``.
        """
        url = self._url('/exec/{0}/resize', _exec_id(exec_id))
        self._raise_for_status(
            self._post(url, params={'h': height, 'w': width})
        )

    def exec_start(self, exec_id, detach=False, tty=False, stream=False,
                   socket=False, demux=False):
        """
        Run an exec instance and collect its output.

        Unless ``tty`` is set the output is multiplexed and decoded frame by
        frame. The result depends on the flags:

        - ``detach``: the daemon's reply, without waiting for output.
        - ``socket``: the raw connection socket. The caller closes it.
        - ``stream``: a :py:class:`~docker_api.types.CancellableStream` of
          output chunks.
        - ``stream`` and ``demux``: a
          :py:class:`~docker_api.utils.demux.Demultiplexer` with separate
          stdout and stderr sequences.
        - ``demux``: a ``(stdout, stderr)`` tuple of bytes, either of
          which is ``None`` if nothing was written to it.
        - otherwise: all output as bytes.

        Raises:
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
            :py:class:`docker_api.errors.StreamDecodeError`
                If the multiplexed output is malformed.
        """
        # A detached start does not upgrade the connection
        headers = {} if detach else {'Connection': 'Upgrade', 'Upgrade': 'tcp'}
        res = self._post_json(
            self._url('/exec/{0}/start', _exec_id(exec_id)),
            headers=headers,
            data={'Tty': tty, 'Detach': detach},
            stream=True
        )
        if detach:
            return self._result(res)
        if socket:
            return self._get_raw_response_socket(res)

        output = self._read_from_socket(res, stream, tty=tty, demux=demux)
        if stream and not demux:
            return CancellableStream(output, res)
        return output
