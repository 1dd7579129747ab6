import json
import logging
import os
import re

from .. import auth
from .. import constants
from .. import errors
from .. import utils


log = logging.getLogger(__name__)

_BUILT_IMAGE_ID = re.compile(
    r'(^Successfully built |sha256:)([0-9a-f]+)$'
)
_REMOTE_PREFIXES = ('http://', 'https://', 'git://', 'github.com/', 'git@')


def _read_dockerignore(path):
    """Patterns of ``path``/.dockerignore, or ``None`` without one."""
    ignore_file = os.path.join(path, '.dockerignore')
    if not os.path.exists(ignore_file):
        return None
    with open(ignore_file) as f:
        lines = (line.strip() for line in f.read().splitlines())
        return [line for line in lines if line and not line.startswith('#')]


def _check_limits(container_limits):
    unknown = set(container_limits) - set(constants.CONTAINER_LIMITS_KEYS)
    if unknown:
        raise errors.DockerException(
            f'Invalid container_limits key {sorted(unknown)[0]}'
        )


class BuildApiMixin:
    def build(self, path=None, tag=None, quiet=False, fileobj=None,
              nocache=False, rm=False, timeout=None,
              custom_context=False, encoding=None, pull=False,
              forcerm=False, dockerfile=None, container_limits=None,
              decode=False, buildargs=None, gzip=False, labels=None,
              target=None, network_mode=None, platform=None):
        """
        Build an image, like ``docker build``.

        The context comes from one of three places. A local directory or a
        remote URL (git or http) goes in ``path``. A single Dockerfile goes
        in ``fileobj``, which is wrapped in a one-file tar. A complete tar
        context goes in ``fileobj`` with ``custom_context=True``, plus
        ``encoding`` if it is compressed.

        Example:
            >>> from io import BytesIO
            >>> dockerfile = BytesIO(b'FROM alpine:3.18\\nCMD ["true"]\\n')
            >>> for line in client.build(fileobj=dockerfile, tag='acme/noop',
            ...                          rm=True, decode=True):
            ...     print(line.get('stream', ''), end='')
            Step 1/2 : FROM alpine:3.18
            ...

        Args:
            path (str): Context directory, or the URL of a remote context.
            tag (str): Name for the built image.
            quiet (bool): Only report the image ID.
            fileobj: A Dockerfile, or the tar context with
                ``custom_context``.
            nocache (bool): Ignore the build cache.
            rm (bool): Remove intermediate containers of successful steps.
            timeout (int): HTTP timeout. Builds wait forever by default.
            custom_context (bool): ``fileobj`` is a whole tar context.
            encoding (str): ``Content-Encoding`` of a custom context.
            pull (bool): Always pull newer versions of the base images.
            forcerm (bool): Remove intermediate containers even on failure.
            dockerfile (str): Dockerfile path inside the context.
            container_limits (dict): ``memory``, ``memswap``, ``cpushares``
                and ``cpusetcpus`` for the build containers.
            decode (bool): Yield progress messages as dicts.
            buildargs (dict): ``ARG`` values.
            gzip (bool): Compress a directory context.
            labels (dict): Labels for the image.
            target (str): Stage of a multi-stage Dockerfile to stop at.
            network_mode (str): Network of the ``RUN`` containers.
            platform (str): ``os[/arch[/variant]]``. Requires API 1.32.

        Returns:
            (generator): The progress stream.

        Raises:
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
            :py:class:`docker_api.errors.StreamDecodeError`
                If ``decode`` is set and the progress stream is malformed.
            ``TypeError``
                If no usable context was given.
        """
        if path is None and fileobj is None:
            raise TypeError('Either path or fileobj needs to be provided.')
        if gzip and encoding is not None:
            raise errors.DockerException(
                'Can not use custom encoding if gzip is enabled'
            )
        container_limits = container_limits or {}
        _check_limits(container_limits)

        remote = context = None
        if custom_context:
            if not fileobj:
                raise TypeError('custom_context requires fileobj')
            context = fileobj
        elif fileobj is not None:
            context = utils.mkbuildcontext(fileobj)
        elif path.startswith(_REMOTE_PREFIXES):
            remote = path
        elif os.path.isdir(path):
            context = utils.tar(
                path, exclude=_read_dockerignore(path),
                dockerfile=dockerfile, gzip=gzip
            )
            if gzip:
                encoding = 'gzip'
        else:
            raise TypeError(f'Build context {path} is not a directory')

        params = dict(
            container_limits, t=tag, remote=remote, q=quiet, nocache=nocache,
            rm=rm, forcerm=forcerm, pull=pull, dockerfile=dockerfile
        )
        for name, value in (('buildargs', buildargs), ('labels', labels)):
            if value:
                params[name] = json.dumps(value)
        if target:
            params['target'] = target
        if network_mode:
            params['networkmode'] = network_mode
        if platform is not None:
            if utils.version_lt(self._version, '1.32'):
                raise errors.InvalidVersion(
                    'platform was only introduced in API version 1.32'
                )
            params['platform'] = platform

        headers = {}
        if context is not None:
            headers['Content-Type'] = 'application/tar'
            if encoding:
                headers['Content-Encoding'] = encoding
        self._set_auth_headers(headers)

        try:
            res = self._post(
                self._url('/build'), data=context, params=params,
                headers=headers, stream=True, timeout=timeout
            )
        finally:
            # Caller-supplied contexts stay open
            if context is not None and not custom_context:
                context.close()
        return self._stream_helper(res, decode=decode)

    def build_and_wait(self, **kwargs):
        """
        Run :py:meth:`build` with ``decode=True`` and wait for it to finish.

        Takes the same arguments as :py:meth:`build`.

        Returns:
            (tuple): The ID of the built image and the list of decoded
            progress messages.

        Raises:
            :py:class:`docker_api.errors.BuildError`
                If the daemon reported an error during the build, or the
                build finished without producing an image.
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
        """
        kwargs['decode'] = True
        build_log = []
        image_id = None
        for chunk in self.build(**kwargs):
            build_log.append(chunk)
            if 'error' in chunk:
                raise errors.BuildError(chunk['error'], build_log)
            if 'stream' in chunk:
                match = _BUILT_IMAGE_ID.search(chunk['stream'].strip())
                if match:
                    image_id = match.group(2)
            elif 'aux' in chunk and isinstance(chunk['aux'], dict):
                image_id = chunk['aux'].get('ID', image_id)

        if image_id is None:
            raise errors.BuildError('Unknown', build_log)
        log.debug(f'Build finished with image {image_id}')
        return image_id, build_log

    def _set_auth_headers(self, headers):
        """
        Add every known registry credential as ``X-Registry-Config``, since
        any ``FROM`` line may name any registry.
        """
        if not self._auth_configs:
            log.debug('Reloading registry credentials from the config file')
            self._auth_configs = auth.load_config()

        if not self._auth_configs:
            log.debug('No registry credentials for the build')
            return
        registries = ', '.join(repr(k) for k in self._auth_configs)
        log.debug(f'Sending credentials for {registries}')
        headers['X-Registry-Config'] = auth.encode_header(self._auth_configs)
