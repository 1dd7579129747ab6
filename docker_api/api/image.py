import logging

from .. import auth, errors, utils
from ..constants import DEFAULT_DATA_CHUNK_SIZE

log = logging.getLogger(__name__)


class ImageApiMixin:
    def _registry_auth_headers(self, repository, auth_config=None):
        """
        ``X-Registry-Auth`` for a pull or push of ``repository``: the given
        ``auth_config``, or else whatever the client's config file holds for
        the repository's registry.
        """
        if auth_config is not None:
            log.debug('Sending supplied auth config')
            return {'X-Registry-Auth': auth.encode_header(auth_config)}
        registry, _ = auth.resolve_repository_name(repository)
        header = auth.get_config_header(self, registry)
        return {'X-Registry-Auth': header} if header else {}

    def _progress(self, response, stream, decode):
        self._raise_for_status(response)
        if stream:
            return self._stream_helper(response, decode=decode)
        return self._result(response)

    @utils.check_resource('image')
    def get_image(self, image, chunk_size=DEFAULT_DATA_CHUNK_SIZE):
        """
        Export ``image`` as a tar archive, like ``docker save``.

        Returns:
            (generator): Archive bytes in pieces of ``chunk_size``, or as
            they arrive when ``chunk_size`` is ``None``.
        """
        res = self._get(self._url('/images/{0}/get', image), stream=True)
        return self._stream_raw_result(res, chunk_size, False)

    @utils.check_resource('image')
    def history(self, image):
        """The layers of ``image``, newest first."""
        return self._result(
            self._get(self._url('/images/{0}/history', image)), True
        )

    def images(self, name=None, quiet=False, all=False, filters=None):
        """
        List images, like ``docker images``.

        Args:
            name (str): Only images of this repository (or ``repo:tag``).
            quiet (bool): Return a list of IDs only.
            all (bool): Include intermediate layers.
            filters (dict): ``dangling``, ``label``, ``before``, ``since``
                and ``reference`` filters.

        Returns:
            (list): Image dicts, or IDs with ``quiet``.
        """
        params = {'only_ids': int(bool(quiet)), 'all': int(bool(all))}
        if name and utils.version_lt(self._version, '1.25'):
            # Older daemons only know the single "filter" parameter
            params['filter'] = name
        elif name:
            filters = dict(filters or {}, reference=name)
        if filters:
            params['filters'] = utils.convert_filters(filters)

        found = self._result(
            self._get(self._url('/images/json'), params=params), True
        )
        return [image['Id'] for image in found] if quiet else found

    @utils.check_resource('image')
    def inspect_image(self, image):
        """The daemon's full description of ``image``."""
        return self._result(
            self._get(self._url('/images/{0}/json', image)), True
        )

    def load_image(self, data, quiet=None):
        """
        Import images from a ``docker save`` archive.

        Returns:
            (generator): The daemon's progress messages as dicts.

        Raises:
            :py:class:`docker_api.errors.StreamDecodeError`
                If the progress stream is malformed.
        """
        params = {} if quiet is None else {'quiet': quiet}
        res = self._post(
            self._url('/images/load'), data=data, params=params, stream=True
        )
        return self._stream_helper(res, decode=True)

    def prune_images(self, filters=None):
        """
        Delete unused images. With ``filters={'dangling': True}`` only
        untagged ones go.

        Returns:
            (dict): ``ImagesDeleted`` and ``SpaceReclaimed`` in bytes.
        """
        params = {}
        if filters is not None:
            params['filters'] = utils.convert_filters(filters)
        return self._result(
            self._post(self._url('/images/prune'), params=params), True
        )

    def pull(self, repository, tag=None, stream=False, auth_config=None,
             decode=False, platform=None, all_tags=False):
        """
        Pull an image, like ``docker pull``.

        A tag in ``repository`` itself (``redis:7``) is used when ``tag`` is
        not given, and ``latest`` when neither is. ``all_tags`` pulls every
        tag of the repository.

        Args:
            repository (str): Image to pull.
            tag (str): Tag to pull.
            stream (bool): Return the progress messages as they arrive. The
                pull is cancelled if the generator is dropped unfinished.
            auth_config (dict): Registry credentials (``username`` and
                ``password``) to use instead of the config file's.
            decode (bool): With ``stream``, yield dicts instead of text.
            platform (str): ``os[/arch[/variant]]``. Requires API 1.32.
            all_tags (bool): Pull all tags.

        Returns:
            (generator or str): Progress messages.

        Raises:
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
            :py:class:`docker_api.errors.StreamDecodeError`
                If ``decode`` is set and the progress stream is malformed.
        """
        repository, image_tag = utils.parse_repository_tag(repository)
        params = {
            'tag': None if all_tags else (tag or image_tag or 'latest'),
            'fromImage': repository
        }
        if platform is not None:
            if utils.version_lt(self._version, '1.32'):
                raise errors.InvalidVersion(
                    'platform was only introduced in API version 1.32'
                )
            params['platform'] = platform

        # Pulls take as long as the registry needs
        res = self._post(
            self._url('/images/create'), params=params,
            headers=self._registry_auth_headers(repository, auth_config),
            stream=stream, timeout=None
        )
        return self._progress(res, stream, decode)

    def push(self, repository, tag=None, stream=False, auth_config=None,
             decode=False):
        """
        Push ``repository`` (optionally only ``tag``) to its registry, like
        ``docker push``.

        ``stream``, ``auth_config`` and ``decode`` behave as in
        :py:meth:`pull`.

        Returns:
            (generator or str): Progress messages.
        """
        if not tag:
            repository, tag = utils.parse_repository_tag(repository)
        res = self._post_json(
            self._url('/images/{0}/push', repository), None,
            headers=self._registry_auth_headers(repository, auth_config),
            stream=stream, params={'tag': tag}
        )
        return self._progress(res, stream, decode)

    @utils.check_resource('image')
    def remove_image(self, image, force=False, noprune=False):
        """
        Remove ``image``, like ``docker rmi``. ``noprune`` keeps untagged
        parents.
        """
        params = {'force': force, 'noprune': noprune}
        return self._result(
            self._delete(self._url('/images/{0}', image), params=params), True
        )

    @utils.check_resource('image')
    def tag(self, image, repository, tag=None, force=False):
        """
        Add ``repository:tag`` as a name for ``image``. Returns ``True`` when
        the daemon created the tag.
        """
        params = {
            'tag': tag,
            'repo': repository,
            'force': int(bool(force))
        }
        res = self._post(self._url('/images/{0}/tag', image), params=params)
        self._raise_for_status(res)
        return res.status_code == 201
