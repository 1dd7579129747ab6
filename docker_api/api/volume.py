from .. import errors
from .. import utils


def _require_mapping(field, value):
    if value is not None and not isinstance(value, dict):
        raise TypeError(f'{field} must be a dictionary')
    return value


class VolumeApiMixin:
    def volumes(self, filters=None):
        """
        List the volumes known to the daemon.

        Args:
            filters (dict): Server-side filters, e.g.
                ``{'dangling': True}`` or ``{'label': 'env=ci'}``.

        Returns:
            (dict): The daemon's answer, with the volumes under ``Volumes``
            and any unavailable ones listed under ``Warnings``.
        """
        filters = utils.convert_filters(filters) if filters else None
        return self._result(
            self._get(self._url('/volumes'), params={'filters': filters}),
            True
        )

    def create_volume(self, name=None, driver=None, driver_opts=None,
                      labels=None):
        """
        Create a volume. Without a ``name`` the daemon picks a random one,
        which can be read back from the returned object.

        Args:
            name (str): Volume name.
            driver (str): Volume driver. The daemon default is ``local``.
            driver_opts (dict): Options handed to the driver.
            labels (dict): Volume labels.

        Returns:
            (dict): The created volume.

        Raises:
            TypeError: If ``driver_opts`` or ``labels`` is not a dict.
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
        """
        body = {
            'Name': name,
            'Driver': driver,
            'DriverOpts': _require_mapping('driver_opts', driver_opts),
            'Labels': _require_mapping('labels', labels),
        }
        # Unset fields are dropped from the request body
        return self._result(
            self._post_json(self._url('/volumes/create'), data=body), True
        )

    def inspect_volume(self, name):
        """
        Return the low-level description of volume ``name``.
        """
        return self._result(
            self._get(self._url('/volumes/{0}', name)), True
        )

    @utils.minimum_version('1.25')
    def prune_volumes(self, filters=None):
        """
        Remove the volumes no container refers to.

        Args:
            filters (dict): Restrict pruning, e.g. to volumes carrying a
                ``label``.

        Returns:
            (dict): ``VolumesDeleted`` and ``SpaceReclaimed`` (in bytes).
        """
        params = {}
        if filters:
            params['filters'] = utils.convert_filters(filters)
        return self._result(
            self._post(self._url('/volumes/prune'), params=params), True
        )

    def remove_volume(self, name, force=False):
        """
        Remove volume ``name``.

        Args:
            force (bool): Also drop the daemon's record of a volume whose
                driver no longer knows it. Requires API 1.25.

        Raises:
            :py:class:`docker_api.errors.InvalidVersion`
                If ``force`` is set on API 1.24.
            :py:class:`docker_api.errors.APIError`
                If the volume is in use or the server returns an error.
        """
        if force and utils.version_lt(self._version, '1.25'):
            raise errors.InvalidVersion(
                'Forced volume removal requires API 1.25 or later'
            )
        params = {'force': True} if force else {}
        self._raise_for_status(
            self._delete(self._url('/volumes/{0}', name), params=params)
        )
