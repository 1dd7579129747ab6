from .. import auth, errors, utils


def _service_networks(networks):
    """Turn bare network names into ``{'Target': name}`` attachments."""
    if not networks:
        return networks
    if not isinstance(networks, list):
        raise TypeError('networks parameter must be a list.')
    return [{'Target': n} if isinstance(n, str) else n for n in networks]


def _service_mode(mode):
    if mode and not isinstance(mode, dict):
        return {mode.capitalize(): {}}
    return mode


class ServiceApiMixin:
    def _require_api(self, option, minimum):
        if utils.version_lt(self._version, minimum):
            raise errors.InvalidVersion(
                f'{option} is not supported in API version < {minimum}'
            )

    def create_service(
            self, task_template, name=None, labels=None, mode=None,
            update_config=None, networks=None, endpoint_spec=None
    ):
        """
        Create a swarm service running ``task_template``.

        The image named in ``task_template['ContainerSpec']['Image']`` is
        mandatory. Credentials for its registry, when the client has any,
        are sent along so that swarm nodes can pull it.

        Args:
            task_template (dict): The task each replica runs.
            name (str): Service name.
            labels (dict): Service labels.
            mode (str or dict): ``'replicated'``, ``'global'`` or a full
                mode dict.
            update_config (dict): Rolling update settings.
            networks (list): Network names or attachment dicts.
            endpoint_spec (dict): Published ports and VIP settings.

        Returns:
            (dict): ``{'ID': ...}`` for the new service.

        Raises:
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
        """
        image = task_template.get('ContainerSpec', {}).get('Image')
        if image is None:
            raise errors.DockerException(
                'Missing mandatory Image key in ContainerSpec'
            )

        headers = {}
        registry, _ = auth.resolve_repository_name(image)
        registry_auth = auth.get_config_header(self, registry)
        if registry_auth:
            headers['X-Registry-Auth'] = registry_auth

        spec = {
            'Name': name,
            'Labels': labels,
            'TaskTemplate': task_template,
            'Mode': _service_mode(mode),
            'Networks': _service_networks(networks),
            'EndpointSpec': endpoint_spec,
            'UpdateConfig': update_config,
        }
        res = self._post_json(
            self._url('/services/create'), data=spec, headers=headers
        )
        return self._result(res, True)

    @utils.check_resource('service')
    def inspect_service(self, service, insert_defaults=None):
        """
        Return the server-side description of ``service``. With
        ``insert_defaults`` (API 1.29+) the daemon fills in default values
        the spec left out.
        """
        params = {}
        if insert_defaults is not None:
            self._require_api('insert_defaults', '1.29')
            params['insertDefaults'] = insert_defaults
        res = self._get(self._url('/services/{0}', service), params=params)
        return self._result(res, True)

    @utils.check_resource('service')
    def remove_service(self, service):
        """Stop and remove ``service``. Returns ``True``."""
        self._raise_for_status(
            self._delete(self._url('/services/{0}', service))
        )
        return True

    def services(self, filters=None, status=None):
        """
        List services, optionally narrowed by ``filters`` (``id``,
        ``name``, ``label``, ``mode``). ``status`` (API 1.41+) adds
        running and desired task counts to each entry.
        """
        params = {'filters': utils.convert_filters(filters) if filters
                  else None}
        if status is not None:
            self._require_api('status', '1.41')
            params['status'] = status
        return self._result(
            self._get(self._url('/services'), params=params), True
        )

    @utils.check_resource('service')
    def service_logs(self, service, details=False, follow=False, stdout=False,
                     stderr=False, since=0, timestamps=False, tail='all',
                     is_tty=None):
        """
        Stream the logs of every task of ``service``. Works only with the
        ``json-file`` and ``journald`` logging drivers.

        The options match those of
        :py:meth:`~ContainerApiMixin.logs`. ``is_tty`` says whether the
        service's containers run with a TTY, and so whether the output is
        framed. When it is omitted the service is inspected to find out.

        Returns:
            (generator): Log chunks.
        """
        params = {
            'details': details,
            'follow': follow,
            'stdout': stdout,
            'stderr': stderr,
            'since': since,
            'timestamps': timestamps,
            'tail': tail
        }
        res = self._get(
            self._url('/services/{0}/logs', service), params=params,
            stream=True
        )
        if is_tty is None:
            spec = self.inspect_service(service)['Spec']
            is_tty = spec['TaskTemplate']['ContainerSpec'].get('TTY', False)
        return self._get_result_tty(True, res, is_tty)

    def tasks(self, filters=None):
        """
        List swarm tasks. ``filters`` accepts ``id``, ``name``,
        ``service``, ``node``, ``label`` and ``desired-state``.
        """
        params = {'filters': utils.convert_filters(filters) if filters
                  else None}
        return self._result(
            self._get(self._url('/tasks'), params=params), True
        )
