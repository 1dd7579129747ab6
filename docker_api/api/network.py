from ..errors import InvalidVersion
from ..utils import check_resource, minimum_version
from ..utils import convert_filters, normalize_links, version_lt


def _require_dict(name, value):
    if value is not None and not isinstance(value, dict):
        raise TypeError(f'{name} must be a dictionary')


def _set_params(**params):
    return {k: v for k, v in params.items() if v is not None}


class NetworkApiMixin:
    def networks(self, names=None, ids=None, filters=None):
        """
        List networks, like ``docker network ls``.

        ``names`` and ``ids`` are shortcuts for the ``name`` and ``id``
        filters. Other ``filters`` include ``driver``, ``label`` and
        ``type`` (``custom`` or ``builtin``).

        Returns:
            (list): Network dicts.
        """
        filters = dict(filters or {})
        if names:
            filters['name'] = names
        if ids:
            filters['id'] = ids
        res = self._get(
            self._url('/networks'),
            params={'filters': convert_filters(filters)}
        )
        return self._result(res, json=True)

    def create_network(self, name, driver=None, options=None, ipam=None,
                       check_duplicate=None, internal=False, labels=None,
                       enable_ipv6=False, attachable=None, scope=None):
        """
        Create a network, like ``docker network create``.

        Args:
            name (str): Network name.
            driver (str): Network driver, e.g. ``bridge`` or ``overlay``.
            options (dict): Driver options.
            ipam (dict): Address management settings (subnets, gateways).
            check_duplicate (bool): Have the daemon refuse a duplicate name.
            internal (bool): Cut the network off from outside traffic.
            labels (dict): Network labels.
            enable_ipv6 (bool): Enable IPv6.
            attachable (bool): Let standalone containers join a swarm
                network.
            scope (str): ``local``, ``global`` or ``swarm``.

        Returns:
            (dict): ``Id`` and ``Warnings`` of the new network.

        Raises:
            TypeError: If ``options`` or ``labels`` is not a dict.
            :py:class:`docker_api.errors.APIError`
                If the server returns an error.
        """
        _require_dict('options', options)
        _require_dict('labels', labels)

        # Flags the caller left off are not sent at all
        spec = {
            'Name': name,
            'Driver': driver,
            'Options': options,
            'IPAM': ipam,
            'CheckDuplicate': check_duplicate,
            'Labels': labels,
            'EnableIPv6': True if enable_ipv6 else None,
            'Internal': True if internal else None,
            'Attachable': attachable,
            'Scope': scope,
        }
        res = self._post_json(self._url('/networks/create'), data=spec)
        return self._result(res, json=True)

    @minimum_version('1.25')
    def prune_networks(self, filters=None):
        """
        Delete networks no container uses.

        Returns:
            (dict): ``NetworksDeleted``, the names of removed networks.
        """
        params = {}
        if filters:
            params['filters'] = convert_filters(filters)
        return self._result(
            self._post(self._url('/networks/prune'), params=params), True
        )

    @check_resource('net_id')
    def remove_network(self, net_id):
        """Remove the network ``net_id``."""
        self._raise_for_status(
            self._delete(self._url('/networks/{0}', net_id))
        )

    @check_resource('net_id')
    def inspect_network(self, net_id, verbose=None, scope=None):
        """
        The daemon's description of ``net_id``. ``verbose`` adds the
        services across a swarm, and ``scope`` picks among networks sharing
        a name.
        """
        res = self._get(
            self._url('/networks/{0}', net_id),
            params=_set_params(verbose=verbose, scope=scope)
        )
        return self._result(res, json=True)

    @check_resource('container')
    def connect_container_to_network(self, container, net_id,
                                     ipv4_address=None, ipv6_address=None,
                                     aliases=None, links=None,
                                     link_local_ips=None, driver_opt=None,
                                     mac_address=None):
        """
        Attach ``container`` to the network ``net_id``. The endpoint options
        are those of :py:meth:`create_endpoint_config`.
        """
        endpoint = self.create_endpoint_config(
            aliases=aliases, links=links, ipv4_address=ipv4_address,
            ipv6_address=ipv6_address, link_local_ips=link_local_ips,
            driver_opt=driver_opt, mac_address=mac_address
        )
        res = self._post_json(
            self._url('/networks/{0}/connect', net_id),
            data={'Container': container, 'EndpointConfig': endpoint}
        )
        self._raise_for_status(res)

    @check_resource('container')
    def disconnect_container_from_network(self, container, net_id,
                                          force=False):
        """Detach ``container`` from ``net_id``, forcibly with ``force``."""
        data = {'Container': container}
        if force:
            data['Force'] = force
        res = self._post_json(
            self._url('/networks/{0}/disconnect', net_id), data=data
        )
        self._raise_for_status(res)

    def create_endpoint_config(self, aliases=None, links=None,
                               ipv4_address=None, ipv6_address=None,
                               link_local_ips=None, driver_opt=None,
                               mac_address=None):
        """
        The ``EndpointConfig`` of a container on a network.

        Args:
            aliases (list): Extra names the container answers to on the
                network.
            links (dict or list): Links, as for
                :py:func:`~docker_api.utils.normalize_links`.
            ipv4_address (str): Fixed IPv4 address.
            ipv6_address (str): Fixed IPv6 address.
            link_local_ips (list): Link-local addresses.
            driver_opt (dict): Options for the network driver.
            mac_address (str): Fixed MAC address. Requires API 1.44.
        """
        if mac_address and version_lt(self._version, '1.44'):
            raise InvalidVersion(
                'mac_address is not supported for API version < 1.44'
            )

        ipam = {}
        if ipv4_address:
            ipam['IPv4Address'] = ipv4_address
        if ipv6_address:
            ipam['IPv6Address'] = ipv6_address
        if link_local_ips is not None:
            ipam['LinkLocalIPs'] = link_local_ips

        endpoint = {}
        if aliases:
            endpoint['Aliases'] = aliases
        if links:
            endpoint['Links'] = normalize_links(links)
        if ipam:
            endpoint['IPAMConfig'] = ipam
        if driver_opt:
            _require_dict('driver_opt', driver_opt)
            endpoint['DriverOpts'] = driver_opt
        if mac_address:
            endpoint['MacAddress'] = mac_address
        return endpoint
