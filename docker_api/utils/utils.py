import base64
import json
import os
import os.path
import re
import shlex
from datetime import datetime, timezone
from urllib.parse import urlparse

from packaging.version import Version

from .. import errors
from .. import tls
from ..constants import DEFAULT_HTTP_HOST, DEFAULT_UNIX_SOCKET

BYTE_UNITS = {
    'b': 1,
    'k': 1024,
    'm': 1024 * 1024,
    'g': 1024 * 1024 * 1024
}
_BYTE_SIZE = re.compile(r'(?P<digits>[0-9.]+)(?P<unit>[bkmg]?)b?', re.I)


def decode_json_header(header):
    return json.loads(base64.b64decode(header).decode('utf-8'))


def compare_version(v1, v2):
    """
    ``1`` when API version ``v1`` is older than ``v2``, ``-1`` when it is
    newer and ``0`` when they are equal. Versions compare numerically, so
    ``1.9`` is older than ``1.10``.
    """
    older, newer = Version(v1) < Version(v2), Version(v1) > Version(v2)
    return int(older) - int(newer)


def version_lt(v1, v2):
    return compare_version(v1, v2) > 0


def version_gte(v1, v2):
    return not version_lt(v1, v2)


def _host_binding(spec):
    """The ``HostIp``/``HostPort`` pair for one published port."""
    host_ip, host_port = '', spec
    if isinstance(spec, tuple):
        if len(spec) == 2:
            host_ip, host_port = spec
        elif isinstance(spec[0], str):
            host_ip, host_port = spec[0], None
        else:
            host_port = spec[0]
    elif isinstance(spec, dict):
        if 'HostPort' not in spec:
            raise ValueError(spec)
        host_ip = spec.get('HostIp', '')
        host_port = spec['HostPort']
    return {
        'HostIp': host_ip,
        'HostPort': '' if host_port is None else str(host_port),
    }


def convert_port_bindings(port_bindings):
    result = {}
    for port, bindings in port_bindings.items():
        port = str(port)
        if '/' not in port:
            port += '/tcp'
        if not isinstance(bindings, list):
            bindings = [bindings]
        result[port] = [_host_binding(spec) for spec in bindings]
    return result


def _as_text(value):
    return value.decode('utf-8') if isinstance(value, bytes) else value


def convert_volume_binds(binds):
    if isinstance(binds, list):
        return binds

    result = []
    for source, target in binds.items():
        mode = 'rw'
        if isinstance(target, dict):
            if 'ro' in target and 'mode' in target:
                raise ValueError(
                    f'Binding cannot contain both "ro" and "mode": {target!r}'
                )
            if target.get('ro'):
                mode = 'ro'
            mode = target.get('mode', mode)
            target = target['bind']
        result.append(f'{_as_text(source)}:{_as_text(target)}:{mode}')
    return result


def parse_repository_tag(repo_name):
    parts = repo_name.rsplit('@', 1)
    if len(parts) == 2:
        return tuple(parts)
    parts = repo_name.rsplit(':', 1)
    if len(parts) == 2 and '/' not in parts[1]:
        return tuple(parts)
    return repo_name, None


def parse_host(addr, tls=False):
    path = ''
    port = None
    host = None

    if not addr or addr.strip() == 'unix://':
        return DEFAULT_UNIX_SOCKET

    addr = addr.strip()

    if '://' in addr:
        parsed_url = urlparse(addr)
        proto = parsed_url.scheme
    else:
        # https://bugs.python.org/issue754016
        parsed_url = urlparse('//' + addr, 'tcp')
        proto = 'tcp'

    if proto == 'fd':
        raise errors.DockerException('fd protocol is not implemented')

    # These protos are valid aliases for our library but not for the
    # Docker CLI
    if proto == 'http' or proto == 'https':
        tls = proto == 'https'
        proto = 'tcp'
    elif proto == 'http+unix':
        proto = 'unix'

    if proto not in ('tcp', 'unix'):
        raise errors.DockerException(
            f"Invalid bind address protocol: {addr}"
        )

    if proto == 'tcp' and not parsed_url.netloc:
        # "tcp://" is exceptionally disallowed by convention;
        # omitting a hostname for other protocols is fine
        raise errors.DockerException(
            f'Invalid bind address format: {addr}'
        )

    if any([
        parsed_url.params, parsed_url.query, parsed_url.fragment,
        parsed_url.password
    ]):
        raise errors.DockerException(
            f'Invalid bind address format: {addr}'
        )

    if parsed_url.path and proto == 'unix':
        host = parsed_url.hostname or ''
        path = parsed_url.path
        if host:
            path = f'/{host}{path}'
        return f'http+unix://{path}'

    if proto == 'unix':
        # "unix://socket" puts the socket name in the netloc
        return f'http+unix:///{parsed_url.netloc}'

    try:
        port = parsed_url.port or 0
    except ValueError as e:
        raise errors.DockerException(f'Invalid port: {addr}') from e
    if port <= 0:
        port = 443 if tls else 2375

    host = parsed_url.hostname or DEFAULT_HTTP_HOST
    path = parsed_url.path
    # Ensure IPv6 addresses keep their brackets
    if ':' in host:
        host = f'[{host}]'

    proto = 'https' if tls else 'http'
    return f'{proto}://{host}:{port}{path}'.rstrip('/')


def kwargs_from_env(environment=None):
    env = environment or os.environ
    params = {}
    if env.get('DOCKER_HOST'):
        params['base_url'] = env['DOCKER_HOST']

    # Unset and empty values both mean "off"
    cert_path = env.get('DOCKER_CERT_PATH') or None
    verify = bool(env.get('DOCKER_TLS_VERIFY'))
    if not (cert_path or verify):
        return params

    cert_dir = cert_path or os.path.join(os.path.expanduser('~'), '.docker')
    params['tls'] = tls.TLSConfig(
        client_cert=(os.path.join(cert_dir, 'cert.pem'),
                     os.path.join(cert_dir, 'key.pem')),
        ca_cert=os.path.join(cert_dir, 'ca.pem'),
        verify=verify,
    )
    return params


def _filter_value(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return value if isinstance(value, str) else str(value)


def convert_filters(filters):
    """JSON-encode ``filters`` as the ``filters`` query parameter: every
    value becomes a list of strings."""
    return json.dumps({
        key: [_filter_value(v) for v in
              (values if isinstance(values, list) else [values])]
        for key, values in filters.items()
    })


def datetime_to_timestamp(dt):
    """Convert a datetime to a Unix timestamp. Naive values are UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return delta.seconds + delta.days * 24 * 3600


def parse_bytes(s):
    if isinstance(s, (int, float)):
        return s
    if not s:
        return 0

    match = _BYTE_SIZE.fullmatch(s)
    if match is None:
        raise errors.DockerException(
            f'Invalid size {s!r}: expected a number, optionally followed '
            'by one of the units b, k, m or g'
        )
    try:
        digits = float(match.group('digits'))
    except ValueError as e:
        raise errors.DockerException(f'Invalid size {s!r}') from e
    return int(digits * BYTE_UNITS[match.group('unit').lower() or 'b'])


def normalize_links(links):
    if isinstance(links, dict):
        links = iter(links.items())

    return [f'{k}:{v}' if v else k for k, v in sorted(links)]


def split_command(command):
    return shlex.split(command)


def format_environment(environment):
    def format_env(key, value):
        if value is None:
            return key
        if isinstance(value, bytes):
            value = value.decode('utf-8')

        return f'{key}={value}'
    return [format_env(*var) for var in iter(environment.items())]


def create_host_config(version, binds=None, port_bindings=None,
                       publish_all_ports=False, links=None, privileged=False,
                       network_mode=None, restart_policy=None,
                       auto_remove=False, mem_limit=None, cpu_shares=None,
                       cap_add=None, cap_drop=None, extra_hosts=None,
                       volumes_from=None, log_config=None, userns_mode=None,
                       devices=None, security_opt=None, init=None):
    """
    Build the ``HostConfig`` section of a container creation request.
    ``None`` and ``False`` options are left out of the result.
    """
    host_config = {}

    if binds is not None:
        host_config['Binds'] = convert_volume_binds(binds)
    if port_bindings is not None:
        host_config['PortBindings'] = convert_port_bindings(port_bindings)
    if publish_all_ports:
        host_config['PublishAllPorts'] = publish_all_ports
    if links:
        host_config['Links'] = normalize_links(links)
    if privileged:
        host_config['Privileged'] = privileged
    if network_mode:
        host_config['NetworkMode'] = network_mode
    elif network_mode is None:
        host_config['NetworkMode'] = 'default'
    if restart_policy:
        if not isinstance(restart_policy, dict):
            raise TypeError('restart_policy must be a dictionary')
        host_config['RestartPolicy'] = restart_policy
    if auto_remove:
        host_config['AutoRemove'] = auto_remove
    if mem_limit is not None:
        host_config['Memory'] = parse_bytes(mem_limit)
    if cpu_shares is not None:
        if not isinstance(cpu_shares, int):
            raise TypeError('cpu_shares must be an integer')
        host_config['CpuShares'] = cpu_shares
    if cap_add:
        host_config['CapAdd'] = cap_add
    if cap_drop:
        host_config['CapDrop'] = cap_drop
    if extra_hosts is not None:
        if isinstance(extra_hosts, dict):
            extra_hosts = [
                f'{k}:{v}' for k, v in sorted(extra_hosts.items())
            ]
        host_config['ExtraHosts'] = extra_hosts
    if volumes_from is not None:
        if isinstance(volumes_from, str):
            volumes_from = volumes_from.split(',')
        host_config['VolumesFrom'] = volumes_from
    if log_config is not None:
        if not isinstance(log_config, dict):
            raise TypeError('log_config must be a dictionary')
        host_config['LogConfig'] = log_config
    if userns_mode is not None:
        if userns_mode != 'host':
            raise errors.DockerException(
                'userns_mode only supports "host" as a value'
            )
        host_config['UsernsMode'] = userns_mode
    if devices:
        host_config['Devices'] = parse_devices(devices)
    if security_opt is not None:
        if not isinstance(security_opt, list):
            raise TypeError('security_opt must be a list')
        host_config['SecurityOpt'] = security_opt
    if init is not None:
        if version_lt(version, '1.25'):
            raise errors.InvalidVersion(
                'init is only supported for API version >= 1.25'
            )
        host_config['Init'] = init

    return host_config


def parse_devices(devices):
    parsed = []
    for device in devices:
        if isinstance(device, dict):
            parsed.append(device)
            continue
        if not isinstance(device, str):
            raise errors.DockerException(
                f'Invalid device type {type(device)}'
            )
        host_path, _, rest = device.partition(':')
        container_path, _, permissions = rest.partition(':')
        parsed.append({
            'PathOnHost': host_path,
            'PathInContainer': container_path or host_path,
            'CgroupPermissions': permissions or 'rwm',
        })
    return parsed
