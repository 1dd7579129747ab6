import base64
import json
import logging
import os
from typing import Any, AnyStr, Dict, Optional, Tuple

from . import errors

INDEX_NAME = 'docker.io'
INDEX_URL = f'https://index.{INDEX_NAME}/v1/'
DOCKER_CONFIG_FILENAME = os.path.join('.docker', 'config.json')

log = logging.getLogger(__name__)


def _looks_like_registry(component: str) -> bool:
    return component == 'localhost' or any(c in component for c in '.:')


def split_repo_name(repo_name: str) -> Tuple[str, str]:
    """
    Split ``registry/remote`` into its two halves. Names whose first path
    component is not a host (``ubuntu``, ``user/app``) live on Docker Hub.
    """
    registry, sep, remote = repo_name.partition('/')
    if not sep or not _looks_like_registry(registry):
        return INDEX_NAME, repo_name
    return registry, remote


def convert_to_hostname(url: str) -> str:
    for scheme in ('http://', 'https://'):
        if url.startswith(scheme):
            url = url[len(scheme):]
    return url.split('/', 1)[0]


def resolve_index_name(index_name: str) -> str:
    hostname = convert_to_hostname(index_name)
    return INDEX_NAME if hostname == f'index.{INDEX_NAME}' else hostname


def resolve_repository_name(repo_name: str) -> Tuple[str, str]:
    """
    Return the ``(registry, remote name)`` an image reference points at.

    Raises:
        :py:class:`docker_api.errors.InvalidRepository`
            If the reference carries a URL scheme, or the registry name
            starts or ends with a hyphen.
    """
    if '://' in repo_name:
        raise errors.InvalidRepository(
            f'Repository name cannot contain a scheme ({repo_name})'
        )
    registry, remote_name = split_repo_name(repo_name)
    if registry.startswith('-') or registry.endswith('-'):
        raise errors.InvalidRepository(
            f'Invalid index name ({registry}). '
            'Cannot begin or end with a hyphen.'
        )
    return resolve_index_name(registry), remote_name


def decode_auth(auth: AnyStr) -> Tuple[str, str]:
    """Decode a config file ``auth`` value into ``(username, password)``."""
    raw = auth.encode('ascii') if isinstance(auth, str) else auth
    username, password = base64.b64decode(raw).split(b':', 1)
    return username.decode('utf8'), password.decode('utf8')


def encode_header(auth: Dict[str, Any]) -> bytes:
    """The ``X-Registry-Auth``/``X-Registry-Config`` form of ``auth``."""
    return base64.urlsafe_b64encode(json.dumps(auth).encode('ascii'))


def _parse_entry(registry: str, entry: Dict[str, Any]) -> Dict[str, Any]:
    if 'identitytoken' in entry:
        log.debug(f'Using the identity token for {registry}')
        return {'IdentityToken': entry['identitytoken']}
    if 'auth' not in entry:
        # Credentials held by a credentials store
        log.debug(f'No auth data stored for {registry}')
        return {}
    username, password = decode_auth(entry['auth'])
    log.debug(f'Credentials for {registry!r} belong to {username!r}')
    return {
        'username': username,
        'password': password,
        'email': entry.get('email'),
        'serveraddress': registry,
    }


def parse_auth(entries: Dict[str, Any],
               raise_on_error: bool = False) -> Dict[str, Any]:
    """
    Turn the ``auths`` mapping of a config file into credentials per
    registry.

    Any entry that is not a mapping invalidates the whole section: the
    result is ``{}``, or :py:class:`~docker_api.errors.InvalidConfigFile`
    is raised when ``raise_on_error`` is set.
    """
    conf = {}
    for registry, entry in entries.items():
        if not isinstance(entry, dict):
            log.debug(f'Entry for {registry} is not an auth config')
            if raise_on_error:
                raise errors.InvalidConfigFile(
                    f'Invalid configuration for registry {registry}'
                )
            return {}
        conf[registry] = _parse_entry(registry, entry)
    return conf


def find_config_file(config_path: Optional[str] = None,
                     environment: Optional[Dict[str, str]] = None
                     ) -> Optional[str]:
    """
    The first existing file among ``config_path``,
    ``$DOCKER_CONFIG/config.json`` and ``~/.docker/config.json``.
    """
    if environment is None:
        environment = os.environ
    candidates = [config_path]
    if environment.get('DOCKER_CONFIG'):
        candidates.append(
            os.path.join(environment['DOCKER_CONFIG'], 'config.json')
        )
    candidates.append(
        os.path.join(os.path.expanduser('~'), DOCKER_CONFIG_FILENAME)
    )

    for path in candidates:
        if path and os.path.exists(path):
            log.debug(f'Using config file {path}')
            return path
    log.debug('No config file found')
    return None


def load_config(config_path: Optional[str] = None,
                environment: Optional[Dict[str, str]] = None
                ) -> Dict[str, Any]:
    """
    Load registry credentials from the config file picked by
    :py:func:`find_config_file`. An unreadable file yields ``{}``. A file
    without an ``auths`` section is read as a bare credentials mapping.
    """
    path = find_config_file(config_path, environment)
    if path is None:
        return {}

    try:
        with open(path) as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        log.debug(f'Could not read {path}: {e}')
        return {}

    if config.get('auths'):
        return parse_auth(config['auths'], raise_on_error=True)
    log.debug(f'No auths section in {path}, reading it as auth-only')
    return parse_auth(config)


def resolve_authconfig(authconfig: Dict[str, Any],
                       registry: Optional[str] = None
                       ) -> Optional[Dict[str, Any]]:
    """
    Find the credentials for ``registry`` (Docker Hub when omitted).
    Keys written as full URLs by older clients match on their hostname.
    Returns ``None`` when nothing matches.
    """
    registry = resolve_index_name(registry) if registry else INDEX_NAME
    if registry in authconfig:
        return authconfig[registry]
    for key, conf in authconfig.items():
        if resolve_index_name(key) == registry:
            log.debug(f'Matched {registry!r} to config key {key!r}')
            return conf
    log.debug(f'No credentials for {registry!r}')
    return None


def get_config_header(client, registry: str) -> Optional[bytes]:
    """
    The encoded credentials to send for ``registry``, loading the client's
    config file first if it has none in memory. ``None`` means send no
    header; anonymous pulls can still succeed.
    """
    if not client._auth_configs:
        client._auth_configs = load_config()
    authcfg = resolve_authconfig(client._auth_configs, registry)
    if not authcfg:
        return None
    return encode_header(authcfg)
