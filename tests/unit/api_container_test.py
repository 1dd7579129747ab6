import datetime
import json
import signal
import socket
from unittest import mock

import pytest

import docker_api
from docker_api.api.client import APIClient
from docker_api.api.container import create_container_config
from docker_api.types import CancellableStream, StreamTag
from docker_api.utils import Demultiplexer, encode_frame

from . import fake_api
from .api_test import (
    BaseAPIClientTest, url_prefix, fake_request, DEFAULT_TIMEOUT_SECONDS,
    fake_inspect_container, response, chunked_raw_response
)


def fake_inspect_container_tty(self, container):
    return fake_inspect_container(self, container, tty=True)


container_url = f'{url_prefix}containers/{fake_api.FAKE_CONTAINER_ID}'
real_read_from_socket = APIClient._read_from_socket


class StartContainerTest(BaseAPIClientTest):
    def test_start_container(self):
        self.client.start(fake_api.FAKE_CONTAINER_ID)

        args = fake_request.call_args
        assert args[0][1] == container_url + '/start'
        assert 'data' not in args[1]
        assert args[1]['timeout'] == DEFAULT_TIMEOUT_SECONDS

    def test_start_container_none(self):
        with pytest.raises(ValueError) as excinfo:
            self.client.start(container=None)

        assert str(excinfo.value) == 'Resource ID was not provided'

        with pytest.raises(ValueError) as excinfo:
            self.client.start(None)

        assert str(excinfo.value) == 'Resource ID was not provided'

    def test_start_container_with_dict_instead_of_id(self):
        self.client.start({'Id': fake_api.FAKE_CONTAINER_ID})

        args = fake_request.call_args
        assert args[0][1] == container_url + '/start'

    def test_start_container_by_keyword(self):
        self.client.start(**{'container': fake_api.FAKE_CONTAINER_ID})

        args = fake_request.call_args
        assert args[0][1] == container_url + '/start'


class CreateContainerTest(BaseAPIClientTest):
    def create_payload(self):
        args = fake_request.call_args
        assert args[0][1] == url_prefix + 'containers/create'
        assert args[1]['headers'] == {'Content-Type': 'application/json'}
        return json.loads(args[1]['data'])

    def test_create_container(self):
        self.client.create_container('busybox', 'true')

        assert self.create_payload() == {
            'Image': 'busybox', 'Cmd': ['true'], 'Tty': False,
            'AttachStdin': False, 'AttachStdout': True, 'AttachStderr': True,
            'OpenStdin': False, 'StdinOnce': False, 'NetworkDisabled': False,
        }
        assert fake_request.call_args[1]['params'] == {'name': None}

    def test_create_container_with_name(self):
        self.client.create_container('busybox', 'true', name='nightly-worker')

        assert fake_request.call_args[1]['params'] == {
            'name': 'nightly-worker'
        }

    def test_create_container_with_binds(self):
        mount_dest = '/mnt'

        self.client.create_container('busybox', ['ls', mount_dest],
                                     volumes=[mount_dest])

        payload = self.create_payload()
        assert payload['Cmd'] == ['ls', '/mnt']
        assert payload['Volumes'] == {'/mnt': {}}

    def test_create_container_with_volume_string(self):
        self.client.create_container('busybox', 'ls', volumes='/mnt')

        assert self.create_payload()['Volumes'] == {'/mnt': {}}

    def test_create_container_with_ports(self):
        self.client.create_container('busybox', 'ls',
                                     ports=[1111, (2222, 'udp'), (3333,)])

        assert self.create_payload()['ExposedPorts'] == {
            '1111/tcp': {}, '2222/udp': {}, '3333/tcp': {}
        }

    def test_create_container_with_entrypoint(self):
        self.client.create_container('busybox', 'hello',
                                     entrypoint='cowsay entry')

        payload = self.create_payload()
        assert payload['Entrypoint'] == ['cowsay', 'entry']
        assert payload['Cmd'] == ['hello']

    def test_create_container_with_stdin_open(self):
        self.client.create_container('busybox', 'true', stdin_open=True)

        payload = self.create_payload()
        assert payload['OpenStdin'] is True
        assert payload['AttachStdin'] is True
        assert payload['StdinOnce'] is True

    def test_create_container_detached(self):
        self.client.create_container('busybox', 'true', detach=True)

        payload = self.create_payload()
        assert payload['AttachStdout'] is False
        assert payload['AttachStderr'] is False

    def test_create_container_with_environment(self):
        self.client.create_container('busybox', 'true',
                                     environment={'FOO': 'bar', 'EMPTY': None})

        assert self.create_payload()['Env'] == ['FOO=bar', 'EMPTY']

    def test_create_container_with_labels(self):
        self.client.create_container('busybox', 'true',
                                     labels=['foo', 'bar'])

        assert self.create_payload()['Labels'] == {'foo': '', 'bar': ''}

    def test_create_container_with_host_config(self):
        self.client.create_container(
            'busybox', 'true',
            host_config=self.client.create_host_config(
                port_bindings={1111: 4567}, privileged=True
            )
        )

        assert self.create_payload()['HostConfig'] == {
            'NetworkMode': 'default',
            'Privileged': True,
            'PortBindings': {
                '1111/tcp': [{'HostIp': '', 'HostPort': '4567'}]
            },
        }

    def test_create_container_with_user_id(self):
        self.client.create_container('busybox', 'true', user=1000)

        assert self.create_payload()['User'] == '1000'

    def test_create_container_with_platform(self):
        self.client.create_container('busybox', 'true', platform='linux')

        assert fake_request.call_args[1]['params'] == {
            'name': None, 'platform': 'linux'
        }

    def test_create_container_platform_old_api(self):
        client = docker_api.APIClient(version='1.40')
        with pytest.raises(docker_api.errors.InvalidVersion):
            client.create_container('busybox', 'true', platform='linux')
        client.close()

    def test_stop_timeout_old_api(self):
        with pytest.raises(docker_api.errors.InvalidVersion):
            create_container_config('1.24', 'busybox', 'true', stop_timeout=5)
        config = create_container_config('1.25', 'busybox', 'true',
                                         stop_timeout=5)
        assert config['StopTimeout'] == 5

    def test_create_host_config_rejects_version(self):
        with pytest.raises(TypeError):
            self.client.create_host_config(version='1.24')


class ContainerTest(BaseAPIClientTest):
    def test_list_containers(self):
        self.client.containers(all=True)

        fake_request.assert_called_with(
            'GET',
            url_prefix + 'containers/json',
            params={
                'all': 1,
                'since': None,
                'size': 0,
                'limit': -1,
                'trunc_cmd': 0,
                'before': None
            },
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_list_containers_quiet(self):
        result = self.client.containers(quiet=True)
        assert result == [{'Id': fake_api.FAKE_CONTAINER_ID}]

    def test_list_containers_trunc_and_filters(self):
        result = self.client.containers(trunc=True,
                                        filters={'status': 'exited'})
        assert result[0]['Id'] == fake_api.FAKE_CONTAINER_ID[:12]
        params = fake_request.call_args[1]['params']
        assert params['trunc_cmd'] == 1
        assert json.loads(params['filters']) == {'status': ['exited']}

    def test_resize_container(self):
        self.client.resize(
            {'Id': fake_api.FAKE_CONTAINER_ID},
            height=15,
            width=120
        )

        fake_request.assert_called_with(
            'POST',
            container_url + '/resize',
            params={'h': 15, 'w': 120},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_rename_container(self):
        self.client.rename(
            {'Id': fake_api.FAKE_CONTAINER_ID},
            name='foobar'
        )

        fake_request.assert_called_with(
            'POST',
            container_url + '/rename',
            params={'name': 'foobar'},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_wait(self):
        result = self.client.wait(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'POST',
            container_url + '/wait',
            timeout=None,
            params={}
        )
        assert result == {'StatusCode': 0}

    def test_wait_with_condition(self):
        self.client.wait(fake_api.FAKE_CONTAINER_ID, timeout=10,
                         condition='removed')

        fake_request.assert_called_with(
            'POST',
            container_url + '/wait',
            timeout=10,
            params={'condition': 'removed'}
        )

    def test_diff(self):
        result = self.client.diff(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'GET',
            container_url + '/changes',
            timeout=DEFAULT_TIMEOUT_SECONDS
        )
        assert result == [{'Path': '/tmp/cache', 'Kind': 1}]

    def test_export(self):
        self.client.export(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'GET',
            container_url + '/export',
            stream=True,
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_inspect_container(self):
        result = self.client.inspect_container(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'GET',
            container_url + '/json',
            timeout=DEFAULT_TIMEOUT_SECONDS
        )
        assert result['Id'] == fake_api.FAKE_CONTAINER_ID

    def test_inspect_container_undefined_id(self):
        for arg in None, '', {True: True}:
            with pytest.raises(docker_api.errors.NullResource) as excinfo:
                self.client.inspect_container(arg)

            assert excinfo.value.args[0] == 'Resource ID was not provided'

    def test_stop_container(self):
        timeout = 2

        self.client.stop(fake_api.FAKE_CONTAINER_ID, timeout=timeout)

        fake_request.assert_called_with(
            'POST',
            container_url + '/stop',
            params={'t': timeout},
            timeout=(DEFAULT_TIMEOUT_SECONDS + timeout)
        )

    def test_stop_container_default_timeout(self):
        self.client.stop(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'POST',
            container_url + '/stop',
            params={},
            timeout=(DEFAULT_TIMEOUT_SECONDS + 10)
        )

    def test_kill_container(self):
        self.client.kill(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'POST',
            container_url + '/kill',
            params={},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_kill_container_with_signal(self):
        self.client.kill(fake_api.FAKE_CONTAINER_ID, signal=signal.SIGTERM)

        fake_request.assert_called_with(
            'POST',
            container_url + '/kill',
            params={'signal': signal.SIGTERM},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_kill_container_with_signal_name(self):
        self.client.kill(fake_api.FAKE_CONTAINER_ID, signal='SIGKILL')

        fake_request.assert_called_with(
            'POST',
            container_url + '/kill',
            params={'signal': 'SIGKILL'},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_restart_container(self):
        self.client.restart(fake_api.FAKE_CONTAINER_ID, timeout=2)

        fake_request.assert_called_with(
            'POST',
            container_url + '/restart',
            params={'t': 2},
            timeout=(DEFAULT_TIMEOUT_SECONDS + 2)
        )

    def test_pause_unpause_container(self):
        self.client.pause(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'POST',
            container_url + '/pause',
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

        self.client.unpause(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'POST',
            container_url + '/unpause',
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_remove_container(self):
        self.client.remove_container(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'DELETE',
            container_url,
            params={'v': False, 'link': False, 'force': False},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_remove_container_force(self):
        self.client.remove_container(fake_api.FAKE_CONTAINER_ID, v=True,
                                     force=True)

        fake_request.assert_called_with(
            'DELETE',
            container_url,
            params={'v': True, 'link': False, 'force': True},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_prune_containers(self):
        result = self.client.prune_containers(filters={'until': '10m'})

        fake_request.assert_called_with(
            'POST',
            url_prefix + 'containers/prune',
            params={'filters': '{"until": ["10m"]}'},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )
        assert 'SpaceReclaimed' in result

    def test_top(self):
        result = self.client.top(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'GET',
            container_url + '/top',
            params={},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )
        assert 'Processes' in result

    def test_top_with_psargs(self):
        self.client.top(fake_api.FAKE_CONTAINER_ID, 'waux')

        fake_request.assert_called_with(
            'GET',
            container_url + '/top',
            params={'ps_args': 'waux'},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_container_stats(self):
        self.client.stats(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'GET',
            container_url + '/stats',
            params={'stream': True},
            timeout=DEFAULT_TIMEOUT_SECONDS,
            stream=True
        )

    def test_container_stats_without_streaming(self):
        result = self.client.stats(fake_api.FAKE_CONTAINER_ID, stream=False)

        fake_request.assert_called_with(
            'GET',
            container_url + '/stats',
            params={'stream': False},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )
        assert 'read' in result

    def test_container_stats_with_one_shot(self):
        self.client.stats(
            fake_api.FAKE_CONTAINER_ID, stream=False, one_shot=True)

        fake_request.assert_called_with(
            'GET',
            container_url + '/stats',
            params={'stream': False, 'one-shot': True},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_container_stats_invalid_arguments(self):
        with pytest.raises(docker_api.errors.InvalidArgument):
            self.client.stats(fake_api.FAKE_CONTAINER_ID, one_shot=True)
        with pytest.raises(docker_api.errors.InvalidArgument):
            self.client.stats(fake_api.FAKE_CONTAINER_ID, stream=False,
                              decode=True)


class ContainerAttachTest(BaseAPIClientTest):
    def setUp(self):
        super().setUp()
        self.sockets = []
        self.attach_patcher = mock.patch.multiple(
            'docker_api.api.client.APIClient',
            inspect_container=fake_inspect_container,
            _read_from_socket=real_read_from_socket,
            _get_raw_response_socket=mock.Mock(
                side_effect=self.socket_for_response
            ),
        )
        self.attach_patcher.start()

    def tearDown(self):
        self.attach_patcher.stop()
        for sock in self.sockets:
            sock.close()
        super().tearDown()

    def socket_for_response(self, response):
        read_sock, write_sock = socket.socketpair()
        write_sock.sendall(response.content)
        write_sock.close()
        self.sockets.append(read_sock)
        return read_sock

    def test_attach(self):
        output = self.client.attach(fake_api.FAKE_CONTAINER_ID, logs=True)
        assert output == b'hello\noops\nbye\n'

        fake_request.assert_called_with(
            'POST',
            container_url + '/attach',
            headers={'Connection': 'Upgrade', 'Upgrade': 'tcp'},
            params={'logs': 1, 'stdout': 1, 'stderr': 1, 'stream': 0},
            stream=True,
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_attach_demux(self):
        out, err = self.client.attach(fake_api.FAKE_CONTAINER_ID, demux=True)
        assert out == b'hello\nbye\n'
        assert err == b'oops\n'

    def test_attach_stream(self):
        output = self.client.attach(fake_api.FAKE_CONTAINER_ID, stream=True)
        assert isinstance(output, CancellableStream)
        assert list(output) == [b'hello\n', b'oops\n', b'bye\n']
        assert fake_request.call_args[1]['params']['stream'] == 1

    def test_attach_stream_demux(self):
        demux = self.client.attach(fake_api.FAKE_CONTAINER_ID, stream=True,
                                   demux=True)
        assert isinstance(demux, Demultiplexer)
        assert [c.data for c in demux.stderr()] == [b'oops\n']
        assert [c.data for c in demux.stdout()] == [b'hello\n', b'bye\n']
        demux.close()

    def test_attach_socket(self):
        sock = self.client.attach_socket(fake_api.FAKE_CONTAINER_ID)

        assert sock is self.sockets[-1]
        assert sock.recv(8) == encode_frame(StreamTag.STDOUT, b'hello\n')[:8]
        fake_request.assert_called_with(
            'POST',
            container_url + '/attach',
            headers={'Connection': 'Upgrade', 'Upgrade': 'tcp'},
            params={'stdout': 1, 'stderr': 1, 'stream': 1},
            stream=True,
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_attach_socket_websocket(self):
        calls = fake_request.call_count
        with mock.patch(
            'docker_api.api.client.APIClient._create_websocket_connection'
        ) as connect:
            conn = self.client.attach_socket(
                fake_api.FAKE_CONTAINER_ID, params={'stdin': 1, 'stream': 1},
                ws=True
            )

        assert conn is connect.return_value
        url = connect.call_args[0][0]
        assert url.endswith(
            f'containers/{fake_api.FAKE_CONTAINER_ID}/attach/ws'
            '?stdin=1&stream=1'
        )
        assert fake_request.call_count == calls


class ContainerLogsTest(BaseAPIClientTest):
    def test_logs(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            logs = self.client.logs(fake_api.FAKE_CONTAINER_ID)

        fake_request.assert_called_with(
            'GET',
            container_url + '/logs',
            params={'timestamps': 0, 'follow': 0, 'stderr': 1, 'stdout': 1,
                    'tail': 'all'},
            timeout=DEFAULT_TIMEOUT_SECONDS,
            stream=False
        )

        assert logs == fake_api.FAKE_STDOUT_LINE + fake_api.FAKE_STDERR_LINE

    def test_logs_with_dict_instead_of_id(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            logs = self.client.logs({'Id': fake_api.FAKE_CONTAINER_ID})

        assert fake_request.call_args[0][1] == container_url + '/logs'
        assert logs == fake_api.FAKE_STDOUT_LINE + fake_api.FAKE_STDERR_LINE

    def test_logs_tty(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container_tty):
            logs = self.client.logs(fake_api.FAKE_CONTAINER_ID)

        assert logs == fake_api.get_fake_logs()[1]

    def test_log_streaming(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            logs = self.client.logs(fake_api.FAKE_CONTAINER_ID, stream=True,
                                    follow=False)

        fake_request.assert_called_with(
            'GET',
            container_url + '/logs',
            params={'timestamps': 0, 'follow': 0, 'stderr': 1, 'stdout': 1,
                    'tail': 'all'},
            timeout=DEFAULT_TIMEOUT_SECONDS,
            stream=True
        )
        assert isinstance(logs, docker_api.types.CancellableStream)

    def test_log_streaming_follows_by_default(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            self.client.logs(fake_api.FAKE_CONTAINER_ID, stream=True)

        assert fake_request.call_args[1]['params']['follow'] == 1

    def test_log_tail(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            self.client.logs(fake_api.FAKE_CONTAINER_ID, tail=10)
        assert fake_request.call_args[1]['params']['tail'] == 10

        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            self.client.logs(fake_api.FAKE_CONTAINER_ID, tail=-1)
        assert fake_request.call_args[1]['params']['tail'] == 'all'

    def test_log_since(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            self.client.logs(fake_api.FAKE_CONTAINER_ID, since=1420070400)

        assert fake_request.call_args[1]['params']['since'] == 1420070400

    def test_log_since_with_datetime(self):
        since = datetime.datetime(2015, 1, 1)
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            self.client.logs(fake_api.FAKE_CONTAINER_ID, since=since)

        assert fake_request.call_args[1]['params']['since'] == 1420070400

    def test_log_since_with_invalid_value_raises_error(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            with pytest.raises(docker_api.errors.InvalidArgument):
                self.client.logs(fake_api.FAKE_CONTAINER_ID, since='1h')
            with pytest.raises(docker_api.errors.InvalidArgument):
                self.client.logs(fake_api.FAKE_CONTAINER_ID, since=-1)

    def test_log_until(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            self.client.logs(fake_api.FAKE_CONTAINER_ID, until=1.5)

        assert fake_request.call_args[1]['params']['until'] == 1.5

    def test_log_until_old_api(self):
        client = docker_api.APIClient(version='1.34')
        with pytest.raises(docker_api.errors.InvalidVersion):
            client.logs(fake_api.FAKE_CONTAINER_ID, until=1)
        client.close()

    def test_logs_demux(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container):
            out, err = self.client.logs(fake_api.FAKE_CONTAINER_ID,
                                        demux=True)

        assert out == fake_api.FAKE_STDOUT_LINE
        assert err == fake_api.FAKE_STDERR_LINE

    def test_logs_demux_tty(self):
        with mock.patch('docker_api.api.client.APIClient.inspect_container',
                        fake_inspect_container_tty):
            out, err = self.client.logs(fake_api.FAKE_CONTAINER_ID,
                                        demux=True)

        assert out == fake_api.get_fake_logs()[1]
        assert err is None

    def test_logs_demux_streaming(self):
        data = b''.join([
            encode_frame(StreamTag.STDERR, b'warming up\n'),
            encode_frame(StreamTag.STDOUT, b'line 1\n'),
            encode_frame(StreamTag.STDERR, b'almost there\n'),
            encode_frame(StreamTag.STDOUT, b'line 2\n'),
        ])
        res = response(raw=chunked_raw_response(data))
        sock = mock.Mock()
        with mock.patch.multiple(
            'docker_api.api.client.APIClient',
            inspect_container=fake_inspect_container,
            _get=mock.Mock(return_value=res),
            _get_raw_response_socket=mock.Mock(return_value=sock),
            _disable_socket_timeout=mock.DEFAULT,
        ) as patched:
            demux = self.client.logs(fake_api.FAKE_CONTAINER_ID,
                                     stream=True, demux=True)

        patched['_disable_socket_timeout'].assert_called_once_with(sock)
        assert isinstance(demux, Demultiplexer)
        assert [c.data for c in demux.stdout()] == [b'line 1\n', b'line 2\n']
        assert [c.data for c in demux.stderr()] == [
            b'warming up\n', b'almost there\n'
        ]

    def test_logs_demux_streaming_close(self):
        data = encode_frame(StreamTag.STDOUT, b'line 1\n') * 3
        res = response(raw=chunked_raw_response(data))
        res.close = mock.Mock()
        with mock.patch.multiple(
            'docker_api.api.client.APIClient',
            inspect_container=fake_inspect_container,
            _get=mock.Mock(return_value=res),
            _get_raw_response_socket=mock.Mock(),
            _disable_socket_timeout=mock.Mock(),
        ):
            demux = self.client.logs(fake_api.FAKE_CONTAINER_ID,
                                     stream=True, follow=True, demux=True)

        assert demux.next_chunk(StreamTag.STDOUT).data == b'line 1\n'
        demux.close()
        res.close.assert_called_once_with()
        assert list(demux.stdout()) == []
        assert list(demux.stderr()) == []
