import json
from unittest import mock

import pytest

import docker_api

from . import fake_api
from .api_test import (
    BaseAPIClientTest, url_prefix, fake_request, DEFAULT_TIMEOUT_SECONDS,
)


class ExecTest(BaseAPIClientTest):
    def test_exec_create(self):
        self.client.exec_create(fake_api.FAKE_CONTAINER_ID, ['ls', '-1'])

        args = fake_request.call_args
        assert args[0][0] == 'POST'
        assert args[0][1] == url_prefix + 'containers/{}/exec'.format(
            fake_api.FAKE_CONTAINER_ID
        )

        assert json.loads(args[1]['data']) == {
            'Tty': False,
            'AttachStdout': True,
            'Container': fake_api.FAKE_CONTAINER_ID,
            'Cmd': ['ls', '-1'],
            'Privileged': False,
            'AttachStdin': False,
            'AttachStderr': True,
            'User': ''
        }

        assert args[1]['headers'] == {'Content-Type': 'application/json'}

    def test_exec_create_with_options(self):
        self.client.exec_create(
            fake_api.FAKE_CONTAINER_ID, 'echo "hello world"',
            environment={'FOO': 'bar'}, workdir='/srv', detach_keys='ctrl-p',
            user='nobody', privileged=True
        )

        data = json.loads(fake_request.call_args[1]['data'])
        assert data['Cmd'] == ['echo', 'hello world']
        assert data['Env'] == ['FOO=bar']
        assert data['WorkingDir'] == '/srv'
        assert data['detachKeys'] == 'ctrl-p'
        assert data['User'] == 'nobody'
        assert data['Privileged'] is True

    def test_exec_create_old_api(self):
        client = docker_api.APIClient(version='1.24')
        with pytest.raises(docker_api.errors.InvalidVersion):
            client.exec_create(fake_api.FAKE_CONTAINER_ID, 'ls',
                               environment={'FOO': 'bar'})
        client.close()

        client = docker_api.APIClient(version='1.34')
        with pytest.raises(docker_api.errors.InvalidVersion):
            client.exec_create(fake_api.FAKE_CONTAINER_ID, 'ls',
                               workdir='/srv')
        client.close()

    def test_exec_start(self):
        self.client.exec_start(fake_api.FAKE_EXEC_ID)

        args = fake_request.call_args
        assert args[0][1] == url_prefix + 'exec/{}/start'.format(
            fake_api.FAKE_EXEC_ID
        )

        assert json.loads(args[1]['data']) == {
            'Tty': False,
            'Detach': False,
        }

        assert args[1]['headers'] == {
            'Content-Type': 'application/json',
            'Connection': 'Upgrade',
            'Upgrade': 'tcp'
        }

    def test_exec_start_detached(self):
        self.client.exec_start(fake_api.FAKE_EXEC_ID, detach=True)

        args = fake_request.call_args
        assert args[0][1] == url_prefix + 'exec/{}/start'.format(
            fake_api.FAKE_EXEC_ID
        )

        assert json.loads(args[1]['data']) == {
            'Tty': False,
            'Detach': True
        }

        assert args[1]['headers'] == {
            'Content-Type': 'application/json'
        }

    def test_exec_start_passes_demux_flags(self):
        with mock.patch(
            'docker_api.api.client.APIClient._read_from_socket',
            return_value=(b'out', b'err')
        ) as read_from_socket:
            result = self.client.exec_start(fake_api.FAKE_EXEC_ID, tty=True,
                                            demux=True)

        assert result == (b'out', b'err')
        args = read_from_socket.call_args
        assert args[0][1] is False
        assert args[1] == {'tty': True, 'demux': True}

    def test_exec_start_stream_is_cancellable(self):
        with mock.patch(
            'docker_api.api.client.APIClient._read_from_socket',
            return_value=iter([b'a', b'b'])
        ):
            result = self.client.exec_start(fake_api.FAKE_EXEC_ID,
                                            stream=True)

        assert isinstance(result, docker_api.types.CancellableStream)
        assert list(result) == [b'a', b'b']

    def test_exec_inspect(self):
        result = self.client.exec_inspect(fake_api.FAKE_EXEC_ID)

        args = fake_request.call_args
        assert args[0][1] == url_prefix + 'exec/{}/json'.format(
            fake_api.FAKE_EXEC_ID
        )
        assert result['ID'] == fake_api.FAKE_EXEC_ID

    def test_exec_inspect_dict(self):
        self.client.exec_inspect({'Id': fake_api.FAKE_EXEC_ID})

        args = fake_request.call_args
        assert args[0][1] == url_prefix + 'exec/{}/json'.format(
            fake_api.FAKE_EXEC_ID
        )

    def test_exec_resize(self):
        self.client.exec_resize(fake_api.FAKE_EXEC_ID, height=20, width=60)

        fake_request.assert_called_with(
            'POST',
            url_prefix + f'exec/{fake_api.FAKE_EXEC_ID}/resize',
            params={'h': 20, 'w': 60},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )
