import json

import pytest

import docker_api

from . import fake_api
from .api_test import (
    BaseAPIClientTest, url_prefix, fake_request, DEFAULT_TIMEOUT_SECONDS
)

volume_url = f'{url_prefix}volumes/{fake_api.FAKE_VOLUME_NAME}'


class VolumeTest(BaseAPIClientTest):
    def create_body(self):
        args = fake_request.call_args
        assert args[0] == ('POST', url_prefix + 'volumes/create')
        return json.loads(args[1]['data'])

    def test_volumes(self):
        result = self.client.volumes()

        assert [v['Name'] for v in result['Volumes']] == [
            fake_api.FAKE_VOLUME_NAME, 'build-cache'
        ]
        fake_request.assert_called_with(
            'GET', url_prefix + 'volumes', params={'filters': None},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_volumes_filters(self):
        self.client.volumes(filters={'dangling': False, 'label': 'env=ci'})

        filters = json.loads(fake_request.call_args[1]['params']['filters'])
        assert filters == {'dangling': ['false'], 'label': ['env=ci']}

    def test_create_volume_without_name(self):
        result = self.client.create_volume()

        assert self.create_body() == {}
        assert result['Mountpoint'].startswith('/var/lib/docker/volumes/')

    def test_create_volume_sends_only_given_fields(self):
        self.client.create_volume(
            fake_api.FAKE_VOLUME_NAME, driver='sshfs',
            driver_opts={'sshcmd': 'ci@cache:/srv'}, labels={'owner': 'ci'}
        )

        assert self.create_body() == {
            'Name': fake_api.FAKE_VOLUME_NAME,
            'Driver': 'sshfs',
            'DriverOpts': {'sshcmd': 'ci@cache:/srv'},
            'Labels': {'owner': 'ci'},
        }

    def test_create_volume_empty_options_are_sent(self):
        self.client.create_volume(fake_api.FAKE_VOLUME_NAME, driver_opts={})

        assert self.create_body()['DriverOpts'] == {}

    def test_create_volume_rejects_non_dict_options(self):
        calls = fake_request.call_count
        for kwargs in ({'driver_opts': 'o=bind'}, {'driver_opts': ['o=bind']},
                       {'labels': 'owner=ci'}, {'labels': ''}):
            with pytest.raises(TypeError):
                self.client.create_volume(fake_api.FAKE_VOLUME_NAME, **kwargs)
        assert fake_request.call_count == calls

    def test_inspect_volume(self):
        result = self.client.inspect_volume(fake_api.FAKE_VOLUME_NAME)

        assert result['Labels'] == {'owner': 'ci'}
        fake_request.assert_called_with(
            'GET', volume_url, timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_remove_volume(self):
        assert self.client.remove_volume(fake_api.FAKE_VOLUME_NAME) is None

        fake_request.assert_called_with(
            'DELETE', volume_url, params={}, timeout=DEFAULT_TIMEOUT_SECONDS
        )

    def test_remove_volume_force(self):
        self.client.remove_volume(fake_api.FAKE_VOLUME_NAME, force=True)

        assert fake_request.call_args[1]['params'] == {'force': True}

    def test_remove_volume_force_needs_api_1_25(self):
        client = docker_api.APIClient(version='1.24')
        with pytest.raises(docker_api.errors.InvalidVersion):
            client.remove_volume(fake_api.FAKE_VOLUME_NAME, force=True)
        client.close()

    def test_prune_volumes(self):
        result = self.client.prune_volumes()

        fake_request.assert_called_with(
            'POST', url_prefix + 'volumes/prune', params={},
            timeout=DEFAULT_TIMEOUT_SECONDS
        )
        assert result == {'VolumesDeleted': [fake_api.FAKE_VOLUME_NAME],
                          'SpaceReclaimed': 8192}

    def test_prune_volumes_filters(self):
        self.client.prune_volumes(filters={'label!': 'keep', 'all': True})

        filters = json.loads(fake_request.call_args[1]['params']['filters'])
        assert filters == {'label!': ['keep'], 'all': ['true']}

    def test_prune_volumes_needs_api_1_25(self):
        client = docker_api.APIClient(version='1.24')
        with pytest.raises(docker_api.errors.InvalidVersion):
            client.prune_volumes()
        client.close()
