"""Testes unitarios para ChaosMeshClient e KopfEventRecorder."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from kubernetes_asyncio.client.exceptions import ApiException

from neural_hive_chaos.clients.chaosmesh_client import ChaosMeshClient
from neural_hive_chaos.clients.event_recorder import KopfEventRecorder
from neural_hive_chaos.errors import AlreadyExistsError, ChaosOperatorError, ConflictError
from neural_hive_chaos.scheme import build_default_scheme


@pytest.fixture
def chaosmesh_client():
    client = ChaosMeshClient(build_default_scheme())
    client.custom_api = MagicMock()
    client._connected = True
    return client


def pod_chaos(resource_version=None):
    metadata = {'name': 'exp', 'namespace': 'default'}
    if resource_version:
        metadata['resourceVersion'] = resource_version
    return {
        'apiVersion': 'chaos-mesh.org/v1alpha1',
        'kind': 'PodChaos',
        'metadata': metadata,
        'spec': {'action': 'pod-failure', 'mode': 'all'},
    }


class TestChaosMeshClient:

    @pytest.mark.asyncio
    async def test_get_resolves_plural(self, chaosmesh_client):
        chaosmesh_client.custom_api.get_namespaced_custom_object = AsyncMock(return_value=pod_chaos())

        result = await chaosmesh_client.get('NetworkChaos', 'default', 'exp')

        assert result['kind'] == 'PodChaos'
        kwargs = chaosmesh_client.custom_api.get_namespaced_custom_object.call_args.kwargs
        assert kwargs['group'] == 'chaos-mesh.org'
        assert kwargs['plural'] == 'networkchaos'

    @pytest.mark.asyncio
    async def test_get_not_found(self, chaosmesh_client):
        chaosmesh_client.custom_api.get_namespaced_custom_object = AsyncMock(
            side_effect=ApiException(status=404, reason='Not Found')
        )

        assert await chaosmesh_client.get('PodChaos', 'default', 'exp') is None

    @pytest.mark.asyncio
    async def test_create(self, chaosmesh_client):
        chaosmesh_client.custom_api.create_namespaced_custom_object = AsyncMock(return_value=pod_chaos())

        await chaosmesh_client.create(pod_chaos())

        kwargs = chaosmesh_client.custom_api.create_namespaced_custom_object.call_args.kwargs
        assert kwargs['plural'] == 'podchaos'
        assert kwargs['namespace'] == 'default'

    @pytest.mark.asyncio
    async def test_create_already_exists(self, chaosmesh_client):
        chaosmesh_client.custom_api.create_namespaced_custom_object = AsyncMock(
            side_effect=ApiException(status=409, reason='AlreadyExists')
        )

        with pytest.raises(AlreadyExistsError):
            await chaosmesh_client.create(pod_chaos())

    @pytest.mark.asyncio
    async def test_update_conflict(self, chaosmesh_client):
        chaosmesh_client.custom_api.replace_namespaced_custom_object = AsyncMock(
            side_effect=ApiException(status=409, reason='Conflict')
        )

        with pytest.raises(ConflictError):
            await chaosmesh_client.update(pod_chaos(resource_version='3'))

    @pytest.mark.asyncio
    async def test_not_connected(self):
        client = ChaosMeshClient(build_default_scheme())

        with pytest.raises(ChaosOperatorError):
            await client.get('PodChaos', 'default', 'exp')

    def test_connect_reuses_api_client(self):
        client = ChaosMeshClient(build_default_scheme())
        api_client = MagicMock()

        with patch('neural_hive_chaos.clients.chaosmesh_client.client') as mock_client:
            client.connect(api_client)

            mock_client.CustomObjectsApi.assert_called_once_with(api_client)
        assert client.is_healthy() is True


class TestKopfEventRecorder:

    def test_emit_posts_kopf_event(self):
        body = {'kind': 'ChaosExperiment', 'metadata': {'name': 'exp', 'namespace': 'default'}}

        with patch('neural_hive_chaos.clients.event_recorder.kopf') as mock_kopf:
            KopfEventRecorder().emit(body, 'Warning', 'ReconcileFailed', 'job: boom')

            mock_kopf.event.assert_called_once_with(
                body, type='Warning', reason='ReconcileFailed', message='job: boom'
            )
