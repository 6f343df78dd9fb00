import dataclasses
import pathlib

import pytest

from kubewatch.config import WatchConfig, default_kubeconfig, load_client_config
from kubewatch.exceptions import ConfigError
from kubewatch.resources import ResourceKind
from kubewatch.transport import Transport


KUBECONFIG = """\
apiVersion: v1
kind: Config
clusters:
- name: test
  cluster:
    server: https://k8s.example:6443
users:
- name: test
  user:
    token: secret
contexts:
- name: test
  context:
    cluster: test
    user: test
    namespace: default
current-context: test
"""


@pytest.fixture
def kubeconfig(tmp_path):
    path = tmp_path / 'config'
    path.write_text(KUBECONFIG)
    return path


class TestDefaultKubeconfig:
    def test_home_kube_config(self, tmp_path, monkeypatch):
        path = tmp_path / '.kube' / 'config'
        path.parent.mkdir()
        path.write_text(KUBECONFIG)
        monkeypatch.setenv('HOME', str(tmp_path))
        assert default_kubeconfig() == path

    def test_no_kube_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv('HOME', str(tmp_path))
        assert default_kubeconfig() is None


class TestWatchConfig:
    def test_defaults(self):
        config = WatchConfig()
        assert config.resource is ResourceKind.SERVICES
        assert config.namespace is None
        assert config.all_namespaces
        assert 300 <= config.watch_timeout <= 600

    def test_resource_name_is_validated(self):
        assert WatchConfig(resource='pods').resource is ResourceKind.PODS
        with pytest.raises(ValueError):
            WatchConfig(resource='widgets')

    def test_empty_namespace_means_all(self):
        assert WatchConfig(namespace='').all_namespaces

    def test_is_immutable(self):
        config = WatchConfig(namespace='default')
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.namespace = 'other'


class TestLoadClientConfig:
    def test_from_file(self, kubeconfig):
        client_config = load_client_config(kubeconfig)
        assert client_config.cluster.server == 'https://k8s.example:6443'
        assert client_config.namespace == 'default'

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_client_config(tmp_path / 'missing')

    def test_broken_file(self, tmp_path):
        path = tmp_path / 'config'
        path.write_text('clusters: [')
        with pytest.raises(ConfigError):
            load_client_config(path)

    def test_in_cluster_outside_of_a_cluster(self, monkeypatch):
        if pathlib.Path('/var/run/secrets/kubernetes.io/serviceaccount').exists():
            pytest.skip('running inside a cluster')
        monkeypatch.delenv('KUBERNETES_SERVICE_HOST', raising=False)
        monkeypatch.delenv('KUBERNETES_SERVICE_PORT', raising=False)
        with pytest.raises(ConfigError):
            load_client_config(None)

    @pytest.mark.anyio
    async def test_transport_from_client_config(self, kubeconfig):
        client_config = load_client_config(kubeconfig)
        async with Transport.from_client_config(client_config, watch_timeout=120) as transport:
            assert transport.http_client.base_url.host == 'k8s.example'
            assert transport.watch_timeout == 120
