import pytest

from typer.testing import CliRunner

from kubewatch import watcher
from kubewatch.cli import app
from kubewatch.exceptions import ConfigError, FatalError
from kubewatch.resources import ResourceKind


runner = CliRunner()


@pytest.fixture
def configs(monkeypatch, tmp_path):
    """Capture the config the cli would start watching with."""
    captured = []
    monkeypatch.setattr(watcher, 'run', captured.append)
    monkeypatch.setenv('KUBECONFIG', '/missing/a:/missing/b')
    monkeypatch.setenv('HOME', str(tmp_path))
    return captured


def test_version():
    result = runner.invoke(app, ['--version'])
    assert result.exit_code == 0
    assert 'kubewatch 0.2.0' in result.output


@pytest.mark.parametrize('flag', ['-h', '--help'])
def test_help(flag):
    result = runner.invoke(app, [flag])
    assert result.exit_code == 0
    assert '--resource' in result.output
    assert '--namespace' in result.output
    assert '--kubeconfig' in result.output


def test_defaults(configs):
    result = runner.invoke(app, [])
    assert result.exit_code == 0, result.output
    config, = configs
    assert config.resource is ResourceKind.SERVICES
    assert config.namespace is None
    # No ~/.kube/config, so the in-cluster config is used.
    assert config.kubeconfig is None


def test_options(configs, tmp_path):
    path = tmp_path / 'kubeconfig'
    path.write_text('')
    result = runner.invoke(app, [
        '--kubeconfig', str(path),
        '--resource', 'pods',
        '--namespace', 'default',
    ])
    assert result.exit_code == 0, result.output
    config, = configs
    assert config.resource is ResourceKind.PODS
    assert config.namespace == 'default'
    assert config.kubeconfig == path


def test_default_kubeconfig_from_home(configs, tmp_path):
    path = tmp_path / '.kube' / 'config'
    path.parent.mkdir()
    path.write_text('')
    result = runner.invoke(app, ['--resource', 'deployments'])
    assert result.exit_code == 0, result.output
    assert configs[0].kubeconfig == path


def test_unknown_resource(configs):
    result = runner.invoke(app, ['--resource', 'widgets'])
    assert result.exit_code == 2
    assert configs == []


def test_missing_kubeconfig(configs, tmp_path):
    result = runner.invoke(app, ['--kubeconfig', str(tmp_path / 'missing')])
    assert result.exit_code == 2
    assert configs == []


def test_config_error_is_fatal(monkeypatch):
    def run(config):
        raise ConfigError('no current context')

    monkeypatch.setattr(watcher, 'run', run)
    result = runner.invoke(app, ['--resource', 'pods'])
    assert result.exit_code == 1
    assert 'kubewatch: error:' in result.output
    assert 'no current context' in result.output


def test_grouped_fatal_error(monkeypatch):
    def run(config):
        raise ExceptionGroup('', [FatalError('Error: handler exploded')])

    monkeypatch.setattr(watcher, 'run', run)
    result = runner.invoke(app, ['--resource', 'pods'])
    assert result.exit_code == 1
    assert 'handler exploded' in result.output


def test_kubeconfig_env_is_not_read(configs):
    # A KUBECONFIG path list must not be taken for --kubeconfig.
    result = runner.invoke(app, ['--resource', 'pods'])
    assert result.exit_code == 0, result.output
    assert configs[0].kubeconfig is None
