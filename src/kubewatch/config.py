import dataclasses
import logging
import os
import pathlib
import random

import yaml

from lightkube import KubeConfig
from lightkube.core.exceptions import ConfigError as LightkubeConfigError

from .exceptions import ConfigError
from .resources import ResourceKind

__all__ = [
    'WatchConfig',
    'default_kubeconfig',
    'load_client_config',
]

log = logging.getLogger(__name__)


def default_kubeconfig():
    """Return ~/.kube/config if it exists, otherwise None."""
    home = os.environ.get('HOME')
    if home:
        path = pathlib.Path(home) / '.kube' / 'config'
        if path.exists():
            return path
    return None


def _is_in_cluster(kubeconfig):
    # '.' is what older releases used as a placeholder for 'no file'.
    return kubeconfig is None or str(kubeconfig) in ('', '.')


def load_client_config(kubeconfig=None):
    """Load the client configuration for talking to the api server.

    Uses the given kubeconfig file, or the service account of the pod we
    are running in if no file is given.
    Returns a lightkube SingleConfig.
    """
    try:
        if _is_in_cluster(kubeconfig):
            log.debug('using in-cluster service account')
            return KubeConfig.from_service_account().get()
        log.debug('using kubeconfig %s', kubeconfig)
        return KubeConfig.from_file(kubeconfig).get()
    except (
        LightkubeConfigError,
        yaml.YAMLError,
        OSError,
        ValueError,
        KeyError,
        TypeError,
        AttributeError,
    ) as e:
        source = 'in-cluster service account' if _is_in_cluster(kubeconfig) else kubeconfig
        raise ConfigError(f'can not load client config from {source}: {e}') from e


@dataclasses.dataclass(frozen=True)
class WatchConfig:
    """Everything the watcher needs to know, built once at startup."""

    resource: ResourceKind = ResourceKind.SERVICES
    namespace: str = None
    kubeconfig: pathlib.Path = None
    # Seconds to wait for a complete list.
    list_timeout: float = 60
    # Seconds after which the server ends a watch, jittered so that many
    # watchers do not reconnect at the same time.
    watch_timeout: int = dataclasses.field(
        default_factory=lambda: 300 + random.randint(0, 300)
    )
    backoff_base: float = 0.8
    backoff_max: float = 30

    def __post_init__(self):
        # Validate against the closed set of kinds.
        object.__setattr__(self, 'resource', ResourceKind(self.resource))
        if self.namespace == '':
            object.__setattr__(self, 'namespace', None)

    @property
    def all_namespaces(self):
        return self.namespace is None
