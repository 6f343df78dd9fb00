import enum

from lightkube.core import resource as lkr
from lightkube.resources import apps_v1, autoscaling_v1, batch_v1, core_v1, networking_v1

from .exceptions import DecodeError

__all__ = [
    'ResourceKind',
    'RESOURCES',
    'api_path',
    'decode',
    'get_resource',
    'identity',
    'is_namespaced_resource',
    'is_newer_version',
    'payload',
    'resource_version',
]


class ResourceKind(str, enum.Enum):
    """The resource kinds that can be watched, spelled as on the command line."""

    # v1
    CONFIG_MAPS = 'configMaps'
    ENDPOINTS = 'endpoints'
    EVENTS = 'events'
    LIMIT_RANGES = 'limitranges'
    NAMESPACES = 'namespaces'
    PERSISTENT_VOLUME_CLAIMS = 'persistentvolumeclaims'
    PERSISTENT_VOLUMES = 'persistentvolumes'
    PODS = 'pods'
    POD_TEMPLATES = 'podtemplates'
    REPLICATION_CONTROLLERS = 'replicationcontrollers'
    RESOURCE_QUOTAS = 'resourcequotas'
    SECRETS = 'secrets'
    SERVICE_ACCOUNTS = 'serviceaccounts'
    SERVICES = 'services'
    # apps, autoscaling, networking and batch
    DEPLOYMENTS = 'deployments'
    HORIZONTAL_POD_AUTOSCALERS = 'horizontalpodautoscalers'
    INGRESSES = 'ingresses'
    JOBS = 'jobs'

    def __str__(self):
        return self.value


RESOURCES = {
    ResourceKind.CONFIG_MAPS: core_v1.ConfigMap,
    ResourceKind.ENDPOINTS: core_v1.Endpoints,
    ResourceKind.EVENTS: core_v1.Event,
    ResourceKind.LIMIT_RANGES: core_v1.LimitRange,
    ResourceKind.NAMESPACES: core_v1.Namespace,
    ResourceKind.PERSISTENT_VOLUME_CLAIMS: core_v1.PersistentVolumeClaim,
    ResourceKind.PERSISTENT_VOLUMES: core_v1.PersistentVolume,
    ResourceKind.PODS: core_v1.Pod,
    ResourceKind.POD_TEMPLATES: core_v1.PodTemplate,
    ResourceKind.REPLICATION_CONTROLLERS: core_v1.ReplicationController,
    ResourceKind.RESOURCE_QUOTAS: core_v1.ResourceQuota,
    ResourceKind.SECRETS: core_v1.Secret,
    ResourceKind.SERVICE_ACCOUNTS: core_v1.ServiceAccount,
    ResourceKind.SERVICES: core_v1.Service,
    ResourceKind.DEPLOYMENTS: apps_v1.Deployment,
    ResourceKind.HORIZONTAL_POD_AUTOSCALERS: autoscaling_v1.HorizontalPodAutoscaler,
    ResourceKind.INGRESSES: networking_v1.Ingress,
    ResourceKind.JOBS: batch_v1.Job,
}


# Make lightkube Resources __repr__ something more useful in logs.
def _resource__repr__(self):
    api_version = self.apiVersion
    kind = self.kind
    metadata = self.metadata
    name = getattr(metadata, 'name', None)
    namespace = getattr(metadata, 'namespace', None)
    version = getattr(metadata, 'resourceVersion', None)
    out = []
    out.append(f'{api_version}/{kind}')
    if namespace is not None:
        out.append(f'{namespace}/{name}')
    elif name is not None:
        out.append(f'{name}')
    if version is not None:
        out.append(version)
    ident = ' '.join(out)
    return f'<Object {ident}>'


def get_resource(kind) -> lkr.Resource:
    """Return the lightkube resource class registered for the given kind name.

    Raises ValueError for names outside of the closed set of known kinds.
    """
    resource = RESOURCES[ResourceKind(kind)]
    # lightkube dataclasses generate their own __repr__, so patch each
    # resource class we hand out.
    resource.__repr__ = _resource__repr__
    return resource


def is_namespaced_resource(resource):
    return issubclass(resource, (lkr.NamespacedResource, lkr.NamespacedSubResource))


def api_path(resource, namespace=None):
    """Return the REST collection path of the given resource."""
    info = lkr.api_info(resource)
    group = info.resource.group
    version = info.resource.version
    if group:
        path = f'/apis/{group}/{version}'
    else:
        path = f'/api/{version}'
    if namespace and is_namespaced_resource(resource):
        path = f'{path}/namespaces/{namespace}'
    return f'{path}/{info.plural}'


def decode(resource, data):
    """Decode the given dict into an instance of resource.

    Lists omit apiVersion and kind on their items, so fill them in from the
    resource definition.
    """
    if not isinstance(data, dict):
        raise DecodeError(f'expected an object, got {type(data).__name__}')
    info = lkr.api_info(resource)
    data = dict(data)
    if not data.get('apiVersion'):
        data['apiVersion'] = info.resource.api_version
    if not data.get('kind'):
        data['kind'] = info.resource.kind
    try:
        return resource.from_dict(data, lazy=False)
    except (TypeError, ValueError, KeyError, AttributeError) as e:
        raise DecodeError(
            f'can not decode {info.resource.api_version}/{info.resource.kind}: {e}'
        ) from e


def identity(obj):
    """Return (namespace, name) of the given object.

    namespace is None for cluster scoped objects.
    """
    metadata = getattr(obj, 'metadata', None)
    name = getattr(metadata, 'name', None)
    if not name:
        raise DecodeError(f'object without name: {obj!r}')
    return getattr(metadata, 'namespace', None), name


def resource_version(obj):
    metadata = getattr(obj, 'metadata', None)
    return getattr(metadata, 'resourceVersion', None)


def payload(obj):
    """Return the object as a json serializable dict."""
    return obj.to_dict()


def is_newer_version(new, old):
    """Return True if resource version new supersedes resource version old.

    Resource versions are opaque to clients, but in practice they are
    integers backed by the etcd revision. Compare them as such when
    possible, otherwise any difference counts as newer.
    """
    if old is None:
        return True
    if new is None:
        return False
    try:
        return int(new) > int(old)
    except ValueError:
        return new != old
