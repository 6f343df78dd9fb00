__all__ = [
    'ConfigError',
    'DecodeError',
    'Error',
    'FatalError',
    'NotFound',
    'ObjectError',
    'StaleVersionError',
    'StoreKeyError',
    'TransportError',
    'iterate_errors',
]


def iterate_errors(exc):
    """
    iterate over all non-exceptiongroup parts of an exception(group)
    """
    if isinstance(exc, BaseExceptionGroup):
        for e in exc.exceptions:
            yield from iterate_errors(e)
    else:
        yield exc


class FatalError(Exception):
    """A fatal error that we can not recover from."""


class Error(Exception):
    """Base class for all custom Exceptions."""

    def __init__(self, message=None):
        self.message = message

    def __str__(self):
        return self.__repr__()

    def __repr__(self):
        return f'{self.__class__.__name__}: {self.message}'


class ConfigError(Error):
    """The client configuration could not be loaded.

    Raised for a missing or broken kubeconfig file and when the in-cluster
    service account environment is incomplete.
    """


class TransportError(Error):
    """An error that occured on the transport level while talking to the api.
    """
    def __init__(self, http_method=None, url=None, status_code=None, message=None):
        self.http_method = http_method
        self.url = url
        self.status_code = status_code
        self.message = message

    def __str__(self):
        if self.message:
            return self.message
        elif self.status_code is not None:
            return '{0} to {1} failed with status: {2}'.format(
                self.http_method, self.url, self.status_code
            )
        else:
            return '{0} to {1} failed'.format(self.http_method, self.url)

    def __repr__(self):
        return f'{self.__class__.__name__}: {self}'


class NotFound(TransportError):
    """The requested namespace or resource kind does not exist."""


class StaleVersionError(Error):
    """The api server no longer knows the resource version we asked for."""


class DecodeError(Error):
    """A payload does not have the shape we expect."""


class ObjectError(Error):
    def __init__(self, obj):
        self.obj = obj

    def __repr__(self):
        obj = self.obj
        kind = getattr(obj, 'kind', None)
        api_version = getattr(obj, 'apiVersion', None)
        metadata = getattr(obj, 'metadata', None)
        namespace = getattr(metadata, 'namespace', None)
        name = getattr(metadata, 'name', None)
        out = []
        if api_version is not None and kind is not None:
            out.append(f'{api_version}/{kind}')
        if namespace is not None:
            out.append(f'{namespace}/{name}')
        else:
            out.append(str(name))
        msg = ' '.join(out)
        return f'{self.__class__.__name__}: {msg}'


class StoreKeyError(ObjectError, DecodeError):
    """No store key can be built for the given object."""
