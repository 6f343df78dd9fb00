import dataclasses
import json
import logging

import anyio
import httpx

from lightkube.config import client_adapter
from lightkube.core import resource as lkr

from .exceptions import DecodeError, NotFound, StaleVersionError, TransportError
from .resources import api_path, decode, resource_version

__all__ = [
    'Transport',
    'WatchEvent',
]

log = logging.getLogger(__name__)


@dataclasses.dataclass
class WatchEvent:
    """A single event read from a watch stream.

    For BOOKMARK events obj is None, only the resource version is relevant.
    """

    type: str
    obj: object
    resource_version: str = None


def _kind(resource):
    info = lkr.api_info(resource)
    return f'{info.resource.api_version}/{info.resource.kind}'


def _status_message(response):
    try:
        return response.json().get('message')
    except (ValueError, AttributeError):
        return None


class Transport:
    """List and watch resources on the api server.

    Talks plain HTTP through the given httpx.AsyncClient, which must already
    carry the base url and the credentials of the cluster.
    """

    def __init__(self, http_client, list_timeout=60, watch_timeout=300, page_size=500):
        self.http_client = http_client
        self.list_timeout = list_timeout
        self.watch_timeout = watch_timeout
        self.page_size = page_size

    def __repr__(self):
        return f'<Transport {self.http_client.base_url}>'

    @classmethod
    def from_client_config(cls, client_config, list_timeout=60, watch_timeout=300, **kwargs):
        """Create a transport for the given lightkube SingleConfig."""
        http_client = client_adapter.AsyncClient(client_config, httpx.Timeout(list_timeout))
        return cls(
            http_client,
            list_timeout=list_timeout,
            watch_timeout=watch_timeout,
            **kwargs,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.http_client.aclose()

    async def _check_response(self, response, action):
        if response.is_success:
            return
        await response.aread()
        request = response.request
        status_code = response.status_code
        message = _status_message(response) or response.reason_phrase
        message = f'HTTP {status_code} while {action}: {message}'
        if status_code == 410:
            raise StaleVersionError(message)
        if status_code == 404:
            raise NotFound(request.method, str(request.url), status_code, message=message)
        raise TransportError(request.method, str(request.url), status_code, message=message)

    async def list(self, resource, namespace=None):
        """List all objects of the given resource.

        Returns a tuple of the decoded objects and the resource version of
        the collection.
        """
        path = api_path(resource, namespace)
        action = f'listing {_kind(resource)}'
        params = {}
        if self.page_size:
            params['limit'] = self.page_size
        objects = []
        version = None
        try:
            with anyio.fail_after(self.list_timeout):
                while True:
                    response = await self.http_client.get(path, params=params)
                    await self._check_response(response, action)
                    try:
                        body = response.json()
                    except ValueError as e:
                        raise DecodeError(f'invalid json while {action}') from e
                    for item in body.get('items') or []:
                        try:
                            objects.append(decode(resource, item))
                        except DecodeError as e:
                            log.error('skipping listed item: %s', e)
                    metadata = body.get('metadata') or {}
                    version = metadata.get('resourceVersion')
                    token = metadata.get('continue')
                    if not token:
                        break
                    params['continue'] = token
        except httpx.HTTPError as e:
            raise TransportError('GET', path, message=f'{e!r} while {action}') from e
        except TimeoutError as e:
            raise TransportError('GET', path, message=f'timeout while {action}') from e
        log.debug('listed %d %s at %s', len(objects), _kind(resource), version)
        return objects, version

    def _process_line(self, resource, path, line):
        try:
            data = json.loads(line)
            event_type = data['type']
            obj = data.get('object')
        except (ValueError, TypeError, KeyError, AttributeError):
            log.error('skipping malformed watch line: %r', line)
            return None

        match event_type:
            case 'ADDED' | 'MODIFIED' | 'DELETED':
                try:
                    decoded = decode(resource, obj)
                except DecodeError as e:
                    log.error('skipping %s event: %s', event_type, e)
                    return None
                return WatchEvent(event_type, decoded, resource_version(decoded))
            case 'BOOKMARK':
                metadata = obj.get('metadata') if isinstance(obj, dict) else None
                metadata = metadata or {}
                return WatchEvent(event_type, None, metadata.get('resourceVersion'))
            case 'ERROR':
                status = obj if isinstance(obj, dict) else {}
                code = status.get('code')
                message = status.get('message')
                if code == 410:
                    raise StaleVersionError(f'watch of {_kind(resource)} expired: {message}')
                raise TransportError(
                    'GET',
                    path,
                    code,
                    message=f'error while watching {_kind(resource)}: {message}',
                )
            case _:
                log.warning('skipping unknown watch event type: %s', event_type)
                return None

    async def watch(self, resource, namespace=None, resource_version=None):
        """Watch the given resource starting after resource_version.

        Yields WatchEvent's until the server closes the stream. The stream is
        never reopened, that is up to the caller.
        """
        path = api_path(resource, namespace)
        action = f'watching {_kind(resource)}'
        params = {
            'watch': 'true',
            'allowWatchBookmarks': 'true',
            'timeoutSeconds': str(self.watch_timeout),
        }
        if resource_version:
            params['resourceVersion'] = resource_version
        # The server ends the watch after timeoutSeconds, give it some slack
        # before we consider the connection dead.
        timeout = httpx.Timeout(self.list_timeout, read=self.watch_timeout + 30)
        request = self.http_client.build_request('GET', path, params=params, timeout=timeout)

        log.debug('start %s %s', action, resource_version)
        try:
            response = await self.http_client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise TransportError('GET', path, message=f'{e!r} while {action}') from e

        try:
            await self._check_response(response, action)
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                event = self._process_line(resource, path, line)
                if event is not None:
                    yield event
            log.debug('server closed watch of %s', _kind(resource))
        except httpx.HTTPError as e:
            raise TransportError('GET', path, message=f'{e!r} while {action}') from e
        finally:
            # Release the connection, even when we are being cancelled.
            with anyio.CancelScope(shield=True):
                await response.aclose()
