"""Test doubles shared by the test modules."""

import dataclasses

import anyio

from lightkube.models.meta_v1 import ObjectMeta
from lightkube.resources.core_v1 import Pod, Service

from kubewatch.backoff import Backoff


def make_pod(name, version, namespace='ns'):
    return Pod(
        apiVersion='v1',
        kind='Pod',
        metadata=ObjectMeta(name=name, namespace=namespace, resourceVersion=version),
    )


def make_service(name, version, namespace='ns'):
    return Service(
        apiVersion='v1',
        kind='Service',
        metadata=ObjectMeta(name=name, namespace=namespace, resourceVersion=version),
    )


class Recorder:
    """Async event handler that remembers every event it got."""

    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)


@dataclasses.dataclass
class RecordingBackoff(Backoff):
    delays: list = dataclasses.field(default_factory=list)

    def delay(self):
        delay = super().delay()
        self.delays.append(delay)
        return delay


class FakeTransport:
    """Transport that plays back scripted list and watch results.

    lists holds (objects, resource_version) tuples or exceptions, watches
    holds lists of WatchEvent's (or exceptions raised mid stream) or
    exceptions raised when the watch is opened. Once a script runs out the
    call blocks forever and idle is set.
    """

    def __init__(self, lists=(), watches=()):
        self.lists = list(lists)
        self.watches = list(watches)
        self.calls = []
        self.idle = anyio.Event()
        self.opened = 0
        self.closed = 0

    async def list(self, resource, namespace=None):
        self.calls.append(('list', namespace))
        if not self.lists:
            self.idle.set()
            await anyio.sleep_forever()
        result = self.lists.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def watch(self, resource, namespace=None, resource_version=None):
        self.calls.append(('watch', resource_version))
        self.opened += 1
        try:
            if not self.watches:
                self.idle.set()
                await anyio.sleep_forever()
            script = self.watches.pop(0)
            if isinstance(script, Exception):
                raise script
            for item in script:
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.closed += 1
