import contextlib
import copy
import dataclasses
import enum
import logging
import typing

import anyio

from lightkube.core import resource as lkr

from ..backoff import Backoff
from ..exceptions import DecodeError, StaleVersionError, TransportError
from ..resources import is_newer_version, resource_version
from ..tasks import Task
from .events import CreateEvent, UpdateEvent, DeleteEvent
from .store import Outcome


log = logging.getLogger(__name__)


class ReflectorState(enum.Enum):
    LISTING = 'listing'
    WATCHING = 'watching'
    RESUMING = 'resuming'
    RELISTING = 'relisting'
    STOPPED = 'stopped'


@dataclasses.dataclass
class Reflector(Task):
    """Keep a store in sync with a collection on the api server.

    Lists the collection once, then watches it from the returned resource
    version. A watch that ends is resumed from the last seen resource
    version after a backoff delay. If the server no longer knows that
    version the collection is listed again.

    Every change applied to the store is passed to handler as a
    CreateEvent, UpdateEvent or DeleteEvent, one at a time and in the
    order the changes were received.
    """

    transport: object
    store: object
    resource: lkr.Resource
    namespace: str = None
    handler: typing.Callable = None
    backoff: Backoff = dataclasses.field(default_factory=Backoff)
    resource_version: str = None

    @property
    def api_version(self) -> str:
        return self.resource._api_info.resource.api_version

    @property
    def kind(self) -> str:
        return self.resource._api_info.resource.kind

    def __post_init__(self):
        super().__init__()
        self._task_group = None  # Main taskgroup
        self._stopping = False
        self._processed = 0  # Watch events processed so far
        self.state = ReflectorState.LISTING

    def __hash__(self):
        return hash((self.api_version, self.kind, self.namespace))

    def __repr__(self):
        _out = []
        _out.append(f'{self.api_version}/{self.kind}')
        if self.namespace is not None:
            _out.append(self.namespace)
        if self.resource_version:
            _out.append(self.resource_version)
        _out.append(self.state.value)
        _s = ' '.join(_out)
        return f'<Reflector {_s}>'

    @property
    def has_synced(self):
        return self.is_running

    def _set_state(self, state):
        if state is not self.state:
            log.debug('%s -> %s', self, state.value)
            self.state = state

    async def _dispatch(self, event):
        """Pass a copy of the event to the handler."""
        if self.handler is None or self._stopping:
            return
        # The handler gets copies, never the objects in the store.
        event = copy.deepcopy(event)
        try:
            await self.handler(event)
        except DecodeError as e:
            log.error('handler failed to process %r: %s', event, e)

    def _advance(self, version):
        if version and is_newer_version(version, self.resource_version):
            self.resource_version = version

    async def _list(self):
        log.debug(
            'start listing %s/%s %s',
            self.api_version,
            self.kind,
            self.namespace,
        )
        objects, version = await self.transport.list(
            self.resource, namespace=self.namespace
        )
        await self._replace(objects)
        self.resource_version = version
        log.debug(
            'done listing %s/%s %s',
            self.api_version,
            self.kind,
            self.resource_version,
        )

    async def _replace(self, objects):
        """Replace the store content and emit the difference as events."""
        events = []
        seen = set()
        keyed = []
        for obj in objects:
            try:
                key = self.store.key_func(obj)
            except DecodeError as e:
                log.error('skipping listed object: %s', e)
                continue
            keyed.append(obj)
            seen.add(key)
            if key not in self.store:
                events.append(CreateEvent(obj))
            else:
                old = self.store[key]
                if resource_version(old) != resource_version(obj):
                    events.append(UpdateEvent(old, obj))
        for key in self.store.keys():
            if key not in seen:
                events.append(DeleteEvent(self.store[key]))

        self.store.replace(keyed)
        for event in events:
            await self._dispatch(event)

    async def _watch(self):
        log.debug(
            'start watching %s/%s %s',
            self.api_version,
            self.kind,
            self.resource_version,
        )
        events = self.transport.watch(
            self.resource,
            namespace=self.namespace,
            resource_version=self.resource_version,
        )
        # aclosing releases the connection when we are cancelled or leave
        # the loop early.
        async with contextlib.aclosing(events):
            async for event in events:
                try:
                    await self._process_event(event)
                except DecodeError as e:
                    log.error('skipping %s event: %s', event.type, e)
                    continue
                self._processed += 1
                self.backoff.reset()

    async def _process_event(self, event):
        match event.type:
            case 'ADDED' | 'MODIFIED':
                result = self.store.put(event.obj)
                match result.outcome:
                    case Outcome.IGNORED:
                        log.debug('ignoring stale %s %r', event.type, event.obj)
                    case Outcome.ADDED:
                        self._advance(event.resource_version)
                        await self._dispatch(CreateEvent(event.obj))
                    case Outcome.UPDATED:
                        self._advance(event.resource_version)
                        await self._dispatch(UpdateEvent(result.old, event.obj))
            case 'DELETED':
                result = self.store.delete(event.obj)
                if result.ignored:
                    log.debug('ignoring stale or unknown DELETED %r', event.obj)
                else:
                    self._advance(event.resource_version)
                    await self._dispatch(DeleteEvent(event.obj))
            case 'BOOKMARK':
                self._advance(event.resource_version)
            case _:
                log.warning('ignoring unknown event type: %s', event.type)

    async def _sleep(self):
        delay = self.backoff.delay()
        log.debug('%s retrying in %.3fs', self, delay)
        await anyio.sleep(delay)

    async def _listwatch(self):
        while True:
            if self.resource_version is None:
                self._set_state(
                    ReflectorState.RELISTING if self.is_running else ReflectorState.LISTING
                )
                try:
                    await self._list()
                except (TransportError, StaleVersionError, DecodeError) as e:
                    log.warning('%s list failed: %s', self, e)
                    await self._sleep()
                    continue

                # We are running and our store is synced.
                self._running.set()

            self._set_state(ReflectorState.WATCHING)
            processed = self._processed
            try:
                await self._watch()
            except StaleVersionError as e:
                log.info('%s resource version too old, relisting: %s', self, e)
                self.resource_version = None
                if self._processed == processed:
                    # Nothing processed since the last list, back off first.
                    self._set_state(ReflectorState.RESUMING)
                    await self._sleep()
                continue
            except TransportError as e:
                log.warning('%s watch failed: %s', self, e)

            self._set_state(ReflectorState.RESUMING)
            await self._sleep()

    def stop(self):
        self._stopping = True
        if self._task_group:
            self._task_group.cancel_scope.cancel()

    async def __call__(self):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                if self._stopping:
                    # stop() was called before we got here.
                    tg.cancel_scope.cancel()

                try:
                    tg.start_soon(self._listwatch)

                    await self
                    log.info('started %s', self)

                    # Wait until told otherwise.
                    await self._stop.wait()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

                finally:
                    log.debug('stopping %s', self)

        finally:
            self._set_state(ReflectorState.STOPPED)
            log.info('stopped %s', self)
