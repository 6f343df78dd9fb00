import functools
import logging
import signal

import anyio
import uvloop
from anyio import open_signal_receiver
from anyio import TASK_STATUS_IGNORED
from anyio.abc import CancelScope, TaskStatus

from . import exceptions
from .backoff import Backoff
from .cache import Reflector, Store
from .config import load_client_config
from .printer import EventPrinter
from .resources import get_resource
from .tasks import Task
from .transport import Transport


log = logging.getLogger(__name__)


async def signal_handler(scope: CancelScope):
    with open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            if signum == signal.SIGINT:
                log.info('Ctrl+C pressed!')
            else:
                log.info('Terminated!')

            scope.cancel()
            return


class Watcher(Task):
    """Watch one resource kind and hand every change to a handler.

    Owns the store and the reflector that keeps it in sync, and runs until
    stopped or cancelled.
    """

    def __init__(self, config, transport, handler=None):
        super().__init__()
        self.config = config
        self.transport = transport
        self.resource = get_resource(config.resource)
        if handler is None:
            handler = EventPrinter(config.resource).handler()
        self.handler = handler
        self.store = Store()
        self.reflector = Reflector(
            transport,
            self.store,
            self.resource,
            namespace=config.namespace,
            handler=handler,
            backoff=Backoff(
                base_delay=config.backoff_base,
                max_delay=config.backoff_max,
            ),
        )
        self._task_group = None

    def __repr__(self):
        namespace = self.config.namespace or '*'
        return f'<Watcher {self.config.resource} namespace: {namespace}>'

    def stop(self):
        log.debug('stop %r', self)
        self.reflector.stop()
        if self._task_group:
            self._task_group.cancel_scope.cancel()

    async def __call__(
        self,
        setup_signal_handler=False,
        task_status: TaskStatus[None] = TASK_STATUS_IGNORED,
    ):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                if setup_signal_handler:
                    tg.start_soon(signal_handler, tg.cancel_scope)

                try:
                    tg.start_soon(self.reflector)

                    # Wait for the initial list to be processed.
                    await self.reflector
                    log.info('started %s', self)
                    self._running.set()
                    task_status.started()

                    # Wait until told otherwise.
                    await self._stop.wait()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

                finally:
                    log.debug('stopping %s', self)
                    self.reflector.stop()

        except* exceptions.Error as eg:
            error_messages = []
            for error in exceptions.iterate_errors(eg):
                error_messages.append(str(error))
            raise exceptions.FatalError(' '.join(error_messages)) from eg

        finally:
            log.info('stopped %s', self)


async def _main(config, setup_signal_handler=True):
    client_config = load_client_config(config.kubeconfig)
    transport = Transport.from_client_config(
        client_config,
        list_timeout=config.list_timeout,
        watch_timeout=config.watch_timeout,
    )
    async with transport:
        watcher = Watcher(config, transport)
        await watcher(setup_signal_handler=setup_signal_handler)


def run(config):
    """Watch as configured until interrupted."""
    anyio.run(
        functools.partial(_main, config),
        backend_options={'loop_factory': uvloop.new_event_loop},
    )
