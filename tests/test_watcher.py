import json

import anyio
import pytest

from kubewatch.cache import CreateEvent
from kubewatch.config import WatchConfig
from kubewatch.exceptions import Error, FatalError, iterate_errors
from kubewatch.transport import WatchEvent
from kubewatch.watcher import Watcher

from fakes import FakeTransport, Recorder, make_pod

pytestmark = pytest.mark.anyio


def make_config(**kwargs):
    kwargs.setdefault('resource', 'pods')
    kwargs.setdefault('backoff_base', 0.001)
    kwargs.setdefault('backoff_max', 0.004)
    return WatchConfig(**kwargs)


async def test_watcher_prints_events(capsys):
    transport = FakeTransport(
        lists=[([make_pod('x', '5')], '5')],
        watches=[[WatchEvent('MODIFIED', make_pod('x', '6'), '6')]],
    )
    watcher = Watcher(make_config(), transport)

    async with anyio.create_task_group() as tg:
        await tg.start(watcher)
        with anyio.fail_after(5):
            await transport.idle.wait()
        watcher.stop()

    lines = capsys.readouterr().out.splitlines()
    assert json.loads(lines[0])['metadata']['name'] == 'x'
    assert lines[1] == 'pods updated: old: ns/x new: ns/x'
    assert len(lines) == 2


async def test_watcher_passes_namespace():
    transport = FakeTransport(lists=[([], '1')])
    watcher = Watcher(make_config(namespace='default'), transport, handler=Recorder())

    async with anyio.create_task_group() as tg:
        await tg.start(watcher)
        assert watcher.is_running
        watcher.stop()

    assert transport.calls[0] == ('list', 'default')


async def test_watcher_keeps_store_in_sync():
    transport = FakeTransport(lists=[([make_pod('a', '1'), make_pod('b', '1')], '1')])
    handler = Recorder()
    watcher = Watcher(make_config(), transport, handler=handler)

    async with anyio.create_task_group() as tg:
        await tg.start(watcher)
        with anyio.fail_after(5):
            await transport.idle.wait()
        watcher.stop()

    assert sorted(watcher.store.keys()) == ['ns/a', 'ns/b']
    assert CreateEvent(make_pod('a', '1')) in handler.events


async def test_handler_errors_are_fatal():
    transport = FakeTransport(lists=[([make_pod('x', '5')], '5')])

    async def handler(event):
        raise Error('handler exploded')

    watcher = Watcher(make_config(), transport, handler=handler)

    with pytest.raises(Exception) as excinfo:
        with anyio.fail_after(5):
            await watcher()

    errors = list(iterate_errors(excinfo.value))
    assert any(isinstance(error, FatalError) for error in errors)
    assert 'handler exploded' in str(errors[0])
