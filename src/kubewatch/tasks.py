import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus


class Task:
    """A task that can be awaited independent of a TaskGroup.

    Awaiting the task itself blocks until it reports that it is running.
    """

    def __init__(self):
        self._running = anyio.Event()
        self._stop = anyio.Event()

    @property
    def is_running(self):
        return self._running.is_set()

    def __await__(self):
        return self._running.wait().__await__()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        raise NotImplementedError()

    def stop(self):
        raise NotImplementedError()
