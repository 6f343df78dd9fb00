import dataclasses
import logging
import typing

from ..invocation import invoke


log = logging.getLogger(__name__)


class Event:
    def __init_subclass__(cls, **kwargs):
        """Make subclasses available in the class namespace.
        Allows to use patterns like the following without having
        to import all the event classes.

        ```
        match type(event):
            case event.CreateEvent:
                pass
            case event.UpdateEvent:
                pass
        ```
        """
        setattr(Event, cls.__name__, cls)

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.obj!r}>'


@dataclasses.dataclass(repr=False)
class CreateEvent(Event):
    obj: object


@dataclasses.dataclass(repr=False)
class UpdateEvent(Event):
    old: object
    new: object

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.old!r} {self.new!r}>'


@dataclasses.dataclass(repr=False)
class DeleteEvent(Event):
    obj: object


@dataclasses.dataclass
class EventHandlerFuncs:
    """Routes events to plain add, update and delete functions.

    Any of the functions may be left out, the matching events are then
    dropped. Functions may be sync or async.
    """

    add_func: typing.Callable = None
    update_func: typing.Callable = None
    delete_func: typing.Callable = None

    async def __call__(self, event):
        match event:
            case CreateEvent(obj=obj):
                if self.add_func is not None:
                    await invoke(self.add_func, obj)
            case UpdateEvent(old=old, new=new):
                if self.update_func is not None:
                    await invoke(self.update_func, old, new)
            case DeleteEvent(obj=obj):
                if self.delete_func is not None:
                    await invoke(self.delete_func, obj)
            case _:
                log.warning('ignoring unknown event: %r', event)
