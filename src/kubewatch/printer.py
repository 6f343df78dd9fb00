import json
import sys

from .cache import EventHandlerFuncs
from .invocation import nonblocking
from .resources import identity, payload


class EventPrinter:
    """Print watch events to a text stream.

    Added and deleted objects are printed as one JSON document per line,
    updates as a one line summary of the old and new identity.
    """

    def __init__(self, resource, out=None):
        self.resource = str(resource)
        self.out = out

    def _write(self, line):
        out = self.out if self.out is not None else sys.stdout
        print(line, file=out, flush=True)

    @nonblocking
    def print_event(self, obj):
        self._write(json.dumps(payload(obj), default=str))

    @nonblocking
    def update_event(self, old, new):
        old_namespace, old_name = identity(old)
        new_namespace, new_name = identity(new)
        self._write(
            f'{self.resource} updated: '
            f'old: {old_namespace or ""}/{old_name} '
            f'new: {new_namespace or ""}/{new_name}'
        )

    def handler(self):
        """Return an event handler that routes events to this printer."""
        return EventHandlerFuncs(
            add_func=self.print_event,
            update_func=self.update_event,
            delete_func=self.print_event,
        )
