__version__ = '0.2.0'

# All types a user would care about are made available in the top level package.
# A user should never have to import anything from sub modules.

from .exceptions import *  # noqa: F403 public API
from .resources import *  # noqa: F403 public API
from .cache import *  # noqa: F403 public API
from .transport import *  # noqa: F403 public API
from .backoff import Backoff
from .config import *  # noqa: F403 public API
from .printer import EventPrinter
from .watcher import Watcher, run
