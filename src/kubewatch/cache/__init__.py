from .events import (
    CreateEvent,
    UpdateEvent,
    DeleteEvent,
    EventHandlerFuncs,
)
from .store import Outcome, PutResult, Store, meta_namespace_key_func
from .reflector import Reflector, ReflectorState

__all__ = [
    'CreateEvent',
    'DeleteEvent',
    'EventHandlerFuncs',
    'Outcome',
    'PutResult',
    'Reflector',
    'ReflectorState',
    'Store',
    'UpdateEvent',
    'meta_namespace_key_func',
]
