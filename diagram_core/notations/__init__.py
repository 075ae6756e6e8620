"""Built-in diagram notations."""

from .activity import ActivityPlugin
from .class_diagram import ClassPlugin
from .component import ComponentPlugin
from .erd import ERDPlugin
from .package import PackagePlugin
from .sequence import SequencePlugin
from .state import StatePlugin
from .usecase import UseCasePlugin

BUILTIN_PLUGINS = (
    SequencePlugin,
    ClassPlugin,
    UseCasePlugin,
    StatePlugin,
    ActivityPlugin,
    ERDPlugin,
    ComponentPlugin,
    PackagePlugin,
)


def builtin_plugins():
    """Fresh instances of every built-in notation."""
    return [plugin_cls() for plugin_cls in BUILTIN_PLUGINS]


__all__ = [
    "ActivityPlugin",
    "BUILTIN_PLUGINS",
    "ClassPlugin",
    "ComponentPlugin",
    "ERDPlugin",
    "PackagePlugin",
    "SequencePlugin",
    "StatePlugin",
    "UseCasePlugin",
    "builtin_plugins",
]
