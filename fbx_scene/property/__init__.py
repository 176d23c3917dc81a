"""``Properties70`` blocks: generic name -> property record maps."""

import logging

from ..fbx_format.fbx_constants import NODE_PROPERTY
from ..fbx_format.node_loader import NodeLoader, ignore_current_node
from .flags import PropertyFlags
from .property_node import PropertyNode, PropertyNodeLoader
from .property_value import PropertyNodeValue


_log = logging.getLogger("fbx_scene.property")


class GenericProperties:
    """Property records keyed by name, iterated in name order."""

    __slots__ = ('properties',)

    def __init__(self, properties=None):
        self.properties = dict(properties or {})

    def get(self, name, default=None):
        return self.properties.get(name, default)

    def __getitem__(self, name):
        return self.properties[name]

    def __contains__(self, name):
        return name in self.properties

    def __len__(self):
        return len(self.properties)

    def __iter__(self):
        return iter(sorted(self.properties))

    def items(self):
        return [(name, self.properties[name]) for name in sorted(self.properties)]

    def __repr__(self):
        return f"GenericProperties({sorted(self.properties)!r})"


class GenericPropertiesLoader(NodeLoader):
    """Loads a ``Properties70`` node."""

    def __init__(self, node_version=70):
        self.node_version = node_version
        self.properties = {}

    def on_child_node(self, reader, name, properties):
        if name != NODE_PROPERTY:
            _log.error("Unknown property node: `%s`", name)
            ignore_current_node(reader)
            return

        cells = properties.iter()
        first = next(cells, None)
        prop_name = first.get_string() if first is not None else None
        if prop_name is None:
            _log.error("Cannot get property name")
            ignore_current_node(reader)
            return

        loader = PropertyNodeLoader.from_properties(cells)
        if loader is None:
            ignore_current_node(reader)
            return
        # Later duplicates overwrite earlier ones.
        self.properties[prop_name] = loader.load(reader)

    def on_finish(self):
        return GenericProperties(self.properties)


def get_or_default(properties, defaults, key):
    """Look up ``key`` on the instance, falling back to the template.

    Args:
        properties: GenericProperties of the object instance, or None
        defaults: GenericProperties of the matching property template, or None
        key: property name

    Returns:
        PropertyNode, or None when neither map has the key
    """
    if properties is not None:
        node = properties.get(key)
        if node is not None:
            return node
    if defaults is not None:
        return defaults.get(key)
    return None


def get_value_or_default(properties, defaults, key, accessor):
    """``get_or_default`` followed by a PropertyNodeValue accessor (by name)."""
    node = get_or_default(properties, defaults, key)
    if node is None:
        return None
    return getattr(node.value, accessor)()


__all__ = [
    "GenericProperties", "GenericPropertiesLoader",
    "PropertyFlags", "PropertyNode", "PropertyNodeLoader", "PropertyNodeValue",
    "get_or_default", "get_value_or_default",
]
