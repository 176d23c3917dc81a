"""``/Definitions`` section: per-class property templates.

Layout::

    Definitions
        Version: 100
        Count: <n>
        ObjectType: "Model"
            Count: <n>
            PropertyTemplate: "FbxNode"
                Properties70
                    P: ...

Each ``PropertyTemplate`` becomes the default GenericProperties for
(object type, template name). Object loaders fall back to these defaults
for every property an instance leaves out.
"""

import logging

from ..fbx_format.fbx_constants import NODE_PROPERTIES70
from ..fbx_format.node_loader import (
    NodeLoader, ignore_current_node, get_first, check_node_version,
)
from ..property import GenericProperties, GenericPropertiesLoader


_log = logging.getLogger("fbx_scene.definitions")


class PropertyTemplates:
    """(object type, template name) -> GenericProperties."""

    __slots__ = ('templates',)

    def __init__(self):
        self.templates = {}

    def add(self, object_type, template_name, properties):
        self.templates[(object_type, template_name)] = properties

    def get(self, object_type, template_name):
        """Template defaults, or None if the file defines no such template."""
        return self.templates.get((object_type, template_name))

    def __contains__(self, key):
        return key in self.templates

    def __len__(self):
        return len(self.templates)

    def __repr__(self):
        return f"PropertyTemplates({sorted(self.templates)!r})"


class Definitions:
    """Decoded ``/Definitions`` section."""

    __slots__ = ('version', 'templates')

    def __init__(self, templates, version=None):
        self.templates = templates
        self.version = version


class DefinitionsLoader(NodeLoader):

    def __init__(self, profile):
        self.profile = profile
        self.version = None
        self.templates = PropertyTemplates()

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            self.version = check_node_version(
                properties, self.profile.versions.definitions, "/Definitions")
            ignore_current_node(reader)
        elif name == "Count":
            ignore_current_node(reader)
        elif name == "ObjectType":
            object_type = get_first(properties, "get_string")
            if object_type is None:
                _log.error("Invalid property at `/Definitions/ObjectType`: type error")
                ignore_current_node(reader)
            else:
                PropertyTemplatesLoader(self.templates, object_type).load(reader)
        else:
            _log.error("Unknown node: `/Definitions/%s`", name)
            ignore_current_node(reader)

    def on_finish(self):
        _log.debug("Definitions: %d property templates", len(self.templates))
        return Definitions(self.templates, self.version)


class PropertyTemplatesLoader(NodeLoader):
    """Loads one ``/Definitions/ObjectType`` node into a shared PropertyTemplates."""

    def __init__(self, templates, object_type):
        self.templates = templates
        self.object_type = object_type

    def on_child_node(self, reader, name, properties):
        if name == "Count":
            ignore_current_node(reader)
        elif name == "PropertyTemplate":
            template_name = get_first(properties, "get_string")
            if template_name is None:
                _log.error(
                    "Invalid property at `/Definitions/ObjectType/PropertyTemplate`: type error")
                ignore_current_node(reader)
                return
            template = PropertyTemplateLoader(self.object_type).load(reader)
            self.templates.add(self.object_type, template_name, template)
            _log.debug("Template: (%s, %s)", self.object_type, template_name)
        else:
            _log.error("Unknown node: `/Definitions/ObjectType/%s`", name)
            ignore_current_node(reader)

    def on_finish(self):
        return None


class PropertyTemplateLoader(NodeLoader):
    """Loads one ``PropertyTemplate`` node; an empty template is allowed."""

    def __init__(self, object_type):
        self.object_type = object_type
        self.properties = None

    def on_child_node(self, reader, name, properties):
        if name == NODE_PROPERTIES70:
            self.properties = GenericPropertiesLoader(70).load(reader)
        else:
            _log.error(
                "Unknown node: `/Definitions/ObjectType(%s)/PropertyTemplate/%s`",
                self.object_type, name)
            ignore_current_node(reader)

    def on_finish(self):
        return self.properties if self.properties is not None else GenericProperties()
