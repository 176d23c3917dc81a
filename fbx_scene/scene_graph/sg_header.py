"""``/FBXHeaderExtension`` section."""

import logging

from ..fbx_format.node_loader import NodeLoader, ignore_current_node, get_first


_log = logging.getLogger("fbx_scene.header")


class FbxHeaderExtension:
    """The few header fields the loader keeps. All are optional."""

    __slots__ = ('header_version', 'fbx_version', 'creator')

    def __init__(self, header_version=None, fbx_version=None, creator=None):
        self.header_version = header_version
        self.fbx_version = fbx_version
        self.creator = creator

    def __repr__(self):
        return (
            f"FbxHeaderExtension(header_version={self.header_version}, "
            f"fbx_version={self.fbx_version}, creator={self.creator!r})"
        )


class FbxHeaderExtensionLoader(NodeLoader):

    def __init__(self):
        self.header_version = None
        self.fbx_version = None
        self.creator = None

    def on_child_node(self, reader, name, properties):
        if name == "FBXHeaderVersion":
            self.header_version = get_first(properties, "as_i64")
        elif name == "FBXVersion":
            self.fbx_version = get_first(properties, "as_i64")
        elif name == "Creator":
            self.creator = get_first(properties, "get_string")
        else:
            _log.debug("Ignoring node: `/FBXHeaderExtension/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        return FbxHeaderExtension(self.header_version, self.fbx_version, self.creator)
