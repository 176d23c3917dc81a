"""Fatal errors raised while loading an FBX scene.

Only structural problems are raised. Anything local to a single object
(missing required field, unknown subclass, version mismatch) is logged and
the loader carries on with the rest of the scene.
"""


class FbxLoadError(ValueError):
    """Base class for errors that make it impossible to continue loading."""


class StreamStructureError(FbxLoadError):
    """The node event stream is malformed (e.g. a node never closes)."""


class MissingSectionError(FbxLoadError):
    """A required top-level section is missing or appears out of order."""

    def __init__(self, section, detail=None):
        self.section = section
        message = f"Required node `{section}` not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnsupportedDataError(FbxLoadError):
    """The data is well formed but exceeds what the loader can represent."""
