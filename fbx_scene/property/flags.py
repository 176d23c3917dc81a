"""Flags of ``Properties70/P`` entries."""

import logging

from ..fbx_format.fbx_constants import (
    FLAG_ANIMATABLE, FLAG_ANIMATED, FLAG_USER_DEFINED, FLAG_HIDDEN,
    LOCKED_MEMBER_SHIFT, LOCKED_MEMBER_MASK,
)


_log = logging.getLogger("fbx_scene.property")


class PropertyFlags:
    """Bit set parsed from a property's flag string (e.g. ``"UA+HL3"``).

    Setters return a new PropertyFlags; instances are never mutated.
    """

    __slots__ = ('bits',)

    def __init__(self, bits=0):
        self.bits = bits

    @classmethod
    def none(cls):
        return cls(0)

    def _with(self, mask, value):
        return PropertyFlags(self.bits | mask if value else self.bits & ~mask)

    def set_animatable(self, value):
        return self._with(FLAG_ANIMATABLE, value)

    def set_animated(self, value):
        # Animated implies animatable; clearing it leaves animatable alone.
        if value:
            return PropertyFlags(self.bits | FLAG_ANIMATABLE | FLAG_ANIMATED)
        return PropertyFlags(self.bits & ~FLAG_ANIMATED)

    def set_user_defined(self, value):
        return self._with(FLAG_USER_DEFINED, value)

    def set_hidden(self, value):
        return self._with(FLAG_HIDDEN, value)

    def set_locked_member(self, members):
        if not 0 <= members <= 9:
            raise ValueError(f"Locked member count must be 0-9, got {members}")
        return PropertyFlags((self.bits & ~LOCKED_MEMBER_MASK) | (members << LOCKED_MEMBER_SHIFT))

    @property
    def animatable(self):
        return bool(self.bits & FLAG_ANIMATABLE)

    @property
    def animated(self):
        return bool(self.bits & FLAG_ANIMATED)

    @property
    def user_defined(self):
        return bool(self.bits & FLAG_USER_DEFINED)

    @property
    def hidden(self):
        return bool(self.bits & FLAG_HIDDEN)

    @property
    def locked_member(self):
        return (self.bits & LOCKED_MEMBER_MASK) >> LOCKED_MEMBER_SHIFT

    @classmethod
    def from_string(cls, flags_str):
        """Parse a flag string. Unknown characters are logged and skipped."""
        flags = cls.none()
        i = 0
        n = len(flags_str)
        while i < n:
            c = flags_str[i]
            i += 1
            if c == 'U':
                flags = flags.set_user_defined(True)
            elif c == 'A':
                flags = flags.set_animatable(True)
                if i < n and flags_str[i] == '+':
                    flags = flags.set_animated(True)
                    i += 1
            elif c == 'H':
                flags = flags.set_hidden(True)
            elif c == 'L':
                # Member counts over 9 have never been observed.
                if i < n and flags_str[i] in "0123456789":
                    flags = flags.set_locked_member(int(flags_str[i]))
                    i += 1
            else:
                _log.warning("Unknown character as property flags: %r", c)
        return flags

    def __eq__(self, other):
        if not isinstance(other, PropertyFlags):
            return NotImplemented
        return self.bits == other.bits

    def __hash__(self):
        return hash(self.bits)

    def __repr__(self):
        return f"PropertyFlags({self.bits:#x})"
