"""nodepulse exception classes."""

from __future__ import annotations


class ConfigError(ValueError):
    """A setting, node selector or host entry is unusable.

    Raised before polling starts for the affected node. Per-attempt SSH
    errors never use this type; they are reported as status lines instead.
    """
