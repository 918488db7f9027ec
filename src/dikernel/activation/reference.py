from __future__ import annotations

from typing import Any


class InstanceReference:
    """Mutable cell shared by the scope cache and the activation pipeline.

    Initialization strategies may replace the instance after it was
    remembered; readers of the cache entry observe the replacement.
    """

    __slots__ = ("instance",)

    def __init__(self, instance: Any = None) -> None:
        self.instance = instance

    def __repr__(self) -> str:
        return f"InstanceReference({self.instance!r})"


__all__ = ["InstanceReference"]
