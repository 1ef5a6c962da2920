"""
Error taxonomy for the waterbody intersection pipeline.
Per-feature errors are caught and logged by the batch loops; UnknownLayer propagates.
"""
from __future__ import annotations


class WaterbodyError(Exception):
    """Base class for all pipeline errors."""


class UnsupportedGeometryKind(WaterbodyError):
    """A native geometry kind the adapter cannot convert."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unhandled geometry type: {kind}")


class MalformedGeometry(WaterbodyError):
    """Missing, non-numeric or NaN coordinates."""


class UnknownLayer(WaterbodyError, KeyError):
    """A layer name that was never successfully loaded."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Requested layer doesnt exist: "{name}"')

    def __str__(self) -> str:
        return self.args[0]


class NetworkOrParseFailure(WaterbodyError):
    """A layer or feature fetch that failed at the request boundary."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load {source}: {reason}")
