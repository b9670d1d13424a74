from __future__ import annotations


class RoutegenError(Exception):
    """Base class for errors raised by routegen itself."""


class ConfigError(RoutegenError):
    pass


class CapabilityError(RoutegenError):
    """A `module[:attr]` reference could not be turned into a callable."""

    def __init__(self, ref: str, reason: str) -> None:
        super().__init__(f"{ref}: {reason}")
        self.ref = ref
        self.reason = reason


class ExtractionError(RoutegenError):
    """The signature extractor could not read or understand a route module."""

    def __init__(self, file: str, reason: str) -> None:
        super().__init__(f"{file}: {reason}")
        self.file = file
        self.reason = reason
