from __future__ import annotations


class MonitorError(Exception):
    """Base class for every error raised by the monitor."""


class AlreadyStartedError(MonitorError):
    """start() was called on a running monitor."""


class NotStartedError(MonitorError):
    """The operation needs a running monitor."""


class NilSinkError(MonitorError):
    """add_task() was given no sink."""


class ConfigError(MonitorError):
    """Invalid monitor or notifier configuration."""


class InvalidTargetError(MonitorError, ValueError):
    """The URL does not point at a product on the monitored site."""


class InvalidProxyError(MonitorError, ValueError):
    """A proxy string could not be parsed into an http proxy."""


class NoProxiesAvailableError(MonitorError):
    """The proxy pool is empty."""


class TransportError(MonitorError):
    """The HTTP request failed before a response was received."""


class SessionRefreshError(MonitorError):
    """The build id could not be fetched or extracted from the landing page."""


class MalformedPayloadError(MonitorError):
    """A product document is not in the expected shape."""
