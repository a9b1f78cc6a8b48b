"""Exceptions raised by the push dispatch services."""


class InvalidPushRequest(ValueError):
    """A dispatch request is malformed (missing title/body or bad target)."""


class ProviderNotConfigured(RuntimeError):
    """APNs credentials are missing or the APNs client could not be built."""


class ProviderTransportError(RuntimeError):
    """The batched provider send failed as a whole; no per-token results exist."""
