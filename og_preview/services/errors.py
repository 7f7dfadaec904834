"""
Error taxonomy for the preview renderer.

Only `InvalidVariant` and `EncodeError` escape `render_preview`; fetch and
decode problems are recovered inside the pipeline by rendering without the
photo layer. `StorageError` belongs to the persistence adapter.
"""


class PreviewError(RuntimeError):
    """Base class for every error raised by the preview service."""


class InvalidVariant(PreviewError, ValueError):
    """Raised when a layout tag is not one of the known variants."""


class FetchError(PreviewError):
    """Raised when the source image cannot be retrieved (network, DNS, timeout, cancel)."""


class DecodeError(PreviewError):
    """Raised when fetched bytes cannot be decoded as an image."""


class UnsupportedFormat(DecodeError):
    """Raised when fetched bytes are not in an image encoding we can read."""


class EncodeError(PreviewError):
    """Raised when the final composite cannot be encoded to PNG."""


class StorageError(PreviewError):
    """Raised when a rendered preview cannot be persisted or uploaded."""
