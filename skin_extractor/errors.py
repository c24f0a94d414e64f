"""
Errors raised by the skin extractor. Both are terminal for a run.
"""


class SkinExtractorError(Exception):
    """Base class for every error this package raises on purpose."""


class PreconditionError(SkinExtractorError, ValueError):
    """
    The input is missing or malformed: no image opened, an empty stack, or a pixel buffer whose
    length does not match width * height.
    """


class ConfigurationError(SkinExtractorError, ValueError):
    """
    The threshold configuration was cancelled or holds a value that is not a finite number.
    """
