"""
Exceptions raised while reading Open Ephys files.

Bounds violations are not listed here: indexing a view out of range raises
the builtin :class:`IndexError`.
"""


class OEReadWriteError(IOError):
    """Base class for errors related to the content of a file."""


class CorruptedError(OEReadWriteError):
    """
    A data block or the file layout does not match the format: wrong sample
    count, short body, bad end marker or a file size that is not a whole
    number of blocks.
    """


class TruncatedError(CorruptedError):
    """The file ends before a block that the header accounting says exists."""


class UnreadableError(OEReadWriteError):
    """A text header or an xml metadata file is missing required information."""


class ReadOnlyError(TypeError):
    """Raised on attempts to modify a file-backed array."""
