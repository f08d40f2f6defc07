"""
:mod:`oecontinuous.core` provides the exceptions shared by all readers.

Classes:

.. autoclass:: OEReadWriteError
.. autoclass:: CorruptedError
.. autoclass:: TruncatedError
.. autoclass:: UnreadableError
.. autoclass:: ReadOnlyError

"""

from oecontinuous.core.errors import (
    OEReadWriteError,
    CorruptedError,
    TruncatedError,
    UnreadableError,
    ReadOnlyError,
)
