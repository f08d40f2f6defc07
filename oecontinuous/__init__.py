"""
oecontinuous is a package for reading the legacy Open Ephys ``.continuous``
format in Python, giving random access to samples, timestamps and recording
numbers without loading the whole file in memory.
"""

import logging

logging_handler = logging.StreamHandler()

from oecontinuous.version import version as __version__

from oecontinuous.core import *
from oecontinuous.rawio import *
