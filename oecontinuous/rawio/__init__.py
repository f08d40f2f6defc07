"""
:mod:`oecontinuous.rawio` provides file-backed access to Open Ephys
``.continuous`` files and the metadata of their recording folder.

Functions:

.. autofunction:: oecontinuous.rawio.read_file_header
.. autofunction:: oecontinuous.rawio.explore_folder
.. autofunction:: oecontinuous.rawio.dir_settings


Classes:

* :attr:`ContinuousFile`
* :attr:`ContinuousArray`
* :attr:`SampleArray`
* :attr:`TimeArray`
* :attr:`RecNoArray`
* :attr:`JointArray`
* :attr:`OESettings`
* :attr:`OEExperMeta`

"""

from .blockcodec import (
    RECORD_SIZE,
    BLOCK_SIZE,
    END_MARKER,
    BlockStatus,
    BlockHeader,
    DataBlock,
    read_block_into,
    iter_block_headers,
)
from .fileheader import HEADER_SIZE, OriginalHeader, read_file_header
from .continuousfile import ContinuousFile
from .continuousarray import (
    ArrayKind,
    LazyBlockCache,
    ContinuousArray,
    SampleArray,
    TimeArray,
    RecNoArray,
    JointArray,
)
from .metadata import (
    OEChannel,
    OERhythmProcessor,
    OESignalTree,
    OEInfo,
    OESettings,
    OERecordingMeta,
    OEExperMeta,
    dir_settings,
)
from .folder import explore_folder
