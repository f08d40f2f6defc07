"""
File-backed arrays over a ``.continuous`` file.

All arrays share the same machinery: a single decoded block is kept in memory
and reloaded only when the requested sample falls outside of it. Sequential
reads therefore cost one decode per 1024 samples and a random read never
costs more than one seek and one decode.

Each array kind is defined by two rules:
  * an extraction rule picking the raw value(s) out of the resident block
  * a conversion rule turning raw values into the requested dtype

Floating point dtypes mean physical units (uV for samples, seconds for
timestamps), integer dtypes mean raw values (ADC counts, sample numbers).

Two indexing conventions are available:
  * ``get(sample_number)`` with 1-based sample numbers, which are the unit
    of the timestamps stored in the file
  * ``array[index]`` with usual 0-based python indexing, slicing and
    fancy indexing, so ``array[k] == array.get(k + 1)``
"""

import enum
import operator
from collections.abc import Sequence

import numpy as np
import quantities as pq

from oecontinuous.core import CorruptedError, TruncatedError, ReadOnlyError
from .baserawio import BaseRawIO
from .blockcodec import RECORD_SIZE, BlockStatus, DataBlock, read_block_into
from .continuousfile import ContinuousFile


def sampno_to_block(sampno):
    """1-based block number holding 1-based sample ``sampno``."""
    return (sampno - 1) // RECORD_SIZE + 1


def sampno_to_offset(sampno):
    """1-based position of sample ``sampno`` inside its block."""
    return (sampno - 1) % RECORD_SIZE + 1


class LazyBlockCache:
    """
    One slot cache of decoded blocks.

    Parameters
    ----------
    contfile: ContinuousFile
    check: bool
        Verify the end marker of each block.
    logger: logging.Logger | None
    """

    def __init__(self, contfile, check=True, logger=None):
        self.contfile = contfile
        self.check = check
        self.logger = logger
        self.block = DataBlock()
        # 0 means no block loaded yet
        self.blockno = 0

    def load(self, sampno):
        """Make sure the resident block holds ``sampno`` and return it."""
        blockno = sampno_to_block(sampno)
        if blockno != self.blockno:
            self._read_block(blockno)
        return self.block

    def reload(self):
        """Decode the resident block again from the file."""
        if self.blockno != 0:
            self._read_block(self.blockno)

    def _read_block(self, blockno):
        contfile = self.contfile
        io = contfile.io
        blockpos = contfile.block_position(blockno)
        with contfile.io_lock:
            if io.tell() != blockpos:
                io.seek(blockpos)
            status = read_block_into(io, self.block, self.check)

        if status is BlockStatus.END_OF_STREAM:
            raise TruncatedError(f"File ends before block {blockno} of {contfile.nblock}")
        if status is not BlockStatus.OK:
            raise CorruptedError(f"Block {blockno} at byte {blockpos} is not readable: {status.value}")

        self.blockno = blockno
        if self.logger is not None:
            self.logger.debug(f"Loaded block {blockno}")


class ArrayKind(enum.Enum):
    SAMPLE = "sample"
    TIMESTAMP = "timestamp"
    RECORDING = "recording"
    JOINT = "joint"


# Extraction rules: offsets are 0-based positions in the block, an int or an array


def _extract_sample(block, offsets):
    return block.data[offsets]


def _extract_timestamp(block, offsets):
    return block.timestamp + np.asarray(offsets, dtype="int64")


def _extract_recording(block, offsets):
    return np.full(np.shape(offsets), block.rec_num, dtype="int64")


def _extract_joint(block, offsets):
    return (
        _extract_sample(block, offsets),
        _extract_timestamp(block, offsets),
        _extract_recording(block, offsets),
    )


# Conversion rules


def _as_dtype(values, dtype):
    values = np.asarray(values)
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer) and values.size and not np.can_cast(values.dtype, dtype):
        info = np.iinfo(dtype)
        low, high = values.min(), values.max()
        if low < info.min or high > info.max:
            raise OverflowError(f"Values in [{low}, {high}] do not fit in {dtype}")
    values = values.astype(dtype)
    if values.ndim == 0:
        return values[()]
    return values


def _convert_sample(values, dtype, contfile):
    if np.issubdtype(dtype, np.floating):
        return _as_dtype(np.asarray(values) * contfile.bitvolts, dtype)
    return _as_dtype(values, dtype)


def _convert_timestamp(values, dtype, contfile):
    if np.issubdtype(dtype, np.floating):
        # first sample is at time zero
        return _as_dtype((np.asarray(values) - 1) / contfile.sampling_rate, dtype)
    return _as_dtype(values, dtype)


def _convert_recording(values, dtype, contfile):
    return _as_dtype(values, dtype)


def _convert_joint(values, dtypes, contfile):
    return tuple(
        convert(value, dtype, contfile)
        for convert, value, dtype in zip(
            (_convert_sample, _convert_timestamp, _convert_recording), values, dtypes
        )
    )


_joint_fields = ("sample", "timestamp", "recording")

# kind: (extraction rule, conversion rule, default dtype)
_kind_rules = {
    ArrayKind.SAMPLE: (_extract_sample, _convert_sample, "float64"),
    ArrayKind.TIMESTAMP: (_extract_timestamp, _convert_timestamp, "float64"),
    ArrayKind.RECORDING: (_extract_recording, _convert_recording, "int64"),
    ArrayKind.JOINT: (_extract_joint, _convert_joint, ("float64", "float64", "int64")),
}


class ContinuousArray(BaseRawIO, Sequence):
    """
    Read-only array giving file-backed access to one ``.continuous`` file.

    Parameters
    ----------
    contfile: ContinuousFile | binary file object
        The file to read. A file object is wrapped in a ContinuousFile with its
        default size check.
    kind: ArrayKind | str, default: "sample"
        What the array returns: "sample", "timestamp", "recording" or "joint".
    dtype: dtype | tuple of 3 dtypes | None, default: None
        Output dtype. For "joint" a dtype for each of (sample, timestamp, recording).
        None selects the default of the kind.
    check: bool, default: True
        Verify the end marker of every block read. Set to False to read files
        whose markers are damaged.

    Notes
    -----
    An array is not thread safe, but several arrays can be built on the same
    ContinuousFile and used from different threads.
    """

    name = "ContinuousArray"
    description = "File-backed array over an Open Ephys continuous file"
    extensions = ["continuous"]

    def __init__(self, contfile, kind=ArrayKind.SAMPLE, dtype=None, check=True):
        BaseRawIO.__init__(self)
        if not isinstance(contfile, ContinuousFile):
            contfile = ContinuousFile(contfile)
        self.contfile = contfile

        self.kind = ArrayKind(kind)
        self._extract, self._convert, default_dtype = _kind_rules[self.kind]
        if dtype is None:
            dtype = default_dtype
        if self.kind is ArrayKind.JOINT:
            if len(dtype) != 3:
                raise ValueError("A joint array needs one dtype for each of sample, timestamp and recording")
            self.dtype = tuple(np.dtype(dt) for dt in dtype)
        else:
            self.dtype = np.dtype(dtype)

        self._cache = LazyBlockCache(contfile, check=check, logger=self.logger)

    @property
    def check(self):
        return self._cache.check

    @property
    def blockno(self):
        """Number of the resident block, 0 when none was loaded yet."""
        return self._cache.blockno

    @property
    def shape(self):
        return (len(self),)

    @property
    def units(self):
        if self.kind is ArrayKind.JOINT:
            raise ValueError("A joint array has no single unit")
        if np.issubdtype(self.dtype, np.floating):
            if self.kind is ArrayKind.SAMPLE:
                return pq.uV
            if self.kind is ArrayKind.TIMESTAMP:
                return pq.s
        return pq.dimensionless

    def __len__(self):
        return self.contfile.nsample

    def get(self, sampno):
        """
        Value at 1-based sample number ``sampno``.

        Raises IndexError when ``sampno`` is not in ``[1, len(self)]`` and
        CorruptedError when the block holding it cannot be decoded.
        Integer dtypes too narrow for the value raise OverflowError.
        """
        sampno = operator.index(sampno)
        if not 1 <= sampno <= len(self):
            raise IndexError(f"Sample {sampno} out of range [1, {len(self)}]")
        block = self._cache.load(sampno)
        raw = self._extract(block, sampno_to_offset(sampno) - 1)
        return self._convert(raw, self.dtype, self.contfile)

    def reload(self):
        """Force the resident block to be read and decoded again."""
        self._cache.reload()

    def get_chunk(self, i_start=None, i_stop=None):
        """
        Values for 0-based indexes ``i_start`` to ``i_stop`` (excluded) as a numpy array.
        """
        if i_start is None:
            i_start = 0
        if i_stop is None:
            i_stop = len(self)
        if not 0 <= i_start <= i_stop <= len(self):
            raise IndexError(f"Chunk [{i_start}, {i_stop}) out of range [0, {len(self)}]")
        return self._take(np.arange(i_start, i_stop, dtype="int64"))

    def as_quantity(self, i_start=None, i_stop=None):
        """Same as ``get_chunk()`` with the array units attached."""
        units = self.units
        return pq.Quantity(self.get_chunk(i_start, i_stop), units=units)

    def _take(self, indexes):
        # runs of consecutive indexes in the same block are read together
        blocknos = indexes // RECORD_SIZE
        (breaks,) = np.nonzero(np.diff(blocknos))
        pieces = []
        for run in np.split(indexes, breaks + 1):
            if run.size == 0:
                continue
            block = self._cache.load(int(run[0]) + 1)
            raw = self._extract(block, run % RECORD_SIZE)
            pieces.append(self._convert(raw, self.dtype, self.contfile))
        return self._assemble(pieces, indexes.size)

    def _assemble(self, pieces, size):
        if self.kind is ArrayKind.JOINT:
            out = np.zeros(size, dtype=list(zip(_joint_fields, self.dtype)))
            for i, field in enumerate(_joint_fields):
                if pieces:
                    out[field] = np.concatenate([piece[i] for piece in pieces])
            return out
        if not pieces:
            return np.zeros(0, dtype=self.dtype)
        return np.concatenate(pieces)

    def _normalize_index(self, index):
        length = len(self)
        if index < 0:
            index += length
        if not 0 <= index < length:
            raise IndexError(f"Index {index} out of range for length {length}")
        return index

    def __getitem__(self, key):
        if isinstance(key, slice):
            return self._take(np.arange(*key.indices(len(self)), dtype="int64"))
        if isinstance(key, (list, tuple, np.ndarray)):
            indexes = np.asarray(key, dtype="int64").ravel()
            indexes = np.where(indexes < 0, indexes + len(self), indexes)
            if np.any((indexes < 0) | (indexes >= len(self))):
                raise IndexError(f"Index out of range for length {len(self)}")
            return self._take(indexes)
        index = self._normalize_index(operator.index(key))
        return self.get(index + 1)

    def __setitem__(self, key, value):
        raise ReadOnlyError(f"{self.__class__.__name__} is read-only")

    def __delitem__(self, key):
        raise ReadOnlyError(f"{self.__class__.__name__} is read-only")

    def __iter__(self):
        for sampno in range(1, len(self) + 1):
            yield self.get(sampno)

    def __array__(self, dtype=None, copy=None):
        values = self.get_chunk()
        if dtype is not None:
            values = values.astype(dtype)
        return values

    def __repr__(self):
        return f"{self.__class__.__name__}(kind={self.kind.value}, dtype={self.dtype}, length={len(self)})"


class SampleArray(ContinuousArray):
    """
    File-backed sample values. With a floating point ``dtype`` (the default)
    samples are converted to microvolts with the file ``bitVolts``, otherwise
    they stay raw ADC counts.
    """

    name = "SampleArray"

    def __init__(self, contfile, dtype="float64", check=True):
        ContinuousArray.__init__(self, contfile, kind=ArrayKind.SAMPLE, dtype=dtype, check=check)


class TimeArray(ContinuousArray):
    """
    File-backed timestamps. With a floating point ``dtype`` (the default)
    timestamps are converted to seconds, the first sample being at time
    zero, otherwise they are sample numbers.
    """

    name = "TimeArray"

    def __init__(self, contfile, dtype="float64", check=True):
        ContinuousArray.__init__(self, contfile, kind=ArrayKind.TIMESTAMP, dtype=dtype, check=check)


class RecNoArray(ContinuousArray):
    """File-backed recording numbers."""

    name = "RecNoArray"

    def __init__(self, contfile, dtype="int64", check=True):
        ContinuousArray.__init__(self, contfile, kind=ArrayKind.RECORDING, dtype=dtype, check=check)


class JointArray(ContinuousArray):
    """
    File-backed ``(sample, timestamp, recording)`` tuples, each converted as
    in SampleArray, TimeArray and RecNoArray. Slices return a structured
    array with fields ``sample``, ``timestamp`` and ``recording``.
    """

    name = "JointArray"

    def __init__(self, contfile, dtype=("float64", "float64", "int64"), check=True):
        ContinuousArray.__init__(self, contfile, kind=ArrayKind.JOINT, dtype=dtype, check=check)
