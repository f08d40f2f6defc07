"""
Layout of one data block of a ``.continuous`` file.

After the 1024 bytes text header, a file is a plain sequence of records
of 2070 bytes:

  * timestamp: int64, sample number of the first sample of the block
  * nb_sample: uint16, always 1024
  * rec_num: uint16, the recording number the block belongs to
  * samples: 1024 x int16, big-endian
  * markers: 10 bytes, 0 1 2 3 4 5 6 7 8 255

Blocks are decoded one at a time into a preallocated :class:`DataBlock` so that
random access does not allocate.
"""

import enum

import numpy as np

from oecontinuous.core import CorruptedError


RECORD_SIZE = 1024

BLOCK_HEADER_SIZE = 12
BLOCK_BODY_SIZE = RECORD_SIZE * 2
BLOCK_TAIL_SIZE = 10
BLOCK_SIZE = BLOCK_HEADER_SIZE + BLOCK_BODY_SIZE + BLOCK_TAIL_SIZE

END_MARKER = bytes([0, 1, 2, 3, 4, 5, 6, 7, 8, 255])

continuous_dtype = np.dtype(
    [
        ("timestamp", "<i8"),
        ("nb_sample", "<u2"),
        ("rec_num", "<u2"),
        ("samples", ">i2", RECORD_SIZE),
        ("markers", "u1", BLOCK_TAIL_SIZE),
    ]
)

block_header_dtype = np.dtype(
    [
        ("timestamp", "<i8"),
        ("nb_sample", "<u2"),
        ("rec_num", "<u2"),
    ]
)

# offsets inside one record
_BODY_START = BLOCK_HEADER_SIZE
_TAIL_START = BLOCK_HEADER_SIZE + BLOCK_BODY_SIZE


class BlockStatus(enum.Enum):
    """Outcome of :func:`read_block_into`."""

    OK = "ok"
    END_OF_STREAM = "end of stream"
    BAD_SAMPLE_COUNT = "bad sample count"
    SHORT_BODY = "short body"
    BAD_TAIL = "bad end marker"


class BlockHeader:
    """The 12 bytes at the start of each record."""

    __slots__ = ("timestamp", "nb_sample", "rec_num")

    def __init__(self, timestamp=0, nb_sample=0, rec_num=0):
        self.timestamp = timestamp
        self.nb_sample = nb_sample
        self.rec_num = rec_num

    def __repr__(self):
        return f"BlockHeader(timestamp={self.timestamp}, nb_sample={self.nb_sample}, rec_num={self.rec_num})"


class DataBlock:
    """
    Reusable buffer for one record.

    ``body`` keeps the bytes as stored (big-endian) and ``data`` the samples
    in native byte order. ``scratch`` receives each read; nothing else is
    touched unless the record decodes completely.
    """

    def __init__(self):
        self.head = BlockHeader()
        self.body = bytearray(BLOCK_BODY_SIZE)
        self.data = np.zeros(RECORD_SIZE, dtype="int16")
        self.tail = bytearray(BLOCK_TAIL_SIZE)
        self.scratch = bytearray(BLOCK_SIZE)

    @property
    def timestamp(self):
        return self.head.timestamp

    @property
    def rec_num(self):
        return self.head.rec_num

    def _commit(self, with_tail=True):
        scratch = self.scratch
        header = np.frombuffer(scratch, dtype=block_header_dtype, count=1)[0]
        self.head.timestamp = int(header["timestamp"])
        self.head.nb_sample = int(header["nb_sample"])
        self.head.rec_num = int(header["rec_num"])
        self.body[:] = scratch[_BODY_START:_TAIL_START]
        if with_tail:
            self.tail[:] = scratch[_TAIL_START:]
        # big-endian to native
        self.data[:] = np.frombuffer(self.body, dtype=">i2")


def _readinto(source, view):
    """Read until ``view`` is full or the source is exhausted, return the count."""
    nread = 0
    size = len(view)
    while nread < size:
        n = source.readinto(view[nread:])
        if not n:
            break
        nread += n
    return nread


def read_block_into(source, block, check=True):
    """
    Decode the record at the current position of ``source`` into ``block``.

    Parameters
    ----------
    source: binary file object
        Positioned at the start of a record.
    block: DataBlock
        Destination buffer, only modified when the result is ``BlockStatus.OK``.
    check: bool, default: True
        Compare the 10 trailing bytes with the end marker. When False they are
        skipped without being read.

    Returns
    -------
    status: BlockStatus
    """
    scratch = memoryview(block.scratch)

    n = _readinto(source, scratch[:_BODY_START])
    if n < BLOCK_HEADER_SIZE:
        return BlockStatus.END_OF_STREAM

    nb_sample = int.from_bytes(scratch[8:10], "little")
    if nb_sample != RECORD_SIZE:
        return BlockStatus.BAD_SAMPLE_COUNT

    n = _readinto(source, scratch[_BODY_START:_TAIL_START])
    if n != BLOCK_BODY_SIZE:
        return BlockStatus.SHORT_BODY

    if check:
        n = _readinto(source, scratch[_TAIL_START:])
        if n != BLOCK_TAIL_SIZE or scratch[_TAIL_START:] != END_MARKER:
            return BlockStatus.BAD_TAIL
    else:
        source.seek(BLOCK_TAIL_SIZE, 1)

    block._commit(with_tail=check)
    return BlockStatus.OK


def iter_block_headers(source, header_size, check=True, nblock=None):
    """
    Scan all records from the first one and yield their headers as
    ``(timestamp, nb_sample, rec_num)``.

    The scan stops quietly when the source ends on a record boundary, or
    after ``nblock`` records when given. Any other decoding failure raises
    CorruptedError.
    """
    block = DataBlock()
    source.seek(header_size)
    block_number = 0
    while nblock is None or block_number < nblock:
        status = read_block_into(source, block, check=check)
        if status is BlockStatus.END_OF_STREAM:
            if source.tell() != header_size + block_number * BLOCK_SIZE:
                raise CorruptedError(f"File ends inside the header of block {block_number + 1}")
            return
        if status is not BlockStatus.OK:
            raise CorruptedError(f"Block {block_number + 1} is not readable: {status.value}")
        block_number += 1
        head = block.head
        yield head.timestamp, head.nb_sample, head.rec_num
