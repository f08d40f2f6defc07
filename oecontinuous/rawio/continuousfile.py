"""
An opened ``.continuous`` file: its text header and the number of data
blocks that follow.
"""

import threading
from pathlib import Path

import numpy as np

from oecontinuous.core import CorruptedError
from .baserawio import BaseRawIO
from .blockcodec import BLOCK_SIZE, RECORD_SIZE, block_header_dtype, iter_block_headers
from .fileheader import read_file_header


class ContinuousFile(BaseRawIO):
    """
    Handle on one ``.continuous`` file.

    Counts are computed once when the file is opened and never change
    afterwards; the file is assumed to be closed for writing.

    Parameters
    ----------
    source: binary file object
        Seekable source opened in binary mode (``open(..., "rb")``, ``io.BytesIO``).
    header: OriginalHeader | None, default: None
        Header of the file, read from ``source`` when None. Any object with
        ``bitvolts``, ``sampling_rate`` and ``header_size_bytes`` works.
    check: bool, default: True
        Raise CorruptedError when the data part is not a whole number of blocks.
        When False the trailing partial block is ignored with a warning.

    Examples
    --------
    >>> with ContinuousFile.from_filename("100_CH1.continuous") as contfile:
    ...     samples = SampleArray(contfile)
    ...     samples.get(1)
    """

    name = "ContinuousFile"
    description = "Open Ephys legacy continuous file"
    extensions = ["continuous"]

    def __init__(self, source, header=None, check=True):
        BaseRawIO.__init__(self)

        if header is None:
            header = read_file_header(source)

        self._io = source
        self._header = header
        self._owns_io = False
        self.filename = getattr(source, "name", None)
        # seek + read must be done as one unit when views share the handle
        self.io_lock = threading.RLock()

        header_size = header.header_size_bytes
        data_size = self._file_size() - header_size
        if data_size < 0:
            raise CorruptedError(f"File is smaller than its {header_size} bytes header")
        nblock, remainder = divmod(data_size, BLOCK_SIZE)
        if remainder != 0:
            if check:
                raise CorruptedError(
                    f"Data size {data_size} is not a multiple of the block size {BLOCK_SIZE}, the file is corrupted"
                )
            self.logger.warning(f"Ignoring {remainder} trailing bytes that do not make a complete block")

        self._nblock = nblock
        self._nsample = nblock * RECORD_SIZE

    @classmethod
    def from_filename(cls, filename, check=True):
        """Open ``filename`` and return a ContinuousFile that closes it on ``close()``."""
        f = open(str(Path(filename)), mode="rb")
        try:
            contfile = cls(f, check=check)
        except Exception:
            f.close()
            raise
        contfile._owns_io = True
        return contfile

    def _file_size(self):
        position = self._io.tell()
        self._io.seek(0, 2)
        size = self._io.tell()
        self._io.seek(position)
        return size

    @property
    def io(self):
        return self._io

    @property
    def header(self):
        return self._header

    @property
    def header_size(self):
        return self._header.header_size_bytes

    @property
    def nblock(self):
        return self._nblock

    @property
    def nsample(self):
        return self._nsample

    @property
    def bitvolts(self):
        return self._header.bitvolts

    @property
    def sampling_rate(self):
        return self._header.sampling_rate

    def block_position(self, blockno):
        """Byte offset of block ``blockno`` (1-based)."""
        return self.header_size + (blockno - 1) * BLOCK_SIZE

    def block_headers(self, check=True):
        """
        Headers of all blocks as a structured array with fields
        ``timestamp``, ``nb_sample`` and ``rec_num``.

        This scans the whole file, stopping after the last complete block.
        With ``check=False`` end markers are not verified.
        """
        with self.io_lock:
            position = self._io.tell()
            try:
                headers = list(iter_block_headers(self._io, self.header_size, check=check, nblock=self._nblock))
            finally:
                self._io.seek(position)
        if len(headers) != self._nblock:
            raise CorruptedError(f"Found {len(headers)} readable blocks, expected {self._nblock}")
        return np.array(headers, dtype=block_header_dtype)

    def recording_segments(self, check=True):
        """
        Runs of consecutive blocks sharing a recording number.

        ``check`` is passed to :meth:`block_headers`.

        Returns
        -------
        segments: list of tuple
            ``(rec_num, first_sample_number, last_sample_number)`` with 1-based,
            inclusive sample numbers.
        """
        rec_nums = self.block_headers(check=check)["rec_num"]
        segments = []
        if rec_nums.size == 0:
            return segments
        (changes,) = np.nonzero(np.diff(rec_nums) != 0)
        starts = np.concatenate(([0], changes + 1))
        stops = np.concatenate((changes + 1, [rec_nums.size]))
        for start, stop in zip(starts, stops):
            segments.append((int(rec_nums[start]), int(start) * RECORD_SIZE + 1, int(stop) * RECORD_SIZE))
        return segments

    def has_gaps(self, check=True):
        """True when, inside one recording, block timestamps do not follow each other by 1024."""
        headers = self.block_headers(check=check)
        diff = np.diff(headers["timestamp"])
        same_recording = np.diff(headers["rec_num"]) == 0
        return bool(np.any(diff[same_recording] != RECORD_SIZE))

    def close(self):
        if self._owns_io:
            self._io.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __len__(self):
        return self._nsample

    def __repr__(self):
        return (
            f"ContinuousFile(filename={self.filename!r}, nblock={self._nblock}, "
            f"nsample={self._nsample}, sampling_rate={self.sampling_rate})"
        )
