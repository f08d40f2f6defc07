"""
Tests of oecontinuous.rawio.continuousfile
"""

import io
import tempfile
import unittest
from pathlib import Path

from oecontinuous.core import CorruptedError
from oecontinuous.rawio.continuousfile import ContinuousFile
from oecontinuous.rawio.fileheader import read_file_header
from oecontinuous.test.rawiotest.tools import (
    make_continuous_bytes,
    make_continuous_io,
    make_header_bytes,
    write_continuous_file,
)


class TestContinuousFile(unittest.TestCase):
    def test_counts(self):
        data, _ = make_continuous_bytes(3)
        self.assertEqual(len(data), 7234)
        contfile = ContinuousFile(io.BytesIO(data))
        self.assertEqual(contfile.header_size, 1024)
        self.assertEqual(contfile.nblock, 3)
        self.assertEqual(contfile.nsample, 3072)
        self.assertEqual(len(contfile), 3072)
        self.assertEqual(contfile.bitvolts, 0.195)
        self.assertEqual(contfile.sampling_rate, 30000.0)
        self.assertEqual(contfile.block_position(1), 1024)
        self.assertEqual(contfile.block_position(3), 1024 + 2 * 2070)

    def test_empty_file(self):
        contfile = ContinuousFile(io.BytesIO(make_header_bytes()))
        self.assertEqual(contfile.nblock, 0)
        self.assertEqual(contfile.nsample, 0)

    def test_external_header(self):
        data, _ = make_continuous_bytes(2)
        source = io.BytesIO(data)
        header = read_file_header(source)
        contfile = ContinuousFile(source, header=header)
        self.assertIs(contfile.header, header)
        self.assertEqual(contfile.nblock, 2)

    def test_size_mismatch(self):
        data, _ = make_continuous_bytes(2)
        for extra in (1, 11, 2069):
            with self.assertRaises(CorruptedError):
                ContinuousFile(io.BytesIO(data + b"\x00" * extra))
        with self.assertRaises(CorruptedError):
            ContinuousFile(io.BytesIO(data[:-1]))

    def test_size_mismatch_without_check(self):
        data, _ = make_continuous_bytes(2)
        with self.assertLogs("oecontinuous.rawio.continuousfile", level="WARNING"):
            contfile = ContinuousFile(io.BytesIO(data + b"\x00" * 100), check=False)
        self.assertEqual(contfile.nblock, 2)
        self.assertEqual(contfile.nsample, 2048)

    def test_file_smaller_than_header(self):
        raw = make_header_bytes(header_bytes=4096)
        with self.assertRaises(CorruptedError):
            ContinuousFile(io.BytesIO(raw), check=False)

    def test_from_filename(self):
        with tempfile.TemporaryDirectory() as dirname:
            filename = Path(dirname) / "100_CH1.continuous"
            write_continuous_file(filename, 4)
            with ContinuousFile.from_filename(filename) as contfile:
                self.assertEqual(contfile.nsample, 4096)
                self.assertEqual(contfile.filename, str(filename))
            self.assertTrue(contfile.io.closed)

    def test_close_does_not_close_foreign_source(self):
        source, _ = make_continuous_io(1)
        with ContinuousFile(source):
            pass
        self.assertFalse(source.closed)

    def test_block_headers(self):
        source, _ = make_continuous_io(4, first_timestamp=101, rec_nums=[0, 0, 1, 1])
        source.seek(5)
        contfile = ContinuousFile(source)
        position = source.tell()
        headers = contfile.block_headers()
        self.assertEqual(source.tell(), position)
        self.assertEqual(list(headers["timestamp"]), [101, 1125, 2149, 3173])
        self.assertEqual(list(headers["nb_sample"]), [1024] * 4)
        self.assertEqual(list(headers["rec_num"]), [0, 0, 1, 1])

    def test_recording_segments(self):
        source, _ = make_continuous_io(5, rec_nums=[0, 0, 1, 1, 3])
        contfile = ContinuousFile(source)
        self.assertEqual(
            contfile.recording_segments(),
            [(0, 1, 2048), (1, 2049, 4096), (3, 4097, 5120)],
        )

    def test_has_gaps(self):
        source, _ = make_continuous_io(3)
        self.assertFalse(ContinuousFile(source).has_gaps())

        # new recording restarts timestamps, not a gap
        source, _ = make_continuous_io(3, timestamps=[1, 1025, 1], rec_nums=[0, 0, 1])
        self.assertFalse(ContinuousFile(source).has_gaps())

        source, _ = make_continuous_io(3, timestamps=[1, 1025, 5000])
        self.assertTrue(ContinuousFile(source).has_gaps())

    def test_block_headers_corrupted(self):
        data, _ = make_continuous_bytes(2)
        data = bytearray(data)
        data[-1] = 0
        contfile = ContinuousFile(io.BytesIO(bytes(data)))
        with self.assertRaises(CorruptedError):
            contfile.block_headers()
        self.assertEqual(len(contfile.block_headers(check=False)), 2)

    def test_trailing_bytes_ignored_by_scan(self):
        data, _ = make_continuous_bytes(2, rec_nums=[0, 1])
        for extra in (5, 100):
            with self.assertLogs("oecontinuous.rawio.continuousfile", level="WARNING"):
                contfile = ContinuousFile(io.BytesIO(data + b"\x00" * extra), check=False)
            self.assertEqual(len(contfile.block_headers()), 2)
            self.assertEqual(contfile.recording_segments(), [(0, 1, 1024), (1, 1025, 2048)])
            self.assertFalse(contfile.has_gaps())

    def test_segments_without_marker_check(self):
        data, _ = make_continuous_bytes(3, rec_nums=[0, 0, 2])
        data = bytearray(data)
        data[-1] = 0
        contfile = ContinuousFile(io.BytesIO(bytes(data)))
        with self.assertRaises(CorruptedError):
            contfile.recording_segments()
        with self.assertRaises(CorruptedError):
            contfile.has_gaps()
        self.assertEqual(contfile.recording_segments(check=False), [(0, 1, 2048), (2, 2049, 3072)])
        self.assertFalse(contfile.has_gaps(check=False))


if __name__ == "__main__":
    unittest.main()
