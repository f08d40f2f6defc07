"""
Tests of oecontinuous.rawio.folder
"""

import tempfile
import unittest
from pathlib import Path

from oecontinuous.rawio.continuousarray import SampleArray
from oecontinuous.rawio.continuousfile import ContinuousFile
from oecontinuous.rawio.folder import explore_folder, split_continuous_name
from oecontinuous.test.rawiotest.tools import write_continuous_file


class TestSplitName(unittest.TestCase):
    def test_formats(self):
        self.assertEqual(split_continuous_name("100_CH12.continuous"), ("100", "CH12", "CH", 12))
        self.assertEqual(split_continuous_name("100_CH12_2.continuous"), ("100", "CH12", "CH", 12))
        self.assertEqual(split_continuous_name("100_RhythmData-A_AUX3.continuous"), ("100", "AUX3", "AUX", 3))
        self.assertEqual(split_continuous_name("100_RhythmData-A_ADC1_3.continuous"), ("100", "ADC1", "ADC", 1))


class TestExploreFolder(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dirname = Path(self._tmp.name)
        names = [
            "100_AUX1.continuous",
            "100_CH10.continuous",
            "100_CH2.continuous",
            "100_CH1.continuous",
            "100_CH1_2.continuous",
            "100_CH2_2.continuous",
        ]
        self.samples = {}
        for seed, name in enumerate(names):
            self.samples[name] = write_continuous_file(self.dirname / name, 1, seed=seed)
        (self.dirname / "settings.xml").write_text("<SETTINGS/>")

    def tearDown(self):
        self._tmp.cleanup()

    def test_segments(self):
        info = explore_folder(self.dirname)
        self.assertEqual(info["nb_segment"], 2)
        names = [f.name for f in info["continuous"][0]]
        self.assertEqual(names, ["100_CH1.continuous", "100_CH2.continuous", "100_CH10.continuous", "100_AUX1.continuous"])
        names = [f.name for f in info["continuous"][1]]
        self.assertEqual(names, ["100_CH1_2.continuous", "100_CH2_2.continuous"])

    def test_open_found_files(self):
        info = explore_folder(self.dirname)
        for filename in info["continuous"][1]:
            with ContinuousFile.from_filename(filename) as contfile:
                raw = SampleArray(contfile, dtype="int16")
                self.assertEqual(raw.get(1), self.samples[filename.name][0])

    def test_empty_folder(self):
        with tempfile.TemporaryDirectory() as dirname:
            info = explore_folder(dirname)
        self.assertEqual(info["nb_segment"], 0)
        self.assertEqual(info["continuous"], {})


if __name__ == "__main__":
    unittest.main()
