"""
Common tools that are useful for oecontinuous.rawio tests: building
``.continuous`` files and xml metadata in memory or in a folder.
"""

import io
import logging
import struct

import numpy as np


logger = logging.getLogger("oecontinuous.test")

NB_SAMPLE = 1024
MARKER = bytes([0, 1, 2, 3, 4, 5, 6, 7, 8, 255])


def make_header_bytes(sampling_rate=30000.0, bitvolts=0.195, channel="CH1", header_bytes=1024, size=1024):
    lines = [
        "header.format = 'Open Ephys Data Format';",
        "header.version = 0.4;",
        f"header.header_bytes = {header_bytes};",
        "header.description = 'each record contains one 64-bit timestamp, one 16-bit sample count (N), "
        "1 uint16 recordingNumber, N 16-bit samples, and one 10-byte record marker (0 1 2 3 4 5 6 7 8 255)';",
        "header.date_created = '15-Jun-2016 162715';",
        f"header.channel = '{channel}';",
        "header.channelType = 'Continuous';",
        f"header.sampleRate = {sampling_rate:g};",
        "header.blockLength = 1024;",
        "header.bufferSize = 1024;",
        f"header.bitVolts = {bitvolts};",
    ]
    text = "\n".join(lines).encode("ascii")
    return text.ljust(size, b" ")


def make_block_bytes(timestamp, samples, rec_num=0, nb_sample=NB_SAMPLE, marker=MARKER):
    head = struct.pack("<qHH", timestamp, nb_sample, rec_num)
    body = np.asarray(samples, dtype=">i2").tobytes()
    return head + body + marker


def make_samples(nblock, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(-(2**15), 2**15 - 1, size=nblock * NB_SAMPLE, dtype=np.int16)


def make_continuous_bytes(nblock, first_timestamp=1, rec_nums=None, timestamps=None, seed=0, header=None):
    """
    Build the bytes of a whole file.

    Returns
    -------
    data: bytes
    samples: np.ndarray
        All samples in native int16.
    """
    if header is None:
        header = make_header_bytes()
    samples = make_samples(nblock, seed=seed)
    if rec_nums is None:
        rec_nums = [0] * nblock
    if timestamps is None:
        timestamps = [first_timestamp + i * NB_SAMPLE for i in range(nblock)]
    chunks = [header]
    for i in range(nblock):
        chunks.append(make_block_bytes(timestamps[i], samples[i * NB_SAMPLE : (i + 1) * NB_SAMPLE], rec_nums[i]))
    return b"".join(chunks), samples


def make_continuous_io(nblock, **kwargs):
    data, samples = make_continuous_bytes(nblock, **kwargs)
    return io.BytesIO(data), samples


def write_continuous_file(filename, nblock, **kwargs):
    data, samples = make_continuous_bytes(nblock, **kwargs)
    with open(filename, mode="wb") as f:
        f.write(data)
    return samples


class CountingBytesIO(io.BytesIO):
    """BytesIO recording the number of seek and readinto calls."""

    def __init__(self, *args, **kwargs):
        io.BytesIO.__init__(self, *args, **kwargs)
        self.reset_counts()

    def reset_counts(self):
        self.nseek = 0
        self.nread = 0

    def seek(self, *args):
        self.nseek += 1
        return io.BytesIO.seek(self, *args)

    def readinto(self, buffer):
        self.nread += 1
        return io.BytesIO.readinto(self, buffer)


SETTINGS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<SETTINGS>
  <INFO>
    <VERSION>0.4.1</VERSION>
    <PLUGIN_API_VERSION>2</PLUGIN_API_VERSION>
    <DATE>15 Jun 2016 16:27:15</DATE>
    <OS>Linux</OS>
    <MACHINE>rig-1</MACHINE>
  </INFO>
  <SIGNALCHAIN>
    <PROCESSOR name="Sources/Rhythm FPGA" insertionPoint="0" NodeId="100">
      <CHANNEL_INFO>
        <CHANNEL name="CH1" number="0" gain="0.195"/>
        <CHANNEL name="CH2" number="1" gain="0.195"/>
        <CHANNEL name="AUX1" number="2" gain="0.0000374"/>
      </CHANNEL_INFO>
      <CHANNEL name="0" number="0">
        <SELECTIONSTATE param="1" record="1" audio="0"/>
      </CHANNEL>
      <CHANNEL name="1" number="1">
        <SELECTIONSTATE param="1" record="1" audio="0"/>
      </CHANNEL>
      <CHANNEL name="2" number="2">
        <SELECTIONSTATE param="1" record="0" audio="0"/>
      </CHANNEL>
      <EDITOR isCollapsed="0" displayName="Rhythm FPGA" LowCut="1.00" HighCut="7500.0"
              ADCsOn="0" NoiseSlicer="0" TTLFastSettle="1" DAC_TTL="0" DAC_HPF="1"
              DSPOffset="1" DSPCutoffFreq="0.146"/>
    </PROCESSOR>
    <PROCESSOR name="Filters/Bandpass Filter" insertionPoint="1" NodeId="101"/>
  </SIGNALCHAIN>
</SETTINGS>
"""

EXPERIMENT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<EXPERIMENT version="0.400000000000002" number="1" separatefiles="0">
  <RECORDING number="0" samplerate="30000.000000" bitVolts="0.195000">
    <PROCESSOR id="100">
      <CHANNEL name="CH1" bitVolts="0.195000" filename="100_CH1.continuous" position="1024"/>
      <CHANNEL name="CH2" bitVolts="0.195000" filename="100_CH2.continuous" position="1024"/>
    </PROCESSOR>
  </RECORDING>
</EXPERIMENT>
"""
