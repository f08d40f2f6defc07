"""
Text header found at the start of every Open Ephys ``.continuous``,
``.spikes`` and ``.events`` file.

The header is 1024 bytes of ASCII that looks like matlab code::

    header.format = 'Open Ephys Data Format';
    header.version = 0.4;
    header.header_bytes = 1024;
    header.sampleRate = 30000;
    header.bitVolts = 0.195;

and is padded with spaces up to its full size.
"""

import os

from oecontinuous.core import UnreadableError


HEADER_SIZE = 1024

_float_keys = ["bitVolts", "sampleRate"]
_int_keys = ["blockLength", "bufferSize", "header_bytes", "num_channels"]

# header key -> OriginalHeader attribute
_attribute_names = {
    "format": "format",
    "version": "version",
    "header_bytes": "header_bytes",
    "description": "description",
    "date_created": "date_created",
    "channel": "channel",
    "channelType": "channel_type",
    "sampleRate": "sampling_rate",
    "blockLength": "block_length",
    "bufferSize": "buffer_size",
    "bitVolts": "bitvolts",
}


class OriginalHeader:
    """
    Parsed text header.

    Parameters
    ----------
    info: dict
        Output of :func:`parse_header_bytes`, keyed by the names used in the file.

    Attributes
    ----------
    bitvolts: float
        Microvolts per ADC count.
    sampling_rate: float
        Sampling rate in Hz.
    header_size_bytes: int
        Size of the text header, where the first data block starts.
    """

    def __init__(self, info):
        for key in ("bitVolts", "sampleRate"):
            if key not in info:
                raise UnreadableError(f"File header has no '{key}' field")
        self.info = dict(info)
        for key, attr in _attribute_names.items():
            setattr(self, attr, info.get(key))

    @property
    def header_size_bytes(self):
        if self.header_bytes is None:
            return HEADER_SIZE
        return self.header_bytes

    def __repr__(self):
        return (
            f"OriginalHeader(channel={self.channel!r}, sampling_rate={self.sampling_rate}, "
            f"bitvolts={self.bitvolts}, header_size_bytes={self.header_size_bytes})"
        )


def parse_header_bytes(header_string):
    """Turn the raw header bytes into a dict, converting known numeric keys."""
    # Remove newlines and redundant "header." prefixes
    # The result should be a series of "key = value" strings, separated
    # by semicolons.
    header_string = header_string.replace(b"\n", b"").replace(b"header.", b"")

    header = {}
    for pair in header_string.split(b";"):
        if b"=" not in pair:
            continue
        key, value = pair.split(b"=", 1)
        key = key.strip().decode("ascii")
        value = value.strip()

        try:
            if key in _float_keys:
                header[key] = float(value)
            elif key in _int_keys:
                header[key] = int(value)
            else:
                # Keep as string
                header[key] = value.decode("ascii").strip("'")
        except ValueError as e:
            raise UnreadableError(f"Header field '{key}' has an invalid value {value!r}") from e

    return header


def read_file_header(source):
    """
    Read header information from the first 1024 bytes of an Open Ephys file.

    Parameters
    ----------
    source: str | Path | binary file object
        When a file object is given the header is read from offset 0 and the
        object is left positioned just after it.

    Returns
    -------
    header: OriginalHeader
    """
    if isinstance(source, (str, os.PathLike)):
        with open(source, mode="rb") as f:
            header_string = f.read(HEADER_SIZE)
        header = OriginalHeader(parse_header_bytes(header_string))
    else:
        source.seek(0)
        header_string = source.read(HEADER_SIZE)
        header = OriginalHeader(parse_header_bytes(header_string))
        source.seek(header.header_size_bytes)

    return header
