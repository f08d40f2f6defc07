"""
Locate the ``.continuous`` files of a recording folder.

When the acquisition is stopped and restarted the GUI writes new files named
``*_2``, ``*_3``, ... next to the first ones. Each of these recording
sessions is a segment.
"""

import re
from pathlib import Path

import numpy as np


def split_continuous_name(filename):
    """
    Split a continuous file stem into processor id, channel name, channel type and channel number.

    Formats are ['processor_id', 'ch_name'] or  ['processor_id', 'name', 'ch_name']
    optionally followed by a segment number.
    """
    s = Path(filename).stem.split("_")
    if len(s) >= 3 and not s[2].isdigit():
        processor_id, ch_name = s[0], s[2]
    else:
        processor_id, ch_name = s[0], s[1]
    chan_type = re.split(r"(\d+)", ch_name)[0]
    chan_id = int(ch_name.replace(chan_type, ""))
    return processor_id, ch_name, chan_type, chan_id


def explore_folder(dirname):
    """
    This explores a folder and dispatch continuous files by segment
    (aka recording session).

    The number of segments is checked with these rules
    "100_CH0.continuous" ---> seg_index 0
    "100_CH0_2.continuous" ---> seg_index 1
    "100_CH0_N.continuous" ---> seg_index N-1

    Newer formats follow similar rules but have an addition
    "100_RhythmData-A_CH0.continuous" ----> seg_index 0

    Returns
    -------
    info: dict
        ``nb_segment`` and ``continuous``, a dict seg_index -> list of Path,
        channels ordered by number with "CH" channels first.
    """
    filenames = [filename for filename in Path(dirname).glob("**/*.continuous") if filename.is_file()]
    filenames.sort()

    info = {}
    info["nb_segment"] = 0
    info["continuous"] = {}
    for filename in filenames:
        s = filename.stem.split("_")
        # the last value is an int when a new segment was generated
        try:
            seg_index = int(s[-1]) - 1
        except ValueError:
            seg_index = 0
        if seg_index not in info["continuous"]:
            info["continuous"][seg_index] = []
        info["continuous"][seg_index].append(filename)
        if (seg_index + 1) > info["nb_segment"]:
            info["nb_segment"] = seg_index + 1

    # order continuous file by channel number within segment
    # order "CH" before "ADC" and "AUX"
    for seg_index, continuous_filenames in info["continuous"].items():
        chan_ids_by_type = {}
        filenames_by_type = {}
        for continuous_filename in continuous_filenames:
            _, _, chan_type, chan_id = split_continuous_name(continuous_filename)
            chan_ids_by_type.setdefault(chan_type, []).append(chan_id)
            filenames_by_type.setdefault(chan_type, []).append(continuous_filename)
        chan_types = list(chan_ids_by_type.keys())

        if "CH" in chan_types:
            # force CH at beginning
            chan_types.remove("CH")
            chan_types = ["CH"] + chan_types

        ordered_continuous_filenames = []
        for chan_type in chan_types:
            local_order = np.argsort(chan_ids_by_type[chan_type], kind="stable")
            ordered_continuous_filenames.extend(filenames_by_type[chan_type][i] for i in local_order)
        info["continuous"][seg_index] = ordered_continuous_filenames

    return info
