"""
Metadata of an Open Ephys recording folder.

Two xml files describe a recording made in the legacy format:
  * ``settings.xml`` with the signal chain of the GUI, the processors and
    their channels (gain, recorded or not)
  * ``Continuous_Data.openephys`` with the recordings of an experiment and the
    ``.continuous`` file of each recorded channel

Only the "Sources/Rhythm FPGA" processor is handled. Processors of the
experiment file are linked to the ones of the settings by their node id.
"""

from datetime import datetime
from pathlib import Path
from xml.etree import ElementTree

from packaging.version import Version

from oecontinuous.core import UnreadableError


DATE_FORMAT = "%d %b %Y %H:%M:%S"
RHYTHM_PROC = "Sources/Rhythm FPGA"


def showfields(obj, depth=0):
    """Multi-line description of ``obj`` listing its fields, nested objects indented."""
    pad = "  " * depth
    lines = []
    for field in obj._fields:
        value = getattr(obj, field)
        if hasattr(value, "_fields"):
            lines.append(f"{pad}{field}:")
            lines.append(showfields(value, depth + 1))
        elif isinstance(value, list) and value and hasattr(value[0], "_fields"):
            lines.append(f"{pad}{field}: [{', '.join(_short_repr(v) for v in value)}]")
        else:
            lines.append(f"{pad}{field}: {value!r}")
    return "\n".join(lines)


def _short_repr(obj):
    if isinstance(obj, OEChannel):
        return f"channel: {obj.name}"
    return obj.__class__.__name__


class _ShowFields:
    _fields = ()

    def __repr__(self):
        return f"{self.__class__.__name__}\n{showfields(self, 1)}"


def required_find_element(element, name):
    found = element.find(name)
    if found is None:
        raise UnreadableError(f"Could not find {name} element")
    return found


def required_attribute(element, name):
    value = element.get(name)
    if value is None:
        raise UnreadableError(f"Element {element.tag} has no {name} attribute")
    return value


def _bool_attribute(element, name):
    return int(required_attribute(element, name)) == 1


class OEChannel(_ShowFields):
    """One recorded channel. ``position`` and ``filename`` come from the experiment file."""

    _fields = ("name", "number", "bitvolts", "position", "filename")

    def __init__(self, name, number, bitvolts, position=0, filename=""):
        self.name = name
        self.number = number
        self.bitvolts = bitvolts
        self.position = position
        self.filename = filename


def channel_list(proc_e):
    """
    Recorded channels of a processor element, with their gain.

    CHANNEL elements and CHANNEL_INFO children are assumed to be in the same order.
    """
    chan_es = proc_e.findall("CHANNEL")
    if not chan_es:
        raise UnreadableError("Could not find CHANNEL elements")

    recorded = []
    for chan_e in chan_es:
        sel_e = required_find_element(chan_e, "SELECTIONSTATE")
        if int(required_attribute(sel_e, "record")) == 1:
            recorded.append(int(required_attribute(chan_e, "number")))
        else:
            recorded.append(None)

    ch_info_e = required_find_element(proc_e, "CHANNEL_INFO")
    channels = []
    for chno, info_e in zip(recorded, list(ch_info_e)):
        if chno is None:
            continue
        info_chno = int(required_attribute(info_e, "number"))
        if info_chno != chno:
            raise UnreadableError(f"Channels not in same order: {info_chno} != {chno}")
        name = required_attribute(info_e, "name")
        bitvolts = float(required_attribute(info_e, "gain"))
        channels.append(OEChannel(name, info_chno, bitvolts))
    return channels


class OEProcessor(_ShowFields):
    """Base class of the processors of a signal chain."""

    _fields = ("id",)

    def __init__(self, id):
        self.id = id

    def add_continuous_meta(self, proc_e):
        raise NotImplementedError


class OERhythmProcessor(OEProcessor):
    """The acquisition board processor and its editor settings."""

    _fields = (
        "id",
        "lowcut",
        "highcut",
        "adcs_on",
        "noiseslicer",
        "ttl_fastsettle",
        "dac_ttl",
        "dac_hpf",
        "dsp_offset",
        "dsp_cutoff",
        "channels",
    )

    def __init__(self, proc_e):
        OEProcessor.__init__(self, int(required_attribute(proc_e, "NodeId")))
        self.channels = channel_list(proc_e)

        editor_e = required_find_element(proc_e, "EDITOR")
        self.lowcut = float(required_attribute(editor_e, "LowCut"))
        self.highcut = float(required_attribute(editor_e, "HighCut"))
        self.adcs_on = _bool_attribute(editor_e, "ADCsOn")
        self.noiseslicer = _bool_attribute(editor_e, "NoiseSlicer")
        self.ttl_fastsettle = _bool_attribute(editor_e, "TTLFastSettle")
        self.dac_ttl = _bool_attribute(editor_e, "DAC_TTL")
        self.dac_hpf = _bool_attribute(editor_e, "DAC_HPF")
        self.dsp_offset = _bool_attribute(editor_e, "DSPOffset")
        self.dsp_cutoff = float(required_attribute(editor_e, "DSPCutoffFreq"))

    def add_continuous_meta(self, proc_e):
        """Fill file names and positions from a PROCESSOR element of the experiment file."""
        chan_es = proc_e.findall("CHANNEL")
        if not chan_es:
            raise UnreadableError("Could not find CHANNEL elements")
        if len(chan_es) > len(self.channels):
            raise UnreadableError(f"Processor {self.id} has {len(chan_es)} files but {len(self.channels)} channels")
        for channel, chan_e in zip(self.channels, chan_es):
            name = required_attribute(chan_e, "name")
            if name != channel.name:
                raise UnreadableError(f"Channel names don't match: {name} != {channel.name}")
            channel.filename = required_attribute(chan_e, "filename")
            channel.position = int(required_attribute(chan_e, "position"))


class SignalNode:
    __slots__ = ("content", "parent", "children")

    def __init__(self, content, parent=None, children=None):
        self.content = content
        self.parent = parent
        self.children = [] if children is None else children

    def __repr__(self):
        return repr(self.content)


class OESignalTree:
    """
    Tree of processors, stored as a list of nodes referring to each other by
    index. The root is node 0.
    """

    def __init__(self, nodes=None):
        self.nodes = [] if nodes is None else nodes
        self._by_id = {node.content.id: i for i, node in enumerate(self.nodes)}

    @classmethod
    def from_element(cls, chain_e, recording_names=(RHYTHM_PROC,)):
        # stop at the first recording processor
        for proc_e in chain_e.findall("PROCESSOR"):
            procname = required_attribute(proc_e, "name")
            if procname in recording_names and procname == RHYTHM_PROC:
                return cls([SignalNode(OERhythmProcessor(proc_e))])
        raise UnreadableError(f"No recording processor among {list(recording_names)} in signal chain")

    def add_child(self, parent, processor):
        if not 0 <= parent < len(self.nodes):
            raise IndexError(f"No node {parent} in tree")
        self.nodes.append(SignalNode(processor, parent))
        child = len(self.nodes) - 1
        self.nodes[parent].children.append(child)
        self._by_id[processor.id] = child
        return child

    def children(self, index):
        return self.nodes[index].children

    def parent(self, index):
        return self.nodes[index].parent

    def find_by(self, pred, start=0):
        """Depth first search of the first node whose content satisfies ``pred``, None if missing."""
        if not self.nodes:
            return None
        stack = [start]
        while stack:
            index = stack.pop()
            if pred(self.nodes[index].content):
                return index
            stack.extend(reversed(self.children(index)))
        return None

    def find_id(self, proc_id):
        """Index of the node of processor ``proc_id``, None if missing."""
        return self._by_id.get(proc_id)

    def processor(self, proc_id):
        index = self.find_id(proc_id)
        if index is None:
            raise UnreadableError(f"Could not find matching processor {proc_id}")
        return self.nodes[index].content

    def match_element(self, proc_e):
        """Processor matching the ``id`` attribute of a PROCESSOR element."""
        return self.processor(int(required_attribute(proc_e, "id")))

    def __len__(self):
        return len(self.nodes)


class OEInfo(_ShowFields):
    _fields = ("version", "plugin_api_version", "datetime", "os", "machine")

    def __init__(self, info_e):
        self.version = Version(required_find_element(info_e, "VERSION").text.strip())
        if self.version > Version("0.4.0"):
            self.plugin_api_version = Version(required_find_element(info_e, "PLUGIN_API_VERSION").text.strip())
        else:
            self.plugin_api_version = Version("0")
        date_text = required_find_element(info_e, "DATE").text.strip()
        self.datetime = datetime.strptime(date_text, DATE_FORMAT)
        self.os = required_find_element(info_e, "OS").text
        self.machine = required_find_element(info_e, "MACHINE").text


class OESettings(_ShowFields):
    """
    Content of ``settings.xml``.

    Only processors that lead to recording nodes are kept in ``recording_chain``.
    """

    _fields = ("info", "recording_chain")

    def __init__(self, root):
        if root.tag != "SETTINGS":
            raise UnreadableError(f"Not a settings xml, root element is {root.tag}")
        self.info = OEInfo(required_find_element(root, "INFO"))
        self.recording_chain = OESignalTree.from_element(required_find_element(root, "SIGNALCHAIN"))

    @classmethod
    def from_filename(cls, filename):
        return cls(ElementTree.parse(filename).getroot())

    def add_continuous_meta(self, exper_e):
        """Attach file names and positions of the experiment file to the channels."""
        rec_es = exper_e.findall("RECORDING")
        if len(rec_es) != 1:
            raise UnreadableError(f"Expected one RECORDING element, found {len(rec_es)}")
        proc_es = rec_es[0].findall("PROCESSOR")
        if not proc_es:
            raise UnreadableError("Could not find PROCESSOR elements")
        for proc_e in proc_es:
            self.recording_chain.match_element(proc_e).add_continuous_meta(proc_e)


class OERecordingMeta(_ShowFields):
    _fields = ("number", "samplerate", "recording_processors")

    def __init__(self, settings, rec_e):
        self.number = int(required_attribute(rec_e, "number"))
        self.samplerate = float(required_attribute(rec_e, "samplerate"))
        proc_es = rec_e.findall("PROCESSOR")
        if not proc_es:
            raise UnreadableError("Could not find PROCESSOR elements")
        self.recording_processors = [settings.recording_chain.match_element(proc_e) for proc_e in proc_es]


def parse_experiment_version(text):
    """
    Versions are written as floats with rounding noise, e.g. '0.400000000000002',
    keep the meaningful part: Version('0.4').
    """
    text = text.strip()
    try:
        value = float(text)
    except ValueError:
        return Version(text)
    return Version(f"{value:.6g}")


class OEExperMeta(_ShowFields):
    """Content of ``Continuous_Data.openephys``, linked to the settings."""

    _fields = ("version", "experiment_number", "separate_files", "recordings")

    def __init__(self, settings, exper_e):
        self.settings = settings
        self.version = parse_experiment_version(required_attribute(exper_e, "version"))
        self.experiment_number = int(required_attribute(exper_e, "number"))
        self.separate_files = _bool_attribute(exper_e, "separatefiles")
        rec_es = exper_e.findall("RECORDING")
        if not rec_es:
            raise UnreadableError("Could not find RECORDING elements")
        self.recordings = [OERecordingMeta(settings, rec_e) for rec_e in rec_es]


def dir_settings(dirname=".", settingsfile="settings.xml", continuousmeta="Continuous_Data.openephys"):
    """
    Parse the metadata files of a recording folder.

    Returns
    -------
    exper_meta: OEExperMeta
    settings: OESettings
    """
    settings_path = Path(dirname) / settingsfile
    if not settings_path.is_file():
        raise FileNotFoundError(f"{settings_path} does not exist")
    continuous_path = Path(dirname) / continuousmeta
    if not continuous_path.is_file():
        raise FileNotFoundError(f"{continuous_path} does not exist")

    settings = OESettings.from_filename(settings_path)
    exper_e = ElementTree.parse(continuous_path).getroot()
    settings.add_continuous_meta(exper_e)
    exper_meta = OEExperMeta(settings, exper_e)
    return exper_meta, settings
