"""
DNS ID3 Intrusion Detection

Classifies DNS-over-UDP queries as benign or malicious with an ID3 decision
tree, or records labelled training samples from observed traffic.

Contains:
- Decision tree engine (entropy, gain, induction, classification)
- Feature record model (training-file load/write)
- Flow state tracker (quantized inter-arrival times)
- Pipeline orchestrator (training and detection modes)
- Tree renderings (switch/case text, GraphViz)
"""

from .errors import DnsIdsError, EmptyInputError, FormatError, UnseenValueError
from .features import build_record, flow_key, format_duration
from .flow_state import FlowTracker, quantize
from .pipeline import (
    TrafficClassifier,
    TrainingRecorder,
    build_classifier,
    run,
    write_artifacts,
)
from .records import (
    Dataset,
    TrainingFileWriter,
    from_records,
    load,
    most_common,
    unique_values,
    write_dataset,
)
from .render import to_graph, to_text
from .tree import Internal, Leaf, Node, accuracy, classify, entropy, gain, induce
from .types import Detection, DnsQueryEvent, PipelineMode, PipelineStats

__version__ = "0.1.0"
__all__ = [
    # Errors
    'DnsIdsError',
    'EmptyInputError',
    'FormatError',
    'UnseenValueError',
    # Tree engine
    'Leaf',
    'Internal',
    'Node',
    'entropy',
    'gain',
    'induce',
    'classify',
    'accuracy',
    # Records
    'Dataset',
    'TrainingFileWriter',
    'load',
    'from_records',
    'write_dataset',
    'unique_values',
    'most_common',
    # Features and flow state
    'build_record',
    'flow_key',
    'format_duration',
    'FlowTracker',
    'quantize',
    # Pipeline
    'TrafficClassifier',
    'TrainingRecorder',
    'build_classifier',
    'run',
    'write_artifacts',
    # Rendering
    'to_text',
    'to_graph',
    # Types
    'DnsQueryEvent',
    'Detection',
    'PipelineMode',
    'PipelineStats',
]
