"""
Pipeline orchestration: capture events -> flow state -> feature record -> tree.

Two handlers share one event path:
  TrainingRecorder
    labels every query record with the operator-supplied label and appends
    it to the training file

  TrafficClassifier
    classifies every query record with an induced tree and reports
    malicious predictions to a detection sink

Events must be handed to a handler in arrival order. Flow state is updated
only after the record has been built and processed, so a fatal error never
leaves a flow half-updated.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Union

from . import config
from .features import build_record, flow_key, record_json
from .flow_state import FlowTracker
from .records import Dataset, TrainingFileWriter, load
from .render import to_graph, to_text
from .tree import Node, classify, count_nodes, depth, gains, induce
from .types import Detection, DnsQueryEvent, PipelineStats

logger = logging.getLogger(__name__)

DetectionSink = Callable[[Detection], None]


def log_detection(detection: Detection) -> None:
    """Default detection sink: one WARNING line per malicious packet."""
    logger.warning(f"Detected malicious packet from {detection.flow_key}: "
                   f"{record_json(detection.record)}")


class _EventHandler:
    """Shared per-event flow: skip non-queries, build record, process, update state."""

    def __init__(self, tracker: Optional[FlowTracker] = None):
        self.tracker = tracker if tracker is not None else FlowTracker()
        self.stats = PipelineStats()

    def handle(self, event: DnsQueryEvent):
        self.stats.seen += 1
        key = flow_key(event.src_ip, event.src_port)

        if not event.is_query:
            self.stats.skipped += 1
            logger.debug(f"Skipping non-query DNS packet from {key}")
            return None

        elapsed = self.tracker.elapsed(key, event.timestamp)
        record = self._build(event, elapsed)
        result = self._process(key, record, event)

        self.tracker.observe(key, event.timestamp)
        self.stats.processed += 1
        return result

    def _build(self, event, elapsed) -> Dict[str, str]:
        raise NotImplementedError

    def _process(self, key: str, record: Dict[str, str], event: DnsQueryEvent):
        raise NotImplementedError


class TrainingRecorder(_EventHandler):
    """
    Training mode: append one labelled record per DNS query.

    Args:
        writer: Open TrainingFileWriter
        malicious: Label applied to every record (False when capturing clean traffic)
        tracker: Flow state; a fresh one is created when omitted
    """

    def __init__(self, writer: TrainingFileWriter, malicious: bool,
                 tracker: Optional[FlowTracker] = None):
        super().__init__(tracker)
        self.writer = writer
        self.malicious = malicious

    def _build(self, event, elapsed):
        return build_record(event, elapsed, is_malicious=self.malicious)

    def _process(self, key, record, event):
        self.writer.append(record)
        logger.debug(f"Recorded training sample from {key}: {record_json(record)}")
        return record


class TrafficClassifier(_EventHandler):
    """
    Classification mode: predict a label per DNS query and report malicious ones.

    Args:
        tree: Induced decision tree
        tracker: Flow state; a fresh one is created when omitted
        sink: Called with a Detection for every malicious prediction
        malicious_label: Tree label that means malicious
    """

    def __init__(self, tree: Node, tracker: Optional[FlowTracker] = None,
                 sink: DetectionSink = log_detection,
                 malicious_label: str = config.MALICIOUS_LABEL):
        super().__init__(tracker)
        self.tree = tree
        self.sink = sink
        self.malicious_label = malicious_label

    def _build(self, event, elapsed):
        return build_record(event, elapsed)

    def _process(self, key, record, event):
        label = classify(self.tree, record)
        if label == self.malicious_label:
            self.stats.detections += 1
            self.sink(Detection(flow_key=key, record=record, timestamp=event.timestamp, label=label))
        return label


def train_tree(dataset: Dataset) -> Node:
    """Induce a tree from dataset and log the per-attribute gain report."""
    logger.info(f"Training ID3 model on {len(dataset)} packets")
    logger.debug(f"Header: {dataset.attributes}")

    tree = induce(dataset.frame, dataset.attributes, dataset.category)

    for attribute, value in gains(dataset.frame, dataset.attributes, dataset.category).items():
        logger.info(f"{attribute} gain: {value:f}")
    logger.info(f"Induced tree with {count_nodes(tree)} nodes, depth {depth(tree)}")
    return tree


def build_classifier(training_path: Union[str, Path],
                     tracker: Optional[FlowTracker] = None,
                     sink: DetectionSink = log_detection) -> TrafficClassifier:
    """
    Load a training file, induce a tree and wrap it in a TrafficClassifier.

    Raises:
        FormatError: Malformed training file
        OSError: Training file cannot be read
    """
    dataset = load(training_path)
    return TrafficClassifier(train_tree(dataset), tracker=tracker, sink=sink)


def write_artifacts(tree: Node, tree_path: Union[str, Path], graph_path: Union[str, Path],
                    label_filter: str = '', min_depth: int = 0) -> None:
    """Write the switch/case text file and the DOT graph file for a tree."""
    Path(tree_path).write_text(to_text(tree), encoding='utf-8')
    Path(graph_path).write_text(to_graph(tree, label_filter, min_depth), encoding='utf-8')
    logger.info(f"Wrote tree to {tree_path} and graph to {graph_path}")


def run(events: Iterable[DnsQueryEvent], handler: _EventHandler) -> PipelineStats:
    """Feed events through handler in order and return its counters."""
    for event in events:
        handler.handle(event)
    return handler.stats
