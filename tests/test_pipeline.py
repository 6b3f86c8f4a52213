"""
Pipeline Testing

Tests both handler paths end to end:
1. Training: query events -> labelled rows appended to the training file
2. Detection: training file -> induced tree -> detections for malicious queries

Flow state must only advance for query packets that were fully processed.
"""

import unittest
import sys
import tempfile
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from dns_ids import config
from dns_ids.flow_state import FlowTracker
from dns_ids.pipeline import (
    TrafficClassifier,
    TrainingRecorder,
    build_classifier,
    log_detection,
    run,
    train_tree,
    write_artifacts,
)
from dns_ids.records import TrainingFileWriter, load
from dns_ids.tree import Internal
from dns_ids.types import Detection
from test_fixtures import TestFixtures

EVIL = 'c2.evil.example.'
GOOD = 'www.example.com.'


class PipelineTestBase(unittest.TestCase):
    """Base class for pipeline tests with a scratch directory."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.training_path = self.tmp / 'training.csv'

    def tearDown(self):
        self._tmp.cleanup()

    def record(self, events, malicious: bool, tracker=None):
        with TrainingFileWriter(self.training_path) as writer:
            recorder = TrainingRecorder(writer, malicious=malicious, tracker=tracker)
            return run(events, recorder)

    def record_labelled_traffic(self):
        """Three malicious and five clean single-packet flows sharing one source port."""
        evil = [TestFixtures.query_event(src_ip=f'10.0.1.{i}', qname=EVIL) for i in range(3)]
        good = [TestFixtures.query_event(src_ip=f'10.0.2.{i}', qname=GOOD) for i in range(5)]
        self.record(evil, malicious=True)
        self.record(good, malicious=False)


class TestTrainingRecorder(PipelineTestBase):
    """Test training mode."""

    def test_rows_and_inter_arrival(self):
        events = [
            TestFixtures.query_event(timestamp=1000.0),
            TestFixtures.query_event(timestamp=1000.5, is_query=False),
            TestFixtures.query_event(timestamp=1001.23),
        ]
        stats = self.record(events, malicious=True)

        self.assertEqual(stats.seen, 3)
        self.assertEqual(stats.processed, 2)
        self.assertEqual(stats.skipped, 1)

        lines = self.training_path.read_text(encoding='utf-8').splitlines()
        self.assertEqual(lines, [
            ','.join(config.HEADER),
            'true,5353,1,1,www.example.com.,false,false,true,false,0s',
            'true,5353,1,1,www.example.com.,false,false,true,false,1.2s',
        ])

    def test_clean_label(self):
        self.record([TestFixtures.query_event()], malicious=False)
        dataset = load(self.training_path)
        self.assertEqual(list(dataset.frame[config.CATEGORY_ATTRIBUTE]), ['false'])

    def test_response_does_not_touch_flow_state(self):
        tracker = FlowTracker()
        self.record([TestFixtures.query_event(is_query=False)], malicious=True, tracker=tracker)
        self.assertEqual(len(tracker), 0)

    def test_failed_append_leaves_flow_state_unchanged(self):
        tracker = FlowTracker()
        writer = TrainingFileWriter(self.training_path)
        recorder = TrainingRecorder(writer, malicious=True, tracker=tracker)

        with self.assertRaises(RuntimeError):
            recorder.handle(TestFixtures.query_event())
        self.assertEqual(len(tracker), 0)
        self.assertEqual(recorder.stats.processed, 0)

    def test_flows_are_keyed_by_address_and_port(self):
        events = [
            TestFixtures.query_event(src_ip='10.0.0.1', src_port=5353, timestamp=10.0),
            TestFixtures.query_event(src_ip='10.0.0.1', src_port=40000, timestamp=11.0),
            TestFixtures.query_event(src_ip='10.0.0.1', src_port=5353, timestamp=12.0),
        ]
        self.record(events, malicious=True)
        elapsed = list(load(self.training_path).frame['TimeSinceLastPacket'])
        self.assertEqual(elapsed, ['0s', '0s', '2s'])


class TestTrafficClassifier(PipelineTestBase):
    """Test detection mode."""

    def test_detects_only_malicious_queries(self):
        self.record_labelled_traffic()
        detections = []
        classifier = build_classifier(self.training_path, sink=detections.append)

        events = [
            TestFixtures.query_event(src_ip='192.168.0.10', qname=EVIL, timestamp=50.0),
            TestFixtures.query_event(src_ip='192.168.0.11', qname=GOOD, timestamp=50.1),
            TestFixtures.query_event(src_ip='192.168.0.12', qname='unseen.example.', timestamp=50.2),
        ]
        stats = run(events, classifier)

        self.assertEqual(stats.processed, 3)
        self.assertEqual(stats.detections, 1)
        self.assertEqual(len(detections), 1)

        detection = detections[0]
        self.assertEqual(detection.flow_key, '192.168.0.10:5353')
        self.assertEqual(detection.label, config.MALICIOUS_LABEL)
        self.assertEqual(detection.timestamp, 50.0)
        self.assertEqual(detection.record['QName'], EVIL)
        self.assertNotIn(config.CATEGORY_ATTRIBUTE, detection.record)

    def test_unseen_value_uses_majority(self):
        self.record_labelled_traffic()
        classifier = build_classifier(self.training_path, sink=lambda d: None)

        self.assertIsInstance(classifier.tree, Internal)
        self.assertEqual(classifier.tree.attribute, 'QName')
        self.assertEqual(classifier.tree.majority, config.BENIGN_LABEL)
        label = classifier.handle(TestFixtures.query_event(qname='unseen.example.'))
        self.assertEqual(label, config.BENIGN_LABEL)

    def test_response_skipped(self):
        self.record_labelled_traffic()
        detections = []
        classifier = build_classifier(self.training_path, sink=detections.append)

        self.assertIsNone(classifier.handle(TestFixtures.query_event(qname=EVIL, is_query=False)))
        self.assertEqual(classifier.stats.skipped, 1)
        self.assertEqual(detections, [])
        self.assertEqual(len(classifier.tracker), 0)

    def test_classifier_tracks_inter_arrival(self):
        self.record_labelled_traffic()
        classifier = build_classifier(self.training_path, sink=lambda d: None)
        classifier.handle(TestFixtures.query_event(timestamp=10.0))
        self.assertEqual(classifier.tracker.last_seen('10.0.0.5:5353'), 10.0)

    def test_default_sink_logs_warning(self):
        self.record_labelled_traffic()
        classifier = TrafficClassifier(train_tree(load(self.training_path)))

        with self.assertLogs('dns_ids.pipeline', level='WARNING') as logs:
            classifier.handle(TestFixtures.query_event(src_ip='172.16.0.1', qname=EVIL))
        self.assertEqual(len(logs.records), 1)
        self.assertIn('Detected malicious packet from 172.16.0.1:5353', logs.output[0])
        self.assertIn(EVIL, logs.output[0])

    def test_log_detection_format(self):
        detection = Detection(flow_key='1.2.3.4:53', record={'QName': 'a.'}, timestamp=0.0, label='true')
        with self.assertLogs('dns_ids.pipeline', level='WARNING') as logs:
            log_detection(detection)
        self.assertIn('1.2.3.4:53: {"QName": "a."}', logs.output[0])


class TestArtifacts(PipelineTestBase):
    """Test tree and graph file output."""

    def test_write_artifacts(self):
        tree = train_tree(TestFixtures.weather_dataset())
        tree_path = self.tmp / 'tree.txt'
        graph_path = self.tmp / 'graphviz.txt'

        write_artifacts(tree, tree_path, graph_path)

        self.assertEqual(tree_path.read_text(encoding='utf-8'),
                         "switch Weather:\n  case Cold:\n    Rain\n  case Hot:\n    Sun\n")
        graph = graph_path.read_text(encoding='utf-8')
        self.assertTrue(graph.startswith('digraph {\n'))
        self.assertIn('Weather -> "Hot" -> Sun // Branch length 2', graph)

    def test_write_artifacts_applies_filter(self):
        tree = train_tree(TestFixtures.weather_dataset())
        graph_path = self.tmp / 'graphviz.txt'
        write_artifacts(tree, self.tmp / 'tree.txt', graph_path, label_filter='Hot')

        graph = graph_path.read_text(encoding='utf-8')
        self.assertIn('"Hot"', graph)
        self.assertNotIn('"Cold"', graph)


if __name__ == '__main__':
    unittest.main()
