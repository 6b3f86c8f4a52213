#!/usr/bin/env python3
"""
Command-line interface for the DNS ID3 detector.

Usage:
    dns-ids -t [-c] -i eth0                 # record training samples
    dns-ids -i eth0                         # train on training.csv, then detect
    dns-ids --pcap capture.pcap             # detect on a saved capture
    dns-ids -e                              # train and write tree files only
    dns-ids --bench                         # hold-out accuracy of training.csv
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import config
from .bench import benchmark, format_report
from .capture import read_pcap_events, sniff_events
from .errors import EmptyInputError, FormatError
from .flow_state import FlowTracker
from .pipeline import TrainingRecorder, build_classifier, run, write_artifacts
from .records import TrainingFileWriter, load
from .types import PipelineMode, PipelineStats

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dns-ids',
        description='ID3 decision tree intrusion detection for DNS traffic',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Record malicious samples from eth0
  dns-ids -t -i eth0

  # Record clean samples into a custom file
  dns-ids -t -c -i eth0 --training-file clean.csv

  # Train, write tree.txt / graphviz.txt and stop
  dns-ids -e -f "" -l 3
        """
    )

    parser.add_argument('-i', '--iface', default=config.DEFAULT_INTERFACE,
                        help=f'Interface to monitor (default: {config.DEFAULT_INTERFACE})')
    parser.add_argument('-b', '--bpf', default=config.DEFAULT_BPF,
                        help=f'BPF capture filter (default: {config.DEFAULT_BPF})')
    parser.add_argument('-t', '--train', action='store_true',
                        help='Run in training mode (else IDS mode)')
    parser.add_argument('-c', '--clean', action='store_true',
                        help='Label recorded traffic as clean (else malicious)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')
    parser.add_argument('-e', '--exit-after-training', action='store_true',
                        help='Exit after ID3 training')
    parser.add_argument('-f', '--filter', default=config.DEFAULT_GRAPH_FILTER,
                        help='Only graph branches whose path contains this text')
    parser.add_argument('-l', '--min-branch-length', type=int, default=config.DEFAULT_MIN_BRANCH_LENGTH,
                        help='Minimum branch length to graph')
    parser.add_argument('--bench', action='store_true',
                        help='Benchmark mode: hold-out accuracy of the training file')
    parser.add_argument('--seed', type=int, default=None,
                        help='Shuffle seed for benchmark mode')
    parser.add_argument('--training-file', default=config.TRAINING_FILENAME,
                        help=f'Training file (default: {config.TRAINING_FILENAME})')
    parser.add_argument('--graphviz-file', default=config.GRAPHVIZ_FILENAME,
                        help=f'GraphViz tree file (default: {config.GRAPHVIZ_FILENAME})')
    parser.add_argument('--tree-file', default=config.TREE_FILENAME,
                        help=f'Tree file (default: {config.TREE_FILENAME})')
    parser.add_argument('--pcap', default=None,
                        help='Read packets from this pcap file instead of a live interface')
    parser.add_argument('--max-packets', type=int, default=None,
                        help='Maximum packets to read from --pcap (default: all)')
    parser.add_argument('--max-flows', type=int, default=None,
                        help='Cap tracked flows, evicting the least recently seen (default: unbounded)')
    return parser


def select_mode(args: argparse.Namespace) -> PipelineMode:
    if args.bench:
        return PipelineMode.BENCH
    if args.train:
        return PipelineMode.TRAIN
    return PipelineMode.DETECT


def _capture(args: argparse.Namespace, handler) -> PipelineStats:
    if args.pcap:
        logger.info(f"Reading packets from {args.pcap}")
        return run(read_pcap_events(args.pcap, max_packets=args.max_packets), handler)

    sniff_events(args.iface, args.bpf, handler.handle)
    return handler.stats


def _run_bench(args: argparse.Namespace) -> int:
    dataset = load(args.training_file)
    result = benchmark(dataset, seed=args.seed)
    print(format_report(result), end='')
    return 0


def _run_training(args: argparse.Namespace) -> int:
    logger.info(f"Running in training mode with clean={args.clean}")
    if args.exit_after_training:
        logger.info("-e flag set, exiting")
        return 0

    tracker = FlowTracker(max_flows=args.max_flows)
    with TrainingFileWriter(args.training_file) as writer:
        recorder = TrainingRecorder(writer, malicious=not args.clean, tracker=tracker)
        stats = _capture(args, recorder)

    print(f"Recorded {writer.rows_written} samples to {args.training_file} "
          f"({stats.skipped} non-query packets skipped)")
    return 0


def _run_detection(args: argparse.Namespace) -> int:
    logger.info("Running in IDS mode")
    classifier = build_classifier(args.training_file, tracker=FlowTracker(max_flows=args.max_flows))
    write_artifacts(classifier.tree, args.tree_file, args.graphviz_file,
                    label_filter=args.filter, min_depth=args.min_branch_length)

    if args.exit_after_training:
        logger.info("-e flag set, exiting")
        return 0

    stats = _capture(args, classifier)
    print(f"Classified {stats.processed} queries, {stats.detections} flagged malicious")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    mode = select_mode(args)
    try:
        if mode is PipelineMode.BENCH:
            return _run_bench(args)
        if mode is PipelineMode.TRAIN:
            return _run_training(args)
        return _run_detection(args)
    except (FormatError, EmptyInputError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
        return 0


if __name__ == '__main__':
    sys.exit(main())
