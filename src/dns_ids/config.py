"""
Configuration constants for the DNS ID3 detector.

Centralizes attribute names, file defaults, capture defaults and tree tuning.
"""

from typing import List

# Category (label) attribute and the value that means "malicious"
CATEGORY_ATTRIBUTE: str = 'IsMalicious'
MALICIOUS_LABEL: str = 'true'
BENIGN_LABEL: str = 'false'

# Feature attributes in training-file column order
FEATURE_ATTRIBUTES: List[str] = [
    'SourcePort',
    'QClass',
    'QType',
    'QName',
    'AA',                   # Authoritative answer
    'TC',                   # Truncated
    'RD',                   # Recursion desired
    'RA',                   # Recursion available
    'TimeSinceLastPacket',
]

# Training-file header: category first, then features
HEADER: List[str] = [CATEGORY_ATTRIBUTE] + FEATURE_ATTRIBUTES

# Default file names
TRAINING_FILENAME: str = 'training.csv'
TREE_FILENAME: str = 'tree.txt'
GRAPHVIZ_FILENAME: str = 'graphviz.txt'

# Capture defaults
DEFAULT_INTERFACE: str = 'ens18'
DEFAULT_BPF: str = 'udp'

# Graph rendering defaults
DEFAULT_GRAPH_FILTER: str = 'dns_sd__udp_local'
DEFAULT_MIN_BRANCH_LENGTH: int = 0

# Inter-arrival quantization (keeps the attribute domain small for ID3)
TIME_QUANTUM_MS: int = 100

# Gains closer than this are treated as equal when picking a split
GAIN_TOLERANCE: float = 1e-12

# Description prefix for leaves decided by majority vote
GUESS_PREFIX: str = 'Guessing: '

# Benchmark defaults
BENCH_TRAIN_FRACTION: float = 0.5
