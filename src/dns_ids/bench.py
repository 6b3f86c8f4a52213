"""
Offline benchmark: shuffle a dataset, train on part of it, score the rest.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sklearn.model_selection import train_test_split

from . import config
from .errors import EmptyInputError
from .records import Dataset
from .tree import accuracy, gains, induce

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkResult:
    """Outcome of one benchmark split."""
    total: int
    train_size: int
    test_size: int
    accuracy: float  # percent, on the held-out part
    gains: List[Tuple[str, float]]  # training-split gains, highest first


def benchmark(dataset: Dataset, train_fraction: float = config.BENCH_TRAIN_FRACTION,
              seed: Optional[int] = None) -> BenchmarkResult:
    """
    Train on a random train_fraction of dataset and measure accuracy on the rest.

    Args:
        dataset: Labelled dataset with at least two records
        train_fraction: Share of records used for training, in (0, 1)
        seed: Shuffle seed; None for a fresh shuffle on every call

    Returns:
        BenchmarkResult with split sizes, accuracy and ranked gains
    """
    if len(dataset) < 2:
        raise EmptyInputError("benchmark needs at least two records")
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be between 0 and 1, got {train_fraction}")

    training, testing = train_test_split(
        dataset.frame, train_size=train_fraction, shuffle=True, random_state=seed
    )
    logger.info(f"Training on {len(training)}/{len(dataset)} packets")

    tree = induce(training, dataset.attributes, dataset.category)
    score = accuracy(tree, testing, dataset.category)

    ranked = sorted(gains(training, dataset.attributes, dataset.category).items(),
                    key=lambda item: item[1], reverse=True)

    return BenchmarkResult(
        total=len(dataset),
        train_size=len(training),
        test_size=len(testing),
        accuracy=score,
        gains=ranked,
    )


def format_report(result: BenchmarkResult) -> str:
    lines = [
        f"Training on {result.train_size}/{result.total} packets",
        f"{result.accuracy:.2f}% model accuracy",
        "Entropy Gains:",
    ]
    lines.extend(f"{value:.4f}: {attribute}" for attribute, value in result.gains)
    return "\n".join(lines) + "\n"
