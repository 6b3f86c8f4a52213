"""
ID3 decision tree induction and classification.

Trees are built from a Dataset frame (string-typed pandas DataFrame) and are
immutable once induced. Iteration over attribute values is always in sorted
order so that induced trees, tie-breaks and renderings are reproducible.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score

from . import config
from .errors import EmptyInputError, UnseenValueError
from .records import most_common, unique_values

logger = logging.getLogger(__name__)


@dataclass
class Leaf:
    """Terminal node: a predicted label and a human-readable description."""
    label: str
    description: str


@dataclass
class Internal:
    """
    Split node.

    children maps each value of attribute observed in the training subset to
    the subtree built from the records carrying that value. majority is the
    most common label of that subset; classification falls back to it when a
    record carries a value with no branch.
    """
    attribute: str
    children: Dict[str, 'Node'] = field(default_factory=dict)
    majority: str = ''


Node = Union[Leaf, Internal]


def entropy(records: pd.DataFrame, category: str = config.CATEGORY_ATTRIBUTE) -> float:
    """
    Shannon entropy (base 2) of the category value distribution.

    Args:
        records: Non-empty record frame
        category: Label attribute name

    Returns:
        Entropy in bits, 0.0 for a pure set

    Raises:
        EmptyInputError: records is empty
    """
    if len(records) == 0:
        raise EmptyInputError("entropy of an empty record set is undefined")

    p = records[category].value_counts(normalize=True).to_numpy(dtype=float)
    # + 0.0 turns the -0.0 of a pure set into 0.0
    return float(-np.sum(p * np.log2(p))) + 0.0


def gain(records: pd.DataFrame, attribute: str,
         category: str = config.CATEGORY_ATTRIBUTE) -> float:
    """
    Information gain of splitting records on attribute.

    entropy(records) minus the size-weighted entropy of every partition
    induced by the distinct values of attribute.
    """
    total = len(records)
    remainder = 0.0
    for _, subset in records.groupby(attribute, sort=True):
        remainder += (len(subset) / total) * entropy(subset, category)
    return entropy(records, category) - remainder


def gains(records: pd.DataFrame, attributes: Sequence[str],
          category: str = config.CATEGORY_ATTRIBUTE) -> Dict[str, float]:
    """Gain of every attribute, keyed in the given attribute order."""
    return {attribute: gain(records, attribute, category) for attribute in attributes}


def best_attribute(records: pd.DataFrame, attributes: Sequence[str],
                   category: str = config.CATEGORY_ATTRIBUTE) -> str:
    """
    Attribute with the largest gain.

    A later attribute replaces the incumbent only on a strictly greater
    gain, so among equal gains the earliest attribute in the list wins.
    """
    if not attributes:
        raise ValueError("no attributes to choose from")

    best = attributes[0]
    best_gain = gain(records, best, category)
    for attribute in attributes[1:]:
        current = gain(records, attribute, category)
        if current > best_gain + config.GAIN_TOLERANCE:
            best, best_gain = attribute, current
    return best


def induce(records: pd.DataFrame, attributes: Sequence[str],
           category: str = config.CATEGORY_ATTRIBUTE) -> Node:
    """
    Build a decision tree with ID3.

    1. Pure partition: leaf with that label.
    2. No attributes left: leaf with the majority label, described as a guess.
    3. Otherwise split on the highest-gain attribute and recurse on every
       observed value with that attribute removed.

    Args:
        records: Non-empty record frame containing the category and all attributes
        attributes: Candidate split attributes, in tie-break order
        category: Label attribute name

    Returns:
        Root node of the induced tree

    Raises:
        EmptyInputError: records is empty
    """
    if len(records) == 0:
        raise EmptyInputError("cannot induce a tree from zero records")

    labels = unique_values(records, category)
    if len(labels) == 1:
        label = next(iter(labels))
        return Leaf(label=label, description=label)

    majority = most_common(records, category)
    if not attributes:
        return Leaf(label=majority, description=config.GUESS_PREFIX + majority)

    split = best_attribute(records, attributes, category)
    remaining = [attribute for attribute in attributes if attribute != split]

    node = Internal(attribute=split, majority=majority)
    for value, subset in records.groupby(split, sort=True):
        node.children[value] = induce(subset, remaining, category)
    return node


def classify(tree: Node, record: Mapping[str, str], strict: bool = False) -> str:
    """
    Predict the label of a single record.

    When the record carries a value (or lacks the attribute entirely) for
    which the current node has no branch, the node's training-time majority
    label is returned. With strict=True an UnseenValueError is raised instead.
    """
    node = tree
    while isinstance(node, Internal):
        value: Optional[str] = record.get(node.attribute)
        child = node.children.get(value) if value is not None else None
        if child is None:
            if strict:
                raise UnseenValueError(node.attribute, value)
            logger.debug(f"No branch for {node.attribute}={value!r}, "
                         f"using majority label {node.majority!r}")
            return node.majority
        node = child
    return node.label


def accuracy(tree: Node, records: pd.DataFrame,
             category: str = config.CATEGORY_ATTRIBUTE) -> float:
    """Percentage (0-100) of records whose prediction equals their own label."""
    if len(records) == 0:
        raise EmptyInputError("accuracy of an empty record set is undefined")

    predicted = [classify(tree, record) for record in records.to_dict('records')]
    return float(accuracy_score(records[category].tolist(), predicted)) * 100


def count_nodes(tree: Node) -> int:
    if isinstance(tree, Leaf):
        return 1
    return 1 + sum(count_nodes(child) for child in tree.children.values())


def depth(tree: Node) -> int:
    if isinstance(tree, Leaf):
        return 0
    return 1 + max((depth(child) for child in tree.children.values()), default=0)
