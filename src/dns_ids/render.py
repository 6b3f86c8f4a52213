"""
Human-readable renderings of an induced tree.

to_text gives a nested switch/case listing for auditing; to_graph gives a
GraphViz DOT edge list. Children are always visited in sorted value order so
the output is byte-stable for a given tree.
"""

import re
from typing import List

from .tree import Leaf, Node

INDENT = '  '

_UNSAFE = re.compile(r'[^0-9A-Za-z_]')


def sanitize(name: str) -> str:
    """Make a name usable as a DOT identifier (punctuation becomes _)."""
    return _UNSAFE.sub('_', name)


def to_text(tree: Node) -> str:
    """Render the tree as an indented switch/case listing."""
    lines: List[str] = []
    _text(tree, 0, lines)
    return ''.join(lines)


def _text(node: Node, level: int, lines: List[str]) -> None:
    if isinstance(node, Leaf):
        lines.append(f"{INDENT * level}{node.description}\n")
        return

    lines.append(f"{INDENT * level}switch {node.attribute}:\n")
    for value in sorted(node.children):
        lines.append(f"{INDENT * (level + 1)}case {value}:\n")
        _text(node.children[value], level + 2, lines)


def to_graph(tree: Node, label_filter: str = '', min_depth: int = 0) -> str:
    """
    Render the tree as a DOT digraph, one line per root-to-leaf path.

    Args:
        tree: Root node
        label_filter: Only emit paths whose (sanitized) text contains this;
            empty matches every path
        min_depth: Only emit paths with at least this many edges

    Returns:
        DOT text wrapped in a digraph block
    """
    lines: List[str] = ['digraph {\n']
    _graph(tree, '', label_filter, min_depth, lines)
    lines.append('}\n')
    return ''.join(lines)


def _graph(node: Node, path: str, label_filter: str, min_depth: int, lines: List[str]) -> None:
    if isinstance(node, Leaf):
        if not path or not node.description:
            return
        line = f"  {path} -> {sanitize(node.description)}"
        branch_length = line.count('->')
        if (not label_filter or label_filter in path) and branch_length >= min_depth:
            lines.append(f"{line} // Branch length {branch_length}\n")
        return

    for value in sorted(node.children):
        if value == '':
            continue
        step = f'{sanitize(node.attribute)} -> "{sanitize(value)}"'
        _graph(node.children[value], f"{path} -> {step}" if path else step,
               label_filter, min_depth, lines)
