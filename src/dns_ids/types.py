"""
Type definitions shared by the capture adapter and the pipeline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class PipelineMode(Enum):
    """Run mode, selected once per process."""
    TRAIN = "train"
    DETECT = "detect"
    BENCH = "bench"


@dataclass
class DnsQueryEvent:
    """
    One decoded datagram as supplied by the capture collaborator.

    Question and flag fields are only meaningful when is_query is True.
    """
    src_ip: str
    src_port: int
    timestamp: float  # Unix time in seconds
    is_query: bool
    qclass: int = 0
    qtype: int = 0
    qname: str = ""
    aa: bool = False  # Authoritative answer
    tc: bool = False  # Truncated
    rd: bool = False  # Recursion desired
    ra: bool = False  # Recursion available


@dataclass
class Detection:
    """A positive malicious classification, handed to the detection sink."""
    flow_key: str
    record: Dict[str, str]
    timestamp: float
    label: str


@dataclass
class PipelineStats:
    """Counters kept by pipeline handlers."""
    seen: int = 0
    processed: int = 0
    skipped: int = 0
    detections: int = 0
