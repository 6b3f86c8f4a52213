"""
Feature record construction.

Training and classification both build records here, so the attribute
order, the duration quantization and the string encoding of every value are
identical on both sides. Any drift between the two would silently break the
tree's lookups at classification time.
"""

import json
from datetime import timedelta
from typing import Dict, Optional

from . import config
from .types import DnsQueryEvent

_MICROS_PER_MS = 1_000
_MICROS_PER_SECOND = 1_000_000


def flow_key(src_ip: str, src_port: int) -> str:
    """Flow identity used for inter-arrival tracking."""
    return f"{src_ip}:{int(src_port)}"


def format_bool(value: bool) -> str:
    return 'true' if value else 'false'


def _trim_fraction(whole: int, fraction: int, digits: int) -> str:
    if fraction == 0:
        return str(whole)
    return f"{whole}.{fraction:0{digits}d}".rstrip('0')


def format_duration(duration: timedelta) -> str:
    """
    Render a duration in compact human-readable form.

    Examples: 0s, 250µs, 100ms, 1.2s, 1m0.5s, 1h2m3s
    """
    micros = duration // timedelta(microseconds=1)
    if micros == 0:
        return '0s'

    sign = '-' if micros < 0 else ''
    micros = abs(micros)

    if micros < _MICROS_PER_MS:
        return f"{sign}{micros}µs"
    if micros < _MICROS_PER_SECOND:
        ms, frac = divmod(micros, _MICROS_PER_MS)
        return f"{sign}{_trim_fraction(ms, frac, 3)}ms"

    total_seconds, frac = divmod(micros, _MICROS_PER_SECOND)
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)

    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + f"{_trim_fraction(seconds, frac, 6)}s"


def build_record(event: DnsQueryEvent, elapsed: timedelta,
                 is_malicious: Optional[bool] = None) -> Dict[str, str]:
    """
    Build the feature record for one DNS query event.

    Args:
        event: Decoded query event
        elapsed: Quantized time since the flow's previous packet
        is_malicious: Label to attach (training mode); None omits the
            category attribute (classification mode)

    Returns:
        Ordered record in training-file column order
    """
    values = {
        config.CATEGORY_ATTRIBUTE: None if is_malicious is None else format_bool(is_malicious),
        'SourcePort': str(int(event.src_port)),
        'QClass': str(int(event.qclass)),
        'QType': str(int(event.qtype)),
        'QName': event.qname,
        'AA': format_bool(event.aa),
        'TC': format_bool(event.tc),
        'RD': format_bool(event.rd),
        'RA': format_bool(event.ra),
        'TimeSinceLastPacket': format_duration(elapsed),
    }
    return {name: values[name] for name in config.HEADER if values[name] is not None}


def record_json(record: Dict[str, str]) -> str:
    """JSON form of a record, used in detection reports."""
    return json.dumps(record)
