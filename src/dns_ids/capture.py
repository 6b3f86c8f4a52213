"""
Capture and decode adapter built on scapy.

Turns captured datagrams (live or from a pcap file) into DnsQueryEvent
objects. All link, IP, UDP and DNS wire decoding is done by scapy; this
module only picks the fields the pipeline needs.

scapy decodes UDP payloads as DNS on its bound ports (53 and 5353 for mDNS).
"""

import logging
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

from scapy.layers.dns import DNS
from scapy.layers.inet import IP, UDP
from scapy.layers.inet6 import IPv6
from scapy.sendrecv import sniff
from scapy.utils import PcapReader

from .types import DnsQueryEvent

logger = logging.getLogger(__name__)


def _first_question(dns: Any) -> Optional[Any]:
    if dns.qd is None:
        return None
    try:
        return dns.qd[0]
    except IndexError:
        return None


def _text(value: Union[bytes, str]) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


def event_from_packet(pkt: Any) -> Optional[DnsQueryEvent]:
    """
    Extract a DnsQueryEvent from a scapy packet.

    Args:
        pkt: Packet as produced by scapy sniff/PcapReader

    Returns:
        DnsQueryEvent, or None if the packet is not DNS over UDP.
        Responses and questionless messages come back with is_query=False.
    """
    if UDP not in pkt:
        logger.debug("Not UDP, skipping packet")
        return None

    if IP in pkt:
        src_ip = pkt[IP].src
    elif IPv6 in pkt:
        src_ip = pkt[IPv6].src
    else:
        return None

    if DNS not in pkt:
        logger.debug("Not DNS, skipping packet")
        return None

    udp = pkt[UDP]
    dns = pkt[DNS]
    timestamp = float(pkt.time)

    question = _first_question(dns)
    if dns.qr != 0 or question is None:
        return DnsQueryEvent(src_ip=src_ip, src_port=int(udp.sport), timestamp=timestamp, is_query=False)

    return DnsQueryEvent(
        src_ip=src_ip,
        src_port=int(udp.sport),
        timestamp=timestamp,
        is_query=True,
        qclass=int(question.qclass),
        qtype=int(question.qtype),
        qname=_text(question.qname),
        aa=bool(dns.aa),
        tc=bool(dns.tc),
        rd=bool(dns.rd),
        ra=bool(dns.ra),
    )


def read_pcap_events(pcap_path: Union[str, Path],
                     max_packets: Optional[int] = None) -> Iterator[DnsQueryEvent]:
    """
    Yield DNS events from a pcap file in capture order.

    Args:
        pcap_path: Path to pcap file
        max_packets: Optional limit on packets read (DNS or not)
    """
    with PcapReader(str(pcap_path)) as reader:
        for count, pkt in enumerate(reader):
            if max_packets and count >= max_packets:
                break
            event = event_from_packet(pkt)
            if event is not None:
                yield event


def sniff_events(iface: str, bpf: str, on_event: Callable[[DnsQueryEvent], Any],
                 count: int = 0) -> None:
    """
    Capture live traffic and hand each DNS event to on_event.

    Blocks until count packets were captured (0 = forever) or the process
    is interrupted.
    """
    def _handle(pkt: Any) -> None:
        event = event_from_packet(pkt)
        if event is not None:
            on_event(event)

    logger.info(f"Listening on {iface} (filter: {bpf!r})")
    sniff(iface=iface, filter=bpf, prn=_handle, store=False, count=count)
