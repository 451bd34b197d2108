"""
Frame Data Model
================

Internal representation of one protocol unit found in the byte stream.

Design Rules:
    - Created only by FrameAssembler
    - Consumed immediately by MessageDecoder, never persisted
    - Payload is kept as raw bytes (decoding happens downstream)
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Frame:
    """
    One complete frame (header + payload + checksum).

    Attributes:
        version: Protocol generation, 1 (0xFE) or 2 (0xFD)
        seq: Sender sequence number
        sysid: Sender system id
        compid: Sender component id
        msg_id: Message id (8-bit on v1, 24-bit on v2)
        payload: Payload bytes
        payload_len: Declared payload length from the header
        checksum: Checksum as received (not validated)
        incompat_flags: v2 incompatibility flags (0 on v1)
        compat_flags: v2 compatibility flags (0 on v1)
    """

    version: int
    seq: int
    sysid: int
    compid: int
    msg_id: int
    payload: bytes
    payload_len: int
    checksum: int = 0
    incompat_flags: int = 0
    compat_flags: int = 0

    def __repr__(self) -> str:
        """Compact repr without the payload bytes."""
        return (
            f"Frame(v{self.version}, msg_id={self.msg_id}, seq={self.seq}, "
            f"sysid={self.sysid}, compid={self.compid}, len={self.payload_len})"
        )
