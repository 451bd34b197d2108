"""
Frame Assembler
===============

Finds message boundaries in a rolling byte buffer.

Bytes arrive from the transport in arbitrary chunks. FrameAssembler keeps
whatever has not been consumed yet, scans it for v1 (0xFE) or v2 (0xFD)
start bytes and yields every complete frame, leaving a partial frame (if
any) for the next call.

Scan Rules:
    - 0xFD with >= 12 bytes after it: read the v2 header, total length is
      10 + payload_len + 2 (+13 if the frame is signed)
    - 0xFE with >= 6 bytes after it: read the v1 header, total length is
      6 + payload_len + 2
    - header readable but frame incomplete: stop, wait for more bytes;
      unreadable start bytes before it are discarded
    - anything else: advance by one byte (resync)

Design Rules:
    - Consumed bytes are dropped immediately, never rescanned
    - Bounded memory: above max_buffer_bytes only the newest
      retain_bytes are kept (may evict an unfinished frame)
    - No checksum validation at this layer
"""

import logging
import struct
from typing import Iterator, Optional

from mavlink_reader.models.frame import Frame
from mavlink_reader.protocol.constants import (
    CHECKSUM_LEN,
    MAVLINK_IFLAG_SIGNED,
    MAVLINK_V1_STX,
    MAVLINK_V2_STX,
    SIGNATURE_LEN,
    V1_HEADER_LEN,
    V1_MIN_LOOKAHEAD,
    V2_HEADER_LEN,
    V2_MIN_LOOKAHEAD,
)


logger = logging.getLogger(__name__)

DEFAULT_MAX_BUFFER_BYTES = 4096
DEFAULT_RETAIN_BYTES = 2048

# Header fields after the start byte
_V1_HEADER = struct.Struct("<5B")      # len, seq, sysid, compid, msgid
_V2_HEADER = struct.Struct("<6BHB")    # len, iflags, cflags, seq, sysid, compid, msgid lo16, msgid hi8


class FrameAssembler:
    """
    Reassembles protocol frames from a chunked byte stream.

    Owns the raw receive buffer exclusively. Not thread-safe; callers
    that ingest from several threads must serialize access.

    Attributes:
        max_buffer_bytes: Retained size that triggers eviction
        retain_bytes: Bytes kept (newest) after eviction

    Example:
        assembler = FrameAssembler()

        for frame in assembler.ingest(datagram):
            handle(frame)
    """

    def __init__(
        self,
        max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
        retain_bytes: int = DEFAULT_RETAIN_BYTES,
    ) -> None:
        """
        Initialize the assembler.

        Args:
            max_buffer_bytes: Cap on retained bytes
            retain_bytes: Bytes kept when the cap is exceeded. Must be
                smaller than max_buffer_bytes.
        """
        if retain_bytes < 1:
            raise ValueError("retain_bytes must be >= 1")
        if max_buffer_bytes <= retain_bytes:
            raise ValueError("max_buffer_bytes must be greater than retain_bytes")

        self.max_buffer_bytes = max_buffer_bytes
        self.retain_bytes = retain_bytes

        self._buffer = bytearray()
        self._bytes_received: int = 0
        self._frames_emitted: int = 0
        self._skipped_bytes: int = 0
        self._evicted_bytes: int = 0
        self._evictions: int = 0

    @property
    def buffered(self) -> int:
        """Bytes currently retained."""
        return len(self._buffer)

    @property
    def frames_emitted(self) -> int:
        """Total frames yielded."""
        return self._frames_emitted

    @property
    def evicted_bytes(self) -> int:
        """Bytes dropped by the buffer cap."""
        return self._evicted_bytes

    def ingest(self, data: bytes) -> Iterator[Frame]:
        """
        Append bytes and scan for complete frames.

        The bytes are appended (and the cap applied) immediately. The
        returned iterator scans lazily; every yielded frame has already
        been removed from the buffer.

        Args:
            data: Raw bytes from the transport

        Returns:
            Iterator over complete frames, in stream order
        """
        self._buffer.extend(data)
        self._bytes_received += len(data)
        self._enforce_cap()
        return self._scan()

    def clear(self) -> int:
        """
        Drop all retained bytes.

        Returns:
            Number of bytes dropped.
        """
        cleared = len(self._buffer)
        self._buffer.clear()
        return cleared

    def metrics(self) -> dict:
        """
        Get assembler metrics for observability.

        Returns:
            Dict with buffered, bytes_received, frames_emitted,
            skipped_bytes, evicted_bytes, evictions
        """
        return {
            "buffered": len(self._buffer),
            "bytes_received": self._bytes_received,
            "frames_emitted": self._frames_emitted,
            "skipped_bytes": self._skipped_bytes,
            "evicted_bytes": self._evicted_bytes,
            "evictions": self._evictions,
        }

    def _scan(self) -> Iterator[Frame]:
        buf = self._buffer
        i = 0
        # First start byte whose header could not be read yet; only kept
        # when the scan reaches the end without an incomplete frame
        pending: Optional[int] = None
        incomplete = False

        while i < len(buf):
            start = buf[i]
            total = None

            if start == MAVLINK_V2_STX:
                if i + V2_MIN_LOOKAHEAD < len(buf):
                    total = self._v2_total_length(buf, i)
                elif pending is None:
                    pending = i
            elif start == MAVLINK_V1_STX:
                if i + V1_MIN_LOOKAHEAD < len(buf):
                    total = V1_HEADER_LEN + buf[i + 1] + CHECKSUM_LEN
                elif pending is None:
                    pending = i

            if total is None:
                i += 1
                continue

            if i + total > len(buf):
                incomplete = True
                break

            if start == MAVLINK_V2_STX:
                frame = self._parse_v2(buf, i)
            else:
                frame = self._parse_v1(buf, i)

            self._skipped_bytes += i
            del buf[:i + total]
            i = 0
            pending = None
            self._frames_emitted += 1
            yield frame

        if incomplete:
            keep_from = i
        else:
            keep_from = len(buf) if pending is None else pending

        self._skipped_bytes += keep_from
        del buf[:keep_from]
        self._enforce_cap()

    def _enforce_cap(self) -> None:
        if len(self._buffer) > self.max_buffer_bytes:
            dropped = len(self._buffer) - self.retain_bytes
            del self._buffer[:dropped]
            self._evicted_bytes += dropped
            self._evictions += 1
            logger.warning(
                f"Receive buffer over {self.max_buffer_bytes} bytes, "
                f"evicted {dropped} oldest bytes"
            )

    @staticmethod
    def _v2_total_length(buf: bytearray, i: int) -> int:
        payload_len = buf[i + 1]
        total = V2_HEADER_LEN + payload_len + CHECKSUM_LEN
        if buf[i + 2] & MAVLINK_IFLAG_SIGNED:
            total += SIGNATURE_LEN
        return total

    @staticmethod
    def _parse_v2(buf: bytearray, i: int) -> Frame:
        (
            payload_len, incompat, compat, seq, sysid, compid, msg_lo, msg_hi,
        ) = _V2_HEADER.unpack_from(buf, i + 1)
        start = i + V2_HEADER_LEN
        end = start + payload_len
        return Frame(
            version=2,
            seq=seq,
            sysid=sysid,
            compid=compid,
            msg_id=msg_lo | (msg_hi << 16),
            payload=bytes(buf[start:end]),
            payload_len=payload_len,
            checksum=int.from_bytes(buf[end:end + CHECKSUM_LEN], "little"),
            incompat_flags=incompat,
            compat_flags=compat,
        )

    @staticmethod
    def _parse_v1(buf: bytearray, i: int) -> Frame:
        payload_len, seq, sysid, compid, msg_id = _V1_HEADER.unpack_from(buf, i + 1)
        start = i + V1_HEADER_LEN
        end = start + payload_len
        return Frame(
            version=1,
            seq=seq,
            sysid=sysid,
            compid=compid,
            msg_id=msg_id,
            payload=bytes(buf[start:end]),
            payload_len=payload_len,
            checksum=int.from_bytes(buf[end:end + CHECKSUM_LEN], "little"),
        )
