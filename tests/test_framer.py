"""
Frame Assembler Tests
=====================

Reassembly, resynchronization and buffer bounding.
"""

import pytest

from mavlink_reader.protocol.constants import MSG_ID_ATTITUDE, MSG_ID_HEARTBEAT
from mavlink_reader.protocol.decoder import MessageDecoder
from mavlink_reader.protocol.encoder import build_v1_frame, build_v2_frame
from mavlink_reader.protocol.framer import FrameAssembler

from conftest import attitude_frame


class TestReassembly:
    """Frames arriving whole, split or batched."""

    def test_single_frame(self, sample_attitude_frame):
        """A whole frame in one chunk yields one frame and empties the buffer."""
        assembler = FrameAssembler()

        frames = list(assembler.ingest(sample_attitude_frame))

        assert len(frames) == 1
        assert frames[0].version == 2
        assert frames[0].msg_id == MSG_ID_ATTITUDE
        assert frames[0].payload_len == 28
        assert assembler.buffered == 0

    def test_split_inside_header(self, sample_attitude_frame):
        """Splitting after byte 5 reassembles to the same sample."""
        assembler = FrameAssembler()
        decoder = MessageDecoder()

        first = list(assembler.ingest(sample_attitude_frame[:5]))
        assert first == []
        assert assembler.buffered == 5

        second = list(assembler.ingest(sample_attitude_frame[5:]))
        assert len(second) == 1

        whole = list(FrameAssembler().ingest(sample_attitude_frame))
        assert decoder.decode(second[0]) == decoder.decode(whole[0])

    def test_split_inside_payload(self, sample_attitude_frame):
        assembler = FrameAssembler()

        assert list(assembler.ingest(sample_attitude_frame[:20])) == []
        frames = list(assembler.ingest(sample_attitude_frame[20:]))

        assert len(frames) == 1
        assert assembler.buffered == 0

    def test_byte_by_byte(self, sample_attitude_frame):
        """Feeding one byte at a time yields the frame on the last byte."""
        assembler = FrameAssembler()
        frames = []
        for i in range(len(sample_attitude_frame)):
            frames.extend(assembler.ingest(sample_attitude_frame[i:i + 1]))

        assert len(frames) == 1
        assert frames[0].msg_id == MSG_ID_ATTITUDE

    def test_several_frames_in_one_chunk(self):
        """Batched frames come out in stream order."""
        data = b"".join(attitude_frame(seq=seq, timestamp_ms=100 + seq) for seq in range(3))
        assembler = FrameAssembler()

        frames = list(assembler.ingest(data))

        assert [frame.seq for frame in frames] == [0, 1, 2]
        assert assembler.frames_emitted == 3

    def test_v1_frame(self):
        assembler = FrameAssembler()

        frames = list(assembler.ingest(attitude_frame(version=1, seq=7)))

        assert len(frames) == 1
        assert frames[0].version == 1
        assert frames[0].seq == 7
        assert frames[0].msg_id == MSG_ID_ATTITUDE
        assert len(frames[0].payload) == 28

    def test_v2_header_fields(self):
        """Sequence, ids and 24-bit message id are read from the header."""
        data = build_v2_frame(42, 3, 4, 0x012345, b"\x01\x02")

        frame = next(FrameAssembler().ingest(data))

        assert frame.seq == 42
        assert frame.sysid == 3
        assert frame.compid == 4
        assert frame.msg_id == 0x012345
        assert frame.payload == b"\x01\x02"

    def test_signed_frame_includes_signature(self):
        """A signed v2 frame is 13 bytes longer and fully consumed."""
        signed = bytearray(attitude_frame(seq=1))
        signed[2] = 0x01
        data = bytes(signed) + bytes(13) + attitude_frame(seq=2)

        frames = list(FrameAssembler().ingest(data))

        assert [frame.seq for frame in frames] == [1, 2]
        assert frames[0].incompat_flags == 0x01

    def test_bad_checksum_still_emitted(self, sample_attitude_frame):
        """Checksums are not validated at this layer."""
        corrupted = sample_attitude_frame[:-2] + b"\x00\x00"

        frames = list(FrameAssembler().ingest(corrupted))

        assert len(frames) == 1
        assert frames[0].checksum == 0


class TestResync:
    """Garbage and spurious start bytes."""

    def test_leading_garbage_skipped(self, sample_attitude_frame):
        assembler = FrameAssembler()

        frames = list(assembler.ingest(b"\x00\x11\x22" + sample_attitude_frame))

        assert len(frames) == 1
        assert assembler.metrics()["skipped_bytes"] == 3

    def test_spurious_start_byte_without_header(self):
        """A start byte with too few bytes after it emits nothing."""
        assembler = FrameAssembler()

        frames = list(assembler.ingest(b"\x11\xfd\x22"))

        assert frames == []
        # Garbage before the candidate is dropped, the candidate is kept
        assert assembler.buffered == 2

    def test_unreadable_start_byte_before_split_frame(self):
        """A stray 0xFD ahead of a partial frame does not swallow it later."""
        heartbeat = build_v1_frame(7, 1, 1, MSG_ID_HEARTBEAT, bytes(9))
        assembler = FrameAssembler()

        assert list(assembler.ingest(b"\xfd\x05" + heartbeat[:8])) == []
        assert assembler.buffered == 8

        frames = list(assembler.ingest(heartbeat[8:]))

        assert [(frame.version, frame.msg_id, frame.seq) for frame in frames] == [
            (1, MSG_ID_HEARTBEAT, 7),
        ]
        assert assembler.buffered == 0

    def test_trailing_partial_start_after_frame(self, sample_attitude_frame):
        assembler = FrameAssembler()

        frames = list(assembler.ingest(sample_attitude_frame + b"\xfe\x03"))

        assert len(frames) == 1
        assert assembler.buffered == 2

    def test_garbage_only_is_discarded(self):
        """Bytes without a start byte are dropped once scanned."""
        assembler = FrameAssembler()

        assert list(assembler.ingest(bytes(range(0x00, 0xF0)))) == []
        assert assembler.buffered == 0


class TestBufferCap:
    """Bounded memory under overrun."""

    def test_cap_retains_newest_2048(self):
        """
        The cap is applied when bytes are appended, before any scanning:
        more than 4096 unsynchronized bytes leave exactly 2048 retained.
        Scanning then discards the retained garbage.
        """
        assembler = FrameAssembler()

        frames = assembler.ingest(b"\x00" * 5000)

        assert assembler.buffered == 2048
        assert assembler.evicted_bytes == 5000 - 2048

        assert list(frames) == []
        assert assembler.buffered == 0
        assert assembler.metrics()["skipped_bytes"] == 2048

    def test_never_grows_unbounded(self):
        assembler = FrameAssembler()

        for _ in range(20):
            assembler.ingest(b"\x01" * 1000)
            assert assembler.buffered <= 4096

    def test_cap_can_evict_unfinished_frame(self):
        """An incomplete frame pushed past the cap is silently dropped."""
        assembler = FrameAssembler(max_buffer_bytes=64, retain_bytes=32)
        header = bytes([0xFD, 200, 0, 0, 0, 1, 1, MSG_ID_ATTITUDE, 0, 0])

        assert list(assembler.ingest(header + bytes(30))) == []
        assert assembler.buffered == 40

        assert list(assembler.ingest(bytes(40))) == []
        assert assembler.evicted_bytes == 48
        assert assembler.metrics()["evictions"] == 1
        assert assembler.buffered == 0

    def test_frames_after_eviction_still_decoded(self):
        assembler = FrameAssembler(max_buffer_bytes=64, retain_bytes=48)
        frame = build_v2_frame(5, 1, 1, MSG_ID_HEARTBEAT, bytes(9))

        list(assembler.ingest(b"\x00" * 100))
        frames = list(assembler.ingest(frame))

        assert len(frames) == 1
        assert frames[0].seq == 5

    def test_invalid_limits_rejected(self):
        with pytest.raises(ValueError):
            FrameAssembler(max_buffer_bytes=100, retain_bytes=100)
        with pytest.raises(ValueError):
            FrameAssembler(retain_bytes=0)

    def test_clear(self, sample_attitude_frame):
        assembler = FrameAssembler()
        list(assembler.ingest(sample_attitude_frame[:10]))

        assert assembler.clear() == 10
        assert assembler.buffered == 0
