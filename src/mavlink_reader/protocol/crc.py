"""
Frame Checksum
==============

CRC-16/MCRF4XX (the X.25 variant MAVLink calls crc_accumulate), used for
every outbound frame.

Parameters:
    - initial value 0xFFFF
    - polynomial 0x1021, processed reflected (LSB first, 0x8408)
    - no final XOR
    - check value over b"123456789": 0x6F91

The checksum covers every header byte after the start byte plus the
payload, and is appended to the frame little-endian.
"""

CRC_INIT = 0xFFFF
CRC_POLY = 0x1021
CRC_CHECK = 0x6F91

# CRC_POLY with its bit order reversed
_CRC_POLY_REFLECTED = 0x8408


def crc16(data: bytes, crc: int = CRC_INIT) -> int:
    """
    Compute the frame checksum over ``data``.

    Args:
        data: Bytes to checksum
        crc: Running value, allows checksumming in several calls

    Returns:
        16-bit checksum
    """
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ _CRC_POLY_REFLECTED
            else:
                crc >>= 1
    return crc


def frame_checksum(frame_without_crc: bytes) -> bytes:
    """Checksum bytes (little-endian) for a frame that still lacks them."""
    value = crc16(frame_without_crc[1:])
    return value.to_bytes(2, "little")
