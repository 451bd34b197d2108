"""
Protocol Constants
==================

Wire-level constants for the MAVLink subset handled by this client.

Only the messages the client actually reads or writes are listed here.
"""

# Start-of-frame markers
MAVLINK_V1_STX = 0xFE
MAVLINK_V2_STX = 0xFD

# Header sizes (including start byte)
V1_HEADER_LEN = 6
V2_HEADER_LEN = 10
CHECKSUM_LEN = 2
SIGNATURE_LEN = 13

# Bytes that must follow a start byte before its header can be read
V1_MIN_LOOKAHEAD = 6
V2_MIN_LOOKAHEAD = 12

# v2 incompat flags
MAVLINK_IFLAG_SIGNED = 0x01

# Message ids
MSG_ID_HEARTBEAT = 0
MSG_ID_SYS_STATUS = 1
MSG_ID_PARAM_SET = 23
MSG_ID_ATTITUDE = 30
MSG_ID_GLOBAL_POSITION_INT = 33
MSG_ID_VFR_HUD = 74
MSG_ID_SET_MESSAGE_INTERVAL = 511

MESSAGE_NAMES = {
    MSG_ID_HEARTBEAT: "HEARTBEAT",
    MSG_ID_SYS_STATUS: "SYS_STATUS",
    MSG_ID_PARAM_SET: "PARAM_SET",
    MSG_ID_ATTITUDE: "ATTITUDE",
    MSG_ID_GLOBAL_POSITION_INT: "GLOBAL_POSITION_INT",
    MSG_ID_VFR_HUD: "VFR_HUD",
    MSG_ID_SET_MESSAGE_INTERVAL: "SET_MESSAGE_INTERVAL",
}

# Payload sizes
ATTITUDE_PAYLOAD_LEN = 28
HEARTBEAT_PAYLOAD_LEN = 9
INTERVAL_PAYLOAD_LEN = 20
PARAM_ID_LEN = 16

# Heartbeat identity (ground station peer)
MAV_TYPE_GCS = 6
MAV_AUTOPILOT_GENERIC = 0
MAV_STATE_ACTIVE = 4
MAVLINK_PROTOCOL_VERSION = 3

# PARAM_SET value type
MAV_PARAM_TYPE_REAL32 = 9

# Default addressing
GCS_SYSTEM_ID = 255
GCS_COMPONENT_ID = 1
DEFAULT_TARGET_SYSTEM = 1
DEFAULT_TARGET_COMPONENT = 1


def message_name(msg_id: int) -> str:
    """Human-readable name for a message id."""
    return MESSAGE_NAMES.get(msg_id, f"MSG_{msg_id}")
