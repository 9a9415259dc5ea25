"""
CRTP port/channel identifiers and fixed frames used on the UDP link.

All multi-byte fields on the wire are little-endian. Every frame except
HIGH_LEVEL_ENABLE_STEP2 ends with a checksum byte equal to the sum of the
preceding bytes modulo 256.
"""

# Header byte = (port << 4) | channel
PORT_PARAM = 0x02
PORT_COMMANDER = 0x03
PORT_LOGGING = 0x05
PORT_GENERIC_SETPOINT = 0x07
PORT_LINK_CONTROL = 0x0F

CHANNEL_LOG_DATA = 0x02
CHANNEL_HOVER = 0x0C
CHANNEL_PARAM_RESPONSE = 0x0D
CHANNEL_HEARTBEAT = 0x0D

# Inbound (port, channel) signatures
HEARTBEAT_REPLY_SIGNATURE = (PORT_LINK_CONTROL, CHANNEL_HEARTBEAT)
VOLTAGE_LOG_SIGNATURE = (PORT_LOGGING, CHANNEL_LOG_DATA)
HEIGHT_SENSOR_REPLY_SIGNATURE = (PORT_PARAM, CHANNEL_PARAM_RESPONSE)

# Commander setpoint: header + roll f32 + -pitch f32 + yaw f32 + thrust u16 + checksum
HEADER_COMMANDER = 0x30
COMMANDER_PACKET_SIZE = 16
COMMANDER_FORMAT = "<BfffH"

# Hover setpoint: header + command + vx f32 + vy f32 + yaw_rate f32 + height f32 + checksum
HEADER_HOVER = 0x7C
COMMAND_HOVER_SETPOINT = 0x05
HOVER_PACKET_SIZE = 19
HOVER_FORMAT = "<BBffff"

# Outbound fixed frames
HEARTBEAT_PING = bytes([0xFD, 0x00, 0xFD])
VOLTAGE_LOG_CONFIG = bytes([0x5D, 0x06, 0x01, 0x77, 0x02, 0x00, 0xDD])
VOLTAGE_LOG_START = bytes([0x5D, 0x03, 0x01, 0x0A, 0x6B])
VOLTAGE_LOG_STOP = bytes([0x5D, 0x04, 0x01, 0x62])
HEIGHT_SENSOR_REQUEST = bytes([0x2D, 0x02, 0x00, 0x2F])
HIGH_LEVEL_ENABLE_STEP1 = bytes([0x2E, 0x02, 0x00, 0x01, 0x31])
HIGH_LEVEL_ENABLE_STEP2 = bytes([0x2F, 0x02, 0x01])

# Inbound markers and field offsets
VOLTAGE_MARKER = bytes([0x52, 0x01])
VOLTAGE_OFFSET = 5
VOLTAGE_MIN_LENGTH = 9

HEIGHT_SENSOR_MARKER = bytes([0x2D, 0x02])
HEIGHT_SENSOR_STATUS_OFFSET = 4
HEIGHT_SENSOR_MIN_LENGTH = 5
HEIGHT_SENSOR_PRESENT = 0x01
