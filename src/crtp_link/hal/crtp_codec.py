"""
Binary codec for CRTP frames carried in UDP datagrams.

Frame layouts:
    Commander setpoint (16 bytes):
        - header: 0x30 (port 3, channel 0)
        - roll: float32 degrees
        - pitch: float32 degrees, negated on the wire
        - yaw: float32 degrees/second
        - thrust: uint16
        - checksum: uint8

    Hover setpoint (19 bytes):
        - header: 0x7C (port 7, channel 12)
        - command: 0x05
        - vx, vy: float32 m/s
        - yaw_rate: float32 degrees/second
        - height: float32 meters
        - checksum: uint8

The checksum is the sum of every byte before it, modulo 256. Encoders do not
clamp values; range limits belong to the caller. Decoders never raise and
return None for anything that is not the expected frame.
"""

import struct
from dataclasses import dataclass

from src.crtp_link.constants.crtp_frames import (
    COMMAND_HOVER_SETPOINT,
    COMMANDER_FORMAT,
    COMMANDER_PACKET_SIZE,
    HEADER_COMMANDER,
    HEADER_HOVER,
    HEIGHT_SENSOR_MARKER,
    HEIGHT_SENSOR_MIN_LENGTH,
    HEIGHT_SENSOR_PRESENT,
    HEIGHT_SENSOR_STATUS_OFFSET,
    HOVER_FORMAT,
    HOVER_PACKET_SIZE,
    VOLTAGE_MARKER,
    VOLTAGE_MIN_LENGTH,
    VOLTAGE_OFFSET,
)

THRUST_MAX = 0xFFFF


@dataclass(frozen=True)
class CommanderSetpoint:
    """Attitude setpoint as the caller expressed it (pitch not inverted)."""

    roll: float
    pitch: float
    yaw: float
    thrust: int


@dataclass(frozen=True)
class HoverSetpoint:
    """Velocity plus absolute height setpoint."""

    vx: float
    vy: float
    yaw_rate: float
    height: float


def checksum(data: bytes | bytearray) -> int:
    """Return the sum of all bytes modulo 256."""
    return sum(data) & 0xFF


def append_checksum(data: bytes | bytearray) -> bytes:
    """Return data followed by its checksum byte."""
    return bytes(data) + bytes([checksum(data)])


def verify_checksum(frame: bytes | bytearray) -> bool:
    """Check that the trailing byte is the checksum of the bytes before it."""
    if len(frame) < 2:
        return False
    return checksum(frame[:-1]) == frame[-1]


def encode_header(port: int, channel: int) -> int:
    """Pack a port/channel pair into a header byte."""
    if not (0 <= port <= 0x0F and 0 <= channel <= 0x0F):
        raise ValueError(f"Port and channel must be 0-15, got port={port} channel={channel}")
    return (port << 4) | channel


def decode_header(header: int) -> tuple[int, int]:
    """Split a header byte into (port, channel)."""
    return (header >> 4) & 0x0F, header & 0x0F


def encode_commander(roll: float, pitch: float, yaw: float, thrust: int) -> bytes:
    """
    Encode a commander setpoint frame.

    Args:
        roll: Roll angle in degrees
        pitch: Pitch angle in degrees (inverted on the wire)
        yaw: Yaw rate in degrees/second
        thrust: Thrust 0-65535

    Returns:
        16-byte frame

    Raises:
        ValueError: If thrust does not fit an unsigned 16-bit field
    """
    thrust = int(thrust)
    if not (0 <= thrust <= THRUST_MAX):
        raise ValueError(f"Thrust must be between 0 and {THRUST_MAX}, got {thrust}")

    body = struct.pack(COMMANDER_FORMAT, HEADER_COMMANDER, roll, -pitch, yaw, thrust)
    return append_checksum(body)


def decode_commander(frame: bytes | bytearray) -> CommanderSetpoint | None:
    """Decode a commander setpoint frame, or None if it is not one."""
    if len(frame) != COMMANDER_PACKET_SIZE or frame[0] != HEADER_COMMANDER:
        return None
    if not verify_checksum(frame):
        return None

    _, roll, wire_pitch, yaw, thrust = struct.unpack(COMMANDER_FORMAT, bytes(frame[:-1]))
    return CommanderSetpoint(roll=roll, pitch=-wire_pitch, yaw=yaw, thrust=thrust)


def encode_hover_setpoint(vx: float, vy: float, yaw_rate: float, height: float) -> bytes:
    """
    Encode a hover setpoint frame for the high-level controller.

    Returns:
        19-byte frame
    """
    body = struct.pack(HOVER_FORMAT, HEADER_HOVER, COMMAND_HOVER_SETPOINT, vx, vy, yaw_rate, height)
    return append_checksum(body)


def decode_hover_setpoint(frame: bytes | bytearray) -> HoverSetpoint | None:
    """Decode a hover setpoint frame, or None if it is not one."""
    if len(frame) != HOVER_PACKET_SIZE:
        return None
    if frame[0] != HEADER_HOVER or frame[1] != COMMAND_HOVER_SETPOINT:
        return None
    if not verify_checksum(frame):
        return None

    _, _, vx, vy, yaw_rate, height = struct.unpack(HOVER_FORMAT, bytes(frame[:-1]))
    return HoverSetpoint(vx=vx, vy=vy, yaw_rate=yaw_rate, height=height)


def decode_voltage(frame: bytes | bytearray) -> float | None:
    """
    Extract the battery voltage from a log data frame.

    Expected layout: 52 01 XX XX XX <float32 voltage> ...
    """
    if len(frame) < VOLTAGE_MIN_LENGTH or bytes(frame[:2]) != VOLTAGE_MARKER:
        return None

    (voltage,) = struct.unpack_from("<f", bytes(frame), VOLTAGE_OFFSET)
    return voltage


def decode_height_sensor_status(frame: bytes | bytearray) -> bool | None:
    """
    Extract the height-sensor presence flag from a parameter response.

    Expected layout: 2D 02 XX XX <status> ... where status 0x01 means present.
    """
    if len(frame) < HEIGHT_SENSOR_MIN_LENGTH or bytes(frame[:2]) != HEIGHT_SENSOR_MARKER:
        return None
    return frame[HEIGHT_SENSOR_STATUS_OFFSET] == HEIGHT_SENSOR_PRESENT


def format_frame(frame: bytes | bytearray) -> str:
    """Render a frame as space-separated hex for debug logging."""
    return " ".join(f"{b:02x}" for b in frame)
