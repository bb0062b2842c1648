"""Acoustic shadow detection across a network of sound level nodes."""

from __future__ import annotations

import math
import struct
import time
from dataclasses import dataclass, field

AUDIO_PACKET_TYPE = 0x01
NUM_FREQ_BANDS = 8
BAND_STEP_DB = 2.0

SHADOW_THRESHOLD_DB = 6.0
MAX_NODES = 20
STALE_AFTER_US = 1_000_000

_PACKET_FORMAT = struct.Struct(f"<BBf{NUM_FREQ_BANDS}fI")
PACKET_SIZE = _PACKET_FORMAT.size


def _now_us() -> int:
    return time.monotonic_ns() // 1000


def _check_mac(mac) -> bytes:
    value = bytes(mac)
    if len(value) != 6:
        raise ValueError(f"MAC address must be 6 bytes, got {len(value)}")
    return value


def format_mac(mac) -> str:
    """Render a 6-byte MAC address as colon-separated upper-case hex."""
    return ":".join(f"{byte:02X}" for byte in _check_mac(mac))


@dataclass
class AudioPacket:
    """Sound level broadcast exchanged between nodes."""

    msg_type: int
    node_id: int
    spl_value: float
    freq_bands: list[float] = field(default_factory=lambda: [0.0] * NUM_FREQ_BANDS)
    timestamp: int = 0

    def pack(self) -> bytes:
        """Encode the packet in its little-endian wire form."""
        if len(self.freq_bands) != NUM_FREQ_BANDS:
            raise ValueError(f"expected {NUM_FREQ_BANDS} frequency bands")
        try:
            return _PACKET_FORMAT.pack(
                self.msg_type,
                self.node_id,
                self.spl_value,
                *self.freq_bands,
                self.timestamp,
            )
        except struct.error as exc:
            raise ValueError(f"cannot encode packet: {exc}") from exc

    @classmethod
    def unpack(cls, data) -> AudioPacket:
        """Decode a packet from its wire form."""
        raw = bytes(data)
        if len(raw) != PACKET_SIZE:
            raise ValueError(f"audio packet must be {PACKET_SIZE} bytes, got {len(raw)}")
        msg_type, node_id, spl, *rest = _PACKET_FORMAT.unpack(raw)
        return cls(
            msg_type=msg_type,
            node_id=node_id,
            spl_value=spl,
            freq_bands=list(rest[:NUM_FREQ_BANDS]),
            timestamp=rest[NUM_FREQ_BANDS],
        )


def build_packet(node_id: int, spl: float, timestamp_ms: int) -> AudioPacket:
    """Build the broadcast packet for a local sound level reading."""
    return AudioPacket(
        msg_type=AUDIO_PACKET_TYPE,
        node_id=node_id,
        spl_value=spl,
        freq_bands=[spl - band * BAND_STEP_DB for band in range(NUM_FREQ_BANDS)],
        timestamp=timestamp_ms & 0xFFFFFFFF,
    )


@dataclass
class NodeRecord:
    """Latest reading heard from one remote node."""

    mac: bytes
    spl_value: float
    timestamp: int
    x_pos: float = 0.0
    y_pos: float = 0.0


@dataclass
class ShadowReport:
    """Outcome of one shadow check."""

    local_spl: float
    average_spl: float
    local_difference: float
    local_in_shadow: bool
    shadowed_nodes: list[tuple[NodeRecord, float]] = field(default_factory=list)


class ShadowDetector:
    """Registry of remote nodes and comparison of their levels with the local one."""

    def __init__(
        self,
        threshold: float = SHADOW_THRESHOLD_DB,
        max_nodes: int = MAX_NODES,
        stale_after: int = STALE_AFTER_US,
    ):
        self.threshold = threshold
        self.max_nodes = max_nodes
        self.stale_after = stale_after
        self._nodes: list[NodeRecord] = []

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> list[NodeRecord]:
        """Registered nodes in order of first contact."""
        return list(self._nodes)

    def register(self, mac, spl: float, now: int | None = None) -> bool:
        """Record a reading; return True when the node is new."""
        address = _check_mac(mac)
        stamp = _now_us() if now is None else now
        for node in self._nodes:
            if node.mac == address:
                node.spl_value = spl
                node.timestamp = stamp
                return False
        if len(self._nodes) >= self.max_nodes:
            return False
        self._nodes.append(NodeRecord(mac=address, spl_value=spl, timestamp=stamp))
        return True

    def receive(self, mac, data, now: int | None = None) -> AudioPacket | None:
        """Handle a received frame; frames of the wrong size are ignored."""
        if len(data) != PACKET_SIZE:
            return None
        packet = AudioPacket.unpack(data)
        self.register(mac, packet.spl_value, now)
        return packet

    def detect(self, local_spl: float, now: int | None = None) -> ShadowReport | None:
        """Compare every fresh level with the network average.

        Returns None while fewer than two remote nodes are known.
        """
        if len(self._nodes) < 2:
            return None
        stamp = _now_us() if now is None else now
        fresh = [node for node in self._nodes if stamp - node.timestamp < self.stale_after]

        average = (local_spl + sum(node.spl_value for node in fresh)) / (len(fresh) + 1)
        local_diff = math.fabs(local_spl - average)

        shadowed = []
        for node in fresh:
            diff = math.fabs(node.spl_value - average)
            if diff > self.threshold:
                shadowed.append((node, diff))

        return ShadowReport(
            local_spl=local_spl,
            average_spl=average,
            local_difference=local_diff,
            local_in_shadow=local_diff > self.threshold,
            shadowed_nodes=shadowed,
        )