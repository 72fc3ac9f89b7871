# devices/remote/scene_link.py

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

from core.category import AudioCategory
from core.mapping import HapticPattern
from core.state.audio_state import ReactiveSnapshot

from .udp_gateway import UdpEndpoint, UdpGateway

PACKET_VERSION = 1
PACKET_FORMAT = "BBBBBBBB"

_PATTERN_INDEX = {p: i for i, p in enumerate(HapticPattern)}
_CATEGORY_INDEX = {c: i for i, c in enumerate(AudioCategory)}


def _u8(level: float) -> int:
    # 0..1 -> 0..255
    if level != level:
        return 0
    v = int(round(float(level) * 255.0))
    return 0 if v < 0 else 255 if v > 255 else v


def pack_snapshot(snap: ReactiveSnapshot) -> bytes:
    """
    Renderer packet (8 bytes):
      struct.pack('8B', version, loudness, low, mid, high, very_high, pattern, category)
    Levels are 0..1 scaled to 0..255; pattern/category are enum positions.
    """
    b = snap.bands
    return struct.pack(
        PACKET_FORMAT,
        PACKET_VERSION,
        _u8(snap.loudness),
        _u8(b.low),
        _u8(b.mid),
        _u8(b.high),
        _u8(b.very_high),
        _PATTERN_INDEX[snap.pattern],
        _CATEGORY_INDEX[snap.category],
    )


@dataclass
class SceneLink:
    """
    Pushes smoothed state to an external renderer (binary UDP protocol).

    Target defaults to localhost:4212; the renderer is expected to keep the
    last packet and interpolate between ticks.
    """

    ip: str = "127.0.0.1"
    port: int = 4212
    gateway: Optional[UdpGateway] = None

    def __post_init__(self) -> None:
        self._owns_gateway = self.gateway is None
        if self.gateway is None:
            self.gateway = UdpGateway(async_send=True)
        self._endpoint = UdpEndpoint(self.ip, self.port)

    def close(self) -> None:
        # Close only if we created the gateway ourselves.
        if self._owns_gateway and self.gateway is not None:
            self.gateway.close()

    def send(self, snap: ReactiveSnapshot) -> bool:
        assert self.gateway is not None
        return self.gateway.send(self._endpoint, pack_snapshot(snap))
