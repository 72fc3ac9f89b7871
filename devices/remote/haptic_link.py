# devices/remote/haptic_link.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.mapping import HapticPattern

from .udp_gateway import UdpEndpoint, UdpGateway


def _to_u8(level: float) -> int:
    # 0..1 -> 0..255, clamped so the player never sees garbage
    if level != level:
        return 0
    v = int(round(float(level) * 255.0))
    return 0 if v < 0 else 255 if v > 255 else v


def format_pattern(pattern: HapticPattern, intensity: float) -> str:
    return f"pattern:{pattern.value}:{_to_u8(intensity)}"


def format_intensity(intensity: float) -> str:
    return f"intensity:{_to_u8(intensity)}"


@dataclass
class HapticLink:
    """
    Remote haptic player (string protocol).

    Protocol:
      - Select pattern: "pattern:<name>:<0..255>"   e.g. "pattern:heartbeat:180"
      - Continuous level: "intensity:<0..255>"
    The player owns the actual pulse timing; we only pick the pattern.
    """

    ip: str = "127.0.0.1"
    port: int = 4211
    gateway: Optional[UdpGateway] = None

    def __post_init__(self) -> None:
        self._owns_gateway = self.gateway is None
        if self.gateway is None:
            self.gateway = UdpGateway(async_send=True)
        self._endpoint = UdpEndpoint(self.ip, self.port)
        self._last_level: Optional[int] = None

    def close(self) -> None:
        if self._owns_gateway and self.gateway is not None:
            self.gateway.close()

    def play(self, pattern: HapticPattern, intensity: float = 1.0) -> bool:
        assert self.gateway is not None
        return self.gateway.send(self._endpoint, format_pattern(pattern, intensity))

    def intensity(self, level: float) -> bool:
        """Send the continuous level; unchanged levels are not re-sent."""
        u8 = _to_u8(level)
        if u8 == self._last_level:
            return True
        assert self.gateway is not None
        sent = self.gateway.send(self._endpoint, format_intensity(level))
        if sent:
            self._last_level = u8
        return sent

    def stop(self) -> bool:
        self._last_level = None
        return self.play(HapticPattern.IDLE, 0.0)
