"""Camera stream configuration and RTSP URL construction."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

MASK = "********"


class RtspProtocol(enum.Enum):
    """Camera vendor whose RTSP path layout is used."""

    HIKVISION = "HKVISION"
    DAHUA = "DAHUA"


_STREAM_PATHS = {
    RtspProtocol.HIKVISION: "/Streaming/Channels/101",
    RtspProtocol.DAHUA: "/cam/realmonitor?channel=1@subtype=0",
}


@dataclass
class CropRegion:
    """Selected region of a frame, as fractions of its width and height."""

    x: float = 0.0
    y: float = 0.0
    dx: float = 1.0
    dy: float = 1.0


@dataclass
class RtspConfig:
    """Connection settings for one RTSP camera stream."""

    rtsp_id: int = 0
    protocol: RtspProtocol = RtspProtocol.HIKVISION
    rtsp_name: str = ""
    username: str = ""
    password: str = ""
    ip: str = ""
    port: str = ""
    channel: str = "101"
    subtype: str = "0"
    rtsp_url: str = ""
    crop: CropRegion = field(default_factory=CropRegion)

    def is_hikvision(self) -> bool:
        return self.protocol is RtspProtocol.HIKVISION

    def is_dahua(self) -> bool:
        return self.protocol is RtspProtocol.DAHUA

    def _build_url(self, secret: str) -> str:
        path = _STREAM_PATHS.get(self.protocol)
        if path is None:
            return ""
        return f"rtsp://{self.username}:{secret}@{self.ip}:{self.port}{path}"

    def to_url(self) -> str:
        """Return the full stream URL, credentials included."""
        return self._build_url(self.password)

    def to_masked_url(self) -> str:
        """Return the stream URL with the password hidden."""
        return self._build_url(MASK)

    def describe(self) -> str:
        """Return a multi-line, password-free summary of the configuration."""
        crop = self.crop
        protocol = "HKVISION" if self.is_hikvision() else "DAHUA"
        lines = [
            "rtsp_config {",
            f" rtsp_id:            {self.rtsp_id}",
            f" rtsp_protocal_type: {protocol}",
            f" username:           {self.username}",
            " password:           *********",
            f" ip:                 {self.ip}",
            f" port:               {self.port}",
            f" channel:            {self.channel}",
            f" subtype:            {self.subtype}",
            f" rtsp_url:           {self.rtsp_url}",
            f" cropped_position:  {{{crop.x:g}, {crop.y:g}, {crop.dx:g}, {crop.dy:g}}}",
            f" masked_url: {self.to_masked_url()}",
            "}",
        ]
        return "\n".join(lines)