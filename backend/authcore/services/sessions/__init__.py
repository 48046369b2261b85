from authcore.services.sessions.device import detect_device_type, device_name_from
from authcore.services.sessions.dto import DeviceInfo, SessionOut
from authcore.services.sessions.registry import SessionRegistry

__all__ = [
    "DeviceInfo",
    "SessionOut",
    "SessionRegistry",
    "detect_device_type",
    "device_name_from",
]
