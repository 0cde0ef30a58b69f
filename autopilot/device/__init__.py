"""Device-side collaborators: the HTTP action bridge."""

from autopilot.device.bridge import HTTPDeviceBridge

__all__ = ["HTTPDeviceBridge"]
