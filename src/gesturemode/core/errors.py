"""Exception hierarchy for capture, detection and lifecycle failures."""


class GestureModeError(Exception):
    """Base class for all gesturemode errors."""


class CaptureError(GestureModeError):
    """Camera stream could not be acquired."""

    status = "camera error"


class DeviceUnavailable(CaptureError):
    """No camera device could be opened."""

    status = "device unavailable"


class PermissionDenied(CaptureError):
    """Camera access refused, or the device is held by another consumer."""

    status = "permission denied"


class DeviceUnsupported(CaptureError):
    """The capture backend is missing or cannot decode frames."""

    status = "device unsupported"


class DetectorError(GestureModeError):
    """Hand landmarker could not be created."""


class PredictionError(GestureModeError):
    """A single detection call failed."""


class LifecycleError(GestureModeError):
    """Illegal lifecycle phase transition."""
