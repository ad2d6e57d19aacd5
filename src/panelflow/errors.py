"""Exception hierarchy for PanelFlow."""


class PanelFlowError(Exception):
    """Base class for all PanelFlow errors."""


class InvalidImageError(PanelFlowError):
    """Input image is unreadable, empty or in an unsupported layout."""


class InvalidParameterError(PanelFlowError, ValueError):
    """A detection tunable is out of range."""


class ProcessingError(PanelFlowError):
    """The underlying image library failed during detection."""


class DetectorNotReadyError(ProcessingError):
    """Detection was requested before initialize() completed."""


class PanelNotFoundError(PanelFlowError, KeyError):
    """No panel with the requested identifier exists on the page."""
