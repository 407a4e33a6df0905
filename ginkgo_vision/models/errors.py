class GinkgoVisionError(Exception):
    """Base class for all errors raised by the ginkgo vision services"""


class AnalysisError(GinkgoVisionError):
    """The external model produced no usable analysis.

    Network failures, service errors, timeouts, empty responses and
    replies that do not match the analysis schema all end up here.
    """


class AcquisitionError(GinkgoVisionError):
    """The uploaded image could not be read"""


class InvalidImageError(AcquisitionError):
    """The uploaded file is not an image"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(GinkgoVisionError):
    """The analysis model cannot be reached with the current settings"""
