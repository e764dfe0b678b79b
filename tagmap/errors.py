#!/usr/bin/env python3
"""Exception types shared by the pipeline stages."""


class PipelineError(Exception):
    """Base class for all tag pipeline failures"""


class LedgerError(PipelineError):
    """A required ledger or input file is missing or unreadable"""


class ClassificationServiceError(PipelineError):
    """The classification service could not be reached or answered with an HTTP error"""


class InvalidResponseError(PipelineError):
    """The classification service answered, but the payload is not the expected structure"""

    def __init__(self, key: str, reason: str, raw: str = ''):
        self.key = key
        self.reason = reason
        self.raw = raw
        super().__init__(f"Invalid model response for '{key}': {reason}")
