#!/usr/bin/env python3
"""
wirediff Error Hierarchy
Canonical exception classes for the differential engine.
"""

from enum import Enum


class ErrorCode(Enum):
    UNKNOWN = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    REPRODUCTION_ERROR = "REPRODUCTION_ERROR"
    EVIDENCE_ERROR = "EVIDENCE_ERROR"


class WireDiffError(Exception):
    """Base class for all wirediff exceptions"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ScenarioValidationError(WireDiffError, ValueError):
    """Raised when a scenario, payload or corpus request is malformed"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class ConfigurationError(WireDiffError, ValueError):
    """Raised when run configuration or thresholds are invalid"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ReproductionError(WireDiffError):
    """Raised when a replayed trace does not reproduce the expected failure"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.REPRODUCTION_ERROR, details)


class EvidenceError(WireDiffError):
    """Raised when a gate evidence artifact cannot be read"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.EVIDENCE_ERROR, details)
