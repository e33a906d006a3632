"""
Failures of the enhancement pipeline.

Every one of these is caught by NotificationDispatcher and turned into
"forward the original notification". None of them reach the caller.
"""

from __future__ import annotations


class EnhancementError(RuntimeError):
    pass


class NoProviderConfigured(EnhancementError):
    pass


class DecodeError(EnhancementError):
    pass


class ResizeError(EnhancementError):
    pass


class InferenceTimeout(EnhancementError):
    pass


class CallError(EnhancementError):
    pass


class SchemaError(EnhancementError):
    pass
