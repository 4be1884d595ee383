"""Exceptions raised by the import and snapshot layers."""

from __future__ import annotations


class JiraReportError(Exception):
    """Base class for errors surfaced to callers of the engine."""


class MalformedInputError(JiraReportError):
    """The tracker export is not well-formed XML; nothing was imported."""


class InvalidFormatError(JiraReportError):
    """A snapshot lacks required fields or cannot be decoded; nothing was loaded."""
