# meetlingo/core/errors.py
"""
Application error types.

Only failures that must stop a request or the process are raised as these;
transient network problems in the caption path are absorbed where they occur.
"""


class MeetLingoError(Exception):
    """Base class for application errors."""


class ConfigError(MeetLingoError):
    """Required configuration is missing or malformed. Fatal at startup."""


class TokenIssueError(MeetLingoError):
    """A media-service access token could not be issued. Blocks joining a room."""
