"""Remote recording control (OBS Studio)."""

from .actions import (
    OBSAuthenticationError,
    OBSConnectionError,
    OBSError,
    OBSRequestError,
    RecordingAction,
)
from .obs_connection import OBSConnection, build_auth_string
from .retry_policy import RetryOutcome, RetryPolicy, RetryResult

__all__ = [
    'OBSAuthenticationError',
    'OBSConnection',
    'OBSConnectionError',
    'OBSError',
    'OBSRequestError',
    'RecordingAction',
    'RetryOutcome',
    'RetryPolicy',
    'RetryResult',
    'build_auth_string',
]
