"""Recording commands understood by the OBS connection."""

from enum import Enum


class RecordingAction(Enum):
    START = "start"
    STOP = "stop"
    PAUSE = "pause"
    UNPAUSE = "unpause"


# obs-websocket v5 request type for each action
REQUEST_TYPES = {
    RecordingAction.START: "StartRecord",
    RecordingAction.STOP: "StopRecord",
    RecordingAction.PAUSE: "PauseRecord",
    RecordingAction.UNPAUSE: "ResumeRecord",
}


class OBSError(Exception):
    """Base class for failures talking to OBS."""


class OBSConnectionError(OBSError):
    """OBS is not reachable, or the socket closed mid-request."""


class OBSAuthenticationError(OBSConnectionError):
    """OBS rejected the identify handshake."""


class OBSRequestError(OBSError):
    """OBS answered a request with a failure status."""

    def __init__(self, request_type: str, code: int, comment: str = ""):
        self.request_type = request_type
        self.code = code
        self.comment = comment
        detail = f": {comment}" if comment else ""
        super().__init__(f"{request_type} failed with code {code}{detail}")
