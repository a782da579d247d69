"""Runtime for process sessions.

Channels to OS processes, the goon wire protocol, input feeding and the
communication worker that ties them together.
"""

from __future__ import annotations

from .channel import Channel, FramedChannel, PipeChannel, ProcessSpec
from .events import ChannelEvent, ChannelFailure, DataEvent, ExitEvent
from .feeder import feed_input
from .worker import CommunicationWorker, WorkerState

__all__ = [
    "Channel",
    "FramedChannel",
    "PipeChannel",
    "ProcessSpec",
    "ChannelEvent",
    "ChannelFailure",
    "DataEvent",
    "ExitEvent",
    "feed_input",
    "CommunicationWorker",
    "WorkerState",
]
