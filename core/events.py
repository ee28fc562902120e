"""Typed records for every callback the native recording engine emits.

Each native callback maps to exactly one :class:`EventKind` and one record
class.  Records keep the engine's positional argument order in ``ARGS`` so
that :attr:`SessionEvent.payload` hands subscribers the original payload
tuple unchanged.  Stats and info blobs are modelled explicitly but keep any
keys the engine adds later (``extra="allow"``).
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, ClassVar, Dict, Literal, Optional, Tuple, Type, Union

import ulid
from pydantic import BaseModel, ConfigDict, Field, StrictBool

Uid = Union[int, str]
Number = Union[int, float]


def now_ts_ms() -> int:
    """Return the current timestamp in milliseconds."""

    return int(time.time() * 1000)


def new_event_id() -> str:
    """Generate a ULID based identifier for events."""

    return str(ulid.new())


class EventKind(str, Enum):
    JOIN_CHANNEL = "JoinChannel"
    LEAVE_CHANNEL = "LeaveChannel"
    ERROR = "Error"
    USER_JOIN = "UserJoin"
    USER_LEAVE = "UserLeave"
    ACTIVE_SPEAKER = "ActiveSpeaker"
    CONNECTION_LOST = "ConnectionLost"
    CONNECTION_INTERRUPTED = "ConnectionInterrupted"
    STREAM_CHANGED = "StreamChanged"
    FIRST_VIDEO_FRAME = "FirstVideoFrame"
    FIRST_AUDIO_FRAME = "FirstAudioFrame"
    AUDIO_VOLUME_INDICATION = "AudioVolumeIndication"
    REMOTE_VIDEO_STREAM_STATE_CHANGED = "RemoteVideoStreamStateChanged"
    REMOTE_AUDIO_STREAM_STATE_CHANGED = "RemoteAudioStreamStateChanged"
    REJOIN_SUCCESS = "RejoinSuccess"
    CONNECTION_STATE_CHANGED = "ConnectionStateChanged"
    REMOTE_VIDEO_STATS = "RemoteVideoStats"
    REMOTE_AUDIO_STATS = "RemoteAudioStats"
    RECORDING_STATS = "RecordingStats"
    LOCAL_USER_REGISTER = "LocalUserRegister"
    USER_INFO_UPDATED = "UserInfoUpdated"


# Native callback name -> public event kind.
NATIVE_CALLBACKS: Dict[str, EventKind] = {
    "REC_EVENT_JOIN_CHANNEL": EventKind.JOIN_CHANNEL,
    "REC_EVENT_LEAVE_CHANNEL": EventKind.LEAVE_CHANNEL,
    "REC_EVENT_ERROR": EventKind.ERROR,
    "REC_EVENT_USER_JOIN": EventKind.USER_JOIN,
    "REC_EVENT_USER_LEAVE": EventKind.USER_LEAVE,
    "REC_EVENT_ACTIVE_SPEAKER": EventKind.ACTIVE_SPEAKER,
    "REC_EVENT_CONN_LOST": EventKind.CONNECTION_LOST,
    "REC_EVENT_CONN_INTER": EventKind.CONNECTION_INTERRUPTED,
    "REC_EVENT_STREAM_CHANGED": EventKind.STREAM_CHANGED,
    "REC_EVENT_FIRST_VIDEO_FRAME": EventKind.FIRST_VIDEO_FRAME,
    "REC_EVENT_FIRST_AUDIO_FRAME": EventKind.FIRST_AUDIO_FRAME,
    "RTC_EVENT_AUDIO_VOLUME_INDICATION": EventKind.AUDIO_VOLUME_INDICATION,
    "REC_EVENT_REMOTE_VIDEO_STREAM_STATE_CHANGED": EventKind.REMOTE_VIDEO_STREAM_STATE_CHANGED,
    "REC_EVENT_REMOTE_AUDIO_STREAM_STATE_CHANGED": EventKind.REMOTE_AUDIO_STREAM_STATE_CHANGED,
    "REC_EVENT_REJOIN_SUCCESS": EventKind.REJOIN_SUCCESS,
    "REC_EVENT_CONN_STATE_CHANGED": EventKind.CONNECTION_STATE_CHANGED,
    "REC_EVENT_REMOTE_VIDEO_STATS": EventKind.REMOTE_VIDEO_STATS,
    "REC_EVENT_REMOTE_AUDIO_STATS": EventKind.REMOTE_AUDIO_STATS,
    "REC_EVENT_RECORDING_STATS": EventKind.RECORDING_STATS,
    "REC_EVENT_LOCAL_USER_REGISTER": EventKind.LOCAL_USER_REGISTER,
    "REC_EVENT_USER_INFO_UPDATED": EventKind.USER_INFO_UPDATED,
}


# ---------------------------------------------------------------------------
# Nested payload records
# ---------------------------------------------------------------------------


class _NativeRecord(BaseModel):
    """Vendor struct with camelCase keys; unknown keys are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, from_attributes=True, frozen=True)


class RemoteVideoStatsInfo(_NativeRecord):
    delay: Optional[Number] = None
    width: Optional[int] = None
    height: Optional[int] = None
    received_bitrate: Optional[Number] = Field(None, alias="receivedBitrate")
    decoder_output_frame_rate: Optional[Number] = Field(None, alias="decoderOutputFrameRate")
    renderer_output_frame_rate: Optional[Number] = Field(None, alias="rendererOutputFrameRate")
    rx_stream_type: Optional[int] = Field(None, alias="rxStreamType")


class RemoteAudioStatsInfo(_NativeRecord):
    quality: Optional[int] = None
    network_transport_delay: Optional[Number] = Field(None, alias="networkTransportDelay")
    jitter_buffer_delay: Optional[Number] = Field(None, alias="jitterBufferDelay")
    audio_loss_rate: Optional[Number] = Field(None, alias="audioLossRate")


class RecordingStatsInfo(_NativeRecord):
    duration: Optional[Number] = None
    rx_bytes: Optional[int] = Field(None, alias="rxBytes")
    rx_kbit_rate: Optional[Number] = Field(None, alias="rxKBitRate")
    rx_audio_kbit_rate: Optional[Number] = Field(None, alias="rxAudioKBitRate")
    rx_video_kbit_rate: Optional[Number] = Field(None, alias="rxVideoKBitRate")
    lastmile_delay: Optional[Number] = Field(None, alias="lastmileDelay")
    user_count: Optional[int] = Field(None, alias="userCount")
    cpu_app_usage: Optional[Number] = Field(None, alias="cpuAppUsage")
    cpu_total_usage: Optional[Number] = Field(None, alias="cpuTotalUsage")


class UserInfo(_NativeRecord):
    uid: Optional[Uid] = None
    user_account: Optional[str] = Field(None, alias="userAccount")


# ---------------------------------------------------------------------------
# Event records
# ---------------------------------------------------------------------------


class SessionEvent(BaseModel):
    """Base record for everything relayed from the engine."""

    model_config = ConfigDict(frozen=True)

    ARGS: ClassVar[Tuple[str, ...]] = ()

    id: str = Field(default_factory=new_event_id)
    ts_ms: int = Field(default_factory=now_ts_ms)
    session: str
    kind: EventKind
    extra_args: Tuple[Any, ...] = ()

    @property
    def payload(self) -> Tuple[Any, ...]:
        """Native positional payload, in the engine's argument order."""

        return tuple(getattr(self, name) for name in self.ARGS) + tuple(self.extra_args)


class JoinChannel(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("channel", "uid")
    kind: Literal[EventKind.JOIN_CHANNEL] = EventKind.JOIN_CHANNEL
    channel: Optional[str] = None
    uid: Optional[Uid] = None


class LeaveChannel(SessionEvent):
    kind: Literal[EventKind.LEAVE_CHANNEL] = EventKind.LEAVE_CHANNEL


class ErrorReported(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("err", "stat_code")
    kind: Literal[EventKind.ERROR] = EventKind.ERROR
    err: Optional[int] = None
    stat_code: Optional[int] = None


class UserJoin(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid",)
    kind: Literal[EventKind.USER_JOIN] = EventKind.USER_JOIN
    uid: Optional[Uid] = None


class UserLeave(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid",)
    kind: Literal[EventKind.USER_LEAVE] = EventKind.USER_LEAVE
    uid: Optional[Uid] = None


class ActiveSpeaker(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid",)
    kind: Literal[EventKind.ACTIVE_SPEAKER] = EventKind.ACTIVE_SPEAKER
    uid: Optional[Uid] = None


class ConnectionLost(SessionEvent):
    kind: Literal[EventKind.CONNECTION_LOST] = EventKind.CONNECTION_LOST


class ConnectionInterrupted(SessionEvent):
    kind: Literal[EventKind.CONNECTION_INTERRUPTED] = EventKind.CONNECTION_INTERRUPTED


class StreamChanged(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("receiving_audio", "receiving_video")
    kind: Literal[EventKind.STREAM_CHANGED] = EventKind.STREAM_CHANGED
    # Engine may send 0/1 or real booleans; both are kept as sent.
    receiving_audio: Optional[Union[StrictBool, int]] = None
    receiving_video: Optional[Union[StrictBool, int]] = None


class FirstVideoFrame(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid", "width", "height", "elapsed")
    kind: Literal[EventKind.FIRST_VIDEO_FRAME] = EventKind.FIRST_VIDEO_FRAME
    uid: Optional[Uid] = None
    width: Optional[int] = None
    height: Optional[int] = None
    elapsed: Optional[Number] = None


class FirstAudioFrame(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid", "elapsed")
    kind: Literal[EventKind.FIRST_AUDIO_FRAME] = EventKind.FIRST_AUDIO_FRAME
    uid: Optional[Uid] = None
    elapsed: Optional[Number] = None


class AudioVolumeIndication(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("speakers", "speaker_num")
    kind: Literal[EventKind.AUDIO_VOLUME_INDICATION] = EventKind.AUDIO_VOLUME_INDICATION
    # Vendor passes the speaker list through as-is (string or list of dicts).
    speakers: Any = None
    speaker_num: Optional[int] = None


class RemoteVideoStreamStateChanged(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid", "state", "reason")
    kind: Literal[EventKind.REMOTE_VIDEO_STREAM_STATE_CHANGED] = EventKind.REMOTE_VIDEO_STREAM_STATE_CHANGED
    uid: Optional[Uid] = None
    state: Optional[int] = None
    reason: Optional[int] = None


class RemoteAudioStreamStateChanged(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid", "state", "reason")
    kind: Literal[EventKind.REMOTE_AUDIO_STREAM_STATE_CHANGED] = EventKind.REMOTE_AUDIO_STREAM_STATE_CHANGED
    uid: Optional[Uid] = None
    state: Optional[int] = None
    reason: Optional[int] = None


class RejoinSuccess(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("channel", "uid")
    kind: Literal[EventKind.REJOIN_SUCCESS] = EventKind.REJOIN_SUCCESS
    channel: Optional[str] = None
    uid: Optional[Uid] = None


class ConnectionStateChanged(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("state", "reason")
    kind: Literal[EventKind.CONNECTION_STATE_CHANGED] = EventKind.CONNECTION_STATE_CHANGED
    state: Optional[int] = None
    reason: Optional[int] = None


class RemoteVideoStats(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid", "stats")
    kind: Literal[EventKind.REMOTE_VIDEO_STATS] = EventKind.REMOTE_VIDEO_STATS
    uid: Optional[Uid] = None
    stats: Optional[RemoteVideoStatsInfo] = None


class RemoteAudioStats(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid", "stats")
    kind: Literal[EventKind.REMOTE_AUDIO_STATS] = EventKind.REMOTE_AUDIO_STATS
    uid: Optional[Uid] = None
    stats: Optional[RemoteAudioStatsInfo] = None


class RecordingStats(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("stats",)
    kind: Literal[EventKind.RECORDING_STATS] = EventKind.RECORDING_STATS
    stats: Optional[RecordingStatsInfo] = None


class LocalUserRegister(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid", "user_account")
    kind: Literal[EventKind.LOCAL_USER_REGISTER] = EventKind.LOCAL_USER_REGISTER
    uid: Optional[Uid] = None
    user_account: Optional[str] = None


class UserInfoUpdated(SessionEvent):
    ARGS: ClassVar[Tuple[str, ...]] = ("uid", "info")
    kind: Literal[EventKind.USER_INFO_UPDATED] = EventKind.USER_INFO_UPDATED
    uid: Optional[Uid] = None
    info: Optional[UserInfo] = None


EVENT_MODELS: Dict[EventKind, Type[SessionEvent]] = {
    EventKind.JOIN_CHANNEL: JoinChannel,
    EventKind.LEAVE_CHANNEL: LeaveChannel,
    EventKind.ERROR: ErrorReported,
    EventKind.USER_JOIN: UserJoin,
    EventKind.USER_LEAVE: UserLeave,
    EventKind.ACTIVE_SPEAKER: ActiveSpeaker,
    EventKind.CONNECTION_LOST: ConnectionLost,
    EventKind.CONNECTION_INTERRUPTED: ConnectionInterrupted,
    EventKind.STREAM_CHANGED: StreamChanged,
    EventKind.FIRST_VIDEO_FRAME: FirstVideoFrame,
    EventKind.FIRST_AUDIO_FRAME: FirstAudioFrame,
    EventKind.AUDIO_VOLUME_INDICATION: AudioVolumeIndication,
    EventKind.REMOTE_VIDEO_STREAM_STATE_CHANGED: RemoteVideoStreamStateChanged,
    EventKind.REMOTE_AUDIO_STREAM_STATE_CHANGED: RemoteAudioStreamStateChanged,
    EventKind.REJOIN_SUCCESS: RejoinSuccess,
    EventKind.CONNECTION_STATE_CHANGED: ConnectionStateChanged,
    EventKind.REMOTE_VIDEO_STATS: RemoteVideoStats,
    EventKind.REMOTE_AUDIO_STATS: RemoteAudioStats,
    EventKind.RECORDING_STATS: RecordingStats,
    EventKind.LOCAL_USER_REGISTER: LocalUserRegister,
    EventKind.USER_INFO_UPDATED: UserInfoUpdated,
}


def build_event(kind: EventKind, session: str, *args: Any) -> SessionEvent:
    """Build the typed record for ``kind`` from native positional ``args``.

    Arguments beyond the declared ones are kept in ``extra_args``; missing
    trailing arguments stay ``None``.
    """

    model = EVENT_MODELS[EventKind(kind)]
    values = dict(zip(model.ARGS, args))
    extra = tuple(args[len(model.ARGS):])
    return model(session=session, extra_args=extra, **values)


def event_dump(event: SessionEvent) -> Dict[str, Any]:
    """Return a JSON-ready dict; nested vendor structs keep their camelCase keys."""

    return event.model_dump(mode="json", by_alias=True)


__all__ = [
    "EventKind",
    "NATIVE_CALLBACKS",
    "EVENT_MODELS",
    "SessionEvent",
    "RemoteVideoStatsInfo",
    "RemoteAudioStatsInfo",
    "RecordingStatsInfo",
    "UserInfo",
    "build_event",
    "event_dump",
    "new_event_id",
    "now_ts_ms",
]
