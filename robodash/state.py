from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ResourceKind(str, Enum):
    VITALS = "general"
    COMMANDS = "commands"
    TELEMETRY = "location"
    LOGS = "logs"

    @property
    def path(self) -> str:
        """Endpoint path relative to /robots/{robot_id}."""
        return {
            ResourceKind.VITALS: "",
            ResourceKind.COMMANDS: "/commands",
            ResourceKind.TELEMETRY: "/data",
            ResourceKind.LOGS: "/logs",
        }[self]


@dataclass(frozen=True)
class ResourceKey:
    """Identifies one pollable resource: (robot, kind, query params)."""

    robot_id: str
    kind: ResourceKind
    params: tuple[tuple[str, str], ...] = ()

    @classmethod
    def of(cls, robot_id: str, kind: ResourceKind, **params: Any) -> "ResourceKey":
        # Sorted so keyword order never changes identity
        return cls(robot_id, kind, tuple(sorted((k, str(v)) for k, v in params.items())))

    @property
    def query(self) -> dict[str, str]:
        return dict(self.params)


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class ErrorKind(str, Enum):
    UNREACHABLE = "unreachable"
    REMOTE_REJECTED = "remote_rejected"
    TIMEOUT = "timeout"
    DECODE_FAILURE = "decode_failure"
    BUSY = "busy"


@dataclass(frozen=True)
class ErrorInfo:
    kind: ErrorKind
    status_code: int | None = None
    message: str = ""

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.kind.value} ({self.status_code})"
        return f"{self.kind.value}: {self.message}" if self.message else self.kind.value


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of one backend call. Exactly one of value/error is meaningful."""

    ok: bool
    value: T | None = None
    error: ErrorInfo | None = None

    @classmethod
    def success(cls, value: T | None = None) -> "FetchResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ErrorInfo) -> "FetchResult[T]":
        return cls(ok=False, error=error)


@dataclass(frozen=True)
class QueryState(Generic[T]):
    """
    Snapshot of one cached resource.

    A SUCCESS state keeps its data while a background refetch runs
    (is_fetching=True), so cards never fall back to an empty view while polling.
    `updated_count` increases on every applied change and lets cards skip
    re-rendering identical snapshots.
    """

    status: QueryStatus = QueryStatus.IDLE
    data: T | None = None
    error: ErrorInfo | None = None
    last_fetched_at: float | None = None  # wall clock, for display
    next_poll_at: float | None = None  # wall clock
    is_fetching: bool = False
    updated_count: int = 0

    @property
    def is_stale(self) -> bool:
        return self.status is QueryStatus.SUCCESS and self.error is not None


@dataclass(frozen=True)
class PoseSample:
    x: float
    y: float
    theta: float  # rad
    captured_at: float | None = None


@dataclass(frozen=True)
class TrajectoryPoint:
    px: float
    py: float


@dataclass(frozen=True)
class PoseMarker:
    point: TrajectoryPoint
    theta: float
    heading_end: TrajectoryPoint


@dataclass(frozen=True)
class Trajectory:
    current_pose: PoseMarker | None = None
    path: list[TrajectoryPoint] = field(default_factory=list)


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    LEFT = "left"
    RIGHT = "right"
    NONE = "none"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        """Unknown input maps to NONE so it can never produce motion."""
        if isinstance(value, Direction):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NONE


class DispatchStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
