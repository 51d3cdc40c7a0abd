"""
Pydantic models for the backend API payloads.

Every GET response is validated against the model of its resource kind before
it reaches the cache; a payload of the wrong shape is reported as a decode
failure instead of surfacing as an attribute error inside a card.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, TypeAdapter

from robodash.state import ResourceKind


class Vector3(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class VelocityCommand(BaseModel):
    """
    geometry_msgs/Twist shaped command.

    Only linear.x and angular.z are driven by the dashboard; the other four axes
    stay 0.0 and are kept for compatibility with the 6-DOF message.
    """
    linear: Vector3 = Field(default_factory=Vector3)
    angular: Vector3 = Field(default_factory=Vector3)


class CommandRequest(BaseModel):
    """Body of POST /robots/{id}/commands."""
    interface: str
    name: str
    type: str
    payload: VelocityCommand


class CommandRecord(BaseModel):
    """A command as stored by the backend (pending/sent/acked/failed)."""
    uuid: Optional[str] = None
    created_at: Optional[str] = None
    name: str = ""
    state: str = ""
    payload: VelocityCommand


class Vitals(BaseModel):
    cpu: float
    battery: float
    ram: float
    disk: float


class RobotVitals(BaseModel):
    id: str
    name: str
    online: bool
    vitals: Vitals


class LogEntry(BaseModel):
    uuid: Optional[str] = None
    stamp: str
    level: str
    msg: str


class PosePayload(BaseModel):
    x: float
    y: float
    theta: float


class TelemetryRecord(BaseModel):
    """One row of /robots/{id}/data, most recent first."""
    payload: PosePayload
    created_at: Optional[str] = None


_ADAPTERS: dict[ResourceKind, TypeAdapter] = {
    ResourceKind.VITALS: TypeAdapter(RobotVitals),
    ResourceKind.COMMANDS: TypeAdapter(List[CommandRecord]),
    ResourceKind.TELEMETRY: TypeAdapter(List[TelemetryRecord]),
    ResourceKind.LOGS: TypeAdapter(List[LogEntry]),
}


def decode_payload(kind: ResourceKind, raw: Any) -> Any:
    """Validate a decoded JSON body for `kind`. Raises pydantic.ValidationError."""
    return _ADAPTERS[kind].validate_python(raw)
