from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default) in ("1", "true", "True", "yes", "YES")


@dataclass(frozen=True)
class Config:
    """Runtime configuration for the dashboard, its backend API and command target."""
    API_URL: str = "https://api.airbotics.io"
    API_KEY: str = ""
    ROBOT_ID: str = "robot0"
    REFETCH_INTERVAL_S: float = 1.0  # how often each card polls
    REQUEST_TIMEOUT_S: float = 0.8  # must stay below the refetch interval
    KEEP_STALE_ON_ERROR: bool = True
    LINEAR_SPEED: float = 2.0  # m/s, cmd_vel linear.x
    ANGULAR_SPEED: float = 2.0  # rad/s, cmd_vel angular.z
    COMMAND_INTERFACE: str = "topic"
    COMMAND_NAME: str = "/turtle1/cmd_vel"
    COMMAND_TYPE: str = "geometry_msgs/msg/Twist"
    DATA_SOURCE: str = "/turtle1/pose"
    COMMAND_HISTORY_LIMIT: int = 10
    LOG_LIMIT: int = 10
    TRAJECTORY_LIMIT: int = 20
    MAP_WIDTH: int = 330
    MAP_HEIGHT: int = 300
    MAP_SCALE: float = 30.0
    POINTER_LENGTH: float = 20.0
    UI_HOST: str = "0.0.0.0"
    UI_PORT: int = 8080  # NiceGUI server port

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            API_URL=os.getenv("ROBODASH_API_URL", "https://api.airbotics.io"),
            API_KEY=os.getenv("AIR_API_KEY", ""),
            ROBOT_ID=os.getenv("ROBODASH_ROBOT_ID", "robot0"),
            REFETCH_INTERVAL_S=float(os.getenv("ROBODASH_REFETCH_INTERVAL_S", "1.0")),
            REQUEST_TIMEOUT_S=float(os.getenv("ROBODASH_REQUEST_TIMEOUT_S", "0.8")),
            KEEP_STALE_ON_ERROR=_env_flag("ROBODASH_KEEP_STALE_ON_ERROR", "1"),
            LINEAR_SPEED=float(os.getenv("ROBODASH_LINEAR_SPEED", "2.0")),
            ANGULAR_SPEED=float(os.getenv("ROBODASH_ANGULAR_SPEED", "2.0")),
            COMMAND_NAME=os.getenv("ROBODASH_COMMAND_NAME", "/turtle1/cmd_vel"),
            DATA_SOURCE=os.getenv("ROBODASH_DATA_SOURCE", "/turtle1/pose"),
            UI_HOST=os.getenv("ROBODASH_UI_HOST", "0.0.0.0"),
            UI_PORT=int(os.getenv("ROBODASH_UI_PORT", "8080")),
        )
