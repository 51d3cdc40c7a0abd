from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Protocol

from robodash.config import Config
from robodash.schemas import CommandRequest, Vector3, VelocityCommand
from robodash.state import Direction, DispatchStatus, ErrorInfo, ErrorKind, FetchResult


class CommandSender(Protocol):
    def post_command(self, robot_id: str, request: CommandRequest) -> Awaitable[FetchResult[Any]]: ...


def translate(direction: Any, linear_speed: float = 2.0, angular_speed: float = 2.0) -> VelocityCommand:
    """
    Map a discrete direction to a cmd_vel twist.

    Total over its input: anything that is not one of the four motion
    directions yields the zero command.
    """
    d = Direction.parse(direction)
    linear_x = 0.0
    angular_z = 0.0
    if d is Direction.FORWARD:
        linear_x = linear_speed
    elif d is Direction.BACKWARD:
        linear_x = -linear_speed
    elif d is Direction.LEFT:
        angular_z = angular_speed
    elif d is Direction.RIGHT:
        angular_z = -angular_speed
    return VelocityCommand(linear=Vector3(x=linear_x), angular=Vector3(z=angular_z))


class CommandDispatcher:
    """
    Sends motion commands one at a time.

    A dispatch issued while another is in flight is rejected with a BUSY error and
    nothing is sent. Failures are returned to the caller and never retried. The
    command history is not touched here; the next poll of the command log picks
    up the new record.
    """

    def __init__(self, sender: CommandSender, cfg: Config, robot_id: str | None = None) -> None:
        self._sender = sender
        self._cfg = cfg
        self.robot_id = robot_id or cfg.ROBOT_ID
        self.status = DispatchStatus.IDLE
        self.last_direction: Direction | None = None
        self.last_error: ErrorInfo | None = None
        self.last_settled_at: float | None = None

    @property
    def in_flight(self) -> bool:
        return self.status is DispatchStatus.IN_FLIGHT

    def build_request(self, direction: Any) -> CommandRequest:
        return CommandRequest(
            interface=self._cfg.COMMAND_INTERFACE,
            name=self._cfg.COMMAND_NAME,
            type=self._cfg.COMMAND_TYPE,
            payload=translate(direction, self._cfg.LINEAR_SPEED, self._cfg.ANGULAR_SPEED),
        )

    async def dispatch(self, direction: Any) -> FetchResult[Any]:
        if self.in_flight:
            logging.warning("Command %s rejected: previous command still in flight", direction)
            return FetchResult.failure(
                ErrorInfo(ErrorKind.BUSY, message="previous command still in flight")
            )

        request = self.build_request(direction)
        self.status = DispatchStatus.IN_FLIGHT
        self.last_direction = Direction.parse(direction)
        try:
            result = await self._sender.post_command(self.robot_id, request)
        except asyncio.CancelledError:
            self.status = DispatchStatus.IDLE
            raise
        except Exception as e:
            logging.exception("Command sender raised")
            result = FetchResult.failure(ErrorInfo(ErrorKind.UNREACHABLE, message=str(e)))
        finally:
            self.last_settled_at = time.time()

        if result.ok:
            self.status = DispatchStatus.SUCCEEDED
            self.last_error = None
            logging.info(
                "Command %s sent: linear.x=%.2f angular.z=%.2f",
                self.last_direction.value,
                request.payload.linear.x,
                request.payload.angular.z,
            )
        else:
            self.status = DispatchStatus.FAILED
            self.last_error = result.error
            logging.error("Command %s failed: %s", self.last_direction.value, result.error)
        return result
