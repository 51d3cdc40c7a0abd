from __future__ import annotations

from robodash.config import Config
from robodash.state import ResourceKey, ResourceKind


def vitals_key(cfg: Config) -> ResourceKey:
    return ResourceKey.of(cfg.ROBOT_ID, ResourceKind.VITALS)


def commands_key(cfg: Config) -> ResourceKey:
    return ResourceKey.of(cfg.ROBOT_ID, ResourceKind.COMMANDS, limit=cfg.COMMAND_HISTORY_LIMIT)


def telemetry_key(cfg: Config) -> ResourceKey:
    return ResourceKey.of(
        cfg.ROBOT_ID,
        ResourceKind.TELEMETRY,
        source=cfg.DATA_SOURCE,
        offset=0,
        limit=cfg.TRAJECTORY_LIMIT,
    )


def logs_key(cfg: Config) -> ResourceKey:
    return ResourceKey.of(cfg.ROBOT_ID, ResourceKind.LOGS, limit=cfg.LOG_LIMIT)
