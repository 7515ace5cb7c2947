from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class RuntimeDeps:
    # core
    db_lock: Any
    db_conn: Any
    leases: Any
    dispatcher: Any

    # services
    settings: Any
    chat: Any
    moderation: Any
    levels: Any

    # ingestion
    log_message_func: Callable
    recent_channel_context_func: Callable
    recent_context_limit: int = 3


@dataclass(frozen=True)
class RuntimeBootDeps:
    lease_sweep_loop_func: Callable
    maintenance_loop_func: Callable
    giveaway_loop_func: Callable | None = None
