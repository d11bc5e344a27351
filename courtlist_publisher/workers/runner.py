from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
import os

from courtlist_publisher.domain.models import PublishJob

PublishRun = Callable[[PublishJob], Awaitable[object]]


@dataclass(frozen=True)
class DispatchRuntimeSettings:
    queue_size: int = 100
    workers: int = 4
    stage_timeout_seconds: int = 60
    http_timeout_seconds: int = 30
    drain_timeout_seconds: float = 30


@dataclass
class DispatchRuntimeState:
    started: bool = False
    stopped: bool = False
    accepted_total: int = 0
    rejected_total: int = 0
    runs_total: int = 0
    errors_total: int = 0
    coalesced_total: int = 0
    in_flight: int = 0


def dispatch_runtime_settings_from_env() -> DispatchRuntimeSettings:
    return DispatchRuntimeSettings(
        queue_size=_env_int("DISPATCH_QUEUE_SIZE", 100),
        workers=_env_int("DISPATCH_WORKERS", 4),
        stage_timeout_seconds=_env_int("STAGE_TIMEOUT_SECONDS", 60),
        http_timeout_seconds=_env_int("HTTP_TIMEOUT_SECONDS", 30),
        drain_timeout_seconds=_env_int("DISPATCH_DRAIN_TIMEOUT_SECONDS", 30),
    )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default

    try:
        parsed = int(value)
    except ValueError:
        return default

    return parsed if parsed > 0 else default


async def run_dispatch_worker_until_stopped(
    *,
    worker_index: int,
    queue: asyncio.Queue[PublishJob | None],
    run: PublishRun,
    next_run_for: Callable[[str], PublishJob | None],
    role: str,
    logger: logging.Logger,
    state: DispatchRuntimeState | None = None,
) -> None:
    """Consume jobs until a None sentinel arrives.

    After each run the worker asks `next_run_for` whether a rerun of the same
    court list id was requested meanwhile and, if so, runs it before taking
    the next queued job.
    """
    service = f"{role}.dispatch-worker-{worker_index}"
    logger.info("dispatch worker started", extra={"role": role, "service": service})

    while True:
        job = await queue.get()
        try:
            if job is None:
                break
            current: PublishJob | None = job
            while current is not None:
                await _run_one(current, run=run, role=role, service=service, logger=logger, state=state)
                current = next_run_for(current.court_list_id)
        finally:
            queue.task_done()

    logger.info("dispatch worker stopped", extra={"role": role, "service": service})


async def _run_one(
    job: PublishJob,
    *,
    run: PublishRun,
    role: str,
    service: str,
    logger: logging.Logger,
    state: DispatchRuntimeState | None,
) -> None:
    if state is not None:
        state.in_flight += 1
    try:
        await run(job)
        if state is not None:
            state.runs_total += 1
    except Exception:
        if state is not None:
            state.errors_total += 1
        logger.exception(
            "dispatch run error",
            extra={
                "role": role,
                "service": service,
                "run_id": job.run_id,
                "court_list_id": job.court_list_id,
            },
        )
    finally:
        if state is not None:
            state.in_flight -= 1
