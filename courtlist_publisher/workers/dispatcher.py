from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging

from courtlist_publisher.domain.errors import DispatchRejected
from courtlist_publisher.domain.models import PublishJob
from courtlist_publisher.workers.runner import (
    DispatchRuntimeSettings,
    DispatchRuntimeState,
    PublishRun,
    run_dispatch_worker_until_stopped,
)

logger = logging.getLogger("runtime")


@dataclass
class AsyncPublishDispatcher:
    """Bounded queue in front of a fixed pool of orchestrator workers.

    `submit` never waits: a full queue or a dispatcher that is not running
    raises DispatchRejected. A court list id is queued or running at most
    once; a request for an id that is already scheduled is kept as a single
    pending rerun (latest request wins) and never occupies a worker or a
    queue slot, so a slow list cannot hold up other lists.
    """

    run: PublishRun
    settings: DispatchRuntimeSettings = field(default_factory=DispatchRuntimeSettings)
    role: str = "api"
    state: DispatchRuntimeState = field(default_factory=DispatchRuntimeState)
    _queue: asyncio.Queue[PublishJob | None] | None = field(default=None, init=False, repr=False)
    _tasks: list[asyncio.Task[None]] = field(default_factory=list, init=False, repr=False)
    # court list id -> pending rerun; key present while the id is queued or running.
    _scheduled: dict[str, PublishJob | None] = field(default_factory=dict, init=False, repr=False)
    _accepting: bool = field(default=False, init=False, repr=False)

    @property
    def running(self) -> bool:
        return self._accepting

    @property
    def queue_depth(self) -> int:
        if self._queue is None:
            return 0
        return self._queue.qsize()

    def start(self) -> None:
        if self._accepting:
            return
        self._queue = asyncio.Queue(maxsize=self.settings.queue_size)
        self._scheduled = {}
        self._tasks = [
            asyncio.create_task(
                run_dispatch_worker_until_stopped(
                    worker_index=index,
                    queue=self._queue,
                    run=self.run,
                    next_run_for=self._next_run_for,
                    role=self.role,
                    logger=logger,
                    state=self.state,
                )
            )
            for index in range(self.settings.workers)
        ]
        self._accepting = True
        self.state.started = True
        self.state.stopped = False
        logger.info(
            "dispatcher started",
            extra={"role": self.role, "service": f"{self.role}.dispatcher"},
        )

    def submit(self, job: PublishJob) -> None:
        if not self._accepting or self._queue is None:
            self.state.rejected_total += 1
            raise DispatchRejected("publish dispatcher is not running")
        if job.court_list_id in self._scheduled:
            self._scheduled[job.court_list_id] = job
            self.state.accepted_total += 1
            self.state.coalesced_total += 1
            logger.info(
                "publish rerun scheduled",
                extra={
                    "role": self.role,
                    "service": f"{self.role}.dispatcher",
                    "court_list_id": job.court_list_id,
                    "run_id": job.run_id,
                },
            )
            return
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull as exc:
            self.state.rejected_total += 1
            logger.warning(
                "publish queue full",
                extra={
                    "role": self.role,
                    "service": f"{self.role}.dispatcher",
                    "court_list_id": job.court_list_id,
                    "run_id": job.run_id,
                },
            )
            raise DispatchRejected(f"publish queue is full ({self.settings.queue_size} pending runs)") from exc
        self._scheduled[job.court_list_id] = None
        self.state.accepted_total += 1

    async def join(self) -> None:
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Stop accepting jobs, drain queued runs, then stop the workers."""
        if self._queue is None:
            return
        self._accepting = False
        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.settings.drain_timeout_seconds)
        except TimeoutError:
            logger.warning(
                "dispatcher drain timed out",
                extra={"role": self.role, "service": f"{self.role}.dispatcher"},
            )
            for task in self._tasks:
                task.cancel()
        else:
            for _ in self._tasks:
                await self._queue.put(None)
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._queue = None
        self._scheduled = {}
        self.state.stopped = True
        logger.info(
            "dispatcher stopped",
            extra={"role": self.role, "service": f"{self.role}.dispatcher"},
        )

    def _next_run_for(self, court_list_id: str) -> PublishJob | None:
        rerun = self._scheduled.get(court_list_id)
        if rerun is not None:
            self._scheduled[court_list_id] = None
            return rerun
        self._scheduled.pop(court_list_id, None)
        return None


@dataclass
class RejectingPublishDispatcher:
    """Dispatcher for read-only roles."""

    reason: str = "publish requests are not served by this role"

    def submit(self, job: PublishJob) -> None:
        del job
        raise DispatchRejected(self.reason)
