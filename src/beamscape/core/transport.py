"""Job transport for running field simulations on a dedicated thread.

Only immutable messages cross the thread boundary:

    caller ──StartJob / CancelJob──▶ inbox ──▶ worker thread
    caller ◀──JobProgress / JobResult / JobError── outbox ◀──┘

The worker processes one job at a time. A ``StartJob`` that arrives while
another job is computing is queued, never run in parallel. Cancellation is
cooperative: before every output row the running job drains the inbox and
checks its own :class:`CancellationToken`. A canceled job never emits a
``JobResult``.

The caller side (:class:`FieldJobClient`) remembers the id of its most
recently submitted job and discards every inbound message carrying any
other id, so results of superseded requests can never be applied.

Example:
    >>> with FieldJobClient() as client:
    ...     client.submit(FieldSimulationRequest.from_units(units, resolution=64))
    ...     result = client.wait_for_result(timeout=5.0)
"""

from __future__ import annotations

import itertools
import queue
import secrets
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from beamscape.core.field import (
    BeamscapeError,
    FieldResult,
    FieldSimulationRequest,
    JobState,
    simulate_field,
)

_JOB_COUNTER = itertools.count(1)


def new_job_id(prefix: str = "sim") -> str:
    """Session-unique job id: monotonic counter plus random suffix."""
    return f"{prefix}-{next(_JOB_COUNTER)}-{secrets.token_hex(4)}"


class FieldJobError(BeamscapeError):
    """A field simulation job reported an error over the transport."""

    def __init__(self, message: str, job_id: str, error_type: str = "BeamscapeError"):
        super().__init__(message)
        self.job_id = job_id
        self.error_type = error_type


# =============================================================================
# Messages
# =============================================================================


@dataclass(frozen=True)
class StartJob:
    job_id: str
    request: FieldSimulationRequest


@dataclass(frozen=True)
class CancelJob:
    job_id: str


@dataclass(frozen=True)
class Shutdown:
    """Stop the worker after canceling every pending job."""


@dataclass(frozen=True)
class JobProgress:
    job_id: str
    fraction: float


@dataclass(frozen=True)
class JobResult:
    """Completed job.

    The heatmap buffer is handed off: the worker keeps no reference to it,
    so the receiver may modify it in place.
    """

    job_id: str
    result: FieldResult


@dataclass(frozen=True)
class JobError:
    job_id: str
    message: str
    error_type: str = "BeamscapeError"


InboundMessage = StartJob | CancelJob | Shutdown
OutboundMessage = JobProgress | JobResult | JobError

Simulator = Callable[..., FieldResult | None]


class CancellationToken:
    """Per-job cancellation flag.

    Owned by the worker thread; set only in response to a ``CancelJob``
    message.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


# =============================================================================
# Worker (compute thread)
# =============================================================================


class FieldSimulationWorker:
    """Dedicated compute thread executing field simulation jobs sequentially.

    Args:
        outbox: Queue receiving outbound messages (created if omitted)
        simulate: Simulation entry point, ``simulate(request, should_cancel,
            on_progress)``
        name: Thread name

    Example:
        >>> worker = FieldSimulationWorker()
        >>> worker.start()
        >>> worker.post(StartJob("job-1", request))
        >>> message = worker.outbox.get(timeout=5.0)
        >>> worker.stop()
    """

    def __init__(
        self,
        outbox: queue.Queue | None = None,
        simulate: Simulator = simulate_field,
        name: str = "beamscape-field-worker",
    ):
        self.inbox: queue.Queue[InboundMessage] = queue.Queue()
        self.outbox: queue.Queue[OutboundMessage] = outbox if outbox is not None else queue.Queue()
        self.name = name
        self._simulate = simulate
        self._thread: threading.Thread | None = None

        # Worker-thread state, never touched by the caller
        self._backlog: deque[tuple[StartJob, CancellationToken]] = deque()
        self._tokens: dict[str, CancellationToken] = {}
        self._stopping = False

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the compute thread (idempotent)."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def post(self, message: InboundMessage) -> None:
        """Send a message to the compute thread."""
        self.inbox.put(message)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Cancel pending work and join the compute thread."""
        if self._thread is None:
            return
        self.inbox.put(Shutdown())
        self._thread.join(timeout)

    # -------------------------------------------------------------------------
    # Compute-thread side
    # -------------------------------------------------------------------------

    def _run(self) -> None:
        while not self._stopping:
            if not self._backlog:
                self._dispatch(self.inbox.get())
                continue
            start, token = self._backlog.popleft()
            self._run_job(start, token)

    def _dispatch(self, message: InboundMessage) -> None:
        if isinstance(message, StartJob):
            token = CancellationToken()
            self._tokens[message.job_id] = token
            self._backlog.append((message, token))
        elif isinstance(message, CancelJob):
            # Cancels for finished or unknown jobs are dropped
            token = self._tokens.get(message.job_id)
            if token is not None:
                token.cancel()
        elif isinstance(message, Shutdown):
            self._stopping = True
            for token in self._tokens.values():
                token.cancel()

    def _drain_control(self) -> None:
        while True:
            try:
                message = self.inbox.get_nowait()
            except queue.Empty:
                return
            self._dispatch(message)

    def _run_job(self, start: StartJob, token: CancellationToken) -> None:
        job_id = start.job_id

        def should_cancel() -> bool:
            self._drain_control()
            return token.cancelled

        def on_progress(fraction: float) -> None:
            self.outbox.put(JobProgress(job_id, fraction))

        try:
            if should_cancel():
                return
            result = self._simulate(start.request, should_cancel, on_progress)
            if result is None or should_cancel():
                return
            self.outbox.put(JobResult(job_id, result))
        except Exception as e:
            self.outbox.put(JobError(job_id, str(e) or type(e).__name__, type(e).__name__))
        finally:
            self._tokens.pop(job_id, None)


# =============================================================================
# Client (caller context)
# =============================================================================


class FieldJobClient:
    """Caller-side handle owning one compute thread.

    The thread is created on the first :meth:`submit` and torn down by
    :meth:`close`. Inbound messages are consumed by :meth:`poll` in the
    caller's context; callbacks run there too.

    Args:
        on_result: Called with (job_id, FieldResult) for the latest job
        on_progress: Called with (job_id, fraction) for the latest job
        on_error: Called with (job_id, message, error_type) for the latest job
        cancel_superseded: Send ``CancelJob`` for the previous job when a new
            one is submitted
        simulate: Simulation entry point forwarded to the worker
    """

    def __init__(
        self,
        on_result: Callable[[str, FieldResult], None] | None = None,
        on_progress: Callable[[str, float], None] | None = None,
        on_error: Callable[[str, str, str], None] | None = None,
        cancel_superseded: bool = True,
        simulate: Simulator = simulate_field,
    ):
        self.on_result = on_result
        self.on_progress = on_progress
        self.on_error = on_error
        self.cancel_superseded = cancel_superseded
        self._simulate = simulate
        self._worker: FieldSimulationWorker | None = None
        self._latest_job_id: str | None = None
        self._state: JobState | None = None
        self._last_result: FieldResult | None = None
        self._last_error: JobError | None = None
        self.discarded = 0

    @property
    def latest_job_id(self) -> str | None:
        return self._latest_job_id

    @property
    def state(self) -> JobState | None:
        """State of the most recently submitted job."""
        return self._state

    @property
    def worker(self) -> FieldSimulationWorker | None:
        return self._worker

    def _ensure_worker(self) -> FieldSimulationWorker:
        if self._worker is None:
            self._worker = FieldSimulationWorker(simulate=self._simulate)
            self._worker.start()
        return self._worker

    def submit(self, request: FieldSimulationRequest, job_id: str | None = None) -> str:
        """Submit a request; it supersedes every earlier one.

        Returns:
            The job id of the new request
        """
        worker = self._ensure_worker()
        previous = self._latest_job_id
        if (
            self.cancel_superseded
            and previous is not None
            and self._state in (JobState.QUEUED, JobState.RUNNING)
        ):
            worker.post(CancelJob(previous))

        job_id = job_id or new_job_id()
        self._latest_job_id = job_id
        self._state = JobState.QUEUED
        self._last_result = None
        self._last_error = None
        worker.post(StartJob(job_id, request))
        return job_id

    def cancel(self, job_id: str | None = None) -> None:
        """Cancel a job (default: the latest one)."""
        job_id = job_id or self._latest_job_id
        if job_id is None or self._worker is None:
            return
        self._worker.post(CancelJob(job_id))
        if job_id == self._latest_job_id and self._state in (JobState.QUEUED, JobState.RUNNING):
            self._state = JobState.CANCELED

    def _next_message(self, timeout: float | None) -> OutboundMessage | None:
        outbox = self._worker.outbox
        try:
            if timeout is not None and timeout <= 0:
                return outbox.get_nowait()
            return outbox.get(timeout=timeout)
        except queue.Empty:
            return None

    def _accept(self, message: OutboundMessage) -> bool:
        if message.job_id != self._latest_job_id or self._state is JobState.CANCELED:
            self.discarded += 1
            return False

        if isinstance(message, JobProgress):
            self._state = JobState.RUNNING
            if self.on_progress is not None:
                self.on_progress(message.job_id, message.fraction)
        elif isinstance(message, JobResult):
            self._state = JobState.COMPLETED
            self._last_result = message.result
            if self.on_result is not None:
                self.on_result(message.job_id, message.result)
        elif isinstance(message, JobError):
            self._state = JobState.FAILED
            self._last_error = message
            if self.on_error is not None:
                self.on_error(message.job_id, message.message, message.error_type)
        return True

    def poll(self, timeout: float | None = 0.0) -> list[OutboundMessage]:
        """Consume pending messages, discarding stale ones.

        Args:
            timeout: Seconds to wait for the first message (0 = don't wait,
                None = wait indefinitely)

        Returns:
            Messages belonging to the latest job, in arrival order
        """
        if self._worker is None:
            return []

        accepted = []
        message = self._next_message(timeout)
        while message is not None:
            if self._accept(message):
                accepted.append(message)
            message = self._next_message(0)
        return accepted

    def wait_for_result(self, timeout: float | None = None) -> FieldResult | None:
        """Block until the latest job finishes.

        Returns:
            The FieldResult, or None if the latest job was canceled

        Raises:
            RuntimeError: If nothing was submitted or the client is closed
            FieldJobError: If the job reported an error
            TimeoutError: If the timeout elapses first
        """
        if self._latest_job_id is None:
            raise RuntimeError("No job has been submitted")

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            # Terminal messages may already have been consumed by poll()
            if self._state is JobState.CANCELED:
                return None
            if self._state is JobState.COMPLETED:
                return self._last_result
            if self._state is JobState.FAILED:
                error = self._last_error
                raise FieldJobError(error.message, error.job_id, error.error_type)
            if self._worker is None:
                raise RuntimeError("Client is closed")

            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError(
                        f"Job {self._latest_job_id} did not finish within {timeout} s"
                    )

            # Wake periodically so a cancel issued from a callback is noticed
            wait = 0.1 if remaining is None else min(0.1, remaining)
            self.poll(timeout=wait)

    def close(self) -> None:
        """Cancel outstanding work and tear down the compute thread."""
        if self._worker is not None:
            self._worker.stop()
            self._worker = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
