"""Job table — bookkeeping for ``&`` statements.

In Unix, a "job" is a shell concept layered on top of processes.  Here
there are no processes and no concurrency: a statement ending in ``&``
still runs to completion before the next one starts.  What makes it a
*job* is that its output is captured into a record instead of being
shown, and the user collects it later with ``fg``.

Key ideas:
    - **Jobs are records, not tasks** — nothing executes in the
      background; a job is finished by the time it is listed.
    - **Job numbers are small** — ``[1]``, ``[2]``, etc., for human
      convenience.
    - **Job status** — DONE (exit code 0) or FAILED (anything else).

Design choices:
    - ``JobManager`` is owned by the session, because jobs are a
      per-session concept.
    - Auto-incrementing job IDs via ``itertools.count``.
"""

from dataclasses import dataclass
from enum import StrEnum
from itertools import count


class JobStatus(StrEnum):
    """Status of a shell job."""

    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Job:
    """A captured background statement.

    Attributes:
        job_id: Small human-friendly job number ([1], [2], ...).
        command: The statement text, without the trailing ``&``.
        status: Current job status.
        stdout: Captured standard output.
        stderr: Captured standard error.
        exit_code: The statement's exit code once finished.

    """

    job_id: int
    command: str
    status: JobStatus = JobStatus.RUNNING
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    def finish(self, *, stdout: str, stderr: str, exit_code: int) -> None:
        """Record the statement's output and final status."""
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code
        self.status = JobStatus.DONE if exit_code == 0 else JobStatus.FAILED

    def __str__(self) -> str:
        """Format as ``[id] status command``."""
        return f"[{self.job_id}] {self.status}\t{self.command}"


class JobManager:
    """Track background jobs for a session.

    The job manager maintains a registry of jobs, each identified by a
    small incrementing job number.
    """

    def __init__(self) -> None:
        """Create an empty job manager."""
        self._jobs: dict[int, Job] = {}
        self._counter = count(start=1)

    def add(self, command: str) -> Job:
        """Add a new job for *command*.

        Returns:
            The newly created job (status RUNNING until finished).

        """
        job_id = next(self._counter)
        job = Job(job_id=job_id, command=command)
        self._jobs[job_id] = job
        return job

    def get(self, job_id: int) -> Job | None:
        """Return a job by its id, or None."""
        return self._jobs.get(job_id)

    def latest(self) -> Job | None:
        """Return the most recently added job, or None."""
        if not self._jobs:
            return None
        return self._jobs[max(self._jobs)]

    def remove(self, job_id: int) -> None:
        """Remove a job from tracking."""
        self._jobs.pop(job_id, None)

    def list_jobs(self) -> list[Job]:
        """Return all tracked jobs."""
        return list(self._jobs.values())

    def __len__(self) -> int:
        """Return the number of tracked jobs."""
        return len(self._jobs)
