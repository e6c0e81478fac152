"""Tests for the job table and the job builtins.

A job is the record left behind by a statement ending in ``&``: its
command text, captured output and exit status.  Nothing actually runs
concurrently — the statement has finished by the time the job is
listed — so ``fg`` simply replays the captured output.
"""

from foam_shell.executor import Executor
from foam_shell.fs.filesystem import FileSystem
from foam_shell.jobs import Job, JobManager, JobStatus
from foam_shell.session import Session

EXIT_SEVEN = 7
SECOND_JOB = 2


def _executor() -> Executor:
    """Create an executor over a fresh filesystem."""
    return Executor(Session(FileSystem()))


# ---------------------------------------------------------------------------
# Cycle 1 — JobManager
# ---------------------------------------------------------------------------


class TestJobManager:
    """Verify job bookkeeping."""

    def test_ids_increment(self) -> None:
        """Job ids start at 1 and increase."""
        manager = JobManager()
        first = manager.add("a")
        second = manager.add("b")
        assert first.job_id == 1
        assert second.job_id == SECOND_JOB

    def test_new_job_is_running(self) -> None:
        """A freshly added job is RUNNING until finished."""
        assert JobManager().add("x").status is JobStatus.RUNNING

    def test_latest(self) -> None:
        """latest returns the most recent job, or None."""
        manager = JobManager()
        assert manager.latest() is None
        manager.add("a")
        newest = manager.add("b")
        assert manager.latest() is newest

    def test_remove(self) -> None:
        """Removing a job forgets it; ids are not reused."""
        manager = JobManager()
        manager.add("a")
        manager.remove(1)
        assert manager.get(1) is None
        assert len(manager) == 0
        assert manager.add("b").job_id == SECOND_JOB


class TestJob:
    """Verify a job's completion record."""

    def test_finish_success(self) -> None:
        """Exit code 0 means DONE."""
        job = Job(job_id=1, command="echo hi")
        job.finish(stdout="hi\n", stderr="", exit_code=0)
        assert job.status is JobStatus.DONE

    def test_finish_failure(self) -> None:
        """Any other exit code means FAILED."""
        job = Job(job_id=1, command="false")
        job.finish(stdout="", stderr="", exit_code=EXIT_SEVEN)
        assert job.status is JobStatus.FAILED
        assert job.exit_code == EXIT_SEVEN

    def test_str(self) -> None:
        """The string form shows id, status and command."""
        job = Job(job_id=3, command="ls")
        assert str(job) == "[3] running\tls"


# ---------------------------------------------------------------------------
# Cycle 2 — builtins
# ---------------------------------------------------------------------------


class TestJobCommands:
    """Verify jobs, fg and bg."""

    def test_jobs_lists(self) -> None:
        """jobs shows each job with its status; the newest is marked +."""
        executor = _executor()
        executor.execute("echo a &")
        executor.execute("false &")
        assert executor.execute("jobs").stdout == "[1]  Done\techo a\n[2]+ Failed\tfalse\n"

    def test_fg_replays_output(self) -> None:
        """fg prints the captured output and returns the job's code."""
        executor = _executor()
        executor.execute("echo hidden &")
        result = executor.execute("fg")
        assert result.stdout == "hidden\n"
        assert result.exit_code == 0
        assert len(executor.session.jobs) == 0

    def test_fg_by_id(self) -> None:
        """``fg %N`` selects a job by number."""
        executor = _executor()
        executor.execute("echo one &")
        executor.execute("echo two &")
        assert executor.execute("fg %1").stdout == "one\n"

    def test_fg_failed_job_code(self) -> None:
        """fg returns the exit code the job finished with."""
        executor = _executor()
        executor.execute("cat /nope &")
        result = executor.execute("fg")
        assert result.exit_code == 1
        assert "cat: /nope" in result.stderr

    def test_fg_no_job(self) -> None:
        """fg without jobs fails."""
        result = _executor().execute("fg")
        assert result.exit_code == 1
        assert "no such job" in result.stderr

    def test_bg(self) -> None:
        """bg reports the job as running in the background."""
        executor = _executor()
        executor.execute("echo a &")
        assert executor.execute("bg 1").stdout == "[1] echo a &\n"
