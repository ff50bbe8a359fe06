"""Commit protocol for the batch job framework."""

from abc import ABC, abstractmethod
from typing import Any


class CommitPolicy(ABC):
    """
    Job and task commit hooks expected by the batch job framework.

    The context arguments are whatever job or task handle the framework
    passes; policies must not assume anything about them.
    """

    @abstractmethod
    def setup_job(self, job_context: Any) -> None:
        pass

    @abstractmethod
    def needs_task_commit(self, task_context: Any) -> bool:
        pass

    @abstractmethod
    def setup_task(self, task_context: Any) -> None:
        pass

    @abstractmethod
    def commit_task(self, task_context: Any) -> None:
        pass

    @abstractmethod
    def abort_task(self, task_context: Any) -> None:
        pass


class NoOpCommitPolicy(CommitPolicy):
    """
    Commit policy for outputs that are durable as soon as they are written.

    Every record put is acknowledged by Kinesis individually, so there is
    no staged output to promote or discard. All hooks do nothing and
    ``needs_task_commit`` is always False.
    """

    def setup_job(self, job_context: Any) -> None:
        pass

    def needs_task_commit(self, task_context: Any) -> bool:
        return False

    def setup_task(self, task_context: Any) -> None:
        pass

    def commit_task(self, task_context: Any) -> None:
        pass

    def abort_task(self, task_context: Any) -> None:
        pass
