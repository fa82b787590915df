"""
Backing store package.

Usage:
    from aptivo.stores import StoreBundle

    stores = StoreBundle.from_single(mock_backend)
"""

from dataclasses import dataclass

from aptivo.stores.ports import (
    AttemptStore,
    DirectoryStore,
    MistakeLogStore,
    QuestionStore,
    StreakStore,
)


@dataclass
class StoreBundle:
    """The capability groups wired into the services for one backend."""

    attempts: AttemptStore
    mistakes: MistakeLogStore
    streaks: StreakStore
    questions: QuestionStore
    directory: DirectoryStore

    @classmethod
    def from_single(cls, store) -> "StoreBundle":
        """Use one object implementing every capability group."""
        return cls(
            attempts=store,
            mistakes=store,
            streaks=store,
            questions=store,
            directory=store,
        )


__all__ = [
    "AttemptStore",
    "DirectoryStore",
    "MistakeLogStore",
    "QuestionStore",
    "StoreBundle",
    "StreakStore",
]
