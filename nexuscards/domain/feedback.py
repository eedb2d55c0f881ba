"""Audio/haptic feedback capability handed to sessions."""

from __future__ import annotations

from typing import Protocol, Sequence


class FeedbackSink(Protocol):
    def play(self, event: str) -> None: ...

    def vibrate(self, pattern: int | Sequence[int]) -> None: ...


class NullFeedback:
    """Feedback sink that ignores everything."""

    def play(self, event: str) -> None:
        return None

    def vibrate(self, pattern: int | Sequence[int]) -> None:
        return None


class RecordingFeedback:
    """Keeps every signal in memory; handy for scenario tests."""

    def __init__(self) -> None:
        self.sounds: list[str] = []
        self.vibrations: list[int | tuple[int, ...]] = []

    def play(self, event: str) -> None:
        self.sounds.append(event)

    def vibrate(self, pattern: int | Sequence[int]) -> None:
        self.vibrations.append(pattern if isinstance(pattern, int) else tuple(pattern))
