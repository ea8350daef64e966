"""Audio feedback capability handed to the engine by the UI layer."""

from __future__ import annotations

from typing import Protocol


class AudioFeedback(Protocol):
    def play_success(self) -> None: ...

    def play_error(self) -> None: ...

    def play_click(self) -> None: ...


class SilentAudioFeedback:
    """Used when the caller has no sound output (server side, tests)."""

    def play_success(self) -> None:
        pass

    def play_error(self) -> None:
        pass

    def play_click(self) -> None:
        pass
