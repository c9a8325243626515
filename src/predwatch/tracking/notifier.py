"""Alert side effects (sound). Fire-and-forget; failures are logged, never raised."""

from __future__ import annotations

import subprocess
import sys
from abc import ABC, abstractmethod
from typing import TextIO

import structlog

log = structlog.get_logger(__name__)


class Notifier(ABC):
    """Base notifier. Subclasses implement _play(); play_alert() never propagates errors."""

    name = "base"

    def play_alert(self) -> None:
        try:
            self._play()
        except Exception as e:
            log.error("notifier_failed", notifier=self.name, error=str(e))

    @abstractmethod
    def _play(self) -> None:
        """Produce the sound. May raise; play_alert logs the failure."""
        ...


class NullNotifier(Notifier):
    """No-op, for tests and headless runs."""

    name = "none"

    def _play(self) -> None:
        return None


class BellNotifier(Notifier):
    """Rings the terminal bell."""

    name = "bell"

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def _play(self) -> None:
        stream = self._stream or sys.stdout
        stream.write("\a")
        stream.flush()


class CommandNotifier(Notifier):
    """Spawns an external player (e.g. ["paplay", "alert.oga"]) without waiting for it."""

    name = "command"

    def __init__(self, argv: list[str]) -> None:
        if not argv:
            raise ValueError("CommandNotifier needs a non-empty argv")
        self.argv = list(argv)

    def _play(self) -> None:
        subprocess.Popen(
            self.argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )


def create_notifier(kind: str, command: list[str] | None = None) -> Notifier:
    """Notifier from config ([alerts] notifier = "bell" | "command" | "none")."""
    if kind == "none":
        return NullNotifier()
    if kind == "command":
        return CommandNotifier(command or [])
    if kind == "bell":
        return BellNotifier()
    raise ValueError(f"unknown notifier: {kind!r}")
