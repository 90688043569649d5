from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol


class Notifier(Protocol):
    def alert(self, message: str) -> None: ...

    def confirm(self, message: str) -> bool: ...


@dataclass
class ConsoleNotifier:
    input_func: Callable[[str], str] = input
    output_func: Callable[[str], None] = print

    def alert(self, message: str) -> None:
        self.output_func(f"[!] {message}")

    def confirm(self, message: str) -> bool:
        answer = self.input_func(f"{message} [y/N]: ").strip().lower()
        return answer in {"y", "yes"}


@dataclass
class RecordingNotifier:
    """Notifier that answers confirmations from a fixed policy and keeps alerts."""

    confirm_answer: bool = True
    alerts: list[str] = field(default_factory=list)
    confirmations: list[str] = field(default_factory=list)

    def alert(self, message: str) -> None:
        self.alerts.append(message)

    def confirm(self, message: str) -> bool:
        self.confirmations.append(message)
        return self.confirm_answer
