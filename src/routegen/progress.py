from __future__ import annotations

import itertools
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Protocol, Union

from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

from routegen.routes.tokens import crc32

SpinnerMethod = Literal["text", "append", "succeed", "failed"]

READY = "ready"

_counter = itertools.count()


class Spinner(Protocol):
    """One long running task as shown to the user."""

    def text(self, text: str) -> None: ...

    def append(self, text: str) -> None: ...

    def succeed(self, text: Optional[str] = None) -> None: ...

    def failed(self, error: Union[BaseException, str, None] = None) -> None: ...


class SpinnerHost(Protocol):
    def start(self, start_text: str) -> Spinner: ...


# ----------------------------
# Wire messages (worker -> host)
# ----------------------------


class SpinnerMessage(BaseModel):
    id: str
    start_text: str
    method: SpinnerMethod
    text: Optional[str] = None


class ErrorMessage(BaseModel):
    name: str
    message: str
    stack: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorMessage":
        return cls(
            name=type(exc).__name__,
            message=str(exc),
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )


Message = Union[SpinnerMessage, ErrorMessage, str]


def encode(message: Message) -> Any:
    """Plain python value for a multiprocessing queue."""
    if isinstance(message, SpinnerMessage):
        return {"spinner": message.model_dump()}
    if isinstance(message, ErrorMessage):
        return {"error": message.model_dump()}
    return message


def decode(raw: Any) -> Message:
    if raw == READY:
        return READY
    if isinstance(raw, dict) and "spinner" in raw:
        return SpinnerMessage.model_validate(raw["spinner"])
    if isinstance(raw, dict) and "error" in raw:
        return ErrorMessage.model_validate(raw["error"])
    raise ValueError(f"unknown worker message: {raw!r}")


def spinner_id(start_text: str) -> str:
    # unique per spinner, even for identical texts started in the same instant
    return ":".join(str(crc32(s)) for s in (start_text, f"{time.time_ns()}.{next(_counter)}"))


def describe_error(error: Union[BaseException, str, None]) -> Optional[str]:
    if isinstance(error, BaseException):
        return "".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip()
    return error


# ----------------------------
# Worker side
# ----------------------------


@dataclass
class QueueSpinner:
    outbox: Any
    start_text: str
    id: str = ""

    def __post_init__(self) -> None:
        self.id = self.id or spinner_id(self.start_text)
        self._post("text", self.start_text)

    def _post(self, method: SpinnerMethod, text: Optional[str] = None) -> None:
        message = SpinnerMessage(id=self.id, start_text=self.start_text, method=method, text=text)
        self.outbox.put(encode(message))

    def text(self, text: str) -> None:
        self._post("text", text)

    def append(self, text: str) -> None:
        self._post("append", text)

    def succeed(self, text: Optional[str] = None) -> None:
        self._post("succeed", text)

    def failed(self, error: Union[BaseException, str, None] = None) -> None:
        if isinstance(error, BaseException):
            self.outbox.put(encode(ErrorMessage.from_exception(error)))
        self._post("failed", describe_error(error))


@dataclass
class QueueSpinners:
    """Spinner host for the dev worker: every call becomes a queue message."""

    outbox: Any

    def start(self, start_text: str) -> QueueSpinner:
        return QueueSpinner(self.outbox, start_text)


# ----------------------------
# Host side
# ----------------------------


class ConsoleSpinner:
    def __init__(self, host: "ConsoleSpinners", start_text: str) -> None:
        self.host = host
        self.start_text = start_text
        self._text = start_text
        self.task: TaskID = host.progress.add_task(escape(start_text), total=1)

    def _show(self, description: str) -> None:
        self.host.progress.update(self.task, description=escape(description))

    def text(self, text: str) -> None:
        self._text = text
        self._show(text)

    def append(self, text: str) -> None:
        self._show(f"{self._text} › {text}")

    def succeed(self, text: Optional[str] = None) -> None:
        label = f"{self._text} › {text}" if text else self._text
        self.host.progress.update(
            self.task, description=f"[green]✔[/green] {escape(label)}", completed=1
        )

    def failed(self, error: Union[BaseException, str, None] = None) -> None:
        self.host.failures += 1
        self.host.progress.update(
            self.task, description=f"[red]✖[/red] {escape(self._text)}", completed=1
        )
        detail = describe_error(error)
        if detail:
            self.host.console.print(detail, markup=False, highlight=False, style="red")


@dataclass
class ConsoleSpinners:
    """
    rich based spinner host. Also replays worker messages: each remote
    spinner id maps to its own local task, so interleaved tasks render
    independently.
    """

    console: Console = field(default_factory=Console)
    failures: int = 0

    def __post_init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(finished_text=" "),
            TextColumn("{task.description}"),
            console=self.console,
        )
        self._remote: dict[str, ConsoleSpinner] = {}

    def __enter__(self) -> "ConsoleSpinners":
        self.progress.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.progress.stop()

    def start(self, start_text: str) -> ConsoleSpinner:
        return ConsoleSpinner(self, start_text)

    def apply(self, message: SpinnerMessage) -> None:
        spinner = self._remote.get(message.id)
        if spinner is None:
            spinner = self._remote[message.id] = self.start(message.start_text)

        match message.method:
            case "text":
                spinner.text(message.text or message.start_text)
            case "append":
                spinner.append(message.text or "")
            case "succeed":
                spinner.succeed(message.text)
                self._remote.pop(message.id, None)
            case "failed":
                spinner.failed(message.text)
                self._remote.pop(message.id, None)

    def error(self, message: ErrorMessage) -> None:
        self.console.print(
            f"[bold red]{escape(message.name)}[/bold red]: {escape(message.message)}"
        )
