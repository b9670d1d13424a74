from __future__ import annotations

import logging
import multiprocessing
import queue
import threading
from typing import Any, Callable, Optional

from rich.console import Console

from routegen.config import ProjectConfig
from routegen.log import configure_logging
from routegen.orchestrator.pipeline import open_session
from routegen.progress import (
    READY,
    ConsoleSpinners,
    ErrorMessage,
    QueueSpinners,
    SpinnerMessage,
    decode,
    encode,
)

log = logging.getLogger(__name__)


def worker_main(config_data: dict[str, Any], outbox: Any, watch: bool = True, verbose: bool = False) -> None:
    """
    Dev worker entry point. Only plain data crosses the boundary: the
    project config and verbosity in, encoded progress messages out.
    Generators, formatters and the extractor are rebuilt here from their
    module refs. Anything that escapes the session is posted as an error
    before the process exits with status 1.
    """
    configure_logging(verbose, Console(stderr=True))
    spinners = QueueSpinners(outbox)
    try:
        config = ProjectConfig.model_validate(config_data)
        session = open_session(config, spinners, "serve")
        session.start()
    except Exception as exc:
        outbox.put(encode(ErrorMessage.from_exception(exc)))
        raise SystemExit(1) from exc

    outbox.put(encode(READY))

    if watch:
        try:
            session.watch()
        except KeyboardInterrupt:
            pass
        except Exception as exc:
            outbox.put(encode(ErrorMessage.from_exception(exc)))
            raise SystemExit(1) from exc


class WorkerHost:
    """
    Runs the dev session in a spawned process and renders what it reports.

    The worker is never restarted; `on_exit(exitcode)` tells the caller it
    is gone.
    """

    def __init__(
        self,
        config: ProjectConfig,
        spinners: ConsoleSpinners,
        on_ready: Optional[Callable[[], None]] = None,
        on_exit: Optional[Callable[[Optional[int]], None]] = None,
        verbose: bool = False,
    ) -> None:
        self.config = config
        self.spinners = spinners
        self.on_ready = on_ready
        self.on_exit = on_exit
        self.verbose = verbose

        self._ctx = multiprocessing.get_context("spawn")
        self.outbox = self._ctx.Queue()
        self.process: Optional[multiprocessing.process.BaseProcess] = None
        self._pump: Optional[threading.Thread] = None
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def start(self) -> None:
        self.process = self._ctx.Process(
            target=worker_main,
            args=(self.config.model_dump(mode="json"), self.outbox, True, self.verbose),
            name="routegen-worker",
            daemon=True,
        )
        self.process.start()
        log.debug("worker started, pid=%s", self.process.pid)

        self._pump = threading.Thread(target=self._pump_messages, name="routegen-pump", daemon=True)
        self._pump.start()

    def handle_message(self, raw: Any) -> None:
        message = decode(raw)
        if message == READY:
            if not self._ready:
                self._ready = True
                if self.on_ready is not None:
                    self.on_ready()
        elif isinstance(message, SpinnerMessage):
            self.spinners.apply(message)
        elif isinstance(message, ErrorMessage):
            self.spinners.error(message)

    def _pump_messages(self) -> None:
        assert self.process is not None
        while True:
            try:
                raw = self.outbox.get(timeout=0.2)
            except queue.Empty:
                if self.process.is_alive():
                    continue
                break
            try:
                self.handle_message(raw)
            except ValueError:
                log.warning("dropping malformed worker message: %r", raw)

        self.process.join()
        log.debug("worker exited with code %s", self.process.exitcode)
        if self.on_exit is not None:
            self.on_exit(self.process.exitcode)

    def join(self, timeout: Optional[float] = None) -> None:
        if self._pump is not None:
            self._pump.join(timeout)

    def terminate(self) -> None:
        if self.process is not None and self.process.is_alive():
            self.process.terminate()
        self.join(timeout=5)
