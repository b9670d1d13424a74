import io
import logging
import queue
from pathlib import Path

import pytest
from conftest import write
from rich.console import Console
from rich.logging import RichHandler

from routegen.config import load_config
from routegen.orchestrator.worker import WorkerHost, worker_main
from routegen.progress import (
    READY,
    ConsoleSpinners,
    ErrorMessage,
    QueueSpinners,
    SpinnerMessage,
    decode,
    encode,
)


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def drain(q: queue.Queue) -> list:
    out = []
    while not q.empty():
        out.append(q.get_nowait())
    return out


def quiet_spinners() -> ConsoleSpinners:
    return ConsoleSpinners(Console(file=io.StringIO(), force_terminal=False))


def test_queue_spinner_messages():
    q: queue.Queue = queue.Queue()
    spinner = QueueSpinners(q).start("Resolving Routes")
    spinner.append("books")
    spinner.failed(ValueError("bad route"))

    raw = drain(q)
    messages = [decode(m) for m in raw]

    assert [m.method for m in messages if isinstance(m, SpinnerMessage)] == ["text", "append", "failed"]
    assert {m.id for m in messages if isinstance(m, SpinnerMessage)} == {spinner.id}

    (error,) = [m for m in messages if isinstance(m, ErrorMessage)]
    assert error.name == "ValueError"
    assert error.message == "bad route"

    # failed carries the formatted traceback
    assert "ValueError: bad route" in messages[-1].text
    # plain data on the wire
    assert raw[0] == {"spinner": messages[0].model_dump()}


def test_spinner_ids_are_unique():
    q: queue.Queue = queue.Queue()
    spinners = QueueSpinners(q)
    assert spinners.start("same").id != spinners.start("same").id


def test_decode_rejects_unknown_messages():
    assert decode(encode(READY)) == READY
    with pytest.raises(ValueError):
        decode({"nope": 1})


def test_worker_runs_initial_pass_then_reports_ready(app_root: Path):
    write(
        app_root / "src/api/books/[id]/index.ts",
        """
        export default defineRoute<[TRefine<number>]>(({ GET }) => [
          GET(async (ctx) => {}),
        ]);
        """,
    )
    config = load_config(app_root)

    q: queue.Queue = queue.Queue()
    worker_main(config.model_dump(mode="json"), q, watch=False)

    raw = drain(q)
    assert raw[-1] == READY
    assert raw.count(READY) == 1

    messages = [decode(m) for m in raw[:-1]]
    assert all(isinstance(m, SpinnerMessage) for m in messages)
    assert {m.start_text for m in messages} == {
        "Resolving Routes",
        "Initializing Generators",
        "Running Generators",
    }
    assert not [m for m in messages if m.method == "failed"]

    # the worker really generated
    assert (app_root / "lib/src/{api}/books/[id]/types.ts").is_file()
    assert (app_root / "lib/src/{api}.ts").is_file()


def test_worker_reports_boundary_errors(app_root: Path):
    q: queue.Queue = queue.Queue()
    with pytest.raises(SystemExit):
        worker_main({"app_root": str(app_root), "framework": "angular"}, q, watch=False)

    (raw,) = drain(q)
    assert decode(raw).name == "ValidationError"


def test_host_replays_messages_and_calls_ready_once(app_root: Path):
    ready = []
    spinners = quiet_spinners()
    host = WorkerHost(load_config(app_root), spinners, on_ready=lambda: ready.append(1))

    q: queue.Queue = queue.Queue()
    worker_spinners = QueueSpinners(q)
    a = worker_spinners.start("Resolving Routes")
    b = worker_spinners.start("Running Generators")
    a.append("books")
    b.failed("generator broke")
    a.succeed()

    for raw in drain(q) + [READY, READY]:
        host.handle_message(raw)

    assert ready == [1]
    assert host.ready
    assert spinners.failures == 1
    assert len(spinners.progress.tasks) == 2
    assert all(t.finished for t in spinners.progress.tasks)


def test_worker_reports_errors_raised_while_watching(app_root: Path):
    # no source folder to watch
    q: queue.Queue = queue.Queue()
    with pytest.raises(SystemExit):
        worker_main(load_config(app_root).model_dump(mode="json"), q, watch=True)

    raw = drain(q)
    assert READY in raw
    error = decode(raw[-1])
    assert isinstance(error, ErrorMessage)
    assert error.name == "FileNotFoundError"
    assert error.stack


def test_worker_logging_follows_verbosity(app_root: Path):
    q: queue.Queue = queue.Queue()
    worker_main(load_config(app_root).model_dump(mode="json"), q, watch=False, verbose=True)

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h, RichHandler) for h in root.handlers)

    worker_main(load_config(app_root).model_dump(mode="json"), q, watch=False)
    assert logging.getLogger().level == logging.WARNING
