from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

from yashell.local.supervisor.log_sink import STDERR, STDOUT, LogSink
from yashell.local.supervisor.resolver import ResolvedPath


def test_open_creates_directory_and_appends(tmp_path):
    log_dir = tmp_path / "nested" / "logs"

    with LogSink.open(log_dir, timestamps=False) as sink:
        assert sink.write_line(STDOUT, "first")
    with LogSink.open(log_dir, timestamps=False) as sink:
        assert sink.write_line(STDERR, "second\r\n")

    content = (log_dir / "server.log").read_text(encoding="utf-8")
    assert content == "[STDOUT] first\n[STDERR] second\n"


def test_timestamped_lines(tmp_path):
    with LogSink.open(tmp_path, timestamps=True) as sink:
        sink.write_line(STDOUT, "hello")

    line = (tmp_path / "server.log").read_text(encoding="utf-8")
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \[STDOUT\] hello\n", line)


def test_banner_records_pid_and_path(tmp_path):
    resolved = ResolvedPath(path=Path("/opt/yallma3/bin/index-x86_64-unknown-linux-gnu"))

    with LogSink.open(tmp_path, timestamps=False) as sink:
        sink.write_banner(4242, resolved)

    line = (tmp_path / "server.log").read_text(encoding="utf-8")
    assert line.startswith("[SUPERVISOR] ")
    assert "PID 4242" in line
    assert "index-x86_64-unknown-linux-gnu" in line


def test_duplicate_is_independent_of_original(tmp_path):
    sink = LogSink.open(tmp_path, timestamps=False)
    clone = sink.duplicate()
    sink.close()

    assert sink.closed
    assert clone.write_line(STDOUT, "still open")
    clone.close()

    assert (tmp_path / "server.log").read_text(encoding="utf-8") == "[STDOUT] still open\n"


def test_write_after_close_is_logged_not_raised(tmp_path, caplog):
    sink = LogSink.open(tmp_path, timestamps=False)
    sink.close()

    with caplog.at_level(logging.ERROR):
        assert sink.write_line(STDERR, "lost") is False

    assert "closed" in caplog.text


def test_concurrent_writers_never_interleave_lines(tmp_path):
    lines_per_writer = 2000
    payload = "x" * 300
    sink = LogSink.open(tmp_path, timestamps=False)
    writers = [sink.duplicate(), sink.duplicate()]
    sink.close()
    barrier = threading.Barrier(len(writers))

    def drain(writer: LogSink, stream: str):
        barrier.wait()
        for i in range(lines_per_writer):
            writer.write_line(stream, f"{i:05d} {payload}")
        writer.close()

    threads = [
        threading.Thread(target=drain, args=(writers[0], STDOUT)),
        threading.Thread(target=drain, args=(writers[1], STDERR)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    lines = (tmp_path / "server.log").read_text(encoding="utf-8").splitlines()
    pattern = re.compile(r"\[(STDOUT|STDERR)\] \d{5} " + payload)
    assert len(lines) == 2 * lines_per_writer
    assert all(pattern.fullmatch(line) for line in lines)
    assert sum(line.startswith("[STDOUT]") for line in lines) == lines_per_writer


def test_short_write_is_logged_and_tail_not_appended(tmp_path, monkeypatch, caplog):
    from yashell.local.supervisor import log_sink

    real_write = log_sink.os.write
    calls = []

    def short_write(fd, data):
        calls.append(data)
        return real_write(fd, data[:5])

    sink = LogSink.open(tmp_path, timestamps=False)
    monkeypatch.setattr(log_sink.os, "write", short_write)

    with caplog.at_level(logging.ERROR):
        assert sink.write_line(STDOUT, "truncated line") is False

    monkeypatch.undo()
    sink.close()

    assert len(calls) == 1
    assert "Short write" in caplog.text
    assert (tmp_path / "server.log").read_bytes() == b"[STDO"
