"""Tests for fci.output.console module."""

from __future__ import annotations

import threading

import pytest

from fci.output.console import MockConsole, RichConsole, Style


class TestMockConsole:
    def test_prefixes(self) -> None:
        console = MockConsole()
        console.success("done")
        console.error("bad")
        console.warning("careful")
        console.info("fyi")
        assert console.messages == ["OK done", "error: bad", "warning: careful", "info: fyi"]
        assert console.has_error()
        assert console.has_warning()

    def test_table_rows(self) -> None:
        console = MockConsole()
        console.table("runs", ["id", "status"], [["r1", "success"], ["r2", "failure"]])
        assert console.messages == ["runs", "id | status", "r1 | success", "r2 | failure"]

    def test_find_and_clear(self) -> None:
        console = MockConsole()
        console.print("building forestry", Style.DIM)
        assert len(console.find("forestry")) == 1
        console.clear()
        assert console.messages == []

    def test_concurrent_writes_are_all_recorded(self) -> None:
        console = MockConsole()

        def worker(n: int) -> None:
            for i in range(100):
                console.print(f"{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(console.messages) == 400


class TestRichConsole:
    def test_markup_in_messages_is_escaped(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.error("expected [bold]literal[/bold]")
        out = capsys.readouterr().out
        assert "[bold]literal[/bold]" in out

    def test_quiet_drops_dim_lines(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(quiet=True)
        console.print("step chatter", Style.DIM)
        console.print("kept")
        out = capsys.readouterr().out
        assert "step chatter" not in out
        assert "kept" in out
