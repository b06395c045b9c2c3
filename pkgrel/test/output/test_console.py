"""Tests for pkgrel.output.console module."""

import threading

import pytest

from pkgrel.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestMockConsole:
    def test_records_styles(self) -> None:
        console = MockConsole()
        console.success("published")
        console.error("failed")
        console.warning("careful")
        console.info("note")
        console.header("Gates")
        console.print("plain")

        assert console.messages == [
            "OK published",
            "error: failed",
            "warning: careful",
            "info: note",
            "Gates",
            "plain",
        ]
        assert console.has_success()
        assert console.has_error()
        assert console.has_warning()

    def test_debug_is_recorded_dim(self) -> None:
        console = MockConsole()
        console.debug("$ cargo test")
        assert console.outputs[0].style == Style.DIM

    def test_find_and_clear(self) -> None:
        console = MockConsole()
        console.print("zk-sdk 1.2.4")
        console.print("other")
        assert [o.message for o in console.find("zk-sdk")] == ["zk-sdk 1.2.4"]
        console.clear()
        assert console.text == ""

    def test_concurrent_writers(self) -> None:
        console = MockConsole()

        def spam(prefix: str) -> None:
            for i in range(200):
                console.print(f"{prefix}{i}")

        threads = [threading.Thread(target=spam, args=(p,)) for p in ("a", "b")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(console.outputs) == 400

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.newline()


class TestRichConsole:
    def test_debug_hidden_unless_verbose(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole().debug("$ cargo build")
        assert "cargo build" not in capsys.readouterr().out

        RichConsole(verbose=True).debug("$ cargo build")
        assert "cargo build" in capsys.readouterr().out

    def test_markup_in_messages_is_escaped(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole().error("missing [package] section")
        assert "[package]" in capsys.readouterr().out
