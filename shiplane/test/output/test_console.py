"""Tests for shiplane.output.console module."""

from __future__ import annotations

from shiplane.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestStyle:
    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.DIM) == "dim"


class TestMockConsole:
    def test_print_captures_message(self) -> None:
        console = MockConsole()
        console.print("hello")
        assert console.messages == ["hello"]
        assert console.outputs[0].style == Style.DEFAULT

    def test_prefixes(self) -> None:
        console = MockConsole()
        console.success("done")
        console.error("boom")
        console.warning("careful")
        console.info("fyi")
        assert console.messages == ["OK done", "error: boom", "warning: careful", "info: fyi"]
        assert console.has_error()
        assert console.has_warning()

    def test_table(self) -> None:
        console = MockConsole()
        console.table("Summary: release", ["stage", "status"], [("tests", "ok"), ("build", "failed")])
        assert console.messages == [
            "Summary: release",
            "stage | status",
            "tests | ok",
            "build | failed",
        ]

    def test_find(self) -> None:
        console = MockConsole()
        console.print("fastlane run gym")
        console.print("fastlane run scan")
        assert len(console.find("fastlane run")) == 2
        assert console.find("pilot") == []


class TestRichConsole:
    def test_brackets_are_not_markup(self, capsys) -> None:  # type: ignore[no-untyped-def]
        console = RichConsole()
        console.print("* [Feature: Offline mode")
        console.warning("[bold]literal[/bold]")
        out = capsys.readouterr().out
        assert "[Feature: Offline mode" in out
        assert "[bold]literal[/bold]" in out

    def test_table(self, capsys) -> None:  # type: ignore[no-untyped-def]
        console = RichConsole()
        console.table("Summary: test", ["stage", "status"], [("tests", "ok")])
        out = capsys.readouterr().out
        assert "Summary: test" in out
        assert "tests" in out


def test_implementations_satisfy_protocol() -> None:
    consoles: list[ConsoleProtocol] = [MockConsole(), RichConsole()]
    assert len(consoles) == 2
