"""Tests for the terminal platform notifier."""

from src.output.console_notifier import ConsoleNotifier


def test_create_prints_title_and_message(capsys):
    notifier = ConsoleNotifier()

    notifier.create(
        "1_Issue_160_closed_2017",
        {"title": "sue445/example", "message": "[Issue] #445 TestIssue closed"},
    )

    out = capsys.readouterr().out
    assert "sue445/example" in out
    assert "[Issue] #445 TestIssue closed" in out
    assert "1_Issue_160_closed_2017" not in out
    assert notifier.created == ["1_Issue_160_closed_2017"]


def test_show_ids(capsys):
    notifier = ConsoleNotifier(show_ids=True)

    notifier.create("key", {"title": "t", "message": "m"})

    assert "id=key" in capsys.readouterr().out


def test_badge_text():
    notifier = ConsoleNotifier()

    notifier.set_badge_text("3")

    assert notifier.badge_text == "3"
