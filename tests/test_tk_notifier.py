"""
Tests for the desktop notification popup
"""
from unittest.mock import MagicMock

import pytest

pytest.importorskip("tkinter")

from host import tk_host
from host.tk_host import TkNotifier
from shared.models import NotificationPermission


class FakeRoot:
    """Records after() callbacks instead of running a Tk loop"""

    def __init__(self):
        self.callbacks = {}
        self.cancelled = []

    def after(self, ms, callback):
        after_id = f"after#{len(self.callbacks) + 1}"
        self.callbacks[after_id] = callback
        return after_id

    def after_cancel(self, after_id):
        self.cancelled.append(after_id)


@pytest.fixture
def popups(monkeypatch):
    created = []

    def make_toplevel(*args, **kwargs):
        top = MagicMock(name=f"toplevel{len(created) + 1}")
        top.winfo_screenwidth.return_value = 1920
        top.winfo_reqwidth.return_value = 360
        created.append(top)
        return top

    monkeypatch.setattr(tk_host.tk, "Toplevel", make_toplevel)
    monkeypatch.setattr(tk_host.tk, "Frame", MagicMock())
    monkeypatch.setattr(tk_host.tk, "Label", MagicMock())
    return created


class TestTkNotifier:

    def test_permission_follows_flag(self):
        assert TkNotifier(FakeRoot()).permission == NotificationPermission.GRANTED
        assert TkNotifier(FakeRoot(), enabled=False).permission == NotificationPermission.DENIED

    def test_popup_dismisses_itself(self, popups):
        root = FakeRoot()
        notifier = TkNotifier(root)
        notifier.notify("Title", "Body")

        root.callbacks["after#1"]()

        popups[0].destroy.assert_called_once()

    def test_old_timer_does_not_close_newer_popup(self, popups):
        root = FakeRoot()
        notifier = TkNotifier(root)

        notifier.notify("First", "Body")
        notifier.notify("Second", "Body")

        assert "after#1" in root.cancelled
        popups[0].destroy.assert_called_once()
        popups[1].destroy.assert_not_called()

        root.callbacks["after#2"]()
        popups[1].destroy.assert_called_once()
