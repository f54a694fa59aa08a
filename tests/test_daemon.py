"""Tests for daemon loop module."""

import os
import threading

import pytest
from pathlib import Path
from unittest.mock import Mock

from src.backupfs.archiver import ZipArchiver
from src.backupfs.daemon import CancellationToken, DaemonLoop, DaemonState
from src.backupfs.exceptions import StoreError
from src.backupfs.monitor import Monitor
from src.backupfs.persistence import PersistenceAdapter
from src.backupfs.store import PathStore


def make_loop(monitor=None, persistence=None, interval=0.01):
    if monitor is None:
        monitor = Mock(spec=Monitor)
        monitor.registry = {}
    if persistence is None:
        persistence = Mock(spec=PersistenceAdapter)
        persistence.load.return_value = {}
    return DaemonLoop(monitor, persistence, poll_interval=interval)


class TestCancellationToken:
    """Tests for CancellationToken class."""

    def test_initially_not_cancelled(self):
        assert CancellationToken().is_cancelled() is False

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled() is True

    def test_cancel_is_idempotent(self):
        token = CancellationToken()
        token.cancel()
        token.cancel()
        assert token.is_cancelled() is True

    def test_wait_returns_early_when_cancelled(self):
        token = CancellationToken()
        threading.Timer(0.05, token.cancel).start()
        assert token.wait(5.0) is True

    def test_wait_times_out(self):
        assert CancellationToken().wait(0.01) is False


class TestDaemonLoop:
    """Tests for DaemonLoop class."""

    def test_initial_state(self):
        loop = make_loop()
        assert loop.state == DaemonState.RUNNING

    def test_start_loads_registry_into_monitor(self):
        loop = make_loop()
        loop.persistence.load.return_value = {"/data": b"\x01"}

        loop.start()

        loop.monitor.set_registry.assert_called_once_with({"/data": b"\x01"})

    def test_cancel_before_first_iteration_saves_once(self):
        loop = make_loop()
        loop.request_stop()

        loop.run()

        loop.monitor.poll.assert_not_called()
        loop.persistence.save.assert_called_once_with(loop.monitor.registry)
        assert loop.state == DaemonState.SHUTTING_DOWN

    def test_runs_until_cancelled(self):
        loop = make_loop()
        polls = []

        def poll():
            polls.append(1)
            if len(polls) == 3:
                loop.request_stop()
            return 0

        loop.monitor.poll.side_effect = poll

        loop.run()

        assert len(polls) == 3
        loop.persistence.save.assert_called_once()

    def test_poll_failure_does_not_stop_loop(self):
        loop = make_loop()
        outcomes = [RuntimeError("boom"), 2]

        def poll():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            loop.request_stop()
            return outcome

        loop.monitor.poll.side_effect = poll

        loop.run()

        assert loop.monitor.poll.call_count == 2
        loop.persistence.save.assert_called_once()

    def test_run_once_returns_count(self):
        loop = make_loop()
        loop.monitor.poll.return_value = 4
        assert loop.run_once() == 4

    def test_run_once_returns_none_on_failure(self):
        loop = make_loop()
        loop.monitor.poll.side_effect = RuntimeError("boom")
        assert loop.run_once() is None

    def test_second_stop_request_has_no_effect(self):
        loop = make_loop()
        loop.request_stop()
        loop.run()
        loop.request_stop()
        loop.shutdown()

        loop.persistence.save.assert_called_once()

    def test_load_failure_propagates(self):
        loop = make_loop()
        loop.persistence.load.side_effect = StoreError("locked")

        with pytest.raises(StoreError):
            loop.run()

        loop.persistence.save.assert_not_called()

    def test_save_failure_propagates(self):
        loop = make_loop()
        loop.persistence.save.side_effect = StoreError("locked")
        loop.request_stop()

        with pytest.raises(StoreError):
            loop.run()

    def test_stop_from_another_thread(self):
        loop = make_loop(interval=10.0)
        loop.monitor.poll.return_value = 0
        thread = threading.Thread(target=loop.run)
        thread.start()

        loop.request_stop()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
        loop.persistence.save.assert_called_once()


class TestDaemonIntegration:
    """End-to-end restart behavior with real components."""

    def test_fingerprints_survive_restart(self, tmp_path):
        project = tmp_path / "project"
        project.mkdir()
        (project / "notes.txt").write_text("hello")
        os.utime(project / "notes.txt", (1_600_000_000, 1_600_000_000))
        archive_root = tmp_path / "archive"

        store = PathStore(tmp_path / "paths.db")
        store.add_path(project)

        def run_session():
            monitor = Monitor(ZipArchiver(), archive_root)
            loop = DaemonLoop(monitor, PersistenceAdapter(store), poll_interval=0.01)
            counts = []

            def poll():
                counts.append(Monitor.poll(monitor))
                loop.request_stop()
                return counts[-1]

            monitor.poll = poll
            loop.run()
            return counts

        assert run_session() == [1]
        assert run_session() == [0]

        archive_dir = archive_root / project.relative_to(project.anchor)
        assert len(list(archive_dir.glob("*.zip"))) == 1
