"""Tests for the auto-sync scheduler."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from quotesync.client.sync.scheduler import JOB_ID, AutoSyncScheduler


class TestAutoSyncScheduler:
    """Tests for AutoSyncScheduler class."""

    def test_init(self) -> None:
        """Should initialize stopped with the given interval."""
        scheduler = AutoSyncScheduler(lambda: None, interval=15)

        assert scheduler.interval == 15
        assert not scheduler.is_running

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            AutoSyncScheduler(lambda: None, interval=0)

    def test_start_stop(self) -> None:
        """Should start and stop the background scheduler."""
        scheduler = AutoSyncScheduler(lambda: None, interval=3600)

        scheduler.start()
        assert scheduler.is_running

        scheduler.stop()
        assert not scheduler.is_running

    def test_start_twice_is_noop(self) -> None:
        """Should not start a second scheduler."""
        with patch("quotesync.client.sync.scheduler.BackgroundScheduler") as mock_cls:
            scheduler = AutoSyncScheduler(lambda: None)
            scheduler.start()
            scheduler.start()

        assert mock_cls.call_count == 1
        mock_cls.return_value.start.assert_called_once()

    def test_job_registration(self) -> None:
        """Should register one coalescing interval job."""
        with patch("quotesync.client.sync.scheduler.BackgroundScheduler") as mock_cls:
            scheduler = AutoSyncScheduler(lambda: None, interval=30)
            scheduler.start()

        kwargs = mock_cls.return_value.add_job.call_args.kwargs
        assert kwargs["id"] == JOB_ID
        assert kwargs["max_instances"] == 1
        assert kwargs["coalesce"] is True

    def test_stop_when_not_running(self) -> None:
        """Should handle stop when not running."""
        scheduler = AutoSyncScheduler(lambda: None)
        scheduler.stop()
        assert not scheduler.is_running

    def test_run_now_calls_callback(self) -> None:
        callback = MagicMock()
        AutoSyncScheduler(callback).run_now()
        callback.assert_called_once_with()

    def test_job_swallows_callback_errors(self) -> None:
        """A failing callback never kills the timer thread."""
        callback = MagicMock(side_effect=RuntimeError("boom"))
        scheduler = AutoSyncScheduler(callback)

        scheduler.run_now()

        callback.assert_called_once()

    def test_stop_waits_for_running_job(self) -> None:
        """Stopping blocks until a job already running has finished."""
        with patch("quotesync.client.sync.scheduler.BackgroundScheduler") as mock_cls:
            scheduler = AutoSyncScheduler(lambda: None)
            scheduler.start()
            scheduler.stop()

        mock_cls.return_value.shutdown.assert_called_once_with(wait=True)
