"""Tests for workflow run and timestamp display helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from repo_monitor.models.github_models import WorkflowRun
from repo_monitor.services.status_format import format_time_ago, get_status_info

NOW = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)


def _run(status, conclusion=None) -> WorkflowRun:
    return WorkflowRun(id=1, status=status, conclusion=conclusion)


class TestGetStatusInfo:
    """Test workflow run badge mapping."""

    @pytest.mark.parametrize("conclusion,status,label", [
        ("success", "success", "Success"),
        ("failure", "failure", "Failed"),
        ("cancelled", "cancelled", "Cancelled"),
        ("skipped", "cancelled", "Skipped"),
        ("timed_out", "cancelled", "timed_out"),
    ])
    def test_completed(self, conclusion, status, label) -> None:
        """Test completed runs map by conclusion."""
        info = get_status_info(_run("completed", conclusion))

        assert (info.status, info.label) == (status, label)

    @pytest.mark.parametrize("status", ["in_progress", "queued", "waiting"])
    def test_in_progress(self, status) -> None:
        """Test running states show as in progress."""
        info = get_status_info(_run(status))

        assert (info.status, info.label) == ("pending", "In Progress")

    def test_other_status(self) -> None:
        """Test unrecognised states fall back to the raw status."""
        assert get_status_info(_run("requested")).label == "requested"
        assert get_status_info(_run(None)).label == "Pending"

    def test_no_run(self) -> None:
        """Test a missing run is unknown."""
        info = get_status_info(None)

        assert (info.status, info.label) == ("unknown", "Unknown")


class TestFormatTimeAgo:
    """Test relative timestamps."""

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=30), "just now"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(hours=3, minutes=59), "3h ago"),
        (timedelta(days=2, hours=1), "2d ago"),
    ])
    def test_buckets(self, delta, expected) -> None:
        """Test each unit bucket."""
        assert format_time_ago(NOW - delta, now=NOW) == expected

    def test_iso_string(self) -> None:
        """Test GitHub timestamps are accepted as strings."""
        assert format_time_ago("2024-05-10T11:00:00Z", now=NOW) == "1h ago"

    def test_naive_values_are_utc(self) -> None:
        """Test naive datetimes are treated as UTC."""
        assert format_time_ago(datetime(2024, 5, 10, 11, 30), now=NOW.replace(tzinfo=None)) == "30m ago"
