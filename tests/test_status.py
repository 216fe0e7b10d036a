"""
Tests for status aggregation.
"""

import pytest
from conftest import make_project

from railbar.models import DeploymentStatus as S
from railbar.polling.status import (
    BadgeTier,
    MonitorSnapshot,
    OverallHealth,
    WarningKind,
    active_services,
    count_statuses,
    derive_rate_limit_warning,
    effective_status,
    next_ticker_index,
    overall_health,
    project_badge,
    summarize,
    ticker_service,
)


class TestProjectBadge:
    @pytest.mark.parametrize(
        "statuses,expected",
        [
            ([S.SUCCESS, S.SUCCESS], BadgeTier.SUCCESS),
            ([S.SUCCESS, S.BUILDING], BadgeTier.BUILDING),
            ([S.SUCCESS, S.FAILED], BadgeTier.CRASHED),
            ([S.CRASHED, S.DEPLOYING], BadgeTier.CRASHED),
            ([S.INITIALIZING, S.SLEEPING], BadgeTier.BUILDING),
            ([S.SUCCESS, S.SLEEPING], BadgeTier.UNKNOWN),
            ([S.REMOVED], BadgeTier.UNKNOWN),
            ([], BadgeTier.UNKNOWN),
            ([None], BadgeTier.UNKNOWN),
            ([S.SUCCESS, None], BadgeTier.SUCCESS),
        ],
    )
    def test_badge_precedence(self, statuses, expected):
        assert project_badge(make_project("p", statuses)) == expected


def test_effective_status():
    project = make_project("a", [S.FAILED, None])

    assert [effective_status(s) for s in project.services] == [S.FAILED, S.UNKNOWN]


def test_count_statuses():
    projects = [
        make_project("a", [S.SUCCESS, S.SUCCESS, S.FAILED, None]),
        make_project("b", [S.CRASHED, S.BUILDING, S.DEPLOYING, S.INITIALIZING]),
        make_project("c", [S.SLEEPING, S.REMOVED, S.UNKNOWN]),
    ]

    counts = count_statuses(projects)

    assert counts.running == 2
    assert counts.errored == 2
    assert counts.active == 3
    assert counts.sleeping == 1


def test_active_services_in_tree_order():
    projects = [
        make_project("a", [S.SUCCESS, S.BUILDING]),
        make_project("b", [S.DEPLOYING, None]),
    ]

    active = active_services(projects)

    assert [(s.project_name, s.service_name, s.status) for s in active] == [
        ("a", "a-service-1", S.BUILDING),
        ("b", "b-service-0", S.DEPLOYING),
    ]


class TestTicker:
    def test_rotation_cycles_between_two_active_services(self):
        index = 0
        seen = []
        for _ in range(5):
            index = next_ticker_index(index, 2)
            seen.append(index)

        assert seen == [1, 0, 1, 0, 1]

    def test_reset_when_nothing_active(self):
        assert next_ticker_index(1, 0) == 0

    def test_ticker_service_wraps_index(self):
        projects = [make_project("a", [S.BUILDING, S.DEPLOYING])]

        assert ticker_service(projects, 0).service_name == "a-service-0"
        assert ticker_service(projects, 3).service_name == "a-service-1"
        assert ticker_service([], 3) is None


class TestRateLimitWarning:
    def test_exhausted(self):
        warning = derive_rate_limit_warning(0, 1000)

        assert warning.kind is WarningKind.EXHAUSTED
        assert "pausing until reset" in warning.message

    def test_low(self):
        warning = derive_rate_limit_warning(20, 100)

        assert warning.kind is WarningKind.LOW
        assert (warning.remaining, warning.limit) == (20, 100)
        assert warning.message == "Rate limit low (20/100 remaining)"

    @pytest.mark.parametrize(
        "remaining,limit", [(25, 100), (None, 100), (None, None), (5, None)]
    )
    def test_no_warning(self, remaining, limit):
        assert derive_rate_limit_warning(remaining, limit) is None

    def test_exhausted_without_limit(self):
        assert derive_rate_limit_warning(0, None).kind is WarningKind.EXHAUSTED


class TestOverallHealth:
    def test_unconfigured_wins(self):
        snapshot = MonitorSnapshot(error="boom")

        assert overall_health(snapshot, configured=False) is OverallHealth.UNCONFIGURED

    def test_loading_only_before_first_result(self):
        assert overall_health(MonitorSnapshot(is_loading=True), True) is (
            OverallHealth.LOADING
        )

        loaded = MonitorSnapshot(
            projects=(make_project("a", [S.SUCCESS]),), is_loading=True
        )
        assert overall_health(loaded, True) is OverallHealth.OK

    def test_error_then_status_precedence(self):
        crashed = (make_project("a", [S.FAILED, S.BUILDING]),)
        building = (make_project("a", [S.SUCCESS, S.BUILDING]),)

        assert overall_health(MonitorSnapshot(error="x"), True) is OverallHealth.ERROR
        assert (
            overall_health(MonitorSnapshot(projects=crashed), True)
            is OverallHealth.CRASHED
        )
        assert (
            overall_health(MonitorSnapshot(projects=building), True)
            is OverallHealth.BUILDING
        )


def test_summarize_to_dict():
    snapshot = MonitorSnapshot(
        projects=(
            make_project("a", [S.SUCCESS, S.BUILDING], project_id="proj-a"),
            make_project("b", [S.SUCCESS], project_id="proj-b"),
        ),
        ticker_index=0,
    )

    summary = summarize(snapshot).to_dict()

    assert summary["health"] == "building"
    assert summary["counts"] == {
        "running": 2,
        "errored": 0,
        "active": 1,
        "sleeping": 0,
    }
    assert summary["badges"] == {"proj-a": "building", "proj-b": "success"}
    assert summary["ticker_service"] == {
        "project": "a",
        "service": "a-service-1",
        "status": "BUILDING",
    }
