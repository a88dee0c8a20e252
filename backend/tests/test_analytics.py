from datetime import datetime, timedelta, timezone

from backend.classroom_module import analytics
from backend.classroom_module.models import to_naive_utc


def test_average_score_ignores_ungraded_rows():
    assert analytics.average_score([80, 90, 100, None]) == 90.0
    assert analytics.average_score([70, 75, None, 80]) == 75.0


def test_average_score_is_zero_without_grades():
    assert analytics.average_score([]) == 0
    assert analytics.average_score([None, None]) == 0
    assert analytics.graded_count([None, None]) == 0
    assert analytics.graded_count([0, None, 55]) == 2


def test_completion_rate_handles_zero_total():
    assert analytics.completion_rate(0, 0) == 0
    assert analytics.completion_rate(1, 3) == 33
    assert analytics.completion_rate(3, 3) == 100


def test_attendance_rate_counts_only_marked_records():
    assert analytics.attendance_rate([True, False, None, True]) == 67
    assert analytics.attendance_rate([None]) == 0


def test_performance_tier_boundaries():
    assert analytics.performance_tier(80) == "high"
    assert analytics.performance_tier(79.9) == "average"
    assert analytics.performance_tier(60) == "average"
    assert analytics.performance_tier(59) == "low"
    assert analytics.tier_counts([95, 80, 65, 10]) == {"high": 2, "average": 1, "low": 1}


def test_weekly_trend_buckets_by_submission_week():
    now = datetime(2024, 3, 31, 12, 0)
    rows = [
        (now - timedelta(days=1), 90),
        (now - timedelta(days=2), 70),
        (now - timedelta(days=20), 60),
        (now - timedelta(days=60), 100),
        (now - timedelta(days=3), None),
        (None, 50),
    ]

    trend = analytics.weekly_trend(rows, now)

    assert [point["date"] for point in trend] == [f"Week {n}" for n in range(1, 7)]
    assert trend[-1]["score"] == 80
    assert trend[-1]["graded"] == 2
    assert trend[3]["score"] == 60
    assert trend[0]["score"] is None


def test_attendance_by_date_groups_per_day():
    day = datetime(2024, 5, 6)
    records = [
        (day, True),
        (day, False),
        (day + timedelta(days=1), True),
        (day + timedelta(days=1), None),
    ]

    result = analytics.attendance_by_date(records)

    assert result == {
        "dates": ["2024-05-06", "2024-05-07"],
        "present_percentages": [50, 100],
        "average_attendance": 75,
    }


def test_aware_timestamps_are_converted_to_naive_utc():
    aware = datetime(2024, 5, 6, 7, 30, tzinfo=timezone(timedelta(hours=-5)))

    assert to_naive_utc(aware) == datetime(2024, 5, 6, 12, 30)
    assert to_naive_utc(datetime(2024, 5, 6, 7, 30)) == datetime(2024, 5, 6, 7, 30)
    assert to_naive_utc(None) is None
