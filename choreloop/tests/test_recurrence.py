"""Tests for recurrence expansion and occurrence pairing."""

import pytest
from zoneinfo import ZoneInfo

from conftest import ts
from errors import ConfigError, InvalidRecurrenceExpression
from utils import recurrence
from utils.recurrence import (
    InstanceBoundary,
    expand_instances,
    expand_occurrences,
    pair_occurrences,
    validate_recurrence_expression,
)

HOUR = 3600
DAY = 86400


class TestExpandOccurrences:
    """Tests for expand_occurrences."""

    def test_daily_occurrences_include_boundary(self):
        """Expansion stops after the first occurrence past the horizon."""
        anchor = ts(2024, 1, 15)
        result = expand_occurrences('0 9 * * *', anchor, 2 * DAY)

        assert result == [
            ts(2024, 1, 15, 9),
            ts(2024, 1, 16, 9),
            ts(2024, 1, 17, 9),
        ]

    def test_occurrences_strictly_after_anchor(self):
        """An occurrence at exactly the anchor is not repeated."""
        anchor = ts(2024, 1, 15, 9)
        result = expand_occurrences('0 9 * * *', anchor, DAY)

        assert result[0] == ts(2024, 1, 16, 9)

    def test_horizon_uses_now_when_given(self):
        """The horizon is measured from now, not from the anchor."""
        anchor = ts(2024, 1, 1)
        now = ts(2024, 1, 10)
        result = expand_occurrences('0 9 * * *', anchor, DAY, now=now)

        assert result[0] == ts(2024, 1, 1, 9)
        assert result[-1] == ts(2024, 1, 11, 9)
        assert len(result) == 11

    def test_single_occurrence_when_first_exceeds_horizon(self):
        """A weekly chore far beyond the horizon yields only the boundary occurrence."""
        anchor = ts(2024, 1, 15)  # Monday
        result = expand_occurrences('0 0 19 * * sun', anchor, DAY)

        assert result == [ts(2024, 1, 21, 19)]

    def test_six_field_expression_uses_leading_seconds(self):
        """Six-field expressions put seconds first."""
        anchor = ts(2024, 1, 15)
        result = expand_occurrences('30 15 10 * * *', anchor, 0)

        assert result == [ts(2024, 1, 15, 10, 15, 30)]

    def test_results_are_ascending(self):
        anchor = ts(2024, 3, 1)
        result = expand_occurrences('*/15 * * * *', anchor, 6 * HOUR)

        assert result == sorted(result)
        assert len(set(result)) == len(result)

    def test_expression_evaluated_in_given_timezone(self):
        """Wall-clock 09:00 in Denver is 16:00 UTC in January."""
        anchor = ts(2024, 1, 15)
        result = expand_occurrences('0 9 * * *', anchor, 0, tz=ZoneInfo('America/Denver'))

        assert result == [ts(2024, 1, 15, 16)]

    def test_occurrence_cap_truncates(self, monkeypatch):
        """Dense expressions stop at the occurrence cap."""
        monkeypatch.setattr(recurrence, 'MAX_OCCURRENCES_PER_EXPANSION', 5)
        result = expand_occurrences('* * * * *', ts(2024, 1, 1), 30 * DAY)

        assert len(result) == 5

    def test_backlog_cap_keeps_recent_occurrences(self, monkeypatch):
        """A backlog larger than the cap never stops expansion short of now."""
        monkeypatch.setattr(recurrence, 'MAX_OCCURRENCES_PER_EXPANSION', 5)
        now = ts(2024, 1, 10)

        result = expand_occurrences('0 * * * *', ts(2024, 1, 1), 2 * HOUR, now=now)

        assert result == [now + h * HOUR for h in range(-5, 4)]

    def test_occurrence_at_now_not_skipped(self):
        """An occurrence exactly at now is expanded once, between backlog and upcoming."""
        result = expand_occurrences('0 9 * * *', ts(2024, 1, 1), 0, now=ts(2024, 1, 5, 9))

        assert result == [ts(2024, 1, d, 9) for d in range(1, 7)]

    @pytest.mark.parametrize('expression', [
        '',
        'not a cron',
        '0 9 * *',
        '0 0 9 * * * 2024',
        '61 * * * *',
        '0 25 * * *',
    ])
    def test_invalid_expression_raises(self, expression):
        with pytest.raises(InvalidRecurrenceExpression):
            expand_occurrences(expression, ts(2024, 1, 1), DAY)


class TestPairOccurrences:
    """Tests for pair_occurrences."""

    def test_three_occurrences_make_two_instances(self):
        """The last occurrence waits for its successor."""
        t0, t1, t2 = ts(2024, 1, 1), ts(2024, 1, 2), ts(2024, 1, 3)
        result = pair_occurrences([t0, t1, t2], 2 * HOUR)

        assert result == [
            InstanceBoundary(t0, t0 + 2 * HOUR, t1),
            InstanceBoundary(t1, t1 + 2 * HOUR, t2),
        ]

    def test_single_occurrence_makes_nothing(self):
        assert pair_occurrences([ts(2024, 1, 1)], HOUR) == []

    def test_empty(self):
        assert pair_occurrences([], HOUR) == []

    def test_overdue_after_expected(self):
        occurrences = [ts(2024, 1, d) for d in range(1, 10)]
        for boundary in pair_occurrences(occurrences, 1):
            assert boundary.overdue_time > boundary.expected_completion_time

    def test_non_positive_overdue_rejected(self):
        with pytest.raises(ConfigError):
            pair_occurrences([ts(2024, 1, 1), ts(2024, 1, 2)], 0)


class TestExpandInstances:
    """Tests for expand_instances."""

    def test_weekly_with_short_lookahead(self):
        """Weekly chore inside the lookahead expires at the following week."""
        anchor = ts(2024, 1, 14, 12)  # Sunday noon
        result = expand_instances('0 0 19 * * sun', anchor, DAY, 2 * HOUR)

        assert result == [
            InstanceBoundary(
                expected_completion_time=ts(2024, 1, 14, 19),
                overdue_time=ts(2024, 1, 14, 21),
                expiration_time=ts(2024, 1, 21, 19),
            )
        ]

    def test_consecutive_instances_do_not_overlap(self):
        result = expand_instances('0 8 * * *', ts(2024, 1, 1), 5 * DAY, HOUR)

        for current, following in zip(result, result[1:]):
            assert current.expiration_time == following.expected_completion_time


class TestValidateRecurrenceExpression:
    """Tests for validate_recurrence_expression."""

    def test_valid_expressions(self):
        validate_recurrence_expression('0 8 * * *')
        validate_recurrence_expression('0 0 19 * * sun')
        validate_recurrence_expression('0 0 9 1 * *')
        validate_recurrence_expression('0 0 9 * * mon-fri')
        validate_recurrence_expression('0 0 9 * * */2')
        validate_recurrence_expression('0 9 * * 1')

    @pytest.mark.parametrize('expression', [
        '0 0 19 * * 0',
        '0 0 19 * * 1',
        '0 0 9 * * mon,3',
        '0 0 9 * * 1-5',
    ])
    def test_six_field_numeric_weekday_rejected(self, expression):
        """Six-field weekdays must be named; the old 1-7 numbering would shift a day."""
        with pytest.raises(InvalidRecurrenceExpression) as exc_info:
            validate_recurrence_expression(expression)

        assert 'day-of-week' in exc_info.value.reason

    def test_error_names_chore(self):
        with pytest.raises(InvalidRecurrenceExpression) as exc_info:
            validate_recurrence_expression('every tuesday', title='laundry')

        assert exc_info.value.title == 'laundry'
        assert 'laundry' in exc_info.value.message
