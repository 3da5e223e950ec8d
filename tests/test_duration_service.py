#!/usr/bin/env python3
"""
Tests for app/services/duration_service.py.

Run with:
    python -m pytest tests/test_duration_service.py
"""
import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.services.duration_service import (
    DurationRecord,
    find_exact_match,
    format_duration,
    resolve_duration,
    seconds_to_hours,
    summarize_results,
)


def _entry(name, game_id=1, main=36000, plus=54000, full=72000, game_type='game'):
    return {
        'game_id': game_id,
        'game_name': name,
        'game_type': game_type,
        'comp_main': main,
        'comp_plus': plus,
        'comp_100': full,
    }


# ===========================================================================
# seconds_to_hours / format_duration
# ===========================================================================

class TestSecondsToHours(unittest.TestCase):

    def test_one_hour(self):
        self.assertEqual(seconds_to_hours(3600), 1.0)

    def test_rounds_to_two_decimals(self):
        self.assertEqual(seconds_to_hours(9996), 2.78)

    def test_ten_hours(self):
        self.assertEqual(seconds_to_hours(36000), 10.0)

    def test_zero_is_none(self):
        self.assertIsNone(seconds_to_hours(0))

    def test_negative_is_none(self):
        self.assertIsNone(seconds_to_hours(-3600))

    def test_none_is_none(self):
        self.assertIsNone(seconds_to_hours(None))

    def test_numeric_string_accepted(self):
        self.assertEqual(seconds_to_hours("3600"), 1.0)

    def test_non_numeric_is_none(self):
        for value in ("soon", [], {}, True, float("nan")):
            self.assertIsNone(seconds_to_hours(value), value)


class TestFormatDuration(unittest.TestCase):

    def test_whole_hours(self):
        self.assertEqual(format_duration(8), "8h")

    def test_hours_and_minutes(self):
        self.assertEqual(format_duration(12.5), "12h 30m")

    def test_under_one_hour(self):
        self.assertEqual(format_duration(0.75), "0h 45m")

    def test_zero_is_none(self):
        self.assertIsNone(format_duration(0))

    def test_negative_is_none(self):
        self.assertIsNone(format_duration(-2.5))

    def test_none_is_none(self):
        self.assertIsNone(format_duration(None))

    def test_minutes_rounding_up_to_full_hour(self):
        self.assertEqual(format_duration(1.999), "2h")


# ===========================================================================
# Exact-match resolution
# ===========================================================================

class TestFindExactMatch(unittest.TestCase):

    def test_case_insensitive(self):
        results = [_entry("Mega Man")]
        self.assertIs(find_exact_match("mega man", results), results[0])

    def test_trailing_whitespace_ignored(self):
        results = [_entry("Mega Man")]
        self.assertIs(find_exact_match("Mega Man ", results), results[0])

    def test_no_partial_match(self):
        self.assertIsNone(find_exact_match("Mega Man 2", [_entry("Mega Man")]))

    def test_first_duplicate_wins(self):
        results = [_entry("Mega Man", game_id=1), _entry("MEGA MAN", game_id=2)]
        self.assertEqual(find_exact_match("mega man", results)['game_id'], 1)

    def test_missing_name_does_not_crash(self):
        self.assertIsNone(find_exact_match("Mega Man", [{'game_id': 3}]))


class TestResolveDuration(unittest.TestCase):

    def test_empty_results(self):
        self.assertIsNone(resolve_duration("Dark Souls", []))

    def test_none_results(self):
        self.assertIsNone(resolve_duration("Dark Souls", None))

    def test_no_exact_match(self):
        self.assertIsNone(resolve_duration("Dark Souls", [_entry("Dark Souls II")]))

    def test_match_converts_fields(self):
        record = resolve_duration("dark souls", [_entry("Dark Souls II", 2), _entry("Dark Souls", 1)])
        self.assertEqual(record, DurationRecord(game_id=1, main_story=10.0,
                                                main_extras=15.0, completionist=20.0))

    def test_missing_field_becomes_none(self):
        record = resolve_duration("Celeste", [_entry("Celeste", main=28800, plus=0, full=None)])
        self.assertEqual(record.main_story, 8.0)
        self.assertIsNone(record.main_extras)
        self.assertIsNone(record.completionist)

    def test_match_without_any_times_is_none(self):
        results = [_entry("Obscure Game", main=0, plus=0, full=0)]
        self.assertIsNone(resolve_duration("Obscure Game", results))

    def test_non_string_names_compared_as_text(self):
        results = [_entry(1942, game_id=5), _entry("1943", game_id=6)]
        record = resolve_duration("1942", results)
        self.assertEqual(record.game_id, 5)

    def test_string_times_and_non_dict_entries_tolerated(self):
        results = ["junk", None, _entry("Celeste", main="3600", plus="n/a", full=None)]
        record = resolve_duration("Celeste", results)
        self.assertEqual(record.main_story, 1.0)
        self.assertIsNone(record.main_extras)


class TestDurationRecord(unittest.TestCase):

    def test_to_dict_uses_camel_case(self):
        record = DurationRecord(game_id=7, main_story=1.5, main_extras=None, completionist=3.0)
        self.assertEqual(record.to_dict(), {
            'gameId': 7, 'mainStory': 1.5, 'mainExtras': None, 'completionist': 3.0,
        })

    def test_frozen(self):
        record = DurationRecord(game_id=1, main_story=1.0, main_extras=None, completionist=None)
        with self.assertRaises(AttributeError):
            record.main_story = 2.0


class TestSummarizeResults(unittest.TestCase):

    def test_limits_to_three(self):
        results = [_entry(f"Game {i}", game_id=i) for i in range(5)]
        summary = summarize_results(results)
        self.assertEqual([s['id'] for s in summary], [0, 1, 2])
        self.assertEqual(summary[0]['main'], 10.0)


if __name__ == '__main__':
    unittest.main()
