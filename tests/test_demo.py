#!/usr/bin/env python3
"""
Tests for the demo.py showcase script.

Run with:
    python -m pytest tests/test_demo.py
"""
import importlib.util
import io
import os
import sys
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ---------------------------------------------------------------------------
# Import demo.py from the repo root
# ---------------------------------------------------------------------------
_DEMO_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                          'demo.py')
spec = importlib.util.spec_from_file_location('demo', _DEMO_PATH)
demo = importlib.util.module_from_spec(spec)
spec.loader.exec_module(demo)

from app.services.duration_service import DurationRecord
from app.services.key_extractor import CapturedKeys


# ===========================================================================
# Data constants
# ===========================================================================

class TestDemoConstants(unittest.TestCase):

    def test_sample_games_non_empty(self):
        self.assertGreater(len(demo.SAMPLE_GAMES), 3)

    def test_results_have_required_fields(self):
        required = {'game_id', 'game_name', 'game_type', 'comp_main', 'comp_plus', 'comp_100'}
        for r in demo.DEMO_RESULTS:
            self.assertEqual(required - r.keys(), set(),
                             f"Result {r.get('game_name')} missing fields")

    def test_recorded_requests_yield_both_keys(self):
        keys = demo.extract_keys_from_requests(demo.RECORDED_REQUESTS)
        self.assertTrue(keys.search_key)
        self.assertTrue(keys.auth_token)


# ===========================================================================
# ScriptedObserver
# ===========================================================================

class TestScriptedObserver(unittest.TestCase):

    def test_replays_then_empty(self):
        obs = demo.ScriptedObserver([CapturedKeys('a' * 16, 'tok')])
        self.assertEqual(obs.capture('u', 1), CapturedKeys('a' * 16, 'tok'))
        self.assertEqual(obs.capture('u', 1), CapturedKeys())
        self.assertEqual(obs.calls, 2)


# ===========================================================================
# run_demo(): smoke test (quiet mode)
# ===========================================================================

class TestRunDemo(unittest.TestCase):

    def _run(self) -> str:
        buf = io.StringIO()
        with patch('sys.stdout', buf):
            demo.run_demo(quiet=True)
        return buf.getvalue()

    def test_run_demo_completes_without_exception(self):
        self._run()

    def test_output_has_sections(self):
        output = self._run()
        for heading in ('Duration conversion', 'Key sniffing', 'Credential cache',
                        'Exact-match resolution'):
            self.assertIn(heading, output)

    def test_output_formats_durations(self):
        self.assertIn('2.78 h', self._run())

    def test_cache_section_counts_passes(self):
        output = self._run()
        self.assertIn('1 browser pass', output)
        self.assertIn('pass #2', output)

    def test_resolution_output(self):
        output = self._run()
        self.assertIn("#2224", output)
        self.assertIn("'Dark Souls: Nightfall' → no usable match", output)


# ===========================================================================
# run_live() with a stubbed client
# ===========================================================================

class TestRunLive(unittest.TestCase):

    def test_counts_found_games(self):
        client = MagicMock()
        client.__enter__.return_value = client
        client.get_game_duration.side_effect = [
            DurationRecord(game_id=1, main_story=8.0, main_extras=None, completionist=None),
            None,
        ]
        client.format_duration.return_value = '8h'
        with patch('hltb_client.HLTBClient', return_value=client):
            with patch('sys.stdout', io.StringIO()) as buf:
                found = demo.run_live(['Celeste', 'Unknown'])
        self.assertEqual(found, 1)
        self.assertIn('Not found: Unknown', buf.getvalue())
        client.__exit__.assert_called_once()


# ===========================================================================
# CLI argument parsing
# ===========================================================================

class TestDemoMain(unittest.TestCase):

    def test_default_runs_offline(self):
        with patch.object(demo, 'run_demo') as run_demo, patch.object(demo, 'run_live') as run_live:
            demo.main(['--quiet'])
        run_demo.assert_called_once_with(quiet=True)
        run_live.assert_not_called()

    def test_live_without_names_uses_samples(self):
        with patch.object(demo, 'run_live') as run_live:
            demo.main(['--live'])
        run_live.assert_called_once_with(demo.SAMPLE_GAMES)

    def test_live_with_names(self):
        with patch.object(demo, 'run_live') as run_live:
            demo.main(['--live', 'Celeste'])
        run_live.assert_called_once_with(['Celeste'])


if __name__ == '__main__':
    unittest.main()
