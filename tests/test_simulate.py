"""
Tests for the command line entry point.
"""

import io
import unittest
from contextlib import redirect_stderr, redirect_stdout

from simulate import main, parse_args


class TestParseArgs(unittest.TestCase):

    def test_defaults(self):
        args = parse_args([])
        self.assertEqual((args.trials, args.doors, args.opens), (100_000, 3, 1))
        self.assertEqual(args.verbose, 0)
        self.assertFalse(args.check)

    def test_short_flags(self):
        args = parse_args(["-t", "50", "-d", "10", "-o", "8", "-vv"])
        self.assertEqual((args.trials, args.doors, args.opens), (50, 10, 8))
        self.assertEqual(args.verbose, 2)


class TestMain(unittest.TestCase):

    def test_report_printed(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(["--trials", "2000", "--doors", "5", "--opens", "2", "--seed", "1"])
        self.assertEqual(code, 0)
        self.assertIn("2,000 trials, 5 doors, 2 opens", out.getvalue())
        self.assertIn("post-reveal switch chance correct", out.getvalue())

    def test_verbose_adds_progress_and_timing(self):
        out = io.StringIO()
        with redirect_stdout(out):
            main(["--trials", "1000", "--seed", "1", "-vv"])
        text = out.getvalue()
        self.assertIn("--- 1,000 / 1,000 trials", text)
        self.assertIn("elapsed:", text)
        self.assertIn("losses = ", text)

    def test_configuration_error(self):
        err = io.StringIO()
        with redirect_stderr(err), redirect_stdout(io.StringIO()):
            code = main(["--doors", "3", "--opens", "2"])
        self.assertEqual(code, 2)
        self.assertIn("error:", err.getvalue())

    def test_check(self):
        with redirect_stdout(io.StringIO()):
            code = main(["--check", "--seed", "5"])
        self.assertEqual(code, 0)


if __name__ == '__main__':
    unittest.main()
