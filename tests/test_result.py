"""Tests for the Ok / Err result type."""

import unittest

from openapi_mcp.result import Err, Ok, UnwrapError


class TestResult(unittest.TestCase):
    """Test cases for Ok and Err."""

    def test_ok(self):
        result = Ok(5)
        self.assertTrue(result.is_ok())
        self.assertFalse(result.is_err())
        self.assertEqual(result.unwrap(), 5)
        with self.assertRaises(UnwrapError):
            result.unwrap_err()

    def test_err(self):
        result = Err("boom")
        self.assertTrue(result.is_err())
        self.assertFalse(result.is_ok())
        self.assertEqual(result.unwrap_err(), "boom")
        with self.assertRaises(UnwrapError):
            result.unwrap()

    def test_map(self):
        self.assertEqual(Ok(2).map(lambda v: v * 3), Ok(6))
        self.assertEqual(Err("x").map(lambda v: v * 3), Err("x"))
        self.assertEqual(Err("x").map_err(str.upper), Err("X"))
        self.assertEqual(Ok(1).map_err(str.upper), Ok(1))

    def test_no_truth_value(self):
        """A result must be inspected explicitly."""
        with self.assertRaises(TypeError):
            bool(Ok(True))
        with self.assertRaises(TypeError):
            bool(Err(None))


if __name__ == "__main__":
    unittest.main()
