"""Tests for PKCE helpers."""

import re
import unittest

from openapi_mcp.auth.pkce import PkceChallenge, generate_code_challenge, generate_code_verifier


class TestPkce(unittest.TestCase):
    """Test cases for verifier and challenge generation."""

    def test_verifier_format(self):
        verifier = generate_code_verifier()
        self.assertTrue(43 <= len(verifier) <= 128)
        self.assertRegex(verifier, r"^[A-Za-z0-9_-]+$")
        self.assertNotEqual(verifier, generate_code_verifier())

    def test_rfc7636_example(self):
        """Appendix B of RFC 7636."""
        verifier = "dBjftJeZ4CVP-mB92K1uhbHZeaMBbwBOYoDFDRsPn0ZkQ"
        self.assertEqual(
            generate_code_challenge(verifier),
            "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM",
        )

    def test_challenge_has_no_padding(self):
        challenge = generate_code_challenge(generate_code_verifier())
        self.assertNotIn("=", challenge)
        self.assertIsNone(re.search(r"[+/]", challenge))

    def test_generate(self):
        pkce = PkceChallenge.generate(now=100.0)
        self.assertEqual(pkce.challenge, generate_code_challenge(pkce.verifier))
        self.assertEqual(pkce.created_at, 100.0)
        self.assertNotEqual(pkce.state, PkceChallenge.generate().state)

    def test_expiry(self):
        pkce = PkceChallenge.generate(now=100.0)
        self.assertFalse(pkce.is_expired(now=699.0, ttl_seconds=600))
        self.assertTrue(pkce.is_expired(now=700.0, ttl_seconds=600))


if __name__ == "__main__":
    unittest.main()
