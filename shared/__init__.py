"""Fixture constants used by both scripts/gen_fixtures.py and the test suite.

Lives outside tests/ so the generator script can import it without pytest.
"""

from __future__ import annotations
