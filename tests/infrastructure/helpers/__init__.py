"""Test helpers for the herdview test suite.

Assertion Helpers:
    assert_slots_consistent - No source occupies two slots, lists stay parallel

Async Helpers:
    wait_for_condition - Poll until a predicate holds
    wait_until_idle - Poll a reconciler until a scene settles

Usage:
    from tests.infrastructure.helpers import assert_slots_consistent, wait_until_idle
"""

from tests.infrastructure.helpers.assertions import assert_slots_consistent
from tests.infrastructure.helpers.async_helpers import wait_for_condition, wait_until_idle

__all__ = [
    "assert_slots_consistent",
    "wait_for_condition",
    "wait_until_idle",
]
