"""
Unit tests for ring construction and key lookup.
"""

from __future__ import annotations

import hashlib
import random
import unittest
from unittest import mock

from ring_cluster.config import LookupPolicy
from ring_cluster.exceptions import ConfigurationError
from ring_cluster.hashring import POSITION_MAX, HashRing, ring_position

THREE_SERVERS = [("10.0.0.1:6379", 0), ("10.0.0.2:6379", 1), ("10.0.0.3:6379", 2)]


def midpoint_search(positions: tuple[int, ...], needle: int) -> int:
    """
    Return the position the original client's ring search settles on.

    Loops while ``max >= min`` with ``mid = (min + max) // 2``, stops on an
    exact hit, and keeps the position at the last midpoint it examined.
    """
    server = low = 0
    high = len(positions) - 1
    while high >= low:
        mid = (low + high) // 2
        server = positions[mid]
        if needle < server:
            high = mid - 1
        elif needle > server:
            low = mid + 1
        else:
            break
    return server


class RingPositionTest(unittest.TestCase):
    def test_position_is_first_seven_hex_digits_of_md5(self) -> None:
        self.assertEqual(ring_position("foo"), int("acbd18d", 16))

    def test_position_fits_in_28_bits(self) -> None:
        for key in ("", "a", "user:1", "x" * 1000, "café"):
            self.assertTrue(0 <= ring_position(key) <= POSITION_MAX)

    def test_bytes_and_str_keys_agree(self) -> None:
        self.assertEqual(ring_position(b"user:1"), ring_position("user:1"))

    def test_integer_keys_hash_their_decimal_form(self) -> None:
        self.assertEqual(ring_position(42), ring_position("42"))

    def test_bool_and_float_keys_are_rejected(self) -> None:
        for key in (True, False, 1.0, 2.5):
            with self.subTest(key=key):
                with self.assertRaises(TypeError):
                    ring_position(key)


class HashRingConstructionTest(unittest.TestCase):
    def test_each_server_gets_replicas_plus_one_points(self) -> None:
        ring = HashRing(THREE_SERVERS, replicas=2)
        self.assertEqual(len(ring), 9)
        counts = [0, 0, 0]
        for _, index in ring.nodes():
            counts[index] += 1
        self.assertEqual(counts, [3, 3, 3])

    def test_points_use_host_port_replica_identity(self) -> None:
        ring = HashRing([("10.0.0.1:6379", 0)], replicas=1)
        expected = sorted(
            int(hashlib.md5(f"10.0.0.1:6379-{replica}".encode()).hexdigest()[:7], 16)
            for replica in (0, 1)
        )
        self.assertEqual(list(ring.positions), expected)

    def test_zero_replicas_still_places_one_point(self) -> None:
        ring = HashRing(THREE_SERVERS, replicas=0)
        self.assertEqual(len(ring), 3)

    def test_default_replica_count(self) -> None:
        ring = HashRing(THREE_SERVERS)
        self.assertEqual(ring.replicas, 128)
        self.assertEqual(len(ring), 3 * 129)

    def test_positions_are_sorted(self) -> None:
        ring = HashRing(THREE_SERVERS, replicas=16)
        self.assertEqual(list(ring.positions), sorted(ring.positions))

    def test_construction_is_deterministic(self) -> None:
        first = HashRing(THREE_SERVERS, replicas=32)
        second = HashRing(list(THREE_SERVERS), replicas=32)
        self.assertEqual(first, second)
        self.assertEqual(first.nodes(), second.nodes())

    def test_invalid_replica_counts_are_rejected(self) -> None:
        for replicas in (-1, True, 2.5, "4"):
            with self.subTest(replicas=replicas):
                with self.assertRaises(ConfigurationError):
                    HashRing(THREE_SERVERS, replicas=replicas)  # type: ignore[arg-type]

    def test_unknown_lookup_policy_is_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            HashRing(THREE_SERVERS, lookup="nearest")

    def test_colliding_points_keep_last_insertion(self) -> None:
        with mock.patch("ring_cluster.hashring.ring_position", return_value=42):
            with self.assertLogs("ring_cluster.hashring", level="WARNING") as captured:
                ring = HashRing([("a:1", 0), ("b:2", 1)], replicas=3)
        self.assertEqual(ring.nodes(), ((42, 1),))
        self.assertTrue(any("collision" in line for line in captured.output))


class SuccessorLookupTest(unittest.TestCase):
    def setUp(self) -> None:
        self.ring = HashRing(THREE_SERVERS, replicas=8)
        self.nodes = self.ring.nodes()

    def test_empty_ring_raises_configuration_error(self) -> None:
        ring = HashRing([], replicas=4)
        with self.assertRaises(ConfigurationError):
            ring.locate("foo")

    def test_exact_position_returns_its_own_client(self) -> None:
        for position, index in self.nodes:
            self.assertEqual(self.ring.locate_position(position), index)

    def test_position_between_points_returns_successor(self) -> None:
        for (low, _), (high, high_index) in zip(self.nodes, self.nodes[1:]):
            if high - low < 2:
                continue
            self.assertEqual(self.ring.locate_position(low + 1), high_index)
            self.assertEqual(self.ring.locate_position(high - 1), high_index)

    def test_position_below_first_point_returns_first(self) -> None:
        first_position, first_index = self.nodes[0]
        if first_position > 0:
            self.assertEqual(self.ring.locate_position(0), first_index)

    def test_position_above_last_point_wraps_to_first(self) -> None:
        last_position, _ = self.nodes[-1]
        _, first_index = self.nodes[0]
        self.assertLess(last_position, POSITION_MAX)
        self.assertEqual(self.ring.locate_position(POSITION_MAX), first_index)
        self.assertEqual(self.ring.locate_position(last_position + 1), first_index)

    def test_locate_hashes_key_then_searches(self) -> None:
        for key in ("foo", "bar", "user:1", "session:abc"):
            self.assertEqual(self.ring.locate(key), self.ring.locate_position(ring_position(key)))

    def test_every_key_maps_to_a_known_index(self) -> None:
        for i in range(2000):
            self.assertIn(self.ring.locate(f"key-{i}"), (0, 1, 2))

    def test_keys_spread_across_servers(self) -> None:
        counts = [0, 0, 0]
        ring = HashRing(THREE_SERVERS, replicas=128)
        for i in range(3000):
            counts[ring.locate(f"key-{i}")] += 1
        for count in counts:
            self.assertGreater(count, 500, f"poor distribution: {counts}")

    def test_removing_one_server_moves_only_its_keys(self) -> None:
        identities = [f"10.0.1.{host}:6379" for host in range(1, 6)]
        before = HashRing([(identity, index) for index, identity in enumerate(identities)])
        survivors = identities[:2] + identities[3:]
        after = HashRing([(identity, index) for index, identity in enumerate(survivors)])

        keys = [f"object:{i}" for i in range(10000)]
        moved = 0
        for key in keys:
            owner_before = identities[before.locate(key)]
            owner_after = survivors[after.locate(key)]
            if owner_before != owner_after:
                moved += 1
                self.assertEqual(owner_before, identities[2])
        self.assertLess(moved / len(keys), 0.35)
        self.assertGreater(moved, 0)


class LegacyLookupTest(unittest.TestCase):
    def setUp(self) -> None:
        self.ring = HashRing(THREE_SERVERS, replicas=8, lookup="legacy")
        self.nodes = self.ring.nodes()

    def test_policy_is_reported(self) -> None:
        self.assertIs(self.ring.lookup, LookupPolicy.LEGACY)

    def test_exact_position_returns_its_own_client(self) -> None:
        for position, index in self.nodes:
            self.assertEqual(self.ring.locate_position(position), index)

    def test_position_between_points_returns_a_neighbour(self) -> None:
        for (low, low_index), (high, high_index) in zip(self.nodes, self.nodes[1:]):
            if high - low < 2:
                continue
            self.assertIn(self.ring.locate_position(low + 1), (low_index, high_index))

    def test_matches_midpoint_search_over_random_needles(self) -> None:
        servers = [(f"10.0.2.{host}:6379", host) for host in range(4)]
        ring = HashRing(servers, replicas=8, lookup=LookupPolicy.LEGACY)
        positions = ring.positions
        owners = dict(ring.nodes())
        rng = random.Random(20240611)
        for _ in range(5000):
            needle = rng.randint(0, POSITION_MAX)
            self.assertEqual(ring.locate_position(needle), owners[midpoint_search(positions, needle)])

    def test_miss_returns_last_examined_midpoint(self) -> None:
        layout = {"a:1-0": 100, "b:2-0": 200, "c:3-0": 300}
        with mock.patch("ring_cluster.hashring.ring_position", side_effect=layout.__getitem__):
            ring = HashRing([("a:1", 0), ("b:2", 1), ("c:3", 2)], replicas=0, lookup="legacy")
        # 150: examines 200 then 100 and stops on the predecessor.
        self.assertEqual(ring.locate_position(150), 0)
        # 250: examines 200 then 300 and stops on the successor.
        self.assertEqual(ring.locate_position(250), 2)
        self.assertEqual(ring.locate_position(50), 0)
        self.assertEqual(ring.locate_position(350), 2)

    def test_position_above_last_point_stays_on_last(self) -> None:
        _, last_index = self.nodes[-1]
        self.assertEqual(self.ring.locate_position(POSITION_MAX), last_index)

    def test_position_below_first_point_stays_on_first(self) -> None:
        first_position, first_index = self.nodes[0]
        if first_position > 0:
            self.assertEqual(self.ring.locate_position(0), first_index)

    def test_single_point_ring(self) -> None:
        ring = HashRing([("10.0.0.1:6379", 0)], replicas=0, lookup=LookupPolicy.LEGACY)
        self.assertEqual(ring.locate("anything"), 0)


if __name__ == "__main__":
    unittest.main()
