from __future__ import annotations

import random
from unittest import TestCase

from .registry import ParticipantRegistry


class _Handle:
    def send_text(self, text: str) -> None:  # pragma: no cover - never written to here
        pass


class ParticipantRegistryTests(TestCase):
    def setUp(self) -> None:
        self.resets = 0
        self.registry = ParticipantRegistry(on_empty=self._on_empty)

    def _on_empty(self) -> None:
        self.resets += 1

    def test_register_keeps_registration_order_and_allows_duplicate_names(self):
        handles = [_Handle() for _ in range(3)]
        ids = [self.registry.register("same", h) for h in handles]

        self.assertEqual(len(set(ids)), 3)
        self.assertEqual([p.handle for p in self.registry.all()], handles)
        self.assertTrue(all(p.rank == 0 for p in self.registry.all()))

    def test_resolve_is_by_handle_identity(self):
        first, second = _Handle(), _Handle()
        self.registry.register("twin", first)
        self.registry.register("twin", second)

        self.assertIs(self.registry.resolve(second).handle, second)
        self.assertIsNone(self.registry.resolve(_Handle()))

    def test_rejoin_on_same_handle_renames(self):
        h = _Handle()
        pid = self.registry.register("old", h)

        self.assertEqual(self.registry.register("new", h), pid)
        self.assertEqual(len(self.registry), 1)
        self.assertEqual(self.registry.resolve(h).display_name, "new")

    def test_unregister_unknown_handle_is_a_noop(self):
        self.registry.register("a", _Handle())

        self.assertIsNone(self.registry.unregister(_Handle()))
        self.assertEqual(len(self.registry), 1)
        self.assertEqual(self.resets, 0)

    def test_on_empty_fires_when_last_participant_leaves(self):
        a, b = _Handle(), _Handle()
        self.registry.register("a", a)
        self.registry.register("b", b)

        self.registry.unregister(a)
        self.assertEqual(self.resets, 0)
        self.registry.unregister(b)
        self.assertEqual(self.resets, 1)
        self.registry.unregister(b)
        self.assertEqual(self.resets, 1)

    def test_membership_matches_unmatched_joins(self):
        rng = random.Random(1234)
        pool = [_Handle() for _ in range(6)]
        joined: set[int] = set()

        for _ in range(200):
            h = rng.choice(pool)
            if rng.random() < 0.5:
                self.registry.register("p", h)
                joined.add(id(h))
            else:
                self.registry.unregister(h)
                joined.discard(id(h))
            self.assertEqual({id(p.handle) for p in self.registry.all()}, joined)

    def test_reset_ranks(self):
        h = _Handle()
        self.registry.register("a", h)
        p = self.registry.resolve(h)
        p.rank, p.attempted = 3, True

        self.registry.reset_ranks()

        self.assertEqual((p.rank, p.attempted), (0, False))
