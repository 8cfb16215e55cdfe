import unittest

from backend.app.core.config import LeagueRules
from backend.app.services.knockout_service import KnockoutService, knockout_service
from backend.tests.helpers import DatabaseTestCase


class TestKnockoutAdvance(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.t, self.p = await self.make_tournament([f"P{i}" for i in range(8)])
        self.ids = [self.p[f"P{i}"] for i in range(8)]

    async def _quarters(self, results):
        """Four quarterfinals (P0vP7, P1vP6, P2vP5, P3vP4) with the given scores (None = unplayed)."""
        pairs = [(0, 7), (1, 6), (2, 5), (3, 4)]
        for (a, b), score in zip(pairs, results):
            s1, s2 = score if score else (None, None)
            self.add_match(self.t.id, self.ids[a], self.ids[b], "quarter", s1, s2)
        await self.db.flush()

    async def test_incomplete_quarters_do_nothing(self):
        await self._quarters([(1, 0), (1, 0), (1, 0), None])

        await knockout_service.try_advance_knockout(self.db, self.t.id)

        self.assertEqual(await self.matches(self.t.id, "semi"), [])

    async def test_quarter_winners_fill_semis(self):
        # Winners: P0, P6, P2, P4
        await self._quarters([(2, 0), (0, 1), (3, 2), (0, 4)])

        await knockout_service.try_advance_knockout(self.db, self.t.id)

        semis = await self.matches(self.t.id, "semi")
        self.assertEqual([m.participants for m in semis], [
            (self.ids[0], self.ids[4]),
            (self.ids[6], self.ids[2]),
        ])
        self.assertEqual(await self.matches(self.t.id, "final"), [])

    async def test_redundant_calls_are_harmless(self):
        await self._quarters([(1, 0)] * 4)

        for _ in range(3):
            await knockout_service.try_advance_knockout(self.db, self.t.id)

        semis = await self.matches(self.t.id, "semi")
        self.assertEqual(len(semis), 2)
        self.assertEqual(len(await self.matches(self.t.id, "final")), 0)

    async def test_semis_to_final_to_completed(self):
        a, b, c, d = self.ids[:4]
        self.add_match(self.t.id, a, b, "semi", 1, 0)
        self.add_match(self.t.id, c, d, "semi", 0, 2)
        await self.db.flush()

        await knockout_service.try_advance_knockout(self.db, self.t.id)
        await knockout_service.try_advance_knockout(self.db, self.t.id)

        finals = await self.matches(self.t.id, "final")
        self.assertEqual([f.participants for f in finals], [(a, d)])
        self.assertEqual(await self.tournament_status(self.t.id), "pending")

        finals[0].score1, finals[0].score2, finals[0].status = 3, 1, "completed"
        await self.db.flush()
        await knockout_service.try_advance_knockout(self.db, self.t.id)

        self.assertEqual(await self.tournament_status(self.t.id), "completed")
        # Completed final is left alone
        self.assertEqual(len(await self.matches(self.t.id, "final")), 1)
        self.assertEqual((await self.matches(self.t.id, "final"))[0].score1, 3)

    async def test_wrong_final_is_repaired_in_place(self):
        a, b, c, d = self.ids[:4]
        self.add_match(self.t.id, a, b, "semi", 1, 0)
        self.add_match(self.t.id, c, d, "semi", 2, 0)
        stale = self.add_match(self.t.id, b, d, "final", 1, 0)
        await self.db.flush()
        stale_id = stale.id

        await knockout_service.try_advance_knockout(self.db, self.t.id)

        finals = await self.matches(self.t.id, "final")
        self.assertEqual(len(finals), 1)
        self.assertEqual(finals[0].id, stale_id)
        self.assertEqual(finals[0].participants, (a, c))
        self.assertEqual(finals[0].status, "scheduled")
        self.assertIsNone(finals[0].score1)
        self.assertEqual(await self.tournament_status(self.t.id), "pending")

    async def test_extra_finals_are_removed(self):
        a, b, c, d = self.ids[:4]
        self.add_match(self.t.id, a, b, "semi", 1, 0)
        self.add_match(self.t.id, c, d, "semi", 2, 0)
        self.add_match(self.t.id, a, c, "final")
        self.add_match(self.t.id, a, c, "final")
        await self.db.flush()

        await knockout_service.try_advance_knockout(self.db, self.t.id)

        self.assertEqual(len(await self.matches(self.t.id, "final")), 1)

    async def test_changed_quarter_result_updates_semi_and_drops_final(self):
        await self._quarters([(1, 0)] * 4)
        await knockout_service.try_advance_knockout(self.db, self.t.id)
        semis = await self.matches(self.t.id, "semi")
        for s in semis:
            s.score1, s.score2, s.status = 1, 0, "completed"
        await self.db.flush()
        await knockout_service.try_advance_knockout(self.db, self.t.id)
        self.assertEqual(len(await self.matches(self.t.id, "final")), 1)

        # QF4 result flipped: P4 beats P3
        qf4 = (await self.matches(self.t.id, "quarter"))[3]
        qf4.score1, qf4.score2 = 0, 1
        await self.db.flush()
        await knockout_service.try_advance_knockout(self.db, self.t.id)

        semis_after = await self.matches(self.t.id, "semi")
        self.assertEqual([s.id for s in semis_after], [s.id for s in semis])
        self.assertEqual(semis_after[0].participants, (self.ids[0], self.ids[4]))
        self.assertEqual(semis_after[0].status, "scheduled")
        # Second semi still right, result kept
        self.assertEqual(semis_after[1].status, "completed")
        self.assertEqual(await self.matches(self.t.id, "final"), [])

    async def test_wrong_number_of_semis_is_rebuilt(self):
        await self._quarters([(1, 0)] * 4)
        self.add_match(self.t.id, self.ids[5], self.ids[6], "semi")
        self.add_match(self.t.id, self.ids[5], self.ids[7], "semi")
        self.add_match(self.t.id, self.ids[6], self.ids[7], "semi")
        await self.db.flush()

        await knockout_service.try_advance_knockout(self.db, self.t.id)

        semis = await self.matches(self.t.id, "semi")
        self.assertEqual([s.participants for s in semis], [
            (self.ids[0], self.ids[3]),
            (self.ids[1], self.ids[2]),
        ])

    async def test_level_knockout_result_is_not_advanced(self):
        a, b, c, d = self.ids[:4]
        self.add_match(self.t.id, a, b, "semi", 1, 1)
        self.add_match(self.t.id, c, d, "semi", 2, 0)
        await self.db.flush()

        with self.assertLogs("backend.app.services.knockout_service", level="WARNING"):
            await knockout_service.try_advance_knockout(self.db, self.t.id)

        self.assertEqual(await self.matches(self.t.id, "final"), [])

    async def test_third_place_match_when_enabled(self):
        service = KnockoutService(rules=LeagueRules(third_place_match=True))
        a, b, c, d = self.ids[:4]
        self.add_match(self.t.id, a, b, "semi", 1, 0)
        self.add_match(self.t.id, c, d, "semi", 0, 2)
        await self.db.flush()

        await service.try_advance_knockout(self.db, self.t.id)

        self.assertEqual([m.participants for m in await self.matches(self.t.id, "third-place")], [(b, c)])
        self.assertEqual([m.participants for m in await self.matches(self.t.id, "final")], [(a, d)])

    async def test_no_third_place_match_by_default(self):
        a, b, c, d = self.ids[:4]
        self.add_match(self.t.id, a, b, "semi", 1, 0)
        self.add_match(self.t.id, c, d, "semi", 0, 2)
        await self.db.flush()

        await KnockoutService(rules=LeagueRules()).try_advance_knockout(self.db, self.t.id)

        self.assertEqual(await self.matches(self.t.id, "third-place"), [])


if __name__ == '__main__':
    unittest.main()
