import json
import unittest

from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from nftraffle.models import Base, Raffle, RaffleDraw, RaffleEntry, RefundBalance
from nftraffle.raffle import (
    DrawRecord,
    Phase,
    PrizeReference,
    ProvablyFairRandomSource,
    RaffleSnapshot,
)


class RaffleModelTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def _raffle(self, session, **kwargs) -> Raffle:
        raffle = Raffle(operator="owner@example.com", entry_fee=100, **kwargs)
        session.add(raffle)
        session.flush()
        return raffle

    def test_defaults_give_idle_snapshot(self):
        with self.Session.begin() as session:
            raffle = self._raffle(session, name="defaults")
            snap = raffle.to_snapshot()
            self.assertEqual(snap.phase, Phase.IDLE)
            self.assertIsNone(snap.prize)
            self.assertEqual(snap.entries, ())
            self.assertEqual(snap.total_entries, 0)
            self.assertEqual(snap.fee_pool_balance, 0)
            self.assertEqual(snap.cycle, 0)
            self.assertIsNotNone(raffle.created_at)

    def test_apply_snapshot_round_trip_preserves_order(self):
        snapshot = RaffleSnapshot(
            operator="owner@example.com",
            entry_fee=100,
            phase=Phase.OPEN,
            prize=PrizeReference("0xNFT", 7),
            entries=(("zed@example.com", 2), ("amy@example.com", 1)),
            total_entries=3,
            fee_pool_balance=250,
            refund_balances=(("amy@example.com", 50),),
            cycle=1,
        )
        with self.Session.begin() as session:
            raffle = self._raffle(session, name="round-trip")
            raffle.apply_snapshot(session, snapshot)
            raffle_id = raffle.id

        with self.Session() as session:
            loaded = session.get(Raffle, raffle_id)
            assert loaded is not None
            self.assertEqual(loaded.to_snapshot(), snapshot)
            self.assertEqual(loaded.prize, PrizeReference("0xNFT", 7))

    def test_apply_snapshot_syncs_rows_across_cycles(self):
        open_snap = RaffleSnapshot(
            operator="owner@example.com",
            entry_fee=100,
            phase=Phase.OPEN,
            prize=PrizeReference("0xNFT", 1),
            entries=(("a", 1), ("b", 2)),
            total_entries=3,
            fee_pool_balance=300,
            cycle=1,
        )
        idle_snap = RaffleSnapshot(
            operator="owner@example.com",
            entry_fee=100,
            fee_pool_balance=300,
            cycle=1,
        )
        reopened = RaffleSnapshot(
            operator="owner@example.com",
            entry_fee=100,
            phase=Phase.OPEN,
            prize=PrizeReference("0xNFT", 2),
            entries=(("b", 4),),
            total_entries=4,
            fee_pool_balance=700,
            cycle=2,
        )
        with self.Session.begin() as session:
            raffle = self._raffle(session)
            raffle.apply_snapshot(session, open_snap)
            raffle.apply_snapshot(session, idle_snap)
            self.assertEqual(
                session.scalar(select(func.count()).select_from(RaffleEntry)), 0
            )
            raffle.apply_snapshot(session, reopened)
            self.assertEqual(raffle.to_snapshot(), reopened)
            rows = session.scalars(select(RaffleEntry)).all()
            self.assertEqual([(r.participant, r.entry_count) for r in rows], [("b", 4)])

    def test_apply_snapshot_rejects_foreign_snapshot(self):
        with self.Session.begin() as session:
            raffle = self._raffle(session)
            with self.assertRaises(ValueError):
                raffle.apply_snapshot(
                    session, RaffleSnapshot(operator="someone@example.com", entry_fee=100)
                )
            with self.assertRaises(ValueError):
                raffle.apply_snapshot(
                    session, RaffleSnapshot(operator="owner@example.com", entry_fee=5)
                )

    def test_operator_is_normalized_and_required(self):
        raffle = Raffle(operator="  owner@example.com ", entry_fee=1)
        self.assertEqual(raffle.operator, "owner@example.com")
        with self.assertRaises(ValueError):
            Raffle(operator="   ", entry_fee=1)

    def test_check_constraints(self):
        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                self._raffle(session, phase="drawing")
        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                session.add(Raffle(operator="owner@example.com", entry_fee=0))
                session.flush()

    def test_unique_participant_per_raffle(self):
        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                raffle = self._raffle(session)
                session.add_all(
                    [
                        RefundBalance(raffle=raffle, participant="a", amount=1, position=0),
                        RefundBalance(raffle=raffle, participant="a", amount=2, position=1),
                    ]
                )
                session.flush()

    def test_get_by_name(self):
        with self.Session.begin() as session:
            self._raffle(session, name="lookup")
            self.assertIsNotNone(Raffle.get_by_name(session, "lookup"))
            self.assertIsNone(Raffle.get_by_name(session, "missing"))

    def test_raffle_to_json(self):
        with self.Session.begin() as session:
            raffle = self._raffle(session, name="json")
            raffle.apply_snapshot(
                session,
                RaffleSnapshot(
                    operator="owner@example.com",
                    entry_fee=100,
                    phase=Phase.CLOSED,
                    prize=PrizeReference("0xNFT", 3),
                    entries=(("a", 2),),
                    total_entries=2,
                    fee_pool_balance=200,
                    cycle=1,
                ),
            )
            data = raffle.to_json()
            self.assertEqual(data["phase"], "closed")
            self.assertEqual(data["entries"], {"a": 2})
            self.assertEqual(data["refund_balances"], {})
            self.assertIsInstance(data["created_at"], str)
            json.dumps(data)

    def test_draw_from_record_keeps_proof(self):
        source = ProvablyFairRandomSource("client")
        index = source.randbelow(5)
        record = DrawRecord(
            cycle=1,
            winner="a",
            prize=PrizeReference("0xNFT", 9),
            winning_index=index,
            total_entries=5,
            participant_count=2,
            proof=source.last_proof,
        )
        with self.Session.begin() as session:
            raffle = self._raffle(session)
            draw = RaffleDraw.from_record(raffle, record)
            session.add(draw)
            session.flush()
            self.assertEqual(raffle.draws, [draw])
            self.assertEqual(draw.proof, source.last_proof)
            self.assertEqual(draw.prize, PrizeReference("0xNFT", 9))
            data = draw.to_json()
            self.assertEqual(data["winner"], "a")
            self.assertEqual(data["proof"]["nonce"], 0)
            self.assertIsInstance(data["drawn_at"], str)


if __name__ == "__main__":
    unittest.main()
