"""
test_executor.py - Unit tests for the Executor

Tests cover:
1. Bootstrap accounts and clock handling
2. Message processing, drops and event discarding
3. Aborted messages: trace capture with the first run kept
4. Lazy account fetch
5. Snapshot save / load / clear / reset
"""

import pytest

from localnet import (
    AccountState, ClockAlreadySet, ClockNotSet, Executor, FetchedAccount,
    FixedClock, LocalnetError, OracleAdapter, SnapshotNotFound,
    ACCOUNT_STUFF, GIVER_ADDRESS, TEST_CODE_HASH, ZERO_ADDRESS,
)

from tests.helpers import (
    ALICE, BOB, CAROL, GIVER_BALANCE, GIVER_CODE, START_MS,
    make_config, make_executor, make_message,
)
from tests.fake_oracle import (
    NO_ACCOUNT_BOC, TRACE_BALANCE_TRAP, FakeCodec, FakeOracle,
    account_boc, account_stuff_boc, code_hash_of,
)


def _offline_fetcher(address):
    raise ConnectionError("offline")


class TestBootstrap:

    def test_giver_and_zero_address_seeded(self, executor):
        giver = executor.get_account(GIVER_ADDRESS)
        zero = executor.get_account(ZERO_ADDRESS)

        assert giver.balance == GIVER_BALANCE
        assert giver.code_hash == code_hash_of(GIVER_CODE)
        assert zero.code_hash == TEST_CODE_HASH
        assert zero.balance == giver.balance
        assert executor.pending_message_count() == 0
        assert len(executor.state.transactions) == 0

    def test_seed_must_decode(self, oracle):
        with pytest.raises(LocalnetError, match="Seed"):
            Executor(make_config(seed_account_boc=NO_ACCOUNT_BOC), OracleAdapter(oracle, FakeCodec()))


class TestClock:

    def test_clock_set_once(self):
        executor = make_executor()
        executor.set_clock(FixedClock(0))
        with pytest.raises(ClockAlreadySet, match="Clock already set"):
            executor.set_clock(FixedClock(1))

    def test_processing_without_clock_keeps_message(self):
        executor = make_executor()
        executor.enqueue(make_message(ALICE))

        with pytest.raises(ClockNotSet):
            executor.process_one()
        assert executor.pending_message_count() == 1

    def test_empty_queue_needs_no_clock(self):
        assert make_executor().process_one() is None

    def test_transaction_time_from_clock(self, executor, clock):
        clock.advance(10)
        tx = executor.submit(make_message(ALICE, value=5))[0]
        assert tx.now == START_MS // 1000 + 10


class TestProcessing:

    def test_credit_creates_account(self, executor):
        message = make_message(ALICE, value=5)
        [tx] = executor.submit(message)

        assert executor.get_account(ALICE).balance == 5
        assert executor.get_transaction(tx.hash) == tx
        assert executor.get_dst_transaction(message.hash) == tx
        assert executor.get_tx_trace(tx.hash) == ()

    def test_lowest_lt_first(self, executor, oracle):
        executor.enqueue(make_message(ALICE, {"op": "b"}, lt=20))
        executor.enqueue(make_message(ALICE, {"op": "a"}, lt=10))
        executor.enqueue(make_message(ALICE, {"op": "c"}, lt=20, nonce="2"))
        executor.drain()
        assert [op for op, _ in oracle.calls] == ["a", "b", "c"]

    def test_out_messages_processed_in_same_drain(self, executor):
        txs = executor.submit(make_message(ALICE, {"op": "ping", "to": BOB, "hops": 2}))

        assert [tx.account for tx in txs] == [ALICE, BOB, ALICE]
        assert [tx.lt for tx in txs] == sorted(tx.lt for tx in txs)
        assert executor.pending_message_count() == 0

    def test_event_output_not_queued(self, executor):
        [tx] = executor.submit(make_message(ALICE, {"op": "emit"}))
        assert tx.out_messages[0].is_event
        assert executor.pending_message_count() == 0

    def test_enqueue_discards_event(self, executor):
        assert executor.enqueue(make_message(None)) is False
        assert executor.pending_message_count() == 0

    @pytest.mark.parametrize("op", ["crash", "raise"])
    def test_failed_message_dropped(self, executor, op):
        message = make_message(ALICE, {"op": op})
        assert executor.submit(message) == []
        assert executor.get_account(ALICE) is None
        assert executor.get_dst_transaction(message.hash) is None
        assert executor.pending_message_count() == 0

    def test_drop_does_not_stop_drain(self, executor):
        executor.enqueue(make_message(ALICE, {"op": "crash"}, lt=1))
        executor.enqueue(make_message(BOB, value=3, lt=2))
        txs = executor.drain()
        assert [tx.account for tx in txs] == [BOB]

    def test_destroy_removes_account(self, executor):
        executor.set_account(ALICE, account_boc(ALICE, 10))
        [tx] = executor.submit(make_message(ALICE, {"op": "destroy"}))

        assert executor.get_account(ALICE) is None
        assert executor.get_transactions(ALICE, tx.lt, 10) == [tx]

    def test_verbose_output(self, oracle, clock, capsys):
        executor = make_executor(oracle, clock, verbose=True)
        executor.submit(make_message(ALICE, value=1))
        executor.submit(make_message(ALICE, {"op": "crash"}))
        out = capsys.readouterr().out
        assert "✓ APPLIED" in out
        assert "✗ DROPPED" in out


class AccountCrashCodec(FakeCodec):
    """Codec that cannot decode any account blob mentioning ``address``."""

    def __init__(self, address):
        self.address = address

    def parse_account(self, boc):
        if self.address in boc:
            raise RuntimeError("codec crashed")
        return super().parse_account(boc)


class RepeatedHashOracle(FakeOracle):
    """Reports the same transaction hash for every message with op "dup"."""

    def execute(self, config_boc, acct_boc, msg_boc, utime, global_id, trace):
        result = super().execute(config_boc, acct_boc, msg_boc, utime, global_id, trace)
        if '"op": "dup"' in msg_boc:
            result["transaction"]["hash"] = "samehash"
        return result


class TestFaultyCollaborators:

    def test_codec_error_drops_message_and_drain_continues(self, clock):
        executor = Executor(
            make_config(), OracleAdapter(FakeOracle(), AccountCrashCodec(ALICE)),
            clock=clock, verbose=False,
        )
        executor.enqueue(make_message(ALICE, value=1, lt=1))
        executor.enqueue(make_message(BOB, value=3, lt=2))

        txs = executor.drain()

        assert [tx.account for tx in txs] == [BOB]
        assert executor.get_account(ALICE) is None
        assert executor.get_account(BOB).balance == 3
        assert executor.pending_message_count() == 0

    def test_repeated_transaction_hash_dropped(self, clock, capsys):
        executor = make_executor(RepeatedHashOracle(), clock, verbose=True)
        executor.enqueue(make_message(ALICE, {"op": "dup"}, value=1, lt=1))
        executor.enqueue(make_message(ALICE, {"op": "dup"}, value=2, lt=2))
        executor.enqueue(make_message(BOB, value=3, lt=3))

        txs = executor.drain()

        assert [tx.account for tx in txs] == [ALICE, BOB]
        assert executor.get_transaction("samehash").account == ALICE
        assert executor.get_account(ALICE).balance == 1
        assert executor.get_account(BOB).balance == 3
        assert executor.pending_message_count() == 0
        assert "already recorded" in capsys.readouterr().out


class TestAbortedMessages:

    def test_trace_captured(self, executor, oracle):
        [tx] = executor.submit(make_message(ALICE, {"op": "abort"}))

        assert tx.aborted
        assert oracle.calls == [("abort", False), ("abort", True)]
        trace = executor.get_tx_trace(tx.hash)
        assert [step.cmd_str for step in trace] == ["PUSHINT 3", "THROW 100"]

    def test_first_run_is_authoritative(self, executor):
        executor.set_account(ALICE, account_boc(ALICE, 50))
        [tx] = executor.submit(make_message(ALICE, {"op": "abort"}))

        assert executor.get_account(ALICE).balance == 50
        assert executor.get_account(ALICE).balance < TRACE_BALANCE_TRAP
        assert executor.get_transaction(tx.hash) == tx

    def test_trace_failure_still_records(self, clock):
        class FlakyTraceOracle(FakeOracle):
            def execute(self, config_boc, acct_boc, msg_boc, utime, global_id, trace):
                if trace:
                    raise RuntimeError("trace unsupported")
                return super().execute(config_boc, acct_boc, msg_boc, utime, global_id, trace)

        executor = make_executor(FlakyTraceOracle(), clock)
        [tx] = executor.submit(make_message(ALICE, {"op": "abort"}))
        assert executor.get_tx_trace(tx.hash) == ()

    def test_unknown_trace(self, executor):
        assert executor.get_tx_trace("missing") is None


class TestAccounts:

    def test_set_account(self, executor):
        state = executor.set_account(ALICE, account_boc(ALICE, 9, "w"))
        assert executor.get_account(ALICE) == state
        assert state.code_hash == code_hash_of("w")

    def test_set_account_to_nothing_removes(self, executor):
        executor.set_account(ALICE, account_boc(ALICE, 9))
        assert executor.set_account(ALICE, NO_ACCOUNT_BOC) is None
        assert executor.get_account(ALICE) is None

    def test_find_accounts(self, executor):
        executor.set_account(ALICE, account_boc(ALICE, 9, "w"))
        executor.set_account(BOB, account_boc(BOB, 1, "w"))
        assert executor.get_accounts_by_code_hash(code_hash_of("w")) == [ALICE, BOB]
        assert executor.find_accounts(lambda _, s: s.balance > 5)[-1] == ALICE

    def test_get_accounts_is_copy(self, executor):
        accounts = executor.get_accounts()
        accounts.clear()
        assert executor.get_account(GIVER_ADDRESS) is not None


class TestAccountFetch:

    def test_miss_fetches_and_stores(self, clock):
        calls = []

        def fetcher(address):
            calls.append(address)
            return FetchedAccount(boc=account_boc(address, 7, "remote"))

        executor = make_executor(clock=clock, account_fetcher=fetcher)
        state = executor.fetch_account(CAROL)

        assert state.balance == 7
        assert executor.get_account(CAROL) == state
        executor.fetch_account(CAROL)
        assert calls == [CAROL]

    def test_account_stuff_and_code_hash_override(self):
        fetcher = lambda address: FetchedAccount(
            boc=account_stuff_boc(address, 3), kind=ACCOUNT_STUFF, code_hash="custom",
        )
        executor = make_executor(account_fetcher=fetcher)
        state = executor.fetch_account(CAROL)
        assert state.balance == 3
        assert state.code_hash == "custom"

    def test_known_account_not_fetched(self):
        def fetcher(address):
            raise AssertionError("should not fetch")

        executor = make_executor(account_fetcher=fetcher)
        assert executor.fetch_account(GIVER_ADDRESS).balance == GIVER_BALANCE

    @pytest.mark.parametrize("fetcher", [
        lambda address: None,
        lambda address: FetchedAccount(boc=""),
    ])
    def test_remote_miss(self, fetcher):
        executor = make_executor(account_fetcher=fetcher)
        assert executor.fetch_account(CAROL) is None
        assert executor.get_account(CAROL) is None

    @pytest.mark.parametrize("fetcher", [
        _offline_fetcher,
        lambda address: FetchedAccount(boc="garbage"),
    ])
    def test_fetch_failure_treated_as_absent(self, fetcher, capsys):
        executor = make_executor(account_fetcher=fetcher, verbose=True)
        assert executor.fetch_account(CAROL) is None
        assert "FETCH FAILED" in capsys.readouterr().out

    def test_receiver_fetched_during_processing(self, clock):
        fetcher = lambda address: FetchedAccount(boc=account_boc(address, 100))
        executor = make_executor(clock=clock, account_fetcher=fetcher)
        executor.submit(make_message(CAROL, value=1))
        assert executor.get_account(CAROL).balance == 101


class TestSnapshots:

    def test_round_trip(self, executor):
        executor.submit(make_message(ALICE, value=5))
        snapshot_id = executor.save_snapshot()
        executor.submit(make_message(ALICE, value=7, nonce="later"))
        executor.submit(make_message(BOB, value=1))

        executor.load_snapshot(snapshot_id)
        assert executor.get_account(ALICE).balance == 5
        assert executor.get_account(BOB) is None
        assert executor.state.transactions.history_size(ALICE) == 1

    def test_pending_messages_captured(self, executor):
        executor.enqueue(make_message(ALICE, value=1))
        snapshot_id = executor.save_snapshot()
        executor.drain()

        executor.load_snapshot(snapshot_id)
        assert executor.pending_message_count() == 1

    def test_ids_increase(self, executor):
        ids = [executor.save_snapshot() for _ in range(3)]
        assert ids == [0, 1, 2]

    def test_load_twice_is_isolated(self, executor):
        snapshot_id = executor.save_snapshot()
        executor.load_snapshot(snapshot_id)
        executor.submit(make_message(ALICE, value=5))
        executor.load_snapshot(snapshot_id)
        assert executor.get_account(ALICE) is None

    def test_unknown_snapshot(self, executor):
        with pytest.raises(SnapshotNotFound):
            executor.load_snapshot(99)

    def test_clear_keeps_counter_and_live_state(self, executor):
        executor.save_snapshot()
        executor.submit(make_message(ALICE, value=5))
        executor.clear_snapshots()

        assert executor.get_account(ALICE).balance == 5
        assert len(executor.snapshots) == 0
        assert executor.save_snapshot() == 1

    def test_reset_to_initial(self, executor):
        snapshot_id = executor.save_snapshot()
        executor.submit(make_message(ALICE, value=5))
        executor.reset_to_initial()

        assert executor.get_account(ALICE) is None
        assert executor.get_account(GIVER_ADDRESS).balance == GIVER_BALANCE
        assert len(executor.state.transactions) == 0
        assert snapshot_id in executor.snapshots
        assert executor.save_snapshot() == snapshot_id + 1

    def test_clock_survives_restore(self, executor, clock):
        snapshot_id = executor.save_snapshot()
        executor.load_snapshot(snapshot_id)
        assert executor.clock is clock
        assert isinstance(executor.get_account(GIVER_ADDRESS), AccountState)
