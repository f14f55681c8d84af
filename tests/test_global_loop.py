"""Tests for the time-budgeted global loop."""

import itertools
from unittest.mock import MagicMock

import pytest
from hypothesis import given
from hypothesis import strategies as st

from vtswap.database.base import TimingOracle
from vtswap.models.common import ExitReason, RankingEntry, UndoRecord
from vtswap.optimizers.global_loop import BudgetState, GlobalOptimizationLoop, same_candidates
from vtswap.optimizers.leakage import LeakageSavingEstimator
from vtswap.optimizers.ranking import GlobalRanker
from vtswap.optimizers.swap import SwapExecutor


def _entries(names, key=None):
    return [
        RankingEntry(float(i), "CORE65LPLVT", f"HS65_LL_{n}", key or n, n)
        for i, n in enumerate(names)
    ]


class StatefulExecutor:
    """Tracks which cells are swapped, for scripted timing."""

    def __init__(self):
        self.swapped = set()
        self.batch_sizes = []

    def apply_batch(self, entries):
        self.batch_sizes.append(len(entries))
        self.swapped.update(e.cell for e in entries)
        return [UndoRecord(e.cell, e.library, e.ref_name) for e in entries]

    def revert_batch(self, undo_list):
        self.swapped.difference_update(u.cell for u in undo_list)


def _timing(slack_fn):
    timing = MagicMock(spec=TimingOracle)
    timing.worst_slack.side_effect = slack_fn
    return timing


def _loop(ranker, executor, timing, budget=None, clock=None, **kwargs):
    return GlobalOptimizationLoop(
        ranker,
        executor,
        timing,
        budget or BudgetState(start_time=0.0, max_duration=100.0),
        clock=clock or (lambda: 0.0),
        **kwargs,
    )


def test_ema_update():
    """First duration 1000 -> dt 1000; then 500 -> 0.3 * 500 + 0.7 * 1000."""
    budget = BudgetState(start_time=0.0, max_duration=180000.0, alpha=0.3)
    assert budget.dt is None
    assert budget.record(1000.0) == 1000.0
    assert budget.record(500.0) == pytest.approx(850.0)


def test_budget_exhausted():
    budget = BudgetState(start_time=10.0, max_duration=100.0)
    assert not budget.exhausted(1000.0)  # no prediction yet
    budget.record(20.0)
    assert budget.deadline == 110.0
    assert not budget.exhausted(89.0)
    assert budget.exhausted(90.0)


@given(st.lists(st.floats(min_value=0.0, max_value=1e4), min_size=1, max_size=20))
def test_ema_stays_within_observed_range(durations):
    budget = BudgetState(start_time=0.0, max_duration=1.0)
    for d in durations:
        budget.record(d)
    assert min(durations) - 1e-6 <= budget.dt <= max(durations) + 1e-6


def test_same_candidates():
    a = _entries(["U1", "U2"], key="NAND")
    b = _entries(["U3", "U4"], key="NAND")
    assert same_candidates(a, b)
    assert not same_candidates(a, _entries(["U1", "U2"]))
    assert not same_candidates(a, a[:1])
    assert same_candidates([], [])


def test_shrinking_batches_within_a_pass():
    """Five candidates, batch size 3, swapping C2 always violates timing.

    [C0, C1, C2] fails; [C0, C1] passes; [C2, C3] fails; [C2] fails; stop.
    """
    executor = StatefulExecutor()
    timing = _timing(lambda: -1.0 if "C2" in executor.swapped else 0.5)
    ranker = MagicMock(side_effect=[_entries(["C0", "C1", "C2", "C3", "C4"]), []])

    result = _loop(ranker, executor, timing, initial_batch_size=3).run()

    assert executor.batch_sizes == [3, 2, 2, 1]
    assert executor.swapped == {"C0", "C1"}
    assert result.accepted_batches == 1
    assert result.rejected_batches == 3
    assert result.cells_swapped == 2
    assert timing.update_timing.call_count == 4
    assert result.exit_reason is ExitReason.CONVERGED
    assert result.iterations == 1


def test_lockstep_terminates():
    """The same candidates after a pass abort the loop."""
    executor = StatefulExecutor()
    timing = _timing(lambda: -1.0)
    ranker = MagicMock(return_value=_entries(["A", "B"]))

    result = _loop(ranker, executor, timing).run()

    assert result.exit_reason is ExitReason.LOCKSTEP
    assert result.iterations == 1
    assert ranker.call_count == 2
    assert executor.swapped == set()


def test_fast_mode_skips_lockstep_detection():
    executor = StatefulExecutor()
    timing = _timing(lambda: 1.0)
    ranking = _entries(["A", "B"])
    ranker = MagicMock(side_effect=[ranking, ranking, ranking, []])

    result = _loop(ranker, executor, timing, fast_mode=True).run()

    assert result.exit_reason is ExitReason.CONVERGED
    assert result.iterations == 3
    assert result.cells_swapped == 6


def test_time_budget():
    """An iteration of 10 s predicts the next one would end past 15 s."""
    executor = StatefulExecutor()
    timing = _timing(lambda: 1.0)
    ranker = MagicMock(side_effect=[_entries(["A"]), _entries(["B"])])
    clock = MagicMock(side_effect=[0.0, 10.0])

    result = _loop(
        ranker, executor, timing, budget=BudgetState(0.0, 15.0), clock=clock
    ).run()

    assert result.exit_reason is ExitReason.TIME_BUDGET
    assert result.dt == pytest.approx(10.0)
    assert result.iterations == 1
    ranker.assert_called_once()


def test_iteration_duration_is_tracked_per_iteration():
    """Each duration runs from before the ranking to after the swap pass."""
    executor = StatefulExecutor()
    timing = _timing(lambda: 1.0)
    ranker = MagicMock(side_effect=[_entries(["A"]), _entries(["B"]), []])
    ticks = itertools.count(0.0, 1.0)

    result = _loop(
        ranker, executor, timing, budget=BudgetState(0.0, 1000.0), clock=lambda: next(ticks)
    ).run()

    assert result.exit_reason is ExitReason.CONVERGED
    assert result.iterations == 2
    assert result.dt == pytest.approx(1.0)


def test_empty_initial_ranking():
    executor = StatefulExecutor()
    timing = _timing(lambda: 1.0)
    result = _loop(MagicMock(return_value=[]), executor, timing).run()

    assert result.iterations == 0
    assert result.exit_reason is ExitReason.CONVERGED
    assert result.dt is None
    timing.update_timing.assert_not_called()


def test_invalid_batch_size():
    with pytest.raises(ValueError):
        _loop(MagicMock(), StatefulExecutor(), MagicMock(), initial_batch_size=0)


def test_on_design_ends_meeting_timing(stcmos65, chain_design):
    table = LeakageSavingEstimator(
        stcmos65, chain_design, chain_design, chain_design
    ).build_saving_table()
    ranker = GlobalRanker(stcmos65, chain_design, chain_design, chain_design, table)
    before = chain_design.total_leakage()

    result = GlobalOptimizationLoop(
        ranker.rank_by_global_slack_reduction,
        SwapExecutor(stcmos65, chain_design),
        chain_design,
        BudgetState(start_time=0.0, max_duration=1.0e6),
        clock=lambda: 0.0,
    ).run()

    assert result.exit_reason in (ExitReason.CONVERGED, ExitReason.LOCKSTEP)
    assert result.cells_swapped > 0
    assert chain_design.worst_slack() >= 0
    assert chain_design.total_leakage() < before
