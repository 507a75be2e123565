"""
Tests para el estado de selección de la mediana.
"""
import pytest

import config

from core.errors import ConvergenceFailure
from coordinator.selection import SelectionState, round_budget, sample_and_pick_pivot
from network.message_types import CountResponse


def counts(lt, eq, gt, below_max=None, above_min=None):
    return CountResponse(
        round=1, count_lt=lt, count_eq=eq, count_gt=gt,
        below_max=below_max, above_min=above_min
    )


def test_midpoint():
    """Test: punto medio entero y flotante."""
    assert SelectionState(k=0, lo=1, hi=7).midpoint() == 4
    assert SelectionState(k=0, lo=-7, hi=0).midpoint() == -4
    assert SelectionState(k=0, lo=1.0, hi=2.0).midpoint() == 1.5
    assert SelectionState(k=0, lo=-1e308, hi=1e308).midpoint() == 0.0


def test_apply_terminal():
    """Test: el pivote es la respuesta si su rango contiene a k."""
    # Dataset [1, 2, 3, 4, 5, 6, 7], k = 3
    state = SelectionState(k=3, lo=1, hi=7)

    assert state.apply(4, counts(3, 1, 3, below_max=3, above_min=5)) == 4
    assert state.steps == 1


def test_apply_go_left():
    """Test: demasiados menores, la cota superior baja al vecino."""
    state = SelectionState(k=1, lo=1, hi=7)

    assert state.apply(4, counts(3, 1, 3, below_max=3, above_min=5)) is None
    assert (state.lo, state.hi, state.k) == (1, 3, 1)


def test_apply_go_right():
    """Test: k se descuenta y lo sube al vecino."""
    state = SelectionState(k=5, lo=1, hi=7)

    assert state.apply(4, counts(3, 1, 3, below_max=3, above_min=5)) is None
    assert (state.lo, state.hi, state.k, state.offset) == (5, 7, 1, 4)

    # Siguiente ronda: los conteos siguen siendo globales
    assert state.apply(6, counts(5, 1, 1, below_max=5, above_min=7)) == 6


def test_apply_pivot_absent_from_data():
    """Test: pivote que no es un dato también estrecha la ventana."""
    # Dataset [10, 20, 30], k = 1
    state = SelectionState(k=1, lo=10, hi=30)

    assert state.apply(15, counts(1, 0, 2, below_max=10, above_min=20)) is None
    assert (state.lo, state.k) == (20, 0)

    assert state.midpoint() == 25
    assert state.apply(25, counts(2, 0, 1, below_max=20, above_min=30)) is None
    assert (state.lo, state.hi) == (20, 20)

    assert state.apply(state.midpoint(), counts(1, 1, 1, below_max=10, above_min=30)) == 20
    assert state.steps == 3


def test_apply_duplicates_at_pivot():
    """Test: rango con duplicados en el pivote."""
    # Dataset [1, 5, 5, 5, 9], cualquier k en 1..3 da 5
    for k in (1, 2, 3):
        state = SelectionState(k=k, lo=1, hi=9)
        assert state.apply(5, counts(1, 3, 1, below_max=1, above_min=9)) == 5


def test_apply_inconsistent_counts():
    """Test: cotas que dejan de contener a k lanzan ConvergenceFailure."""
    state = SelectionState(k=0, lo=5, hi=9)

    with pytest.raises(ConvergenceFailure):
        state.apply(7, counts(2, 0, 1, below_max=None, above_min=9))

    state = SelectionState(k=4, lo=5, hi=9)
    with pytest.raises(ConvergenceFailure):
        state.apply(7, counts(1, 0, 1, below_max=5, above_min=None))


def test_round_budget():
    """Test: presupuesto logarítmico para enteros, tope fijo en otro caso."""
    assert round_budget(0, 0, 128) == 2
    assert round_budget(0, 1000, 128) == (1000).bit_length() + 2
    assert round_budget(0, 2 ** 200, 128) == 128
    assert round_budget(0.0, 1.0, 128) == 128
    assert round_budget(0, 1000, 128, sampled=True) == 128


def test_round_budget_without_cap():
    """Test: sin tope explícito el presupuesto entero es exacto."""
    assert round_budget(0, 2 ** 200) == 203
    assert round_budget(-5, 5) == (10).bit_length() + 2
    assert round_budget(0.0, 1.0) == config.MAX_MEDIAN_ROUNDS
    assert round_budget(0, 2 ** 200, sampled=True) == config.MAX_MEDIAN_ROUNDS


def test_sample_and_pick_pivot():
    """Test: mediana inferior de las muestras combinadas."""
    assert sample_and_pick_pivot([[9, 1], [5], [3, 7]]) == 5
    assert sample_and_pick_pivot([[4, 1], [3, 2]]) == 2
    assert sample_and_pick_pivot([[], [8]]) == 8


def test_sample_and_pick_pivot_empty():
    """Test: sin muestras no hay pivote."""
    assert sample_and_pick_pivot([]) is None
    assert sample_and_pick_pivot([[], []]) is None
