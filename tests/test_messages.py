"""
Tests para los tipos de mensajes y la detección de skew.
"""
import pytest

from network.message_types import (
    CountResponse,
    FailureReport,
    PivotQuery,
    QueryResult,
    ShuffleBatch,
)
from sharding.skew import detect_skew


def test_count_response_combine():
    """Test: la reducción suma conteos y combina vecinos."""
    responses = [
        CountResponse(round=2, count_lt=1, count_eq=0, count_gt=2, node_id=0,
                      below_max=3, above_min=8),
        CountResponse(round=2, count_lt=2, count_eq=1, count_gt=0, node_id=1,
                      below_max=4, above_min=None),
        CountResponse(round=2, count_lt=0, count_eq=0, count_gt=0, node_id=2),
    ]

    total = CountResponse.combine(responses, round=2)

    assert (total.count_lt, total.count_eq, total.count_gt) == (3, 1, 2)
    assert total.below_max == 4
    assert total.above_min == 8
    assert total.round == 2


def test_count_response_combine_order_independent():
    """Test: el orden de llegada no cambia el resultado."""
    a = CountResponse(round=1, count_lt=1, count_eq=1, count_gt=1, below_max=0, above_min=9)
    b = CountResponse(round=1, count_lt=2, count_eq=0, count_gt=4, below_max=2, above_min=7)

    assert CountResponse.combine([a, b], 1) == CountResponse.combine([b, a], 1)


def test_message_dicts():
    """Test: los mensajes llevan su tipo y estado."""
    batch = ShuffleBatch(query_id="q", round=1, sender_id=2, values=[1, 2])
    assert batch.to_dict()['type'] == 'shuffle_batch'
    assert ShuffleBatch.from_dict(batch.to_dict()) == batch

    assert PivotQuery(query_id="q", round=3, pivot=7).to_dict()['type'] == 'pivot_query'

    counts = CountResponse(round=3, count_lt=1, count_eq=0, count_gt=0)
    assert counts.to_dict()['status'] == 'ok'

    report = FailureReport(node_id=1, round=3, error="transport", dest_id=2)
    assert report.to_dict()['status'] == 'error'


def test_most_frequent():
    """Test: la moda exacta usa las frecuencias reportadas."""
    result = QueryResult(
        kind="mode",
        payload=[5, 9, 11],
        diagnostics={'frequencies': {5: 2, 9: 4, 11: 4}}
    )

    assert result.most_frequent() == 9


def test_most_frequent_without_duplicates():
    """Test: sin duplicados no hay moda."""
    assert QueryResult(kind="mode", payload=[]).most_frequent() is None

    with pytest.raises(ValueError):
        QueryResult(kind="median", payload=4).most_frequent()


def test_detect_skew():
    """Test: un nodo con más del umbral del tráfico es skew."""
    skew = detect_skew({0: 900, 1: 50, 2: 50}, threshold=0.5, round_id=4)

    assert skew is not None
    assert skew.node_id == 0
    assert skew.fraction == pytest.approx(0.9)
    assert skew.round_id == 4


def test_detect_skew_balanced_or_small():
    """Test: tráfico balanceado, nulo o chico no es skew."""
    assert detect_skew({0: 100, 1: 100, 2: 100}, threshold=0.5) is None
    assert detect_skew({0: 0, 1: 0}, threshold=0.5) is None
    assert detect_skew({0: 10, 1: 0}, threshold=0.5, min_bytes=1024) is None
    assert detect_skew({0: 5000}, threshold=0.5) is None
