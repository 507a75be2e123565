"""
Tests para el worker: conteo, muestreo, shuffle y detección local.
"""
import pytest

import config
from network.message_types import ShuffleBatch
from network.simulated_network import SimulatedNetwork
from node import WorkerNode


def make_worker(node_id, shard, **kwargs):
    network = SimulatedNetwork(node_id, latency_ms=0, max_latency_ms=0)
    return WorkerNode(node_id=node_id, shard=shard, network=network, **kwargs)


def test_count_against():
    """Test: conteo tri-partición y vecinos del pivote."""
    worker = make_worker(0, [1, 3, 5, 5, 9])

    counts = worker.count_against(5, round_id=4)

    assert (counts.count_lt, counts.count_eq, counts.count_gt) == (2, 2, 1)
    assert counts.total == 5
    assert counts.below_max == 3
    assert counts.above_min == 9
    assert counts.round == 4
    assert counts.node_id == 0


def test_count_against_idempotent():
    """Test: el mismo pivote da el mismo resultado y la suma es len(shard)."""
    shard = [7, -2, 0.5, 7, 100, 3]
    worker = make_worker(0, shard)

    for pivot in (-10, 0, 3, 7, 50, 1000, 2.25):
        first = worker.count_against(pivot)
        second = worker.count_against(pivot)
        assert first == second
        assert first.total == len(shard)


def test_count_against_empty_shard():
    """Test: shard vacío responde ceros."""
    worker = make_worker(0, [])

    counts = worker.count_against(10)

    assert counts.total == 0
    assert counts.below_max is None
    assert counts.above_min is None


def test_local_stats():
    """Test: reducción inicial local."""
    worker = make_worker(0, [4, 8, 2])

    assert worker.local_stats() == {'count': 3, 'min': 2, 'max': 8}
    assert make_worker(1, []).local_stats() == {'count': 0, 'min': None, 'max': None}


def test_sample_window():
    """Test: la muestra respeta la ventana y el tamaño."""
    worker = make_worker(0, list(range(100)))

    samples = worker.sample(10, 60, 5, seed=3)

    assert len(samples) == 5
    assert all(10 <= v <= 60 for v in samples)
    # Misma semilla, misma muestra
    assert worker.sample(10, 60, 5, seed=3) == samples


def test_sample_small_window_returns_all():
    """Test: si la ventana es chica se devuelve completa."""
    worker = make_worker(0, [1, 2, 3, 50])

    assert worker.sample(0, 10, 8) == [1, 2, 3]


def test_invalid_node_id():
    """Test: los workers usan IDs no negativos."""
    with pytest.raises(ValueError):
        WorkerNode(node_id=-1)


@pytest.mark.asyncio
async def test_ping_and_unknown_message():
    """Test: ping responde ok; tipo desconocido responde error."""
    worker = make_worker(0, [1])
    await worker.start()

    assert (await worker.handle_message({'type': 'ping'}))['status'] == 'ok'

    response = await worker.handle_message({'type': 'nope', 'round': 1})
    assert response['status'] == 'error'
    assert response['error'] == 'unknown_type'

    await worker.shutdown()


@pytest.mark.asyncio
async def test_shuffle_and_detect():
    """Test: duplicado repartido entre dos workers se detecta en su destino."""
    w0 = make_worker(0, [1, 3, 5])
    w1 = make_worker(1, [5, 2])
    await w0.start()
    await w1.start()

    r0 = await w0.shuffle("q", 1, 2)
    r1 = await w1.shuffle("q", 1, 2)

    # 1, 3 y 5 son impares: todo va al nodo 1
    assert r0['retained'] == 0
    assert r0['outbound_bytes'] == [[1, 24]]
    assert r1['retained'] == 1

    assert w0.detect_local_duplicates("q") == []
    candidates = w1.detect_local_duplicates("q")
    assert [(c.value, c.count, c.node_id) for c in candidates] == [(5, 2, 1)]

    # El buffer se descarta después de la detección
    assert "q" not in w1._receive_buffers

    await w0.shutdown()
    await w1.shutdown()


@pytest.mark.asyncio
async def test_local_duplicates_within_one_shard():
    """Test: un duplicado dentro del mismo shard también se reporta."""
    worker = make_worker(0, [4, 4, 4, 1])
    await worker.start()

    await worker.shuffle("q", 1, 1)
    candidates = worker.detect_local_duplicates("q")

    assert [(c.value, c.count) for c in candidates] == [(4, 3)]

    await worker.shutdown()


@pytest.mark.asyncio
async def test_redelivered_batch_not_double_counted():
    """Test: ack perdido provoca reenvío, pero el lote no se duplica."""
    w0 = make_worker(0, [1, 3])
    w1 = make_worker(1, [5])
    await w0.start()
    await w1.start()

    # El primer lote llega pero su respuesta se pierde
    w0.network.ack_loss = 1

    result = await w0.shuffle("q", 1, 2)
    await w1.shuffle("q", 1, 2)

    assert result['status'] == 'ok'
    assert w0.network.messages_failed == 1
    assert w1.detect_local_duplicates("q") == []

    await w0.shutdown()
    await w1.shutdown()


@pytest.mark.asyncio
async def test_stale_batch_rejected():
    """Test: lotes de una ronda vieja o consulta cerrada se rechazan."""
    worker = make_worker(0, [])
    await worker.start()

    await worker.handle_message({'type': 'stats', 'query_id': 'q', 'round': 5})

    old = ShuffleBatch(query_id="q", round=4, sender_id=1, values=[9, 9])
    response = await worker.handle_message(old.to_dict())
    assert response['status'] == 'stale'

    worker.detect_local_duplicates("q")
    late = ShuffleBatch(query_id="q", round=6, sender_id=1, values=[9, 9])
    assert worker.receive_batch(late) is False

    await worker.shutdown()


@pytest.mark.asyncio
async def test_repeated_detect_returns_same_candidates():
    """Test: detect reintentado en la misma ronda repite los candidatos."""
    w0 = make_worker(0, [1, 3, 5])
    w1 = make_worker(1, [5, 2])
    await w0.start()
    await w1.start()

    await w0.shuffle("q", 1, 2)
    await w1.shuffle("q", 1, 2)

    detect = {'type': 'detect', 'query_id': 'q', 'round': 2}
    first = await w1.handle_message(detect)
    second = await w1.handle_message(detect)

    assert first['status'] == second['status'] == 'ok'
    assert first['candidates'] == second['candidates']
    assert [(c['value'], c['count']) for c in second['candidates']] == [(5, 2)]

    await w0.shutdown()
    await w1.shutdown()


@pytest.mark.asyncio
async def test_tracked_queries_bounded():
    """Test: el estado por consulta se olvida en orden LRU."""
    worker = make_worker(0, [1, 2], max_tracked_queries=2)
    await worker.start()

    batch = ShuffleBatch(query_id="a", round=1, sender_id=1, values=[7])
    assert worker.receive_batch(batch) is True
    assert "a" in worker._receive_buffers

    for query_id in ("b", "c"):
        await worker.handle_message({'type': 'stats', 'query_id': query_id, 'round': 2})

    assert worker.latest_round("a") is None
    assert "a" not in worker._receive_buffers
    assert worker.get_status()['known_queries'] == 2

    for query_id in ("d1", "d2", "d3"):
        worker.detect_local_duplicates(query_id, 3)

    assert list(worker._detections) == ["d2", "d3"]

    await worker.shutdown()


def test_batch_timeout_fits_round_budget():
    """Test: todos los intentos de envío de un lote caben en la ronda."""
    worker = make_worker(0, [], send_timeout=5.0, send_retries=2)

    timeout = worker._attempt_timeout(0.5)
    waits = config.SEND_BACKOFF * (1 + 2)

    assert 3 * timeout + waits <= 0.5 * config.BATCH_BUDGET_SHARE + 1e-9
    assert worker._attempt_timeout(None) == 5.0
    assert worker._attempt_timeout(1000.0) == 5.0
    assert worker._attempt_timeout(0.01) == 0.01


@pytest.mark.asyncio
async def test_stale_round_message():
    """Test: un mensaje con ronda anterior a la última se marca stale."""
    worker = make_worker(0, [1, 2, 3])
    await worker.start()

    fresh = await worker.handle_message(
        {'type': 'pivot_query', 'query_id': 'q', 'round': 3, 'pivot': 2}
    )
    old = await worker.handle_message(
        {'type': 'pivot_query', 'query_id': 'q', 'round': 2, 'pivot': 2}
    )

    assert fresh['status'] == 'ok'
    assert fresh['count_eq'] == 1
    assert old['status'] == 'stale'
    assert worker.latest_round('q') == 3

    await worker.shutdown()


@pytest.mark.asyncio
async def test_malformed_shard_reported():
    """Test: entrada inválida se reporta como error, el worker sigue vivo."""
    worker = make_worker(0, [1, "dos", 3])
    await worker.start()

    response = await worker.handle_message(
        {'type': 'pivot_query', 'query_id': 'q', 'round': 1, 'pivot': 2}
    )

    assert response['status'] == 'error'
    assert response['error'] == 'malformed_shard'
    assert response['round'] == 1
    assert worker.network.is_running()

    await worker.shutdown()


@pytest.mark.asyncio
async def test_shuffle_delivery_failure_reported():
    """Test: un lote no entregado se reporta como fallo de transporte."""
    w0 = make_worker(0, [1, 3], send_retries=0)
    w1 = make_worker(1, [])
    await w0.start()
    await w1.start()

    w0.network.partition_from({1})

    response = await w0.handle_message(
        {'type': 'shuffle', 'query_id': 'q', 'round': 1, 'num_nodes': 2}
    )

    assert response['status'] == 'error'
    assert response['error'] == 'transport'
    assert response['dest_id'] == 1

    await w0.shutdown()
    await w1.shutdown()


def test_get_status():
    """Test: estado del worker."""
    worker = make_worker(2, [1, 2], port=8002)

    status = worker.get_status()

    assert status['node_id'] == 2
    assert status['shard_size'] == 2
    assert status['running'] is False
    assert status['endpoint'] == "localhost:8002"
