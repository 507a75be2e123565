"""
Tests para la red simulada y el parseo de direcciones HTTP.
"""
import asyncio

import pytest

from network.http_network import HTTPNetwork, parse_node_addresses
from network.simulated_network import SimulatedNetwork


async def echo(message):
    return {'status': 'ok', 'echo': message.get('type')}


async def start_pair():
    a = SimulatedNetwork(0, latency_ms=0, max_latency_ms=0)
    b = SimulatedNetwork(1, latency_ms=0, max_latency_ms=0)
    b.set_message_handler(echo)
    await a.start()
    await b.start()
    return a, b


@pytest.mark.asyncio
async def test_send_message():
    """Test: entrega simple entre dos nodos."""
    a, b = await start_pair()

    response = await a.send_message(0, 1, {'type': 'ping'})

    assert response == {'status': 'ok', 'echo': 'ping'}
    assert a.messages_sent == 1


@pytest.mark.asyncio
async def test_send_to_stopped_node():
    """Test: un nodo detenido es inalcanzable."""
    a, b = await start_pair()
    await b.stop()

    assert await a.send_message(0, 1, {'type': 'ping'}) is None
    assert a.messages_failed == 1


@pytest.mark.asyncio
async def test_partition_and_heal():
    """Test: partición bloquea, heal restaura."""
    a, b = await start_pair()

    a.partition_from({1})
    assert await a.send_message(0, 1, {'type': 'ping'}) is None

    a.heal_partition()
    assert await a.send_message(0, 1, {'type': 'ping'}) is not None


@pytest.mark.asyncio
async def test_handler_timeout():
    """Test: un handler que no responde a tiempo da None."""
    a, b = await start_pair()

    async def hang(message):
        await asyncio.sleep(10)

    b.set_message_handler(hang)

    assert await a.send_message(0, 1, {'type': 'ping'}, timeout=0.05) is None


@pytest.mark.asyncio
async def test_send_with_retry_after_ack_loss():
    """Test: el reintento recupera una respuesta perdida."""
    a, b = await start_pair()
    received = []

    async def record(message):
        received.append(message)
        return {'status': 'ok'}

    b.set_message_handler(record)
    a.ack_loss = 1

    response = await a.send_with_retry(1, {'type': 'ping'}, retries=2, backoff=0)

    assert response == {'status': 'ok'}
    # El mensaje llegó dos veces: el receptor debe ser idempotente
    assert len(received) == 2


@pytest.mark.asyncio
async def test_send_with_retry_gives_up():
    """Test: reintentos acotados."""
    a, b = await start_pair()
    a.set_packet_loss(1.0)

    assert await a.send_with_retry(1, {'type': 'ping'}, retries=2, backoff=0) is None
    assert a.messages_failed == 3


@pytest.mark.asyncio
async def test_broadcast_skips_sender():
    """Test: broadcast no se envía a sí mismo."""
    a, b = await start_pair()

    responses = await a.broadcast(0, {0, 1, 5}, {'type': 'ping'})

    assert set(responses) == {1, 5}
    assert responses[1]['status'] == 'ok'
    assert responses[5] is None


def test_parse_node_addresses():
    """Test: formato id=host:port separado por comas."""
    addresses = parse_node_addresses("0=worker0:8000, 1=worker1:8001,")

    assert addresses == {0: ("worker0", 8000), 1: ("worker1", 8001)}
    assert parse_node_addresses("") == {}

    with pytest.raises(ValueError):
        parse_node_addresses("0=worker0")


def test_http_node_url():
    """Test: URL base de un nodo registrado."""
    network = HTTPNetwork(-1, node_addresses={0: ("localhost", 8000)})
    network.register_node(1, "10.0.0.2", 8001)

    assert network.get_node_url(0) == "http://localhost:8000"
    assert network.get_node_url(1) == "http://10.0.0.2:8001"
    assert network.get_node_url(2) is None
    assert not network.is_running()


@pytest.mark.asyncio
async def test_hang_on_message_type():
    """Test: un receptor colgado no contesta ese tipo de mensaje."""
    a, b = await start_pair()
    b.hang_on('pivot_query')

    assert await a.send_message(0, 1, {'type': 'pivot_query'}, timeout=0.05) is None
    assert await a.send_message(0, 1, {'type': 'ping'}) is not None
    assert a.delivered == [(0, 1, 'ping')]


@pytest.mark.asyncio
async def test_lose_acks_by_message_type():
    """Test: solo se pierde la respuesta del tipo indicado, tras entregarlo."""
    a, b = await start_pair()
    a.lose_acks('detect')

    assert await a.send_message(0, 1, {'type': 'ping'}) is not None
    assert await a.send_message(0, 1, {'type': 'detect'}) is None
    assert await a.send_message(0, 1, {'type': 'detect'}) is not None
    assert a.delivered == [(0, 1, 'ping'), (0, 1, 'detect'), (0, 1, 'detect')]
    assert a.lost_acks == {'detect': 0}


def test_http_network_from_addresses():
    """Test: construcción desde la cadena de direcciones."""
    network = HTTPNetwork.from_addresses(-1, "0=w0:8000,1=w1:8001", request_timeout=3.0)

    assert network.node_addresses == {0: ("w0", 8000), 1: ("w1", 8001)}
    assert network.request_timeout == 3.0


@pytest.mark.asyncio
async def test_http_send_without_start():
    """Test: sin sesión iniciada el envío falla sin lanzar."""
    network = HTTPNetwork(-1, node_addresses={0: ("localhost", 8000)})

    assert await network.send_message(-1, 0, {'type': 'ping'}) is None
    assert network.messages_failed == 1
