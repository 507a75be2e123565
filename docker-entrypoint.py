"""
Script de entrada para contenedor Docker.

ROLE=worker: carga SHARD_PATH y sirve POST /message.
ROLE=coordinator: ejecuta QUERY contra los workers de NODE_ADDRESSES.
"""
import asyncio
import json
import os
import sys
import logging

import config
from coordinator import Coordinator
from core.shard import Shard
from network.http_network import HTTPNetwork, parse_node_addresses
from node import WorkerNode

logger = logging.getLogger(__name__)


async def run_worker(node_id: int, host: str, port: int, addresses):
    shard_path = os.getenv('SHARD_PATH')
    shard = Shard.from_file(shard_path) if shard_path else Shard(())

    network = HTTPNetwork(node_id, host=host, port=port, node_addresses=addresses)
    node = WorkerNode(
        node_id=node_id,
        shard=shard,
        host=host,
        port=port,
        network=network
    )

    await node.start()
    await node.start_http_server()

    logger.info(f"Worker {node_id} listo y escuchando en {host}:{port}")

    # Mantener activo
    try:
        await asyncio.Event().wait()
    finally:
        await node.shutdown()


async def run_coordinator(addresses):
    query = os.getenv('QUERY', 'median')
    k = os.getenv('K')
    sample_size = int(os.getenv('SAMPLE_SIZE', str(config.SAMPLE_SIZE)))

    network = HTTPNetwork(
        config.COORDINATOR_ID,
        node_addresses=addresses,
        request_timeout=config.HTTP_TIMEOUT
    )
    coordinator = Coordinator(worker_ids=addresses.keys(), network=network)
    await coordinator.start()

    try:
        if query == 'mode':
            result = await coordinator.run_mode_query()
        else:
            result = await coordinator.run_median_query(
                k=int(k) if k is not None else None,
                sample_size=sample_size or None
            )
        print(json.dumps(result.to_dict(), default=str))
    finally:
        await coordinator.shutdown()


async def main():
    # Leer configuración desde variables de entorno
    role = os.getenv('ROLE', 'worker')
    node_id = int(os.getenv('NODE_ID', '0'))
    host = os.getenv('HOST', '0.0.0.0')
    port = int(os.getenv('PORT', str(config.HTTP_BASE_PORT + node_id)))

    # Formato: "0=worker0:8000,1=worker1:8001,..."
    addresses = parse_node_addresses(os.getenv('NODE_ADDRESSES', ''))

    config.setup_logging(os.getenv('LOG_LEVEL', config.LOG_LEVEL))
    logger.info(f"Iniciando {role} (nodo {node_id}), {len(addresses)} workers conocidos")

    if role == 'coordinator':
        await run_coordinator(addresses)
    else:
        await run_worker(node_id, host, port, addresses)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nApagado limpio")
        sys.exit(0)
