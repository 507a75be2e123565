"""
Estrategia de ruteo de valores para el shuffle de duplicados.
"""
import math
from collections import defaultdict
from typing import Dict, Iterable, List


def route_value(value, num_nodes: int) -> int:
    """
    Calcula el nodo destino de un valor (valor mod M).

    Valores iguales siempre van al mismo nodo: los enteros (y los floats
    con valor entero, p. ej. 5.0) usan su valor entero; el resto usa el
    hash numérico de Python, que es determinista y coincide entre
    números iguales.

    Args:
        value: Valor numérico
        num_nodes: Número de nodos (M)

    Returns:
        ID del nodo destino (0 a M-1)
    """
    if num_nodes <= 0:
        raise ValueError(f"num_nodes debe ser > 0 (recibido {num_nodes})")

    if isinstance(value, int):
        return value % num_nodes

    if math.isfinite(value) and value == math.floor(value):
        return int(value) % num_nodes

    return hash(value) % num_nodes


class ModuloRouter:
    """Router sin estado: función pura valor -> nodo."""

    def __init__(self, num_nodes: int):
        if num_nodes <= 0:
            raise ValueError(f"num_nodes debe ser > 0 (recibido {num_nodes})")
        self.num_nodes = num_nodes

    def route(self, value) -> int:
        return route_value(value, self.num_nodes)

    def partition(self, values: Iterable) -> Dict[int, List]:
        """
        Agrupa valores por nodo destino.

        Returns:
            Diccionario {node_id: [valores]} solo con destinos no vacíos
        """
        buckets: Dict[int, List] = defaultdict(list)
        for value in values:
            buckets[self.route(value)].append(value)
        return dict(buckets)
