"""
Módulo de sharding para el shuffle de duplicados.
Rutea cada valor a un nodo fijo (valor mod M) y vigila el skew.
"""
from sharding.router import ModuloRouter, route_value
from sharding.skew import SkewFailure, detect_skew

__all__ = [
    "ModuloRouter",
    "route_value",
    "SkewFailure",
    "detect_skew",
]
