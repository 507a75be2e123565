"""
Shard local de un worker: secuencia numérica inmutable.
"""
import logging
import math
from numbers import Real
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple, Union

from core.errors import MalformedShardEntry

logger = logging.getLogger(__name__)

Number = Union[int, float]


def is_valid_value(value) -> bool:
    """Un valor es válido si es real, no booleano y no NaN."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return not (isinstance(value, float) and math.isnan(value))


class Shard:
    """
    Partición del dataset propiedad exclusiva de un nodo.

    Las entradas se validan la primera vez que se recorren; una entrada
    inválida lanza MalformedShardEntry (el worker la convierte en un
    reporte de fallo para el coordinador).
    """

    def __init__(self, values: Iterable = ()):
        self._values: Tuple = tuple(values)
        self._validated = False

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Shard":
        """
        Carga un shard desde un archivo de texto (un número por línea).

        Las líneas vacías se ignoran; las que no son números se conservan
        como texto para que el fallo se reporte en la consulta.
        """
        values = []
        with open(path, 'r', encoding='utf-8') as f:
            for line in f:
                raw = line.strip()
                if not raw:
                    continue
                try:
                    values.append(int(raw))
                except ValueError:
                    try:
                        values.append(float(raw))
                    except ValueError:
                        values.append(raw)

        logger.info(f"Shard cargado desde {path}: {len(values)} valores")
        return cls(values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Number]:
        return iter(self.values())

    def values(self) -> Tuple:
        """Retorna los valores validados."""
        if not self._validated:
            for index, value in enumerate(self._values):
                if not is_valid_value(value):
                    raise MalformedShardEntry(index, value)
            self._validated = True
        return self._values

    def bounds(self) -> Tuple[Optional[Number], Optional[Number]]:
        """Mínimo y máximo locales (None, None si está vacío)."""
        values = self.values()
        if not values:
            return None, None
        return min(values), max(values)
