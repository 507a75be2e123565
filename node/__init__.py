"""
Paquete node - Worker del sistema DistriStats.

Exporta la clase principal WorkerNode que combina todos
los componentes mediante herencia múltiple de mixins.

Módulos internos:
- node_core: Componentes básicos y configuración
- node_messaging: Despacho de mensajes y rondas
- node_shuffle: Shuffle y detección de duplicados
- node_counting: Conteo contra pivote y muestreo
- node_http: Servidor HTTP
"""

from node.node import WorkerNode

__all__ = ['WorkerNode']
