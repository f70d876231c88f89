"""
deployflow — orquestrador de pipeline de entrega.

Grafo de tasks com gates, scans de vulnerabilidade por serviço e
reconciliação idempotente de Applications do Argo CD.
"""

__version__ = "0.1.0"
