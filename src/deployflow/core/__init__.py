"""
Núcleo do deployflow: configuração, logging, erros, execução de processos,
contratos do grafo de tasks e o engine (planner + executor).
"""
