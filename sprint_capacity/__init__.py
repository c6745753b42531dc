"""
Planejamento de Sprints e Capacity

Este pacote gerencia times, membros, sprints, feriados e retrospectivas, calcula a
capacity em story points de cada membro a partir dos dias úteis da sprint e gera
templates de sprint por quarter que podem ser adotados por qualquer time.
"""

__version__ = "1.0.0"
