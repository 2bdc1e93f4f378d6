"""Domain layer — tokens, grammar, directives, inventories and prices.

This layer depends only on stdlib, pydantic and networkx.
It must never import from services, infrastructure, commands, or config.
"""
