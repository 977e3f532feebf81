"""
Oracle sampling graph.

Routes one request through caller-provided generation, the provider,
or both in fallback order:
    entry -> client_sampling -> (provider) -> complete
"""

from oracle_advisor.oracle.graph.build import create_oracle_graph

__all__ = ["create_oracle_graph"]
