"""
Oracle graph construction.

Builds the graph that arbitrates between caller-provided generation and
the provider path. Exactly one of them produces the final text.
"""

import logging

from langgraph.graph import END, StateGraph

from oracle_advisor.oracle.graph.router import route_after_client_sampling, route_entry
from oracle_advisor.oracle.graph.state import OracleState
from oracle_advisor.oracle.nodes.client_sampling import client_sampling_node
from oracle_advisor.oracle.nodes.output import complete_node
from oracle_advisor.oracle.nodes.provider import provider_node


logger = logging.getLogger(__name__)


def create_oracle_graph():
    """
    Create and compile the oracle graph.

    The graph structure is:
        Entry -> route_entry
          -> "client_sampling" -> route_after_client_sampling
                -> "provider" (auto fallback) -> complete
                -> "complete"
          -> "provider" (mode off) -> complete
        complete -> END

    Returns:
        Compiled LangGraph application ready for execution.
    """
    graph = StateGraph(OracleState)

    # Add nodes
    graph.add_node("client_sampling", client_sampling_node)
    graph.add_node("provider", provider_node)
    graph.add_node("complete", complete_node)

    # Conditional entry point - depends on the sampling mode
    graph.set_conditional_entry_point(
        route_entry,
        {
            "client_sampling": "client_sampling",
            "provider": "provider",
        },
    )

    # After client sampling, finish or fall back to the provider
    graph.add_conditional_edges(
        "client_sampling",
        route_after_client_sampling,
        {
            "provider": "provider",
            "complete": "complete",
        },
    )

    graph.add_edge("provider", "complete")
    graph.add_edge("complete", END)

    return graph.compile()
