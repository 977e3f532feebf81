"""Graph nodes for the oracle."""

from oracle_advisor.oracle.nodes.client_sampling import client_sampling_node
from oracle_advisor.oracle.nodes.provider import provider_node
from oracle_advisor.oracle.nodes.output import complete_node

__all__ = ["client_sampling_node", "provider_node", "complete_node"]
