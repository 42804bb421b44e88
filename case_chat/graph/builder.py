from langgraph.graph import END, StateGraph

# Importing the nodes:
from case_chat.graph.nodes import (
    assemble_node,
    complete_node,
    load_history_node,
    retrieve_node,
    save_history_node,
)

# Importing the state defined
from case_chat.graph.state import ChatState


def build_graph():
    graph = StateGraph(ChatState)

    graph.add_node("retrieve", retrieve_node)
    graph.add_node("load_history", load_history_node)
    graph.add_node("assemble", assemble_node)
    graph.add_node("complete", complete_node)
    graph.add_node("save_history", save_history_node)

    # strictly sequential: retrieval and history both feed assembly,
    # completion must precede the save
    graph.set_entry_point("retrieve")
    graph.add_edge("retrieve", "load_history")
    graph.add_edge("load_history", "assemble")
    graph.add_edge("assemble", "complete")
    graph.add_edge("complete", "save_history")
    graph.add_edge("save_history", END)

    return graph.compile()
