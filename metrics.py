import networkx as nx
import numpy as np


def calculate_same_race_friendship_fraction(model):
    """Share of friendships whose two ends are the same race (0 with no friendships)."""
    edges = model.graph.edges()
    if not edges:
        return 0.0

    same = 0
    for a, b in edges:
        if model.graph.student(a).race == model.graph.student(b).race:
            same += 1
    return same / len(edges)


def calculate_race_assortativity(model):
    G = model.graph.graph
    if G.number_of_edges() == 0:
        return 0.0

    races_on_edges = {G.nodes[n]['race'] for edge in G.edges() for n in edge}
    if len(races_on_edges) < 2:
        return 0.0

    return float(nx.attribute_assortativity_coefficient(G, 'race'))


def calculate_mean_alienation(model):
    if not model.students:
        return 0.0
    return float(np.mean([student.alienation() for student in model.students]))
