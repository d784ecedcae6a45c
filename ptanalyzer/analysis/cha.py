from __future__ import annotations

import logging
from collections import deque

from ..intermediate_representation.ast import JMethod, Program
from ..intermediate_representation.hierarchy import ClassHierarchy
from .call_graph import CallGraph, Edge, call_kind_of

logger = logging.getLogger(__name__)


def build_cha_call_graph(
    program: Program,
    entry: JMethod,
    hierarchy: ClassHierarchy | None = None,
) -> CallGraph:
    """Build a call graph with class hierarchy analysis.

    Every virtual or interface call may reach any override in the subtypes of
    the declared class, so the result over-approximates the call graph the
    pointer analysis discovers.
    """
    if hierarchy is None:
        hierarchy = ClassHierarchy(program)
    call_graph = CallGraph()
    call_graph.add_entry_method(entry)
    work_list: deque[JMethod] = deque([entry])
    while work_list:
        method = work_list.popleft()
        if not call_graph.add_reachable_method(method):
            continue
        for call_site in call_graph.call_sites_in(method):
            for callee in hierarchy.cha_targets(call_site):
                call_graph.add_edge(Edge(call_kind_of(call_site), call_site, callee))
                if not call_graph.contains(callee):
                    work_list.append(callee)
    logger.info(
        "CHA call graph: %d reachable methods, %d edges",
        len(call_graph), call_graph.num_edges,
    )
    return call_graph
