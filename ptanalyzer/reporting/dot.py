from __future__ import annotations

from ..analysis.call_graph import CallGraph
from ..analysis.pointer_analysis import PointerAnalysisResult


def _quote(text: str) -> str:
    return '"' + text.replace('"', '\\"') + '"'


def render_call_graph_dot(call_graph: CallGraph) -> str:
    """DOT digraph of reachable methods; edges are labeled with the call kind."""
    ids = {m: f"m{i}" for i, m in enumerate(call_graph.reachable_methods())}
    entries = set(call_graph.entry_methods())
    lines = ["digraph CallGraph {", "  node [shape=box, fontname=monospace];"]
    for method, node_id in ids.items():
        style = ", style=bold" if method in entries else ""
        lines.append(f"  {node_id} [label={_quote(method.signature)}{style}];")
    for edge in call_graph.edges():
        caller = edge.call_site.container
        if caller not in ids or edge.callee not in ids:
            continue
        label = f"{edge.kind.value} @{edge.call_site.index}"
        lines.append(f"  {ids[caller]} -> {ids[edge.callee]} [label={_quote(label)}];")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_pfg_dot(result: PointerAnalysisResult) -> str:
    """DOT digraph of the pointer flow graph, nodes labeled with points-to sets."""
    pfg = result.pointer_flow_graph
    lines = ["digraph PFG {", "  node [shape=box, fontname=monospace];"]
    for ptr in pfg.pointers():
        objs = ", ".join(f"o{o.id}" for o in sorted(ptr.points_to))
        label = f"{ptr}\\n{{{objs}}}"
        lines.append(f"  p{ptr.handle} [label={_quote(label)}];")
    for source, target in pfg.edges():
        lines.append(f"  p{source.handle} -> p{target.handle};")
    lines.append("}")
    return "\n".join(lines) + "\n"
