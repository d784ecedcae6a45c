from __future__ import annotations

from ..analysis.call_graph import CallGraph
from ..analysis.pointer_analysis import PointerAnalysisResult
from ..analysis.pointer_flow import Pointer


def _format_pts(pointer: Pointer) -> str:
    return "{" + ", ".join(str(o) for o in sorted(pointer.points_to)) + "}"


def render_call_graph_text(call_graph: CallGraph) -> str:
    lines = [f"Reachable methods ({len(call_graph)}):"]
    lines.extend(f"  {m}" for m in call_graph.reachable_methods())
    lines.append(f"Call edges ({call_graph.num_edges}):")
    lines.extend(f"  {edge}" for edge in call_graph.edges())
    return "\n".join(lines)


def render_text_report(result: PointerAnalysisResult) -> str:
    """Readable dump of the call graph and every non-empty points-to set."""
    pfg = result.pointer_flow_graph
    sections = [render_call_graph_text(result.call_graph)]

    var_lines = [f"  {ptr} -> {_format_pts(ptr)}" for ptr in pfg.var_pointers() if ptr.points_to]
    sections.append("\n".join([f"Variables ({len(var_lines)}):", *var_lines]))

    static_lines = [
        f"  {ptr} -> {_format_pts(ptr)}" for ptr in pfg.static_field_pointers() if ptr.points_to
    ]
    if static_lines:
        sections.append("\n".join(["Static fields:", *static_lines]))

    heap_ptrs = [*pfg.instance_field_pointers(), *pfg.array_index_pointers()]
    heap_lines = [f"  {ptr} -> {_format_pts(ptr)}" for ptr in heap_ptrs if ptr.points_to]
    if heap_lines:
        sections.append("\n".join(["Heap:", *heap_lines]))

    return "\n\n".join(sections) + "\n"


def result_to_dict(result: PointerAnalysisResult) -> dict:
    """JSON-friendly view of a result."""
    pfg = result.pointer_flow_graph

    def pts(ptr: Pointer) -> list[str]:
        return [str(o) for o in sorted(ptr.points_to)]

    return {
        "reachable_methods": [m.signature for m in result.reachable_methods()],
        "call_edges": [
            {
                "kind": edge.kind.value,
                "call_site": edge.call_site.location(),
                "callee": edge.callee.signature,
            }
            for edge in result.call_graph.edges()
        ],
        "objects": [str(o) for o in result.objects()],
        "points_to": {
            "vars": {str(p): pts(p) for p in pfg.var_pointers() if p.points_to},
            "static_fields": {str(p): pts(p) for p in pfg.static_field_pointers() if p.points_to},
            "instance_fields": {
                str(p): pts(p) for p in pfg.instance_field_pointers() if p.points_to
            },
            "arrays": {str(p): pts(p) for p in pfg.array_index_pointers() if p.points_to},
        },
    }
