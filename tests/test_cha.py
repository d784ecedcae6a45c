# tests/test_cha.py
"""Tests for the class hierarchy analysis call graph."""

from ptanalyzer.analysis.cha import build_cha_call_graph
from ptanalyzer.analysis.call_graph import CallKind
from ptanalyzer.parsing.jimple import parse_jimple
from tests.conftest import ANIMALS, analyze

# Main only ever creates a Dog, but CHA cannot tell
ONLY_DOGS = ANIMALS.replace(
    "if i0 > 0 goto label1;", "if i0 > 0 goto label2;"
).replace(
    """     label1:
        $r2 = new Cat;
        specialinvoke $r2.<Cat: void <init>()>();
        a = $r2;
""",
    "",
)


def _edge_keys(call_graph):
    return {(e.call_site, e.callee) for e in call_graph.edges()}


class TestCha:

    def test_virtual_call_reaches_every_override(self, animals):
        program, _ = animals
        cg = build_cha_call_graph(program, program.main_method())
        virtual = [e for e in cg.edges() if e.kind is CallKind.VIRTUAL]
        assert {e.callee.signature for e in virtual} == {
            "<Dog: void speak()>",
            "<Cat: void speak()>",
        }

    def test_superset_of_pointer_analysis(self, animals):
        program, result = animals
        cg = build_cha_call_graph(program, program.main_method())
        assert _edge_keys(result.call_graph) <= _edge_keys(cg)
        assert set(result.reachable_methods()) <= set(cg.reachable_methods())

    def test_more_precise_pointer_analysis(self):
        program, result = analyze(ONLY_DOGS)
        pta_callees = {e.callee.signature for e in result.call_graph.edges()}
        assert "<Cat: void speak()>" not in pta_callees

        cg = build_cha_call_graph(program, program.main_method())
        cha_callees = {e.callee.signature for e in cg.edges()}
        assert "<Cat: void speak()>" in cha_callees
        assert _edge_keys(result.call_graph) <= _edge_keys(cg)

    def test_entry_is_recorded(self):
        program = parse_jimple(ANIMALS)
        main = program.main_method()
        cg = build_cha_call_graph(program, main)
        assert cg.entry_methods() == [main]
        assert cg.reachable_methods()[0] is main
        assert cg.num_edges == 6
