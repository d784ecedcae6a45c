# tests/test_call_graph.py
"""Tests for the call graph container."""

from ptanalyzer.analysis.call_graph import CallGraph, CallKind, Edge, call_kind_of
from ptanalyzer.intermediate_representation.ast import (
    Invoke,
    InvokeKind,
    JMethod,
    MethodIR,
    MethodRef,
    Var,
)


def _method(cls, name, *stmts):
    method = JMethod(cls, name, (), "void", frozenset({"static"}))
    method.attach(MethodIR(params=(), this=None, return_var=None, statements=list(stmts)))
    return method


def _call(kind, cls, name, receiver=None):
    return Invoke(kind, MethodRef(cls, name, (), "void"), receiver=receiver)


class TestCallKind:

    def test_kind_follows_invoke(self):
        assert call_kind_of(_call(InvokeKind.STATIC, "A", "f")) is CallKind.STATIC
        assert call_kind_of(_call(InvokeKind.SPECIAL, "A", "f", Var("m", "r"))) is CallKind.SPECIAL
        assert call_kind_of(_call(InvokeKind.VIRTUAL, "A", "f", Var("m", "r"))) is CallKind.VIRTUAL
        assert call_kind_of(_call(InvokeKind.INTERFACE, "I", "f", Var("m", "r"))) is CallKind.INTERFACE
        assert call_kind_of(_call(InvokeKind.DYNAMIC, "D", "f")) is CallKind.DYNAMIC


class TestCallGraph:

    def test_reachable_methods_once(self):
        cg = CallGraph()
        m = _method("A", "m")
        assert cg.add_reachable_method(m)
        assert not cg.add_reachable_method(m)
        assert cg.contains(m)
        assert cg.reachable_methods() == [m]
        assert len(cg) == 1

    def test_edge_identity_ignores_kind(self):
        site = _call(InvokeKind.STATIC, "B", "g")
        caller = _method("A", "m", site)
        callee = _method("B", "g")
        cg = CallGraph()
        assert cg.add_edge(Edge(CallKind.STATIC, site, callee))
        assert not cg.add_edge(Edge(CallKind.OTHER, site, callee))
        assert cg.num_edges == 1
        assert site.container is caller

    def test_queries(self):
        s1 = _call(InvokeKind.STATIC, "B", "g")
        s2 = _call(InvokeKind.STATIC, "C", "h")
        caller = _method("A", "m", s1, s2)
        g = _method("B", "g")
        h = _method("C", "h")
        cg = CallGraph()
        cg.add_entry_method(caller)
        cg.add_edge(Edge(CallKind.STATIC, s1, g))
        cg.add_edge(Edge(CallKind.STATIC, s2, h))
        cg.add_edge(Edge(CallKind.STATIC, s2, g))

        assert cg.entry_methods() == [caller]
        assert cg.callees_of(s2) == [h, g]
        assert [e.callee for e in cg.edges_out_of(s1)] == [g]
        assert cg.callers_of(g) == [s1, s2]
        assert [e.call_site for e in cg.edges_into(h)] == [s2]
        assert cg.call_sites_in(caller) == [s1, s2]
        assert cg.call_sites_in(JMethod("D", "n", (), "void")) == []
        assert len(list(cg.edges())) == 3

    def test_edge_str_names_both_ends(self):
        site = _call(InvokeKind.STATIC, "B", "g")
        _method("A", "m", site)
        edge = Edge(CallKind.STATIC, site, _method("B", "g"))
        text = str(edge)
        assert text.startswith("[STATIC] <A: void m()>[0@")
        assert text.endswith("-> <B: void g()>")
