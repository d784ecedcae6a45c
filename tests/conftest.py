# tests/conftest.py
"""Shared Jimple programs and lookup helpers for the pointer analysis tests."""
from __future__ import annotations

import pytest

from ptanalyzer.analysis.heap import AbstractObject
from ptanalyzer.analysis.pointer_analysis import PointerAnalysisResult, compute_pointer_analysis
from ptanalyzer.intermediate_representation.ast import Program, Var
from ptanalyzer.parsing.jimple import parse_jimple

MAIN = "<Main: void main(java.lang.String[])>"


# ── Programs ─────────────────────────────────────────────────────

FIELD_ALIAS = """
public class Main extends java.lang.Object
{
    public static void main(java.lang.String[])
    {
        java.lang.String[] r0;
        A a, b;
        B $r1, c;

        r0 := @parameter0: java.lang.String[];
        a = new A;
        b = a;
        $r1 = new B;
        b.<A: B f> = $r1;
        c = a.<A: B f>;
        return;
    }
}

public class A extends java.lang.Object
{
    B f;
}

public class B extends java.lang.Object
{
}
"""

STATIC_IDENTITY = """
public class Main extends java.lang.Object
{
    public static void main(java.lang.String[])
    {
        java.lang.String[] r0;
        java.lang.Object x, r;

        r0 := @parameter0: java.lang.String[];
        x = new java.lang.Object;
        r = staticinvoke <Main: java.lang.Object foo(java.lang.Object)>(x);
        return;
    }

    public static java.lang.Object foo(java.lang.Object)
    {
        java.lang.Object p;

        p := @parameter0: java.lang.Object;
        return p;
    }
}
"""

ANIMALS = """
public class Main extends java.lang.Object
{
    public static void main(java.lang.String[])
    {
        java.lang.String[] r0;
        Animal a;
        Dog $r1;
        Cat $r2;
        int i0;

        r0 := @parameter0: java.lang.String[];
        i0 = lengthof r0;
        if i0 > 0 goto label1;

        $r1 = new Dog;
        specialinvoke $r1.<Dog: void <init>()>();
        a = $r1;
        goto label2;

     label1:
        $r2 = new Cat;
        specialinvoke $r2.<Cat: void <init>()>();
        a = $r2;

     label2:
        virtualinvoke a.<Animal: void speak()>();
        return;
    }
}

public abstract class Animal extends java.lang.Object
{
    public void <init>()
    {
        Animal r0;

        r0 := @this: Animal;
        specialinvoke r0.<java.lang.Object: void <init>()>();
        return;
    }

    public abstract void speak();
}

public class Dog extends Animal
{
    public void <init>()
    {
        Dog r0;

        r0 := @this: Dog;
        specialinvoke r0.<Animal: void <init>()>();
        return;
    }

    public void speak()
    {
        Dog r0;

        r0 := @this: Dog;
        return;
    }
}

public class Cat extends Animal
{
    public void <init>()
    {
        Cat r0;

        r0 := @this: Cat;
        specialinvoke r0.<Animal: void <init>()>();
        return;
    }

    public void speak()
    {
        Cat r0;

        r0 := @this: Cat;
        return;
    }
}
"""


# ── Helpers ──────────────────────────────────────────────────────

def var(program: Program, method: str, name: str) -> Var:
    """Look up local ``name`` of ``method`` (signature or ``Class.method``)."""
    found = program.method_by_signature(method)
    assert found is not None and found.ir is not None, f"no body for {method}"
    return found.ir.vars[name]


def types_of(objects) -> set[str]:
    return {o.type for o in objects}


def only(objects) -> AbstractObject:
    objects = list(objects)
    assert len(objects) == 1, objects
    return objects[0]


def analyze(text: str, entry: str | None = None) -> tuple[Program, PointerAnalysisResult]:
    program = parse_jimple(text)
    return program, compute_pointer_analysis(program, entry=entry)


@pytest.fixture
def field_alias():
    return analyze(FIELD_ALIAS)


@pytest.fixture
def static_identity():
    return analyze(STATIC_IDENTITY)


@pytest.fixture
def animals():
    return analyze(ANIMALS)
