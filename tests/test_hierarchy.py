# tests/test_hierarchy.py
"""Tests for class hierarchy queries, method resolution and dispatch."""

import pytest

from ptanalyzer.errors import DispatchError
from ptanalyzer.intermediate_representation.ast import FieldRef, Invoke, InvokeKind, MethodRef, Var
from ptanalyzer.intermediate_representation.hierarchy import ClassHierarchy
from ptanalyzer.parsing.jimple import parse_jimple
from tests.conftest import ANIMALS

SHAPES = """
public interface Shape
{
    public abstract void draw();
}

public interface Named extends Shape
{
    public java.lang.String name()
    {
        Named r0;

        r0 := @this: Named;
        return null;
    }
}

public abstract class Base extends java.lang.Object implements Named
{
    java.lang.Object tag;

    public void draw()
    {
        Base r0;

        r0 := @this: Base;
        return;
    }
}

public class Square extends Base
{
}

public class Circle extends Base
{
    public void draw()
    {
        Circle r0;

        r0 := @this: Circle;
        return;
    }
}
"""


def _virtual(cls, name, params=(), ret="void", kind=InvokeKind.VIRTUAL):
    return Invoke(kind, MethodRef(cls, name, tuple(params), ret), receiver=Var("m", "r"))


@pytest.fixture
def shapes():
    return ClassHierarchy(parse_jimple(SHAPES))


class TestStructure:

    def test_direct_subtypes(self, shapes):
        assert {c.name for c in shapes.direct_subclasses_of("Base")} == {"Square", "Circle"}
        assert [c.name for c in shapes.direct_subinterfaces_of("Shape")] == ["Named"]
        assert [c.name for c in shapes.direct_implementors_of("Named")] == ["Base"]
        assert shapes.direct_implementors_of("Shape") == []

    def test_phantom_classes(self, shapes):
        assert shapes.is_phantom("java.lang.Object")
        assert not shapes.is_phantom("Base")
        assert shapes.superclass_of("Base") is None
        assert shapes.superclass_of("Square").name == "Base"

    def test_is_subclass(self, shapes):
        assert shapes.is_subclass("Square", "Base")
        assert shapes.is_subclass("Square", "Shape")
        assert shapes.is_subclass("Square", "Square")
        assert shapes.is_subclass("Circle", "java.lang.Object")
        assert not shapes.is_subclass("Base", "Square")


class TestResolution:

    def test_resolve_method_walks_superclasses(self, shapes):
        method = shapes.resolve_method(MethodRef("Square", "draw", (), "void"))
        assert method.signature == "<Base: void draw()>"

    def test_resolve_method_falls_back_to_interfaces(self, shapes):
        method = shapes.resolve_method(MethodRef("Square", "name", (), "java.lang.String"))
        assert method.signature == "<Named: java.lang.String name()>"

    def test_resolve_method_on_phantom(self, shapes):
        assert shapes.resolve_method(MethodRef("java.lang.Object", "<init>", (), "void")) is None

    def test_resolve_field_inherited(self, shapes):
        field = shapes.resolve_field(FieldRef("Square", "tag", "java.lang.Object"))
        assert field.declaring_class == "Base"
        assert field is shapes.get_class("Base").fields["tag"]

    def test_resolve_field_phantom_is_interned(self, shapes):
        ref = FieldRef("java.lang.System", "out", "java.io.PrintStream")
        first = shapes.resolve_field(ref)
        assert first.declaring_class == "java.lang.System"
        assert shapes.resolve_field(ref) is first


class TestDispatch:

    def test_inherited_implementation(self, shapes):
        assert shapes.dispatch("Square", "void draw()").signature == "<Base: void draw()>"

    def test_override(self, shapes):
        assert shapes.dispatch("Circle", "void draw()").signature == "<Circle: void draw()>"

    def test_interface_default(self, shapes):
        method = shapes.dispatch("Circle", "java.lang.String name()")
        assert method.signature == "<Named: java.lang.String name()>"

    def test_abstract_is_skipped(self):
        hierarchy = ClassHierarchy(parse_jimple(ANIMALS))
        assert hierarchy.dispatch("Animal", "void speak()") is None
        assert hierarchy.dispatch("Dog", "void speak()").signature == "<Dog: void speak()>"

    def test_resolve_callee_static_ignores_receiver_type(self, shapes):
        call = Invoke(InvokeKind.SPECIAL, MethodRef("Base", "draw", (), "void"), receiver=Var("m", "r"))
        assert shapes.resolve_callee("Circle", call).signature == "<Base: void draw()>"

    def test_resolve_callee_virtual(self, shapes):
        call = _virtual("Shape", "draw", kind=InvokeKind.INTERFACE)
        assert shapes.resolve_callee("Circle", call).signature == "<Circle: void draw()>"
        assert shapes.resolve_callee(None, call) is None

    def test_phantom_chain_is_skipped(self, shapes):
        call = _virtual("Base", "hashCode", ret="int")
        assert shapes.resolve_callee("Square", call) is None

    def test_closed_chain_raises(self):
        program = parse_jimple(
            "public class java.lang.Object\n{\n}\n"
            "public class A extends java.lang.Object\n{\n}\n"
        )
        hierarchy = ClassHierarchy(program)
        with pytest.raises(DispatchError) as excinfo:
            hierarchy.resolve_callee("A", _virtual("A", "missing"))
        assert excinfo.value.receiver_type == "A"
        assert excinfo.value.subsignature == "void missing()"

    def test_array_receiver_uses_object_methods(self, shapes):
        call = _virtual("java.lang.Object", "hashCode", ret="int")
        assert shapes.resolve_callee("Base[]", call) is None

        program = parse_jimple(
            "public class java.lang.Object\n{\n"
            "    public native int hashCode();\n"
            "    public java.lang.String toString()\n    {\n        return null;\n    }\n"
            "}\n"
        )
        hierarchy = ClassHierarchy(program)
        to_string = _virtual("java.lang.Object", "toString", ret="java.lang.String")
        assert hierarchy.resolve_callee("int[][]", to_string).signature == (
            "<java.lang.Object: java.lang.String toString()>"
        )


class TestChaTargets:

    def test_virtual_targets_cover_subclasses(self, shapes):
        targets = shapes.cha_targets(_virtual("Base", "draw"))
        assert {m.signature for m in targets} == {"<Base: void draw()>", "<Circle: void draw()>"}

    def test_interface_targets_cover_implementors(self, shapes):
        targets = shapes.cha_targets(_virtual("Shape", "draw", kind=InvokeKind.INTERFACE))
        assert {m.signature for m in targets} == {"<Base: void draw()>", "<Circle: void draw()>"}

    def test_static_target(self, shapes):
        call = Invoke(InvokeKind.STATIC, MethodRef("Base", "draw", (), "void"))
        assert [m.signature for m in shapes.cha_targets(call)] == ["<Base: void draw()>"]
