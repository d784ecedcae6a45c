from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from ..errors import EntryMethodError


@dataclass(frozen=True)
class Var:
    """A local variable of one method.

    Variables are identified by the signature of their method and their name, so
    two references to ``r0`` inside the same method body are the same variable.
    """

    method: str
    name: str
    type: str = field(default="java.lang.Object", compare=False)

    def __str__(self) -> str:
        return f"{self.method}/{self.name}"


@dataclass(frozen=True)
class FieldRef:
    """Unresolved field reference as written in a statement (``<A: B f>``)."""

    declaring_class: str
    name: str
    type: str

    def __str__(self) -> str:
        return f"<{self.declaring_class}: {self.type} {self.name}>"


@dataclass(frozen=True)
class JField:
    declaring_class: str
    name: str
    type: str = field(compare=False)
    is_static: bool = field(default=False, compare=False)

    def __str__(self) -> str:
        return f"<{self.declaring_class}: {self.type} {self.name}>"


@dataclass(frozen=True)
class MethodRef:
    """Unresolved method reference as written in a call site."""

    declaring_class: str
    name: str
    param_types: tuple[str, ...]
    return_type: str

    @property
    def subsignature(self) -> str:
        return f"{self.return_type} {self.name}({','.join(self.param_types)})"

    @property
    def signature(self) -> str:
        return f"<{self.declaring_class}: {self.subsignature}>"

    def __str__(self) -> str:
        return self.signature


class InvokeKind(Enum):
    STATIC = "staticinvoke"
    SPECIAL = "specialinvoke"
    VIRTUAL = "virtualinvoke"
    INTERFACE = "interfaceinvoke"
    DYNAMIC = "dynamicinvoke"


class Stmt:
    """Base of the statement variants.

    ``index``, ``line_number`` and ``container`` are filled in by whoever builds
    the method body. Statements compare by identity: two textually equal
    statements at different places are different allocation sites / call sites.
    """

    index: int = -1
    line_number: int = -1
    container: JMethod | None = None

    def location(self) -> str:
        method = self.container.signature if self.container is not None else "?"
        return f"{method}[{self.index}@L{self.line_number}]"


@dataclass(eq=False)
class New(Stmt):
    """``x = new T`` (also ``newarray`` / ``newmultiarray``)."""

    lvalue: Var
    type: str

    def __str__(self) -> str:
        return f"{self.lvalue.name} = new {self.type}"


@dataclass(eq=False)
class Copy(Stmt):
    lvalue: Var
    rvalue: Var

    def __str__(self) -> str:
        return f"{self.lvalue.name} = {self.rvalue.name}"


@dataclass(eq=False)
class LoadField(Stmt):
    """``x = y.f``, or ``x = C.f`` when ``base`` is None."""

    lvalue: Var
    base: Var | None
    field: FieldRef

    @property
    def is_static(self) -> bool:
        return self.base is None

    def __str__(self) -> str:
        owner = self.base.name if self.base is not None else self.field.declaring_class
        return f"{self.lvalue.name} = {owner}.{self.field.name}"


@dataclass(eq=False)
class StoreField(Stmt):
    """``y.f = x``, or ``C.f = x`` when ``base`` is None."""

    base: Var | None
    field: FieldRef
    rvalue: Var

    @property
    def is_static(self) -> bool:
        return self.base is None

    def __str__(self) -> str:
        owner = self.base.name if self.base is not None else self.field.declaring_class
        return f"{owner}.{self.field.name} = {self.rvalue.name}"


@dataclass(eq=False)
class LoadArray(Stmt):
    """``x = y[i]``; the index is not tracked."""

    lvalue: Var
    base: Var

    def __str__(self) -> str:
        return f"{self.lvalue.name} = {self.base.name}[*]"


@dataclass(eq=False)
class StoreArray(Stmt):
    """``y[i] = x``; the index is not tracked."""

    base: Var
    rvalue: Var

    def __str__(self) -> str:
        return f"{self.base.name}[*] = {self.rvalue.name}"


@dataclass(eq=False)
class Invoke(Stmt):
    """A call site.

    ``args`` keeps one entry per actual argument; constant arguments (``null``,
    literals) are ``None`` so that argument positions match the callee's formal
    parameters.
    """

    kind: InvokeKind
    method_ref: MethodRef
    receiver: Var | None = None
    args: tuple[Var | None, ...] = ()
    result: Var | None = None

    @property
    def is_static(self) -> bool:
        return self.kind is InvokeKind.STATIC

    @property
    def is_special(self) -> bool:
        return self.kind is InvokeKind.SPECIAL

    @property
    def is_instance(self) -> bool:
        return self.receiver is not None

    def __str__(self) -> str:
        args = ", ".join(a.name if a is not None else "_" for a in self.args)
        base = f"{self.receiver.name}." if self.receiver is not None else ""
        call = f"{self.kind.value} {base}{self.method_ref}({args})"
        if self.result is not None:
            return f"{self.result.name} = {call}"
        return call


@dataclass(eq=False)
class Return(Stmt):
    value: Var | None = None

    def __str__(self) -> str:
        return "return" if self.value is None else f"return {self.value.name}"


@dataclass(eq=False)
class Nop(Stmt):
    """Any statement without pointer semantics (branches, arithmetic, ...)."""

    text: str = ""

    def __str__(self) -> str:
        return self.text or "nop"


@dataclass
class MethodIR:
    """Body of a concrete method."""

    params: tuple[Var, ...]
    this: Var | None
    return_var: Var | None
    statements: list[Stmt]
    vars: dict[str, Var] = field(default_factory=dict)

    def __iter__(self) -> Iterator[Stmt]:
        return iter(self.statements)


@dataclass(eq=False)
class JMethod:
    declaring_class: str
    name: str
    param_types: tuple[str, ...]
    return_type: str
    modifiers: frozenset[str] = frozenset()
    ir: MethodIR | None = None

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def is_abstract(self) -> bool:
        return "abstract" in self.modifiers

    @property
    def subsignature(self) -> str:
        return f"{self.return_type} {self.name}({','.join(self.param_types)})"

    @property
    def signature(self) -> str:
        return f"<{self.declaring_class}: {self.subsignature}>"

    def attach(self, ir: MethodIR) -> None:
        """Install ``ir`` as this method's body and number its statements."""
        for index, stmt in enumerate(ir.statements):
            stmt.index = index
            stmt.container = self
        self.ir = ir

    def __str__(self) -> str:
        return self.signature

    def __repr__(self) -> str:
        return f"JMethod({self.signature})"


@dataclass
class JClass:
    name: str
    superclass: str | None = None
    interfaces: tuple[str, ...] = ()
    modifiers: frozenset[str] = frozenset()
    fields: dict[str, JField] = field(default_factory=dict)
    methods: dict[str, JMethod] = field(default_factory=dict)

    @property
    def is_interface(self) -> bool:
        return "interface" in self.modifiers

    @property
    def is_abstract(self) -> bool:
        return "abstract" in self.modifiers or self.is_interface

    def add_method(self, method: JMethod) -> None:
        self.methods[method.subsignature] = method

    def add_field(self, jfield: JField) -> None:
        self.fields[jfield.name] = jfield

    def declared_method(self, subsignature: str) -> JMethod | None:
        return self.methods.get(subsignature)


MAIN_SUBSIGNATURE = "void main(java.lang.String[])"


@dataclass
class Program:
    """Program container: every class read by the front end."""

    classes: dict[str, JClass] = field(default_factory=dict)
    language: str = "jimple"
    source: str | None = None

    def add_class(self, jclass: JClass) -> None:
        self.classes[jclass.name] = jclass

    def get_class(self, name: str) -> JClass | None:
        return self.classes.get(name)

    def __iter__(self) -> Iterator[JClass]:
        return iter(self.classes.values())

    def methods(self) -> Iterable[JMethod]:
        for jclass in self.classes.values():
            yield from jclass.methods.values()

    def method_by_signature(self, signature: str) -> JMethod | None:
        """Find a method by ``<C: T m(P)>`` signature or by ``C.m`` shorthand.

        The shorthand must name exactly one method; overloads raise
        :class:`EntryMethodError`.
        """
        for method in self.methods():
            if method.signature == signature:
                return method
        if "." in signature and not signature.startswith("<"):
            class_name, _, method_name = signature.rpartition(".")
            jclass = self.classes.get(class_name)
            if jclass is not None:
                candidates = [m for m in jclass.methods.values() if m.name == method_name]
                if len(candidates) > 1:
                    raise EntryMethodError(
                        f"{signature} is ambiguous: "
                        + ", ".join(m.signature for m in candidates)
                    )
                if candidates:
                    return candidates[0]
        return None

    def main_method(self) -> JMethod | None:
        for method in self.methods():
            if method.is_static and method.subsignature == MAIN_SUBSIGNATURE:
                return method
        return None
