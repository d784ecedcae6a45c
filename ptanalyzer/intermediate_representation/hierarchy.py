from __future__ import annotations

import logging
from collections import defaultdict

from ..errors import DispatchError
from .ast import FieldRef, Invoke, InvokeKind, JClass, JField, JMethod, MethodRef, Program

logger = logging.getLogger(__name__)

OBJECT_CLASS = "java.lang.Object"


class ClassHierarchy:
    """Subtyping relations and member resolution over the classes of a Program.

    Classes referenced but not defined by the program (library classes, unless
    they were fed to the front end) are *phantom*: lookups that walk into them
    give up instead of failing.
    """

    def __init__(self, program: Program) -> None:
        self._program = program
        self._subclasses: dict[str, list[str]] = defaultdict(list)
        self._subinterfaces: dict[str, list[str]] = defaultdict(list)
        self._implementors: dict[str, list[str]] = defaultdict(list)
        self._phantom_fields: dict[tuple[str, str], JField] = {}
        for jclass in program:
            if jclass.superclass is not None:
                self._subclasses[jclass.superclass].append(jclass.name)
            for iface in jclass.interfaces:
                if jclass.is_interface:
                    self._subinterfaces[iface].append(jclass.name)
                else:
                    self._implementors[iface].append(jclass.name)

    @property
    def program(self) -> Program:
        return self._program

    def get_class(self, name: str) -> JClass | None:
        return self._program.get_class(name)

    def is_phantom(self, name: str) -> bool:
        return self._program.get_class(name) is None

    def superclass_of(self, name: str) -> JClass | None:
        jclass = self.get_class(name)
        if jclass is None or jclass.superclass is None:
            return None
        return self.get_class(jclass.superclass)

    def direct_subclasses_of(self, name: str) -> list[JClass]:
        return self._lookup_all(self._subclasses.get(name, ()))

    def direct_subinterfaces_of(self, name: str) -> list[JClass]:
        return self._lookup_all(self._subinterfaces.get(name, ()))

    def direct_implementors_of(self, name: str) -> list[JClass]:
        return self._lookup_all(self._implementors.get(name, ()))

    def _lookup_all(self, names) -> list[JClass]:
        return [c for c in (self.get_class(n) for n in names) if c is not None]

    def is_subclass(self, sub: str, sup: str) -> bool:
        """Reflexive, transitive subtype test over classes and interfaces."""
        pending = [sub]
        seen: set[str] = set()
        while pending:
            name = pending.pop()
            if name == sup:
                return True
            if name in seen:
                continue
            seen.add(name)
            jclass = self.get_class(name)
            if jclass is None:
                continue
            if jclass.superclass is not None:
                pending.append(jclass.superclass)
            pending.extend(jclass.interfaces)
        return sup == OBJECT_CLASS

    def resolve_method(self, ref: MethodRef) -> JMethod | None:
        """Resolve a method reference the way the JVM links it.

        Walks the superclass chain from the referenced class, then its
        superinterfaces. Returns None if nothing is found.
        """
        name: str | None = ref.declaring_class
        while name is not None:
            jclass = self.get_class(name)
            if jclass is None:
                break
            method = jclass.declared_method(ref.subsignature)
            if method is not None:
                return method
            name = jclass.superclass
        return self._lookup_in_interfaces(ref.declaring_class, ref.subsignature, False)

    def resolve_field(self, ref: FieldRef) -> JField:
        name: str | None = ref.declaring_class
        while name is not None:
            jclass = self.get_class(name)
            if jclass is None:
                break
            jfield = jclass.fields.get(ref.name)
            if jfield is not None:
                return jfield
            name = jclass.superclass
        key = (ref.declaring_class, ref.name)
        jfield = self._phantom_fields.get(key)
        if jfield is None:
            jfield = JField(ref.declaring_class, ref.name, ref.type)
            self._phantom_fields[key] = jfield
        return jfield

    def dispatch(self, class_name: str, subsignature: str) -> JMethod | None:
        """Find the concrete method that a receiver of ``class_name`` runs.

        Superclasses win over interface default methods. Returns None when
        nothing concrete is found, which is expected once the class chain
        reaches a phantom class; use :meth:`resolve_callee` to tell the two
        apart.
        """
        name: str | None = class_name
        while name is not None:
            jclass = self.get_class(name)
            if jclass is None:
                break
            method = jclass.declared_method(subsignature)
            if method is not None and not method.is_abstract:
                return method
            name = jclass.superclass
        return self._lookup_in_interfaces(class_name, subsignature, True)

    def _lookup_in_interfaces(
        self, class_name: str, subsignature: str, concrete_only: bool
    ) -> JMethod | None:
        pending: list[str] = []
        name: str | None = class_name
        while name is not None:
            jclass = self.get_class(name)
            if jclass is None:
                break
            pending.extend(jclass.interfaces)
            name = jclass.superclass
        seen: set[str] = set()
        while pending:
            iface = self.get_class(pending.pop(0))
            if iface is None or iface.name in seen:
                continue
            seen.add(iface.name)
            method = iface.declared_method(subsignature)
            if method is not None and not (concrete_only and method.is_abstract):
                return method
            pending.extend(iface.interfaces)
        return None

    def _reaches_phantom(self, class_name: str) -> bool:
        name: str | None = class_name
        while name is not None:
            jclass = self.get_class(name)
            if jclass is None:
                return True
            name = jclass.superclass
        return False

    def resolve_callee(self, receiver_type: str | None, call_site: Invoke) -> JMethod | None:
        """Resolve the target of ``call_site`` for a receiver of ``receiver_type``.

        Static and special calls resolve against the method reference and ignore
        the receiver type. Instance calls dispatch on ``receiver_type``; a
        missing target is only an error when the whole class chain is known.
        """
        ref = call_site.method_ref
        if call_site.kind in (InvokeKind.STATIC, InvokeKind.SPECIAL):
            return self.resolve_method(ref)
        if receiver_type is None:
            return None
        if receiver_type.endswith("[]"):
            # arrays only inherit the methods of java.lang.Object
            receiver_type = OBJECT_CLASS
        method = self.dispatch(receiver_type, ref.subsignature)
        if method is not None:
            return method
        if self._reaches_phantom(receiver_type):
            logger.warning(
                "skipping %s on %s: class chain leaves the program",
                ref.subsignature, receiver_type,
            )
            return None
        raise DispatchError(receiver_type, ref.subsignature, call_site.location())

    def cha_targets(self, call_site: Invoke) -> list[JMethod]:
        """All possible targets of ``call_site`` under class hierarchy analysis."""
        ref = call_site.method_ref
        if call_site.kind in (InvokeKind.STATIC, InvokeKind.SPECIAL):
            method = self.resolve_method(ref)
            return [method] if method is not None else []
        targets: dict[JMethod, None] = {}
        pending = [ref.declaring_class]
        seen: set[str] = set()
        while pending:
            name = pending.pop(0)
            if name in seen:
                continue
            seen.add(name)
            jclass = self.get_class(name)
            if jclass is None:
                continue
            if not jclass.is_abstract:
                method = self.dispatch(name, ref.subsignature)
                if method is not None:
                    targets[method] = None
            if jclass.is_interface:
                pending.extend(c.name for c in self.direct_subinterfaces_of(name))
                pending.extend(c.name for c in self.direct_implementors_of(name))
            else:
                pending.extend(c.name for c in self.direct_subclasses_of(name))
        return list(targets)
