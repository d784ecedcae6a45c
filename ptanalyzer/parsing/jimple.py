from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from ..errors import JimpleSyntaxError
from ..intermediate_representation.ast import (
    Copy,
    FieldRef,
    Invoke,
    InvokeKind,
    JClass,
    JField,
    JMethod,
    LoadArray,
    LoadField,
    MethodIR,
    MethodRef,
    New,
    Nop,
    Program,
    Return,
    Stmt,
    StoreArray,
    StoreField,
    Var,
)

_IDENT_RE = re.compile(r"^'?[A-Za-z_$][\w$#]*'?$")
_LOCAL_DECL_RE = re.compile(r"^([\w.$\[\]']+)\s+('?[\w$#]+'?(?:\s*,\s*'?[\w$#]+'?)*)$")
_IDENTITY_RE = re.compile(
    r"^(?P<lhs>\S+)\s*:=\s*@(?P<what>this|parameter(?P<n>\d+)|caughtexception)"
    r"(?::\s*(?P<type>\S+))?$"
)
_METHOD_SIG_RE = re.compile(
    r"^(?P<cls>[^:]+):\s+(?P<ret>\S+)\s+(?P<name>[^\s(]+)\((?P<params>[^)]*)\)$"
)
_FIELD_SIG_RE = re.compile(r"^(?P<cls>[^:]+):\s+(?P<type>\S+)\s+(?P<name>\S+)$")
_CAST_RE = re.compile(r"^\((?P<type>[^)]+)\)\s*(?P<operand>\S+)$")
_ARRAY_RE = re.compile(r"^(?P<base>'?[\w$#]+'?)\[(?P<index>[^\]]*)\]$")
_NEWARRAY_RE = re.compile(r"^newarray\s*\((?P<type>[^)]+)\)\s*\[.*\]$")
_NEWMULTIARRAY_RE = re.compile(r"^newmultiarray\s*\((?P<type>[^)]+)\)\s*(?P<dims>(?:\[[^\]]*\])+)$")

_INVOKE_KEYWORDS = {kind.value: kind for kind in InvokeKind}

# Soot's placeholder owner for invokedynamic call sites
DYNAMIC_CLASS = "soot.dummy.InvokeDynamic"

_STMT_KEYWORDS = {
    "return",
    "goto",
    "throw",
    "entermonitor",
    "exitmonitor",
    "nop",
    "breakpoint",
    "ret",
    "if",
    "catch",
    *_INVOKE_KEYWORDS,
}

_NON_POINTER_PREFIXES = ("if ", "goto ", "throw ", "entermonitor ", "exitmonitor ")


def _unquote(name: str) -> str:
    if len(name) >= 2 and name[0] == name[-1] == "'":
        return name[1:-1]
    return name


def _strip_comments(text: str) -> list[str]:
    text = re.sub(r"/\*.*?\*/", lambda m: "\n" * m.group(0).count("\n"), text, flags=re.S)
    lines = []
    for raw in text.splitlines():
        # string constants may contain "//"; only cut comments outside quotes
        in_string = False
        cut = len(raw)
        i = 0
        while i < len(raw) - 1:
            ch = raw[i]
            if ch == "\\" and in_string:
                i += 2
                continue
            if ch == '"':
                in_string = not in_string
            elif not in_string and raw.startswith("//", i):
                cut = i
                break
            i += 1
        lines.append(raw[:cut].strip())
    return lines


def _match_angle(text: str, start: int) -> int:
    """Index just past the ``>`` closing the ``<`` at ``start``."""
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "<":
            depth += 1
        elif text[i] == ">":
            depth -= 1
            if depth == 0:
                return i + 1
    raise ValueError(f"unbalanced signature in {text!r}")


def _match_paren(text: str, start: int) -> int:
    """Index just past the ``)`` closing the ``(`` at ``start``; skips strings."""
    depth = 0
    in_string = False
    i = start
    while i < len(text):
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 1
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    raise ValueError(f"unbalanced parentheses in {text!r}")


def _split_args(text: str) -> list[str]:
    args: list[str] = []
    current: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
            current.append(ch)
        elif ch == ",":
            args.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    tail = "".join(current).strip()
    if tail or args:
        args.append(tail)
    return args


def _split_types(text: str) -> tuple[str, ...]:
    return tuple(t.strip() for t in text.split(",") if t.strip())


def parse_method_ref(signature: str) -> MethodRef:
    """Parse ``<A: B foo(C,D)>``."""
    m = _METHOD_SIG_RE.match(signature[1:-1].strip())
    if m is None:
        raise ValueError(f"bad method signature {signature!r}")
    return MethodRef(
        declaring_class=_unquote(m.group("cls").strip()),
        name=_unquote(m.group("name")),
        param_types=_split_types(m.group("params")),
        return_type=m.group("ret"),
    )


def parse_field_ref(signature: str) -> FieldRef:
    """Parse ``<A: B f>``."""
    m = _FIELD_SIG_RE.match(signature[1:-1].strip())
    if m is None:
        raise ValueError(f"bad field signature {signature!r}")
    return FieldRef(
        declaring_class=_unquote(m.group("cls").strip()),
        name=_unquote(m.group("name")),
        type=m.group("type"),
    )


class _MethodBuilder:
    """Collects the body of one method while its lines are read."""

    def __init__(self, method: JMethod) -> None:
        self.method = method
        self.local_types: dict[str, str] = {}
        self.vars: dict[str, Var] = {}
        self.params: dict[int, Var] = {}
        self.this: Var | None = None
        self.statements: list[Stmt] = []

    def var(self, name: str) -> Var:
        name = _unquote(name)
        var = self.vars.get(name)
        if var is None:
            var = Var(self.method.signature, name, self.local_types.get(name, "java.lang.Object"))
            self.vars[name] = var
        return var

    def is_local(self, token: str) -> bool:
        return token != "null" and _IDENT_RE.match(token) is not None

    def local_or_none(self, token: str) -> Var | None:
        return self.var(token) if self.is_local(token) else None

    def add(self, stmt: Stmt, line_number: int) -> None:
        stmt.line_number = line_number
        self.statements.append(stmt)

    def build(self) -> MethodIR:
        method = self.method
        params = []
        for i, ptype in enumerate(method.param_types):
            param = self.params.get(i)
            if param is None:
                param = Var(method.signature, f"@parameter{i}", ptype)
                self.vars[param.name] = param
            params.append(param)
        this = self.this
        if this is None and not method.is_static:
            this = Var(method.signature, "@this", method.declaring_class)
            self.vars[this.name] = this
        return_var = None
        if method.return_type != "void":
            returned = {
                s.value: None
                for s in self.statements
                if isinstance(s, Return) and s.value is not None
            }
            if len(returned) == 1:
                return_var = next(iter(returned))
            elif len(returned) > 1:
                return_var = Var(method.signature, "@return", method.return_type)
                self.vars[return_var.name] = return_var
        return MethodIR(
            params=tuple(params),
            this=this,
            return_var=return_var,
            statements=self.statements,
            vars=dict(self.vars),
        )


class _JimpleParser:
    def __init__(self, program: Program) -> None:
        self.program = program
        self.jclass: JClass | None = None
        self.body: _MethodBuilder | None = None
        self.expect_open: str | None = None
        self.line_number = 0

    def error(self, message: str) -> JimpleSyntaxError:
        return JimpleSyntaxError(message, self.line_number)

    def parse(self, text: str) -> None:
        lines = _strip_comments(text)
        i = 0
        while i < len(lines):
            line = lines[i]
            i += 1
            self.line_number = i
            if not line:
                continue
            if self.expect_open is not None:
                if line != "{":
                    raise self.error(f"expected '{{' to open {self.expect_open}")
                self.expect_open = None
                continue
            if self.body is not None:
                if line.startswith(("lookupswitch", "tableswitch")):
                    start = i
                    while i < len(lines) and lines[i] not in ("};", "}"):
                        i += 1
                    if i >= len(lines):
                        self.line_number = start
                        raise self.error("unterminated switch")
                    i += 1
                    self.body.add(Nop(text=line), start)
                    continue
                self.method_line(line)
            elif self.jclass is not None:
                self.class_line(line)
            else:
                self.header_line(line)
        if self.body is not None or self.jclass is not None:
            raise JimpleSyntaxError("unexpected end of input", self.line_number)

    def header_line(self, line: str) -> None:
        opens = line.endswith("{")
        if opens:
            line = line[:-1].strip()
        tokens = line.replace(",", " , ").split()
        kind_index = next(
            (k for k, t in enumerate(tokens) if t in ("class", "interface", "enum")), None
        )
        if kind_index is None or kind_index + 1 >= len(tokens):
            raise self.error(f"expected a class declaration, got {line!r}")
        modifiers = set(tokens[:kind_index])
        if tokens[kind_index] != "class":
            modifiers.add(tokens[kind_index])
        name = _unquote(tokens[kind_index + 1])
        superclass: str | None = None
        interfaces: list[str] = []
        clause = None
        for token in tokens[kind_index + 2:]:
            if token in ("extends", "implements"):
                clause = token
            elif token == ",":
                continue
            elif clause == "extends" and "interface" not in modifiers:
                superclass = _unquote(token)
            elif clause is not None:
                interfaces.append(_unquote(token))
            else:
                raise self.error(f"unexpected {token!r} in class header")
        if superclass is None and "interface" not in modifiers and name != "java.lang.Object":
            superclass = "java.lang.Object"
        self.jclass = JClass(
            name=name,
            superclass=superclass,
            interfaces=tuple(interfaces),
            modifiers=frozenset(modifiers),
        )
        self.program.add_class(self.jclass)
        if not opens:
            self.expect_open = f"class {name}"

    def class_line(self, line: str) -> None:
        assert self.jclass is not None
        if line == "}":
            self.jclass = None
            return
        if "(" in line:
            self.method_header(line)
            return
        if not line.endswith(";"):
            raise self.error(f"expected a member declaration, got {line!r}")
        tokens = line[:-1].split()
        if len(tokens) < 2:
            raise self.error(f"bad field declaration {line!r}")
        modifiers = frozenset(tokens[:-2])
        self.jclass.add_field(
            JField(
                declaring_class=self.jclass.name,
                name=_unquote(tokens[-1]),
                type=tokens[-2],
                is_static="static" in modifiers,
            )
        )

    def method_header(self, line: str) -> None:
        assert self.jclass is not None
        ends_decl = line.endswith(";")
        opens = line.endswith("{")
        if ends_decl or opens:
            line = line[:-1].strip()
        paren = line.index("(")
        close = line.index(")", paren)
        head = line[:paren].split()
        if len(head) < 2:
            raise self.error(f"bad method header {line!r}")
        method = JMethod(
            declaring_class=self.jclass.name,
            name=_unquote(head[-1]),
            param_types=_split_types(line[paren + 1:close]),
            return_type=head[-2],
            modifiers=frozenset(head[:-2]),
        )
        self.jclass.add_method(method)
        if ends_decl:
            return
        self.body = _MethodBuilder(method)
        if not opens:
            self.expect_open = f"method {method.signature}"

    def method_line(self, line: str) -> None:
        body = self.body
        assert body is not None
        if line == "}":
            body.method.attach(body.build())
            self.body = None
            return
        if line.endswith(":") and " " not in line:
            return
        if not line.endswith(";"):
            raise self.error(f"expected ';' after statement {line!r}")
        text = line[:-1].strip()
        if text.startswith("catch "):
            return
        decl = _LOCAL_DECL_RE.match(text)
        if decl is not None and decl.group(1) not in _STMT_KEYWORDS:
            for name in decl.group(2).split(","):
                body.local_types[_unquote(name.strip())] = decl.group(1)
            return
        try:
            stmt = self.statement(text)
        except ValueError as e:
            raise self.error(str(e)) from e
        body.add(stmt, self.line_number)

    def statement(self, text: str) -> Stmt:
        body = self.body
        assert body is not None
        if text == "return" or text.startswith("return "):
            return Return(body.local_or_none(text[len("return"):].strip()))
        if text in ("nop", "breakpoint") or text.startswith(_NON_POINTER_PREFIXES):
            return Nop(text=text)
        head = text.split(" ", 1)[0]
        if head in _INVOKE_KEYWORDS:
            return self.invoke(text, None)
        identity = _IDENTITY_RE.match(text)
        if identity is not None:
            var = body.var(identity.group("lhs"))
            if identity.group("what") == "this":
                body.this = var
            elif identity.group("n") is not None:
                body.params[int(identity.group("n"))] = var
            return Nop(text=text)
        if " = " not in text:
            return Nop(text=text)
        lhs, rhs = (part.strip() for part in text.split(" = ", 1))
        return self.assignment(lhs, rhs, text)

    def assignment(self, lhs: str, rhs: str, text: str) -> Stmt:
        body = self.body
        assert body is not None
        # stores
        if lhs.startswith("<"):
            value = body.local_or_none(rhs)
            if value is None:
                return Nop(text=text)
            return StoreField(None, parse_field_ref(lhs), value)
        dot = lhs.find(".<")
        if dot > 0:
            value = body.local_or_none(rhs)
            if value is None:
                return Nop(text=text)
            return StoreField(body.var(lhs[:dot]), parse_field_ref(lhs[dot + 1:]), value)
        array = _ARRAY_RE.match(lhs)
        if array is not None:
            value = body.local_or_none(rhs)
            if value is None:
                return Nop(text=text)
            return StoreArray(body.var(array.group("base")), value)
        if not body.is_local(lhs):
            raise ValueError(f"unsupported assignment target {lhs!r}")
        target = body.var(lhs)
        # loads and allocations
        if rhs.startswith("new "):
            return New(target, rhs[len("new "):].strip())
        m = _NEWARRAY_RE.match(rhs)
        if m is not None:
            return New(target, m.group("type").strip() + "[]")
        m = _NEWMULTIARRAY_RE.match(rhs)
        if m is not None:
            return New(target, m.group("type").strip() + "[]" * m.group("dims").count("["))
        if rhs.split(" ", 1)[0] in _INVOKE_KEYWORDS:
            return self.invoke(rhs, target)
        if rhs.startswith("<"):
            return LoadField(target, None, parse_field_ref(rhs))
        dot = rhs.find(".<")
        if dot > 0 and body.is_local(rhs[:dot]):
            return LoadField(target, body.var(rhs[:dot]), parse_field_ref(rhs[dot + 1:]))
        array = _ARRAY_RE.match(rhs)
        if array is not None:
            return LoadArray(target, body.var(array.group("base")))
        cast = _CAST_RE.match(rhs)
        if cast is not None:
            source = body.local_or_none(cast.group("operand"))
            return Copy(target, source) if source is not None else Nop(text=text)
        if body.is_local(rhs):
            return Copy(target, body.var(rhs))
        return Nop(text=text)

    def invoke(self, text: str, result: Var | None) -> Invoke:
        body = self.body
        assert body is not None
        keyword, _, rest = text.partition(" ")
        kind = _INVOKE_KEYWORDS[keyword]
        rest = rest.strip()
        receiver = None
        dynamic_name = ""
        if kind is InvokeKind.DYNAMIC:
            # dynamicinvoke "name" <R (P)>(args) <bootstrap>(bootstrap args)
            start = rest.index("<")
            dynamic_name = rest[:start].strip().strip('"')
            rest = rest[start:]
        elif kind is not InvokeKind.STATIC:
            dot = rest.index(".<")
            receiver = body.var(rest[:dot])
            rest = rest[dot + 1:]
        if not rest.startswith("<"):
            raise ValueError(f"expected a method signature in {text!r}")
        sig_end = _match_angle(rest, 0)
        signature = rest[:sig_end]
        if kind is InvokeKind.DYNAMIC and ":" not in signature:
            ret, _, params = signature[1:-1].partition(" ")
            signature = f"<{DYNAMIC_CLASS}: {ret} {dynamic_name or 'invokedynamic'}{params.strip()}>"
        method_ref = parse_method_ref(signature)
        args_end = _match_paren(rest, sig_end)
        args = tuple(
            body.local_or_none(arg) for arg in _split_args(rest[sig_end + 1:args_end - 1])
        )
        return Invoke(kind, method_ref, receiver=receiver, args=args, result=result)


def parse_jimple(text: str, program: Program | None = None, source: str | None = None) -> Program:
    """Parse Jimple text (one or more classes) into a :class:`Program`.

    Passing ``program`` adds the classes to an existing program, so the
    per-class files Soot writes can be read one after the other.
    """
    if program is None:
        program = Program(language="jimple", source=source)
    _JimpleParser(program).parse(text)
    return program


def parse_jimple_files(paths: Iterable[str | Path]) -> Program:
    program = Program(language="jimple")
    for path in sorted(Path(p) for p in paths):
        try:
            parse_jimple(path.read_text(encoding="utf-8", errors="replace"), program)
        except JimpleSyntaxError as e:
            raise JimpleSyntaxError(f"{path}: {e}") from e
    return program
