from __future__ import annotations

import logging
import os
import re
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ..intermediate_representation.ast import Program
from .jimple import parse_jimple_files

logger = logging.getLogger(__name__)

_TOP_LEVEL_TYPE_RE = re.compile(
    r"\bpublic\s+(?:(?:final|abstract|sealed)\s+)*(?:class|interface|enum|record)\s+(\w+)"
)
_ANY_TYPE_RE = re.compile(r"\b(?:class|interface|enum|record)\s+(\w+)")


def primary_type_name(source: str) -> str:
    """Name the compilation unit after its public type, as javac requires."""
    m = _TOP_LEVEL_TYPE_RE.search(source) or _ANY_TYPE_RE.search(source)
    return m.group(1) if m else "Main"


def _tool(jdk_home: Path, name: str) -> Path:
    return jdk_home / "bin" / (f"{name}.exe" if os.name == "nt" else name)


@dataclass(frozen=True)
class SootToolchain:
    """A JDK plus a Soot jar-with-dependencies.

    Resolved from ``SOOT_JAVA_HOME`` (or ``JAVA_HOME``) and ``SOOT_JAR``.
    """

    java: str
    javac: str
    soot_jar: str

    @classmethod
    def from_env(cls) -> SootToolchain:
        home = os.environ.get("SOOT_JAVA_HOME") or os.environ.get("JAVA_HOME")
        if not home:
            raise RuntimeError("set SOOT_JAVA_HOME or JAVA_HOME to a JDK to analyze Java sources")
        jdk = Path(home)
        if not jdk.is_dir():
            raise RuntimeError(f"JDK home {jdk} is not a directory")
        javac = _tool(jdk, "javac")
        if not javac.exists():
            raise RuntimeError(f"no javac in {jdk}; a JRE is not enough")
        java = _tool(jdk, "java")
        jar = os.environ.get("SOOT_JAR")
        if not jar or not Path(jar).is_file():
            raise RuntimeError("SOOT_JAR must name soot-*-jar-with-dependencies.jar")
        return cls(java=str(java) if java.exists() else "java", javac=str(javac), soot_jar=jar)

    def compile(self, sources: list[Path], classes_dir: Path) -> None:
        if not sources:
            raise RuntimeError("nothing to compile")
        classes_dir.mkdir(parents=True, exist_ok=True)
        # -g keeps local variable names for Soot's use-original-names
        _check_call([self.javac, "-g", "-d", str(classes_dir), *map(str, sources)], "javac")

    def to_jimple(self, classes_dir: Path, out_dir: Path) -> list[Path]:
        """Run Soot over compiled classes; one ``.jimple`` file per class."""
        out_dir.mkdir(parents=True, exist_ok=True)
        _check_call(
            [
                self.java, "-cp", self.soot_jar, "soot.Main",
                "-pp",
                "-allow-phantom-refs",
                "-keep-line-number",
                "-p", "jb", "use-original-names:true",
                "-src-prec", "class",
                "-process-dir", str(classes_dir),
                "-output-format", "jimple",
                "-output-dir", str(out_dir),
            ],
            "soot",
        )
        outputs = sorted(out_dir.rglob("*.jimple"))
        if not outputs:
            raise RuntimeError(f"soot wrote no Jimple files to {out_dir}")
        logger.info("soot produced %d Jimple files", len(outputs))
        return outputs


def _check_call(cmd: list[str], tool: str) -> None:
    logger.debug("%s: %s", tool, " ".join(cmd))
    proc = subprocess.run(cmd, capture_output=True, text=True)
    if proc.returncode != 0:
        output = "\n".join(s.strip() for s in (proc.stderr, proc.stdout) if s and s.strip())
        raise RuntimeError(f"{tool} exited with status {proc.returncode}\n{output}")


def soot_available() -> bool:
    try:
        SootToolchain.from_env()
    except RuntimeError:
        return False
    return True


def build_ir_with_soot(source: str, toolchain: SootToolchain | None = None) -> Program:
    """Compile one Java compilation unit and read back Soot's Jimple as a Program."""
    if not source.strip():
        return Program(language="java", source=source)
    if toolchain is None:
        toolchain = SootToolchain.from_env()

    with tempfile.TemporaryDirectory(prefix="ptanalyzer-") as tmp:
        work = Path(tmp)
        unit = work / "src" / f"{primary_type_name(source)}.java"
        unit.parent.mkdir()
        unit.write_text(source, encoding="utf-8")
        toolchain.compile([unit], work / "classes")
        program = parse_jimple_files(toolchain.to_jimple(work / "classes", work / "jimple"))

    program.language = "java"
    program.source = source
    return program
