from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from ptanalyzer.analysis.cha import build_cha_call_graph
from ptanalyzer.analysis.pointer_analysis import compute_pointer_analysis, resolve_entry
from ptanalyzer.config import ALGORITHMS, AnalysisConfig, configure_logging
from ptanalyzer.errors import AnalysisError, JimpleSyntaxError
from ptanalyzer.intermediate_representation.ast import Program
from ptanalyzer.parsing.java_soot import build_ir_with_soot
from ptanalyzer.parsing.jimple import parse_jimple
from ptanalyzer.reporting.dot import render_call_graph_dot, render_pfg_dot
from ptanalyzer.reporting.text import render_call_graph_text, render_text_report, result_to_dict

logger = logging.getLogger("ptanalyzer.cli")

FORMATS = ("text", "dot", "pfg-dot", "json")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Static Pointer Analyzer CLI"
    )

    parser.add_argument(
        "--file",
        required=True,
        help="Path to the input program (Jimple text or Java source)"
    )

    parser.add_argument(
        "--lang",
        default="jimple",
        choices=["jimple", "java"],
        help="Input language; Java goes through javac and Soot"
    )

    parser.add_argument(
        "--algorithm",
        default="pta",
        choices=ALGORITHMS,
        help="pta: on-the-fly pointer analysis, cha: class hierarchy analysis"
    )

    parser.add_argument(
        "--entry",
        default=None,
        help="Entry method signature or Class.method (default: main)"
    )

    parser.add_argument(
        "--format",
        default="text",
        choices=FORMATS,
        help="Report format"
    )

    parser.add_argument(
        "--output",
        default=None,
        help="Write the report to this file instead of stdout"
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ...)"
    )
    return parser


def load_program(path: Path, lang: str) -> Program:
    source = path.read_text(encoding="utf-8")
    if lang == "java":
        return build_ir_with_soot(source)
    return parse_jimple(source, source=str(path))


def run(config: AnalysisConfig, program: Program, fmt: str) -> str:
    if config.algorithm == "cha":
        call_graph = build_cha_call_graph(program, resolve_entry(program, config.entry))
        if fmt == "dot":
            return render_call_graph_dot(call_graph)
        if fmt != "text":
            raise AnalysisError(f"format {fmt!r} needs the pointer analysis")
        return render_call_graph_text(call_graph) + "\n"

    result = compute_pointer_analysis(program, entry=config.entry)
    if fmt == "dot":
        return render_call_graph_dot(result.call_graph)
    if fmt == "pfg-dot":
        return render_pfg_dot(result)
    if fmt == "json":
        return json.dumps(result_to_dict(result), indent=2) + "\n"
    return render_text_report(result)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = AnalysisConfig.from_args(args)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    configure_logging(config.log_level)

    try:
        program = load_program(Path(args.file), args.lang)
        report = run(config, program, args.format)
    except (OSError, JimpleSyntaxError, AnalysisError, RuntimeError) as e:
        logger.debug("analysis failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.output:
        Path(args.output).write_text(report, encoding="utf-8")
    else:
        sys.stdout.write(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
