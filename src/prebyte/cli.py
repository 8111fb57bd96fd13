"""Command-line interface.

    prebyte [INPUT] [-o OUTPUT] [-s SETTINGS] [-p PROFILE | -PPROFILE]...
            [-d NAME=VALUE | -DNAME=VALUE]... [-i TOKEN]... [-r RULE=VALUE]...

Reads INPUT (stdin when omitted), expands it and writes the result to
OUTPUT (stdout when omitted).  Exits with status 1 on any fatal error.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
import tracemalloc
from collections.abc import Sequence

from prebyte._version import __version__
from prebyte.api import Prebyte
from prebyte.engine import PreprocessError
from prebyte.model.rules import Benchmark
from prebyte.settings import apply_rule, find_settings_file

logger = logging.getLogger(__name__)

_LOG_OFF = logging.CRITICAL + 1

EXPLAIN_TEXT = """\
Prebyte expands action tokens written between the variable prefix and
suffix (both '%%' by default).  A token that starts with '%%#' is a line
directive: it runs to the end of the line and needs no closing suffix.

Variables
  %%name%%                  first value of a variable
  %%name[1]%%               value at an index (empty when out of range)
  %%$HOME%%                 environment variable (rule allow_env)
  %%__DATE__%%              built-ins: __DATE__ __TIME__ __DATETIME__ __YEAR__
                            __MONTH__ __DAY__ __HOUR__ __MINUTE__ __SECOND__
                            __UNIXTIMESTAMP__ __USER__ __HOST__ __PWD__
                            __VERSION__ __FILE__ __FILE_NAME__ __FILE_PATH__
                            __FILE_EXT__ __FILE_SIZE__ __FILE_CREATED__ __LINE__

Directives
  set var NAME=VALUE        bind a variable (NAME=[a,b] binds a list)
  unset var NAME            remove a variable
  set rule NAME=VALUE       change a rule for the rest of the document
  set profile NAME          apply a profile's variables, ignores and rules
  set ignore TOKEN          expand TOKEN to nothing
  unset ignore TOKEN
  if COND / elif COND / else / endif
                            COND supports == != && || ! ( ) and "literals";
                            a bare NAME is true when it is defined
  for VAR in LIST ... endfor
  define macro NAME ... enddef
  exec NAME ARGS...         ARGS are "quoted", NAME, NAME[i] or NAME# (count);
                            the body reads them as ARGS[0], ARGS[1], ...
  define profile NAME [FORMAT] ... enddef
                            FORMAT: json, yaml (default), toml, ini, env, csv
  include PATH              expand another file in place
"""


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="prebyte",
        formatter_class=argparse.RawTextHelpFormatter,
        description=(
            "Prebyte - text preprocessor with variables, conditionals, loops,\n"
            "macros, profiles and includes.\n"
            "If no input file is given, input is read from standard input."
        ),
    )
    p.add_argument("input", nargs="?", metavar="INPUT", help="file to process (default: stdin)")
    p.add_argument("-o", "--output", metavar="FILE", help="write output to FILE (default: stdout)")

    g_ctx = p.add_argument_group("Context")
    g_ctx.add_argument(
        "-s", "--settings", metavar="FILE",
        help="settings file (default: ~/.prebyte/settings.{json,yaml,yml,toml})",
    )
    g_ctx.add_argument(
        "-p", "-P", "--profile", metavar="NAME", action="append", dest="profiles", default=[],
        help="apply a profile from the settings (repeatable, also -PNAME)",
    )
    g_ctx.add_argument(
        "-d", "-D", "--define", metavar="NAME=VALUE", action="append", dest="defines", default=[],
        help=(
            "define a variable (repeatable, also -DNAME=VALUE); NAME=[a,b] defines\n"
            "a list, a bare path loads every top-level key of that file"
        ),
    )
    g_ctx.add_argument(
        "-i", "--ignore", metavar="TOKEN", action="append", dest="ignores", default=[],
        help="expand TOKEN to nothing (repeatable)",
    )
    g_ctx.add_argument(
        "-r", "--rule", metavar="NAME=VALUE", action="append", dest="rules", default=[],
        help="override a rule (repeatable)",
    )

    g_info = p.add_argument_group("Information")
    g_info.add_argument(
        "-v", "--version", action="version", version=f"Prebyte Version: {__version__}",
    )
    g_info.add_argument("-e", "--explain", action="store_true", help="print a syntax reference")
    g_info.add_argument(
        "-lsr", "--list-rules", action="store_true", dest="list_rules",
        help="list the rules in effect",
    )
    g_info.add_argument(
        "-lsv", "--list-variables", action="store_true", dest="list_variables",
        help="list the defined variables",
    )

    g_log = p.add_argument_group("Logging")
    g_log.set_defaults(log_level=logging.WARNING)
    for flags, level in (
        (("--trace",), logging.DEBUG),
        (("--debug", "-X"), logging.DEBUG),
        (("--info",), logging.INFO),
        (("--warn", "--warning"), logging.WARNING),
        (("--error", "--err"), logging.ERROR),
        (("--off",), _LOG_OFF),
    ):
        g_log.add_argument(
            *flags, action="store_const", const=level, dest="log_level",
            help=f"log level {logging.getLevelName(level) if level != _LOG_OFF else 'OFF'}",
        )
    return p


def _configure(pb: Prebyte, ns: argparse.Namespace) -> None:
    """Load settings, then profiles, defines, ignores and rules, in that order."""
    settings = ns.settings or find_settings_file()
    if settings is not None:
        pb.load_settings(settings)
    for name in ns.profiles:
        pb.set_profile(name)
    for entry in ns.defines:
        pb.define(entry)
    for token in ns.ignores:
        pb.set_ignore(token)
    for entry in ns.rules:
        apply_rule(pb.state, entry)


def _report_benchmark(pb: Prebyte, elapsed: float, tracing: bool) -> None:
    mode = pb.last_state.rules.benchmark if pb.last_state is not None else pb.state.rules.benchmark
    if mode is Benchmark.NONE:
        return
    if mode in (Benchmark.TIME, Benchmark.ALL):
        print(f"Execution time: {elapsed * 1000:.3f} ms", file=sys.stderr)
        print(f"Includes processed: {pb.include_count}", file=sys.stderr)
    if mode in (Benchmark.MEMORY, Benchmark.ALL) and tracing:
        _, peak = tracemalloc.get_traced_memory()
        print(f"Peak memory: {peak / 1024:.1f} KiB", file=sys.stderr)


def main(argv: Sequence[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    logging.basicConfig(level=ns.log_level, format="%(levelname)s: %(message)s")

    if ns.explain:
        sys.stdout.write(EXPLAIN_TEXT)
        return 0

    pb = Prebyte()
    try:
        _configure(pb, ns)
        if ns.list_rules:
            print(pb.list_rules())
            return 0
        if ns.list_variables:
            print(pb.list_variables())
            return 0

        tracing = pb.state.rules.benchmark in (Benchmark.MEMORY, Benchmark.ALL)
        if tracing:
            tracemalloc.start()
        start = time.perf_counter()
        try:
            if ns.input is not None:
                result = pb.process_file(ns.input, ns.output)
            else:
                result = pb.process(sys.stdin.read(), ns.output)
            elapsed = time.perf_counter() - start
            _report_benchmark(pb, elapsed, tracing)
        finally:
            if tracing:
                tracemalloc.stop()
    except PreprocessError as exc:
        logger.error("%s", exc)
        return 1

    if ns.output is None:
        sys.stdout.write(result)
    return 0
