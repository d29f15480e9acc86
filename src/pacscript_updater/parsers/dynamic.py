"""
Dynamic value resolution.

Pacscript values may reference other variables (`${pkgver}`) or be computed
entirely by a function the pacscript declares (`"$(get_url)"`). References
are expanded in Python; function calls are evaluated by bash with only the
pacscript's own bindings in scope.

Trust boundary: the pacscript author is trusted, so their function bodies
are executed. Nothing that comes back from Repology is ever passed to bash
unless it first matched SAFE_VERSION_RE.
"""

import logging
import os
import re
import shlex
import subprocess
import tempfile
from fnmatch import fnmatchcase

from pacscript_updater.core.config import UpdaterConfig
from pacscript_updater.core.exceptions import DynamicEvalError
from pacscript_updater.models.pacscript import PackageDocument
from pacscript_updater.parsers.pacscript import find_functions, iter_scalars

logger = logging.getLogger(__name__)

DYNAMIC_RE = re.compile(r"^\$\((?P<call>(?P<func>[A-Za-z_][\w-]*)(?:[ \t]+[^()]*)?)\)$")
_REFERENCE_RE = re.compile(
    r"\$(?:\{(?P<braced>[A-Za-z_]\w*)(?P<op>//|/|##|#|%%|%)?(?P<arg>[^}]*)\}|(?P<bare>[A-Za-z_]\w*))"
)


def is_dynamic(value: str) -> bool:
    return DYNAMIC_RE.match(value.strip()) is not None


def bindings(doc: PackageDocument, overrides: dict[str, str] | None = None) -> dict[str, str]:
    """Top-level scalar assignments, each expanded against those before it."""
    overrides = overrides or {}
    scope: dict[str, str] = dict(overrides)
    for name, value in iter_scalars(doc):
        if name in overrides or is_dynamic(value):
            continue
        scope[name] = expand_variables(value, scope)
    return scope


# ═══════════════════════════════════════════
# Parameter Expansion
# ═══════════════════════════════════════════


def _strip_prefix(value: str, pattern: str, longest: bool) -> str:
    cuts = range(len(value), -1, -1) if longest else range(len(value) + 1)
    for cut in cuts:
        if fnmatchcase(value[:cut], pattern):
            return value[cut:]
    return value


def _strip_suffix(value: str, pattern: str, longest: bool) -> str:
    cuts = range(len(value) + 1) if longest else range(len(value), -1, -1)
    for cut in cuts:
        if fnmatchcase(value[cut:], pattern):
            return value[:cut]
    return value


def _substitute(value: str, pattern: str, replacement: str, every: bool) -> str:
    if not pattern:
        return value
    out = []
    start = 0
    while start < len(value):
        # Leftmost, then longest match
        for end in range(len(value), start, -1):
            if fnmatchcase(value[start:end], pattern):
                out.append(replacement)
                start = end
                break
        else:
            out.append(value[start])
            start += 1
            continue
        if not every:
            out.append(value[start:])
            return "".join(out)
    return "".join(out)


def expand_variables(value: str, scope: dict[str, str]) -> str:
    """
    Expand `$var`, `${var}` and the pattern forms `${var/p/r}`, `${var//p/r}`,
    `${var#p}`, `${var##p}`, `${var%p}` and `${var%%p}`.

    Unknown variables and any other expansion syntax are left untouched.
    """

    def replace(match: re.Match) -> str:
        name = match.group("bare") or match.group("braced")
        if name not in scope:
            return match.group(0)
        current = scope[name]
        op, arg = match.group("op"), match.group("arg")
        if op is None:
            return current if not arg else match.group(0)
        match op:
            case "/" | "//":
                pattern, _, replacement = arg.partition("/")
                return _substitute(current, pattern, replacement, every=op == "//")
            case "#" | "##":
                return _strip_prefix(current, arg, longest=op == "##")
            case "%" | "%%":
                return _strip_suffix(current, arg, longest=op == "%%")
        return match.group(0)

    return _REFERENCE_RE.sub(replace, value)


# ═══════════════════════════════════════════
# Function Evaluation
# ═══════════════════════════════════════════


def resolve_dynamic(
    value: str,
    doc: PackageDocument,
    config: UpdaterConfig | None = None,
    overrides: dict[str, str] | None = None,
) -> str:
    """
    Resolve a raw pacscript value.

    Literals only get their variable references expanded (a value without
    `$` is returned unchanged). A `$(func ...)` value is evaluated by running
    the declared function in a throwaway bash with the document bindings.
    """
    match = DYNAMIC_RE.match(value.strip())
    if match is None:
        if "$" not in value:
            return value
        return expand_variables(value, bindings(doc, overrides))
    return _evaluate(value, match.group("func"), match.group("call"), doc, config or UpdaterConfig(), overrides)


def _evaluate(
    expression: str,
    func: str,
    call: str,
    doc: PackageDocument,
    config: UpdaterConfig,
    overrides: dict[str, str] | None,
) -> str:
    functions = find_functions(doc)
    if func not in functions:
        raise DynamicEvalError(expression, f"function {func!r} is not declared")
    first, last = functions[func]

    script = "\n".join(
        [
            *(f"{name}={shlex.quote(bound)}" for name, bound in bindings(doc, overrides).items()),
            *doc.lines[first : last + 1],
            call,
        ]
    )
    logger.debug(f"Evaluating {expression} ({last - first + 1} line function)")

    with tempfile.TemporaryDirectory(prefix="pacscript-eval-") as sandbox:
        env = {"PATH": os.environ.get("PATH", os.defpath), "HOME": sandbox, "LC_ALL": "C"}
        try:
            result = subprocess.run(
                ["bash", "--noprofile", "--norc", "-c", script],
                capture_output=True,
                text=True,
                cwd=sandbox,
                env=env,
                timeout=config.eval_timeout,
            )
        except subprocess.TimeoutExpired:
            raise DynamicEvalError(expression, f"timed out after {config.eval_timeout}s")
        except FileNotFoundError:
            raise DynamicEvalError(expression, "bash is not installed")

    if result.returncode != 0:
        raise DynamicEvalError(expression, f"exit status {result.returncode}: {result.stderr.strip()}")
    output = result.stdout.strip()
    if not output:
        raise DynamicEvalError(expression, "no output")
    return output
