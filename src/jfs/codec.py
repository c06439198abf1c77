"""Step function codec: convert transforms to and from their body text.

A step's durable form is the *body* of a Python function, for example::

    return e["x"] > 1

``decode`` wraps that body in a function taking ``(element, index, list)``
and compiles it; ``encode`` goes the other way and recovers the body text
from a ``Transform`` or from an ordinary Python function or lambda.

Inside a body the first two parameters are also available under the short
names ``e`` and ``idx``.
"""

from __future__ import annotations

import ast
import inspect
import textwrap
from typing import Any, Callable, List, Optional

from .errors import CompileError

PARAMETERS = ("element", "index", "list")
ALIASES = {"e": "element", "idx": "index"}
DEFAULT_BODY = "return e"

_FUNCTION_NAME = "_step"
_PRELUDE = (
    f"def {_FUNCTION_NAME}(element=None, index=None, list=None):\n"
    "    e, idx = element, index\n"
)


def _build(body: str) -> ast.Module:
    """Build the module defining the step function for ``body``.

    The body is parsed on its own and its statements are spliced into the
    function, so line numbers and string literals stay as written.
    """
    statements = ast.parse(textwrap.dedent(body), "<step>").body
    module = ast.parse(_PRELUDE, "<step>")
    module.body[0].body.extend(statements)
    return ast.fix_missing_locations(module)


def compile_body(body: str) -> Callable[..., Any]:
    """Compile ``body`` into a callable of ``(element, index, list)``.

    Raises:
        CompileError: If the text is not a valid function body
    """
    try:
        code = compile(_build(body), "<step>", "exec")
    except SyntaxError as exc:
        raise CompileError(exc.msg or "invalid syntax", lineno=exc.lineno) from exc
    except ValueError as exc:
        # e.g. source containing null bytes
        raise CompileError(str(exc)) from exc

    namespace: dict = {}
    exec(code, namespace)
    return namespace[_FUNCTION_NAME]


class Transform:
    """A step transform: durable body text plus a lazily compiled callable.

    Assigning a new ``source`` recompiles it. A transform created with
    ``lenient()`` or assigned text that does not compile is *broken*:
    it keeps the text and the ``CompileError`` but cannot be called.
    """

    def __init__(self, source: str, error: Optional[CompileError] = None):
        self._source = source
        self._func: Optional[Callable[..., Any]] = None
        self.error = error

    @classmethod
    def lenient(cls, source: str) -> "Transform":
        """Build a transform, recording (not raising) a compile failure."""
        transform = cls(source)
        try:
            transform.compile()
        except CompileError as exc:
            transform.error = exc
        return transform

    @property
    def source(self) -> str:
        return self._source

    @source.setter
    def source(self, value: str) -> None:
        """Replace the body text; a body that does not compile marks it broken."""
        self._source = value
        self._func = None
        self.error = None
        try:
            self.compile()
        except CompileError as exc:
            self.error = exc

    @property
    def broken(self) -> bool:
        return self.error is not None

    def compile(self) -> Callable[..., Any]:
        """Return the compiled callable, compiling on first use."""
        if self._func is None:
            self._func = compile_body(self._source)
            self.error = None
        return self._func

    def __call__(self, *args: Any) -> Any:
        return self.compile()(*args)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Transform):
            return self.source.strip() == other.source.strip()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.source.strip())

    def __repr__(self) -> str:
        state = " broken" if self.broken else ""
        return f"<Transform{state} {self.source.strip()!r}>"


def decode(body: str) -> Transform:
    """Compile ``body`` text into a ``Transform``.

    Args:
        body: Statements of a function body (no ``def`` line)

    Returns:
        Transform callable as ``transform(element, index, list)``

    Raises:
        CompileError: If ``body`` is not syntactically valid
    """
    transform = Transform(body)
    transform.compile()
    return transform


def _segment(source: str, first: ast.stmt, last: ast.stmt) -> str:
    """Slice the statements spanning ``first`` through ``last`` out of ``source``."""
    lines = source.splitlines()
    start, end = first.lineno - 1, last.end_lineno - 1
    if start == end:
        return lines[start][first.col_offset : last.end_col_offset]
    chunk = lines[start : end + 1]
    chunk[-1] = chunk[-1][: last.end_col_offset]
    return textwrap.dedent("\n".join(chunk))


def _parameter_bindings(args: ast.arguments) -> List[str]:
    """Bind a function's own parameter names to the step parameters."""
    bindings = []
    positional = [a.arg for a in args.posonlyargs + args.args]
    for name, canonical in zip(positional, PARAMETERS):
        if name != canonical and ALIASES.get(name) != canonical:
            bindings.append(f"{name} = {canonical}")
    return bindings


def _encode_callable(func: Callable[..., Any]) -> str:
    try:
        source = textwrap.dedent(inspect.getsource(func))
    except (OSError, TypeError) as exc:
        raise CompileError(f"cannot recover source of {func!r}: {exc}") from exc

    try:
        tree = ast.parse(source)
    except SyntaxError:
        # getsource() returns whole lines; a lambda inside a call may not parse
        source = f"(\n{source}\n)"
        try:
            tree = ast.parse(source)
        except SyntaxError as exc:
            raise CompileError(f"cannot parse source of {func!r}") from exc

    name = getattr(func, "__name__", "")
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name == name:
            body = _segment(source, node.body[0], node.body[-1])
            return "\n".join(_parameter_bindings(node.args) + [body]).strip()
        if isinstance(node, ast.Lambda) and name == "<lambda>":
            expr = ast.get_source_segment(source, node.body)
            return "\n".join(_parameter_bindings(node.args) + [f"return {expr}"]).strip()

    raise CompileError(f"cannot locate the body of {func!r}")


def encode(transform: Any) -> str:
    """Return the trimmed body text of ``transform``.

    Args:
        transform: A ``Transform`` or a plain Python function / lambda

    Returns:
        Function body statements without the ``def`` line

    Raises:
        TypeError: If ``transform`` is not callable
        CompileError: If the source of a plain function cannot be recovered
    """
    if isinstance(transform, Transform):
        return transform.source.strip()
    if isinstance(transform, str):
        return transform.strip()
    if not callable(transform):
        raise TypeError(f"Expected a callable, got {type(transform).__name__}")
    return _encode_callable(transform)


__all__ = [
    "ALIASES",
    "DEFAULT_BODY",
    "PARAMETERS",
    "Transform",
    "compile_body",
    "decode",
    "encode",
]
