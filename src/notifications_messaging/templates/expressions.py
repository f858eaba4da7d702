"""Restricted expression language for computed template fields.

Configuration ships computed fields as expression text such as::

    detail.tenantId
    f"Lead {detail.leadName} has been created"
    {"leadId": detail.leadId, "assignedTo": detail.assignedUserId}
    detail.affectedClients or []
    truncate(detail.body, 120)

Text is parsed with ``ast`` and only a whitelist of node types is compiled,
once, into a tree of closures over the payload. Nothing is ever passed to
``eval``: there is no attribute access on Python objects, no builtins and no
imports. The payload is reachable as ``detail`` (or ``payload``); functions are
limited to the named transforms table.
"""

from __future__ import annotations

import ast
import operator
import re
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from notifications_messaging.exceptions import ConfigError, ExpressionEvaluationError
from notifications_messaging.models.field_value import Payload
from notifications_messaging.templates.transforms import DEFAULT_TRANSFORMS, Transform

type Evaluator = Callable[[Payload], Any]

PAYLOAD_NAMES = frozenset({"detail", "payload"})
MAX_EXPRESSION_LENGTH = 2000
MAX_NODES = 400

_FORMAT_SPEC = re.compile(r"^[<>^=]?[+\- ]?#?0?\d{0,3}[,_]?(\.\d{1,2})?[bcdeEfFgGnosxX%]?$")

_BINARY_OPS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}
# str/list repetition and %-formatting are excluded: numbers only
_NUMERIC_ONLY_OPS = (ast.Mult, ast.Mod)

_COMPARE_OPS: dict[type[ast.cmpop], Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _lookup(base: Any, key: Any, *, what: str) -> Any:
    """Read key from a payload value. Missing keys and indexes yield None."""
    if isinstance(base, Mapping):
        return base.get(key)
    if isinstance(base, Sequence) and not isinstance(base, str):
        if not isinstance(key, int) or isinstance(key, bool):
            raise ExpressionEvaluationError(f"list index must be an integer, got {key!r}")
        try:
            return base[key]
        except IndexError:
            return None
    if base is None:
        raise ExpressionEvaluationError(f"cannot read {what} of None")
    raise ExpressionEvaluationError(f"cannot read {what} of {type(base).__name__}")


def _to_text(value: Any) -> str:
    return "" if value is None else str(value)


class _Compiler:
    """Turns a validated AST into closures. One instance per expression."""

    def __init__(self, transforms: Mapping[str, Transform]) -> None:
        self._transforms = transforms

    def compile(self, node: ast.AST) -> Evaluator:
        handler = getattr(self, f"_compile_{type(node).__name__}", None)
        if handler is None:
            raise ConfigError(f"'{type(node).__name__}' is not allowed in template expressions")
        return handler(node)

    def _compile_Constant(self, node: ast.Constant) -> Evaluator:
        value = node.value
        if value is not None and not isinstance(value, (str, int, float, bool)):
            raise ConfigError(f"constant of type {type(value).__name__} is not allowed")
        return lambda payload: value

    def _compile_Name(self, node: ast.Name) -> Evaluator:
        if node.id in PAYLOAD_NAMES:
            return lambda payload: payload
        if node.id in self._transforms:
            raise ConfigError(f"transform '{node.id}' must be called, not referenced")
        raise ConfigError(f"unknown name '{node.id}' (use 'detail' for the event payload)")

    def _compile_Attribute(self, node: ast.Attribute) -> Evaluator:
        attr = node.attr
        if attr.startswith("_"):
            raise ConfigError(f"field names starting with '_' are not allowed: {attr}")
        base = self.compile(node.value)
        return lambda payload: _lookup(base(payload), attr, what=f"'{attr}'")

    def _compile_Subscript(self, node: ast.Subscript) -> Evaluator:
        if isinstance(node.slice, ast.Slice):
            raise ConfigError("slices are not allowed in template expressions")
        base = self.compile(node.value)
        index = self.compile(node.slice)

        def _subscript(payload: Payload) -> Any:
            key = index(payload)
            return _lookup(base(payload), key, what=f"[{key!r}]")

        return _subscript

    def _compile_JoinedStr(self, node: ast.JoinedStr) -> Evaluator:
        parts = [self.compile(value) for value in node.values]
        return lambda payload: "".join(_to_text(part(payload)) for part in parts)

    def _compile_FormattedValue(self, node: ast.FormattedValue) -> Evaluator:
        if node.conversion not in (-1, ord("s")):
            raise ConfigError("only !s conversion is allowed in f-strings")
        value = self.compile(node.value)
        if node.format_spec is None:
            return value
        spec_values = node.format_spec.values if isinstance(node.format_spec, ast.JoinedStr) else []
        if len(spec_values) != 1 or not isinstance(spec_values[0], ast.Constant):
            raise ConfigError("f-string format specs must be constant")
        spec = str(spec_values[0].value)
        if not _FORMAT_SPEC.match(spec):
            raise ConfigError(f"unsupported format spec: {spec!r}")
        return lambda payload: format(value(payload), spec)

    def _compile_BoolOp(self, node: ast.BoolOp) -> Evaluator:
        operands = [self.compile(value) for value in node.values]
        if isinstance(node.op, ast.And):

            def _and(payload: Payload) -> Any:
                result: Any = True
                for operand in operands:
                    result = operand(payload)
                    if not result:
                        return result
                return result

            return _and

        def _or(payload: Payload) -> Any:
            result: Any = None
            for operand in operands:
                result = operand(payload)
                if result:
                    return result
            return result

        return _or

    def _compile_UnaryOp(self, node: ast.UnaryOp) -> Evaluator:
        operand = self.compile(node.operand)
        if isinstance(node.op, ast.Not):
            return lambda payload: not operand(payload)
        if isinstance(node.op, ast.USub):
            return lambda payload: -operand(payload)
        if isinstance(node.op, ast.UAdd):
            return lambda payload: +operand(payload)
        raise ConfigError(f"operator '{type(node.op).__name__}' is not allowed")

    def _compile_BinOp(self, node: ast.BinOp) -> Evaluator:
        op = _BINARY_OPS.get(type(node.op))
        if op is None:
            raise ConfigError(f"operator '{type(node.op).__name__}' is not allowed")
        left = self.compile(node.left)
        right = self.compile(node.right)
        numeric_only = isinstance(node.op, _NUMERIC_ONLY_OPS)
        op_name = type(node.op).__name__

        def _binop(payload: Payload) -> Any:
            a, b = left(payload), right(payload)
            if numeric_only and not (_is_number(a) and _is_number(b)):
                raise ExpressionEvaluationError(f"'{op_name}' requires numbers")
            return op(a, b)

        return _binop

    def _compile_Compare(self, node: ast.Compare) -> Evaluator:
        left = self.compile(node.left)
        steps: list[tuple[Callable[[Any, Any], bool], Evaluator]] = []
        for cmp_op, comparator in zip(node.ops, node.comparators):
            fn = _COMPARE_OPS.get(type(cmp_op))
            if fn is None:
                raise ConfigError(f"comparison '{type(cmp_op).__name__}' is not allowed")
            steps.append((fn, self.compile(comparator)))

        def _compare(payload: Payload) -> bool:
            current = left(payload)
            for fn, comparator in steps:
                other = comparator(payload)
                if not fn(current, other):
                    return False
                current = other
            return True

        return _compare

    def _compile_IfExp(self, node: ast.IfExp) -> Evaluator:
        test = self.compile(node.test)
        body = self.compile(node.body)
        orelse = self.compile(node.orelse)
        return lambda payload: body(payload) if test(payload) else orelse(payload)

    def _compile_List(self, node: ast.List) -> Evaluator:
        items = [self.compile(elt) for elt in node.elts]
        return lambda payload: [item(payload) for item in items]

    def _compile_Tuple(self, node: ast.Tuple) -> Evaluator:
        items = [self.compile(elt) for elt in node.elts]
        return lambda payload: [item(payload) for item in items]

    def _compile_Dict(self, node: ast.Dict) -> Evaluator:
        entries: list[tuple[Evaluator | None, Evaluator]] = [
            (self.compile(key) if key is not None else None, self.compile(value))
            for key, value in zip(node.keys, node.values)
        ]

        def _dict(payload: Payload) -> dict[str, Any]:
            result: dict[str, Any] = {}
            for key, value in entries:
                if key is None:
                    spread = value(payload)
                    if spread is None:
                        continue
                    if not isinstance(spread, Mapping):
                        raise ExpressionEvaluationError("only mappings can be spread with **")
                    result.update(spread)
                    continue
                name = key(payload)
                if not isinstance(name, str):
                    raise ExpressionEvaluationError(f"mapping keys must be strings, got {name!r}")
                result[name] = value(payload)
            return result

        return _dict

    def _compile_Call(self, node: ast.Call) -> Evaluator:
        if not isinstance(node.func, ast.Name):
            raise ConfigError("only named transforms can be called")
        name = node.func.id
        transform = self._transforms.get(name)
        if transform is None:
            raise ConfigError(f"unknown transform '{name}'")
        if any(isinstance(arg, ast.Starred) for arg in node.args):
            raise ConfigError("argument unpacking is not allowed")
        if any(kw.arg is None for kw in node.keywords):
            raise ConfigError("keyword unpacking is not allowed")
        args = [self.compile(arg) for arg in node.args]
        kwargs = {kw.arg: self.compile(kw.value) for kw in node.keywords if kw.arg}
        return lambda payload: transform(
            *(arg(payload) for arg in args),
            **{k: v(payload) for k, v in kwargs.items()},
        )


def compile_expression(
    text: str,
    *,
    transforms: Mapping[str, Transform] = DEFAULT_TRANSFORMS,
) -> Evaluator:
    """Compile expression text into a pure function of the payload.

    Args:
        text: Expression source.
        transforms: Named transforms the expression may call.

    Returns:
        Callable taking the event payload. Failures during evaluation raise
        ExpressionEvaluationError.

    Raises:
        ConfigError: On syntax errors, disallowed constructs or unknown names.
    """
    if not isinstance(text, str) or not text.strip():
        raise ConfigError("expression is empty")
    source = text.strip()
    if len(source) > MAX_EXPRESSION_LENGTH:
        raise ConfigError(f"expression longer than {MAX_EXPRESSION_LENGTH} characters")
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as e:
        raise ConfigError(f"invalid expression {source!r}: {e.msg}") from e
    if sum(1 for _ in ast.walk(tree)) > MAX_NODES:
        raise ConfigError(f"expression has more than {MAX_NODES} nodes")

    root = _Compiler(transforms).compile(tree.body)

    def evaluate(payload: Payload) -> Any:
        try:
            return root(payload)
        except ExpressionEvaluationError:
            raise
        except Exception as e:
            raise ExpressionEvaluationError(f"{source!r}: {e}") from e

    return evaluate
