# _utils.py
from __future__ import annotations

import ast
import math
from typing import Any

_ALLOWED_AST_NODES_NUMERIC = {
    ast.Expression,
    ast.BinOp,
    ast.UnaryOp,
    ast.Constant,
    ast.Load,
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.UAdd,
    ast.USub,
}


def _safe_eval_numeric(expr: str | float) -> float:
    """Safely evaluate a numeric expression; disallows names and function calls."""
    if isinstance(expr, bool):
        msg = f"Expected str|int|float, got {type(expr)}"
        raise TypeError(msg)
    if isinstance(expr, (int, float)):
        return float(expr)
    if not isinstance(expr, str):
        msg = f"Expected str|int|float, got {type(expr)}"
        raise TypeError(msg)

    try:
        tree = ast.parse(expr, mode="eval")
    except SyntaxError as exc:
        msg = f"Could not parse numeric expression: {expr!r}"
        raise ValueError(msg) from exc

    for node in ast.walk(tree):
        if isinstance(node, ast.Name):
            msg = f"Unexpected variable '{node.id}' in numeric expression: {expr}"
            raise TypeError(msg)
        if isinstance(node, ast.Call):
            msg = f"Function calls are not allowed in numeric expression: {expr}"
            raise TypeError(msg)
        if type(node) not in _ALLOWED_AST_NODES_NUMERIC:
            msg = f"Unsupported token in numeric expression: {type(node).__name__}"
            raise ValueError(msg)
        if isinstance(node, ast.Constant) and (
            isinstance(node.value, bool) or not isinstance(node.value, (int, float))
        ):
            msg = f"Only numeric literals are allowed in expression: {expr}"
            raise TypeError(msg)

    # We compile a vetted AST and disable builtins;
    # literal_eval doesn't handle arithmetic.
    try:
        value = eval(compile(tree, "<numeric>", "eval"), {"__builtins__": {}}, {})  # noqa: S307
    except ZeroDivisionError as exc:
        msg = f"Division by zero in numeric expression: {expr}"
        raise ValueError(msg) from exc
    except OverflowError as exc:
        msg = f"Numeric expression overflows a float: {expr}"
        raise ValueError(msg) from exc
    return float(value)


def _safe_eval_integer(expr: str | float, name: str) -> int:
    """Evaluate a numeric expression and require an integral result."""
    value = _safe_eval_numeric(expr)
    if not math.isfinite(value) or value != int(value):
        msg = f"'{name}' must be an integer; got {value!r}."
        raise ValueError(msg)
    return int(value)


def _normalize_scalars(raw: dict[str, Any]) -> dict[str, float]:
    """Normalize a block of scalar values (numbers or numeric strings) to floats."""
    out: dict[str, float] = {}
    for k, v in raw.items():
        if isinstance(v, (int, float, str)) and not isinstance(v, bool):
            value = _safe_eval_numeric(v)
            if not math.isfinite(value):
                msg = f"Parameter '{k}' must be finite; got {value!r}."
                raise ValueError(msg)
            out[k] = value
        else:
            msg = f"Parameter '{k}' must be a scalar or numeric string; got {type(v)}."
            raise TypeError(msg)
    return out


def rate_to_proportion(rate: float, dt: float) -> float:
    """Convert a per-unit-time rate into the proportion affected over ``dt``.

    Computes ``1 - exp(-rate * dt)``, the probability that an exponentially
    distributed event with the given rate happens within one step.
    """
    return -math.expm1(-rate * dt)
