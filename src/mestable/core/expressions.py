"""
Evaluador restringido de expresiones para fórmulas y condiciones de visibilidad.

La expresión se compila a un AST de Python y se evalúa nodo a nodo contra
el mapeo de valores de la fila. Solo se admiten:

- Literales (números, textos, true/false/null)
- Referencias a campos de la fila
- Aritmética: + - * / // % ** y unarios + - not
- Comparaciones: == != < <= > >= in, not in
- and / or, y la expresión condicional `a if cond else b`

No hay acceso a atributos, llamadas, subíndices ni nombres globales.
También se aceptan las grafías `===`, `!==`, `&&`, `||` y `!`.
"""

import ast
import logging
import operator
from functools import lru_cache
from typing import Any, Mapping, Optional


logger = logging.getLogger(__name__)

# Resultado vacío para fórmulas con error
EMPTY = ""

MAX_EXPONENT = 100
MAX_EXPRESSION_LENGTH = 2_000
MAX_STRING_LENGTH = 10_000

_CONSTANTS = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}

_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}


class ExpressionError(ValueError):
    """Error de sintaxis, referencia o ejecución en una expresión."""


def normalize(text: str) -> str:
    """
    Traduce operadores estilo JavaScript a la gramática admitida.

    Los literales de texto se copian sin cambios.
    """
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in ("'", '"'):
            # Copiar literal completo respetando escapes
            j = i + 1
            while j < n and text[j] != ch:
                j += 2 if text[j] == "\\" else 1
            out.append(text[i:j + 1])
            i = j + 1
            continue
        if text.startswith("===", i):
            out.append("==")
            i += 3
        elif text.startswith("!==", i):
            out.append("!=")
            i += 3
        elif text.startswith("&&", i):
            out.append(" and ")
            i += 2
        elif text.startswith("||", i):
            out.append(" or ")
            i += 2
        elif ch == "!" and not text.startswith("!=", i):
            out.append(" not ")
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out).strip()


@lru_cache(maxsize=512)
def compile_expression(text: str) -> ast.Expression:
    """
    Compila y verifica una expresión.

    Raises:
        ExpressionError: si la sintaxis es inválida o usa nodos no permitidos
    """
    source = normalize(text)
    if not source:
        raise ExpressionError("Expresión vacía")
    if len(source) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError("Expresión demasiado larga")
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as exc:
        raise ExpressionError(f"Sintaxis inválida: {exc.msg}") from exc
    except ValueError as exc:
        raise ExpressionError(f"Sintaxis inválida: {exc}") from exc
    except (RecursionError, MemoryError) as exc:
        raise ExpressionError("Expresión demasiado compleja") from exc
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise ExpressionError(f"Elemento no permitido: {type(node).__name__}")
    return tree


def evaluate(text: str, row: Mapping[str, Any]) -> Any:
    """
    Evalúa una expresión contra los valores de una fila.

    Raises:
        ExpressionError: ante cualquier falla de compilación o evaluación
    """
    tree = compile_expression(text)
    try:
        return _eval(tree.body, row)
    except ExpressionError:
        raise
    except (ArithmeticError, TypeError, ValueError) as exc:
        raise ExpressionError(str(exc)) from exc
    except (RecursionError, MemoryError) as exc:
        raise ExpressionError("Expresión demasiado compleja") from exc


def evaluate_formula(formula: Optional[str], row: Mapping[str, Any]) -> Any:
    """Evalúa una fórmula; ante cualquier falla retorna EMPTY."""
    if not formula:
        return EMPTY
    try:
        return evaluate(formula, row)
    except ExpressionError as exc:
        logger.debug("Fórmula %r sin resultado: %s", formula, exc)
        return EMPTY


def evaluate_visibility(condition: Optional[str], row: Mapping[str, Any]) -> bool:
    """Evalúa una condición de visibilidad; sin condición o con falla es visible."""
    if not condition:
        return True
    try:
        return bool(evaluate(condition, row))
    except ExpressionError as exc:
        logger.debug("Condición %r inválida, se muestra la celda: %s", condition, exc)
        return True


def _eval(node: ast.AST, row: Mapping[str, Any]) -> Any:
    if isinstance(node, ast.Constant):
        if not isinstance(node.value, (int, float, str, bool, type(None))):
            raise ExpressionError("Literal no permitido")
        return node.value

    if isinstance(node, ast.Name):
        if node.id in row:
            return row[node.id]
        if node.id in _CONSTANTS:
            return _CONSTANTS[node.id]
        raise ExpressionError(f"Campo no definido: {node.id}")

    if isinstance(node, ast.BinOp):
        left = _eval(node.left, row)
        right = _eval(node.right, row)
        _check_operands(node.op, left, right)
        return _BIN_OPS[type(node.op)](left, right)

    if isinstance(node, ast.UnaryOp):
        return _UNARY_OPS[type(node.op)](_eval(node.operand, row))

    if isinstance(node, ast.BoolOp):
        # Cortocircuito: retorna el operando decisivo
        result = _eval(node.values[0], row)
        for value in node.values[1:]:
            if isinstance(node.op, ast.And):
                if not result:
                    return result
            elif result:
                return result
            result = _eval(value, row)
        return result

    if isinstance(node, ast.Compare):
        left = _eval(node.left, row)
        for op, comparator in zip(node.ops, node.comparators):
            right = _eval(comparator, row)
            if not _COMPARE_OPS[type(op)](left, right):
                return False
            left = right
        return True

    if isinstance(node, ast.IfExp):
        return _eval(node.body, row) if _eval(node.test, row) else _eval(node.orelse, row)

    raise ExpressionError(f"Elemento no permitido: {type(node).__name__}")


def _check_operands(op: ast.operator, left: Any, right: Any) -> None:
    """Limita operaciones que pueden crecer sin control."""
    if isinstance(op, ast.Pow):
        if isinstance(right, (int, float)) and abs(right) > MAX_EXPONENT:
            raise ExpressionError("Exponente demasiado grande")
    elif isinstance(op, ast.Mult):
        for seq, times in ((left, right), (right, left)):
            if isinstance(seq, str) and isinstance(times, int) and len(seq) * times > MAX_STRING_LENGTH:
                raise ExpressionError("Texto resultante demasiado largo")


_ALLOWED_NODES = (
    ast.Expression,
    ast.Constant,
    ast.Name,
    ast.Load,
    ast.BinOp,
    ast.UnaryOp,
    ast.BoolOp,
    ast.Compare,
    ast.IfExp,
    ast.And,
    ast.Or,
    *_BIN_OPS,
    *_UNARY_OPS,
    *_COMPARE_OPS,
)
