"""
Arithmetic and linear-equation solving.

Two paths are supported:
- Linear equations of the form ax+b=c, solved directly as x = (c - b) / a
- General arithmetic, tokenized, converted to postfix with the shunting-yard
  algorithm and evaluated on a stack

Evaluation failures raise MathError carrying a machine-readable code.
"""

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from chatbrain.text.normalizer import format_number

PRECEDENCE = {
    "+": 1,
    "-": 1,
    "*": 2,
    "/": 2,
    "^": 3,
}

RIGHT_ASSOCIATIVE = frozenset(["^"])

RESULT_LIMIT = 1e12
"""Results with a larger magnitude are reported as out of range."""

MATH_ERROR_CODES = frozenset([
    "invalid_number",
    "invalid_character",
    "mismatched_parentheses",
    "division_by_zero",
    "result_out_of_range",
    "invalid_expression",
])

_OPERATOR = re.compile(r"[+\-*/^=]")
_ARITHMETIC_OPERATOR = re.compile(r"[+\-*/^]")
_DIGIT = re.compile(r"\d")
_MATH_CUE = re.compile(r"(solve|calculate|evaluate|what is|math|equation|simplify)", re.IGNORECASE)
_EXPRESSION_RUN = re.compile(r"[0-9+\-*/^().\s]{3,}")
_NUMBER = re.compile(r"[-+]?\d*\.?\d+")
_NUMBER_CHAR = re.compile(r"[\d.]")
_UNARY_CONTEXT = frozenset("+-*/^(")
_EQUATION_SEARCH = re.compile(r"([+-]?\d*\.?\d*x(?:[+-]\d*\.?\d+)?=[+-]?\d*\.?\d+)")
_EQUATION_PARTS = re.compile(r"([+-]?\d*\.?\d*)x([+-]\d*\.?\d+)?=([+-]?\d*\.?\d+)")


class MathError(ValueError):
    """
    Typed arithmetic failure.

    Attributes:
        code: One of MATH_ERROR_CODES
    """

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass(frozen=True)
class MathToken:
    """A number, operator or parenthesis in an arithmetic expression."""

    kind: str  # "number", "operator" or "paren"
    value: Union[float, str]


@dataclass
class MathSolution:
    """A solved expression with the steps used to explain it."""

    kind: str  # "linear_equation" or "arithmetic"
    expression: str
    result: float
    steps: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "expression": self.expression,
            "result": self.result,
            "steps": list(self.steps),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MathSolution":
        return cls(
            kind=str(data.get("kind") or "arithmetic"),
            expression=str(data.get("expression") or ""),
            result=float(data.get("result") or 0),
            steps=[str(step) for step in data.get("steps") or []],
        )


def is_likely_math_message(message) -> bool:
    """True when the message has an operator and a digit, or a math cue and a digit."""
    sample = str(message or "").strip()
    if not sample:
        return False

    has_operator = bool(_OPERATOR.search(sample))
    has_digit = bool(_DIGIT.search(sample))
    has_cue = bool(_MATH_CUE.search(sample))
    return (has_operator and has_digit) or (has_cue and has_digit)


def tokenize_expression(expression: str) -> List[MathToken]:
    """
    Split an arithmetic expression into tokens.

    A sign directly after the start, an operator or "(" is read as part of
    the following number.

    Raises:
        MathError: invalid_number, invalid_character
    """
    sanitized = re.sub(r"\s+", "", str(expression or ""))
    tokens: List[MathToken] = []
    index = 0

    while index < len(sanitized):
        char = sanitized[index]
        signed = char in "+-" and (index == 0 or sanitized[index - 1] in _UNARY_CONTEXT)

        if _NUMBER_CHAR.match(char) or signed:
            number_text = char
            index += 1
            while index < len(sanitized) and _NUMBER_CHAR.match(sanitized[index]):
                number_text += sanitized[index]
                index += 1

            if not _NUMBER.fullmatch(number_text):
                raise MathError("invalid_number")

            tokens.append(MathToken("number", float(number_text)))
            continue

        if char in PRECEDENCE:
            tokens.append(MathToken("operator", char))
            index += 1
            continue

        if char in "()":
            tokens.append(MathToken("paren", char))
            index += 1
            continue

        raise MathError("invalid_character")

    return tokens


def to_rpn(tokens: List[MathToken]) -> List[MathToken]:
    """
    Shunting-yard conversion to postfix order.

    Raises:
        MathError: mismatched_parentheses
    """
    output: List[MathToken] = []
    operators: List[MathToken] = []

    for token in tokens:
        if token.kind == "number":
            output.append(token)
        elif token.kind == "operator":
            while operators and operators[-1].kind == "operator":
                top_precedence = PRECEDENCE[operators[-1].value]
                current_precedence = PRECEDENCE[token.value]
                if token.value in RIGHT_ASSOCIATIVE:
                    should_pop = current_precedence < top_precedence
                else:
                    should_pop = current_precedence <= top_precedence
                if not should_pop:
                    break
                output.append(operators.pop())
            operators.append(token)
        elif token.value == "(":
            operators.append(token)
        else:
            while operators and operators[-1].value != "(":
                output.append(operators.pop())
            if not operators:
                raise MathError("mismatched_parentheses")
            operators.pop()

    while operators:
        top = operators.pop()
        if top.kind == "paren":
            raise MathError("mismatched_parentheses")
        output.append(top)

    return output


def _apply(operator: str, left: float, right: float) -> float:
    if operator == "+":
        return left + right
    if operator == "-":
        return left - right
    if operator == "*":
        return left * right
    if operator == "/":
        if right == 0:
            raise MathError("division_by_zero")
        return left / right
    try:
        return math.pow(left, right)
    except (OverflowError, ValueError):
        raise MathError("result_out_of_range")


def evaluate_rpn(rpn_tokens: List[MathToken]) -> float:
    """
    Evaluate postfix tokens on a stack.

    Raises:
        MathError: division_by_zero, result_out_of_range, invalid_expression
    """
    stack: List[float] = []

    for token in rpn_tokens:
        if token.kind == "number":
            stack.append(token.value)
            continue

        if len(stack) < 2:
            raise MathError("invalid_expression")
        right = stack.pop()
        left = stack.pop()

        result = _apply(token.value, left, right)
        if not math.isfinite(result) or abs(result) > RESULT_LIMIT:
            raise MathError("result_out_of_range")
        stack.append(result)

    if len(stack) != 1:
        raise MathError("invalid_expression")

    return stack[0]


def evaluate_expression(expression: str) -> float:
    """Tokenize, convert and evaluate an arithmetic expression."""
    return evaluate_rpn(to_rpn(tokenize_expression(expression)))


def extract_arithmetic_expression(message) -> Optional[str]:
    """
    Pick the longest run of digits, operators, dots, parentheses and spaces.

    Returns None unless that run holds both an operator and a digit.
    """
    matches = _EXPRESSION_RUN.findall(str(message or ""))
    if not matches:
        return None

    expression = max(matches, key=len).strip()
    if not _ARITHMETIC_OPERATOR.search(expression) or not _DIGIT.search(expression):
        return None
    return expression


def _coefficient(text: str) -> Optional[float]:
    if text in ("", "+"):
        return 1.0
    if text == "-":
        return -1.0
    return _to_number(text)


def _to_number(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def solve_linear_equation(message) -> Optional[MathSolution]:
    """
    Solve the first ax+b=c equation found in the message.

    Returns None when no equation is present, a == 0, or any operand is
    not a finite number.
    """
    compact = re.sub(r"\?+$", "", re.sub(r"\s+", "", str(message or "").lower()))
    found = _EQUATION_SEARCH.search(compact)
    if not found:
        return None

    equation = found.group(1)
    parts = _EQUATION_PARTS.fullmatch(equation)
    if not parts:
        return None

    a = _coefficient(parts.group(1))
    b = _to_number(parts.group(2) or "0")
    c = _to_number(parts.group(3))
    if a is None or b is None or c is None or a == 0:
        return None

    x = (c - b) / a
    if not math.isfinite(x):
        return None

    sign = "+" if b >= 0 else "-"
    steps = [
        f"{format_number(a)}x {sign} {format_number(abs(b))} = {format_number(c)}",
        f"{format_number(a)}x = {format_number(c - b)}",
        f"x = {format_number(x)}",
    ]
    return MathSolution(kind="linear_equation", expression=equation, result=x, steps=steps)


def solve_arithmetic(expression: str) -> MathSolution:
    """
    Evaluate an extracted arithmetic expression.

    Raises:
        MathError: when the expression cannot be evaluated safely
    """
    value = evaluate_expression(expression)
    return MathSolution(
        kind="arithmetic",
        expression=expression,
        result=value,
        steps=[f"Evaluate expression using order of operations: {expression} = {format_number(value)}"],
    )
