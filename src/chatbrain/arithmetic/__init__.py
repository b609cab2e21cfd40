"""
Arithmetic package: expression evaluation and linear-equation solving.

Components:
    - MathError: Typed evaluation failure with a `code`
    - MathSolution: Solved expression with explanation steps
    - solve_linear_equation / solve_arithmetic: The two solving paths
"""

from chatbrain.arithmetic.engine import (
    MATH_ERROR_CODES,
    MathError,
    MathSolution,
    MathToken,
    evaluate_expression,
    extract_arithmetic_expression,
    is_likely_math_message,
    solve_arithmetic,
    solve_linear_equation,
)

__all__ = [
    "MATH_ERROR_CODES",
    "MathError",
    "MathSolution",
    "MathToken",
    "evaluate_expression",
    "extract_arithmetic_expression",
    "is_likely_math_message",
    "solve_arithmetic",
    "solve_linear_equation",
]
