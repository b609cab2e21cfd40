"""
Tests for the arithmetic engine.
"""

import pytest

from chatbrain.arithmetic.engine import (
    MathError,
    MathSolution,
    evaluate_expression,
    extract_arithmetic_expression,
    is_likely_math_message,
    solve_arithmetic,
    solve_linear_equation,
    tokenize_expression,
)


class TestEvaluateExpression:
    """Shunting-yard evaluation."""

    def test_parentheses_and_precedence(self):
        assert evaluate_expression("(2+5)*3") == 21
        assert evaluate_expression("2+3*4") == 14

    def test_power_is_right_associative(self):
        assert evaluate_expression("2^3^2") == 512

    def test_left_associative_subtraction_and_division(self):
        assert evaluate_expression("10-4-3") == 3
        assert evaluate_expression("100/10/5") == 2

    def test_unary_signs(self):
        assert evaluate_expression("-3+5") == 2
        assert evaluate_expression("2*-3") == -6
        assert evaluate_expression("(-2)*(+4)") == -8

    def test_whitespace_ignored(self):
        assert evaluate_expression(" 1 + 2 ") == 3

    def test_decimals(self):
        assert evaluate_expression("1.5*2") == 3

    @pytest.mark.parametrize(
        "expression,code",
        [
            ("10/0", "division_by_zero"),
            ("(2+3", "mismatched_parentheses"),
            ("2+3)", "mismatched_parentheses"),
            ("2+", "invalid_expression"),
            ("1.2.3", "invalid_number"),
            ("2a", "invalid_character"),
            ("10^20", "result_out_of_range"),
        ],
    )
    def test_errors_carry_codes(self, expression, code):
        with pytest.raises(MathError) as excinfo:
            evaluate_expression(expression)
        assert excinfo.value.code == code

    def test_math_error_is_value_error(self):
        with pytest.raises(ValueError):
            evaluate_expression("1/0")


class TestTokenizer:
    def test_signed_number_after_operator(self):
        tokens = tokenize_expression("4*-2")
        assert [token.kind for token in tokens] == ["number", "operator", "number"]
        assert tokens[2].value == -2

    def test_binary_minus_after_number(self):
        tokens = tokenize_expression("4-2")
        assert [token.value for token in tokens] == [4, "-", 2]


class TestMessageDetection:
    def test_likely_math(self):
        assert is_likely_math_message("2+2")
        assert is_likely_math_message("what is 5 squared")
        assert is_likely_math_message("Solve 2x+4=10")

    def test_not_math(self):
        assert not is_likely_math_message("")
        assert not is_likely_math_message("hello there")
        assert not is_likely_math_message("calculate my taxes")

    def test_extract_longest_run(self):
        assert extract_arithmetic_expression("what is (2+5)*3") == "(2+5)*3"
        assert extract_arithmetic_expression("compute 12 / 4 please") == "12 / 4"

    def test_extract_requires_operator(self):
        assert extract_arithmetic_expression("I have 3 cats") is None
        assert extract_arithmetic_expression("no digits here") is None


class TestLinearEquation:
    def test_solves_ax_plus_b(self):
        solution = solve_linear_equation("Solve 2x+4=10")

        assert solution is not None
        assert solution.kind == "linear_equation"
        assert solution.expression == "2x+4=10"
        assert solution.result == 3
        assert solution.steps == ["2x + 4 = 10", "2x = 6", "x = 3"]

    def test_implicit_coefficients(self):
        assert solve_linear_equation("x-5=0").result == 5
        assert solve_linear_equation("-x=4").result == -4

    def test_trailing_question_marks(self):
        assert solve_linear_equation("3x = 12??").result == 4

    def test_zero_coefficient_rejected(self):
        assert solve_linear_equation("0x+1=5") is None

    def test_no_equation(self):
        assert solve_linear_equation("(2+5)*3") is None


class TestSolveArithmetic:
    def test_solution_steps(self):
        solution = solve_arithmetic("(2+5)*3")

        assert solution.kind == "arithmetic"
        assert solution.result == 21
        assert solution.steps == ["Evaluate expression using order of operations: (2+5)*3 = 21"]

    def test_from_dict_defaults(self):
        solution = MathSolution.from_dict({"expression": "1+1", "result": 2})

        assert solution.kind == "arithmetic"
        assert solution.steps == []
