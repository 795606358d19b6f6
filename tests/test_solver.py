import pytest

from CalcEngine import Solver


@pytest.mark.parametrize("equation, expected", [
    ("2x+3=7", "x = 2"),
    ("x^2-5x+6=0", "x = 2\nx = 3"),
    ("x^2=4x", "x = 0\nx = 4"),
    ("x^2+1=0", "x = 0 ± 1i"),
    ("x/4=2", "x = 8"),
    ("2x=2x", "Infinite solutions"),
    ("x=x+1", "No solution"),
])
def test_solve_equation(settings, equation, expected):
    assert Solver.solve_equation(equation, settings) == expected


def test_solve_equation_without_variable_reports_difference(settings):
    assert Solver.solve_equation("5=3", settings) == "2"


def test_solve_equation_rejects_two_variables(settings):
    assert Solver.solve_equation("x+y=1", settings) is None


def test_linear_system(settings):
    assert Solver.solve_linear_system("x+y=3\nx-y=1", settings) == "x = 2\ny = 1"


def test_three_by_three_system(settings):
    system = "x+y+z=6\n2y+z=7\nx+z=4"
    assert Solver.solve_linear_system(system, settings) == "x = 1\ny = 2\nz = 3"


def test_singular_system_has_no_answer(settings):
    assert Solver.solve_linear_system("x+y=1\n2x+2y=2", settings) is None


def test_nonlinear_system_has_no_answer(settings):
    assert Solver.solve_linear_system("x^2+y=1\nx-y=0", settings) is None


@pytest.mark.parametrize("expression, expected", [
    ("2+3", "5"),
    ("2x=4", "x = 2"),
    ("x+y=3\nx-y=1", "x = 2\ny = 1"),
])
def test_solve_dispatch(settings, expression, expected):
    assert Solver.solve(expression, settings=settings) == expected


@pytest.mark.parametrize("expression", ["", "   ", "x+y=1", "x+y+z=1\nx=1"])
def test_solve_dispatch_without_answer(settings, expression):
    assert Solver.solve(expression, settings=settings) is None


def test_solve_substitutes_ans(settings):
    assert Solver.solve("x=ans0+1", {0: "4"}, settings) == "x = 5"


def test_find_variables():
    assert Solver.find_variables("2x+sin(y)") == {"x", "y"}
    assert Solver.find_variables("ans1+e") == set()
    assert Solver.find_variables("3c₀+xy") == {"x", "y"}


def test_split_terms():
    assert Solver.split_terms("2x-3+4") == ["+2x", "-3", "+4"]
    assert Solver.split_terms("2*-3+x") == ["+2*-3", "+x"]
    assert Solver.split_terms("(1+2)x-1") == ["+(1+2)x", "-1"]


@pytest.mark.parametrize("text, expected", [("", 1.0), ("+", 1.0), ("-", -1.0), ("+2", 2.0), ("1/4", 0.25)])
def test_parse_coefficient(text, expected):
    assert Solver.parse_coefficient(text) == expected


def test_get_coefficients():
    assert Solver.get_coefficients("3x^(2)+2x-1", "x") == [3.0, 2.0, -1.0]


def test_determinant():
    assert Solver.determinant([[2, 0, 0], [0, 3, 0], [0, 0, 4]]) == 24
    assert Solver.determinant([[1, 2], [3, 4]]) == -2
