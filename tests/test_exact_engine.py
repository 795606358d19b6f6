import pytest

from CalcEngine import ExactEngine
from CalcEngine import Expressions as X
from CalcEngine import MathNodes as N


def L(text):
    return N.LiteralNode(text)


def evaluate(text, settings, ans_expressions=None):
    return ExactEngine.evaluate([L(text)], ans_expressions, settings)


# -----------------------------
# Plain expressions
# -----------------------------

def test_rational_arithmetic_is_exact(settings):
    ergebnis = evaluate("1/3+1/6", settings)
    assert ergebnis.expr == X.Frac(1, 2)
    assert ergebnis.numerical == pytest.approx(0.5)
    assert not ergebnis.is_exact
    assert ergebnis.to_exact_string() == "1/2"


def test_roots_stay_symbolic(settings):
    ergebnis = ExactEngine.evaluate([N.RootNode(True, radicand=[L("8")])], settings=settings)
    assert ergebnis.expr == X.Prod([X.Int(2), X.Root.sqrt(X.Int(2))])
    assert ergebnis.is_exact
    assert ergebnis.to_exact_string() == "2·√2"
    assert ergebnis.to_numerical_string(4) == "2.8284"


def test_standard_angle(settings):
    winkel = N.TrigNode("sin", [N.FractionNode([L("π")], [L("4")])])
    ergebnis = ExactEngine.evaluate([winkel], settings=settings)
    assert ergebnis.expr == X.Div(X.Root.sqrt(X.Int(2)), X.Int(2))
    assert ergebnis.is_exact


def test_symbolic_result_has_no_number(settings):
    ergebnis = evaluate("x+x", settings)
    assert ergebnis.expr == X.Prod([X.Int(2), X.Var("x")])
    assert ergebnis.numerical is None


def test_complex_values_use_numeric_engine(settings):
    assert evaluate("sqrt(-4)", settings).to_exact_string() == "2i"
    assert evaluate("2i+3", settings).to_exact_string() == "3 + 2i"


def test_calculus_node(settings):
    summe = N.SummationNode([L("k")], [L("1")], [L("10")], [L("k")])
    assert ExactEngine.evaluate([summe], settings=settings).expr == X.Int(55)


def test_integral_keeps_exact_fraction(settings):
    flaeche = N.IntegralNode([L("x")], [L("0")], [L("1")], [L("x^2")])
    ergebnis = ExactEngine.evaluate([flaeche], settings=settings)
    assert ergebnis.expr == X.Frac(1, 3)
    assert ergebnis.numerical == pytest.approx(1 / 3)


def test_integral_without_exact_form_is_numeric(settings):
    flaeche = N.IntegralNode([L("x")], [L("0")], [L("1")], [L("e^x")])
    ergebnis = ExactEngine.evaluate([flaeche], settings=settings)
    assert ergebnis.expr is None
    assert ergebnis.to_exact_string() == "1.718282"


def test_ans_values(settings):
    ergebnis = ExactEngine.evaluate([N.AnsNode([L("0")]), L("+1")], {0: X.Int(4)}, settings)
    assert ergebnis.expr == X.Int(5)
    offen = ExactEngine.evaluate([N.AnsNode([L("3")])], settings=settings)
    assert offen.expr == X.Var("ans3")


# -----------------------------
# Equations
# -----------------------------

@pytest.mark.parametrize("text, expected", [
    ("2x+3=7", "x = 2"),
    ("x^2-5x+6=0", "x = 3\nx = 2"),
    ("x^2=2", "x = √2\nx = -√2"),
    ("x^2+2x-1=0", "x = -1 + √2\nx = -1 - √2"),
    ("x^2+1=0", "x = 0 ± 1i"),
    ("2x=2x", "Infinite solutions"),
    ("x=x+1", "No solution"),
    ("5=3", "2"),
])
def test_single_equation(settings, text, expected):
    assert evaluate(text, settings).to_exact_string() == expected


def test_irrational_solutions_are_exact(settings):
    ergebnis = evaluate("x^2=2", settings)
    assert ergebnis.is_exact
    assert ergebnis.math_nodes[:2] == [L("x = "), N.RootNode(True, None, [L("2")])]
    assert N.NewlineNode() in ergebnis.math_nodes


def test_single_solution_has_numerical_value(settings):
    assert evaluate("2x+3=7", settings).numerical == pytest.approx(2.0)


def test_solutions_stay_exact(settings):
    assert evaluate("3x=1", settings).solutions == [X.Frac(1, 3)]
    assert evaluate("x+y=3\nx-y=1", settings).solutions == [X.Int(2), X.Int(1)]
    assert evaluate("1/3", settings).solutions == []


def test_equation_with_ans(settings):
    nodes = [L("x="), N.AnsNode([L("0")]), L("+1")]
    assert ExactEngine.evaluate(nodes, {0: X.Int(4)}, settings).to_exact_string() == "x = 5"


def test_two_unknowns_in_one_equation_give_nothing(settings):
    assert evaluate("x+y=1", settings).is_empty


def test_unsupported_degree_gives_nothing(settings):
    assert evaluate("x^3=8", settings).is_empty


def test_linear_system(settings):
    nodes = [L("x+y=3"), N.NewlineNode(), L("x-y=1")]
    assert ExactEngine.evaluate(nodes, settings=settings).to_exact_string() == "x = 2\ny = 1"


def test_linear_system_in_one_literal(settings):
    assert evaluate("x+y=3\nx-y=1", settings).to_exact_string() == "x = 2\ny = 1"


def test_singular_system_reports_error(settings):
    ergebnis = evaluate("x+y=1\n2x+2y=2", settings)
    assert ergebnis.has_error
    assert ergebnis.to_exact_string() == "[3017] Singular system."


def test_underdetermined_system_gives_nothing(settings):
    assert evaluate("x+y+z=1\nx-y=0", settings).is_empty


def test_lines_without_equation_use_first_line(settings):
    assert evaluate("2+3\n4", settings).expr == X.Int(5)


def test_single_equation_among_lines(settings):
    assert evaluate("1+1\n2x=4", settings).to_exact_string() == "x = 2"


# -----------------------------
# Incomplete input
# -----------------------------

@pytest.mark.parametrize("text", ["", "   ", "2+", "*2", "2*/3", "x=", "+", "(1+"])
def test_incomplete_literal_gives_empty_result(settings, text):
    assert evaluate(text, settings).is_empty


def test_sign_after_operator_is_allowed(settings):
    assert evaluate("3*-2", settings).expr == X.Int(-6)


def test_empty_required_field_gives_empty_result(settings):
    bruch = N.FractionNode([L("1")], [L("")])
    assert ExactEngine.evaluate([bruch], settings=settings).is_empty
    summe = N.SummationNode(None, [L("1")], [L("3")], [L("k")])
    assert not ExactEngine.is_incomplete([summe])


def test_incomplete_helpers():
    assert ExactEngine.ends_with_operator("2·")
    assert ExactEngine.starts_with_invalid_operator("^2")
    assert ExactEngine.has_consecutive_operators("2+*3")
    assert not ExactEngine.has_consecutive_operators("2*-3")
    assert ExactEngine.is_empty_expression([L("+ -"), N.NewlineNode()])


def test_normalize_nodes_splits_lines_and_sides():
    nodes = ExactEngine.normalize_nodes([L("x=1\ny=2")])
    assert nodes == [L("x"), L("="), L("1"), N.NewlineNode(), L("y"), L("="), L("2")]


# -----------------------------
# Helpers and wrappers
# -----------------------------

def test_polynomial_and_linear_coefficients():
    x = X.Var("x")
    ausdruck = X.Sum([X.Pow(x, X.Int(2)), X.Prod([X.Int(3), x]), X.Int(1)])
    poly = ExactEngine.polynomial(ausdruck, "x")
    assert poly == {2: X.Int(1), 1: X.Int(3), 0: X.Int(1)}
    assert ExactEngine.polynomial(X.Pow(x, X.Int(3)), "x") is None

    koeffizienten, konstante = ExactEngine.linear_coefficients(
        X.Sum([X.Prod([X.Int(2), x]), X.Var("y"), X.Int(-4)]), ["x", "y"])
    assert koeffizienten == {"x": X.Int(2), "y": X.Int(1)}
    assert konstante == X.Int(-4)


def test_determinant():
    matrix = [[X.Int(1), X.Int(2)], [X.Int(3), X.Int(4)]]
    assert ExactEngine.determinant(matrix) == X.Int(-2)


def test_wrappers(settings):
    assert ExactEngine.evaluate_to_double([L("1/4")], settings=settings) == pytest.approx(0.25)
    assert ExactEngine.evaluate_to_double([L("2+")], settings=settings) is None
    assert ExactEngine.evaluate_to_math_node([L("2+")], settings=settings) is None
    assert ExactEngine.evaluate_to_math_node([L("3/4")], settings=settings) == [
        N.FractionNode([L("3")], [L("4")])]


def test_result_helpers():
    assert ExactEngine.ExactResult.empty().to_exact_string() == ""
    assert ExactEngine.ExactResult.empty().to_numerical_string() == ""
    fehler = ExactEngine.ExactResult.failed("kaputt")
    assert fehler.has_error
    assert fehler.to_exact_string() == "kaputt"
