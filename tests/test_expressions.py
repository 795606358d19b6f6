import math

import pytest

from CalcEngine import Expressions as X
from CalcEngine import MathNodes as N
from CalcEngine import NumberFormat
from CalcEngine import error as E


def sqrt(n):
    return X.Root.sqrt(X.Int(n))


def test_fraction_reduces_and_moves_sign():
    gekuerzt = X.Frac(6, -8).simplify()
    assert gekuerzt == X.Frac(-3, 4)
    assert str(gekuerzt) == "-3/4"
    assert isinstance(X.Frac(4, 2).simplify(), X.Int)


def test_rational_sum():
    assert X.Sum([X.Frac(1, 3), X.Frac(1, 6)]).simplify() == X.Frac(1, 2)
    assert X.Sum([X.Int(1), X.Int(-1)]).simplify() == X.Int(0)


@pytest.mark.parametrize("n, expected", [(8, "2·√2"), (72, "6·√2"), (2, "√2")])
def test_square_roots_pull_out_squares(n, expected):
    assert str(sqrt(n).simplify()) == expected


def test_perfect_square_root_is_integer():
    assert sqrt(16).simplify() == X.Int(4)


def test_root_products_combine():
    assert X.Prod([sqrt(2), sqrt(2)]).simplify() == X.Int(2)


def test_like_terms_collect():
    assert X.Sum([X.Var("x"), X.Var("x")]).simplify() == X.Prod([X.Int(2), X.Var("x")])
    drei = X.Prod([X.Int(3), sqrt(2)])
    fuenf = X.Prod([X.Int(5), sqrt(2)])
    assert str(X.Sum([drei, fuenf]).simplify()) == "8·√2"


def test_exact_trig_values():
    assert X.Trig("sin", X.Div(X.Const("pi"), X.Int(4))).simplify() == X.Div(sqrt(2), X.Int(2))
    assert X.Trig("cos", X.Const("pi")).simplify() == X.Int(-1)
    assert X.Trig("sin", X.Int(0)).simplify() == X.Int(0)


def test_logs():
    assert X.Log(X.Int(2), X.Int(8)).simplify() == X.Int(3)
    assert X.Log.ln(X.Const("e")).simplify() == X.Int(1)
    assert X.Log.log10(X.Int(1)).simplify() == X.Int(0)


def test_powers():
    assert X.Pow(X.Int(2), X.Int(10)).simplify() == X.Int(1024)
    assert X.Pow(X.Int(2), X.Int(-2)).simplify() == X.Frac(1, 4)
    assert X.Pow(X.Int(4), X.Frac(1, 2)).simplify() == X.Int(2)


def test_division_splits_rational_coefficient_from_root():
    quotient = X.Div(X.Prod([X.Int(3), sqrt(2)]), X.Int(6)).simplify()
    assert quotient == X.Prod([X.Frac(1, 2), sqrt(2)])


def test_counting_and_abs():
    assert X.Perm(X.Int(5), X.Int(2)).simplify() == X.Int(20)
    assert X.Comb(X.Int(5), X.Int(2)).simplify() == X.Int(10)
    unmoeglich = X.Comb(X.Int(5), X.Int(7))
    assert isinstance(unmoeglich.simplify(), X.Comb)
    assert unmoeglich.to_double() == 0.0
    assert X.Abs(X.Int(-3)).simplify() == X.Int(3)


def test_to_double():
    assert X.Frac(1, 4).to_double() == 0.25
    assert X.Prod([X.Int(2), X.Const("pi")]).to_double() == pytest.approx(2 * math.pi)
    assert math.isnan(sqrt(-1).to_double())
    assert X.Div(X.Int(1), X.Int(0)).to_double() == math.inf


def test_unknown_names_raise():
    with pytest.raises(E.CalculationError):
        X.Const("zeta")
    with pytest.raises(E.CalculationError):
        X.Trig("cot", X.Int(1))
    with pytest.raises(E.CalculationError) as info:
        X.Var("x").to_double()
    assert info.value.code == "3031"


def test_math_nodes(settings):
    minus = NumberFormat.MINUS_SIGN
    assert X.Int(2).to_math_node(settings) == [N.LiteralNode("2")]
    assert X.Frac(-3, 4).to_math_node(settings) == [
        N.LiteralNode(minus), N.FractionNode([N.LiteralNode("3")], [N.LiteralNode("4")])]
    assert X.Prod([X.Int(-1), sqrt(2)]).to_math_node(settings) == [
        N.LiteralNode(minus), N.RootNode(True, None, [N.LiteralNode("2")])]
    assert X.Prod([X.Int(2), X.Const("pi")]).to_math_node(settings) == [
        N.LiteralNode("2"), N.LiteralNode("π")]
    assert X.Sum([X.Var("x"), X.Int(-3)]).to_math_node(settings) == [
        N.LiteralNode("x"), N.LiteralNode(minus), N.LiteralNode("3")]
    assert X.Const("c0").to_math_node(settings) == [N.ConstantNode("c₀")]


def test_huge_integers_render_scientific(settings):
    assert X.Int(10 ** 20).to_math_node(settings) == [N.LiteralNode(f"1{NumberFormat.SMALL_CAPS_E}20")]


def test_negative_product_text():
    assert str(X.Prod([X.Int(-1), sqrt(2)])) == "-√2"


def winkel(k, d):
    return X.Div(X.Prod([X.Int(k), X.Const("pi")]), X.Int(d))


TRIG_TABLE = [
    X.Trig(funktion, winkel(k, d))
    for funktion in ("sin", "cos", "tan")
    for d in (4, 6)
    for k in range(2 * d)
]


@pytest.mark.parametrize("ausdruck", TRIG_TABLE + [
    sqrt(8),
    sqrt(72),
    sqrt(-4),
    X.Root(X.Int(16), X.Int(3)),
    X.Root.sqrt(X.Frac(1, 2)),
    X.Div(sqrt(2), X.Int(2)),
    X.Div(X.Prod([X.Int(3), sqrt(2)]), X.Int(4)),
    X.Div(X.Prod([X.Int(-1), sqrt(3)]), X.Int(2)),
    X.Div(X.Prod([X.Int(3), X.Var("x")]), X.Int(6)),
    X.Div(X.Int(6), X.Int(4)),
    X.Sum([X.Int(1), sqrt(2), X.Int(2), sqrt(2)]),
    X.Sum([X.Var("x"), X.Var("x"), X.Int(-1)]),
    X.Sum([X.Int(-1), X.Prod([X.Int(-1), sqrt(2)])]),
], ids=str)
def test_simplify_is_idempotent(ausdruck):
    einmal = ausdruck.simplify()
    assert einmal.simplify() == einmal


@pytest.mark.parametrize("k, d, sinus", [
    (5, 4, X.Prod([X.Frac(-1, 2), sqrt(2)])),
    (4, 3, X.Prod([X.Frac(-1, 2), sqrt(3)])),
    (7, 4, X.Prod([X.Frac(-1, 2), sqrt(2)])),
    (7, 6, X.Frac(-1, 2)),
    (3, 2, X.Int(-1)),
])
def test_negative_trig_values(k, d, sinus):
    assert X.Trig("sin", winkel(k, d)).simplify() == sinus


@pytest.mark.parametrize("k, d, expected", [
    (1, 4, X.Int(1)),
    (3, 4, X.Int(-1)),
    (1, 3, sqrt(3)),
    (2, 3, X.Prod([X.Int(-1), sqrt(3)])),
    (1, 6, X.Div(sqrt(3), X.Int(3))),
    (5, 6, X.Prod([X.Frac(-1, 3), sqrt(3)])),
    (5, 4, X.Int(1)),
])
def test_exact_tangent(k, d, expected):
    assert X.Trig("tan", winkel(k, d)).simplify() == expected


def test_tangent_pole_stays_symbolic():
    assert isinstance(X.Trig("tan", winkel(1, 2)).simplify(), X.Trig)


def test_sum_text_uses_minus_for_negative_terms():
    assert str(X.Sum([X.Int(-1), X.Prod([X.Int(-1), sqrt(2)])])) == "-1 - √2"
    assert str(X.Sum([X.Var("x"), X.Int(-3)])) == "x - 3"
    assert str(X.Sum([X.Int(-1), sqrt(2)])) == "-1 + √2"
