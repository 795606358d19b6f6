import math

import pytest

from CalcEngine import Expressions as X
from CalcEngine import MathNodes as N
from CalcEngine import NodeConverter
from CalcEngine import error as E


def L(text):
    return N.LiteralNode(text)


@pytest.mark.parametrize("text, expected", [
    ("1.5", X.Frac(3, 2)),
    ("2e3", X.Int(2000)),
    ("1/3+1/6", X.Frac(1, 2)),
    ("-2^2", X.Int(4)),
    ("2(3+4)", X.Int(14)),
    ("sin(0)", X.Int(0)),
    ("sqrt(8)", X.Prod([X.Int(2), X.Root.sqrt(X.Int(2))])),
])
def test_convert_literal(text, expected):
    assert NodeConverter.convert([L(text)]) == expected


def test_constants_and_variables():
    assert NodeConverter.convert([L("2π")]) == X.Prod([X.Int(2), X.Const("pi")])
    assert NodeConverter.convert([L("2e")]) == X.Prod([X.Int(2), X.Const("e")])
    assert NodeConverter.convert([L("x+x")]) == X.Prod([X.Int(2), X.Var("x")])


def test_empty_list_is_zero():
    assert NodeConverter.convert([]) == X.Int(0)


def test_double_to_exact():
    assert NodeConverter.double_to_exact(0.25) == X.Frac(1, 4)
    assert NodeConverter.double_to_exact(3.0000000000001) == X.Int(3)
    assert NodeConverter.double_to_exact(1 / 3) == X.Int(0)
    with pytest.raises(E.CalculationError):
        NodeConverter.double_to_exact(float("nan"))


def test_parse_errors():
    with pytest.raises(E.SyntaxError) as info:
        NodeConverter.convert([L("2$")])
    assert info.value.code == "3019"
    with pytest.raises(E.SyntaxError) as info:
        NodeConverter.convert([L("(1+2")])
    assert info.value.code == "3009"


def test_structured_nodes():
    assert NodeConverter.convert([N.LogNode(False, [L("2")], [L("8")])]) == X.Int(3)
    bruch = [L("2"), N.FractionNode([L("1")], [L("4")])]
    assert NodeConverter.convert(bruch) == X.Frac(1, 2)
    assert NodeConverter.convert([N.TrigNode("abs", [L("-5")])]) == X.Int(5)
    assert NodeConverter.convert([N.ConstantNode("c₀")]) == X.Const("c0")


def test_calculus_nodes_enter_as_exact_numbers():
    summe = N.SummationNode([L("k")], [L("1")], [L("10")], [L("k")])
    assert NodeConverter.convert([summe]) == X.Int(55)


def test_calculus_values_keep_their_fraction():
    flaeche = N.IntegralNode([L("x")], [L("0")], [L("1")], [L("x^2")])
    assert NodeConverter.convert([flaeche]) == X.Frac(1, 3)
    harmonisch = N.SummationNode([L("k")], [L("1")], [L("3")], [L("1/k")])
    assert NodeConverter.convert([harmonisch]) == X.Frac(11, 6)


def test_calculus_value_without_short_fraction_raises():
    flaeche = N.IntegralNode([L("x")], [L("0")], [L("1")], [L("e^x")])
    with pytest.raises(E.CalculationError):
        NodeConverter.convert([flaeche])


def test_computed_to_exact():
    assert NodeConverter.computed_to_exact(0.33333333333333337) == X.Frac(1, 3)
    assert NodeConverter.computed_to_exact(6.0000000002) == X.Int(6)
    assert NodeConverter.computed_to_exact(-2.5) == X.Frac(-5, 2)
    with pytest.raises(E.CalculationError):
        NodeConverter.computed_to_exact(math.pi)
    with pytest.raises(E.CalculationError):
        NodeConverter.computed_to_exact(float("inf"))


def test_ans_references():
    ans = N.AnsNode([L("0")])
    assert NodeConverter.convert([ans, L("+1")], {0: X.Int(4)}) == X.Int(5)
    assert NodeConverter.convert([N.AnsNode([L("3")])]) == X.Var("ans3")


def test_ans_values_for_numeric_engine():
    werte = NodeConverter.ans_values_from({0: X.Frac(1, 2), 1: X.Var("x"), 2: X.Frac(1, 100000)})
    assert werte == {0: "0.5", 2: "0.00001"}


def test_tokenize_inserts_implicit_multiplication():
    tokens = NodeConverter.tokenize([L("2"), N.FractionNode([L("1")], [L("4")])])
    assert [art for art, _ in tokens] == [NodeConverter.NUMBER, NodeConverter.OPERATOR, NodeConverter.EXPR]
