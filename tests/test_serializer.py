import json

from CalcEngine import MathNodes as N
from CalcEngine import Serializer


def L(text):
    return N.LiteralNode(text)


def test_fraction_is_fully_parenthesized():
    assert Serializer.serialize([N.FractionNode([L("1")], [L("2")])]) == "((1)/(2))"


def test_implicit_multiplication_before_function():
    nodes = [L("2"), N.RootNode(True, radicand=[L("9")])]
    assert Serializer.serialize(nodes) == "2*sqrt(9)"


def test_exponent_base_with_operator_gets_parentheses():
    assert Serializer.serialize([N.ExponentNode([L("x")], [L("2")])]) == "x^(2)"
    assert Serializer.serialize([N.ExponentNode([L("x+1")], [L("2")])]) == "(x+1)^(2)"


def test_log_uses_change_of_base():
    assert Serializer.serialize([N.LogNode(False, [L("2")], [L("8")])]) == "(ln(8)/ln(2))"
    assert Serializer.serialize([N.LogNode(True, argument=[L("8")])]) == "ln(8)"


def test_nth_root():
    assert Serializer.serialize([N.RootNode(False, [L("3")], [L("8")])]) == "((8)^(1/(3)))"


def test_counting_and_calculus_calls():
    assert Serializer.serialize([N.PermutationNode([L("5")], [L("2")])]) == "perm(5,2)"
    summe = N.SummationNode([L("k")], [L("1")], [L("10")], [L("k")])
    assert Serializer.serialize([summe]) == "sum(k,1,10,k)"
    ohne_variable = N.IntegralNode(None, [L("0")], [L("1")], [L("x^2")])
    assert Serializer.serialize([ohne_variable]) == "int(x,0,1,x^2)"
    ableitung = N.DerivativeNode([L("x")], [L("2")], [L("x^2")])
    assert Serializer.serialize([ableitung]) == "diff(x,2,x^2)"


def test_literal_glyphs_are_normalized():
    assert Serializer.serialize([L("3·4−1")]) == "3*4-1"
    assert Serializer.serialize([L("+5")]) == "5"


def test_scientific_notation_and_perm_shorthand_stay():
    assert Serializer.add_implicit_multiplication("2e5") == "2e5"
    assert Serializer.add_implicit_multiplication("5P2") == "5P2"
    assert Serializer.add_implicit_multiplication("2x") == "2*x"
    assert Serializer.add_implicit_multiplication("(1)(2)") == "(1)*(2)"
    assert Serializer.add_implicit_multiplication("x(2)") == "x*(2)"


def test_other_nodes():
    assert Serializer.serialize([N.AnsNode([L("2")]), L("+1")]) == "ans2+1"
    assert Serializer.serialize([L("x=1"), N.NewlineNode(), L("y=2")]) == "x=1\ny=2"
    assert Serializer.serialize([N.TrigNode("cos", [L("0")])]) == "cos(0)"


def test_extract_variables():
    assert Serializer.extract_variables([L("2x+y")]) == {"x", "y"}
    assert Serializer.extract_variables([L("sin(t)")]) == {"t"}
    summe = N.SummationNode([L("k")], [L("1")], [L("n")], [L("k")])
    assert Serializer.extract_variables([summe]) == {"n"}
    assert Serializer.extract_variables([N.AnsNode([L("0")])]) == set()


def test_equations():
    assert Serializer.is_equation([L("2x=4")])
    assert not Serializer.is_equation([L("2+4")])
    assert Serializer.split_equation([L("2x=4")]) == ["2*x", "4"]
    assert Serializer.split_equation([L("1=2=3")]) is None
    assert Serializer.split_equation([L("1+2")]) is None


def test_json_keeps_structure():
    nodes = [
        L("2"),
        N.RootNode(False, [L("3")], [N.FractionNode([L("1")], [L("8")])]),
        N.LogNode(True, argument=[L("x")]),
        N.ConstantNode("c₀"),
    ]
    text = Serializer.serialize_to_json(nodes)
    daten = json.loads(text)
    assert daten[1]["type"] == "root"
    assert daten[1]["isSquareRoot"] is False
    assert daten[2]["isNaturalLog"] is True
    assert Serializer.deserialize_from_json(text) == nodes


def test_missing_fields_default_to_empty_literals():
    nodes = Serializer.deserialize_from_json('[{"type": "fraction"}]')
    assert nodes == [N.FractionNode([L("")], [L("")])]


def test_corrupt_json_gives_one_empty_literal():
    for text in ("", "{bad", "{}", "[]", '[{"type": "mystery"}]', "[1]"):
        assert Serializer.deserialize_from_json(text) == [N.LiteralNode()]
