# MathNodes.py
"""""
The structured expression tree the editor produces and the engines consume.

Every node is a value: equality is structural, children are ordered lists of
nodes owned by their parent. Child lists that are left out default to a single
empty literal so that no required field is ever an empty list.
"""""


def _field(nodes, default_text=""):
    if not nodes:
        return [LiteralNode(default_text)]
    return list(nodes)


class MathNode:
    """Base class. Subclasses list their child-list fields and scalar fields."""

    type_name = "node"
    child_fields = ()
    value_fields = ()

    def child_lists(self):
        """[(field name, list of nodes)] in declaration order."""
        return [(name, getattr(self, name)) for name in self.child_fields]

    def __eq__(self, other):
        if type(self) is not type(other):
            return False
        for name in self.value_fields + self.child_fields:
            if getattr(self, name) != getattr(other, name):
                return False
        return True

    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = None

    def __repr__(self):
        teile = [f"{name}={getattr(self, name)!r}" for name in self.value_fields + self.child_fields]
        return f"{type(self).__name__}({', '.join(teile)})"


class LiteralNode(MathNode):
    type_name = "literal"
    value_fields = ("text",)

    def __init__(self, text=""):
        self.text = text


class FractionNode(MathNode):
    type_name = "fraction"
    child_fields = ("numerator", "denominator")

    def __init__(self, numerator=None, denominator=None):
        self.numerator = _field(numerator)
        self.denominator = _field(denominator)


class ExponentNode(MathNode):
    type_name = "exponent"
    child_fields = ("base", "power")

    def __init__(self, base=None, power=None):
        self.base = _field(base)
        self.power = _field(power)


class RootNode(MathNode):
    type_name = "root"
    value_fields = ("is_square_root",)
    child_fields = ("index", "radicand")

    def __init__(self, is_square_root=True, index=None, radicand=None):
        self.is_square_root = is_square_root
        self.index = _field(index, "2" if is_square_root else "")
        self.radicand = _field(radicand)


class LogNode(MathNode):
    type_name = "log"
    value_fields = ("is_natural_log",)
    child_fields = ("base", "argument")

    def __init__(self, is_natural_log=False, base=None, argument=None):
        self.is_natural_log = is_natural_log
        self.base = _field(base, "10")
        self.argument = _field(argument)


class TrigNode(MathNode):
    """sin, cos, ..., and also abs, which renders the same way."""
    type_name = "trig"
    value_fields = ("function",)
    child_fields = ("argument",)

    def __init__(self, function="sin", argument=None):
        self.function = function
        self.argument = _field(argument)


class ParenthesisNode(MathNode):
    type_name = "parenthesis"
    child_fields = ("content",)

    def __init__(self, content=None):
        self.content = _field(content)


class PermutationNode(MathNode):
    type_name = "permutation"
    child_fields = ("n", "r")

    def __init__(self, n=None, r=None):
        self.n = _field(n)
        self.r = _field(r)


class CombinationNode(MathNode):
    type_name = "combination"
    child_fields = ("n", "r")

    def __init__(self, n=None, r=None):
        self.n = _field(n)
        self.r = _field(r)


class SummationNode(MathNode):
    type_name = "summation"
    child_fields = ("variable", "lower", "upper", "body")

    def __init__(self, variable=None, lower=None, upper=None, body=None):
        self.variable = _field(variable)
        self.lower = _field(lower)
        self.upper = _field(upper)
        self.body = _field(body)


class ProductNode(SummationNode):
    type_name = "product"


class DerivativeNode(MathNode):
    type_name = "derivative"
    child_fields = ("variable", "at", "body")

    def __init__(self, variable=None, at=None, body=None):
        self.variable = _field(variable)
        self.at = _field(at)
        self.body = _field(body)


class IntegralNode(SummationNode):
    type_name = "integral"


class AnsNode(MathNode):
    """Reference to an earlier cell's result; index holds the cell number as text."""
    type_name = "ans"
    child_fields = ("index",)

    def __init__(self, index=None):
        self.index = _field(index)


class ConstantNode(MathNode):
    """Named constant such as ε₀, μ₀, c₀ or e⁻."""
    type_name = "constant"
    value_fields = ("constant",)

    def __init__(self, constant=""):
        self.constant = constant


class UnitVectorNode(MathNode):
    type_name = "unit_vector"
    value_fields = ("axis",)

    def __init__(self, axis="x"):
        self.axis = axis


class NewlineNode(MathNode):
    type_name = "newline"


NODE_TYPES = {
    cls.type_name: cls
    for cls in (
        LiteralNode, FractionNode, ExponentNode, RootNode, LogNode, TrigNode,
        ParenthesisNode, PermutationNode, CombinationNode, SummationNode,
        ProductNode, DerivativeNode, IntegralNode, AnsNode, ConstantNode,
        UnitVectorNode, NewlineNode,
    )
}


def literal_text(nodes):
    """Concatenated text of a node list that only holds literals ('' otherwise)."""
    teile = []
    for node in nodes:
        if not isinstance(node, LiteralNode):
            return ""
        teile.append(node.text)
    return "".join(teile)
