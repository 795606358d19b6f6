# Serializer.py
"""""
Node tree <-> text.

- serialize():              node list -> flat PEMDAS string for MathEngine / Solver
- extract_variables():      free variables of a node list (bound ones removed)
- is_equation() / split_equation()
- serialize_to_json() / deserialize_from_json():  lossless persistence

Pipeline (serialize)
--------------------
1) every structured node becomes an explicitly parenthesized sub-expression
2) implicit multiplication pass over the character stream
3) leading '+' stripped
"""""
import json
import logging
import re

from . import MathNodes as N
from . import error as E

logger = logging.getLogger(__name__)

MULTIPLY_SIGN = "·"
MINUS_SIGN = "−"

# A letter run ending in one of these before '(' is a call, not a product
FUNCTION_NAMES = [
    "sin", "cos", "tan", "asin", "acos", "atan",
    "sinh", "cosh", "tanh", "asinh", "acosh", "atanh",
    "log", "ln", "sqrt", "abs", "arg", "re", "im", "sgn", "exp",
    "diff", "int", "perm", "comb", "sum", "prod",
]

NOT_VARIABLES = {"sin", "cos", "tan", "log", "ln", "sqrt", "abs", "sum", "prod", "P", "C", "i"}

LETTER_RUN = re.compile(r"[a-zA-Z]+")

# python attribute -> persisted key
JSON_KEYS = {
    "is_square_root": "isSquareRoot",
    "is_natural_log": "isNaturalLog",
}


# -----------------------------
# String serialization
# -----------------------------

def _normalize_literal(text):
    return text.replace(MULTIPLY_SIGN, "*").replace(MINUS_SIGN, "-")


def _contains_operators(text):
    return any(op in text for op in "+-*/")


def _serialize_list(nodes):
    return "".join(_serialize_node(node) for node in nodes)


def _serialize_node(node):
    if isinstance(node, N.LiteralNode):
        return _normalize_literal(node.text)
    if isinstance(node, N.NewlineNode):
        return "\n"
    if isinstance(node, N.FractionNode):
        return f"(({_serialize_list(node.numerator)})/({_serialize_list(node.denominator)}))"
    if isinstance(node, N.ExponentNode):
        base = _serialize_list(node.base)
        if _contains_operators(base):
            base = f"({base})"
        return f"{base}^({_serialize_list(node.power)})"
    if isinstance(node, N.ParenthesisNode):
        return f"({_serialize_list(node.content)})"
    if isinstance(node, N.TrigNode):
        return f"{node.function}({_serialize_list(node.argument)})"
    if isinstance(node, N.LogNode):
        argument = _serialize_list(node.argument)
        if node.is_natural_log:
            return f"ln({argument})"
        # change of base
        return f"(ln({argument})/ln({_serialize_list(node.base)}))"
    if isinstance(node, N.RootNode):
        radicand = _serialize_list(node.radicand)
        if node.is_square_root:
            return f"sqrt({radicand})"
        return f"(({radicand})^(1/({_serialize_list(node.index)})))"
    if isinstance(node, N.PermutationNode):
        return f"perm({_serialize_list(node.n)},{_serialize_list(node.r)})"
    if isinstance(node, N.CombinationNode):
        return f"comb({_serialize_list(node.n)},{_serialize_list(node.r)})"
    if isinstance(node, N.DerivativeNode):
        variable = _serialize_list(node.variable).strip() or "x"
        return f"diff({variable},{_serialize_list(node.at)},{_serialize_list(node.body)})"
    if isinstance(node, N.SummationNode):
        # summation, product and integral share the four-field layout
        name = {"summation": "sum", "product": "prod", "integral": "int"}[node.type_name]
        variable = _serialize_list(node.variable).strip() or "x"
        return (f"{name}({variable},{_serialize_list(node.lower)},"
                f"{_serialize_list(node.upper)},{_serialize_list(node.body)})")
    if isinstance(node, N.AnsNode):
        return f"ans{_serialize_list(node.index)}"
    if isinstance(node, N.ConstantNode):
        return node.constant
    if isinstance(node, N.UnitVectorNode):
        return f"e_{node.axis}"
    logger.debug("No serialization for %r", node)
    return ""


def _is_digit(char):
    return char != "" and char in "0123456789."


def _is_letter(char):
    return char.isascii() and char.isalpha()


def _is_function(text, index):
    """True if the letter run ending at index is a known function name."""
    for name in FUNCTION_NAMES:
        start = index - len(name) + 1
        if start >= 0 and text[start:index + 1] == name:
            return True
    return False


def _has_digit_after_operator(text, operator_index):
    if operator_index + 1 < len(text):
        folgendes = text[operator_index + 1]
        return _is_digit(folgendes) or folgendes == "("
    return False


def add_implicit_multiplication(text):
    """Insert '*' at 2x, 2(, )2, )x, )( and x( (unless x( is a function call)."""
    ergebnis = []
    for b, current in enumerate(text):
        ergebnis.append(current)
        if b == len(text) - 1:
            break
        folgendes = text[b + 1]

        is_scientific = False
        if _is_digit(current) and folgendes in "Ee" and b + 2 < len(text):
            nach_e = text[b + 2]
            is_scientific = _is_digit(nach_e) or nach_e in "+-"

        is_perm_comb = (folgendes in "PC" and _is_digit(current)
                        and _has_digit_after_operator(text, b + 1))

        if _is_digit(current) and _is_letter(folgendes) and not is_perm_comb and not is_scientific:
            needs_multiply = True
        elif _is_digit(current) and folgendes == "(":
            needs_multiply = True
        elif current == ")" and (_is_digit(folgendes) or _is_letter(folgendes) or folgendes == "("):
            needs_multiply = True
        elif _is_letter(current) and folgendes == "(":
            needs_multiply = not _is_function(text, b)
        else:
            needs_multiply = False

        if needs_multiply:
            ergebnis.append("*")
    return "".join(ergebnis)


def serialize(nodes):
    """Node list -> PEMDAS string."""
    ergebnis = add_implicit_multiplication(_serialize_list(nodes))
    if ergebnis.startswith("+"):
        ergebnis = ergebnis[1:]
    return ergebnis


# -----------------------------
# Variables / equations
# -----------------------------

def _extract_from_list(nodes, variables):
    for node in nodes:
        _extract_from_node(node, variables)


def _extract_from_node(node, variables):
    if isinstance(node, N.LiteralNode):
        for treffer in LETTER_RUN.finditer(node.text):
            if treffer.group(0) not in NOT_VARIABLES:
                variables.add(treffer.group(0))
        return
    if isinstance(node, (N.AnsNode, N.ConstantNode, N.UnitVectorNode, N.NewlineNode)):
        return
    if isinstance(node, (N.SummationNode, N.DerivativeNode)):
        for name, kinder in node.child_lists():
            if name != "variable":
                _extract_from_list(kinder, variables)
        gebunden = _serialize_list(node.variable).strip()
        variables.discard(gebunden)
        return
    if isinstance(node, N.TrigNode):
        # the argument only; the function name is never a variable
        _extract_from_list(node.argument, variables)
        return
    if isinstance(node, N.RootNode):
        _extract_from_list(node.radicand, variables)
        if not node.is_square_root:
            _extract_from_list(node.index, variables)
        return
    for _, kinder in node.child_lists():
        _extract_from_list(kinder, variables)


def extract_variables(nodes):
    """Free variable names in a node list."""
    variables = set()
    _extract_from_list(nodes, variables)
    return variables


def is_equation(nodes):
    return "=" in serialize(nodes)


def split_equation(nodes):
    """[lhs, rhs] of a single equation, None otherwise."""
    text = serialize(nodes)
    if "=" not in text:
        return None
    seiten = text.split("=")
    if len(seiten) != 2:
        return None
    return [seiten[0].strip(), seiten[1].strip()]


# -----------------------------
# JSON persistence
# -----------------------------

def node_to_dict(node):
    """One node -> tagged dict with child lists as arrays."""
    if type(node) not in N.NODE_TYPES.values():
        logger.warning("Unknown node type %s persisted as empty literal", type(node).__name__)
        return {"type": "literal", "text": ""}

    eintrag = {"type": node.type_name}
    for name in node.value_fields:
        eintrag[JSON_KEYS.get(name, name)] = getattr(node, name)
    for name, kinder in node.child_lists():
        eintrag[JSON_KEYS.get(name, name)] = [node_to_dict(kind) for kind in kinder]
    return eintrag


def _node_list_from_json(daten):
    if not isinstance(daten, list) or not daten:
        return [N.LiteralNode()]
    return [node_from_dict(eintrag) for eintrag in daten]


def _text_value(daten, key, default):
    wert = daten.get(key, default)
    return wert if isinstance(wert, str) else default


def _bool_value(daten, key, default):
    wert = daten.get(key, default)
    return wert if isinstance(wert, bool) else default


def node_from_dict(daten):
    """Tagged dict -> node. Unknown tags and missing fields degrade to empty literals."""
    if not isinstance(daten, dict):
        raise E.SerializationError(f"{daten!r}", code="4001")

    typ = _text_value(daten, "type", "literal")

    if typ == "literal":
        return N.LiteralNode(_text_value(daten, "text", ""))
    if typ == "newline":
        return N.NewlineNode()
    if typ == "constant":
        return N.ConstantNode(_text_value(daten, "constant", ""))
    if typ == "unit_vector":
        return N.UnitVectorNode(_text_value(daten, "axis", "x"))
    if typ == "trig":
        return N.TrigNode(_text_value(daten, "function", "sin"),
                          _node_list_from_json(daten.get("argument")))
    if typ == "root":
        return N.RootNode(_bool_value(daten, "isSquareRoot", False),
                          _node_list_from_json(daten.get("index")),
                          _node_list_from_json(daten.get("radicand")))
    if typ == "log":
        return N.LogNode(_bool_value(daten, "isNaturalLog", False),
                         _node_list_from_json(daten.get("base")),
                         _node_list_from_json(daten.get("argument")))

    klasse = N.NODE_TYPES.get(typ)
    if klasse is None:
        logger.debug("Unknown node type %r, using empty literal", typ)
        return N.LiteralNode()
    kinder = [_node_list_from_json(daten.get(name)) for name in klasse.child_fields]
    return klasse(*kinder)


def serialize_to_json(nodes):
    return json.dumps([node_to_dict(node) for node in nodes], ensure_ascii=False)


def deserialize_from_json(json_string):
    """Inverse of serialize_to_json; never raises, corrupt input gives one empty literal."""
    if not json_string:
        return [N.LiteralNode()]
    try:
        daten = json.loads(json_string)
        if not isinstance(daten, list):
            raise E.SerializationError(f"{type(daten).__name__}", code="4003")
        nodes = [node_from_dict(eintrag) for eintrag in daten]
    except (E.MathError, ValueError, TypeError) as e:
        logger.warning("Could not restore expression: %s", e)
        return [N.LiteralNode()]
    return nodes or [N.LiteralNode()]
