# NodeConverter.py
"""""
Node tree -> exact expression (Expressions.Expr).

Pipeline
--------
1) Tokenizer: structured nodes become ready-made Expr tokens (converted
   recursively), literal text is split into numbers, operators, parentheses,
   constants, function names and variable names.
2) Implicit multiplication: '*' inserted between number / ')' / Expr and a
   following '(' / number / Expr / function.
3) Token parser: same precedence ladder as the numeric engine
   (sum -> term -> power -> unary -> primary), building Expr nodes instead of
   numbers. Integer literals are exact, short decimals become fractions.

sum / prod / diff / int nodes have no exact form; they are evaluated by the
numeric engine and enter the tree as an exact number when a short fraction matches
(1/3 from an integral); otherwise the whole input goes to the numeric engine.
"""""
import fractions
import logging
import math

from . import Expressions as X
from . import MathEngine
from . import MathNodes as N
from . import Serializer
from . import error as E

logger = logging.getLogger(__name__)

NUMBER = "number"
OPERATOR = "operator"
LPAREN = "lparen"
RPAREN = "rparen"
EQUALS = "equals"
FUNCTION = "function"
EXPR = "expr"

MAX_FRACTION_DIGITS = 10
INTEGER_TOLERANCE = 1e-10
# computed values (sum, diff, int) only count as exact below this denominator
MAX_COMPUTED_DENOMINATOR = 1000
COMPUTED_TOLERANCE = 1e-8

# literal function names the parser turns into Expr nodes
TEXT_FUNCTIONS = X.TRIG_FUNCTIONS + ["abs", "sqrt", "ln", "log"]

# Constant symbols as they appear in ConstantNode / literal text
SYMBOL_CONSTANTS = {
    "π": "pi",
    "e": "e",
    "φ": "phi",
    "ε₀": "epsilon0",
    "μ₀": "mu0",
    "µ₀": "mu0",
    "c₀": "c0",
    "e⁻": "eMinus",
}

IMPLICIT_LEFT = {NUMBER, RPAREN, EXPR}
IMPLICIT_RIGHT = {NUMBER, LPAREN, EXPR, FUNCTION}


# -----------------------------
# Numbers
# -----------------------------

def double_to_exact(value):
    """Nearest exact number: integers stay exact, up to 10 decimals become a fraction."""
    if math.isnan(value) or math.isinf(value):
        raise E.CalculationError(f"{value}", code="3008")
    if abs(value - round(value)) < INTEGER_TOLERANCE:
        return X.Int(round(value))

    text = repr(value)
    if "e" in text or "E" in text:
        return X.Int(round(value))
    nachkommastellen = len(text.split(".", 1)[1]) if "." in text else 0
    if nachkommastellen > MAX_FRACTION_DIGITS:
        return X.Int(round(value))
    return X.rational(fractions.Fraction(text))


def computed_to_exact(value):
    """Exact number behind a computed float, CalculationError when there is none.

    0.33333333333333337 from an integral is 1/3; e - 1 has no short fraction
    and has to stay numeric.
    """
    if math.isnan(value) or math.isinf(value):
        raise E.CalculationError(f"{value}", code="3008")
    if abs(value - round(value)) < INTEGER_TOLERANCE * max(1.0, abs(value)):
        return X.Int(round(value))

    bruch = fractions.Fraction(value).limit_denominator(MAX_COMPUTED_DENOMINATOR)
    if abs(float(bruch) - value) > COMPUTED_TOLERANCE * max(1.0, abs(value)):
        raise E.CalculationError(f"{value} has no exact form", code="3008")
    return X.rational(bruch)


def parse_number(text):
    """Int for integer literals, otherwise double_to_exact of the float value."""
    if text.isdigit():
        return X.Int(int(text))
    try:
        return double_to_exact(float(text))
    except ValueError:
        raise E.SyntaxError(f"{text}", code="3008")


# -----------------------------
# Tokenizer
# -----------------------------

def _is_digit(char):
    return char != "" and char in "0123456789"


def _is_letter(char):
    if char == "":
        return False
    return (char.isascii() and char.isalpha()) or "α" <= char <= "ω" or "Α" <= char <= "Ω"


def _read_number(text, b):
    """Digits, an optional fraction and an optional exponent (E, e or small-caps E)."""
    start = b
    while b < len(text) and (_is_digit(text[b]) or text[b] == "."):
        b += 1
    zahl = text[start:b]

    # exponent only when digits follow, so '2e' stays 2·e
    if b < len(text) and text[b] in "eEᴇ":
        rest = b + 1
        if rest < len(text) and text[rest] in "+-":
            rest += 1
        if rest < len(text) and _is_digit(text[rest]):
            ende = rest
            while ende < len(text) and _is_digit(text[ende]):
                ende += 1
            zahl += "e" + text[b + 1:ende]
            b = ende
    return zahl, b


def tokenize_literal(text):
    """Literal text -> [(kind, value)]."""
    text = text.strip()
    text = text.replace("·", "*").replace("×", "*").replace("−", "-").replace("÷", "/")

    tokens = []
    b = 0
    while b < len(text):
        char = text[b]
        naechstes = text[b + 1] if b + 1 < len(text) else ""

        if char == " ":
            b += 1
        elif char in "+-*/^":
            tokens.append((OPERATOR, char))
            b += 1
        elif char == "=":
            tokens.append((EQUALS, char))
            b += 1
        elif char == "(":
            tokens.append((LPAREN, char))
            b += 1
        elif char == ")":
            tokens.append((RPAREN, char))
            b += 1
        elif _is_digit(char) or (char == "." and _is_digit(naechstes)):
            zahl, b = _read_number(text, b)
            tokens.append((NUMBER, zahl))
        elif char + naechstes in SYMBOL_CONSTANTS:
            tokens.append((EXPR, X.Const(SYMBOL_CONSTANTS[char + naechstes])))
            b += 2
        elif char in ("π", "φ") or (char == "e" and not _is_letter(naechstes)):
            tokens.append((EXPR, X.Const(SYMBOL_CONSTANTS[char])))
            b += 1
        elif _is_letter(char):
            start = b
            while b < len(text) and (_is_letter(text[b]) or _is_digit(text[b])):
                b += 1
            wort = text[start:b]
            if wort.lower() == "pi":
                tokens.append((EXPR, X.Const("pi")))
            elif wort in TEXT_FUNCTIONS and b < len(text) and text[b] == "(":
                tokens.append((FUNCTION, wort))
            else:
                tokens.append((EXPR, X.Var(wort)))
        else:
            raise E.SyntaxError(f"{char}", code="3019")
    return tokens


def ans_values_from(ans_expressions):
    """Exact ANS values -> the {index: "number"} form MathEngine understands."""
    ans_values = {}
    for index, expr in (ans_expressions or {}).items():
        try:
            wert = expr.to_double()
        except E.MathError:
            continue
        if math.isfinite(wert):
            # plain digits: an exponent "e" would read as Euler's number
            ans_values[index] = MathEngine.plain_decimal(wert)
    return ans_values


def _numeric_node(node, ans_expressions):
    """sum / prod / diff / int: numeric value through the serializer and MathEngine."""
    text = Serializer.serialize([node])
    if ans_expressions:
        text = MathEngine.preprocess_ans_references(text, ans_values_from(ans_expressions))

    wert = MathEngine.evaluate_expression(MathEngine.preprocess(text))
    if isinstance(wert, complex):
        raise E.CalculationError(f"complex value {wert} in {text}", code="2004")
    logger.debug("%s evaluated numerically to %r", text, wert)
    return computed_to_exact(wert)


def _tokenize_node(node, ans_expressions):
    def sub(nodes):
        return convert(nodes, ans_expressions)

    if isinstance(node, N.LiteralNode):
        return tokenize_literal(node.text)
    if isinstance(node, N.NewlineNode):
        return []
    if isinstance(node, N.FractionNode):
        return [(EXPR, X.Div(sub(node.numerator), sub(node.denominator)))]
    if isinstance(node, N.ExponentNode):
        return [(EXPR, X.Pow(sub(node.base), sub(node.power)))]
    if isinstance(node, N.RootNode):
        index = X.Int(2) if node.is_square_root else sub(node.index)
        return [(EXPR, X.Root(sub(node.radicand), index))]
    if isinstance(node, N.LogNode):
        if node.is_natural_log:
            return [(EXPR, X.Log.ln(sub(node.argument)))]
        return [(EXPR, X.Log(sub(node.base), sub(node.argument)))]
    if isinstance(node, N.TrigNode):
        funktion = node.function.lower()
        if funktion == "abs":
            return [(EXPR, X.Abs(sub(node.argument)))]
        if funktion not in X.TRIG_FUNCTIONS:
            raise E.CalculationError(f"{node.function}", code="2000")
        return [(EXPR, X.Trig(funktion, sub(node.argument)))]
    if isinstance(node, N.ParenthesisNode):
        return [(EXPR, sub(node.content))]
    if isinstance(node, N.PermutationNode):
        return [(EXPR, X.Perm(sub(node.n), sub(node.r)))]
    if isinstance(node, N.CombinationNode):
        return [(EXPR, X.Comb(sub(node.n), sub(node.r)))]
    if isinstance(node, (N.SummationNode, N.DerivativeNode)):
        return [(EXPR, _numeric_node(node, ans_expressions))]
    if isinstance(node, N.ConstantNode):
        if node.constant in SYMBOL_CONSTANTS:
            return [(EXPR, X.Const(SYMBOL_CONSTANTS[node.constant]))]
        return [(EXPR, X.Var(node.constant))]
    if isinstance(node, N.AnsNode):
        index_text = N.literal_text(node.index).strip()
        if index_text.isdigit() and ans_expressions and int(index_text) in ans_expressions:
            return [(EXPR, ans_expressions[int(index_text)])]
        # unresolved: stays a free variable
        return [(EXPR, X.Var(f"ans{index_text}"))]
    if isinstance(node, N.UnitVectorNode):
        return [(EXPR, X.Var(f"e_{node.axis}"))]

    logger.debug("No conversion for %r", node)
    return []


def tokenize(nodes, ans_expressions=None):
    """Token list of a node list, implicit '*' included."""
    roh = []
    for node in nodes:
        roh.extend(_tokenize_node(node, ans_expressions))

    tokens = []
    for token in roh:
        if tokens and tokens[-1][0] in IMPLICIT_LEFT and token[0] in IMPLICIT_RIGHT:
            tokens.append((OPERATOR, "*"))
        tokens.append(token)
    return tokens


# -----------------------------
# Token parser
# -----------------------------

def _function_expr(name, argument):
    if name in X.TRIG_FUNCTIONS:
        return X.Trig(name, argument)
    if name == "abs":
        return X.Abs(argument)
    if name == "sqrt":
        return X.Root.sqrt(argument)
    if name == "ln":
        return X.Log.ln(argument)
    return X.Log.log10(argument)


def parse_tokens(tokens):
    """Token list -> Expr (unsimplified)."""
    tokens = list(tokens)

    def parse_primary(tokens):
        if not tokens:
            raise E.SyntaxError("Missing operand.", code="3001")
        art, wert = tokens.pop(0)

        if art == EXPR:
            return wert
        if art == NUMBER:
            return parse_number(wert)
        if art == LPAREN:
            inneres = parse_sum(tokens)
            if not tokens or tokens.pop(0)[0] != RPAREN:
                raise E.SyntaxError("Missing closing parenthesis ')'", code="3009")
            return inneres
        if art == FUNCTION:
            if not tokens or tokens.pop(0)[0] != LPAREN:
                raise E.SyntaxError(f"{wert}", code="2001")
            argument = parse_sum(tokens)
            if not tokens or tokens.pop(0)[0] != RPAREN:
                raise E.SyntaxError(f"Missing closing parenthesis after function '{wert}'", code="3009")
            return _function_expr(wert, argument)
        raise E.SyntaxError(f"{wert}", code="3011")

    def parse_unary(tokens):
        if tokens and tokens[0] == (OPERATOR, "-"):
            tokens.pop(0)
            return parse_unary(tokens).negate()
        if tokens and tokens[0] == (OPERATOR, "+"):
            tokens.pop(0)
            return parse_unary(tokens)
        return parse_primary(tokens)

    def parse_power(tokens):
        basis = parse_unary(tokens)
        while tokens and tokens[0] == (OPERATOR, "^"):
            tokens.pop(0)
            basis = X.Pow(basis, parse_unary(tokens))
        return basis

    def parse_term(tokens):
        aktueller_wert = parse_power(tokens)
        while tokens and tokens[0] in ((OPERATOR, "*"), (OPERATOR, "/")):
            operator = tokens.pop(0)[1]
            rechts = parse_power(tokens)
            if operator == "*":
                aktueller_wert = X.Prod([aktueller_wert, rechts])
            else:
                aktueller_wert = X.Div(aktueller_wert, rechts)
        return aktueller_wert

    def parse_sum(tokens):
        aktueller_wert = parse_term(tokens)
        while tokens and tokens[0] in ((OPERATOR, "+"), (OPERATOR, "-")):
            operator = tokens.pop(0)[1]
            rechts = parse_term(tokens)
            if operator == "-":
                rechts = rechts.negate()
            aktueller_wert = X.Sum([aktueller_wert, rechts])
        return aktueller_wert

    ergebnis = parse_sum(tokens)
    if tokens:
        raise E.SyntaxError(f"{tokens}", code="3020")
    return ergebnis


# -----------------------------
# Public entry point
# -----------------------------

def convert(nodes, ans_expressions=None):
    """Simplified Expr of a node list; Int(0) for an empty list. Raises MathError on bad input."""
    tokens = tokenize(nodes, ans_expressions)
    if not tokens:
        return X.Int(0)
    logger.debug("tokens: %s", tokens)
    return parse_tokens(tokens).simplify()
