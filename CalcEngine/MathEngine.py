# MathEngine.py
"""""
Numeric calculation engine.

Pipeline
--------
1) Preprocessor: rewrites the raw string (glyphs, constants, degree/rad,
   perm/comb, factorials, sum/prod/diff/int, implicit multiplication).
2) Tokenizer: flat list of numbers (float / complex), operators, parentheses,
   '%' and function names.
3) Parser: recursive descent, evaluating while it parses
   (sum -> term -> power -> unary -> factor). Values are float or complex;
   complex results with a negligible imaginary part are demoted to float.
4) Formatter: NumberFormat.format_result with the current Settings.

evaluate() is the public entry point; it never raises and returns "" when the
input cannot be evaluated.
"""""
import logging
import math
import re
from decimal import Decimal

from . import ScientificEngine
from . import NumberFormat
from . import error as E

logger = logging.getLogger(__name__)

Operations = ["+", "-", "*", "/", "^"]

PI_TEXT = repr(math.pi)
E_TEXT = repr(math.e)


def plain_decimal(value):
    """Decimal text without exponent, so no stray 'e' reaches the constant pass."""
    return format(Decimal(repr(value)), "f")


# (symbol regex, value text); a preceding digit, ')' or subscript zero gets an explicit '*'
CONSTANT_PATTERNS = [
    (re.compile(r"([\d)₀])?π"), PI_TEXT),
    (re.compile(r"([\d)₀])?(?<![a-zA-Z])e(?![a-zA-Z⁻])"), E_TEXT),
    (re.compile(r"([\d)₀])?ε₀"), plain_decimal(ScientificEngine.EPSILON_0)),
    (re.compile(r"([\d)₀])?[μµ]₀"), plain_decimal(ScientificEngine.MU_0)),
    (re.compile(r"([\d)₀])?c₀"), "299792458"),
    (re.compile(r"([\d)₀])?e⁻"), plain_decimal(ScientificEngine.E_MINUS)),
    (re.compile(r"([\d)₀])?φ"), repr(ScientificEngine.PHI)),
]

IMPLICIT_MULTIPLICATION = [
    (re.compile(r"(\d)\("), r"\1*("),
    (re.compile(r"\)(\d)"), r")*\1"),
    (re.compile(r"\)\("), ")*("),
    (re.compile(r"\)(i)(?![a-zA-Z])"), ")*(i)"),
    (re.compile(r"(?<![a-zA-Z])(i)\("), "(i)*("),
]

# 2e3, 1.5e-4: exponent, not Euler's number
SCIENTIFIC_NOTATION = re.compile(r"(\d)e(?=[+\-]?\d)")
ANS_PATTERN = re.compile(r"ans(\d+)", re.IGNORECASE)
ANSWER_VALUE_PATTERN = re.compile(r"=\s*(-?\d+\.?\d*)")
FACTORIAL_PATTERN = re.compile(r"(\d+)!")
CALCULUS_FUNCTIONS = ["sum", "prod", "diff", "int"]


# -----------------------------
# Utilities / small helpers
# -----------------------------

def find_matching_paren(expression, open_index):
    """Index of the ')' closing the '(' at open_index, or -1."""
    if open_index >= len(expression) or expression[open_index] != "(":
        return -1
    depth = 1
    for b in range(open_index + 1, len(expression)):
        if expression[b] == "(":
            depth += 1
        elif expression[b] == ")":
            depth -= 1
            if depth == 0:
                return b
    return -1


def split_top_level_args(content, expected=None):
    """Split on commas outside parentheses; None if the count differs from expected."""
    teile = []
    depth = 0
    last_index = 0
    for b, char in enumerate(content):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            teile.append(content[last_index:b])
            last_index = b + 1
    teile.append(content[last_index:])
    if expected is not None and len(teile) != expected:
        return None
    return teile


def number_text(value):
    """Render a substituted value so the tokenizer reads it back unchanged.

    No exponent notation ('e' would be taken for Euler's number), negatives
    wrapped in parentheses.
    """
    if isinstance(value, int):
        text = str(value)
    elif math.isnan(value) or math.isinf(value):
        raise E.CalculationError(f"{value}", code="2004")
    elif abs(value - round(value)) < NumberFormat.INTEGER_TOLERANCE:
        text = str(int(round(value)))
    else:
        text = format(Decimal(repr(value)), "f")
    if text.startswith("-"):
        return f"({text})"
    return text


def replace_variable(body, variable, value):
    """Substitute a bound variable, leaving nested sum/prod/diff/int that rebind it alone."""
    pattern = re.compile(r"(?<![a-zA-Z0-9_])" + re.escape(variable) + r"(?![a-zA-Z0-9_])")
    calculus_call = re.compile(r"(?<![a-zA-Z])(" + "|".join(CALCULUS_FUNCTIONS) + r")\(")

    def ersetzen(text):
        return pattern.sub(lambda match: value, text)

    teile = []
    pos = 0
    while pos < len(body):
        treffer = calculus_call.search(body, pos)
        if treffer is None:
            break
        open_index = treffer.end() - 1
        close_index = find_matching_paren(body, open_index)
        if close_index == -1:
            break
        argumente = split_top_level_args(body[open_index + 1:close_index])
        if argumente[0].strip() == variable:
            teile.append(ersetzen(body[pos:treffer.start()]))
            teile.append(body[treffer.start():close_index + 1])
            pos = close_index + 1
        else:
            teile.append(ersetzen(body[pos:treffer.end()]))
            pos = treffer.end()
    teile.append(ersetzen(body[pos:]))
    return "".join(teile)


def strip_outer_parens(expression):
    expression = expression.strip()
    while expression.startswith("(") and find_matching_paren(expression, 0) == len(expression) - 1:
        expression = expression[1:-1].strip()
    return expression


def evaluate_simple_expression(expression):
    """Evaluate a sub-expression (function argument, bound) to a float, or None."""
    expression = strip_outer_parens(expression)
    try:
        return float(expression)
    except ValueError:
        pass
    try:
        wert = evaluate_expression(preprocess(expression))
    except (E.MathError, ValueError, ZeroDivisionError, OverflowError) as e:
        logger.debug("Sub-expression %r not evaluable: %s", expression, e)
        return None
    if isinstance(wert, complex):
        return None
    return wert


# -----------------------------
# Preprocessing
# -----------------------------

def _replace_constants(expression):
    for pattern, value_text in CONSTANT_PATTERNS:
        def ersetzen(match, value_text=value_text):
            before = match.group(1)
            if before is not None:
                return f"{before}*({value_text})"
            return f"({value_text})"
        expression = pattern.sub(ersetzen, expression)
    return expression


def _find_call(expression, names):
    """(name, start, open_paren, close_paren) of the leftmost call to one of names, or None."""
    treffer = re.search(r"(?<![a-zA-Z])(" + "|".join(names) + r")\(", expression)
    if treffer is None:
        return None
    name = treffer.group(1)
    open_index = treffer.end() - 1
    close_index = find_matching_paren(expression, open_index)
    if close_index == -1:
        raise E.SyntaxError(f"{name}(", code="3009")
    return name, treffer.start(), open_index, close_index


def _process_perm_comb(expression, name, is_permutation):
    aufruf = _find_call(expression, [name])
    while aufruf is not None:
        name, start, open_index, close_index = aufruf
        argumente = split_top_level_args(expression[open_index + 1:close_index], 2)
        if argumente is None:
            raise E.SyntaxError(f"{name} needs two arguments", code="3012")

        n_value = evaluate_simple_expression(argumente[0])
        r_value = evaluate_simple_expression(argumente[1])
        if n_value is None or r_value is None:
            raise E.CalculationError(f"{name}{expression[open_index:close_index + 1]}", code="2004")

        n, r = int(n_value), int(r_value)
        if is_permutation:
            ergebnis = ScientificEngine.permutation(n, r)
        else:
            ergebnis = ScientificEngine.combination(n, r)

        expression = expression[:start] + number_text(ergebnis) + expression[close_index + 1:]
        aufruf = _find_call(expression, [name])
    return expression


def _process_factorials(expression):
    return FACTORIAL_PATTERN.sub(
        lambda match: str(ScientificEngine.factorial(int(match.group(1)))), expression)


def _body_evaluator(body, variable):
    def evaluate_at(value):
        return evaluate_expression(preprocess(replace_variable(body, variable, number_text(value))))
    return evaluate_at


def _process_calculus(expression):
    """Replace sum/prod/diff/int calls, outermost first, by their numeric value."""
    aufruf = _find_call(expression, CALCULUS_FUNCTIONS)
    while aufruf is not None:
        name, start, open_index, close_index = aufruf
        expected = 3 if name == "diff" else 4
        argumente = split_top_level_args(expression[open_index + 1:close_index], expected)
        if argumente is None:
            raise E.SyntaxError(f"{name} needs {expected} arguments", code="3012")
        argumente = [teil.strip() for teil in argumente]
        if any(teil == "" for teil in argumente):
            raise E.SyntaxError(f"empty field in {name}", code="3001")

        variable, body = argumente[0], argumente[-1]
        evaluate_at = _body_evaluator(body, variable)
        grenzen = [evaluate_simple_expression(teil) for teil in argumente[1:-1]]
        if any(grenze is None for grenze in grenzen):
            raise E.CalculationError(f"{argumente[1:-1]}", code="2004")

        if name == "sum":
            ergebnis = ScientificEngine.summation(evaluate_at, grenzen[0], grenzen[1])
        elif name == "prod":
            ergebnis = ScientificEngine.summation(evaluate_at, grenzen[0], grenzen[1], is_product=True)
        elif name == "diff":
            ergebnis = ScientificEngine.derivative(evaluate_at, grenzen[0])
        else:
            ergebnis = ScientificEngine.integral(evaluate_at, grenzen[0], grenzen[1])

        logger.debug("%s(%s) = %r", name, ",".join(argumente), ergebnis)
        expression = expression[:start] + number_text(ergebnis) + expression[close_index + 1:]
        aufruf = _find_call(expression, CALCULUS_FUNCTIONS)
    return expression


def preprocess(expression):
    """Rewrite user text into the plain grammar the tokenizer understands."""
    expression = expression.replace(" ", "")
    expression = expression.replace("·", "*").replace("×", "*")
    expression = expression.replace("÷", "/").replace("−", "-")
    expression = expression.replace(NumberFormat.SMALL_CAPS_E, "E")
    expression = SCIENTIFIC_NOTATION.sub(r"\1E", expression)

    expression = expression.replace("°", f"*({PI_TEXT}/180)")
    expression = expression.replace("rad", f"*((1/{PI_TEXT})*180)")

    # πi and iπ before the general π replacement
    expression = expression.replace("πi", f"({PI_TEXT})*(i)").replace("iπ", f"(i)*({PI_TEXT})")
    expression = expression.replace("π*i", f"({PI_TEXT})*(i)").replace("i*π", f"(i)*({PI_TEXT})")

    expression = _replace_constants(expression)

    # bound-variable constructs first: their bodies are preprocessed again per value
    expression = _process_calculus(expression)
    expression = _process_perm_comb(expression, "perm", True)
    expression = _process_perm_comb(expression, "comb", False)
    expression = _process_factorials(expression)

    for pattern, replacement in IMPLICIT_MULTIPLICATION:
        expression = pattern.sub(replacement, expression)

    return expression


def preprocess_ans_references(expression, ans_values):
    """Replace ans<N> by the referenced cell's numeric answer, (0) when unusable."""
    ans_values = ans_values or {}

    def ersetzen(match):
        value = ans_values.get(int(match.group(1)))
        if value is None or not str(value).strip():
            return "(0)"
        value = str(value).strip()

        normalisiert = value.replace(",", "").replace(NumberFormat.SMALL_CAPS_E, "E").replace("−", "-")
        try:
            float(normalisiert)
            return f"({normalisiert})"
        except ValueError:
            pass

        # solver answers look like "x = 3"; take the first number after '='
        for zeile in value.split("\n"):
            treffer = ANSWER_VALUE_PATTERN.search(zeile)
            if treffer:
                return f"({treffer.group(1)})"
        return "(0)"

    return ANS_PATTERN.sub(ersetzen, expression)


# -----------------------------
# Tokenizer
# -----------------------------

def translator(expression):
    """Convert a preprocessed string into tokens.

    Numbers become float, imaginary literals ('2i', standalone 'i') complex;
    operators, '(', ')', '%' and function names stay strings.
    """
    tokens = []
    b = 0
    while b < len(expression):
        current_char = expression[b]

        # --- Numbers: digits, '.', optional exponent, optional trailing 'i' ---
        if current_char.isdigit() or current_char == ".":
            start = b
            while b < len(expression) and expression[b].isdigit():
                b += 1
            if b < len(expression) and expression[b] == ".":
                b += 1
                while b < len(expression) and expression[b].isdigit():
                    b += 1
            if b < len(expression) and expression[b] in "eE":
                rest = expression[b + 1:b + 3]
                if rest[:1].isdigit() or (rest[:1] in ("+", "-") and rest[1:2].isdigit()):
                    b += 2 if rest[:1] in ("+", "-") else 1
                    while b < len(expression) and expression[b].isdigit():
                        b += 1
            number_string = expression[start:b]
            try:
                wert = float(number_string)
            except ValueError:
                raise E.SyntaxError(f"{number_string}", code="3008")

            if b < len(expression) and expression[b] == "i" and not _letter_at(expression, b + 1):
                tokens.append(complex(0, wert))
                b += 1
            else:
                tokens.append(wert)
            continue

        # --- Operators, parentheses, percent ---
        elif current_char in Operations or current_char in "()%":
            tokens.append(current_char)

        # --- Letters: function names or the imaginary unit ---
        elif current_char.isalpha() and current_char.isascii():
            start = b
            while _letter_at(expression, b):
                b += 1
            name = expression[start:b]
            funktion = _match_function(name, expression, b)
            if funktion is not None:
                tokens.append(funktion)
            elif name == "i":
                tokens.append(complex(0, 1))
            else:
                raise E.SyntaxError(f"{name}", code="3019")
            continue

        else:
            raise E.SyntaxError(f"{current_char!r}", code="3019")

        b += 1

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Tokens: %s", tokens)
    return tokens


def _letter_at(expression, index):
    return index < len(expression) and expression[index].isascii() and expression[index].isalpha()


def _match_function(name, expression, end):
    """A letter run names a function only when it is directly followed by '('."""
    name = name.lower()
    if name in ScientificEngine.FUNCTIONS and end < len(expression) and expression[end] == "(":
        return name
    return None


# -----------------------------
# Parser (recursive descent, evaluating)
# -----------------------------

class PercentValue:
    """A value written with a trailing '%'."""
    def __init__(self, value):
        self.value = value

    def unwrap(self):
        return self.value / 100

    def __repr__(self):
        return f"PercentValue({self.value!r})"


def _unwrap(value):
    if isinstance(value, PercentValue):
        return value.unwrap()
    return value


def _negate(value):
    if isinstance(value, PercentValue):
        return PercentValue(-value.value)
    return -value


def _divide(left, right):
    if right == 0:
        if left == 0:
            return math.nan
        if isinstance(left, complex):
            return complex(math.inf, math.inf)
        return -math.inf if left < 0 else math.inf
    return left / right


def evaluate_expression(expression):
    """Parse and evaluate a preprocessed string; raises MathError on bad input."""
    tokens = translator(expression)

    def parse_factor(tokens):
        """Parenthesised group, function call or number, each with an optional '%'."""
        if not tokens:
            raise E.SyntaxError("Missing number.", code="3001")
        token = tokens.pop(0)

        if token == "(":
            ergebnis = parse_sum(tokens)
            if not tokens or tokens.pop(0) != ")":
                raise E.SyntaxError("Missing closing parenthesis ')'", code="3009")

        elif isinstance(token, str) and token in ScientificEngine.FUNCTIONS:
            if not tokens or tokens.pop(0) != "(":
                raise E.SyntaxError(f"{token}", code="2001")
            argument = parse_sum(tokens)
            if not tokens or tokens.pop(0) != ")":
                raise E.SyntaxError(f"Missing closing parenthesis after function '{token}'", code="3009")
            ergebnis = ScientificEngine.apply_function(token, _unwrap(argument))

        elif isinstance(token, (float, complex)):
            ergebnis = token

        else:
            raise E.SyntaxError(f"{token}", code="3011")

        if tokens and tokens[0] == "%":
            tokens.pop(0)
            return PercentValue(ergebnis)
        return ergebnis

    def parse_unary(tokens):
        """Leading '+' / '-'; a negated percent stays a percent."""
        if tokens and tokens[0] in ("+", "-"):
            operator = tokens.pop(0)
            operand = parse_unary(tokens)
            if operator == "-":
                return _negate(operand)
            return operand
        return parse_factor(tokens)

    def parse_power(tokens):
        """'^' with the exponent re-entering unary."""
        basis = parse_unary(tokens)
        while tokens and tokens[0] == "^":
            tokens.pop(0)
            exponent = parse_unary(tokens)
            basis = ScientificEngine.power(_unwrap(basis), _unwrap(exponent))
        return basis

    def parse_term(tokens):
        """Multiplication and division; percents unwrap to value/100."""
        aktueller_wert = parse_power(tokens)
        while tokens and tokens[0] in ("*", "/"):
            operator = tokens.pop(0)
            rechter_wert = _unwrap(parse_power(tokens))
            linker_wert = _unwrap(aktueller_wert)
            if operator == "*":
                aktueller_wert = ScientificEngine.demote(linker_wert * rechter_wert)
            else:
                aktueller_wert = ScientificEngine.demote(_divide(linker_wert, rechter_wert))
        return aktueller_wert

    def parse_sum(tokens):
        """Addition and subtraction with percent-of-the-other-operand semantics."""
        aktueller_wert = parse_term(tokens)
        while tokens and tokens[0] in ("+", "-"):
            operator = tokens.pop(0)
            rechter_wert = parse_term(tokens)

            links_prozent = isinstance(aktueller_wert, PercentValue)
            rechts_prozent = isinstance(rechter_wert, PercentValue)
            if rechts_prozent and not links_prozent:
                # a + b% == a + a*b/100
                rechter_wert = aktueller_wert * rechter_wert.value / 100
            elif links_prozent and not rechts_prozent:
                # a% + b == a% of b, plus b
                aktueller_wert = rechter_wert * aktueller_wert.value / 100
            linker_wert = _unwrap(aktueller_wert)
            rechter_wert = _unwrap(rechter_wert)

            if operator == "+":
                aktueller_wert = ScientificEngine.demote(linker_wert + rechter_wert)
            else:
                aktueller_wert = ScientificEngine.demote(linker_wert - rechter_wert)
        return aktueller_wert

    ergebnis = parse_sum(tokens)
    if tokens:
        raise E.SyntaxError(f"{tokens}", code="3020")
    return ScientificEngine.demote(_unwrap(ergebnis))


# -----------------------------
# Public entry point
# -----------------------------

def evaluate(expression, settings=None):
    """Formatted numeric result of expression, or "" if it cannot be evaluated."""
    try:
        ergebnis = evaluate_expression(preprocess(expression))
        return NumberFormat.format_result(ergebnis, settings)
    except (E.MathError, ValueError, ZeroDivisionError, OverflowError, RecursionError) as e:
        logger.debug("evaluate(%r) failed: %s", expression, e)
        return ""
