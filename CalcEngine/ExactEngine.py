# ExactEngine.py
"""""
Exact evaluation of a node list.

evaluate() never raises. It hands back an ExactResult that carries the
simplified Expr, its node rendering for display and a float approximation.

Pipeline
--------
1) empty check            -> ExactResult.empty()
2) literal runs split on '=' and newlines into separate nodes
3) incomplete check       -> ExactResult.empty()   (user is still typing)
4) newline                -> linear system (Cramer on Expr determinants)
5) '='                    -> single equation (exact linear / quadratic formula)
6) otherwise              -> NodeConverter.convert + simplify

Whatever the exact path cannot represent (complex values, non-polynomial
equations) is handed to the numeric Solver and comes back as plain text.
"""""
import logging
import math
import re

from . import Expressions as X
from . import MathNodes as N
from . import NodeConverter
from . import NumberFormat
from . import Serializer
from . import Solver
from . import error as E

logger = logging.getLogger(__name__)

MAX_SYSTEM_SIZE = 3
IMAGINARY_UNIT = "i"

OPERATOR_GLYPHS = {"·": "*", "×": "*", "−": "-", "÷": "/"}
OPERATOR_CHARS = re.compile(r"[+\-*/^·×÷−]")
# a sign may follow any operator (3*-2), nothing else may
CONSECUTIVE_OPERATORS = re.compile(r"[+\-*/^][*/^]")
EMPTY_FIELD = "EMPTY_FIELD"


class ExactResult:
    """Outcome of one exact evaluation.

    expr        simplified expression (None for equations / numeric fallbacks)
    math_nodes  node rendering for display
    numerical   float approximation or None
    is_exact    True when the exact form is the one worth showing (√2, π, ...)
    error       message when evaluation failed
    is_empty    nothing to show yet
    text        plain rendering for results without a single expr
    solutions   exact values behind the "x = ..." lines of a solved equation
    """

    def __init__(self, expr=None, math_nodes=None, numerical=None, is_exact=True,
                 error=None, is_empty=False, text=None, solutions=None):
        self.expr = expr
        self.math_nodes = math_nodes
        self.numerical = numerical
        self.is_exact = is_exact
        self.error = error
        self.is_empty = is_empty
        self.text = text
        self.solutions = list(solutions) if solutions else []

    @classmethod
    def empty(cls):
        return cls(is_exact=False, is_empty=True)

    @classmethod
    def failed(cls, message):
        return cls(is_exact=False, error=message)

    @property
    def has_error(self):
        return self.error is not None

    def to_exact_string(self):
        if self.has_error:
            return self.error
        if self.is_empty:
            return ""
        if self.text is not None:
            return self.text
        if self.expr is None:
            return ""
        return str(self.expr)

    def to_numerical_string(self, precision=6):
        if self.is_empty:
            return ""
        return NumberFormat.to_numerical_string(self.numerical, precision)

    def __repr__(self):
        if self.is_empty:
            return "ExactResult(empty)"
        if self.has_error:
            return f"ExactResult(error={self.error!r})"
        return f"ExactResult({self.to_exact_string()!r}, numerical={self.numerical!r}, is_exact={self.is_exact})"


# -----------------------------
# Input checks
# -----------------------------

def normalize_nodes(nodes):
    """Split literal text on '\\n' and '=' so lines and sides are separate nodes."""
    ergebnis = []
    for node in nodes:
        if not isinstance(node, N.LiteralNode) or ("\n" not in node.text and "=" not in node.text):
            ergebnis.append(node)
            continue
        for b, zeile in enumerate(node.text.split("\n")):
            if b > 0:
                ergebnis.append(N.NewlineNode())
            for j, teil in enumerate(zeile.split("=")):
                if j > 0:
                    ergebnis.append(N.LiteralNode("="))
                if teil:
                    ergebnis.append(N.LiteralNode(teil))
    return ergebnis


def is_empty_expression(nodes):
    """Nothing but whitespace, operators and line breaks."""
    for node in nodes:
        if isinstance(node, N.LiteralNode):
            if OPERATOR_CHARS.sub("", node.text).strip():
                return False
        elif not isinstance(node, N.NewlineNode):
            return False
    return True


def _is_node_list_empty(nodes):
    for node in nodes:
        if isinstance(node, N.LiteralNode):
            if node.text.strip():
                return False
        elif not isinstance(node, N.NewlineNode):
            return False
    return True


def _required_fields(node):
    """Child lists that must hold something before the node can be evaluated."""
    if isinstance(node, N.RootNode):
        return [node.radicand] if node.is_square_root else [node.radicand, node.index]
    if isinstance(node, N.LogNode):
        return [node.argument] if node.is_natural_log else [node.argument, node.base]
    if isinstance(node, N.SummationNode):
        return [node.lower, node.upper, node.body]
    if isinstance(node, N.DerivativeNode):
        return [node.at, node.body]
    if isinstance(node, N.AnsNode):
        return []
    return [kinder for _, kinder in node.child_lists()]


def _validation_text(nodes):
    """Rough text of a node list; a structured node with an empty field becomes EMPTY_FIELD."""
    teile = []
    for node in nodes:
        if isinstance(node, N.LiteralNode):
            teile.append(node.text)
        elif isinstance(node, N.ConstantNode):
            teile.append(node.constant)
        elif isinstance(node, N.AnsNode):
            teile.append("ans")
        elif isinstance(node, N.UnitVectorNode):
            teile.append(f"e_{node.axis}")
        elif isinstance(node, N.NewlineNode):
            continue
        else:
            felder = [_validation_text(kinder) for kinder in _required_fields(node)]
            if any(not feld.strip() for feld in felder):
                teile.append(EMPTY_FIELD)
            else:
                teile.append("(" + ",".join(felder) + ")")
    return "".join(teile)


def _normalize_operators(text):
    for glyph, operator in OPERATOR_GLYPHS.items():
        text = text.replace(glyph, operator)
    return text


def ends_with_operator(text):
    text = _normalize_operators(text.strip())
    return bool(text) and text[-1] in "+-*/^("


def starts_with_invalid_operator(text):
    text = _normalize_operators(text.strip())
    return bool(text) and text[0] in "*/^"


def has_consecutive_operators(text):
    return CONSECUTIVE_OPERATORS.search(_normalize_operators(text.replace(" ", ""))) is not None


def _has_invalid_content(text):
    return ends_with_operator(text) or starts_with_invalid_operator(text) or has_consecutive_operators(text)


def has_empty_required_fields(nodes):
    for node in nodes:
        if isinstance(node, (N.LiteralNode, N.NewlineNode, N.ConstantNode, N.UnitVectorNode)):
            continue
        for kinder in _required_fields(node):
            if _is_node_list_empty(kinder) or _has_invalid_content(_validation_text(kinder)):
                return True
            if has_empty_required_fields(kinder):
                return True
    return False


def _split_at(nodes, trenner):
    """Split a node list at every node for which trenner(node) is true."""
    teile = [[]]
    for node in nodes:
        if trenner(node):
            teile.append([])
        else:
            teile[-1].append(node)
    return teile


def _is_equals(node):
    return isinstance(node, N.LiteralNode) and node.text == "="


def _is_newline(node):
    return isinstance(node, N.NewlineNode)


def is_incomplete(nodes):
    """True while the user is still typing: a dangling operator or an empty field.

    Every line and every side of an '=' is checked on its own; blank lines are skipped.
    """
    zeilen = [zeile for zeile in _split_at(nodes, _is_newline) if not _is_node_list_empty(zeile)]
    if not zeilen:
        return True
    for zeile in zeilen:
        for seite in _split_at(zeile, _is_equals):
            text = _validation_text(seite)
            if not text.strip() or _has_invalid_content(text):
                return True
            if has_empty_required_fields(seite):
                return True
    return False


# -----------------------------
# Expression inspection
# -----------------------------

def _children(expr):
    if isinstance(expr, X.Sum):
        return expr.terms
    if isinstance(expr, X.Prod):
        return expr.factors
    if isinstance(expr, X.Pow):
        return [expr.base, expr.exponent]
    if isinstance(expr, X.Root):
        return [expr.radicand, expr.index]
    if isinstance(expr, X.Log):
        return [expr.base, expr.argument]
    if isinstance(expr, X.Trig):
        return [expr.argument]
    if isinstance(expr, X.Abs):
        return [expr.operand]
    if isinstance(expr, (X.Div, X.Frac)):
        return [expr.numerator, expr.denominator]
    if isinstance(expr, (X.Perm, X.Comb)):
        return [expr.n, expr.r]
    return []


def find_variables(expr):
    """Names of all Var nodes in expr."""
    if isinstance(expr, X.Var):
        return {expr.name}
    variables = set()
    for kind in _children(expr):
        variables |= find_variables(kind)
    return variables


def has_irrational_parts(expr):
    """Roots, constants, logs or trig values that survive simplification."""
    if isinstance(expr, X.Root):
        einfach = expr.simplify()
        return isinstance(einfach, X.Root) or (
            isinstance(einfach, X.Prod) and any(isinstance(f, X.Root) for f in einfach.factors))
    if isinstance(expr, X.Log):
        return isinstance(expr.simplify(), X.Log)
    if isinstance(expr, X.Trig):
        return isinstance(expr.simplify(), X.Trig)
    if isinstance(expr, X.Const):
        return True
    if isinstance(expr, (X.Sum, X.Prod, X.Div, X.Pow, X.Abs)):
        return any(has_irrational_parts(kind) for kind in _children(expr))
    return False


# -----------------------------
# Polynomials in one variable
# -----------------------------

def _poly_add(p, q):
    ergebnis = dict(p)
    for grad, koeffizient in q.items():
        ergebnis[grad] = X.Sum([ergebnis[grad], koeffizient]) if grad in ergebnis else koeffizient
    return ergebnis


def _poly_multiply(p, q):
    ergebnis = {}
    for grad_p, a in p.items():
        for grad_q, b in q.items():
            ergebnis = _poly_add(ergebnis, {grad_p + grad_q: X.Prod([a, b])})
    return ergebnis


def polynomial(expr, variable):
    """{degree: coefficient} of expr in variable, None unless it is a polynomial of degree <= 2."""
    if variable not in find_variables(expr):
        return {0: expr}

    if isinstance(expr, X.Var):
        poly = {1: X.Int(1)}
    elif isinstance(expr, X.Sum):
        poly = {}
        for term in expr.terms:
            teil = polynomial(term, variable)
            if teil is None:
                return None
            poly = _poly_add(poly, teil)
    elif isinstance(expr, X.Prod):
        poly = {0: X.Int(1)}
        for faktor in expr.factors:
            teil = polynomial(faktor, variable)
            if teil is None:
                return None
            poly = _poly_multiply(poly, teil)
    elif isinstance(expr, X.Pow):
        exponent = expr.exponent.simplify()
        if not isinstance(exponent, X.Int) or not 1 <= exponent.value <= 2:
            return None
        basis = polynomial(expr.base, variable)
        if basis is None:
            return None
        poly = {0: X.Int(1)}
        for _ in range(exponent.value):
            poly = _poly_multiply(poly, basis)
    elif isinstance(expr, X.Div) and variable not in find_variables(expr.denominator):
        zaehler = polynomial(expr.numerator, variable)
        if zaehler is None:
            return None
        poly = {grad: X.Div(koeffizient, expr.denominator) for grad, koeffizient in zaehler.items()}
    else:
        return None

    poly = {grad: koeffizient.simplify() for grad, koeffizient in poly.items()}
    if any(grad > 2 and not koeffizient.is_zero for grad, koeffizient in poly.items()):
        return None
    return poly


def _coefficient(poly, grad):
    return poly.get(grad, X.Int(0)).simplify()


def linear_coefficients(expr, variables):
    """({variable: coefficient}, constant) of a linear expr, None otherwise."""
    koeffizienten = {variable: X.Int(0) for variable in variables}
    konstante = []
    terms = expr.terms if isinstance(expr, X.Sum) else [expr]
    for term in terms:
        enthalten = find_variables(term) & set(variables)
        if not enthalten:
            konstante.append(term)
            continue
        if len(enthalten) > 1:
            return None
        variable = enthalten.pop()
        poly = polynomial(term, variable)
        if poly is None or not _coefficient(poly, 2).is_zero:
            return None
        koeffizienten[variable] = X.Sum([koeffizienten[variable], _coefficient(poly, 1)]).simplify()
        konstante.append(_coefficient(poly, 0))
    return koeffizienten, X.Sum(konstante).simplify()


# -----------------------------
# Results
# -----------------------------

def _solution_result(variable, solutions, settings):
    """'x = ...' lines, one per solution."""
    math_nodes = []
    zeilen = []
    for b, loesung in enumerate(solutions):
        if b > 0:
            math_nodes.append(N.NewlineNode())
        math_nodes.append(N.LiteralNode(f"{variable} = "))
        math_nodes.extend(loesung.to_math_node(settings))
        zeilen.append(f"{variable} = {loesung}")

    numerical = None
    if len(solutions) == 1:
        numerical = _safe_double(solutions[0])
    return ExactResult(
        math_nodes=math_nodes,
        numerical=numerical,
        is_exact=any(has_irrational_parts(loesung) for loesung in solutions),
        text="\n".join(zeilen),
        solutions=solutions,
    )


def _system_result(variables, values, settings):
    math_nodes = []
    zeilen = []
    for b, (variable, wert) in enumerate(zip(variables, values)):
        if b > 0:
            math_nodes.append(N.NewlineNode())
        math_nodes.append(N.LiteralNode(f"{variable} = "))
        math_nodes.extend(wert.to_math_node(settings))
        zeilen.append(f"{variable} = {wert}")
    return ExactResult(
        math_nodes=math_nodes,
        is_exact=any(has_irrational_parts(wert) for wert in values),
        text="\n".join(zeilen),
        solutions=values,
    )


def _text_result(text):
    math_nodes = []
    for b, zeile in enumerate(text.split("\n")):
        if b > 0:
            math_nodes.append(N.NewlineNode())
        math_nodes.append(N.LiteralNode(zeile))
    return ExactResult(math_nodes=math_nodes, is_exact=False, text=text)


def _safe_double(expr):
    try:
        return expr.to_double()
    except (E.MathError, OverflowError, ValueError, ZeroDivisionError):
        return None


def _numeric_fallback(nodes, ans_expressions, settings):
    """Hand the serialized input to the numeric solver; its text becomes the result."""
    text = Serializer.serialize(nodes)
    ergebnis = Solver.solve(text, NodeConverter.ans_values_from(ans_expressions), settings)
    logger.debug("numeric fallback %r -> %r", text, ergebnis)
    if not ergebnis or ergebnis == "NaN":
        return ExactResult.empty()
    return _text_result(ergebnis)


# -----------------------------
# Single equation
# -----------------------------

def _solve_single_equation(nodes, ans_expressions, settings):
    seiten = _split_at(nodes, _is_equals)
    if len(seiten) != 2:
        return ExactResult.failed(str(E.SolverError(Serializer.serialize(nodes), code="3012")))

    try:
        lhs = NodeConverter.convert(seiten[0], ans_expressions)
        rhs = NodeConverter.convert(seiten[1], ans_expressions)
    except E.MathError as e:
        logger.debug("exact conversion failed (%s), trying numeric solver", e)
        return _numeric_fallback(nodes, ans_expressions, settings)
    kombiniert = X.Sum([lhs, rhs.negate()]).simplify()
    # taken from both sides: x = x + 1 cancels to -1 but still has an unknown
    variables = find_variables(lhs) | find_variables(rhs)
    logger.debug("equation %s = 0, variables %s", kombiniert, variables)

    if IMAGINARY_UNIT in variables:
        return _numeric_fallback(nodes, ans_expressions, settings)
    if not variables:
        # no unknown: report lhs - rhs like the numeric solver does
        return _expression_result(kombiniert, nodes, ans_expressions, settings)
    if len(variables) > 1:
        return ExactResult.empty()

    variable = variables.pop()
    poly = polynomial(kombiniert, variable)
    if poly is None:
        return _numeric_fallback(nodes, ans_expressions, settings)

    a, b, c = _coefficient(poly, 2), _coefficient(poly, 1), _coefficient(poly, 0)
    if a.is_zero:
        return _solve_linear(variable, b, c, settings)
    return _solve_quadratic(variable, a, b, c, nodes, ans_expressions, settings)


def _solve_linear(variable, b, c, settings):
    if b.is_zero:
        return _text_result("Infinite solutions" if c.is_zero else "No solution")
    return _solution_result(variable, [X.Div(c.negate(), b).simplify()], settings)


def _solve_quadratic(variable, a, b, c, nodes, ans_expressions, settings):
    diskriminante = X.Sum([X.Pow(b, X.Int(2)), X.Prod([X.Int(-4), a, c])]).simplify()
    wert = X.as_fraction(diskriminante)
    if wert is not None and wert < 0:
        # complex pair: the numeric solver renders a ± bi
        return _numeric_fallback(nodes, ans_expressions, settings)

    nenner = X.Prod([X.Int(2), a])
    if diskriminante.is_zero:
        return _solution_result(variable, [X.Div(b.negate(), nenner).simplify()], settings)

    wurzel = X.Root.sqrt(diskriminante).simplify()
    erste = X.Div(X.Sum([b.negate(), wurzel]), nenner).simplify()
    zweite = X.Div(X.Sum([b.negate(), wurzel.negate()]), nenner).simplify()
    if erste.structurally_equals(zweite):
        return _solution_result(variable, [erste], settings)
    return _solution_result(variable, [erste, zweite], settings)


# -----------------------------
# Linear systems
# -----------------------------

def determinant(matrix):
    """Cofactor expansion along the first row, as a simplified Expr."""
    n = len(matrix)
    if n == 1:
        return matrix[0][0].simplify()
    if n == 2:
        return X.Sum([
            X.Prod([matrix[0][0], matrix[1][1]]),
            X.Prod([X.Int(-1), matrix[0][1], matrix[1][0]]),
        ]).simplify()

    terms = []
    for spalte in range(n):
        minor = [zeile[:spalte] + zeile[spalte + 1:] for zeile in matrix[1:]]
        vorzeichen = X.Int(1 if spalte % 2 == 0 else -1)
        terms.append(X.Prod([vorzeichen, matrix[0][spalte], determinant(minor)]))
    return X.Sum(terms).simplify()


def _solve_multi_line(nodes, ans_expressions, settings):
    zeilen = [zeile for zeile in _split_at(nodes, _is_newline) if not _is_node_list_empty(zeile)]
    gleichungen = [zeile for zeile in zeilen if any(_is_equals(node) for node in zeile)]

    if not gleichungen:
        # several plain lines: the first one is the expression
        return _evaluate_expression(zeilen[0], ans_expressions, settings)
    if len(gleichungen) == 1:
        return _solve_single_equation(gleichungen[0], ans_expressions, settings)
    if len(gleichungen) > MAX_SYSTEM_SIZE:
        logger.debug("%d equations, at most %d supported", len(gleichungen), MAX_SYSTEM_SIZE)
        return ExactResult.empty()

    kombinierte = []
    for gleichung in gleichungen:
        seiten = _split_at(gleichung, _is_equals)
        if len(seiten) != 2:
            return ExactResult.failed(str(E.SolverError(Serializer.serialize(gleichung), code="3012")))
        try:
            lhs = NodeConverter.convert(seiten[0], ans_expressions)
            rhs = NodeConverter.convert(seiten[1], ans_expressions)
        except E.MathError as e:
            logger.debug("exact conversion failed (%s), trying numeric solver", e)
            return _numeric_fallback(nodes, ans_expressions, settings)
        kombinierte.append(X.Sum([lhs, rhs.negate()]).simplify())

    alle_variablen = set()
    for ausdruck in kombinierte:
        alle_variablen |= find_variables(ausdruck)
    if IMAGINARY_UNIT in alle_variablen:
        return _numeric_fallback(nodes, ans_expressions, settings)
    variables = sorted(alle_variablen)
    if len(variables) != len(kombinierte):
        logger.debug("%d variables for %d equations", len(variables), len(kombinierte))
        return ExactResult.empty()

    matrix = []
    konstanten = []
    for ausdruck in kombinierte:
        linear = linear_coefficients(ausdruck, variables)
        if linear is None:
            return _numeric_fallback(nodes, ans_expressions, settings)
        koeffizienten, konstante = linear
        matrix.append([koeffizienten[variable] for variable in variables])
        konstanten.append(konstante.negate().simplify())

    haupt = determinant(matrix)
    if haupt.is_zero:
        return ExactResult.failed(str(E.SolverError("", code="3017")))

    werte = []
    for spalte in range(len(variables)):
        ersetzt = [zeile[:spalte] + [konstanten[b]] + zeile[spalte + 1:] for b, zeile in enumerate(matrix)]
        werte.append(X.Div(determinant(ersetzt), haupt).simplify())
    return _system_result(variables, werte, settings)


# -----------------------------
# Plain expressions
# -----------------------------

def _expression_result(expr, nodes, ans_expressions, settings):
    variables = find_variables(expr)
    if IMAGINARY_UNIT in variables:
        return _numeric_fallback(nodes, ans_expressions, settings)
    if variables:
        # symbolic result such as 2x, no number to show
        return ExactResult(expr=expr, math_nodes=expr.to_math_node(settings), numerical=None)

    numerical = _safe_double(expr)
    if numerical is not None and math.isnan(numerical):
        # sqrt(-4) and friends: the numeric engine knows complex numbers
        return _numeric_fallback(nodes, ans_expressions, settings)
    return ExactResult(
        expr=expr,
        math_nodes=expr.to_math_node(settings),
        numerical=numerical,
        is_exact=has_irrational_parts(expr),
    )


def _evaluate_expression(nodes, ans_expressions, settings):
    try:
        expr = NodeConverter.convert(nodes, ans_expressions)
    except E.MathError as e:
        logger.debug("exact conversion failed (%s), trying numeric engine", e)
        return _numeric_fallback(nodes, ans_expressions, settings)
    return _expression_result(expr, nodes, ans_expressions, settings)


# -----------------------------
# Public entry points
# -----------------------------

def _evaluate(nodes, ans_expressions, settings):
    if not nodes or is_empty_expression(nodes):
        return ExactResult.empty()

    nodes = normalize_nodes(nodes)
    if is_incomplete(nodes):
        logger.debug("incomplete input, nothing to evaluate")
        return ExactResult.empty()

    if any(_is_newline(node) for node in nodes):
        return _solve_multi_line(nodes, ans_expressions, settings)
    if any(_is_equals(node) for node in nodes):
        return _solve_single_equation(nodes, ans_expressions, settings)
    return _evaluate_expression(nodes, ans_expressions, settings)


def evaluate(nodes, ans_expressions=None, settings=None):
    """Exact result of a node list. Never raises."""
    try:
        return _evaluate(nodes, ans_expressions, settings)
    except (E.MathError, ValueError, ZeroDivisionError, OverflowError, RecursionError) as e:
        logger.debug("exact evaluation failed: %s", e)
        return ExactResult.failed(str(e))


def evaluate_to_math_node(nodes, ans_expressions=None, settings=None):
    """Only the display nodes, None when there is nothing to show."""
    ergebnis = evaluate(nodes, ans_expressions, settings)
    if ergebnis.has_error or ergebnis.is_empty:
        return None
    return ergebnis.math_nodes


def evaluate_to_double(nodes, ans_expressions=None, settings=None):
    ergebnis = evaluate(nodes, ans_expressions, settings)
    if ergebnis.is_empty:
        return None
    return ergebnis.numerical
