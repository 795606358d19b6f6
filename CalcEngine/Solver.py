# Solver.py
"""""
Numeric equation solving on PEMDAS strings.

- solve():                dispatch (system / single equation / plain evaluation)
- solve_equation():       one variable, linear or quadratic (citardauq formula,
                          complex conjugate roots for a negative discriminant)
- solve_linear_system():  up to 3 linear equations, Cramer's rule

Coefficients are collected textually: each side is split into signed terms,
a term ending in x^(2) / x^2 is quadratic, a term containing x without '^' is
linear, everything else is constant. This matches the strings Serializer
produces from the node tree.
"""""
import logging
import math
import re

from . import MathEngine
from . import NumberFormat
from . import error as E

logger = logging.getLogger(__name__)

TOLERANCE = 1e-10
MAX_SYSTEM_SIZE = 3

RESERVED = {
    "sin", "cos", "tan", "asin", "acos", "atan",
    "sinh", "cosh", "tanh", "asinh", "acosh", "atanh",
    "log", "ln", "sqrt", "abs", "arg", "re", "im", "sgn", "exp",
    "diff", "int", "sum", "prod", "perm", "comb", "ans", "rad",
    "e", "pi", "i",
}

# Multi-character constant symbols whose Latin letter must not count as a variable
CONSTANT_SYMBOLS = ["c₀", "e⁻", "ε₀", "μ₀", "µ₀"]

LETTER_RUN = re.compile(r"[a-zA-Z]+")


# -----------------------------
# Variable detection
# -----------------------------

def find_variables(expression):
    """Free variables: letter runs that are not reserved names.

    A non-reserved run of several letters ("xy") is implicit multiplication,
    each of its letters counts on its own.
    """
    for symbol in CONSTANT_SYMBOLS:
        expression = expression.replace(symbol, " ")
    expression = MathEngine.ANS_PATTERN.sub(" ", expression)

    variables = set()
    for treffer in LETTER_RUN.finditer(expression):
        run = treffer.group(0)
        if run.lower() in RESERVED:
            continue
        for char in run:
            if char.lower() not in RESERVED:
                variables.add(char)
    return variables


# -----------------------------
# Term splitting / coefficients
# -----------------------------

def split_terms(side):
    """Split on top-level '+' / '-' keeping each sign with its term."""
    side = side.replace(" ", "")
    if not side.startswith("+") and not side.startswith("-"):
        side = "+" + side

    terms = []
    current_term = ""
    depth = 0
    for b, char in enumerate(side):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char in "+-" and b > 0 and depth == 0 and side[b - 1] not in "*/^(E":
            if current_term:
                terms.append(current_term)
            current_term = char
        else:
            current_term += char
    if current_term:
        terms.append(current_term)
    return terms


def parse_coefficient(coefficient):
    """'' / '+' -> 1, '-' -> -1, a number, or any evaluable sub-expression; 0 otherwise."""
    coefficient = coefficient.strip()
    if coefficient in ("", "+"):
        return 1.0
    if coefficient == "-":
        return -1.0
    normalized = coefficient[1:] if coefficient.startswith("+") else coefficient
    try:
        return float(normalized)
    except ValueError:
        pass

    try:
        wert = MathEngine.evaluate_expression(MathEngine.preprocess(normalized))
    except (E.MathError, ValueError, ZeroDivisionError, OverflowError) as e:
        logger.debug("Coefficient %r not evaluable: %s", coefficient, e)
        return 0.0
    if isinstance(wert, complex):
        return wert.real if abs(wert.imag) < TOLERANCE else 0.0
    return wert


def get_coefficients(side, variable):
    """[a, b, c] of a*x^2 + b*x + c for one side of an equation."""
    a = b = c = 0.0
    quad_suffix = f"{variable}^(2)"
    quad_suffix_alt = f"{variable}^2"

    for term in split_terms(side):
        if term.endswith(quad_suffix) or term.endswith(quad_suffix_alt):
            suffix = quad_suffix if term.endswith(quad_suffix) else quad_suffix_alt
            coefficient_part = term[:-len(suffix)]
            if coefficient_part.endswith("*"):
                coefficient_part = coefficient_part[:-1]
            a += parse_coefficient(coefficient_part)

        elif variable in term and "^" not in term:
            var_index = term.index(variable)
            coefficient_part = term[:var_index]
            remainder = term[var_index + len(variable):]
            if coefficient_part.endswith("*"):
                coefficient_part = coefficient_part[:-1]
            if coefficient_part in ("", "+", "-") and remainder.startswith("/"):
                # x/4 -> coefficient 1/4
                coefficient_part = f"{coefficient_part}1{remainder}"
            elif remainder[:1] in ("*", "/"):
                coefficient_part += remainder
            b += parse_coefficient(coefficient_part)

        elif variable not in term:
            c += parse_coefficient(term)

        else:
            raise E.SolverError(f"{term}", code="3005")

    return [a, b, c]


# -----------------------------
# Single equation
# -----------------------------

def _format(value, settings):
    return NumberFormat.format_result(value, settings)


def solve_equation(equation, settings=None):
    """Solve one equation in a single variable; None when it has more than one."""
    try:
        return _solve_equation(equation, settings)
    except (E.MathError, ValueError, ZeroDivisionError, OverflowError) as e:
        logger.debug("solve_equation(%r) failed: %s", equation, e)
        return None


def _solve_equation(equation, settings):
    equation = equation.replace(" ", "")
    variables = find_variables(equation)

    if not variables:
        return MathEngine.evaluate(equation.replace("=", "-(") + ")", settings)
    if len(variables) > 1:
        raise E.SolverError(f"{sorted(variables)}", code="3002")

    variable = variables.pop()
    seiten = equation.split("=")
    if len(seiten) != 2:
        raise E.SolverError(f"{equation}", code="3012")
    lhs, rhs = seiten

    coeffs_lhs = get_coefficients(lhs, variable)
    coeffs_rhs = get_coefficients(rhs, variable)
    a = coeffs_lhs[0] - coeffs_rhs[0]
    b = coeffs_lhs[1] - coeffs_rhs[1]
    c = coeffs_lhs[2] - coeffs_rhs[2]
    logger.debug("%s: a=%r b=%r c=%r", equation, a, b, c)

    # linear
    if abs(a) < TOLERANCE:
        if abs(b) < TOLERANCE:
            if abs(c) < TOLERANCE:
                return "Infinite solutions"
            return "No solution"
        return f"{variable} = {_format(-c / b, settings)}"

    # x(ax + b) = 0
    if abs(c) < TOLERANCE:
        return f"{variable} = 0\n{variable} = {_format(-b / a, settings)}"

    diskriminante = b * b - 4 * a * c

    if diskriminante < 0:
        real_part = -b / (2 * a)
        imag_part = math.sqrt(-diskriminante) / (2 * a)
        return f"{variable} = {_format(real_part, settings)} ± {_format(abs(imag_part), settings)}i"

    if diskriminante == 0:
        root1 = root2 = -b / (2 * a)
    else:
        wurzel = math.sqrt(diskriminante)
        # citardauq: never subtract nearly equal quantities
        if b >= 0:
            root1 = (-b - wurzel) / (2 * a)
            root2 = (2 * c) / (-b - wurzel)
        else:
            root1 = (2 * c) / (-b + wurzel)
            root2 = (-b + wurzel) / (2 * a)

    if abs(root1 - root2) < TOLERANCE:
        return f"{variable} = {_format(root1, settings)}"
    return f"{variable} = {_format(root1, settings)}\n{variable} = {_format(root2, settings)}"


# -----------------------------
# Linear systems (Cramer's rule)
# -----------------------------

def determinant(matrix):
    """Cofactor expansion along the first row."""
    n = len(matrix)
    if n == 1:
        return matrix[0][0]
    if n == 2:
        return matrix[0][0] * matrix[1][1] - matrix[0][1] * matrix[1][0]

    det = 0
    for spalte in range(n):
        sub_matrix = [zeile[:spalte] + zeile[spalte + 1:] for zeile in matrix[1:]]
        vorzeichen = 1 if spalte % 2 == 0 else -1
        det += vorzeichen * matrix[0][spalte] * determinant(sub_matrix)
    return det


def _parse_side(side):
    """Sparse {variable: coefficient} map plus constant for one side of a linear equation."""
    coeffs = {}
    constant = 0.0
    if not side:
        return coeffs, constant

    for term in split_terms(side):
        if term in ("", "+", "-"):
            continue
        if "^" in term:
            raise E.SolverError(f"{term}", code="3007")

        letters = [char for char in term if char.isascii() and char.isalpha()]
        if not letters:
            constant += parse_coefficient(term)
            continue
        if len(letters) != 1:
            raise E.SolverError(f"{term}", code="3005")

        var_name = letters[0]
        if var_name.lower() in RESERVED:
            raise E.SolverError(f"{term}", code="3005")

        coefficient_part = term.replace(var_name, "").replace("*", "")
        if re.match(r"^[+-]?/", coefficient_part):
            coefficient_part = coefficient_part.replace("/", "1/", 1)
        coeffs[var_name] = coeffs.get(var_name, 0.0) + parse_coefficient(coefficient_part)

    return coeffs, constant


def linear_system_matrix(equations):
    """(sorted variables, coefficient rows, constant vector) for a list of equation strings."""
    if not equations or len(equations) > MAX_SYSTEM_SIZE:
        raise E.SolverError(f"{len(equations)}", code="3018")

    gleichungen = []
    konstanten = []
    variable_set = set()
    for gleichung in equations:
        treffer = re.match(r"(.+)=([^=]+)$", gleichung)
        if treffer is None:
            raise E.SolverError(f"{gleichung}", code="3012")
        links, links_konstante = _parse_side(treffer.group(1))
        rechts, rechts_konstante = _parse_side(treffer.group(2))

        zeile = dict(links)
        for name, wert in rechts.items():
            zeile[name] = zeile.get(name, 0.0) - wert

        konstanten.append(-(links_konstante - rechts_konstante))
        gleichungen.append(zeile)
        variable_set.update(zeile)

    variables = sorted(variable_set)
    if len(variables) != len(equations):
        raise E.SolverError(f"{variables}", code="3016")

    matrix = [[zeile.get(name, 0.0) for name in variables] for zeile in gleichungen]
    return variables, matrix, konstanten


def solve_linear_system(equations_string, settings=None):
    """Solve a newline-separated square linear system; None if it has no unique solution."""
    try:
        equations = [zeile for zeile in equations_string.replace(" ", "").split("\n") if zeile.strip()]
        variables, matrix, konstanten = linear_system_matrix(equations)

        haupt_det = determinant(matrix)
        if abs(haupt_det) < TOLERANCE:
            raise E.SolverError("", code="3017")

        zeilen = []
        for index, name in enumerate(variables):
            temp_matrix = [list(zeile) for zeile in matrix]
            for j, zeile in enumerate(temp_matrix):
                zeile[index] = konstanten[j]
            wert = determinant(temp_matrix) / haupt_det
            zeilen.append(f"{name} = {_format(wert, settings)}")
        return "\n".join(zeilen)

    except (E.MathError, ValueError, ZeroDivisionError, OverflowError) as e:
        logger.debug("solve_linear_system(%r) failed: %s", equations_string, e)
        return None


# -----------------------------
# Public entry point
# -----------------------------

def solve(expression, ans_values=None, settings=None):
    """Classify and solve: system, single equation or plain evaluation.

    Returns None when the input is empty or has more unknowns than equations.
    """
    expression = expression.strip()
    if not expression:
        return None

    if ans_values:
        expression = MathEngine.preprocess_ans_references(expression, ans_values)

    if "\n" in expression:
        equations = [zeile for zeile in expression.split("\n") if zeile.strip()]
        all_variables = set()
        for gleichung in equations:
            all_variables |= find_variables(gleichung)
        if len(all_variables) > len(equations):
            logger.debug("%d variables for %d equations", len(all_variables), len(equations))
            return None
        return solve_linear_system(expression, settings)

    if "=" in expression:
        if len(find_variables(expression)) > 1:
            return None
        return solve_equation(expression, settings)

    return MathEngine.evaluate(expression, settings)
