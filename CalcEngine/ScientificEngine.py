# ScientificEngine.py
"""""
Scientific building blocks for the numeric engine.

- Constants (π, e, φ and the physical constants ε₀, μ₀, c₀, e⁻)
- Real and complex function table (sin ... exp), evaluated the way the
  underlying math library does: domain violations become NaN / ±inf, they
  are not raised
- Power with Euler's formula and z^w = exp(w·ln z)
- Counting: permutation, combination, factorial
- Numeric calculus: bounded summation / product, central-difference
  derivative, composite Simpson integral
"""""
import cmath
import logging
import math

from . import error as E

logger = logging.getLogger(__name__)

IMAG_TOLERANCE = 1e-10
EULER_TOLERANCE = 1e-9

PHI = (1 + math.sqrt(5)) / 2
EPSILON_0 = 8.8541878128e-12
MU_0 = 1.25663706212e-6
C_0 = 299792458.0
E_MINUS = 1.602176634e-19

# Symbol -> value, longest symbols first so 'e⁻' wins over 'e'
PHYSICAL_CONSTANTS = {
    "ε₀": EPSILON_0,
    "μ₀": MU_0,
    "c₀": C_0,
    "e⁻": E_MINUS,
}

# Checked in this order: hyperbolic before plain trig so 'sinh' is not read as 'sin'
FUNCTIONS = [
    "sinh", "cosh", "tanh", "asinh", "acosh", "atanh",
    "sin", "cos", "tan", "asin", "acos", "atan",
    "log", "ln", "sqrt", "abs", "arg", "re", "im", "sgn", "exp",
]

MAX_FACTORIAL = 170
MAX_LOOP_ITERATIONS = 100000
SIMPSON_INTERVALS = 200


# -----------------------------
# Value helpers
# -----------------------------

def demote(value):
    """Complex with negligible imaginary part -> float."""
    if isinstance(value, complex) and abs(value.imag) < IMAG_TOLERANCE:
        return value.real
    return value


def is_euler(value):
    if isinstance(value, complex):
        return abs(value.real - math.e) < EULER_TOLERANCE and abs(value.imag) < EULER_TOLERANCE
    return abs(value - math.e) < EULER_TOLERANCE


def _overflow_safe(function, a, overflow_value):
    try:
        return function(a)
    except ValueError:
        return math.nan
    except OverflowError:
        return overflow_value


# -----------------------------
# Function table
# -----------------------------

def _real_function(name, a):
    if name == "sin":
        return _overflow_safe(math.sin, a, math.nan)
    elif name == "cos":
        return _overflow_safe(math.cos, a, math.nan)
    elif name == "tan":
        return _overflow_safe(math.tan, a, math.nan)
    elif name == "asin":
        return _overflow_safe(math.asin, a, math.nan)
    elif name == "acos":
        return _overflow_safe(math.acos, a, math.nan)
    elif name == "atan":
        return math.atan(a)
    elif name == "sinh":
        return _overflow_safe(math.sinh, a, math.copysign(math.inf, a))
    elif name == "cosh":
        return _overflow_safe(math.cosh, a, math.inf)
    elif name == "tanh":
        return math.tanh(a)
    elif name == "asinh":
        return math.asinh(a)
    elif name == "acosh":
        return _overflow_safe(math.acosh, a, math.inf)
    elif name == "atanh":
        if abs(a) == 1:
            return math.copysign(math.inf, a)
        return _overflow_safe(math.atanh, a, math.nan)
    elif name == "log":
        if a == 0:
            return -math.inf
        return _overflow_safe(math.log10, a, math.inf)
    elif name == "ln":
        if a == 0:
            return -math.inf
        return _overflow_safe(math.log, a, math.inf)
    elif name == "sqrt":
        if a < 0:
            return complex(0, math.sqrt(-a))
        return math.sqrt(a)
    elif name == "abs":
        return abs(a)
    elif name == "arg":
        return math.atan2(0.0, a)
    elif name == "re":
        return a
    elif name == "im":
        return 0.0
    elif name == "sgn":
        if a > 0:
            return 1.0
        if a < 0:
            return -1.0
        return 0.0
    elif name == "exp":
        return _overflow_safe(math.exp, a, math.inf)
    raise E.CalculationError(f"{name}", code="2000")


def _complex_function(name, z):
    if name == "abs":
        return abs(z)
    elif name == "arg":
        return math.atan2(z.imag, z.real)
    elif name == "re":
        return z.real
    elif name == "im":
        return z.imag
    elif name == "sgn":
        if z == 0:
            return 0.0
        return z / abs(z)
    elif name == "ln":
        return cmath.log(z)
    elif name == "log":
        return cmath.log10(z)
    elif name in ("exp", "sqrt", "sin", "cos", "tan", "sinh", "cosh", "tanh",
                  "asin", "acos", "atan", "asinh", "acosh", "atanh"):
        return getattr(cmath, name)(z)
    raise E.CalculationError(f"{name}", code="2000")


def apply_function(name, value):
    """Evaluate a named function on a real or complex argument."""
    if isinstance(value, complex):
        try:
            ergebnis = _complex_function(name, value)
        except (ValueError, ZeroDivisionError):
            ergebnis = complex(math.nan, math.nan)
        except OverflowError:
            ergebnis = complex(math.inf, 0)
    else:
        ergebnis = _real_function(name, float(value))
    return demote(ergebnis)


def power(base, exponent):
    """base ^ exponent over reals and complex numbers."""
    if is_euler(base):
        exponent = complex(exponent)
        # e^(a+bi) = e^a (cos b + i sin b)
        betrag = _overflow_safe(math.exp, exponent.real, math.inf)
        return demote(complex(betrag * math.cos(exponent.imag), betrag * math.sin(exponent.imag)))

    if isinstance(base, complex) or isinstance(exponent, complex):
        base, exponent = complex(base), complex(exponent)
        if base == 0:
            return 0.0
        try:
            return demote(cmath.exp(exponent * cmath.log(base)))
        except OverflowError:
            return math.inf

    if base == 0 and exponent < 0:
        return math.inf
    try:
        return math.pow(base, exponent)
    except ValueError:
        return math.nan
    except OverflowError:
        if base < 0 and float(exponent).is_integer() and int(exponent) % 2 == 1:
            return -math.inf
        return math.inf


# -----------------------------
# Counting
# -----------------------------

def permutation(n, r):
    """nPr, or 0 for r > n and negative arguments."""
    if n < 0 or r < 0 or r > n:
        return 0
    return math.perm(n, r)


def combination(n, r):
    """nCr, or 0 for r > n and negative arguments."""
    if n < 0 or r < 0 or r > n:
        return 0
    return math.comb(n, r)


def factorial(n):
    if n > MAX_FACTORIAL:
        raise E.CalculationError(f"{n}", code="2002")
    return math.factorial(n)


# -----------------------------
# Numeric calculus
# -----------------------------

def _as_real(value):
    value = demote(value)
    if isinstance(value, complex):
        raise E.CalculationError(f"complex value {value} in real loop", code="2004")
    return float(value)


def summation(evaluate_at, lower, upper, is_product=False):
    """Sum (or product) of evaluate_at(k) for integer k in [lower, upper].

    Non-integer bounds and lower > upper give the empty result.
    """
    leer = 1.0 if is_product else 0.0
    if abs(lower - round(lower)) > 1e-9 or abs(upper - round(upper)) > 1e-9:
        logger.debug("Non-integer bounds %s..%s, empty range", lower, upper)
        return leer

    lower, upper = int(round(lower)), int(round(upper))
    if lower > upper:
        return leer
    if upper - lower + 1 > MAX_LOOP_ITERATIONS:
        raise E.CalculationError(f"{lower}..{upper}", code="2003")

    ergebnis = leer
    for k in range(lower, upper + 1):
        wert = _as_real(evaluate_at(k))
        if is_product:
            ergebnis *= wert
        else:
            ergebnis += wert
    return ergebnis


def derivative(evaluate_at, at):
    """Central difference with a step scaled to |at|."""
    h = 1e-6 * max(1.0, abs(at))
    f_plus = _as_real(evaluate_at(at + h))
    f_minus = _as_real(evaluate_at(at - h))
    return (f_plus - f_minus) / (2 * h)


def integral(evaluate_at, lower, upper, intervals=SIMPSON_INTERVALS):
    """Composite Simpson rule; swapped bounds flip the sign."""
    a, b = lower, upper
    sign = 1.0
    if a > b:
        a, b = b, a
        sign = -1.0

    h = (b - a) / intervals
    summe = 0.0
    for k in range(intervals + 1):
        fx = _as_real(evaluate_at(a + h * k))
        if k == 0 or k == intervals:
            summe += fx
        elif k % 2 == 0:
            summe += 2 * fx
        else:
            summe += 4 * fx
    return sign * (summe * h / 3.0)
