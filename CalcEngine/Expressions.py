# Expressions.py
"""""
Exact symbolic algebra.

Immutable expression trees (Int, Frac, Const, Sum, Prod, Pow, Root, Log, Trig,
Abs, Div, Perm, Comb, Var). simplify() never mutates, it rebuilds. Rational
arithmetic runs on fractions.Fraction, integers are Python ints, so there is
no precision limit on exact values.

Every node answers the same questions:
- simplify() / to_double()
- structurally_equals() (also ==)
- term_signature: key for collecting like terms (3√2 and 5√2 -> "root:2:2")
- coefficient / base_expr: 3√2 -> 3, √2
- is_zero / is_one / is_rational / is_integer
- negate()
- to_math_node(): node list for display
"""""
import fractions
import functools
import logging
import math

from . import MathNodes as N
from . import NumberFormat
from . import ScientificEngine
from . import error as E

logger = logging.getLogger(__name__)

MAX_EXACT_EXPONENT = 100
MAX_LOG_STEPS = 100

CONSTANTS = {
    "pi": (math.pi, "π"),
    "e": (math.e, "e"),
    "phi": (ScientificEngine.PHI, "φ"),
    "epsilon0": (ScientificEngine.EPSILON_0, "ε₀"),
    "mu0": (ScientificEngine.MU_0, "μ₀"),
    "c0": (ScientificEngine.C_0, "c₀"),
    "eMinus": (ScientificEngine.E_MINUS, "e⁻"),
}

# Rendered as plain text; the physical ones get a ConstantNode
LITERAL_CONSTANTS = {"pi", "e", "phi"}

TRIG_FUNCTIONS = [
    "sin", "cos", "tan", "asin", "acos", "atan",
    "sinh", "cosh", "tanh", "asinh", "acosh", "atanh",
]


# -----------------------------
# Rational helpers
# -----------------------------

def as_fraction(expr):
    """Int / Frac -> fractions.Fraction, None for anything else."""
    if isinstance(expr, Int):
        return fractions.Fraction(expr.value)
    if isinstance(expr, Frac) and expr.denominator.value != 0:
        return fractions.Fraction(expr.numerator.value, expr.denominator.value)
    return None


def rational(value):
    """fractions.Fraction (or int) -> Int or reduced Frac."""
    value = fractions.Fraction(value)
    if value.denominator == 1:
        return Int(value.numerator)
    return Frac(value.numerator, value.denominator)


def _multiply_rational(a, b):
    links, rechts = as_fraction(a), as_fraction(b)
    if links is None or rechts is None:
        return Prod([a, b])
    return rational(links * rechts)


def _float_divide(a, b):
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a)
    return a / b


def _is_simplified(expr, *types):
    return isinstance(expr.simplify(), types)


# -----------------------------
# Base class
# -----------------------------

class Expr:
    """Base of all exact expression nodes."""

    def simplify(self):
        return self

    def to_double(self):
        raise NotImplementedError

    def structurally_equals(self, other):
        raise NotImplementedError

    @property
    def term_signature(self):
        raise NotImplementedError

    @property
    def coefficient(self):
        return Int(1)

    @property
    def base_expr(self):
        return self

    @property
    def is_zero(self):
        return False

    @property
    def is_one(self):
        return False

    @property
    def is_rational(self):
        return _is_simplified(self, Int, Frac)

    @property
    def is_integer(self):
        return _is_simplified(self, Int)

    def negate(self):
        return Prod([Int(-1), self])

    def to_math_node(self, settings=None):
        raise NotImplementedError

    def __eq__(self, other):
        return isinstance(other, Expr) and self.structurally_equals(other)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash(self.term_signature)

    def __repr__(self):
        return f"{type(self).__name__}({self})"


# -----------------------------
# Numbers and constants
# -----------------------------

class Int(Expr):
    def __init__(self, value):
        self.value = int(value)

    def to_double(self):
        try:
            return float(self.value)
        except OverflowError:
            return math.copysign(math.inf, self.value)

    def structurally_equals(self, other):
        return isinstance(other, Int) and other.value == self.value

    @property
    def term_signature(self):
        # all rationals combine with each other
        return "int:1"

    @property
    def coefficient(self):
        return self

    @property
    def base_expr(self):
        return Int(1)

    @property
    def is_zero(self):
        return self.value == 0

    @property
    def is_one(self):
        return self.value == 1

    @property
    def is_rational(self):
        return True

    @property
    def is_integer(self):
        return True

    def negate(self):
        return Int(-self.value)

    def to_math_node(self, settings=None):
        return [N.LiteralNode(NumberFormat.format_big_int(self.value, is_whole_number=True, settings=settings))]

    def __str__(self):
        return str(self.value)


class Frac(Expr):
    """Integer fraction; simplify() reduces it and moves the sign to the numerator."""

    def __init__(self, numerator, denominator):
        self.numerator = numerator if isinstance(numerator, Int) else Int(numerator)
        self.denominator = denominator if isinstance(denominator, Int) else Int(denominator)

    def simplify(self):
        zaehler, nenner = self.numerator.value, self.denominator.value
        if zaehler == 0:
            return Int(0)
        if nenner == 0:
            return self
        if nenner < 0:
            zaehler, nenner = -zaehler, -nenner
        teiler = math.gcd(zaehler, nenner)
        zaehler, nenner = zaehler // teiler, nenner // teiler
        if nenner == 1:
            return Int(zaehler)
        return Frac(zaehler, nenner)

    def to_double(self):
        try:
            return _float_divide(self.numerator.value, self.denominator.value)
        except OverflowError:
            return math.copysign(math.inf, self.numerator.value * self.denominator.value)

    def structurally_equals(self, other):
        if not isinstance(other, (Frac, Int)):
            return False
        ich, du = self.simplify(), other.simplify()
        if isinstance(ich, Int) and isinstance(du, Int):
            return ich.value == du.value
        if isinstance(ich, Frac) and isinstance(du, Frac):
            return (ich.numerator.value == du.numerator.value
                    and ich.denominator.value == du.denominator.value)
        return False

    @property
    def term_signature(self):
        return "int:1"

    @property
    def coefficient(self):
        return self

    @property
    def base_expr(self):
        return Int(1)

    @property
    def is_zero(self):
        return self.numerator.value == 0

    @property
    def is_one(self):
        einfach = self.simplify()
        return isinstance(einfach, Int) and einfach.value == 1

    @property
    def is_rational(self):
        return True

    def negate(self):
        return Frac(-self.numerator.value, self.denominator)

    def to_math_node(self, settings=None):
        einfach = self.simplify()
        if not isinstance(einfach, Frac):
            return einfach.to_math_node(settings)

        zaehler = einfach.numerator.value
        bruch = N.FractionNode(
            [N.LiteralNode(NumberFormat.format_big_int(abs(zaehler), settings=settings))],
            [N.LiteralNode(NumberFormat.format_big_int(einfach.denominator.value, settings=settings))],
        )
        if zaehler < 0:
            return [N.LiteralNode(NumberFormat.MINUS_SIGN), bruch]
        return [bruch]

    def __str__(self):
        einfach = self.simplify()
        if isinstance(einfach, Int):
            return str(einfach)
        return f"{self.numerator.value}/{self.denominator.value}"


class Const(Expr):
    """Named constant: pi, e, phi, epsilon0, mu0, c0 or eMinus."""

    def __init__(self, name):
        if name not in CONSTANTS:
            raise E.CalculationError(f"{name}", code="2000")
        self.name = name

    def to_double(self):
        return CONSTANTS[self.name][0]

    def structurally_equals(self, other):
        return isinstance(other, Const) and other.name == self.name

    @property
    def term_signature(self):
        return f"const:{self.name}"

    @property
    def is_rational(self):
        return False

    @property
    def is_integer(self):
        return False

    def to_math_node(self, settings=None):
        symbol = CONSTANTS[self.name][1]
        if self.name in LITERAL_CONSTANTS:
            return [N.LiteralNode(symbol)]
        return [N.ConstantNode(symbol)]

    def __str__(self):
        return CONSTANTS[self.name][1]


class Var(Expr):
    """Free variable, only meaningful while solving."""

    def __init__(self, name):
        self.name = name

    def to_double(self):
        raise E.CalculationError(f"{self.name}", code="3031")

    def structurally_equals(self, other):
        return isinstance(other, Var) and other.name == self.name

    @property
    def term_signature(self):
        return f"var:{self.name}"

    @property
    def is_rational(self):
        return False

    @property
    def is_integer(self):
        return False

    def to_math_node(self, settings=None):
        return [N.LiteralNode(self.name)]

    def __str__(self):
        return self.name


# -----------------------------
# Sum
# -----------------------------

def _is_negative_term(term):
    if isinstance(term, Int):
        return term.value < 0
    if isinstance(term, Frac):
        return term.numerator.value < 0
    if isinstance(term, Prod) and term.factors:
        return _is_negative_term(term.coefficient)
    if isinstance(term, Div):
        return isinstance(term.numerator, (Int, Frac)) and _is_negative_term(term.numerator)
    return False


def _absolute_term(term):
    if isinstance(term, Int):
        return Int(abs(term.value))
    if isinstance(term, Frac):
        return Frac(abs(term.numerator.value), term.denominator)
    if isinstance(term, Prod) and term.factors:
        betrag = _absolute_term(term.coefficient)
        if betrag.is_one:
            return term.base_expr
        return Prod([betrag, term.base_expr])
    if isinstance(term, Div) and isinstance(term.numerator, (Int, Frac)):
        return Div(_absolute_term(term.numerator), term.denominator)
    return term


class Sum(Expr):
    def __init__(self, terms):
        self.terms = list(terms)

    def simplify(self):
        if not self.terms:
            return Int(0)
        if len(self.terms) == 1:
            return self.terms[0].simplify()

        # 1) simplify and flatten
        flat = []
        for term in self.terms:
            einfach = term.simplify()
            if isinstance(einfach, Sum):
                flat.extend(einfach.terms)
            elif not einfach.is_zero:
                flat.append(einfach)

        if not flat:
            return Int(0)
        if len(flat) == 1:
            return flat[0]

        # 2) group like terms, dict keeps first-occurrence order
        gruppen = {}
        for term in flat:
            gruppen.setdefault(term.term_signature, []).append(term)

        # 3) combine each group
        ergebnis = []
        for gruppe in gruppen.values():
            if len(gruppe) == 1:
                kombiniert = gruppe[0]
            else:
                koeffizient = _sum_coefficients(gruppe)
                if koeffizient.is_zero:
                    continue
                basis = gruppe[0].base_expr
                if basis.is_one:
                    kombiniert = koeffizient
                elif koeffizient.is_one:
                    kombiniert = basis
                elif isinstance(koeffizient, Int) and koeffizient.value == -1:
                    kombiniert = basis.negate().simplify()
                else:
                    kombiniert = Prod([koeffizient, basis]).simplify()
            if not kombiniert.is_zero:
                ergebnis.append(kombiniert)

        if not ergebnis:
            return Int(0)
        if len(ergebnis) == 1:
            return ergebnis[0]
        return Sum(ergebnis)

    def to_double(self):
        return sum(term.to_double() for term in self.terms)

    def structurally_equals(self, other):
        return (isinstance(other, Sum) and len(other.terms) == len(self.terms)
                and all(a.structurally_equals(b) for a, b in zip(self.terms, other.terms)))

    @property
    def term_signature(self):
        return "sum:" + "+".join(term.term_signature for term in self.terms)

    @property
    def is_zero(self):
        return all(term.is_zero for term in self.terms)

    @property
    def is_rational(self):
        return all(term.is_rational for term in self.terms)

    @property
    def is_integer(self):
        return False

    def negate(self):
        return Sum([term.negate() for term in self.terms])

    def to_math_node(self, settings=None):
        if not self.terms:
            return [N.LiteralNode("0")]

        nodes = []
        for b, term in enumerate(self.terms):
            negativ = _is_negative_term(term)
            betrag = _absolute_term(term) if negativ else term
            if negativ:
                nodes.append(N.LiteralNode(NumberFormat.MINUS_SIGN))
            elif b > 0:
                nodes.append(N.LiteralNode("+"))
            nodes.extend(betrag.to_math_node(settings))
        return nodes

    def __str__(self):
        if not self.terms:
            return "0"
        teile = []
        for b, term in enumerate(self.terms):
            if _is_negative_term(term):
                teile.append(("-" if b == 0 else " - ") + str(_absolute_term(term)))
            else:
                teile.append(("" if b == 0 else " + ") + str(term))
        return "".join(teile)


def _sum_coefficients(terms):
    summe = fractions.Fraction(0)
    symbolisch = []
    for term in terms:
        wert = as_fraction(term.coefficient)
        if wert is None:
            symbolisch.append(term.coefficient)
        else:
            summe += wert
    if symbolisch:
        return Sum([rational(summe)] + symbolisch).simplify()
    return rational(summe)


# -----------------------------
# Product
# -----------------------------

def _compare_factors(a, b):
    """Numbers first, then roots, then the rest by text."""
    if a.is_rational != b.is_rational:
        return -1 if a.is_rational else 1
    if isinstance(a, Root) != isinstance(b, Root):
        return -1 if isinstance(a, Root) else 1
    links, rechts = str(a), str(b)
    return (links > rechts) - (links < rechts)


def _combine_like_roots(factors):
    """√a·√b = √(ab) for roots with the same integer index."""
    wurzeln = {}
    rest = []
    for faktor in factors:
        if isinstance(faktor, Root) and isinstance(faktor.index, Int):
            wurzeln.setdefault(faktor.index.value, []).append(faktor)
        else:
            rest.append(faktor)

    for index, gruppe in wurzeln.items():
        if len(gruppe) == 1:
            rest.append(gruppe[0])
            continue
        radikand = Int(1)
        for wurzel in gruppe:
            radikand = Prod([radikand, wurzel.radicand]).simplify()
        rest.append(Root(radikand, Int(index)).simplify())
    return rest


class Prod(Expr):
    def __init__(self, factors):
        self.factors = list(factors)

    def simplify(self):
        if not self.factors:
            return Int(1)
        if len(self.factors) == 1:
            return self.factors[0].simplify()

        # 1) simplify, flatten, fold numbers
        flat = []
        numerisch = Int(1)
        for faktor in self.factors:
            einfach = faktor.simplify()
            if einfach.is_zero:
                return Int(0)
            if einfach.is_one:
                continue
            teile = einfach.factors if isinstance(einfach, Prod) else [einfach]
            for teil in teile:
                if teil.is_rational:
                    numerisch = _multiply_rational(numerisch, teil)
                else:
                    flat.append(teil)

        if numerisch.is_zero:
            return Int(0)
        if not numerisch.is_one:
            flat.insert(0, numerisch)
        if not flat:
            return Int(1)
        if len(flat) == 1:
            return flat[0]

        # 2) √2·√2 = 2, √2·√3 = √6
        flat = _combine_like_roots(flat)

        # 3) fold the numbers step 2 produced
        faktoren = []
        numerisch = Int(1)
        for faktor in flat:
            if faktor.is_rational:
                numerisch = _multiply_rational(numerisch, faktor)
            else:
                faktoren.append(faktor)
        if numerisch.is_zero:
            return Int(0)
        if not numerisch.is_one or not faktoren:
            faktoren.insert(0, numerisch)
        if len(faktoren) == 1:
            return faktoren[0]

        faktoren.sort(key=functools.cmp_to_key(_compare_factors))
        return Prod(faktoren)

    def to_double(self):
        ergebnis = 1.0
        for faktor in self.factors:
            ergebnis *= faktor.to_double()
        return ergebnis

    def structurally_equals(self, other):
        return (isinstance(other, Prod) and len(other.factors) == len(self.factors)
                and all(a.structurally_equals(b) for a, b in zip(self.factors, other.factors)))

    @property
    def term_signature(self):
        symbolisch = [faktor.term_signature for faktor in self.factors if not faktor.is_rational]
        if not symbolisch:
            return "int:1"
        if len(symbolisch) == 1:
            return symbolisch[0]
        return "prod:" + "*".join(symbolisch)

    @property
    def coefficient(self):
        koeffizient = Int(1)
        for faktor in self.factors:
            if faktor.is_rational:
                koeffizient = _multiply_rational(koeffizient, faktor)
        return koeffizient

    @property
    def base_expr(self):
        symbolisch = [faktor for faktor in self.factors if not faktor.is_rational]
        if not symbolisch:
            return Int(1)
        if len(symbolisch) == 1:
            return symbolisch[0]
        return Prod(symbolisch)

    @property
    def is_zero(self):
        return any(faktor.is_zero for faktor in self.factors)

    @property
    def is_one(self):
        return all(faktor.is_one for faktor in self.factors)

    @property
    def is_rational(self):
        return all(faktor.is_rational for faktor in self.factors)

    @property
    def is_integer(self):
        return False

    def negate(self):
        faktoren = list(self.factors)
        if faktoren and faktoren[0].is_rational:
            faktoren[0] = faktoren[0].negate()
        else:
            faktoren.insert(0, Int(-1))
        return Prod(faktoren)

    def to_math_node(self, settings=None):
        if not self.factors:
            return [N.LiteralNode("1")]
        if len(self.factors) > 1 and isinstance(self.factors[0], Int) and self.factors[0].value == -1:
            # -1·√2 -> −√2
            rest = self.factors[1:]
            rest_nodes = rest[0].to_math_node(settings) if len(rest) == 1 else Prod(rest).to_math_node(settings)
            if len(rest) == 1 and isinstance(rest[0], Sum):
                rest_nodes = [N.ParenthesisNode(rest_nodes)]
            return [N.LiteralNode(NumberFormat.MINUS_SIGN)] + rest_nodes
        nodes = []
        for b, faktor in enumerate(self.factors):
            if b > 0:
                # 3√2, 2π: coefficient written directly in front
                implizit = self.factors[b - 1].is_rational and isinstance(faktor, (Root, Const))
                if not implizit:
                    nodes.append(N.LiteralNode("·"))
            if isinstance(faktor, Sum):
                nodes.append(N.ParenthesisNode(faktor.to_math_node(settings)))
            else:
                nodes.extend(faktor.to_math_node(settings))
        return nodes

    def __str__(self):
        if len(self.factors) > 1 and isinstance(self.factors[0], Int) and self.factors[0].value == -1:
            return "-" + "·".join(str(faktor) for faktor in self.factors[1:])
        return "·".join(str(faktor) for faktor in self.factors)


# -----------------------------
# Powers and roots
# -----------------------------

class Pow(Expr):
    def __init__(self, base, exponent):
        self.base = base
        self.exponent = exponent

    def simplify(self):
        basis = self.base.simplify()
        exponent = self.exponent.simplify()

        if exponent.is_zero:
            return Int(1)
        if exponent.is_one:
            return basis
        if basis.is_zero:
            return Int(0)
        if basis.is_one:
            return Int(1)

        if isinstance(basis, Int) and isinstance(exponent, Int):
            if 0 < exponent.value <= MAX_EXACT_EXPONENT:
                return Int(basis.value ** exponent.value)
            if 0 > exponent.value >= -MAX_EXACT_EXPONENT:
                return Frac(1, basis.value ** -exponent.value).simplify()

        if isinstance(basis, Frac) and isinstance(exponent, Int) and abs(exponent.value) <= MAX_EXACT_EXPONENT:
            return rational(as_fraction(basis) ** exponent.value)

        # (a^m)^n = a^(m·n)
        if isinstance(basis, Pow):
            return Pow(basis.base, Prod([basis.exponent, exponent]).simplify()).simplify()

        # a^(m/n) = n-th root of a^m
        if isinstance(exponent, Frac):
            if exponent.numerator.value == 1:
                return Root(basis, exponent.denominator).simplify()
            potenz = Pow(basis, exponent.numerator).simplify()
            return Root(potenz, exponent.denominator).simplify()

        return Pow(basis, exponent)

    def to_double(self):
        ergebnis = ScientificEngine.power(self.base.to_double(), self.exponent.to_double())
        if isinstance(ergebnis, complex):
            return math.nan
        return ergebnis

    def structurally_equals(self, other):
        return (isinstance(other, Pow) and self.base.structurally_equals(other.base)
                and self.exponent.structurally_equals(other.exponent))

    @property
    def term_signature(self):
        return f"pow:{self.base.simplify()}^{self.exponent.simplify()}"

    @property
    def is_zero(self):
        return self.base.is_zero

    @property
    def is_one(self):
        return self.base.is_one or self.exponent.is_zero

    @property
    def is_rational(self):
        return (self.base.is_rational and isinstance(self.exponent, Int)
                and self.exponent.value >= 0)

    @property
    def is_integer(self):
        return (isinstance(self.base, Int) and isinstance(self.exponent, Int)
                and self.exponent.value >= 0)

    def to_math_node(self, settings=None):
        basis = self.base.to_math_node(settings)
        if isinstance(self.base, (Sum, Prod, Div, Frac)):
            basis = [N.ParenthesisNode(basis)]
        return [N.ExponentNode(basis, self.exponent.to_math_node(settings))]

    def __str__(self):
        return f"({self.base})^({self.exponent})"


def _prime_factors(n):
    """{prime: exponent} of a positive integer."""
    faktoren = {}
    teiler = 2
    while teiler * teiler <= n:
        while n % teiler == 0:
            faktoren[teiler] = faktoren.get(teiler, 0) + 1
            n //= teiler
        teiler += 1
    if n > 1:
        faktoren[n] = faktoren.get(n, 0) + 1
    return faktoren


def _simplify_integer_root(n, index):
    """Pull perfect index-th powers out: √72 -> 6√2."""
    if n < 0 and index % 2 == 0:
        return Root(Int(n), Int(index))

    negativ = n < 0
    aussen = 1
    innen = 1
    for primzahl, exponent in _prime_factors(abs(n)).items():
        aussen *= primzahl ** (exponent // index)
        innen *= primzahl ** (exponent % index)
    if negativ:
        aussen = -aussen

    if innen == 1:
        return Int(aussen)
    if aussen == 1:
        return Root(Int(innen), Int(index))
    return Prod([Int(aussen), Root(Int(innen), Int(index))])


class Root(Expr):
    def __init__(self, radicand, index):
        self.radicand = radicand
        self.index = index

    @classmethod
    def sqrt(cls, radicand):
        return cls(radicand, Int(2))

    def simplify(self):
        radikand = self.radicand.simplify()
        index = self.index.simplify()

        if radikand.is_one:
            return Int(1)
        if radikand.is_zero:
            return Int(0)
        if not isinstance(index, Int) or index.value <= 0:
            return Root(radikand, index)

        n = index.value
        if isinstance(radikand, Int):
            return _simplify_integer_root(radikand.value, n)

        if isinstance(radikand, Frac):
            if n == 2:
                # √(a/b) = √(ab)/b
                wurzel = Root.sqrt(Int(radikand.numerator.value * radikand.denominator.value)).simplify()
                return Div(wurzel, radikand.denominator).simplify()
            return Div(Root(radikand.numerator, index).simplify(),
                       Root(radikand.denominator, index).simplify()).simplify()

        return Root(radikand, index)

    def to_double(self):
        radikand = self.radicand.to_double()
        index = self.index.to_double()
        if index == 2:
            return math.sqrt(radikand) if radikand >= 0 else math.nan
        if radikand < 0:
            if float(index).is_integer() and int(index) % 2 == 1:
                return -((-radikand) ** (1 / index))
            return math.nan
        return radikand ** (1 / index)

    def structurally_equals(self, other):
        return (isinstance(other, Root) and self.radicand.structurally_equals(other.radicand)
                and self.index.structurally_equals(other.index))

    @property
    def term_signature(self):
        return f"root:{self.index.simplify()}:{self.radicand.simplify()}"

    @property
    def is_zero(self):
        return self.radicand.is_zero

    @property
    def is_one(self):
        return self.radicand.is_one

    def to_math_node(self, settings=None):
        einfach = self.simplify()
        if not isinstance(einfach, Root):
            return einfach.to_math_node(settings)
        quadrat = isinstance(einfach.index, Int) and einfach.index.value == 2
        return [N.RootNode(
            is_square_root=quadrat,
            index=None if quadrat else einfach.index.to_math_node(settings),
            radicand=einfach.radicand.to_math_node(settings),
        )]

    def __str__(self):
        if isinstance(self.index, Int) and self.index.value == 2:
            return f"√{self.radicand}"
        return f"{self.index}√{self.radicand}"


# -----------------------------
# Log, trig, abs
# -----------------------------

def _integer_log(basis, argument):
    """n with basis^n == argument, None if there is none within MAX_LOG_STEPS."""
    if argument == 1:
        return 0
    aktueller_wert = basis
    potenz = 1
    while aktueller_wert < argument:
        aktueller_wert *= basis
        potenz += 1
        if potenz > MAX_LOG_STEPS:
            return None
    if aktueller_wert == argument:
        return potenz
    return None


class Log(Expr):
    def __init__(self, base, argument, is_natural=False):
        self.base = base
        self.argument = argument
        self.is_natural = is_natural

    @classmethod
    def ln(cls, argument):
        return cls(Const("e"), argument, is_natural=True)

    @classmethod
    def log10(cls, argument):
        return cls(Int(10), argument)

    def simplify(self):
        basis = self.base.simplify()
        argument = self.argument.simplify()

        if argument.is_one:
            return Int(0)
        if argument.structurally_equals(basis):
            return Int(1)
        if isinstance(argument, Pow) and argument.base.structurally_equals(basis):
            return argument.exponent.simplify()
        if (isinstance(basis, Int) and isinstance(argument, Int)
                and basis.value > 1 and argument.value > 0):
            ergebnis = _integer_log(basis.value, argument.value)
            if ergebnis is not None:
                return Int(ergebnis)

        return Log(basis, argument, self.is_natural)

    def to_double(self):
        zaehler = ScientificEngine.apply_function("ln", self.argument.to_double())
        if self.is_natural:
            return zaehler if not isinstance(zaehler, complex) else math.nan
        nenner = ScientificEngine.apply_function("ln", self.base.to_double())
        if isinstance(zaehler, complex) or isinstance(nenner, complex):
            return math.nan
        return _float_divide(zaehler, nenner)

    def structurally_equals(self, other):
        return (isinstance(other, Log) and self.base.structurally_equals(other.base)
                and self.argument.structurally_equals(other.argument))

    @property
    def term_signature(self):
        return f"log:{self.base.simplify()}:{self.argument.simplify()}"

    @property
    def is_zero(self):
        return self.argument.is_one

    @property
    def is_one(self):
        return self.argument.structurally_equals(self.base)

    def to_math_node(self, settings=None):
        einfach = self.simplify()
        if not isinstance(einfach, Log):
            return einfach.to_math_node(settings)
        basis = [N.LiteralNode("e")] if einfach.is_natural else einfach.base.to_math_node(settings)
        return [N.LogNode(einfach.is_natural, basis, einfach.argument.to_math_node(settings))]

    def __str__(self):
        if self.is_natural:
            return f"ln({self.argument})"
        return f"log_{self.base}({self.argument})"


def _pi_fraction(expr):
    """(num, den) with expr == num/den · π, None otherwise."""
    if isinstance(expr, Const) and expr.name == "pi":
        return 1, 1
    if isinstance(expr, Prod):
        hat_pi = False
        koeffizient = None
        for faktor in expr.factors:
            if isinstance(faktor, Const) and faktor.name == "pi":
                hat_pi = True
            elif faktor.is_rational:
                koeffizient = faktor if koeffizient is None else Prod([koeffizient, faktor]).simplify()
        if hat_pi and koeffizient is not None:
            wert = as_fraction(koeffizient.simplify())
            if wert is not None:
                return wert.numerator, wert.denominator
    if isinstance(expr, Div) and isinstance(expr.denominator, Int) and expr.denominator.value != 0:
        teil = _pi_fraction(expr.numerator)
        if teil is not None:
            return teil[0], teil[1] * expr.denominator.value
    return None


def _half():
    return Frac(1, 2)


def _sin_exact(num, den):
    """sin(num/den · π) for num/den in [0, 2), None if not a standard angle."""
    vorzeichen = 1
    if num > den:
        vorzeichen = -1
        num = 2 * den - num
    if num * 2 > den:
        num = den - num

    if num == 0:
        return Int(0)
    if num * 6 == den:
        return _half() if vorzeichen == 1 else Frac(-1, 2)
    if num * 4 == den:
        wert = Div(Root.sqrt(Int(2)), Int(2))
        return wert if vorzeichen == 1 else wert.negate().simplify()
    if num * 3 == den:
        wert = Div(Root.sqrt(Int(3)), Int(2))
        return wert if vorzeichen == 1 else wert.negate().simplify()
    if num * 2 == den:
        return Int(vorzeichen)
    return None


def _cos_exact(num, den):
    vorzeichen = 1
    num = num % (2 * den)
    if num > den:
        num = 2 * den - num
    if num * 2 > den:
        vorzeichen = -1
        num = den - num

    if num == 0:
        return Int(vorzeichen)
    if num * 6 == den:
        wert = Div(Root.sqrt(Int(3)), Int(2))
        return wert if vorzeichen == 1 else wert.negate().simplify()
    if num * 4 == den:
        wert = Div(Root.sqrt(Int(2)), Int(2))
        return wert if vorzeichen == 1 else wert.negate().simplify()
    if num * 3 == den:
        return _half() if vorzeichen == 1 else Frac(-1, 2)
    if num * 2 == den:
        return Int(0)
    return None


def _tan_exact(num, den):
    """tan(num/den · π), None at the poles and for non-standard angles."""
    num = num % den
    vorzeichen = 1
    if num * 2 > den:
        vorzeichen = -1
        num = den - num

    if num == 0:
        return Int(0)
    if num * 2 == den:
        return None
    if num * 6 == den:
        wert = Div(Root.sqrt(Int(3)), Int(3))
    elif num * 4 == den:
        wert = Int(1)
    elif num * 3 == den:
        wert = Root.sqrt(Int(3))
    else:
        return None
    return wert if vorzeichen == 1 else wert.negate().simplify()


# f(0) for every function except acosh (not real)
AT_ZERO = {
    "sin": lambda: Int(0), "cos": lambda: Int(1), "tan": lambda: Int(0),
    "asin": lambda: Int(0), "atan": lambda: Int(0),
    "acos": lambda: Div(Const("pi"), Int(2)).simplify(),
    "sinh": lambda: Int(0), "cosh": lambda: Int(1), "tanh": lambda: Int(0),
    "asinh": lambda: Int(0), "atanh": lambda: Int(0),
}
AT_ONE = {
    "asin": lambda: Div(Const("pi"), Int(2)).simplify(),
    "acos": lambda: Int(0),
    "atan": lambda: Div(Const("pi"), Int(4)).simplify(),
}
AT_MINUS_ONE = {
    "asin": lambda: Div(Const("pi"), Int(-2)).simplify(),
    "acos": lambda: Const("pi"),
}


class Trig(Expr):
    def __init__(self, function, argument):
        if function not in TRIG_FUNCTIONS:
            raise E.CalculationError(f"{function}", code="2000")
        self.function = function
        self.argument = argument

    def simplify(self):
        argument = self.argument.simplify()
        exakt = self._exact_value(argument)
        if exakt is not None:
            return exakt.simplify()
        return Trig(self.function, argument)

    def _exact_value(self, argument):
        if argument.is_zero and self.function in AT_ZERO:
            return AT_ZERO[self.function]()
        if argument.is_one and self.function in AT_ONE:
            return AT_ONE[self.function]()
        if isinstance(argument, Int) and argument.value == -1 and self.function in AT_MINUS_ONE:
            return AT_MINUS_ONE[self.function]()

        if self.function not in ("sin", "cos", "tan"):
            return None
        pi_teil = _pi_fraction(argument)
        if pi_teil is None:
            return None

        # reduce into [0, 2π)
        num, den = pi_teil
        num = num % (2 * den)

        if self.function == "sin":
            return _sin_exact(num, den)
        if self.function == "cos":
            return _cos_exact(num, den)
        return _tan_exact(num, den)

    def to_double(self):
        ergebnis = ScientificEngine.apply_function(self.function, self.argument.to_double())
        if isinstance(ergebnis, complex):
            return math.nan
        return ergebnis

    def structurally_equals(self, other):
        return (isinstance(other, Trig) and other.function == self.function
                and self.argument.structurally_equals(other.argument))

    @property
    def term_signature(self):
        return f"trig:{self.function}:{self.argument.simplify()}"

    @property
    def is_zero(self):
        einfach = self.simplify()
        return isinstance(einfach, Int) and einfach.is_zero

    @property
    def is_one(self):
        einfach = self.simplify()
        return isinstance(einfach, Int) and einfach.is_one

    def to_math_node(self, settings=None):
        einfach = self.simplify()
        if not isinstance(einfach, Trig):
            return einfach.to_math_node(settings)
        return [N.TrigNode(self.function, self.argument.to_math_node(settings))]

    def __str__(self):
        return f"{self.function}({self.argument})"


class Abs(Expr):
    def __init__(self, operand):
        self.operand = operand

    def simplify(self):
        operand = self.operand.simplify()
        wert = as_fraction(operand)
        if wert is not None:
            return rational(abs(wert))
        # real roots are never negative
        if isinstance(operand, Root):
            return operand
        return Abs(operand)

    def to_double(self):
        return abs(self.operand.to_double())

    def structurally_equals(self, other):
        return isinstance(other, Abs) and self.operand.structurally_equals(other.operand)

    @property
    def term_signature(self):
        return f"abs:{self.operand.simplify()}"

    @property
    def is_zero(self):
        return self.operand.is_zero

    @property
    def is_one(self):
        return self.operand.is_one or self.operand.negate().simplify().is_one

    def to_math_node(self, settings=None):
        einfach = self.simplify()
        if not isinstance(einfach, Abs):
            return einfach.to_math_node(settings)
        return [N.TrigNode("abs", self.operand.to_math_node(settings))]

    def __str__(self):
        return f"|{self.operand}|"


# -----------------------------
# Division
# -----------------------------

def has_transcendental_parts(expr):
    """Root, log or trig anywhere in a product / power base."""
    if isinstance(expr, (Trig, Log, Root)):
        return True
    if isinstance(expr, Prod):
        return any(has_transcendental_parts(faktor) for faktor in expr.factors)
    if isinstance(expr, Pow):
        return has_transcendental_parts(expr.base)
    return False


class Div(Expr):
    """Symbolic quotient of arbitrary expressions (Frac is the integer-only case)."""

    def __init__(self, numerator, denominator):
        self.numerator = numerator
        self.denominator = denominator

    def simplify(self):
        zaehler = self.numerator.simplify()
        nenner = self.denominator.simplify()

        if zaehler.is_zero:
            return Int(0)
        if nenner.is_one:
            return zaehler
        if zaehler.structurally_equals(nenner) and not nenner.is_zero:
            return Int(1)

        links, rechts = as_fraction(zaehler), as_fraction(nenner)
        if links is not None and rechts is not None:
            if rechts == 0:
                return Div(zaehler, nenner)
            return rational(links / rechts)

        # √a / √b = √(a/b)
        if (isinstance(zaehler, Root) and isinstance(nenner, Root)
                and zaehler.index.structurally_equals(nenner.index)):
            return Root(Div(zaehler.radicand, nenner.radicand).simplify(), zaehler.index).simplify()

        # a·√b / c -> (a/c)·√b
        if isinstance(zaehler, Prod) and rechts is not None and rechts != 0:
            getrennt = self._split_coefficient(zaehler, nenner)
            if getrennt is not None:
                return getrennt

        # (a/b) / c = a / (b·c)
        if isinstance(zaehler, (Frac, Div)):
            return Div(zaehler.numerator, Prod([zaehler.denominator, nenner])).simplify()
        # a / (b/c) = a·c / b
        if isinstance(nenner, (Frac, Div)):
            return Div(Prod([zaehler, nenner.denominator]), nenner.numerator).simplify()

        # (a + b) / c = a/c + b/c
        if isinstance(zaehler, Sum) and not isinstance(nenner, Sum):
            return Sum([Div(term, nenner).simplify() for term in zaehler.terms]).simplify()

        return Div(zaehler, nenner)

    @staticmethod
    def _split_coefficient(zaehler, nenner):
        position = next((b for b, faktor in enumerate(zaehler.factors) if faktor.is_rational), None)
        if position is None:
            return None

        rationaler_faktor = zaehler.factors[position]
        koeffizient = Div(rationaler_faktor, nenner).simplify()
        uebrige = zaehler.factors[:position] + zaehler.factors[position + 1:]
        rest = uebrige[0] if len(uebrige) == 1 else Prod(uebrige).simplify()

        geaendert = isinstance(koeffizient, Int) or (
            isinstance(koeffizient, Frac) and not rationaler_faktor.structurally_equals(koeffizient))
        trennen = isinstance(koeffizient, Frac) and has_transcendental_parts(rest)
        if not (geaendert or trennen):
            return None

        if isinstance(koeffizient, Int):
            if koeffizient.is_one:
                return rest
            return Prod([koeffizient, rest]).simplify()
        if isinstance(koeffizient, Frac):
            if trennen:
                return Prod([koeffizient, rest]).simplify()
            # variables stay inside one fraction: 3x/4, not 3/4·x
            return Div(Prod([koeffizient.numerator, rest]).simplify(), koeffizient.denominator)
        return None

    def to_double(self):
        return _float_divide(self.numerator.to_double(), self.denominator.to_double())

    def structurally_equals(self, other):
        return (isinstance(other, Div) and self.numerator.structurally_equals(other.numerator)
                and self.denominator.structurally_equals(other.denominator))

    @property
    def term_signature(self):
        return f"div:{self.numerator.simplify()}/{self.denominator.simplify()}"

    @property
    def is_zero(self):
        return self.numerator.is_zero

    @property
    def is_one(self):
        return self.numerator.structurally_equals(self.denominator)

    def negate(self):
        return Div(self.numerator.negate(), self.denominator)

    def to_math_node(self, settings=None):
        einfach = self.simplify()
        if not isinstance(einfach, Div):
            return einfach.to_math_node(settings)

        zaehler = einfach.numerator
        negativ = isinstance(zaehler, (Int, Frac)) and _is_negative_term(zaehler)
        if negativ:
            zaehler = _absolute_term(zaehler)

        nodes = [N.LiteralNode(NumberFormat.MINUS_SIGN)] if negativ else []
        nodes.append(N.FractionNode(zaehler.to_math_node(settings), einfach.denominator.to_math_node(settings)))
        return nodes

    def __str__(self):
        return f"({self.numerator})/({self.denominator})"


# -----------------------------
# Counting
# -----------------------------

class Perm(Expr):
    def __init__(self, n, r):
        self.n = n
        self.r = r

    def simplify(self):
        n, r = self.n.simplify(), self.r.simplify()
        if isinstance(n, Int) and isinstance(r, Int) and 0 <= r.value <= n.value:
            return Int(math.perm(n.value, r.value))
        return Perm(n, r)

    def to_double(self):
        n, r = int(self.n.to_double()), int(self.r.to_double())
        return float(ScientificEngine.permutation(n, r))

    def structurally_equals(self, other):
        return (isinstance(other, Perm) and self.n.structurally_equals(other.n)
                and self.r.structurally_equals(other.r))

    @property
    def term_signature(self):
        return f"perm:{self.n.term_signature}:{self.r.term_signature}"

    @property
    def is_one(self):
        einfach = self.simplify()
        return isinstance(einfach, Int) and einfach.is_one

    def to_math_node(self, settings=None):
        einfach = self.simplify()
        if isinstance(einfach, Int):
            return einfach.to_math_node(settings)
        return [N.PermutationNode(self.n.to_math_node(settings), self.r.to_math_node(settings))]

    def __str__(self):
        return f"P({self.n},{self.r})"


class Comb(Expr):
    def __init__(self, n, r):
        self.n = n
        self.r = r

    def simplify(self):
        n, r = self.n.simplify(), self.r.simplify()
        if isinstance(n, Int) and isinstance(r, Int) and 0 <= r.value <= n.value:
            return Int(math.comb(n.value, r.value))
        return Comb(n, r)

    def to_double(self):
        n, r = int(self.n.to_double()), int(self.r.to_double())
        return float(ScientificEngine.combination(n, r))

    def structurally_equals(self, other):
        return (isinstance(other, Comb) and self.n.structurally_equals(other.n)
                and self.r.structurally_equals(other.r))

    @property
    def term_signature(self):
        return f"comb:{self.n.term_signature}:{self.r.term_signature}"

    @property
    def is_one(self):
        einfach = self.simplify()
        return isinstance(einfach, Int) and einfach.is_one

    def to_math_node(self, settings=None):
        einfach = self.simplify()
        if isinstance(einfach, Int):
            return einfach.to_math_node(settings)
        return [N.CombinationNode(self.n.to_math_node(settings), self.r.to_math_node(settings))]

    def __str__(self):
        return f"C({self.n},{self.r})"


# -----------------------------
# Arithmetic shortcuts used by the solvers
# -----------------------------

def add(a, b):
    return Sum([a, b]).simplify()


def subtract(a, b):
    return Sum([a, b.negate()]).simplify()


def multiply(a, b):
    return Prod([a, b]).simplify()


def divide(a, b):
    return Div(a, b).simplify()


def power(a, b):
    return Pow(a, b).simplify()
