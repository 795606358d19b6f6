# NumberFormat.py
"""""
Result formatting shared by the numeric engine and the exact engine.

Modes
-----
- automatic:  integers bare, very large / very small magnitudes in scientific
              form, everything else fixed-point at `precision` decimals.
- scientific: always mantissa + small-caps E + exponent.
- plain:      fixed-point with thousands separators, never scientific.

Fixed-point rendering goes through Decimal.quantize (ROUND_HALF_UP) so the
rounding does not depend on binary float artifacts.
"""""
import logging
import math
from decimal import Decimal, ROUND_HALF_UP, localcontext, InvalidOperation

from . import config_manager as config_manager

logger = logging.getLogger(__name__)

SMALL_CAPS_E = "\u1d07"  # small-caps E
MINUS_SIGN = "\u2212"
INFINITY = "\u221e"

# Automatic-mode thresholds per engine
NUMERIC_LARGE = 1e6
NUMERIC_SMALL = 1e-6
EXACT_LARGE = 1e12
EXACT_SMALL = 1e-4

BIG_INT_THRESHOLD = 10 ** 15
ZERO_CUTOFF = 1e-30
INTEGER_TOLERANCE = 1e-10


# -----------------------------
# Small helpers
# -----------------------------

def is_integer_value(num):
    """True if num is within 1e-10 of a whole number."""
    return abs(num - round(num)) < INTEGER_TOLERANCE


def add_commas(number_string):
    """Insert ',' every three digits of the integer part ("-1234.5" -> "-1,234.5")."""
    sign = ""
    if number_string.startswith("-"):
        sign = "-"
        number_string = number_string[1:]

    if "." in number_string:
        integer_part, fraction_part = number_string.split(".", 1)
        fraction_part = "." + fraction_part
    else:
        integer_part, fraction_part = number_string, ""

    gruppen = []
    while len(integer_part) > 3:
        gruppen.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    gruppen.insert(0, integer_part)

    return sign + ",".join(gruppen) + fraction_part


def strip_trailing_zeros(number_string):
    if "." in number_string:
        number_string = number_string.rstrip("0").rstrip(".")
    return number_string


def to_fixed(num, precision):
    """Fixed-point string with exactly `precision` decimals (like toFixed)."""
    with localcontext() as ctx:
        ctx.prec = 400  # enough for any finite double in plain notation
        try:
            rundungs_muster = Decimal(1).scaleb(-precision)
            gerundet = Decimal(repr(float(num))).quantize(rundungs_muster, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            logger.debug("Decimal quantize failed for %r, using float formatting", num)
            return f"{num:.{precision}f}"
        return format(gerundet, "f")


def to_scientific(num, precision):
    """Mantissa + small-caps E + exponent, trailing mantissa zeros stripped."""
    mantisse, exponent = f"{num:.{precision}e}".split("e")
    mantisse = strip_trailing_zeros(mantisse)
    exponent = int(exponent)
    if exponent == 0:
        return mantisse
    return f"{mantisse}{SMALL_CAPS_E}{exponent}"


# -----------------------------
# Public formatting entry points
# -----------------------------

def format_result(num, settings=None, large_threshold=NUMERIC_LARGE, small_threshold=NUMERIC_SMALL):
    """Render a real or complex result according to the number-format settings."""
    if settings is None:
        settings = config_manager.get_settings()

    if isinstance(num, complex):
        return format_complex(num, settings, large_threshold, small_threshold)

    num = float(num)
    if math.isnan(num):
        return "NaN"
    if math.isinf(num):
        return INFINITY if num > 0 else "-" + INFINITY
    if abs(num) < ZERO_CUTOFF:
        return "0"

    precision = settings.precision

    if settings.number_format == config_manager.SCIENTIFIC:
        return to_scientific(num, precision)

    if settings.number_format == config_manager.PLAIN:
        if is_integer_value(num):
            return add_commas(str(round(num)))
        return add_commas(strip_trailing_zeros(to_fixed(num, precision)))

    # automatic
    betrag = abs(num)
    if betrag >= large_threshold or betrag <= small_threshold:
        return to_scientific(num, precision)
    if is_integer_value(num):
        return str(round(num))
    return strip_trailing_zeros(to_fixed(num, precision))


def format_complex(value, settings=None, large_threshold=NUMERIC_LARGE, small_threshold=NUMERIC_SMALL):
    real, imag = value.real, value.imag

    if abs(imag) < INTEGER_TOLERANCE:
        return format_result(real, settings, large_threshold, small_threshold)

    imag_abs = abs(imag)
    if abs(imag_abs - 1) < INTEGER_TOLERANCE:
        imag_string = "i"
    else:
        imag_string = format_result(imag_abs, settings, large_threshold, small_threshold) + "i"

    if abs(real) < INTEGER_TOLERANCE:
        return ("-" if imag < 0 else "") + imag_string

    real_string = format_result(real, settings, large_threshold, small_threshold)
    zeichen = "-" if imag < 0 else "+"
    return f"{real_string} {zeichen} {imag_string}"


def format_big_int(value, is_whole_number=False, settings=None):
    """Render an exact integer; scientific beyond 1e15 or on request for whole numbers."""
    if settings is None:
        settings = config_manager.get_settings()

    betrag = abs(value)
    use_scientific = False

    if betrag >= BIG_INT_THRESHOLD:
        use_scientific = True
    elif is_whole_number and settings.number_format == config_manager.SCIENTIFIC and betrag > 0:
        use_scientific = True

    if not use_scientific:
        return str(value)

    digits = str(betrag)
    if len(digits) <= 1:
        return str(value)

    precision = settings.precision
    exponent = len(digits) - 1

    # keep precision + 1 significant digits, rounding half up
    if len(digits) > precision + 1:
        prefix = digits[:precision + 1]
        if int(digits[precision + 1]) >= 5:
            gerundet = str(int(prefix) + 1)
            if len(gerundet) > len(prefix):
                exponent += 1
            digits = gerundet
        else:
            digits = prefix

    mantisse = digits[0]
    rest = digits[1:].rstrip("0")
    if rest:
        mantisse += "." + rest

    ergebnis = f"{mantisse}{SMALL_CAPS_E}{exponent}"
    return MINUS_SIGN + ergebnis if value < 0 else ergebnis


def to_numerical_string(numerical, precision=6):
    """Decimal rendering used for the numeric companion of an exact result."""
    if numerical is None or math.isnan(numerical):
        return ""
    if math.isinf(numerical):
        return "-" + INFINITY if numerical < 0 else INFINITY
    if is_integer_value(numerical):
        return str(round(numerical))
    return strip_trailing_zeros(to_fixed(numerical, precision))
