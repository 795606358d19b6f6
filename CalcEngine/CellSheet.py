# CellSheet.py
"""""
The calculator sheet: an ordered list of cells, each an expression tree plus
its formatted answer, and which cell is active.

- save_state() / load_state():  persistence as JSON (load never raises)
- recalculate():                re-evaluate a changed cell and every later cell
                                that mentions 'ans', once each per pass

A cell's answer is the exact rendering when the result is exact (√2, π/4),
otherwise the numeric rendering. Later cells see earlier results through
their ans<N> references.
"""""
import fractions
import json
import logging
import math
from pathlib import Path

from . import ExactEngine
from . import Expressions as X
from . import MathNodes as N
from . import NodeConverter
from . import NumberFormat
from . import Serializer
from . import error as E

logger = logging.getLogger(__name__)

ANS_MARKER = "ans"


class Cell:
    def __init__(self, expression=None, answer=""):
        self.expression = list(expression) if expression else [N.LiteralNode()]
        self.answer = answer
        # ExactResult of the last evaluation; not persisted
        self.result = None

    def __repr__(self):
        return f"Cell({Serializer.serialize(self.expression)!r}, answer={self.answer!r})"


class SheetState:
    def __init__(self, cells=None, active_index=0):
        self.cells = list(cells) if cells else [Cell()]
        self.active_index = min(max(active_index, 0), len(self.cells) - 1)

    def to_dict(self):
        return {
            "cells": [
                {
                    "index": b,
                    "expression": Serializer.serialize_to_json(cell.expression),
                    "answer": cell.answer,
                }
                for b, cell in enumerate(self.cells)
            ],
            "active_index": self.active_index,
        }

    @classmethod
    def from_dict(cls, daten):
        if not isinstance(daten, dict):
            raise E.SerializationError(f"{type(daten).__name__}", code="4001")
        eintraege = daten.get("cells")
        if not isinstance(eintraege, list):
            raise E.SerializationError("cells", code="4003")

        cells = []
        for eintrag in sorted((e for e in eintraege if isinstance(e, dict)), key=_record_index):
            expression = eintrag.get("expression")
            answer = eintrag.get("answer")
            cells.append(Cell(
                Serializer.deserialize_from_json(expression if isinstance(expression, str) else ""),
                answer if isinstance(answer, str) else "",
            ))

        active_index = daten.get("active_index", 0)
        if not isinstance(active_index, int):
            active_index = 0
        return cls(cells, active_index)


def _record_index(eintrag):
    index = eintrag.get("index", 0)
    return index if isinstance(index, int) else 0


# -----------------------------
# Persistence
# -----------------------------

def save_state(state, path):
    path = Path(path)
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(state.to_dict(), f, indent=4, ensure_ascii=False)
    except OSError as e:
        logger.warning("Could not write %s: %s", path, e)
        return False
    return True


def load_state(path):
    """Sheet stored at path; a missing or corrupt file gives one empty cell."""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            daten = json.load(f)
        return SheetState.from_dict(daten)

    except FileNotFoundError:
        logger.info("No saved sheet at %s, starting empty", path)
    except (OSError, ValueError, E.MathError) as e:
        logger.warning("Saved sheet %s unreadable (%s), starting empty", path, e)
    return SheetState()


# -----------------------------
# Evaluation
# -----------------------------

class EvaluationPass:
    """One cascade run. A cell is evaluated at most once per pass, so ans cycles terminate."""

    def __init__(self):
        self.evaluated = []

    def claim(self, index):
        if index in self.evaluated:
            return False
        self.evaluated.append(index)
        return True


def format_answer(result, settings=None):
    """Display text of an ExactResult: exact form when it is exact, numeric otherwise."""
    if result is None or result.is_empty:
        return ""
    if result.has_error:
        logger.debug("no answer: %s", result.error)
        return ""
    if (result.expr is not None and not result.is_exact and result.numerical is not None
            and not ExactEngine.find_variables(result.expr)):
        return NumberFormat.format_result(
            result.numerical, settings,
            large_threshold=NumberFormat.EXACT_LARGE, small_threshold=NumberFormat.EXACT_SMALL,
        )
    return result.to_exact_string()


def _answer_expr(cell):
    """Exact value a later cell sees for ans<N>, None when there is none."""
    ergebnis = cell.result
    if ergebnis is not None and not ergebnis.is_empty and not ergebnis.has_error:
        if ergebnis.expr is not None and not ExactEngine.find_variables(ergebnis.expr):
            return ergebnis.expr
        if len(ergebnis.solutions) == 1:
            # x = 1/3 hands on 1/3, not its rounded float
            return ergebnis.solutions[0]
        if ergebnis.numerical is not None and math.isfinite(ergebnis.numerical):
            try:
                return NodeConverter.computed_to_exact(ergebnis.numerical)
            except E.MathError:
                return X.rational(fractions.Fraction(repr(ergebnis.numerical)))

    # restored cells only have their answer text
    text = cell.answer.replace(NumberFormat.MINUS_SIGN, "-").replace(",", "")
    if "\n" not in text and text.count("=") == 1:
        text = text.split("=")[1]
    text = text.strip()
    if not text:
        return None
    try:
        wert = NodeConverter.convert([N.LiteralNode(text)])
    except E.MathError:
        return None
    if not isinstance(wert, (X.Int, X.Frac)):
        return None
    return wert


def ans_expressions(state, index):
    """{cell number: Expr} for every other cell that has a usable result."""
    werte = {}
    for b, cell in enumerate(state.cells):
        if b == index:
            continue
        wert = _answer_expr(cell)
        if wert is not None:
            werte[b] = wert
    return werte


def evaluate_cell(state, index, settings=None):
    cell = state.cells[index]
    cell.result = ExactEngine.evaluate(cell.expression, ans_expressions(state, index), settings)
    cell.answer = format_answer(cell.result, settings)
    logger.debug("cell %d: %r", index, cell.answer)
    return cell.answer


def references_ans(cell):
    # any ans mention counts, not just the changed index
    return ANS_MARKER in Serializer.serialize(cell.expression).lower()


def recalculate(state, changed_index, settings=None, evaluation_pass=None):
    """Evaluate the changed cell, then every later cell that mentions ans.

    Returns the indices evaluated in this pass, in order.
    """
    durchlauf = evaluation_pass or EvaluationPass()
    if not 0 <= changed_index < len(state.cells):
        return durchlauf.evaluated

    if durchlauf.claim(changed_index):
        evaluate_cell(state, changed_index, settings)

    for index in range(changed_index + 1, len(state.cells)):
        if references_ans(state.cells[index]) and durchlauf.claim(index):
            evaluate_cell(state, index, settings)
    return durchlauf.evaluated


def recalculate_all(state, settings=None):
    """Fresh evaluation of every cell in order, e.g. after loading or a settings change."""
    durchlauf = EvaluationPass()
    for index in range(len(state.cells)):
        if durchlauf.claim(index):
            evaluate_cell(state, index, settings)
    return durchlauf.evaluated


# -----------------------------
# Editing
# -----------------------------

def insert_cell(state, index=None):
    """New empty cell after index (at the end when None); it becomes active."""
    position = len(state.cells) if index is None else index + 1
    state.cells.insert(position, Cell())
    state.active_index = position
    return position


def remove_cell(state, index):
    if len(state.cells) == 1:
        state.cells[0] = Cell()
        state.active_index = 0
        return
    del state.cells[index]
    state.active_index = min(state.active_index, len(state.cells) - 1)
