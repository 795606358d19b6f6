import json

import pytest

from CalcEngine import CellSheet
from CalcEngine import MathNodes as N
from CalcEngine import error as E


def L(text):
    return N.LiteralNode(text)


def ans(index):
    return N.AnsNode([L(str(index))])


@pytest.fixture
def sheet():
    return CellSheet.SheetState([
        CellSheet.Cell([L("2+3")]),
        CellSheet.Cell([ans(0), L("*2")]),
        CellSheet.Cell([L("7")]),
    ])


def test_cascade_reaches_cells_mentioning_ans(sheet, settings):
    assert CellSheet.recalculate(sheet, 0, settings) == [0, 1]
    assert sheet.cells[0].answer == "5"
    assert sheet.cells[1].answer == "10"
    assert sheet.cells[2].answer == ""


def test_changed_cell_feeds_later_cells(sheet, settings):
    CellSheet.recalculate(sheet, 0, settings)
    sheet.cells[0].expression = [L("4")]
    CellSheet.recalculate(sheet, 0, settings)
    assert sheet.cells[1].answer == "8"


def test_recalculate_all(sheet, settings):
    assert CellSheet.recalculate_all(sheet, settings) == [0, 1, 2]
    assert [cell.answer for cell in sheet.cells] == ["5", "10", "7"]


def test_out_of_range_index_does_nothing(sheet, settings):
    assert CellSheet.recalculate(sheet, 9, settings) == []


def test_reference_cycle_terminates(settings):
    state = CellSheet.SheetState([
        CellSheet.Cell([ans(1), L("+1")]),
        CellSheet.Cell([ans(0), L("+1")]),
    ])
    assert CellSheet.recalculate(state, 0, settings) == [0, 1]


def test_evaluation_pass_claims_once():
    durchlauf = CellSheet.EvaluationPass()
    assert durchlauf.claim(3)
    assert not durchlauf.claim(3)
    assert durchlauf.evaluated == [3]


@pytest.mark.parametrize("nodes, expected", [
    ([N.RootNode(True, radicand=[L("8")])], "2·√2"),
    ([L("1/3")], "0.333333"),
    ([L("2x+3=7")], "x = 2"),
    ([L("2+")], ""),
    ([L("x+y=1\n2x+2y=2")], ""),
])
def test_answer_text(settings, nodes, expected):
    state = CellSheet.SheetState([CellSheet.Cell(nodes)])
    assert CellSheet.evaluate_cell(state, 0, settings) == expected


def test_restored_answer_feeds_ans(settings):
    state = CellSheet.SheetState([
        CellSheet.Cell([L("2+2")], answer="4"),
        CellSheet.Cell([ans(0), L("+1")]),
    ])
    CellSheet.recalculate(state, 1, settings)
    assert state.cells[1].answer == "5"


def test_restored_negative_answer(settings):
    state = CellSheet.SheetState([
        CellSheet.Cell([L("0-5")], answer="−5"),
        CellSheet.Cell([ans(0), L("*2")]),
    ])
    CellSheet.recalculate(state, 1, settings)
    assert state.cells[1].answer == "-10"


def test_solved_equation_feeds_exact_ans(settings):
    state = CellSheet.SheetState([
        CellSheet.Cell([L("3x=1")]),
        CellSheet.Cell([ans(0), L("*3")]),
    ])
    CellSheet.recalculate_all(state, settings)
    assert [cell.answer for cell in state.cells] == ["x = 1/3", "1"]


def test_integral_feeds_exact_ans(settings):
    flaeche = N.IntegralNode([L("x")], [L("0")], [L("1")], [L("x^2")])
    state = CellSheet.SheetState([
        CellSheet.Cell([flaeche]),
        CellSheet.Cell([ans(0), L("*3")]),
    ])
    CellSheet.recalculate_all(state, settings)
    assert [cell.answer for cell in state.cells] == ["0.333333", "1"]


def test_restored_solution_answer_feeds_ans(settings):
    state = CellSheet.SheetState([
        CellSheet.Cell([L("3x=1")], answer="x = 1/3"),
        CellSheet.Cell([ans(0), L("*3")]),
    ])
    CellSheet.recalculate(state, 1, settings)
    assert state.cells[1].answer == "1"


def test_ans_expressions_skip_own_cell(sheet, settings):
    CellSheet.recalculate(sheet, 0, settings)
    assert set(CellSheet.ans_expressions(sheet, 1)) == {0}


def test_references_ans():
    assert CellSheet.references_ans(CellSheet.Cell([ans(0)]))
    assert not CellSheet.references_ans(CellSheet.Cell([L("1+2")]))


# -----------------------------
# Persistence
# -----------------------------

def test_save_and_load(tmp_path, sheet, settings):
    CellSheet.recalculate(sheet, 0, settings)
    sheet.active_index = 2
    path = tmp_path / "cells.json"

    assert CellSheet.save_state(sheet, path)
    geladen = CellSheet.load_state(path)

    assert [cell.expression for cell in geladen.cells] == [cell.expression for cell in sheet.cells]
    assert [cell.answer for cell in geladen.cells] == ["5", "10", ""]
    assert geladen.active_index == 2
    daten = json.loads(path.read_text(encoding="utf-8"))
    assert daten["cells"][1]["index"] == 1
    assert isinstance(daten["cells"][1]["expression"], str)


def test_load_missing_or_corrupt_file(tmp_path):
    leer = CellSheet.load_state(tmp_path / "missing.json")
    assert len(leer.cells) == 1
    assert leer.cells[0].expression == [N.LiteralNode()]

    kaputt = tmp_path / "broken.json"
    kaputt.write_text("{not json", encoding="utf-8")
    assert len(CellSheet.load_state(kaputt).cells) == 1


def test_from_dict_sorts_by_index_and_validates():
    daten = {
        "cells": [
            {"index": 1, "expression": '[{"type": "literal", "text": "b"}]', "answer": ""},
            {"index": 0, "expression": '[{"type": "literal", "text": "a"}]', "answer": "1"},
        ],
        "active_index": 7,
    }
    state = CellSheet.SheetState.from_dict(daten)
    assert [cell.expression for cell in state.cells] == [[L("a")], [L("b")]]
    assert state.active_index == 1

    with pytest.raises(E.SerializationError) as info:
        CellSheet.SheetState.from_dict({"cells": "nope"})
    assert info.value.code == "4003"
    with pytest.raises(E.SerializationError) as info:
        CellSheet.SheetState.from_dict([])
    assert info.value.code == "4001"


# -----------------------------
# Editing
# -----------------------------

def test_insert_and_remove_cells():
    state = CellSheet.SheetState()
    assert CellSheet.insert_cell(state, 0) == 1
    assert state.active_index == 1
    assert len(state.cells) == 2

    CellSheet.remove_cell(state, 1)
    assert len(state.cells) == 1
    assert state.active_index == 0


def test_removing_last_cell_leaves_an_empty_one():
    state = CellSheet.SheetState([CellSheet.Cell([L("1")], answer="1")])
    CellSheet.remove_cell(state, 0)
    assert len(state.cells) == 1
    assert state.cells[0].answer == ""
