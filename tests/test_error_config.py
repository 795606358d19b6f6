import json

import pytest

from CalcEngine import config_manager
from CalcEngine import error as E


def test_error_message_carries_code_and_detail():
    fehler = E.SyntaxError("$", code="3019")
    assert fehler.code == "3019"
    assert str(fehler) == "[3019] Unexpected character: $"


def test_error_subclasses_are_math_errors():
    for klasse in (E.SyntaxError, E.CalculationError, E.SolverError, E.SerializationError):
        assert issubclass(klasse, E.MathError)


def test_unknown_code_has_no_description():
    assert str(E.MathError("boom", code="1234")) == "[1234] boom"


@pytest.mark.parametrize("precision, expected", [(40, 16), (-3, 0), ("abc", 6), ("4", 4)])
def test_settings_precision_is_clamped(precision, expected):
    assert config_manager.Settings(precision=precision).precision == expected


def test_settings_unknown_format_falls_back_to_automatic():
    assert config_manager.Settings(number_format="roman").number_format == config_manager.AUTOMATIC


def test_missing_config_gives_defaults(config_file):
    assert config_manager.load_setting_value("precision") == 6
    alle = config_manager.load_setting_value("all")
    assert alle["number_format"] == "automatic"
    assert alle["log_level"] == "WARNING"


def test_corrupt_config_gives_defaults(config_file):
    config_file.write_text("{not json", encoding="utf-8")
    assert config_manager.get_settings() == config_manager.Settings()


def test_update_settings_persists(config_file):
    config_file.write_text(json.dumps({"precision": 6, "number_format": "automatic"}), encoding="utf-8")

    neu = config_manager.update_settings(precision=3, number_format="plain")

    assert neu.precision == 3
    assert config_manager.get_settings() is neu
    gespeichert = json.loads(config_file.read_text(encoding="utf-8"))
    assert gespeichert["precision"] == 3
    assert gespeichert["number_format"] == "plain"


def test_update_settings_rejects_unknown_keys(config_file):
    with pytest.raises(E.MathError) as info:
        config_manager.update_settings(colour="red")
    assert info.value.code == "5001"
