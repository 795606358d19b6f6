# config_manager.py
"""""
Access to config.json and the process-wide engine settings.

The engine only consumes two values (precision, number_format). They live in
one Settings object that is loaded on first use and changed only through
update_settings(), which also persists the change.
"""""
import json
import logging
from pathlib import Path

from . import error as E

logger = logging.getLogger(__name__)

config_json = Path(__file__).resolve().parent.parent / "config.json"

AUTOMATIC = "automatic"
SCIENTIFIC = "scientific"
PLAIN = "plain"
NUMBER_FORMATS = [AUTOMATIC, SCIENTIFIC, PLAIN]

DEFAULTS = {
    "precision": 6,
    "number_format": AUTOMATIC,
    "log_level": "WARNING",
    "cells_file": "cells.json",
}

_settings = None


def load_setting_value(key_value):
    try:
        with open(config_json, 'r', encoding='utf-8') as f:
            settings_dict = json.load(f)

    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.warning("config.json unreadable (%s), using defaults", e)
        settings_dict = {}

    merged = dict(DEFAULTS)
    merged.update(settings_dict)

    if key_value == "all":
        return merged

    else:
        return merged.get(key_value, 0)


def save_setting(settings_dict):
    try:
        with open(config_json, 'w', encoding='utf-8') as f:
            json.dump(settings_dict, f, indent=4)
            return settings_dict

    except OSError as e:
        logger.warning("Could not write config.json: %s", e)
        return {}


class Settings:
    """Formatting configuration handed to every formatting call."""

    def __init__(self, precision=6, number_format=AUTOMATIC):
        try:
            precision = int(precision)
        except (TypeError, ValueError):
            logger.warning("Invalid precision %r, falling back to %d", precision, DEFAULTS["precision"])
            precision = DEFAULTS["precision"]
        if precision < 0 or precision > 16:
            logger.warning("Precision %d outside 0..16, clamping", precision)
            precision = min(max(precision, 0), 16)

        if number_format not in NUMBER_FORMATS:
            logger.warning("Unknown number format %r, using automatic", number_format)
            number_format = AUTOMATIC

        self.precision = precision
        self.number_format = number_format

    def replace(self, **changes):
        values = {"precision": self.precision, "number_format": self.number_format}
        values.update(changes)
        return Settings(**values)

    def as_dict(self):
        return {"precision": self.precision, "number_format": self.number_format}

    def __eq__(self, other):
        return isinstance(other, Settings) and self.as_dict() == other.as_dict()

    def __repr__(self):
        return f"Settings(precision={self.precision}, number_format={self.number_format!r})"


def get_settings():
    """Return the process-wide Settings, loading config.json on first use."""
    global _settings
    if _settings is None:
        _settings = Settings(
            load_setting_value("precision"),
            load_setting_value("number_format"),
        )
    return _settings


def update_settings(**changes):
    """The single setter path: validate, persist and swap the shared Settings."""
    global _settings
    for key in changes:
        if key not in ("precision", "number_format"):
            raise E.MathError(f"{key}", code="5001")

    new_settings = get_settings().replace(**changes)

    all_settings = load_setting_value("all")
    all_settings.update(new_settings.as_dict())
    save_setting(all_settings)

    _settings = new_settings
    return _settings


def reset_settings():
    """Forget the cached Settings so the next get_settings() re-reads config.json."""
    global _settings
    _settings = None
