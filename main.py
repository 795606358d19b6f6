# Main.py
""""" Entry point for the calculator sheet.

   Responsibilities:
   - Detect run mode (script vs PyInstaller.exe)
   - Verify required files exist in development mode
   - Configure logging from config.json and start the Qt GUI

"""""
import logging
import sys
from pathlib import Path

from CalcEngine import config_manager


# Resolve project root depending on run mode (Script or .exe)

if getattr(sys, 'frozen', False):
    PROJECT_ROOT = Path(sys._MEIPASS)
else:
    PROJECT_ROOT = Path(__file__).resolve().parent

logger = logging.getLogger("CalcEngine.main")


def check_files_exist():

    """
      Fail fast in development if required files are missing / moved / renamed.
      In production (.exe) the files are embedded by the bundler, so this is skipped.
    """

    engine_dir = PROJECT_ROOT / "CalcEngine"

    REQUIRED = [
        engine_dir / "UI.py",
        engine_dir / "MathEngine.py",
        engine_dir / "ExactEngine.py",
        engine_dir / "CellSheet.py",
        engine_dir / "config_manager.py",
        PROJECT_ROOT / "config.json",
    ]

    missing_files = [file_path.name for file_path in REQUIRED if not file_path.exists()]

    if missing_files:
        logger.error("The following files are missing or in the wrong location: %s", ", ".join(missing_files))
        sys.exit(1)


def configure_logging():
    level_name = str(config_manager.load_setting_value("log_level")).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main():

    """
    Load configuration and start the GUI.
    - Keep this thin: no business logic here.
    """

    configure_logging()
    logger.info("Config loaded: %s", config_manager.load_setting_value("all"))

    # imported late so the engine stays usable without the gui extra
    from CalcEngine import UI

    # Delegate control to the UI layer; the UI owns the event loop.
    UI.main()


if __name__ == "__main__":
    is_running_as_exe = getattr(sys, 'frozen', False)

    if not is_running_as_exe:
        configure_logging()
        logger.info("Developer Mode: Checking file paths...")
        check_files_exist()
    else:
        logger.info("Production mode (.exe) is starting...")
    main()
