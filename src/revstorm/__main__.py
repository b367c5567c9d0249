from pathlib import Path
import logging
import os
import sys

from dotenv import load_dotenv

# Ensure the src directory is on sys.path when running as a script
_SRC_DIR = Path(__file__).resolve().parents[1]
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from revstorm.bootstrap import create_game_service, create_save_repository
from revstorm.presentation.cli import run_game

load_dotenv()


def _configure_logging() -> None:
    level_name = os.getenv("REVSTORM_LOG_LEVEL", "WARNING").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_help_surface() -> None:
    print("\nHelp:")
    print("- In game: type a choice number, 's' to save, 'q' to quit.")
    print("- Story service issues: check REVSTORM_NARRATIVE_URL or unset it to play offline.")
    print("- Startup issues: verify REVSTORM_DATABASE_URL or unset it to use in-memory mode.")


def _is_database_connectivity_error(exc: Exception) -> bool:
    text = str(exc).lower()
    markers = (
        "can't connect to",
        "unable to open database file",
        "connection refused",
        "(10061)",
        "sqlalchemy.exc.operationalerror",
        "operationalerror",
    )
    return any(marker in text for marker in markers) or type(exc).__name__ == "OperationalError"


def _play() -> None:
    save_repository = create_save_repository()
    game_service = create_game_service(save_repository)
    run_game(game_service, save_repository)


def main():
    _configure_logging()
    try:
        _play()
    except KeyboardInterrupt:
        print("\nSession ended.")
    except Exception as exc:
        if os.getenv("REVSTORM_DATABASE_URL") and _is_database_connectivity_error(exc):
            print("Save database unavailable; retrying in-memory mode.")
            os.environ.pop("REVSTORM_DATABASE_URL", None)
            try:
                _play()
                return
            except KeyboardInterrupt:
                print("\nSession ended.")
                return
            except Exception as fallback_exc:
                exc = fallback_exc
        print("An unexpected error occurred. The game closed safely.")
        print(f"Reason: {exc}")
        _print_help_surface()


if __name__ == "__main__":
    main()
