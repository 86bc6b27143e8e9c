"""CLI entrypoint for Sight2Sense."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from importlib import metadata
from pathlib import Path

from .app import Sight2SenseApp
from .config import API_KEY_ENV_VAR, ensure_config_dir, load_config, resolve_api_key
from .models import SkillLevel


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sight2sense",
        description="Sight2Sense - electronics troubleshooting chat powered by Gemini",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Read settings from this TOML file instead of the default location",
    )
    parser.add_argument(
        "--skill-level",
        default=None,
        metavar="LEVEL",
        help="Starting skill level: Beginner, Intermediate or Advanced",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Load configuration, check the Gemini key, and run the TUI."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("sight2sense")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"sight2sense {version}")
        return

    skill_level: SkillLevel | None = None
    if args.skill_level is not None:
        try:
            skill_level = SkillLevel.parse(args.skill_level)
        except ValueError as exc:
            parser.error(str(exc))

    if resolve_api_key() is None:
        parser.exit(
            2,
            f"sight2sense: {API_KEY_ENV_VAR} is not set. "
            "Export your Gemini API key and try again.\n",
        )

    ensure_config_dir()
    config = load_config(args.config)
    if skill_level is not None:
        config["gemini"]["skill_level"] = skill_level.value

    app = Sight2SenseApp(config=config)
    app.run()


if __name__ == "__main__":
    main()
