"""Pre-flight check of the proxy configuration.

Loads ``AppSettings`` from the given ``.env`` file and reports whether the
selected Andreani login strategy and quote transport have every setting they
depend on, so a bad deploy fails here instead of on the first carrier login.

Example::

    python -m scripts.check_env --env-file /opt/andreani-proxy/.env
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from andreani_proxy.core.config import AndreaniSettings, AppSettings

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_STRATEGY_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def strategy_problems(settings: AndreaniSettings) -> list[str]:
    """List settings the selected strategy or quote shape cannot work without."""
    problems: list[str] = []
    if settings.auth_strategy == "oauth2" and not settings.client_id:
        problems.append("ANDREANI_CLIENT_ID is required by the oauth2 strategy.")
    if settings.auth_strategy == "static" and not settings.static_token:
        problems.append("ANDREANI_STATIC_TOKEN is required by the static strategy.")
    if settings.quote_shape == "public" and not settings.api_key:
        problems.append("ANDREANI_API_KEY is required for public tariff quotes.")
    if (
        settings.quote_shape == "private"
        and settings.quote_transport == "rest"
        and settings.quote_url is None
    ):
        problems.append("ANDREANI_QUOTE_URL is required for REST private quotes.")
    return problems


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate the Andreani proxy settings.")
    parser.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        settings = AppSettings(
            _env_file=env_file,  # type: ignore[call-arg]
            andreani=AndreaniSettings(_env_file=env_file),  # type: ignore[call-arg]
        )
    except ValidationError as exc:
        print(f"Invalid settings in {env_file}:\n{exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    problems = strategy_problems(settings.andreani)
    if problems:
        print(
            f"Settings incomplete for the {settings.andreani.auth_strategy!r} strategy:\n  "
            + "\n  ".join(problems),
            file=sys.stderr,
        )
        return EXIT_STRATEGY_ERROR

    print(
        f"Settings OK: strategy={settings.andreani.auth_strategy}, "
        f"quote={settings.andreani.quote_shape}/{settings.andreani.quote_transport}"
    )
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
