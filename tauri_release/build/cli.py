"""Command-line entry point for tauri-release.

Inside GitHub Actions the configuration arrives as ``INPUT_*`` environment
variables; a YAML or JSON file passed with ``--config`` overrides them, and
the positional project path overrides both.
"""

from __future__ import annotations

import argparse
import json
import os
import pathlib
import sys
from typing import List, Mapping, Optional

from tauri_release.build.config import ActionConfig
from tauri_release.build.models import RunResult
from tauri_release.build.orchestrator import Orchestrator
from tauri_release.core.logging_manager import LoggingConfig, LoggingManager
from tauri_release.utils.exceptions import TauriReleaseError


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build a Tauri application and publish it to a GitHub release",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("project_path", nargs="?", help="Path to the project root")
    parser.add_argument("--config", type=str, help="Path to a YAML or JSON configuration file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug output")
    parser.add_argument(
        "--log-format", choices=["text", "json"], default="text", help="Log output format"
    )
    parser.add_argument("--log-file", type=str, help="Also write logs to this file")
    return parser.parse_args(args)


def load_config(args: argparse.Namespace, environ: Mapping[str, str]) -> ActionConfig:
    """Combine environment inputs, the config file and command-line arguments."""
    config = ActionConfig.from_env(environ)
    if args.config:
        file_config = ActionConfig.from_file(args.config)
        config = config.merged_with(file_config.model_dump(exclude_unset=True))
    if args.project_path:
        config = config.merged_with({"project_path": args.project_path})
    return config


def format_outputs(result: RunResult) -> List[str]:
    outputs = [
        f"artifactPaths={json.dumps(result.artifact_paths)}",
        f"appVersion={result.app_version or ''}",
    ]
    if result.release is not None:
        outputs.extend(
            [
                f"releaseId={result.release.id}",
                f"releaseUploadUrl={result.release.upload_url}",
                f"releaseHtmlUrl={result.release.html_url}",
            ]
        )
    return outputs


def write_outputs(result: RunResult, environ: Mapping[str, str], logger) -> None:
    """Append step outputs to ``$GITHUB_OUTPUT``, or log them outside Actions."""
    lines = format_outputs(result)
    output_file = environ.get("GITHUB_OUTPUT")
    if not output_file:
        for line in lines:
            logger.info("Output", value=line)
        return
    with open(output_file, "a", encoding="utf-8") as f:
        for line in lines:
            f.write(f"{line}\n")


def report_failure(message: str, environ: Mapping[str, str], logger) -> None:
    logger.error("Run failed", error=message)
    if environ.get("GITHUB_ACTIONS") == "true":
        # workflow command so the failure shows up as an annotation
        print(f"::error::{message}")


def main(args: Optional[List[str]] = None) -> int:
    parsed = parse_args(args)
    environ = os.environ

    logging_manager = LoggingManager(
        LoggingConfig(
            level="DEBUG" if parsed.verbose else "INFO",
            format=parsed.log_format,
            file_path=pathlib.Path(parsed.log_file) if parsed.log_file else None,
        )
    )
    logging_manager.initialize()
    logger = logging_manager.get_logger(__name__)

    try:
        config = load_config(parsed, environ)
        result = Orchestrator(config).run()
        write_outputs(result, environ, logger)
        return 0
    except TauriReleaseError as e:
        report_failure(str(e), environ, logger)
        return 1
    except Exception as e:
        logger.exception("Unexpected error")
        report_failure(f"Unexpected error: {e}", environ, logger)
        return 1
    finally:
        logging_manager.shutdown()


if __name__ == "__main__":
    sys.exit(main())
