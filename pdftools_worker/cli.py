"""Command-line entry point: run one tool over local files."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from .config import load_settings
from .worker import TOOL_OUTPUT_SUFFIXES, process_job

logger = logging.getLogger(__name__)


def _parse_config(value: str | None) -> dict:
    """Parse ``--config`` as inline JSON, or ``@path`` to read JSON from a file."""
    if not value:
        return {}
    raw = Path(value[1:]).read_text(encoding="utf-8") if value.startswith("@") else value
    try:
        config = json.loads(raw)
    except json.JSONDecodeError as error:
        raise argparse.ArgumentTypeError(f"--config is not valid JSON: {error.msg}") from error
    if not isinstance(config, dict):
        raise argparse.ArgumentTypeError("--config must be a JSON object")
    return config


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pdftools-worker",
        description="Merge, split, stamp, redact, or convert PDF files.",
    )
    p.add_argument("tool", choices=sorted(TOOL_OUTPUT_SUFFIXES), help="Tool to run.")
    p.add_argument("inputs", nargs="+", type=Path, help="Input files (PDFs, then a signature image).")
    p.add_argument(
        "--config",
        type=_parse_config,
        default={},
        help='Tool parameters as JSON, e.g. \'{"pages": "1,3-5"}\', or @file.json.',
    )
    p.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for output files (default: current directory).",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    settings = load_settings()
    level = logging.getLevelName(settings.log_level)
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    inputs = []
    for path in args.inputs:
        try:
            inputs.append({"filename": path.name, "data": path.read_bytes()})
        except OSError as error:
            logger.error("Cannot read %s: %s", path, error)
            return 1

    result = process_job(
        {"id": "cli", "tool": args.tool, "inputs": inputs, "config": args.config},
        settings=settings,
    )
    if result["status"] != "success":
        logger.error("%s: %s", result["errorCode"], result["errorMessage"])
        return 1

    args.output_dir.mkdir(parents=True, exist_ok=True)
    for warning in result["warnings"]:
        logger.warning(warning)
    for output in result["outputs"]:
        target = args.output_dir / output["filename"]
        target.write_bytes(output["data"])
        print(target)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
