"""Job runtime for executing PDF tools."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Sequence

from .config import Settings, load_settings
from .conversion import ConversionResult, DOCX_MEDIA_TYPE, MARKDOWN_MEDIA_TYPE
from .errors import ParseError, UnextractableContentError
from .tools import (
    add_signature_pdf,
    add_text_pdf,
    extract_pdf_pages,
    merge_pdfs,
    pdf_info,
    pdf_to_docx,
    pdf_to_markdown,
    redact_pdf,
    redact_pdf_multiple,
    remove_pdf_pages,
    split_pdf,
    watermark_pdf,
)

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
JSON_MEDIA_TYPE = "application/json"

TOOL_OUTPUT_SUFFIXES = {
    "merge": ("merged", ".pdf"),
    "split": ("part", ".pdf"),
    "extract": ("extracted", ".pdf"),
    "remove": ("trimmed", ".pdf"),
    "watermark": ("watermarked", ".pdf"),
    "add-text": ("annotated", ".pdf"),
    "add-signature": ("signed", ".pdf"),
    "redact": ("redacted", ".pdf"),
    "redact-multiple": ("redacted", ".pdf"),
    "pdf-to-markdown": ("markdown", ".md"),
    "pdf-to-word": ("word", ".docx"),
    "info": ("info", ".json"),
}

MEDIA_TYPES = {
    ".pdf": PDF_MEDIA_TYPE,
    ".md": MARKDOWN_MEDIA_TYPE,
    ".docx": DOCX_MEDIA_TYPE,
    ".json": JSON_MEDIA_TYPE,
}

GENERIC_FAILURE_MESSAGE = "Processing failed. Please retry."


class ToolResult(NamedTuple):
    outputs: List[bytes]
    warnings: List[str]


def build_output_name(tool: str, source_name: str | None, index: int = 1, count: int = 1) -> str:
    """Name an output after its first input, e.g. ``report_watermarked.pdf`` or ``report_part2.pdf``."""
    stem = Path(source_name).stem if source_name else ""
    stem = stem or "output"
    suffix, extension = TOOL_OUTPUT_SUFFIXES.get(tool, ("output", ".pdf"))
    if count > 1:
        suffix = f"{suffix}{index}"
    return f"{stem}_{suffix}{extension}"


def _require_inputs(tool: str, inputs: Sequence[bytes], count: int = 1) -> None:
    if len(inputs) < count:
        noun = "PDF file is" if count == 1 else f"{count} files are"
        raise ParseError(f"{noun} required for {tool}")


def _require_text(config: Dict[str, Any], key: str, label: str) -> str:
    value = config.get(key)
    if value is None or not str(value).strip():
        raise ParseError(f"{label} is required")
    return str(value)


def _conversion(result: ConversionResult) -> ToolResult:
    warnings = []
    if result.unextractable_pages:
        error = UnextractableContentError(result.unextractable_pages)
        warnings.append(error.message)
    return ToolResult([result.data], warnings)


def _text_items(config: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Read text items from ``items`` (list or JSON), or a single item from the top-level fields."""
    items = config.get("items")
    if items is None:
        _require_text(config, "text", "Text to add")
        return [config]
    if isinstance(items, str):
        try:
            items = json.loads(items)
        except json.JSONDecodeError as error:
            raise ParseError(f"Invalid text items JSON: {error.msg}") from error
    if not isinstance(items, list):
        raise ParseError("Text items must be a list")
    return items


def execute_tool(
    tool: str,
    inputs: Sequence[bytes],
    config: Dict[str, Any] | None = None,
    settings: Settings | None = None,
) -> ToolResult:
    """
    Dispatch a tool by name and return its output buffers plus any warnings.

    Parameters:
        tool (str): Tool name, e.g. "merge", "split", or "redact-multiple".
        inputs (Sequence[bytes]): Input files; the first is the PDF being edited.
            ``add-signature`` takes the signature image as its second input.
        config (dict | None): Tool parameters as sent by the caller.
        settings (Settings | None): Overrides for the environment settings.

    Returns:
        ToolResult: Output buffers in order and human-readable warnings.

    Raises:
        ParseError: When the tool is unknown or required parameters are missing or malformed.
        PdfToolError: Any error raised by the tool itself.
    """
    if not isinstance(config, dict):
        config = {}
    settings = settings or load_settings()
    if tool == "merge":
        return ToolResult([merge_pdfs(inputs, min_inputs=settings.merge_min_inputs)], [])
    if tool not in TOOL_OUTPUT_SUFFIXES:
        raise ParseError(f"Unsupported tool: {tool}")
    _require_inputs(tool, inputs)
    source = inputs[0]
    if tool == "split":
        return ToolResult(split_pdf(source, config.get("groups") or config.get("ranges")), [])
    if tool in ("extract", "remove"):
        pages = config.get("pages")
        if pages is None or (isinstance(pages, str) and not pages.strip()):
            raise ParseError("Pages are required")
        operation = extract_pdf_pages if tool == "extract" else remove_pdf_pages
        return ToolResult([operation(source, pages)], [])
    if tool == "watermark":
        text = _require_text(config, "text", "Watermark text")
        output = watermark_pdf(
            source,
            text,
            x=config.get("x"),
            y=config.get("y"),
            rotation=config.get("rotation"),
            opacity=config.get("opacity"),
            font_size=config.get("fontSize"),
            font_name=config.get("fontName"),
            font_color=config.get("fontColor"),
            settings=settings,
        )
        return ToolResult([output], [])
    if tool == "add-text":
        output = add_text_pdf(
            source, _text_items(config), display_scale=config.get("displayScale"), settings=settings
        )
        return ToolResult([output], [])
    if tool == "add-signature":
        if len(inputs) < 2:
            raise ParseError("Signature image is required")
        output = add_signature_pdf(
            source,
            inputs[1],
            x=config.get("x", 400),
            y=config.get("y", 100),
            page=config.get("page", 1),
            width=config.get("width"),
            height=config.get("height"),
            display_scale=config.get("displayScale"),
            settings=settings,
        )
        return ToolResult([output], [])
    if tool == "redact":
        for key in ("x", "y", "width", "height"):
            if config.get(key) is None:
                raise ParseError(f"Redaction {key} is required")
        output = redact_pdf(
            source,
            config["x"],
            config["y"],
            config["width"],
            config["height"],
            page=config.get("page", 1),
            display_scale=config.get("displayScale"),
            settings=settings,
        )
        return ToolResult([output], [])
    if tool == "redact-multiple":
        areas = config.get("areas")
        if not areas:
            raise ParseError("Redaction areas are required")
        output = redact_pdf_multiple(
            source, areas, display_scale=config.get("displayScale"), settings=settings
        )
        return ToolResult([output], [])
    if tool == "pdf-to-markdown":
        return _conversion(pdf_to_markdown(source))
    if tool == "pdf-to-word":
        return _conversion(pdf_to_docx(source))
    # info
    summary = pdf_info(source)
    return ToolResult([json.dumps(summary, indent=2).encode("utf-8")], [])


def run_tool(
    tool: str,
    inputs: Sequence[bytes],
    config: Dict[str, Any] | None = None,
    settings: Settings | None = None,
) -> List[bytes]:
    """Run one tool and return only its output buffers."""
    return execute_tool(tool, inputs, config, settings).outputs


def _read_inputs(items: Any) -> tuple[List[bytes], List[str]]:
    """Accept raw buffers or ``{"filename", "data"}`` objects."""
    if not isinstance(items, list):
        raise ParseError("Job inputs must be a list")
    buffers: List[bytes] = []
    names: List[str] = []
    for index, item in enumerate(items, start=1):
        if isinstance(item, (bytes, bytearray)):
            buffers.append(bytes(item))
            names.append(f"input{index}.pdf")
            continue
        if not isinstance(item, dict) or not isinstance(item.get("data"), (bytes, bytearray)):
            raise ParseError(f"Job input {index} has no data")
        buffers.append(bytes(item["data"]))
        names.append(Path(str(item.get("filename") or f"input{index}.pdf")).name)
    return buffers, names


def _failure(job_id: str, error_code: str, error_message: str, log_message: str) -> Dict[str, Any]:
    """Build a failure payload for a job."""
    logger.warning("Job %s failed: %s", job_id, log_message)
    return {
        "jobId": job_id,
        "status": "failed",
        "errorCode": error_code,
        "errorMessage": error_message,
    }


def process_job(job: Dict[str, Any], settings: Settings | None = None) -> Dict[str, Any]:
    """
    Run a single job and report its outcome without raising.

    A job looks like ``{"id", "tool", "inputs": [{"filename", "data"}], "config"}``.

    Returns:
        dict: ``{"status": "success", "outputs", "warnings", ...}`` with one
        ``{"filename", "data", "mediaType", "sizeBytes"}`` entry per output, or
        ``{"status": "failed", "errorCode", "errorMessage"}``. User errors carry
        their own message; unexpected errors are logged and reported generically.
    """
    job_id = str(job.get("id") or job.get("_id") or "local")
    tool = str(job.get("tool") or "")
    started = time.time()
    try:
        inputs, names = _read_inputs(job.get("inputs"))
        result = execute_tool(tool, inputs, job.get("config"), settings)
        source_name = names[0] if names else None
        outputs = []
        for index, data in enumerate(result.outputs, start=1):
            filename = build_output_name(tool, source_name, index, len(result.outputs))
            outputs.append(
                {
                    "filename": filename,
                    "data": data,
                    "mediaType": MEDIA_TYPES.get(Path(filename).suffix, PDF_MEDIA_TYPE),
                    "sizeBytes": len(data),
                }
            )
        elapsed_minutes = max((time.time() - started) / 60, 0.01)
        logger.info(
            "Job %s (%s) produced %d output(s) from %d input(s)",
            job_id,
            tool,
            len(outputs),
            len(inputs),
        )
        return {
            "jobId": job_id,
            "status": "success",
            "outputs": outputs,
            "warnings": result.warnings,
            "minutesUsed": elapsed_minutes,
            "bytesProcessed": sum(len(data) for data in inputs),
        }
    except ValueError as error:
        return _failure(job_id, getattr(error, "code", "USER_INPUT_INVALID"), str(error), str(error))
    except Exception as error:  # noqa: BLE001
        logger.exception("Job %s (%s) crashed", job_id, tool)
        return _failure(
            job_id,
            getattr(error, "code", "SERVICE_CAPACITY_TEMPORARY"),
            GENERIC_FAILURE_MESSAGE,
            str(error),
        )
