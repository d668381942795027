"""Report formatters — text (optionally ANSI-colored) and JSON."""

import json
from typing import Callable

from tlsprobe.pipeline import PipelineResult
from tlsprobe.timeline import Event

# ANSI color codes
CYAN = "\033[36m"
YELLOW = "\033[33m"
RESET = "\033[0m"


def format_offset(event: Event) -> str:
    return f"[{event.seconds}.{event.millis:03d}] {event.description}"


def _label(text: str, color: str, enabled: bool) -> str:
    return f"{color}{text}{RESET}" if enabled else text


def format_text(result: PipelineResult, with_body: bool = False, color: bool = False) -> str:
    """Return the human-readable report, one item per line."""
    lines = [format_offset(event) for event in result.timeline.events]
    lines.append(f"{_label('Negotiated Protocol', CYAN, color)}: {result.protocol}")
    lines.append(f"{_label('Negotiated Cipher', CYAN, color)}: {result.cipher}")
    lines.append(f"{_label('Certificates present', CYAN, color)}: {len(result.certificates)}")
    if result.certificates:
        lines.append(f"{_label('Certificates', YELLOW, color)}:")
    for index, certificate in enumerate(result.certificates, start=1):
        lines.append(f"Certificate {index} {certificate.to_json()}")
    # The header's final CRLF would print as a blank line
    header = result.response_header.removesuffix("\r\n")
    lines.append(f"{_label('Header', CYAN, color)}: {header}")
    if with_body:
        lines.append(result.response_body.decode("utf-8", errors="replace"))
    events = json.dumps([event.to_dict() for event in result.timeline.events])
    lines.append(f"{_label('Event Log', CYAN, color)}: {events}")
    return "\n".join(lines)


def format_json(result: PipelineResult, with_body: bool = False, color: bool = False) -> str:
    """Return the whole report as one JSON document."""
    report = {
        "peer_address": list(result.peer_address),
        "protocol": result.protocol,
        "cipher": result.cipher,
        "certificates": [certificate.to_dict() for certificate in result.certificates],
        "response_header": result.response_header,
        "events": [event.to_dict() for event in result.timeline.events],
    }
    if with_body:
        report["response_body"] = result.response_body.decode("utf-8", errors="replace")
    return json.dumps(report, indent=2)


def get_formatter(output_format: str = "text") -> Callable[..., str]:
    """Factory that returns the right formatter based on args."""
    if output_format == "json":
        return format_json
    return format_text


def format_report(
    result: PipelineResult,
    with_body: bool = False,
    output: str = "text",
    color: bool = False,
) -> str:
    return get_formatter(output)(result, with_body=with_body, color=color)
