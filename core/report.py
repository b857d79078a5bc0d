"""Presentation of a ``BaseAddressReport``; the analysis itself never prints."""

from __future__ import annotations

import logging

from .models import BaseAddressReport


def format_report(report: BaseAddressReport) -> list[str]:
    lines = [
        f"File size = {report.image.size}",
        f"Buffer size = {len(report.image.data)}",
        f"Loaded firmware file {report.image.path}",
        f"Number of pointers: {report.pointer_count}",
        f"Number of strings: {report.string_count}",
        "Best base address candidates:",
    ]
    for c in report.candidates:
        lines.append(f"Base address: {c.address:08x}, matches: {c.matches}")
    return lines


def log_report(report: BaseAddressReport, logger: logging.Logger) -> None:
    for line in format_report(report):
        logger.info(line)
    for warning in report.warnings:
        logger.warning("Warning: %s", warning)
