"""Structured logging setup using loguru."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from europarl_mcp.config.models import LoggingConfig


def setup_logger(config: LoggingConfig) -> None:
    """Configure loguru with console, main file and audit outputs."""
    # Remove default handler
    logger.remove()

    # ── Console output ───────────────────────────────────
    # stderr only: stdout carries tool payloads
    if config.console:
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            ),
            level=config.level,
            filter=lambda record: not record["extra"].get("audit", False),
        )

    # ── Main log file ─────────────────────────────────────
    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.file,
            level=config.level,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                "{name}:{function}:{line} - {message}"
            ),
            rotation=config.rotation,
            retention=config.retention,
            filter=lambda record: not record["extra"].get("audit", False),
        )

    # ── Audit log file ────────────────────────────────────
    if config.audit_file:
        Path(config.audit_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.audit_file,
            level="INFO",
            format="{message}",
            rotation=config.rotation,
            retention=config.retention,
            serialize=True,
            filter=lambda record: record["extra"].get("audit", False),
        )

    logger.info(f"Logger initialised: level={config.level} console={config.console}")
