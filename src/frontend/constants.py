"""Shared constants for the Textual UI."""

from __future__ import annotations

from pathlib import Path

ACCENT = "#1DA1F2"
PROJECT_ROOT = Path(__file__).resolve().parents[2]
EXPORTS_DIR = PROJECT_ROOT / "exports"
