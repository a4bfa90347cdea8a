"""Role-specific system prompts for the agent.

Prompt sections are stored as separate .txt files and composed in order: the
shared base followed by the section for the caller's role. Set SYSTEM_PROMPT in
env to override with a single custom prompt.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from ..models import ROLE_ADMIN, ROLE_PARENT

logger = logging.getLogger(__name__)

ROLE_SECTIONS = {
    ROLE_PARENT: ("base", "parent"),
    ROLE_ADMIN: ("base", "admin"),
}
DEFAULT_SECTIONS = ("base",)


def _prompts_dir() -> Path:
    """Directory containing prompt .txt files (next to this __init__.py)."""
    return Path(__file__).resolve().parent


def _load_section(name: str) -> str:
    """Load a single prompt section by name (without .txt)."""
    path = _prompts_dir() / f"{name}.txt"
    if not path.exists():
        logger.warning("Prompt section not found: %s", path)
        return ""
    return path.read_text(encoding="utf-8").strip()


def build_system_prompt(role: str | None, *, separator: str = "\n\n") -> str:
    """Join the prompt sections for ``role`` in order."""
    parts = [_load_section(name) for name in ROLE_SECTIONS.get(role or "", DEFAULT_SECTIONS)]
    return separator.join(part for part in parts if part)


def get_system_prompt(role: str | None, now: datetime, override: str | None = None) -> str:
    """Return the system prompt for one agent step, stamped with the current time."""
    template = override.strip() if override and override.strip() else build_system_prompt(role)
    return template.replace("{time}", now.isoformat()).replace("{role}", role or "unknown")


__all__ = [
    "ROLE_SECTIONS",
    "build_system_prompt",
    "get_system_prompt",
]
