from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

USER_STORIES_TEMPLATE = "user_stories.j2"
SYSTEM_TEMPLATE = "system.j2"


def _templates_root() -> Path:
    return Path(__file__).resolve().parent.parent / "templates" / "prompts"


def _template_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(_templates_root()),
        # Prompts are plain text, never HTML.
        autoescape=select_autoescape(default=False),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_prompt(name: str, **context: Any) -> str:
    return _template_env().get_template(name).render(**context).strip()
