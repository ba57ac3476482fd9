"""YAML prompt templates with ``str.format`` placeholders.

A template file under config/prompts/ declares its inputs; each input is
either ``required: true`` or carries a ``default``. Literal braces in the
prompt text are written doubled.
"""

import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class PromptTemplate(BaseModel):
    name: str
    version: str
    description: str
    temperature: float
    system_prompt: str
    user_prompt: str
    inputs: dict[str, Any] = Field(default_factory=dict)
    output_schema: dict[str, Any] = Field(default_factory=dict)

    def bind(self, values: dict[str, Any]) -> dict[str, Any]:
        """Declared inputs resolved against ``values``; undeclared keys are dropped."""
        bound: dict[str, Any] = {}
        for key, spec in self.inputs.items():
            if key in values:
                bound[key] = values[key]
            elif spec.get("required", False):
                raise ValueError(f"Missing required input '{key}' for template '{self.name}'")
            elif "default" in spec:
                bound[key] = spec["default"]
        return bound


def _fill(text: str, values: dict[str, Any]) -> str:
    try:
        return text.format(**values)
    except KeyError as e:
        raise KeyError(
            f"Template has undefined variable: {e}. Bound inputs: {sorted(values)}"
        ) from e


class PromptRenderer:
    """Loads templates from one directory and renders them.

    Parsed templates are cached by name; the cache is shared by the
    validator's worker threads.
    """

    def __init__(self, prompts_dir: Path | None = None):
        self.prompts_dir = prompts_dir or Path("config/prompts")
        self._cache: dict[str, PromptTemplate] = {}
        self._lock = threading.Lock()

    def load_template(self, name: str) -> PromptTemplate:
        """Parse ``<prompts_dir>/<name>.yaml``, or return the cached copy.

        Raises:
            FileNotFoundError: No such template; the message lists the ones present
            pydantic.ValidationError: The YAML is missing template fields
        """
        with self._lock:
            cached = self._cache.get(name)
            if cached is not None:
                return cached

            path = self.prompts_dir / f"{name}.yaml"
            if not path.is_file():
                available = sorted(p.stem for p in self.prompts_dir.glob("*.yaml"))
                raise FileNotFoundError(
                    f"Prompt template not found: {path}. Available templates: {available}"
                )
            template = PromptTemplate(**yaml.safe_load(path.read_text()))
            self._cache[name] = template
            return template

    def render_split(self, template_name: str, context: dict[str, Any]) -> tuple[str, str, float]:
        """Render to ``(system_prompt, user_prompt, temperature)``."""
        template = self.load_template(template_name)
        values = template.bind(context)
        return (
            _fill(template.system_prompt, values),
            _fill(template.user_prompt, values),
            template.temperature,
        )

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
