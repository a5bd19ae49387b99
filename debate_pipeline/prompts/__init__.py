"""
Role prompts for the debate pipeline.

Every role the pipeline submits a task for (five analysts, bull, bear,
investment judge, trader, three risk perspectives, risk judge, fund manager)
has a persona registered here under a stable agent key:

- analyst_prompts: macro, technical, sentiment, news, risk analysts
- debate_prompts: bull and bear researchers, investment judge
- risk_prompts: aggressive, conservative, neutral risk analysts, risk judge
- decision_prompts: trader, fund manager

Personas can be replaced without touching code, in increasing precedence:

1. Built-in definitions from the modules above
2. `<PROMPTS_DIR>/<agent_key>.json`, merged field by field over the built-in
3. `PROMPT_<AGENT_KEY>` environment variable, replacing the persona text

A persona never carries the role's output format; stages append that when
building the task, so an override cannot break field extraction.
"""

from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, List, Optional
from pathlib import Path
import json
import os
import structlog

from debate_pipeline.exceptions import ConfigurationError

from .analyst_prompts import get_analyst_prompts
from .debate_prompts import get_debate_prompts
from .risk_prompts import get_risk_prompts
from .decision_prompts import get_decision_prompts

logger = structlog.get_logger(__name__)

PROMPT_SOURCES = (get_analyst_prompts, get_debate_prompts, get_risk_prompts, get_decision_prompts)

SOURCE_BUILTIN = "builtin"
SOURCE_JSON = "json"
SOURCE_ENVIRONMENT = "environment"


@dataclass(frozen=True)
class AgentPrompt:
    """
    A role persona with version tracking.

    Attributes:
        agent_key: Registry key (e.g. "bull_researcher")
        agent_name: Display name, also used as the task's role label
        version: Bumped whenever the persona text changes
        system_message: Persona and instructions
        category: analyst, research, trader, risk or manager
        source: Where the active text came from (builtin, json, environment)
        metadata: Free-form notes (last_updated, stance, ...)
    """
    agent_key: str
    agent_name: str
    version: str
    system_message: str
    category: str = "general"
    source: str = SOURCE_BUILTIN
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = SOURCE_BUILTIN) -> "AgentPrompt":
        return cls(
            agent_key=data["agent_key"],
            agent_name=data["agent_name"],
            version=str(data["version"]),
            system_message=data["system_message"],
            category=data.get("category", "general"),
            source=source,
            metadata=dict(data.get("metadata") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("source")
        return data


class PromptRegistry:
    """
    Resolves agent keys to personas.

    Usage:
        registry = PromptRegistry()
        persona = registry.require("bull_researcher").system_message
    """

    def __init__(self, prompts_dir: Optional[str] = None):
        """
        Args:
            prompts_dir: Directory of JSON overrides. Defaults to PROMPTS_DIR or ./prompts.
        """
        self.prompts_dir = Path(prompts_dir or os.environ.get("PROMPTS_DIR", "./prompts"))
        self.prompts: Dict[str, AgentPrompt] = {}
        for source in PROMPT_SOURCES:
            for agent_key, definition in source().items():
                self.prompts[agent_key] = AgentPrompt.from_dict(definition)
        self._apply_json_overrides()
        logger.debug("prompt_registry_ready", count=len(self.prompts), prompts_dir=str(self.prompts_dir))

    def _apply_json_overrides(self) -> None:
        if not self.prompts_dir.is_dir():
            return

        for json_file in sorted(self.prompts_dir.glob("*.json")):
            try:
                data = json.loads(json_file.read_text(encoding="utf-8"))
                agent_key = data.get("agent_key")
                if not agent_key:
                    logger.warning("prompt_override_missing_agent_key", file=json_file.name)
                    continue
                base = self.prompts.get(agent_key)
                merged = {**base.to_dict(), **data} if base else data
                self.prompts[agent_key] = AgentPrompt.from_dict(merged, source=SOURCE_JSON)
                logger.info("prompt_override_loaded", agent_key=agent_key, version=merged["version"])
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error("prompt_override_failed", file=json_file.name, error=str(e))

    def get(self, agent_key: str) -> Optional[AgentPrompt]:
        """
        Persona for `agent_key`, or None when the key is unknown.

        `PROMPT_<AGENT_KEY>` in the environment replaces the persona text of a
        known key and marks the version with an "-env" suffix.
        """
        prompt = self.prompts.get(agent_key)
        override = os.environ.get(f"PROMPT_{agent_key.upper()}")
        if prompt is None or override is None:
            return prompt
        return replace(
            prompt,
            system_message=override,
            version=f"{prompt.version}-env",
            source=SOURCE_ENVIRONMENT,
        )

    def require(self, agent_key: str) -> AgentPrompt:
        """Like get(), but a missing prompt is a configuration error."""
        prompt = self.get(agent_key)
        if prompt is None:
            raise ConfigurationError(f"No prompt registered for agent '{agent_key}'", config_key=agent_key)
        return prompt

    def get_all(self) -> Dict[str, AgentPrompt]:
        return {key: self.get(key) for key in self.prompts}

    def list_keys(self) -> List[str]:
        return list(self.prompts)

    def get_by_category(self, category: str) -> Dict[str, AgentPrompt]:
        return {key: p for key, p in self.get_all().items() if p.category == category}

    def export_to_json(self, output_dir: Optional[str] = None) -> List[Path]:
        """
        Write every active persona to `<output_dir>/<agent_key>.json`.

        The files are valid overrides, so exporting into PROMPTS_DIR gives an
        editable starting point.
        """
        export_dir = Path(output_dir or self.prompts_dir)
        export_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for agent_key, prompt in self.get_all().items():
            output_file = export_dir / f"{agent_key}.json"
            output_file.write_text(json.dumps(prompt.to_dict(), indent=2), encoding="utf-8")
            written.append(output_file)

        logger.info("prompts_exported", count=len(written), output_dir=str(export_dir))
        return written


_registry: Optional[PromptRegistry] = None


def get_registry() -> PromptRegistry:
    """Process-wide registry, built on first use."""
    global _registry
    if _registry is None:
        _registry = PromptRegistry()
    return _registry


def get_prompt(agent_key: str) -> Optional[AgentPrompt]:
    return get_registry().get(agent_key)


__all__ = [
    "AgentPrompt",
    "PromptRegistry",
    "get_registry",
    "get_prompt",
    "get_analyst_prompts",
    "get_debate_prompts",
    "get_risk_prompts",
    "get_decision_prompts",
]
