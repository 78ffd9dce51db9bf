"""
Configuration loaders for storyloop.

Loads loop configuration from storyloop.yaml in the working directory.
If no config file exists, returns defaults.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

import yaml

from storyloop.lib import validate
from storyloop.lib.constants import CONFIG_FILENAMES

logger = logging.getLogger(__name__)


DEFAULT_AGENT_COMMAND = "claude --dangerously-skip-permissions --print"


class ConfigError(Exception):
    """Config file could not be read or failed validation."""


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff settings between failed attempts (seconds)."""
    initial_delay: float = 2.0
    multiplier: float = 2.0
    max_delay: float = 60.0


@dataclass(frozen=True)
class VerificationCommand:
    """A named check run after the agent reports success."""
    name: str
    command: str
    optional: bool = False  # Failure is reported but does not fail the pipeline


@dataclass(frozen=True)
class AgentSettings:
    command: str = DEFAULT_AGENT_COMMAND
    timeout: Optional[float] = None  # None = wait for the agent as long as it takes


@dataclass(frozen=True)
class LoopConfig:
    """Loop configuration from storyloop.yaml"""
    max_iterations: int = 10
    max_retries_per_story: int = 3
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    backlog_path: str = "prd.json"  # Relative to the working directory
    progress_path: str = "progress.txt"
    prompt_path: str = "CLAUDE.md"
    iteration_pause: float = 2.0
    agent: AgentSettings = field(default_factory=AgentSettings)
    verification_commands: tuple[VerificationCommand, ...] = ()
    verification_timeout: float = 300.0


def find_config_file(cwd: Path) -> Path | None:
    """Return the first config file found in cwd, or None."""
    for filename in CONFIG_FILENAMES:
        candidate = cwd / filename
        if candidate.exists():
            return candidate
    return None


def config_from_dict(data: dict) -> LoopConfig:
    """Build LoopConfig from an already-validated dict, filling defaults."""
    defaults = LoopConfig()

    retry_data = data.get("retry") or {}
    retry = RetryPolicy(
        initial_delay=float(retry_data.get("initial_delay", defaults.retry.initial_delay)),
        multiplier=float(retry_data.get("multiplier", defaults.retry.multiplier)),
        max_delay=float(retry_data.get("max_delay", defaults.retry.max_delay)),
    )

    agent_data = data.get("agent") or {}
    agent = AgentSettings(
        command=agent_data.get("command", defaults.agent.command),
        timeout=agent_data.get("timeout", defaults.agent.timeout),
    )

    verification = data.get("verification") or {}
    commands = tuple(
        VerificationCommand(
            name=c["name"],
            command=c["command"],
            optional=c.get("optional", False),
        )
        for c in verification.get("commands", [])
    )

    return LoopConfig(
        max_iterations=data.get("max_iterations", defaults.max_iterations),
        max_retries_per_story=data.get("max_retries_per_story", defaults.max_retries_per_story),
        retry=retry,
        backlog_path=data.get("backlog_path", defaults.backlog_path),
        progress_path=data.get("progress_path", defaults.progress_path),
        prompt_path=data.get("prompt_path", defaults.prompt_path),
        iteration_pause=float(data.get("iteration_pause", defaults.iteration_pause)),
        agent=agent,
        verification_commands=commands,
        verification_timeout=float(verification.get("timeout", defaults.verification_timeout)),
    )


def load_config(cwd: Path, config_path: Optional[Path] = None) -> LoopConfig:
    """Load storyloop.yaml and return LoopConfig.

    If no config file is given or found, returns defaults.

    Raises:
        ConfigError: if the file is not valid YAML or fails schema validation
    """
    path = config_path or find_config_file(cwd)
    if path is None:
        logger.debug(f"No config file in {cwd}, using defaults")
        return LoopConfig()

    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    if data is None:
        return LoopConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config in {path}: expected a mapping")

    try:
        validate.validate(data, "config")
    except validate.ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from None

    return config_from_dict(data)


def merge_cli_overrides(config: LoopConfig, max_iterations: Optional[int] = None) -> LoopConfig:
    """Apply command-line overrides on top of file config."""
    if max_iterations is not None:
        if max_iterations < 1:
            raise ConfigError("--max-iterations must be at least 1")
        config = replace(config, max_iterations=max_iterations)
    return config
