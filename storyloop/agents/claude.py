"""
Claude agent integration for storyloop.

The agent is an opaque process: it receives the prompt file on stdin and
is expected to end its output with a json:storyloop-output block.
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from storyloop.lib.config import DEFAULT_AGENT_COMMAND, LoopConfig
from storyloop.lib.constants import OUTPUT_MARKER

logger = logging.getLogger(__name__)


@dataclass
class AgentResult:
    output: str  # stdout followed by stderr
    exit_code: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class Agent(Protocol):
    def run(self) -> AgentResult:
        ...


class ClaudeAgent:
    def __init__(self, cwd: Path, prompt_path: str = "CLAUDE.md",
                 command: str = DEFAULT_AGENT_COMMAND, timeout: Optional[float] = None):
        self.cwd = cwd
        self.prompt_path = prompt_path
        self.command = command
        self.timeout = timeout

    def read_prompt(self) -> str:
        """Read the prompt file.

        Raises:
            OSError: if the prompt file cannot be read
        """
        path = self.cwd / self.prompt_path
        try:
            return path.read_text()
        except OSError as e:
            raise OSError(f"Failed to read prompt file: {path} ({e})") from e

    def run(self) -> AgentResult:
        """
        Run the agent once over the prompt file.

        Uses: <command> < CLAUDE.md
        Passes prompt via stdin to avoid CLI argument length limits.
        """
        prompt = self.read_prompt()
        cmd = shlex.split(self.command)
        logger.debug(f"Starting agent: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                cwd=str(self.cwd),
                input=prompt,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            partial = e.stdout or ""
            if isinstance(partial, bytes):
                partial = partial.decode(errors="replace")
            return AgentResult(
                output=f"{partial}\nAgent timed out after {self.timeout:g}s",
                exit_code=-1,
            )
        except OSError as e:
            return AgentResult(output=f"Failed to spawn {cmd[0]}: {e}", exit_code=1)

        logger.debug(f"Agent exited with code {result.returncode}")
        return AgentResult(output=result.stdout + result.stderr, exit_code=result.returncode)


SIMULATED_OUTPUT = f"""
[DRY RUN] Simulated agent execution
- No agent process was started
- No changes were made

```{OUTPUT_MARKER}
{{
  "status": "success",
  "storyId": "SIMULATED",
  "filesChanged": [],
  "learnings": ["This was a dry run"],
  "error": null,
  "nextAction": "continue"
}}
```
"""


class SimulatedAgent:
    """Stand-in for dry runs: always reports a successful iteration."""

    def run(self) -> AgentResult:
        logger.info("[DRY RUN] Would execute the agent here")
        return AgentResult(output=SIMULATED_OUTPUT, exit_code=0)


def create_agent(config: LoopConfig, cwd: Path, dry_run: bool = False) -> Agent:
    if dry_run:
        return SimulatedAgent()
    return ClaudeAgent(
        cwd=cwd,
        prompt_path=config.prompt_path,
        command=config.agent.command,
        timeout=config.agent.timeout,
    )
