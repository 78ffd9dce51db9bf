"""
Verification pipeline: named shell checks run after the agent reports success.
"""

import logging
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from storyloop.lib.config import VerificationCommand

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


@dataclass
class VerificationResult:
    name: str
    command: str
    success: bool
    output: str
    duration: float  # seconds
    optional: bool = False


@dataclass
class PipelineResult:
    success: bool
    results: list[VerificationResult] = field(default_factory=list)
    total_duration: float = 0.0

    @property
    def failures(self) -> list[VerificationResult]:
        return [r for r in self.results if not r.success]


class VerificationRunner:
    """Runs every configured check in order, even after a failure.

    A failing optional check is recorded but does not fail the pipeline.
    """

    def __init__(self, commands: Sequence[VerificationCommand], cwd: Path,
                 timeout: float = DEFAULT_TIMEOUT, dry_run: bool = False):
        self.commands = list(commands)
        self.cwd = cwd
        self.timeout = timeout
        self.dry_run = dry_run

    def run_command(self, check: VerificationCommand) -> VerificationResult:
        if self.dry_run:
            return VerificationResult(
                name=check.name,
                command=check.command,
                success=True,
                output="[dry run] skipped",
                duration=0.0,
                optional=check.optional,
            )

        logger.debug(f"Running verification {check.name}: {check.command}")
        start = time.time()
        try:
            result = subprocess.run(
                check.command,
                shell=True,
                cwd=str(self.cwd),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
            success = result.returncode == 0
            output = result.stdout + result.stderr
        except subprocess.TimeoutExpired:
            success = False
            output = f"Timed out after {self.timeout:g}s"
        except OSError as e:
            success = False
            output = f"Failed to run command: {e}"

        duration = time.time() - start
        logger.debug(f"Verification {check.name} {'passed' if success else 'failed'} in {duration:.2f}s")
        return VerificationResult(
            name=check.name,
            command=check.command,
            success=success,
            output=output,
            duration=duration,
            optional=check.optional,
        )

    def run(self) -> PipelineResult:
        start = time.time()
        results = [self.run_command(check) for check in self.commands]
        success = all(r.success or r.optional for r in results)
        return PipelineResult(
            success=success,
            results=results,
            total_duration=time.time() - start,
        )
