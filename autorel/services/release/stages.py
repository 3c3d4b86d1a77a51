"""Gate stages: externally-owned build/test, lint and security commands.

Only the exit status of each command is consumed. The three gates are
independent and run concurrently; coverage extraction runs after a
successful build/test and only forwards the path of its report.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from autorel.core.config import StagesConfig
from autorel.core.result import Err
from autorel.output.console import ConsoleProtocol, Style
from autorel.platform.process import run as run_process

StageStatus = Literal["success", "failure", "skipped"]

GATE_STAGE_NAMES = ("build_test", "lint", "security")
COVERAGE_STAGE_NAME = "coverage"


@dataclass(frozen=True, slots=True)
class StageResult:
    name: str
    status: StageStatus
    detail: str = ""
    report: Path | None = None

    @property
    def passed(self) -> bool:
        """Skipped (unconfigured) stages do not block the release."""
        return self.status != "failure"


@dataclass(frozen=True, slots=True)
class CommandStage:
    name: str
    argv: tuple[str, ...]

    def run(self, *, cwd: Path, timeout: float) -> StageResult:
        if not self.argv:
            return StageResult(name=self.name, status="skipped", detail="not configured")
        result = run_process(list(self.argv), cwd=cwd, timeout=timeout)
        if isinstance(result, Err):
            e = result.error
            if e.timed_out:
                return StageResult(name=self.name, status="failure", detail=f"timed out after {timeout:g}s")
            return StageResult(name=self.name, status="failure", detail=_last_line(e.output) or str(e))
        return StageResult(name=self.name, status="success")


def _last_line(text: str) -> str:
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    return lines[-1] if lines else ""


def gate_stages(config: StagesConfig) -> list[CommandStage]:
    return [
        CommandStage(name="build_test", argv=config.build_test),
        CommandStage(name="lint", argv=config.lint),
        CommandStage(name="security", argv=config.security),
    ]


def run_gate_stages(
    *,
    stages: list[CommandStage],
    cwd: Path,
    timeout: float,
    console: ConsoleProtocol,
) -> list[StageResult]:
    """Run stages concurrently; results come back in ``stages`` order."""
    configured = [s for s in stages if s.argv]
    for s in configured:
        console.print(f"{s.name}: {' '.join(s.argv)}", Style.DIM)

    with ThreadPoolExecutor(max_workers=max(1, len(configured))) as pool:
        futures = [pool.submit(s.run, cwd=cwd, timeout=timeout) for s in stages]
        results = [f.result() for f in futures]

    for r in results:
        if r.status == "success":
            console.success(r.name)
        elif r.status == "failure":
            console.error(f"{r.name}: {r.detail}")
        else:
            console.print(f"{r.name}: skipped ({r.detail})", Style.DIM)
    return results


def run_coverage(
    *,
    config: StagesConfig,
    build_test: StageResult,
    cwd: Path,
    console: ConsoleProtocol,
) -> StageResult:
    """Convert profiling data into a coverage report; the report is never read."""
    if not config.coverage:
        return StageResult(name=COVERAGE_STAGE_NAME, status="skipped", detail="not configured")
    if build_test.status != "success":
        return StageResult(
            name=COVERAGE_STAGE_NAME,
            status="skipped",
            detail=f"build_test {build_test.status}",
        )

    console.print(f"{COVERAGE_STAGE_NAME}: {' '.join(config.coverage)}", Style.DIM)
    result = CommandStage(name=COVERAGE_STAGE_NAME, argv=config.coverage).run(
        cwd=cwd, timeout=config.timeout_seconds
    )
    if result.status != "success":
        console.warning(f"{COVERAGE_STAGE_NAME}: {result.detail}")
        return result

    report = cwd / config.coverage_report if config.coverage_report else None
    if report is not None and not report.is_file():
        console.warning(f"coverage report not found: {report}")
        return StageResult(name=COVERAGE_STAGE_NAME, status="failure", detail=f"missing {report}")
    return StageResult(name=COVERAGE_STAGE_NAME, status="success", report=report)
