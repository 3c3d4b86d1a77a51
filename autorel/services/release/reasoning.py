"""Client for the external reasoning service.

The service is consulted for two intents: classifying a version bump and
writing release-note prose. Every call is a single bounded request with no
retry; callers decide how to degrade when it fails:

- ``timeout`` / ``unavailable``: transport problem, the service said nothing.
- ``malformed`` / ``refused``: the service answered, but not usably.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from autorel.core.config import ReasoningConfig
from autorel.core.result import Err, Ok, Result
from autorel.core.structured import as_obj_list, as_str_dict, get_str
from autorel.platform.http import HttpClient
from autorel.services.release.model import BUMP_RANK, BumpKind
from autorel.services.release.semver import SemVer

ANTHROPIC_VERSION = "2023-06-01"

ReasoningFailureKind = Literal["timeout", "unavailable", "malformed", "refused"]

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True, slots=True)
class ReasoningFailure:
    kind: ReasoningFailureKind
    message: str

    @property
    def transport(self) -> bool:
        """True when no answer was received at all."""
        return self.kind in ("timeout", "unavailable")


@dataclass(frozen=True, slots=True)
class BumpAdvice:
    bump: BumpKind
    rationale: str


class ReasoningService(Protocol):
    def advise_bump(self, *, summary: str, current: SemVer) -> Result[BumpAdvice, ReasoningFailure]:
        """Classify the change summary into a bump kind ("none" = do not release)."""
        ...

    def write_notes(
        self,
        *,
        summary: str,
        tag: str,
        previous_tag: str | None,
        bump: BumpKind,
    ) -> Result[str, ReasoningFailure]:
        """Markdown release notes for ``tag``."""
        ...


_BUMP_PROMPT = """\
Analyze the following changes to {project} and decide whether a new release should \
be created and which semantic version bump it warrants.

Current version: {current}

{summary}

Guidelines:
- major: breaking changes to the public API
- minor: new, backward compatible features
- patch: bug fixes, performance work, small improvements
- none: nothing user-relevant (docs-only, CI, formatting)

Respond with a JSON object only:
{{"should_release": true/false, "release_type": "major|minor|patch|none", \
"reasoning": "one or two sentences"}}
"""

_NOTES_PROMPT = """\
Write release notes in GitHub-flavored Markdown for {project} {tag} \
(previous release: {previous}, {bump} release).

{summary}

Include a short summary, then sections for new features, fixes, and breaking changes \
(only the sections that apply). Do not invent changes that are not listed. \
Output the Markdown only.
"""


class AnthropicReasoningService:
    """Reasoning service backed by the Anthropic Messages API."""

    def __init__(self, *, config: ReasoningConfig, http: HttpClient, project: str) -> None:
        self._config = config
        self._http = http
        self._project = project

    def advise_bump(self, *, summary: str, current: SemVer) -> Result[BumpAdvice, ReasoningFailure]:
        prompt = _BUMP_PROMPT.format(project=self._project, current=current, summary=summary)
        text = self._ask(prompt, max_tokens=self._config.max_tokens)
        if isinstance(text, Err):
            return text
        return parse_bump_advice(text.value)

    def write_notes(
        self,
        *,
        summary: str,
        tag: str,
        previous_tag: str | None,
        bump: BumpKind,
    ) -> Result[str, ReasoningFailure]:
        prompt = _NOTES_PROMPT.format(
            project=self._project,
            tag=tag,
            previous=previous_tag or "none",
            bump=bump,
            summary=summary,
        )
        text = self._ask(prompt, max_tokens=self._config.notes_max_tokens)
        if isinstance(text, Err):
            return text
        notes = text.value.strip()
        if not notes:
            return Err(ReasoningFailure(kind="malformed", message="empty release notes"))
        return Ok(notes)

    def _ask(self, prompt: str, *, max_tokens: int) -> Result[str, ReasoningFailure]:
        payload: dict[str, object] = {
            "model": self._config.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self._config.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
        }
        result = self._http.post_json(
            self._config.endpoint,
            payload,
            headers=headers,
            timeout=self._config.timeout_seconds,
        )
        if isinstance(result, Err):
            e = result.error
            kind: ReasoningFailureKind = "timeout" if e.timed_out else "unavailable"
            return Err(ReasoningFailure(kind=kind, message=str(e)))
        return _message_text(result.value)


def _message_text(data: dict[str, Any]) -> Result[str, ReasoningFailure]:
    if get_str(data, "stop_reason") == "refusal":
        return Err(ReasoningFailure(kind="refused", message="request refused by the service"))

    blocks = as_obj_list(data.get("content"))
    if blocks is None:
        return Err(ReasoningFailure(kind="malformed", message="response has no content"))

    texts: list[str] = []
    for block in blocks:
        b = as_str_dict(block)
        if b is None or b.get("type") != "text":
            continue
        text = b.get("text")
        if isinstance(text, str):
            texts.append(text)
    if not texts:
        return Err(ReasoningFailure(kind="malformed", message="response has no text block"))
    return Ok("".join(texts))


def parse_bump_advice(text: str) -> Result[BumpAdvice, ReasoningFailure]:
    """Extract the JSON verdict from a (possibly chatty) answer."""
    m = _JSON_OBJECT_RE.search(text)
    if m is None:
        return Err(ReasoningFailure(kind="malformed", message="no JSON object in answer"))
    try:
        obj: object = json.loads(m.group(0))
    except json.JSONDecodeError as e:
        return Err(ReasoningFailure(kind="malformed", message=f"invalid JSON: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(ReasoningFailure(kind="malformed", message="answer is not a JSON object"))

    should_release = data.get("should_release")
    release_type = get_str(data, "release_type")
    if not isinstance(should_release, bool):
        return Err(ReasoningFailure(kind="malformed", message="missing should_release"))
    if release_type not in BUMP_RANK:
        return Err(ReasoningFailure(kind="malformed", message=f"bad release_type: {release_type}"))

    bump: BumpKind = release_type if should_release else "none"  # type: ignore[assignment]
    if should_release and bump == "none":
        return Err(
            ReasoningFailure(kind="malformed", message="should_release without a bump kind")
        )
    rationale = get_str(data, "reasoning") or "no rationale given"
    return Ok(BumpAdvice(bump=bump, rationale=rationale))


def build_reasoning_service(
    *,
    config: ReasoningConfig,
    http: HttpClient,
    project: str,
) -> ReasoningService | None:
    """The configured service, or None when disabled or no API key is set."""
    if not config.available:
        return None
    return AnthropicReasoningService(config=config, http=http, project=project)
