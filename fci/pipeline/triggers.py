"""Trigger evaluation: which jobs an event instantiates.

``evaluate`` is a pure function of the event and the project config:

- push to the main branch, or a pull request against it: quality gates
- tag push whose tag fully matches the version pattern: release build + publish
- manual dispatch: release build + publish (exercises the release path)
- anything else: nothing runs
"""

from __future__ import annotations

from dataclasses import dataclass

from fci.core.config import ProjectConfig
from fci.pipeline.model import QUALITY_GATE_JOBS, RELEASE_JOBS, Event, short_ref


@dataclass(frozen=True, slots=True)
class TriggerPlan:
    event: Event
    ref: str
    jobs: tuple[str, ...]
    reason: str

    @property
    def is_empty(self) -> bool:
        return not self.jobs

    @property
    def is_release(self) -> bool:
        return bool(self.jobs) and self.jobs == RELEASE_JOBS


def matches_tag_pattern(tag: str, project: ProjectConfig) -> bool:
    return project.tag_regex.fullmatch(short_ref(tag)) is not None


def evaluate(event: Event, project: ProjectConfig) -> TriggerPlan:
    ref = short_ref(event.ref)
    main = project.main_branch

    match event.kind:
        case "push":
            if ref == main:
                return TriggerPlan(event, ref, QUALITY_GATE_JOBS, f"push to {main}")
            return TriggerPlan(event, ref, (), f"push to {ref} (not {main})")
        case "pull_request":
            base = short_ref(event.base_ref or "")
            if base == main:
                return TriggerPlan(event, ref, QUALITY_GATE_JOBS, f"pull request against {main}")
            return TriggerPlan(event, ref, (), f"pull request against {base or '?'} (not {main})")
        case "tag":
            if matches_tag_pattern(ref, project):
                return TriggerPlan(event, ref, RELEASE_JOBS, f"tag {ref} matches version pattern")
            return TriggerPlan(
                event, ref, (), f"tag {ref} does not match {project.tag_pattern!r}"
            )
        case "manual":
            return TriggerPlan(event, ref or main, RELEASE_JOBS, "manual dispatch")
        case _:
            return TriggerPlan(event, ref, (), f"unhandled event: {event.kind}")
