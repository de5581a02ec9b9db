"""User-facing run summary."""

from pydantic import BaseModel, Field

from uiforge.workflow.state import PhaseError


class UnresolvedArtifact(BaseModel):
    name: str
    tier: str = ""
    attempted_fix: bool = False
    error_count: int = 0


class WorkflowSummary(BaseModel):
    """What a run produced, shown to the user instead of a stack trace."""

    success: bool
    final_phase: str
    total_components: int = 0
    validated: int = 0
    unresolved: list[UnresolvedArtifact] = Field(default_factory=list)
    errors: list[PhaseError] = Field(default_factory=list)
    final_check_attempts: int = 0
    iterations: int = 0
    stories_generated: int = 0
    story_generation_error: str | None = None
    unattributed_count: int = 0
    elapsed_seconds: float = 0.0

    @property
    def error_count(self) -> int:
        return sum(error.occurrences for error in self.errors)

    def render(self) -> str:
        lines = [
            "=" * 60,
            f"WORKFLOW SUMMARY: {'SUCCESS' if self.success else 'FAILED'}",
            "=" * 60,
            f"Final phase: {self.final_phase}",
            f"Artifacts: {self.total_components} total, {self.validated} validated, "
            f"{len(self.unresolved)} unresolved",
            f"Final check attempts: {self.final_check_attempts}, repair iterations: {self.iterations}",
            f"Stories generated: {self.stories_generated}",
        ]
        if self.story_generation_error:
            lines.append(f"Story generation error: {self.story_generation_error}")
        if self.unattributed_count:
            lines.append(f"Unattributed diagnostic lines: {self.unattributed_count}")

        lines.append(f"Errors: {self.error_count}")
        lines.extend(f"  - {error}" for error in self.errors)

        if self.unresolved:
            lines.append("Unresolved artifacts:")
            for artifact in self.unresolved:
                detail = f"{artifact.error_count} error(s)"
                if artifact.attempted_fix:
                    detail += ", fix attempted"
                tier = f" ({artifact.tier})" if artifact.tier else ""
                lines.append(f"  - {artifact.name}{tier}: {detail}")

        lines.append(f"Elapsed: {self.elapsed_seconds:.1f}s")
        lines.append("=" * 60)
        return "\n".join(lines)
