"""Burr-based generation workflow.

The phase graph, the per-artifact failure ledger and the collaborator
protocols the phases call.
"""

# Collaborator protocols and exchange models (no Burr dependency)
from .collaborators import (
    CodeSynthesizer,
    Collaborators,
    ComponentSpec,
    DesignSource,
    DesignSpec,
    GeneratedArtifact,
    StoryGenerator,
    StoryResults,
)

_LAZY = {
    "WorkflowRunner": "runner",
    "WorkflowResult": "runner",
    "default_collaborators": "runner",
    "run_workflow": "runner",
    "build_workflow": "workflow_builder",
    "GENERATION_WORKFLOW_SPEC": "workflow_specs",
    "PhaseContext": "phases",
}


# Lazy import for Burr-dependent modules (the adapters import this package
# for the collaborator models)
def __getattr__(name):
    """Lazy import for Burr-dependent modules."""
    if name in _LAZY:
        import importlib

        module = importlib.import_module(f".{_LAZY[name]}", __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Workflow (lazy loaded)
    "GENERATION_WORKFLOW_SPEC",
    "PhaseContext",
    "WorkflowResult",
    "WorkflowRunner",
    "build_workflow",
    "default_collaborators",
    "run_workflow",
    # Collaborators (always available)
    "CodeSynthesizer",
    "Collaborators",
    "ComponentSpec",
    "DesignSource",
    "DesignSpec",
    "GeneratedArtifact",
    "StoryGenerator",
    "StoryResults",
]
